"""SQLAlchemy-backed stores and per-step units of work."""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal

from sqlalchemy import text
from sqlalchemy.orm import Session, sessionmaker

from identity_migrator.adapters.sqlalchemy.engines import create_store_engine
from identity_migrator.adapters.sqlalchemy.repositories import (
    SqlAlchemySourceRepository,
    SqlAlchemyTargetRepository,
)
from identity_migrator.domain.ports import StepRepositories

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine

    from identity_migrator.config import MigrationConfig
    from identity_migrator.domain.kinds import EntityKind


class StartupError(RuntimeError):
    """Raised when a unit of work is used outside its ``with`` block."""


class SqlAlchemyStepUnitOfWork:
    """One step: a read session on the legacy store, a transaction on the successor."""

    def __init__(
        self,
        kind: EntityKind,
        *,
        source_sessions: sessionmaker[Session],
        target_sessions: sessionmaker[Session],
    ) -> None:
        self.kind = kind
        self._source_sessions = source_sessions
        self._target_sessions = target_sessions
        self._source_session: Session | None = None
        self._target_session: Session | None = None
        self._repositories: StepRepositories | None = None

    @property
    def repositories(self) -> StepRepositories:
        if self._repositories is None:
            raise StartupError(f"Unit of work for {self.kind} is not active")
        return self._repositories

    def __enter__(self) -> SqlAlchemyStepUnitOfWork:
        self._source_session = self._source_sessions()
        self._target_session = self._target_sessions()
        self._repositories = StepRepositories(
            source=SqlAlchemySourceRepository(self._source_session, self.kind),
            target=SqlAlchemyTargetRepository(self._target_session, self.kind),
        )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        if exc_type is not None and self._target_session is not None:
            self.rollback()
        for session in (self._source_session, self._target_session):
            if session is not None:
                session.close()
        self._source_session = None
        self._target_session = None
        self._repositories = None
        return False

    def commit(self) -> None:
        self._active_target().commit()

    def rollback(self) -> None:
        self._active_target().rollback()

    def _active_target(self) -> Session:
        if self._target_session is None:
            raise StartupError(f"Unit of work for {self.kind} is not active")
        return self._target_session


class SqlAlchemyMigrationStores:
    """Engines for both stores of a run plus their session factories."""

    def __init__(self, source_engine: Engine, target_engine: Engine) -> None:
        self.source_engine = source_engine
        self.target_engine = target_engine
        self._source_sessions = sessionmaker(bind=source_engine, expire_on_commit=False)
        self._target_sessions = sessionmaker(bind=target_engine, expire_on_commit=False)

    @classmethod
    def from_config(cls, config: MigrationConfig) -> SqlAlchemyMigrationStores:
        return cls(
            source_engine=create_store_engine(config.source),
            target_engine=create_store_engine(config.target),
        )

    def check_source(self) -> None:
        _ping(self.source_engine)

    def check_target(self) -> None:
        _ping(self.target_engine)

    def unit_of_work(self, kind: EntityKind) -> SqlAlchemyStepUnitOfWork:
        return SqlAlchemyStepUnitOfWork(
            kind,
            source_sessions=self._source_sessions,
            target_sessions=self._target_sessions,
        )

    def dispose(self) -> None:
        """Release pooled connections of both engines."""

        self.source_engine.dispose()
        self.target_engine.dispose()


def _ping(engine: Engine) -> None:
    with engine.connect() as connection:
        connection.execute(text("SELECT 1"))
