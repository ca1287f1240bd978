"""Ports the migration core depends on.

The core never issues queries itself; adapters implement these protocols for a
concrete store (see ``identity_migrator.adapters.sqlalchemy``).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import TracebackType

    from .kinds import EntityKind
    from .records import NaturalKey, SourceRecord, TargetRecord


@runtime_checkable
class SourceRepository(Protocol):
    """Read-only access to one legacy table."""

    def list_all(self) -> Sequence[SourceRecord]:
        """Return every row ordered by the legacy primary key."""
        ...


@runtime_checkable
class TargetRepository(Protocol):
    """Natural-key lookup and batch writes against one successor table."""

    def find_by_natural_key(self, key: NaturalKey) -> TargetRecord | None: ...

    def insert_batch(self, records: Sequence[TargetRecord]) -> None: ...

    def update_batch(self, records: Sequence[TargetRecord]) -> None: ...


@dataclass(slots=True)
class StepRepositories:
    """Repositories one plan step works against."""

    source: SourceRepository
    target: TargetRepository


@runtime_checkable
class StepUnitOfWork(Protocol):
    """Transaction boundary around one step; only the target side is written."""

    @property
    def repositories(self) -> StepRepositories: ...

    def __enter__(self) -> StepUnitOfWork: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


@runtime_checkable
class MigrationStores(Protocol):
    """Both stores of a run: connectivity checks plus per-step units of work."""

    def check_source(self) -> None:
        """Raise if the legacy store cannot be reached."""
        ...

    def check_target(self) -> None:
        """Raise if the successor store cannot be reached."""
        ...

    def unit_of_work(self, kind: EntityKind) -> StepUnitOfWork: ...
