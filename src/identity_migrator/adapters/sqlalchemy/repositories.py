"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import insert, select, update

from identity_migrator.adapters.sqlalchemy.mappings import LEGACY_TABLES, TARGET_TABLES
from identity_migrator.domain.records import SourceRecord, TargetRecord

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy import Column, Row, Table
    from sqlalchemy.orm import Session

    from identity_migrator.domain.kinds import EntityKind
    from identity_migrator.domain.records import NaturalKey, SourceId


def _row_values(table: Table, row: Row[object]) -> dict[str, object]:
    mapping = row._mapping  # noqa: SLF001
    return {column.key: mapping[column] for column in table.columns}


class SqlAlchemySourceRepository:
    """Read every row of one legacy table in primary key order."""

    def __init__(self, session: Session, kind: EntityKind, table: Table | None = None) -> None:
        self.session = session
        self._kind = kind
        self._table = table if table is not None else LEGACY_TABLES[kind]

    def list_all(self) -> list[SourceRecord]:
        key_columns = tuple(self._table.primary_key.columns)
        stmt = select(self._table).order_by(*key_columns)
        records: list[SourceRecord] = []
        for row in self.session.execute(stmt):
            values = _row_values(self._table, row)
            records.append(
                SourceRecord(
                    kind=self._kind,
                    source_id=self._source_id(values, key_columns),
                    values=values,
                )
            )
        return records

    @staticmethod
    def _source_id(values: dict[str, object], key_columns: tuple[Column[object], ...]) -> SourceId:
        keys = [column.key for column in key_columns]
        if len(keys) == 1:
            return values[keys[0]]
        return tuple(values[key] for key in keys)


class SqlAlchemyTargetRepository:
    """Natural-key lookups and batch writes for one successor table."""

    def __init__(self, session: Session, kind: EntityKind, table: Table | None = None) -> None:
        self.session = session
        self._kind = kind
        self._table = table if table is not None else TARGET_TABLES[kind]

    def find_by_natural_key(self, key: NaturalKey) -> TargetRecord | None:
        conditions = [
            self._table.c[name].is_(None) if value is None else self._table.c[name] == value
            for name, value in key.parts
        ]
        stmt = select(self._table).where(*conditions).limit(1)
        row = self.session.execute(stmt).first()
        if row is None:
            return None
        return TargetRecord(kind=self._kind, values=_row_values(self._table, row))

    def insert_batch(self, records: Sequence[TargetRecord]) -> None:
        if not records:
            return
        self.session.execute(insert(self._table), [dict(record.values) for record in records])

    def update_batch(self, records: Sequence[TargetRecord]) -> None:
        key_columns = tuple(self._table.primary_key.columns)
        key_names = {column.key for column in key_columns}
        for record in records:
            missing = [name for name in key_names if record.get(name) is None]
            if missing:
                raise ValueError(f"{self._kind} update without primary key value(s): {missing}")
            stmt = (
                update(self._table)
                .where(*(column == record.values[column.key] for column in key_columns))
                .values({k: v for k, v in record.values.items() if k not in key_names})
            )
            self.session.execute(stmt)

