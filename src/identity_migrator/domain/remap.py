"""Translate legacy foreign key values into successor identifiers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from .descriptors import MissingReferencePolicy

if TYPE_CHECKING:
    from .descriptors import EntityMigrationDescriptor, ForeignKeyRule
    from .identity_map import MappingLookup
    from .kinds import EntityKind
    from .records import SourceId, SourceRecord

log = logging.getLogger(__name__)


class MappingReader(Protocol):
    """Read side of an identity mapping table."""

    def get(self, kind: EntityKind, old_id: SourceId) -> MappingLookup: ...


@dataclass(frozen=True, slots=True, kw_only=True)
class RowWarning:
    """A foreign key on one source row that could not be resolved."""

    kind: EntityKind
    row: SourceId
    field: str
    references: EntityKind
    missing_id: SourceId
    skipped: bool

    def __str__(self) -> str:
        if self.skipped:
            return (
                f"Skipping {self.kind} {self.row!r} - {self.references} "
                f"{self.missing_id!r} not found in mapping"
            )
        return (
            f"{self.kind} {self.row!r} references unknown {self.references} "
            f"{self.missing_id!r}; {self.field} cleared"
        )


@dataclass(frozen=True, slots=True)
class RemapOutcome:
    """Remapped foreign key values for one row, or the reason it must be skipped."""

    values: dict[str, object]
    warnings: tuple[RowWarning, ...] = ()
    skipped: bool = False


def remap_foreign_keys(
    descriptor: EntityMigrationDescriptor,
    record: SourceRecord,
    mappings: MappingReader,
) -> RemapOutcome:
    """Resolve every foreign key declared by ``descriptor`` for ``record``.

    Absent source values stay absent. A missing mapping either clears the field
    (``NULLIFY``) or skips the whole row (``SKIP_ROW``); the first mandatory miss
    ends evaluation.
    """

    values: dict[str, object] = {}
    warnings: list[RowWarning] = []
    for rule in descriptor.foreign_keys:
        old_value = record.get(rule.source_field)
        if old_value is None:
            values[rule.field] = None
            continue

        lookup = mappings.get(rule.references, old_value)
        if lookup.found:
            values[rule.field] = lookup.new_id
            continue

        warning = _missing_reference(record, rule, old_value)
        log.warning("%s", warning)
        warnings.append(warning)
        if warning.skipped:
            return RemapOutcome(values={}, warnings=tuple(warnings), skipped=True)
        values[rule.field] = None

    return RemapOutcome(values=values, warnings=tuple(warnings))


def _missing_reference(
    record: SourceRecord,
    rule: ForeignKeyRule,
    old_value: SourceId,
) -> RowWarning:
    return RowWarning(
        kind=record.kind,
        row=record.source_id,
        field=rule.field,
        references=rule.references,
        missing_id=old_value,
        skipped=rule.on_missing is MissingReferencePolicy.SKIP_ROW,
    )
