"""Generic extract/upsert of one entity kind.

Per source row the engine:
1) remaps foreign keys (a mandatory miss skips the row)
2) builds target values from the descriptor's field rules
3) derives the natural key and resolves it against rows staged earlier in the
   step, then against the target repository
4) stages an insert (new identifier) or an update (existing identifier kept)
5) records the identity mapping in the step's staging area

Inserts and updates are flushed in one batch at the end of the step. Staged
mappings are published only once the step's unit of work has committed.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Literal
from uuid import UUID

from uuid6 import uuid7

from .descriptors import IdentityStrategy
from .identity_map import StagedMappings
from .records import TargetRecord
from .remap import remap_foreign_keys

if TYPE_CHECKING:
    from .descriptors import EntityMigrationDescriptor
    from .identity_map import IdentityMappingStore
    from .kinds import EntityKind
    from .ports import StepRepositories, StepUnitOfWork, TargetRepository
    from .records import NaturalKey, SourceRecord
    from .remap import RowWarning

type IdFactory = Callable[[], UUID]

log = logging.getLogger(__name__)


@dataclass(slots=True)
class MigrationContext:
    """Single-owner state of one run, passed explicitly into every step."""

    identities: IdentityMappingStore
    new_id: IdFactory = uuid7


class ResolutionStatus(StrEnum):
    """How a source row relates to the target schema."""

    NEW = "new"
    MATCHED = "matched"
    DUPLICATE = "duplicate"


@dataclass(slots=True, kw_only=True)
class NewRowResolution:
    """No target row carries the natural key (or the row has none)."""

    key: NaturalKey | None
    status: Literal[ResolutionStatus.NEW] = ResolutionStatus.NEW


@dataclass(slots=True, kw_only=True)
class MatchedRowResolution:
    """An existing target row carries the natural key."""

    key: NaturalKey
    target: TargetRecord
    status: Literal[ResolutionStatus.MATCHED] = ResolutionStatus.MATCHED


@dataclass(slots=True, kw_only=True)
class DuplicateRowResolution:
    """An earlier source row of this step already claimed the natural key."""

    key: NaturalKey
    target: TargetRecord
    status: Literal[ResolutionStatus.DUPLICATE] = ResolutionStatus.DUPLICATE


type RowResolution = NewRowResolution | MatchedRowResolution | DuplicateRowResolution


@dataclass(slots=True)
class StepOutcome:
    """Running tally of one step; filled in place so failures keep partial counts."""

    kind: EntityKind
    attempted: int = 0
    inserted: int = 0
    updated: int = 0
    unchanged: int = 0
    skipped: int = 0
    warnings: list[RowWarning] = field(default_factory=list["RowWarning"])

    @property
    def migrated(self) -> int:
        return self.inserted + self.updated + self.unchanged


@dataclass(slots=True)
class _PendingBatch:
    inserts: list[TargetRecord] = field(default_factory=list[TargetRecord])
    updates: list[TargetRecord] = field(default_factory=list[TargetRecord])
    by_key: dict[NaturalKey, TargetRecord] = field(
        default_factory=dict["NaturalKey", TargetRecord]
    )

    def remember(self, key: NaturalKey | None, record: TargetRecord) -> None:
        if key is not None:
            self.by_key.setdefault(key, record)


@dataclass(slots=True)
class ReconciliationEngine:
    """Migrate one entity kind idempotently."""

    context: MigrationContext

    def run_step(
        self,
        descriptor: EntityMigrationDescriptor,
        unit_of_work: StepUnitOfWork,
        *,
        outcome: StepOutcome | None = None,
    ) -> StepOutcome:
        """Reconcile, persist and commit ``descriptor.kind``; then publish mappings."""

        tally = outcome or StepOutcome(kind=descriptor.kind)
        staged = StagedMappings(store=self.context.identities, kind=descriptor.kind)
        try:
            with unit_of_work as uow:
                self.reconcile(descriptor, uow.repositories, staged=staged, outcome=tally)
                uow.commit()
        except Exception:
            staged.discard()
            raise
        published = staged.publish()
        if published:
            log.debug("Published %s %s identity mappings", published, descriptor.kind)
        return tally

    def reconcile(
        self,
        descriptor: EntityMigrationDescriptor,
        repositories: StepRepositories,
        *,
        staged: StagedMappings,
        outcome: StepOutcome,
    ) -> StepOutcome:
        """Stage and flush every row of one kind without committing."""

        records = list(repositories.source.list_all())
        outcome.attempted = len(records)
        batch = _PendingBatch()

        for record in records:
            remapped = remap_foreign_keys(descriptor, record, staged)
            outcome.warnings.extend(remapped.warnings)
            if remapped.skipped:
                outcome.skipped += 1
                continue

            values = _target_values(descriptor, record, remapped.values)
            key = descriptor.natural_key.extract(values) if descriptor.natural_key else None
            resolution = _resolve(key, batch=batch, target=repositories.target)

            match resolution:
                case NewRowResolution():
                    self._stage_insert(descriptor, record, values, key, batch, staged)
                    outcome.inserted += 1
                case MatchedRowResolution(key=matched_key, target=existing):
                    if self._stage_update(descriptor, values, matched_key, existing, batch):
                        outcome.updated += 1
                    else:
                        outcome.unchanged += 1
                    _stage_mapping(descriptor, record, existing, staged)
                case DuplicateRowResolution(key=matched_key, target=earlier):
                    log.debug(
                        "Duplicate %s natural key (%s) for row %r; keeping first",
                        descriptor.kind,
                        matched_key,
                        record.source_id,
                    )
                    outcome.unchanged += 1
                    _stage_mapping(descriptor, record, earlier, staged)

        _flush(repositories.target, batch)
        return outcome

    def _stage_insert(
        self,
        descriptor: EntityMigrationDescriptor,
        record: SourceRecord,
        values: dict[str, object],
        key: NaturalKey | None,
        batch: _PendingBatch,
        staged: StagedMappings,
    ) -> None:
        target_id = descriptor.target_id
        match descriptor.identity:
            case IdentityStrategy.TIME_ORDERED if target_id is not None:
                values[target_id] = self.context.new_id()
            case IdentityStrategy.DATABASE if target_id is not None:
                values.pop(target_id, None)
            case IdentityStrategy.PRESERVED if target_id is not None:
                values[target_id] = record.source_id
            case _:
                pass

        new_record = TargetRecord(kind=descriptor.kind, values=values)
        _stage_mapping(descriptor, record, new_record, staged)
        batch.inserts.append(new_record)
        batch.remember(key, new_record)
        log.debug("Inserting new %s: %s", descriptor.kind, key or record.source_id)

    def _stage_update(
        self,
        descriptor: EntityMigrationDescriptor,
        values: dict[str, object],
        key: NaturalKey,
        existing: TargetRecord,
        batch: _PendingBatch,
    ) -> bool:
        batch.remember(key, existing)
        if descriptor.link:
            log.debug("Link %s (%s) already present", descriptor.kind, key)
            return False
        fields = descriptor.update_fields(key)
        if not fields:
            return False
        for name in fields:
            existing.values[name] = values.get(name)
        batch.updates.append(existing)
        log.debug("Updating existing %s: %s", descriptor.kind, key)
        return True


def _target_values(
    descriptor: EntityMigrationDescriptor,
    record: SourceRecord,
    foreign_keys: dict[str, object],
) -> dict[str, object]:
    values = {rule.target: rule.extract(record.values) for rule in descriptor.fields}
    values.update(foreign_keys)
    return values


def _resolve(
    key: NaturalKey | None,
    *,
    batch: _PendingBatch,
    target: TargetRepository,
) -> RowResolution:
    if key is None:
        return NewRowResolution(key=None)
    earlier = batch.by_key.get(key)
    if earlier is not None:
        return DuplicateRowResolution(key=key, target=earlier)
    existing = target.find_by_natural_key(key)
    if existing is None:
        return NewRowResolution(key=key)
    return MatchedRowResolution(key=key, target=existing)


def _stage_mapping(
    descriptor: EntityMigrationDescriptor,
    record: SourceRecord,
    target: TargetRecord,
    staged: StagedMappings,
) -> None:
    if not descriptor.maps_identity or descriptor.target_id is None:
        return
    new_id = target.get(descriptor.target_id)
    if not isinstance(new_id, UUID):
        raise TypeError(
            f"{descriptor.kind} {record.source_id!r}: target id {new_id!r} is not a UUID"
        )
    staged.put(record.source_id, new_id)


def _flush(target: TargetRepository, batch: _PendingBatch) -> None:
    if batch.inserts:
        target.insert_batch(batch.inserts)
    if batch.updates:
        target.update_batch(batch.updates)
