"""Run-scoped identity mappings from legacy ids to successor ids.

Each entity kind is populated by exactly one plan step. The store is only safe
under the sequential execution model; parallel steps would need a per-kind lock.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from uuid import UUID

    from .kinds import EntityKind
    from .records import SourceId


class DuplicateMappingError(RuntimeError):
    """Raised when a (kind, old id) pair is mapped a second time."""

    def __init__(self, kind: EntityKind, old_id: SourceId) -> None:
        super().__init__(f"{kind} {old_id!r} is already mapped")
        self.kind = kind
        self.old_id = old_id


@dataclass(frozen=True, slots=True)
class MappingLookup:
    """Explicit found/not-found answer of a mapping lookup."""

    found: bool
    new_id: UUID | None = None

    @classmethod
    def hit(cls, new_id: UUID) -> MappingLookup:
        return cls(found=True, new_id=new_id)

    @classmethod
    def miss(cls) -> MappingLookup:
        return cls(found=False)


@dataclass(slots=True)
class IdentityMappingStore:
    """Write-once mapping table keyed by ``(kind, old id)``."""

    _mappings: dict[EntityKind, dict[SourceId, UUID]] = field(
        default_factory=dict["EntityKind", dict["SourceId", "UUID"]]
    )

    def put(self, kind: EntityKind, old_id: SourceId, new_id: UUID) -> None:
        bucket = self._mappings.setdefault(kind, {})
        if old_id in bucket:
            raise DuplicateMappingError(kind, old_id)
        bucket[old_id] = new_id

    def get(self, kind: EntityKind, old_id: SourceId) -> MappingLookup:
        new_id = self._mappings.get(kind, {}).get(old_id)
        if new_id is None:
            return MappingLookup.miss()
        return MappingLookup.hit(new_id)

    def contains(self, kind: EntityKind, old_id: SourceId) -> bool:
        return old_id in self._mappings.get(kind, {})

    def is_populated(self, kind: EntityKind) -> bool:
        return kind in self._mappings

    def count(self, kind: EntityKind) -> int:
        return len(self._mappings.get(kind, {}))

    def mark_populated(self, kind: EntityKind) -> None:
        self._mappings.setdefault(kind, {})


@dataclass(slots=True)
class StagedMappings:
    """Mappings minted by one step, published to the store only after commit.

    Lookups consult the staged entries first so rows inside the same step can
    resolve siblings before anything has been written.
    """

    store: IdentityMappingStore
    kind: EntityKind
    _staged: dict[SourceId, UUID] = field(default_factory=dict["SourceId", "UUID"])

    def put(self, old_id: SourceId, new_id: UUID) -> None:
        if old_id in self._staged or self.store.contains(self.kind, old_id):
            raise DuplicateMappingError(self.kind, old_id)
        self._staged[old_id] = new_id

    def get(self, kind: EntityKind, old_id: SourceId) -> MappingLookup:
        if kind is self.kind and old_id in self._staged:
            return MappingLookup.hit(self._staged[old_id])
        return self.store.get(kind, old_id)

    def __len__(self) -> int:
        return len(self._staged)

    def publish(self) -> int:
        """Move staged entries into the store; returns how many were published."""

        self.store.mark_populated(self.kind)
        for old_id, new_id in self._staged.items():
            self.store.put(self.kind, old_id, new_id)
        published = len(self._staged)
        self._staged.clear()
        return published

    def discard(self) -> None:
        self._staged.clear()
