"""Declarative per-kind configuration driving reconciliation and remapping.

A descriptor answers, for one entity kind:
- how source fields become target fields (and which of them an update rewrites)
- which target fields are foreign keys, what they reference, and what happens
  when the reference cannot be resolved
- how the natural key is derived and how the target primary identifier is
  obtained
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from .records import NaturalKey

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .kinds import EntityKind, Stage
    from .records import SourceId

type FieldTransform = Callable[[object], object]


class IdentityStrategy(StrEnum):
    """How the target primary identifier of a new row is obtained."""

    TIME_ORDERED = "time_ordered"
    DATABASE = "database"
    PRESERVED = "preserved"
    NONE = "none"


class MissingReferencePolicy(StrEnum):
    """What to do when a foreign key has no identity mapping."""

    NULLIFY = "nullify"
    SKIP_ROW = "skip_row"


@dataclass(frozen=True, slots=True)
class FieldRule:
    """Copy one source field into one target field."""

    target: str
    source: str | None = None
    transform: FieldTransform | None = None
    on_update: bool = True

    @property
    def source_field(self) -> str:
        return self.source or self.target

    def extract(self, values: Mapping[str, object]) -> object:
        value = values.get(self.source_field)
        if self.transform is not None and value is not None:
            return self.transform(value)
        return value


@dataclass(frozen=True, slots=True)
class ForeignKeyRule:
    """A target field whose value must be translated through the identity map."""

    field: str
    references: EntityKind
    on_missing: MissingReferencePolicy = MissingReferencePolicy.SKIP_ROW
    source: str | None = None

    @property
    def source_field(self) -> str:
        return self.source or self.field


@dataclass(frozen=True, slots=True)
class NaturalKeySpec:
    """Fields forming the natural key, evaluated over the remapped target values.

    Null components take part in matching (``IS NULL``), so a null-keyed row still
    finds itself on a re-run. With ``nullable=False`` a key containing a null
    component is unusable and the ``fallback`` spec (if any) is tried instead.
    """

    fields: tuple[str, ...]
    nullable: bool = True
    fallback: NaturalKeySpec | None = None

    def extract(self, values: Mapping[str, object]) -> NaturalKey | None:
        key = NaturalKey.of(values, self.fields)
        if self.nullable or all(value is not None for _, value in key.parts):
            return key
        if self.fallback is not None:
            return self.fallback.extract(values)
        return None


@dataclass(frozen=True, slots=True)
class EntityMigrationDescriptor:
    """Static migration rules for one entity kind."""

    kind: EntityKind
    table: str
    stage: Stage
    source_key: tuple[str, ...]
    fields: tuple[FieldRule, ...]
    natural_key: NaturalKeySpec | None = None
    foreign_keys: tuple[ForeignKeyRule, ...] = ()
    identity: IdentityStrategy = IdentityStrategy.NONE
    target_id: str | None = None
    link: bool = False
    depends_on: frozenset[EntityKind] = field(default_factory=frozenset["EntityKind"])

    def __post_init__(self) -> None:
        if not self.source_key:
            raise ValueError(f"{self.kind}: source_key must name at least one field")
        if self.identity is not IdentityStrategy.NONE and self.target_id is None:
            raise ValueError(f"{self.kind}: identity strategy {self.identity} needs target_id")
        if self.link:
            if self.natural_key is None:
                raise ValueError(f"{self.kind}: link kinds are keyed by their pair")
            optional = [
                rule.field
                for rule in self.foreign_keys
                if rule.on_missing is not MissingReferencePolicy.SKIP_ROW
            ]
            if optional:
                raise ValueError(f"{self.kind}: link foreign keys must be mandatory: {optional}")

    @property
    def dependencies(self) -> frozenset[EntityKind]:
        """Kinds that must be migrated before this one."""

        referenced = {rule.references for rule in self.foreign_keys if rule.references != self.kind}
        return frozenset(referenced) | self.depends_on

    @property
    def maps_identity(self) -> bool:
        return self.identity is IdentityStrategy.TIME_ORDERED

    def source_id(self, values: Mapping[str, object]) -> SourceId:
        if len(self.source_key) == 1:
            return values.get(self.source_key[0])
        return tuple(values.get(name) for name in self.source_key)

    def update_fields(self, matched_on: NaturalKey | None = None) -> tuple[str, ...]:
        """Target fields an update may overwrite.

        The primary identifier and the fields of the key the row was matched on
        are never rewritten.
        """

        protected = set(matched_on.fields) if matched_on is not None else set[str]()
        if self.target_id is not None:
            protected.add(self.target_id)
        fields = [rule.target for rule in self.fields if rule.on_update]
        fields.extend(rule.field for rule in self.foreign_keys)
        return tuple(name for name in fields if name not in protected)


def copy_fields(*names: str, on_update: bool = True) -> tuple[FieldRule, ...]:
    """Shorthand for same-named field copies."""

    return tuple(FieldRule(target=name, on_update=on_update) for name in names)
