"""Row snapshots moved between the legacy and successor schemas.

Records are deliberately schema-agnostic: field names are the snake_case column
keys declared by the table metadata, values are whatever the driver returned.
"""

from __future__ import annotations

from collections.abc import Hashable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .kinds import EntityKind


type SourceId = Hashable


@dataclass(frozen=True, slots=True)
class SourceRecord:
    """Immutable snapshot of one legacy row.

    ``source_id`` is the row's primary key (a scalar for single-column keys,
    a tuple for composite keys) and is what identity mappings are keyed on.
    """

    kind: EntityKind
    source_id: SourceId
    values: Mapping[str, object]

    def __post_init__(self) -> None:
        if not isinstance(self.values, MappingProxyType):
            object.__setattr__(self, "values", MappingProxyType(dict(self.values)))

    def get(self, name: str) -> object:
        return self.values.get(name)


@dataclass(slots=True)
class TargetRecord:
    """A successor-schema row being inserted or updated within one step."""

    kind: EntityKind
    values: dict[str, object] = field(default_factory=dict[str, object])

    def get(self, name: str) -> object:
        return self.values.get(name)


@dataclass(frozen=True, slots=True)
class NaturalKey:
    """Ordered ``(field, value)`` pairs that identify a row across schema versions.

    ``None`` components are meaningful: they match target rows whose column is
    NULL as well.
    """

    parts: tuple[tuple[str, object], ...]

    @classmethod
    def of(cls, values: Mapping[str, object], fields: tuple[str, ...]) -> NaturalKey:
        return cls(parts=tuple((name, values.get(name)) for name in fields))

    @property
    def fields(self) -> tuple[str, ...]:
        return tuple(name for name, _ in self.parts)

    def as_dict(self) -> dict[str, object]:
        return dict(self.parts)

    def matches(self, values: Mapping[str, object]) -> bool:
        return all(values.get(name) == value for name, value in self.parts)

    def __str__(self) -> str:
        return ", ".join(f"{name}={value!r}" for name, value in self.parts)
