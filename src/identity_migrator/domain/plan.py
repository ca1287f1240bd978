"""Ordered, dependency-checked migration plan."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .catalog import DESCRIPTORS

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from .descriptors import EntityMigrationDescriptor
    from .kinds import EntityKind, Stage


class PlanOrderError(ValueError):
    """Raised when a plan would resolve foreign keys before their kind is migrated."""


@dataclass(frozen=True, slots=True)
class MigrationPlan:
    """Steps in execution order.

    Construction validates that every kind a step depends on appears in an
    earlier step, that no kind repeats and that stages never regress.
    """

    steps: tuple[EntityMigrationDescriptor, ...]

    def __post_init__(self) -> None:
        validate_order(self.steps)

    @classmethod
    def of(cls, steps: Iterable[EntityMigrationDescriptor]) -> MigrationPlan:
        return cls(steps=tuple(steps))

    def __iter__(self) -> Iterator[EntityMigrationDescriptor]:
        return iter(self.steps)

    def __len__(self) -> int:
        return len(self.steps)

    @property
    def kinds(self) -> tuple[EntityKind, ...]:
        return tuple(step.kind for step in self.steps)


def validate_order(steps: Iterable[EntityMigrationDescriptor]) -> None:
    completed: set[EntityKind] = set()
    last_stage: Stage | None = None
    for position, step in enumerate(steps, start=1):
        if step.kind in completed:
            raise PlanOrderError(f"Step {position}: {step.kind} appears more than once")
        if last_stage is not None and step.stage < last_stage:
            raise PlanOrderError(
                f"Step {position}: {step.kind} (stage {step.stage.name}) runs after "
                f"stage {last_stage.name}"
            )
        missing = sorted(step.dependencies - completed)
        if missing:
            names = ", ".join(missing)
            raise PlanOrderError(
                f"Step {position}: {step.kind} depends on {names} not yet migrated"
            )
        completed.add(step.kind)
        last_stage = step.stage


DEFAULT_PLAN = MigrationPlan.of(DESCRIPTORS)
