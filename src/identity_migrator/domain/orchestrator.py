"""Run the migration plan step by step with per-step failure isolation.

State machine: ``NOT_STARTED -> RUNNING -> COMPLETED``, or ``ABORTED`` when the
pre-flight check cannot reach a store. Once running, a failing step is recorded
and the next step still runs; tables are migration units, not one transaction.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from .identity_map import IdentityMappingStore
from .plan import DEFAULT_PLAN
from .reconcile import MigrationContext, ReconciliationEngine, StepOutcome
from .report import MigrationReport, MigrationStepResult

if TYPE_CHECKING:
    from .descriptors import EntityMigrationDescriptor
    from .plan import MigrationPlan
    from .ports import MigrationStores

log = logging.getLogger(__name__)


class RunState(StrEnum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"


class PreflightError(RuntimeError):
    """Raised when the source or target store cannot be reached."""


class InvalidRunStateError(RuntimeError):
    """Raised when a run is started twice or after being aborted."""


@dataclass(slots=True)
class MigrationOrchestrator:
    """Owns the identity mappings and the report for exactly one run."""

    stores: MigrationStores
    plan: MigrationPlan = DEFAULT_PLAN
    context: MigrationContext = field(
        default_factory=lambda: MigrationContext(identities=IdentityMappingStore())
    )
    report: MigrationReport = field(default_factory=MigrationReport)
    state: RunState = RunState.NOT_STARTED
    _preflight_passed: bool = False

    def preflight(self) -> None:
        """Verify both stores are reachable; abort the run otherwise."""

        self._require_state(RunState.NOT_STARTED)
        checks = (("source", self.stores.check_source), ("target", self.stores.check_target))
        for name, check in checks:
            try:
                check()
            except Exception as exc:
                self.state = RunState.ABORTED
                raise PreflightError(f"Cannot connect to {name} database: {exc}") from exc
            log.info("%s database connection successful", name.capitalize())
        self._preflight_passed = True

    def run(self) -> MigrationReport:
        """Execute every step in plan order and return the report."""

        if not self._preflight_passed:
            self.preflight()
        self._require_state(RunState.NOT_STARTED)

        self.state = RunState.RUNNING
        engine = ReconciliationEngine(context=self.context)
        for position, descriptor in enumerate(self.plan, start=1):
            log.info("[%s/%s] Processing table %s...", position, len(self.plan), descriptor.table)
            self.report.record(self._run_step(engine, descriptor))
        self.state = RunState.COMPLETED
        return self.report

    def _run_step(
        self,
        engine: ReconciliationEngine,
        descriptor: EntityMigrationDescriptor,
    ) -> MigrationStepResult:
        outcome = StepOutcome(kind=descriptor.kind)
        try:
            engine.run_step(descriptor, self.stores.unit_of_work(descriptor.kind), outcome=outcome)
        except Exception as exc:
            log.exception("Error migrating table %s", descriptor.table)
            return MigrationStepResult.failed(descriptor.table, outcome, exc)

        result = MigrationStepResult.succeeded(descriptor.table, outcome)
        if result.skipped:
            log.warning(
                "Table %s: %s of %s records skipped (unresolved references)",
                descriptor.table,
                result.skipped,
                result.attempted,
            )
        log.info("Table %s: %s records migrated successfully", descriptor.table, result.migrated)
        return result

    def _require_state(self, expected: RunState) -> None:
        if self.state is not expected:
            raise InvalidRunStateError(f"Run is {self.state}, expected {expected}")
