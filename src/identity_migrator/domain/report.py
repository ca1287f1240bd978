"""Per-step results and the run summary."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .kinds import EntityKind
    from .reconcile import StepOutcome
    from .remap import RowWarning


@dataclass(frozen=True, slots=True, kw_only=True)
class MigrationStepResult:
    """Outcome of one plan step."""

    kind: EntityKind
    table: str
    success: bool
    attempted: int = 0
    inserted: int = 0
    updated: int = 0
    unchanged: int = 0
    skipped: int = 0
    warnings: tuple[RowWarning, ...] = ()
    error: str | None = None

    @property
    def migrated(self) -> int:
        return self.inserted + self.updated + self.unchanged

    @classmethod
    def succeeded(cls, table: str, outcome: StepOutcome) -> MigrationStepResult:
        return cls(
            kind=outcome.kind,
            table=table,
            success=True,
            attempted=outcome.attempted,
            inserted=outcome.inserted,
            updated=outcome.updated,
            unchanged=outcome.unchanged,
            skipped=outcome.skipped,
            warnings=tuple(outcome.warnings),
        )

    @classmethod
    def failed(cls, table: str, outcome: StepOutcome, error: BaseException) -> MigrationStepResult:
        # row counters are dropped: nothing from a failed step was committed
        return cls(
            kind=outcome.kind,
            table=table,
            success=False,
            attempted=outcome.attempted,
            warnings=tuple(outcome.warnings),
            error=str(error) or type(error).__name__,
        )

    def as_dict(self) -> dict[str, object]:
        return {
            "kind": str(self.kind),
            "table": self.table,
            "success": self.success,
            "attempted": self.attempted,
            "migrated": self.migrated,
            "inserted": self.inserted,
            "updated": self.updated,
            "unchanged": self.unchanged,
            "skipped": self.skipped,
            "warnings": [str(warning) for warning in self.warnings],
            "error": self.error,
        }


@dataclass(slots=True)
class MigrationReport:
    """Append-only list of step results in execution order."""

    _results: list[MigrationStepResult] = field(default_factory=list[MigrationStepResult])

    def record(self, result: MigrationStepResult) -> None:
        self._results.append(result)

    @property
    def results(self) -> tuple[MigrationStepResult, ...]:
        return tuple(self._results)

    @property
    def successful(self) -> tuple[MigrationStepResult, ...]:
        return tuple(result for result in self._results if result.success)

    @property
    def failed(self) -> tuple[MigrationStepResult, ...]:
        return tuple(result for result in self._results if not result.success)

    @property
    def total_steps(self) -> int:
        return len(self._results)

    @property
    def total_migrated(self) -> int:
        return sum(result.migrated for result in self.successful)

    @property
    def total_skipped(self) -> int:
        return sum(result.skipped for result in self.successful)

    @property
    def total_warnings(self) -> int:
        return sum(len(result.warnings) for result in self._results)

    def result_for(self, kind: EntityKind) -> MigrationStepResult | None:
        for result in self._results:
            if result.kind == kind:
                return result
        return None

    def as_dict(self) -> dict[str, object]:
        return {
            "steps": [result.as_dict() for result in self._results],
            "totals": {
                "steps": self.total_steps,
                "successful": len(self.successful),
                "failed": len(self.failed),
                "migrated": self.total_migrated,
                "skipped": self.total_skipped,
                "warnings": self.total_warnings,
            },
        }


def render_report(report: MigrationReport) -> list[str]:
    """Human-readable summary lines, one log record per line."""

    lines = ["=" * 49, "MIGRATION SUMMARY", "=" * 49, ""]

    successful = report.successful
    if successful:
        lines.append(f"Successfully migrated tables ({len(successful)}):")
        for result in successful:
            detail = (
                f"   {result.table}: {result.migrated} records "
                f"(inserted={result.inserted}, updated={result.updated}, "
                f"unchanged={result.unchanged})"
            )
            if result.skipped:
                detail += f", {result.skipped} of {result.attempted} skipped"
            lines.append(detail)
        lines.append("")

    failed = report.failed
    if failed:
        lines.append(f"Failed migrations ({len(failed)}):")
        lines.extend(f"   {result.table}: {result.error}" for result in failed)
        lines.append("")

    warned = [result for result in report.results if result.warnings]
    if warned:
        lines.append(f"Warnings ({report.total_warnings}):")
        for result in warned:
            lines.extend(f"   {result.table}: {warning}" for warning in result.warnings)
        lines.append("")

    lines.extend(
        [
            "Statistics:",
            f"   Total tables processed: {report.total_steps}",
            f"   Successful: {len(successful)}",
            f"   Failed: {len(failed)}",
            f"   Total records migrated: {report.total_migrated}",
            f"   Total records skipped: {report.total_skipped}",
        ]
    )
    return lines
