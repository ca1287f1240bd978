"""Application orchestration entry points."""

from __future__ import annotations

import json
from collections.abc import Callable
from logging import getLogger
from typing import TYPE_CHECKING, Protocol

from identity_migrator.adapters.sqlalchemy import SqlAlchemyMigrationStores
from identity_migrator.domain.orchestrator import MigrationOrchestrator
from identity_migrator.domain.plan import DEFAULT_PLAN
from identity_migrator.domain.ports import MigrationStores
from identity_migrator.domain.report import render_report

if TYPE_CHECKING:
    from pathlib import Path

    from identity_migrator.config import MigrationConfig
    from identity_migrator.domain.plan import MigrationPlan
    from identity_migrator.domain.report import MigrationReport


class ManagedStores(MigrationStores, Protocol):
    """Migration stores that hold connections which must be released."""

    def dispose(self) -> None: ...


type StoresFactory = Callable[[MigrationConfig], ManagedStores]
type ConfirmPrompt = Callable[[], bool]


log = getLogger(__name__)

BANNER_RULE = "=" * 49


def check_connections(
    config: MigrationConfig,
    *,
    stores_factory: StoresFactory = SqlAlchemyMigrationStores.from_config,
) -> None:
    """Run the pre-flight connectivity check alone; raises ``PreflightError``."""

    _log_providers(config)
    stores = stores_factory(config)
    try:
        MigrationOrchestrator(stores=stores).preflight()
    finally:
        stores.dispose()


def run_migration(
    config: MigrationConfig,
    *,
    confirm: ConfirmPrompt | None = None,
    plan: MigrationPlan = DEFAULT_PLAN,
    report_path: Path | None = None,
    stores_factory: StoresFactory = SqlAlchemyMigrationStores.from_config,
) -> MigrationReport | None:
    """Migrate every plan step from the source to the target store.

    Returns ``None`` when the operator declines at the confirmation prompt.
    ``confirm=None`` proceeds without asking.
    """

    _log_providers(config)
    stores = stores_factory(config)
    try:
        orchestrator = MigrationOrchestrator(stores=stores, plan=plan)
        log.info("Testing database connections...")
        orchestrator.preflight()

        log.warning("This will copy data from the source to the target database.")
        log.warning("Make sure the target database is properly initialized and ready.")
        if confirm is not None and not confirm():
            log.info("Migration cancelled by user")
            return None

        log.info("Starting migration process (%s tables)...", len(plan))
        log.info(BANNER_RULE)
        report = orchestrator.run()
    finally:
        stores.dispose()

    for line in render_report(report):
        log.info(line)
    if report_path is not None:
        write_report(report, report_path)
    return report


def write_report(report: MigrationReport, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(report.as_dict(), indent=2) + "\n", encoding="utf-8")
    log.info("Report written to %s", path)


def _log_providers(config: MigrationConfig) -> None:
    log.info("Source database: %s", config.source.provider)
    log.info("Target database: %s", config.target.provider)

