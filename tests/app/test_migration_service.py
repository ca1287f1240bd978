from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from identity_migrator import app as app_module
from identity_migrator.config import DatabaseConfig, MigrationConfig
from identity_migrator.domain.kinds import EntityKind
from identity_migrator.domain.orchestrator import PreflightError
from tests.support.migration import FakeStores, source_row

if TYPE_CHECKING:
    from pathlib import Path

CONFIG = MigrationConfig(
    source=DatabaseConfig.of("sqlite", "sqlite:///legacy.db"),
    target=DatabaseConfig.of("sqlite", "sqlite:///identity.db"),
)


def _factory(stores: FakeStores) -> app_module.StoresFactory:
    def build(config: MigrationConfig) -> FakeStores:
        assert config is CONFIG
        return stores

    return build


def test_declined_confirmation_performs_no_steps(fake_stores: FakeStores) -> None:
    fake_stores.add_source(source_row(EntityKind.USER, user_id=1, normalized_user_name="ALICE"))

    report = app_module.run_migration(
        CONFIG,
        confirm=lambda: False,
        stores_factory=_factory(fake_stores),
    )

    assert report is None
    assert fake_stores.units == []
    assert fake_stores.disposed


def test_confirmed_run_logs_summary_and_writes_report(
    fake_stores: FakeStores,
    tmp_path: Path,
    caplog: pytest.LogCaptureFixture,
) -> None:
    fake_stores.add_source(source_row(EntityKind.USER, user_id=1, normalized_user_name="ALICE"))
    report_path = tmp_path / "reports" / "migration.json"

    with caplog.at_level("INFO"):
        report = app_module.run_migration(
            CONFIG,
            confirm=lambda: True,
            report_path=report_path,
            stores_factory=_factory(fake_stores),
        )

    assert report is not None
    assert report.total_migrated == 1
    assert fake_stores.disposed
    assert "MIGRATION SUMMARY" in caplog.text
    assert "Source database connection successful" in caplog.text
    written = json.loads(report_path.read_text(encoding="utf-8"))
    assert written["totals"]["migrated"] == 1
    assert written["steps"][3]["kind"] == "user"


def test_preflight_failure_propagates_and_releases_stores(fake_stores: FakeStores) -> None:
    fake_stores.target_error = ConnectionError("refused")
    asked: list[bool] = []

    def confirm() -> bool:
        asked.append(True)
        return True

    with pytest.raises(PreflightError, match="Cannot connect to target database: refused"):
        app_module.run_migration(CONFIG, confirm=confirm, stores_factory=_factory(fake_stores))

    assert asked == []
    assert fake_stores.disposed


def test_check_connections_only_runs_preflight(fake_stores: FakeStores) -> None:
    app_module.check_connections(CONFIG, stores_factory=_factory(fake_stores))

    assert fake_stores.units == []
    assert fake_stores.disposed
