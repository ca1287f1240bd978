from __future__ import annotations

import pytest

from identity_migrator.domain.catalog import DESCRIPTOR_BY_KIND
from identity_migrator.domain.kinds import EntityKind
from identity_migrator.domain.orchestrator import (
    InvalidRunStateError,
    MigrationOrchestrator,
    PreflightError,
    RunState,
)
from identity_migrator.domain.plan import MigrationPlan
from identity_migrator.domain.reconcile import MigrationContext
from tests.support.migration import FakeStores, source_row


def _seed(stores: FakeStores) -> None:
    stores.add_source(
        source_row(EntityKind.USER, user_id=1, normalized_user_name="ALICE"),
        source_row(EntityKind.APPLICATION, id=1, client_id="web"),
        source_row(EntityKind.AUTHORIZATION, id=1, application_id=1, subject="1"),
        source_row(EntityKind.TOKEN, id=1, application_id=1, authorization_id=1, reference_id="r1"),
        source_row(EntityKind.TOKEN, id=2, application_id=1, reference_id="r2"),
    )


def test_full_run_completes_every_step(fake_stores: FakeStores, context: MigrationContext) -> None:
    _seed(fake_stores)
    orchestrator = MigrationOrchestrator(stores=fake_stores, context=context)

    report = orchestrator.run()

    assert orchestrator.state is RunState.COMPLETED
    assert report.total_steps == len(EntityKind)
    assert report.failed == ()
    assert report.total_migrated == 5
    assert [result.kind for result in report.results] == list(orchestrator.plan.kinds)


def test_failing_token_step_is_isolated(fake_stores: FakeStores, context: MigrationContext) -> None:
    _seed(fake_stores)
    fake_stores.target(EntityKind.TOKEN).fail_on = "insert"
    orchestrator = MigrationOrchestrator(stores=fake_stores, context=context)

    report = orchestrator.run()

    assert orchestrator.state is RunState.COMPLETED
    [failed] = report.failed
    assert failed.kind is EntityKind.TOKEN
    assert failed.table == "IdentityServer.Tokens"
    assert failed.error == "target store unreachable during insert"
    assert failed.attempted == 2
    assert failed.migrated == 0
    assert all(result.success for result in report.results if result.kind != EntityKind.TOKEN)
    assert report.total_migrated == 3


def test_failure_in_middle_step_does_not_block_later_steps(
    fake_stores: FakeStores,
    context: MigrationContext,
) -> None:
    _seed(fake_stores)
    fake_stores.target(EntityKind.AUTHORIZATION).fail_on = "find"
    orchestrator = MigrationOrchestrator(stores=fake_stores, context=context)

    report = orchestrator.run()

    authorizations = report.result_for(EntityKind.AUTHORIZATION)
    tokens = report.result_for(EntityKind.TOKEN)
    assert authorizations is not None
    assert not authorizations.success
    assert tokens is not None
    assert tokens.success
    assert tokens.migrated == 2
    # authorization ids were never published, so the token reference is cleared
    assert [w.field for w in tokens.warnings] == ["authorization_id"]
    assert fake_stores.target(EntityKind.TOKEN).rows[0]["authorization_id"] is None


def test_unreachable_source_aborts_before_any_step(fake_stores: FakeStores) -> None:
    fake_stores.source_error = ConnectionError("connection refused")
    orchestrator = MigrationOrchestrator(stores=fake_stores)

    with pytest.raises(PreflightError, match="Cannot connect to source database"):
        orchestrator.run()

    assert orchestrator.state is RunState.ABORTED
    assert fake_stores.units == []
    assert orchestrator.report.total_steps == 0


def test_unreachable_target_aborts(fake_stores: FakeStores) -> None:
    fake_stores.target_error = OSError("no route to host")
    orchestrator = MigrationOrchestrator(stores=fake_stores)

    with pytest.raises(PreflightError, match="target database: no route to host"):
        orchestrator.preflight()

    assert orchestrator.state is RunState.ABORTED
    with pytest.raises(InvalidRunStateError):
        orchestrator.run()


def test_run_cannot_be_repeated(fake_stores: FakeStores) -> None:
    orchestrator = MigrationOrchestrator(stores=fake_stores)
    orchestrator.run()

    with pytest.raises(InvalidRunStateError):
        orchestrator.run()


def test_skipped_rows_are_logged_per_step(
    fake_stores: FakeStores,
    context: MigrationContext,
    caplog: pytest.LogCaptureFixture,
) -> None:
    fake_stores.add_source(
        source_row(EntityKind.USER_CLAIM, user_claim_id=1, user_id=99, claim_type="email")
    )
    plan = MigrationPlan.of(
        [DESCRIPTOR_BY_KIND[EntityKind.USER], DESCRIPTOR_BY_KIND[EntityKind.USER_CLAIM]]
    )
    orchestrator = MigrationOrchestrator(stores=fake_stores, plan=plan, context=context)

    with caplog.at_level("INFO"):
        report = orchestrator.run()

    claims = report.result_for(EntityKind.USER_CLAIM)
    assert claims is not None
    assert (claims.attempted, claims.migrated, claims.skipped) == (1, 0, 1)
    assert "[2/2] Processing table IdentityUser.UserClaims..." in caplog.text
    assert "1 of 1 records skipped" in caplog.text
