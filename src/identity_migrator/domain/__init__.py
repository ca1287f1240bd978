"""Migration core: identity mapping, reconciliation, planning and reporting.

Flow of one run:
1) the orchestrator checks both stores are reachable
2) plan steps execute in dependency order, one unit of work each
3) the reconciliation engine upserts each kind by natural key, remapping
   foreign keys through the identity mappings of earlier steps
4) every step outcome lands in the report, failed or not
"""

from __future__ import annotations

from .catalog import DESCRIPTOR_BY_KIND, DESCRIPTORS
from .descriptors import (
    EntityMigrationDescriptor,
    FieldRule,
    ForeignKeyRule,
    IdentityStrategy,
    MissingReferencePolicy,
    NaturalKeySpec,
)
from .identity_map import DuplicateMappingError, IdentityMappingStore, MappingLookup
from .kinds import EntityKind, Stage
from .orchestrator import MigrationOrchestrator, PreflightError, RunState
from .plan import DEFAULT_PLAN, MigrationPlan, PlanOrderError
from .records import NaturalKey, SourceRecord, TargetRecord
from .reconcile import MigrationContext, ReconciliationEngine, StepOutcome
from .remap import RowWarning
from .report import MigrationReport, MigrationStepResult, render_report

__all__ = [
    "DEFAULT_PLAN",
    "DESCRIPTORS",
    "DESCRIPTOR_BY_KIND",
    "DuplicateMappingError",
    "EntityKind",
    "EntityMigrationDescriptor",
    "FieldRule",
    "ForeignKeyRule",
    "IdentityMappingStore",
    "IdentityStrategy",
    "MappingLookup",
    "MigrationContext",
    "MigrationOrchestrator",
    "MigrationPlan",
    "MigrationReport",
    "MigrationStepResult",
    "MissingReferencePolicy",
    "NaturalKey",
    "NaturalKeySpec",
    "PlanOrderError",
    "PreflightError",
    "ReconciliationEngine",
    "RowWarning",
    "RunState",
    "SourceRecord",
    "Stage",
    "StepOutcome",
    "TargetRecord",
    "render_report",
]
