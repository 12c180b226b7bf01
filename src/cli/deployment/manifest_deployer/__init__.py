"""Templated manifest deployment components.

This package contains the components for deploying a manifest tree:
- planner: Directory convention to ordered stages
- import_tracker: Idempotent imports recorded in the cluster
- compatibility: kubectl/cluster version skew check
- deployer: Run state machine tying the components together
"""

from .compatibility import CompatibilityGate, verify_version_skew
from .deployer import DeploymentMode, ManifestDeployer, RunState
from .import_tracker import (
    ConfigMapRecordStore,
    ImportOutcome,
    ImportRecordStore,
    ImportTracker,
    import_record_name,
)
from .planner import Phase, Stage, StageKind, plan_stages, staged_file_name

__all__ = [
    "CompatibilityGate",
    "ConfigMapRecordStore",
    "DeploymentMode",
    "ImportOutcome",
    "ImportRecordStore",
    "ImportTracker",
    "ManifestDeployer",
    "Phase",
    "RunState",
    "Stage",
    "StageKind",
    "import_record_name",
    "plan_stages",
    "staged_file_name",
    "verify_version_skew",
]
