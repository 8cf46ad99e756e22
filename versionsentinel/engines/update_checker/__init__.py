"""Update checker engine — coordinated updates of shared version properties."""

from versionsentinel.engines.update_checker.checker import CheckResult, UpdateChecker
from versionsentinel.engines.update_checker.guard import blocks_resolution
from versionsentinel.engines.update_checker.models import (
    Dependency,
    Direct,
    Planned,
    PlannerState,
    Rejected,
    RejectionReason,
    Requirement,
    UpdatePlan,
    VersionCandidate,
)
from versionsentinel.engines.update_checker.planner import CoordinatedUpdatePlanner
from versionsentinel.engines.update_checker.property_index import PropertyIndex, index
from versionsentinel.engines.update_checker.validator import GroupValidator, GroupVerdict

__all__ = [
    "CheckResult",
    "CoordinatedUpdatePlanner",
    "Dependency",
    "Direct",
    "GroupValidator",
    "GroupVerdict",
    "Planned",
    "PlannerState",
    "PropertyIndex",
    "Rejected",
    "RejectionReason",
    "Requirement",
    "UpdateChecker",
    "UpdatePlan",
    "VersionCandidate",
    "blocks_resolution",
    "index",
]
