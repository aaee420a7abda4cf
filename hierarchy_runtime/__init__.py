"""
Hierarchy Runtime — persistence, identity gating and logging around the
Hierarchy Kernel.
"""

from .snapshot_repository import (
    MemorySnapshotRepository,
    PersistenceUnavailable,
    SnapshotRepository,
    SnapshotStore,
)
from .store import HierarchyStore
from .access import Identity, IdentityRequiredError, identity_from_mapping, is_privileged
from .session import OrgChartSession
from .projects import Project, ProjectTracker, filter_projects, group_by_domain, validate_dates
from .logging_setup import configure_logging, get_logger

__all__ = [
    "MemorySnapshotRepository",
    "PersistenceUnavailable",
    "SnapshotRepository",
    "SnapshotStore",
    "HierarchyStore",
    "Identity",
    "IdentityRequiredError",
    "identity_from_mapping",
    "is_privileged",
    "OrgChartSession",
    "Project",
    "ProjectTracker",
    "filter_projects",
    "group_by_domain",
    "validate_dates",
    "configure_logging",
    "get_logger",
]
