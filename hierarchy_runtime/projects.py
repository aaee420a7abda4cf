"""
Project Tracker — flat project list behind the dashboard.

Projects are addressed by their position in the list, like the dashboard
they back. Domains and industries are plain strings here; the catalogue
that lists valid ones lives elsewhere.

Persisted as a JSON array under its own key through the same repository
contract as the hierarchy (save(key, blob) / load(key)).
"""

from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass
from datetime import date
from typing import Callable, Dict, List, Optional

from hierarchy_kernel.constants import PROJECTS_STORAGE_KEY
from hierarchy_kernel.domain_types import (
    OperationResult, STATUS_NOT_FOUND, STATUS_OK, STATUS_VALIDATION_FAILED,
)

from .logging_setup import get_logger
from .snapshot_repository import PersistenceUnavailable, SnapshotStore

STATUS_FILTER_RUNNING = "running"
STATUS_FILTER_COMPLETED = "completed"

_PROJECT_FIELDS = ("name", "domain", "industry", "start")


@dataclass
class Project:
    """One tracked project. end is "" while the project is running."""

    name: str
    domain: str
    industry: str
    start: str
    end: str = ""
    running: bool = False

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "domain": self.domain,
            "industry": self.industry,
            "start": self.start,
            "end": self.end or None,
            "running": self.running,
        }


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def validate_dates(start: str, end: str, running: bool, today: date) -> bool:
    """
    start must not be in the future; a finished project needs an end date,
    which must not be in the future nor before start.
    """
    try:
        start_d = date.fromisoformat(start)
        end_d = date.fromisoformat(end) if end else None
    except ValueError:
        return False
    if start_d > today:
        return False
    if not running and end_d is None:
        return False
    if end_d is not None and end_d > today:
        return False
    if end_d is not None and start_d > end_d:
        return False
    return True


def _check_project(project: Project, today: date) -> str:
    """Reason the project is invalid, or "" if it is fine."""
    if any(not getattr(project, f).strip() for f in _PROJECT_FIELDS):
        return "Please fill all fields before saving"
    if not project.running and not project.end:
        return "Please fill all fields before saving"
    if not validate_dates(project.start, project.end, project.running, today):
        return "Invalid dates: ensure start <= end and no future dates"
    return ""


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

def filter_projects(
    projects: List[Project],
    search: str = "",
    domain: str = "",
    status: str = "",
) -> List[Project]:
    """Case-insensitive name search, exact domain, running/completed status."""
    result = list(projects)
    term = search.strip().lower()
    if term:
        result = [p for p in result if term in p.name.lower()]
    if domain:
        result = [p for p in result if p.domain == domain]
    if status == STATUS_FILTER_RUNNING:
        result = [p for p in result if p.running]
    elif status == STATUS_FILTER_COMPLETED:
        result = [p for p in result if not p.running]
    return result


def group_by_domain(projects: List[Project]) -> Dict[str, List[Project]]:
    """Projects grouped by domain, domains in first-seen order."""
    groups: Dict[str, List[Project]] = {}
    for project in projects:
        groups.setdefault(project.domain, []).append(project)
    return groups


# ---------------------------------------------------------------------------
# Tracker
# ---------------------------------------------------------------------------

class ProjectTracker:
    """Owns the project list and persists it after every change."""

    def __init__(
        self,
        repository: SnapshotStore,
        key: str = PROJECTS_STORAGE_KEY,
        today: Optional[Callable[[], date]] = None,
    ) -> None:
        self._repository = repository
        self._key = key
        self._today = today or date.today
        self._log = get_logger(__name__).bind(storage_key=key)
        self._projects: List[Project] = self._read()

    def _read(self) -> List[Project]:
        try:
            blob = self._repository.load(self._key)
        except PersistenceUnavailable as exc:
            self._log.error("projects_load_failed", error=str(exc))
            return []
        if blob is None:
            return []
        try:
            raw = json.loads(blob)
            if not isinstance(raw, list):
                raise ValueError("projects blob must be a JSON array")
            return [
                Project(
                    name=str(item["name"]),
                    domain=str(item["domain"]),
                    industry=str(item["industry"]),
                    start=str(item["start"]),
                    end=str(item.get("end") or ""),
                    running=bool(item.get("running", False)),
                )
                for item in raw
            ]
        except (ValueError, KeyError, TypeError) as exc:
            self._log.error("projects_malformed", error=str(exc))
            return []

    def _persist(self) -> bool:
        blob = json.dumps([p.to_dict() for p in self._projects], ensure_ascii=False)
        try:
            self._repository.save(self._key, blob)
        except PersistenceUnavailable as exc:
            self._log.warning("projects_save_failed", error=str(exc))
            return False
        return True

    # -- Commands -----------------------------------------------------------

    def add_project(self, project: Project) -> OperationResult:
        project = self._normalise(project)
        reason = _check_project(project, self._today())
        if reason:
            return OperationResult(
                operation="add_project", status=STATUS_VALIDATION_FAILED, reason=reason,
            )
        self._projects.append(project)
        return self._done("add_project")

    def update_project(self, index: int, project: Project) -> OperationResult:
        if not 0 <= index < len(self._projects):
            return OperationResult(
                operation="update_project", status=STATUS_NOT_FOUND,
                reason=f"No project at index {index}",
            )
        project = self._normalise(project)
        reason = _check_project(project, self._today())
        if reason:
            return OperationResult(
                operation="update_project", status=STATUS_VALIDATION_FAILED, reason=reason,
            )
        self._projects[index] = project
        return self._done("update_project")

    def delete_project(self, index: int) -> OperationResult:
        if not 0 <= index < len(self._projects):
            return OperationResult(
                operation="delete_project", status=STATUS_NOT_FOUND,
                reason=f"No project at index {index}",
            )
        del self._projects[index]
        return self._done("delete_project")

    def _done(self, operation: str) -> OperationResult:
        persisted = self._persist()
        self._log.info(operation, project_count=len(self._projects), persisted=persisted)
        return OperationResult(operation=operation, status=STATUS_OK, persisted=persisted)

    @staticmethod
    def _normalise(project: Project) -> Project:
        # A running project has no end date.
        return dataclasses.replace(
            project,
            name=project.name.strip(),
            end="" if project.running else (project.end or ""),
        )

    # -- Reads --------------------------------------------------------------

    @property
    def projects(self) -> List[Project]:
        return [dataclasses.replace(p) for p in self._projects]

    def find(self, search: str = "", domain: str = "", status: str = "") -> List[Project]:
        return [
            dataclasses.replace(p)
            for p in filter_projects(self._projects, search, domain, status)
        ]

    def stats(self) -> dict:
        total = len(self._projects)
        running = sum(1 for p in self._projects if p.running)
        return {"total": total, "running": running, "completed": total - running}
