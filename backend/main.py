# file: backend/main.py
"""
FastAPI Backend — OrgFlow Hierarchy API v1.

Stateless between requests: every request loads the hierarchy from the
snapshot repository, applies at most one command and persists the whole
post-command snapshot in a single save. Requests within one process are
serialised, so a command is read-compute-write atomic (last writer wins
across processes).

Identity comes from the credential service as request headers:
  X-User-Role (required), X-User-Id, X-User-Name

Endpoints:
  GET    /hierarchy                         — roles, nodes, tree, diagnostics
  GET    /hierarchy/roots                   — root nodes
  GET    /hierarchy/nodes/{id}/children     — direct children
  POST   /hierarchy/nodes                   — add node
  PATCH  /hierarchy/nodes/{id}              — rename / reassign role
  DELETE /hierarchy/nodes/{id}              — cascade delete
  POST   /hierarchy/roles                   — add role
  PUT    /hierarchy/roles                   — replace all roles
  DELETE /hierarchy/roles/{id}              — remove role, clear references
  GET    /projects, POST /projects, PUT/DELETE /projects/{index}
  GET    /projects/stats
"""
from __future__ import annotations

import threading
from typing import Callable, List, Optional, TypeVar

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from hierarchy_kernel.domain_types import (
    OperationResult,
    STATUS_NOT_FOUND,
    STATUS_PERMISSION_DENIED,
    STATUS_VALIDATION_FAILED,
)
from hierarchy_runtime.access import Identity, IdentityRequiredError, identity_from_mapping
from hierarchy_runtime.logging_setup import configure_logging, get_logger
from hierarchy_runtime.projects import Project, ProjectTracker, group_by_domain
from hierarchy_runtime.session import OrgChartSession
from hierarchy_runtime.snapshot_repository import (
    PersistenceUnavailable,
    SnapshotRepository,
    SnapshotStore,
)
from hierarchy_runtime.store import HierarchyStore

from backend.config import Settings, load_settings

API_VERSION = "1.0.0"

T = TypeVar("T")

logger = get_logger(__name__)

_STATUS_TO_HTTP = {
    STATUS_NOT_FOUND: 404,
    STATUS_PERMISSION_DENIED: 403,
    STATUS_VALIDATION_FAILED: 422,
}


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class NodeCreateRequest(BaseModel):
    name: str
    parent_id: Optional[str] = None
    role_id: Optional[str] = None


class NodeUpdateRequest(BaseModel):
    name: str
    role_id: Optional[str] = None


class RoleCreateRequest(BaseModel):
    name: str


class RolesReplaceRequest(BaseModel):
    names: List[str]


class ProjectRequest(BaseModel):
    name: str
    domain: str
    industry: str
    start: str
    end: Optional[str] = None
    running: bool = False

    def to_project(self) -> Project:
        return Project(
            name=self.name,
            domain=self.domain,
            industry=self.industry,
            start=self.start,
            end=self.end or "",
            running=self.running,
        )


# ---------------------------------------------------------------------------
# Core helpers
# ---------------------------------------------------------------------------


def _build_repository(settings: Settings) -> SnapshotStore:
    if settings.database_url:
        from backend.postgres_snapshot_repository import PostgresSnapshotRepository

        return PostgresSnapshotRepository(settings.database_url)
    return SnapshotRepository(settings.sqlite_path)


def _get_repo(request: Request) -> SnapshotStore:
    state = request.app.state
    with state.repo_lock:
        if state.repository is None:
            try:
                state.repository = _build_repository(state.settings)
            except PersistenceUnavailable as exc:
                logger.error("repository_unavailable", error=str(exc))
                raise HTTPException(status_code=503, detail="Storage unavailable")
        return state.repository


def get_identity(
    x_user_role: Optional[str] = Header(None),
    x_user_id: Optional[str] = Header(None),
    x_user_name: Optional[str] = Header(None),
) -> Identity:
    """Identity supplied by the credential service; 401 if absent."""
    payload = None
    if x_user_role is not None:
        payload = {"role": x_user_role, "id": x_user_id or "", "username": x_user_name or ""}
    try:
        return identity_from_mapping(payload)
    except IdentityRequiredError as exc:
        raise HTTPException(status_code=401, detail=exc.detail)


def _with_session(
    request: Request,
    identity: Identity,
    fn: Callable[[OrgChartSession], T],
) -> T:
    """
    Load the hierarchy, run *fn* against a session and return its value.

    Load, command and response building all happen inside one call under
    the store lock; the lock is released before the handler returns.
    """
    settings: Settings = request.app.state.settings
    repo = _get_repo(request)
    with request.app.state.store_lock:
        store = HierarchyStore(
            repo,
            key=settings.storage_key,
            id_factory=request.app.state.id_factory,
            seed_role_name=settings.seed_role_name,
            seed_node_name=settings.seed_node_name,
        )
        session = OrgChartSession(store, identity, privileged_role=settings.privileged_role)
        return fn(session)


def _with_tracker(request: Request, fn: Callable[[ProjectTracker], T]) -> T:
    settings: Settings = request.app.state.settings
    repo = _get_repo(request)
    with request.app.state.store_lock:
        return fn(ProjectTracker(repo, key=settings.projects_key))


def _check(result: OperationResult) -> OperationResult:
    """Map a failed result onto its HTTP status."""
    if not result.success:
        raise HTTPException(
            status_code=_STATUS_TO_HTTP.get(result.status, 400),
            detail=result.to_dict(),
        )
    return result


def _node_dict(node) -> dict:
    return {
        "id": node.id,
        "name": node.name,
        "role_id": node.role_id,
        "parent_id": node.parent_id,
    }


def _hierarchy_view(session: OrgChartSession) -> dict:
    store = session.store
    return {
        "roles": [{"id": r.id, "name": r.name} for r in session.roles()],
        "nodes": [_node_dict(n) for n in store.state.nodes],
        "tree": session.tree(),
        "diagnostics": session.diagnostics(),
        "state_hash": store.state_hash(),
        "can_edit": session.can_edit,
    }


def _command_response(session: OrgChartSession, result: OperationResult) -> dict:
    _check(result)
    return {"result": result.to_dict(), "hierarchy": _hierarchy_view(session)}


def _project_view(tracker: ProjectTracker, projects: List[Project]) -> dict:
    return {
        "projects": [p.to_dict() for p in projects],
        "by_domain": {
            domain: [p.to_dict() for p in items]
            for domain, items in group_by_domain(projects).items()
        },
        "stats": tracker.stats(),
    }


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------


def create_app(
    settings: Optional[Settings] = None,
    repository: Optional[SnapshotStore] = None,
    id_factory: Optional[Callable[..., str]] = None,
) -> FastAPI:
    settings = settings or load_settings()
    configure_logging(settings.log_level, settings.log_format)

    app = FastAPI(
        title="OrgFlow Hierarchy API",
        version=API_VERSION,
        description="Organization hierarchy (org chart) and project tracker API",
    )
    app.state.settings = settings
    app.state.repository = repository
    app.state.id_factory = id_factory
    app.state.repo_lock = threading.Lock()
    app.state.store_lock = threading.Lock()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url, "http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -- Health -------------------------------------------------------------

    @app.get("/health")
    def health():
        return {"status": "ok", "version": API_VERSION}

    # -- Hierarchy reads ----------------------------------------------------

    @app.get("/hierarchy")
    def get_hierarchy(request: Request, identity: Identity = Depends(get_identity)):
        return _with_session(request, identity, _hierarchy_view)

    @app.get("/hierarchy/roots")
    def list_roots(request: Request, identity: Identity = Depends(get_identity)):
        def _roots(session: OrgChartSession) -> list:
            return [
                dict(_node_dict(n), role_name=session.resolve_role_name(n.role_id))
                for n in session.list_roots()
            ]

        return _with_session(request, identity, _roots)

    @app.get("/hierarchy/nodes/{node_id}/children")
    def list_children(
        node_id: str,
        request: Request,
        identity: Identity = Depends(get_identity),
    ):
        def _children(session: OrgChartSession) -> list:
            if session.store.get_node(node_id) is None:
                raise HTTPException(status_code=404, detail=f"Node {node_id!r} not found")
            return [
                dict(_node_dict(n), role_name=session.resolve_role_name(n.role_id))
                for n in session.list_children(node_id)
            ]

        return _with_session(request, identity, _children)

    # -- Hierarchy commands -------------------------------------------------

    @app.post("/hierarchy/nodes", status_code=201)
    def add_node(
        req: NodeCreateRequest,
        request: Request,
        identity: Identity = Depends(get_identity),
    ):
        return _with_session(request, identity, lambda s: _command_response(
            s, s.add_node(req.parent_id, req.name, req.role_id),
        ))

    @app.patch("/hierarchy/nodes/{node_id}")
    def update_node(
        node_id: str,
        req: NodeUpdateRequest,
        request: Request,
        identity: Identity = Depends(get_identity),
    ):
        return _with_session(request, identity, lambda s: _command_response(
            s, s.update_node(node_id, req.name, req.role_id),
        ))

    @app.delete("/hierarchy/nodes/{node_id}")
    def delete_node(node_id: str, request: Request, identity: Identity = Depends(get_identity)):
        return _with_session(request, identity, lambda s: _command_response(
            s, s.delete_node(node_id),
        ))

    @app.post("/hierarchy/roles", status_code=201)
    def add_role(
        req: RoleCreateRequest,
        request: Request,
        identity: Identity = Depends(get_identity),
    ):
        return _with_session(request, identity, lambda s: _command_response(
            s, s.add_role(req.name),
        ))

    @app.put("/hierarchy/roles")
    def replace_roles(
        req: RolesReplaceRequest,
        request: Request,
        identity: Identity = Depends(get_identity),
    ):
        return _with_session(request, identity, lambda s: _command_response(
            s, s.replace_roles(req.names),
        ))

    @app.delete("/hierarchy/roles/{role_id}")
    def remove_role(role_id: str, request: Request, identity: Identity = Depends(get_identity)):
        return _with_session(request, identity, lambda s: _command_response(
            s, s.remove_role(role_id),
        ))

    # -- Projects -----------------------------------------------------------
    # Any authenticated identity may read and edit projects.

    @app.get("/projects")
    def list_projects(
        request: Request,
        search: str = Query("", description="Case-insensitive name filter"),
        domain: str = Query("", description="Exact domain name"),
        status: str = Query("", description="running | completed"),
        identity: Identity = Depends(get_identity),
    ):
        return _with_tracker(request, lambda t: _project_view(
            t, t.find(search, domain, status),
        ))

    @app.get("/projects/stats")
    def project_stats(request: Request, identity: Identity = Depends(get_identity)):
        return _with_tracker(request, lambda t: t.stats())

    @app.post("/projects", status_code=201)
    def add_project(
        req: ProjectRequest,
        request: Request,
        identity: Identity = Depends(get_identity),
    ):
        def _add(tracker: ProjectTracker) -> dict:
            _check(tracker.add_project(req.to_project()))
            return _project_view(tracker, tracker.projects)

        return _with_tracker(request, _add)

    @app.put("/projects/{index}")
    def update_project(
        index: int,
        req: ProjectRequest,
        request: Request,
        identity: Identity = Depends(get_identity),
    ):
        def _update(tracker: ProjectTracker) -> dict:
            _check(tracker.update_project(index, req.to_project()))
            return _project_view(tracker, tracker.projects)

        return _with_tracker(request, _update)

    @app.delete("/projects/{index}")
    def delete_project(index: int, request: Request, identity: Identity = Depends(get_identity)):
        def _delete(tracker: ProjectTracker) -> dict:
            _check(tracker.delete_project(index))
            return _project_view(tracker, tracker.projects)

        return _with_tracker(request, _delete)

    return app


app = create_app()
