"""
OrgChartSession — the command surface handed to the view layer.

A thin gate in front of HierarchyStore, parameterized by the identity
captured once at construction. Mutating commands from a non-privileged
identity return a permission_denied result and touch neither the state nor
the repository. Reads are unrestricted.
"""

from __future__ import annotations

from typing import Iterable, List, Optional

from hierarchy_kernel.constants import PRIVILEGED_ROLE, UNASSIGNED_ROLE_LABEL
from hierarchy_kernel.domain_types import (
    Node, OperationResult, Role, STATUS_PERMISSION_DENIED,
)

from .access import Identity, IdentityRequiredError, is_privileged
from .logging_setup import get_logger
from .store import HierarchyStore


class OrgChartSession:
    """
    One interactive user's view of a HierarchyStore.

    All operations are synchronous; a read issued after a write observes
    that write.
    """

    def __init__(
        self,
        store: HierarchyStore,
        identity: Optional[Identity],
        privileged_role: str = PRIVILEGED_ROLE,
    ) -> None:
        if identity is None:
            raise IdentityRequiredError()
        self._store = store
        self._identity = identity
        self._can_edit = is_privileged(identity, privileged_role)
        self._log = get_logger(__name__).bind(
            actor_role=identity.role,
            actor_id=identity.user_id or None,
            storage_key=store.key,
        )
        if not store.loaded:
            store.load()

    @property
    def identity(self) -> Identity:
        return self._identity

    @property
    def can_edit(self) -> bool:
        return self._can_edit

    @property
    def store(self) -> HierarchyStore:
        return self._store

    # ------------------------------------------------------------------
    # Gated commands
    # ------------------------------------------------------------------

    def add_node(
        self, parent_id: Optional[str], name: str, role_id: Optional[str] = None,
    ) -> OperationResult:
        return self._gated("add_node") or self._store.add_node(parent_id, name, role_id)

    def update_node(
        self, node_id: str, name: str, role_id: Optional[str] = None,
    ) -> OperationResult:
        return (
            self._gated("update_node", node_id=node_id)
            or self._store.update_node(node_id, name, role_id)
        )

    def delete_node(self, node_id: str) -> OperationResult:
        return (
            self._gated("delete_node", node_id=node_id)
            or self._store.delete_node(node_id)
        )

    def add_role(self, name: str) -> OperationResult:
        return self._gated("add_role") or self._store.add_role(name)

    def remove_role(self, role_id: str) -> OperationResult:
        return (
            self._gated("remove_role", role_id=role_id)
            or self._store.remove_role(role_id)
        )

    def replace_roles(self, names: Iterable[str]) -> OperationResult:
        return self._gated("replace_roles") or self._store.replace_roles(names)

    def _gated(self, operation: str, **ids: str) -> Optional[OperationResult]:
        """None when the actor may proceed, else the denial result."""
        if self._can_edit:
            return None
        self._log.warning("permission_denied", operation=operation, **ids)
        return OperationResult(
            operation=operation,
            status=STATUS_PERMISSION_DENIED,
            reason=f"Role {self._identity.role!r} may not modify the hierarchy",
            **ids,
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_roots(self) -> List[Node]:
        return self._store.list_roots()

    def list_children(self, parent_id: str) -> List[Node]:
        return self._store.list_children(parent_id)

    def resolve_role_name(self, role_id: Optional[str]) -> str:
        return self._store.resolve_role_name(role_id)

    def role_label(self, role_id: Optional[str]) -> str:
        """Display label for a node's role: its name, or "Unassigned"."""
        return self._store.resolve_role_name(role_id) or UNASSIGNED_ROLE_LABEL

    def roles(self) -> List[Role]:
        return self._store.list_roles()

    def tree(self) -> List[dict]:
        return self._store.tree()

    def diagnostics(self) -> dict:
        return self._store.diagnostics()
