"""
Hierarchy Kernel — Centralized Transition Logic

ALL state-mutation logic lives here.

Every transition takes the current state and returns
``(new_state, OperationResult)``. The input state is never mutated — a deep
copy is made first, so a cascade is either applied in full or not at all.
On a failed result the returned state is the input state itself.

No access control here: gating is the caller's concern.
"""

from __future__ import annotations

from typing import Callable, Iterable, Optional, Tuple

from .constants import NODE_ID_PREFIX, ROLE_ID_PREFIX
from .domain_types import (
    HierarchyState, Node, OperationResult, Role,
    STATUS_NOT_FOUND, STATUS_OK, STATUS_VALIDATION_FAILED,
)
from .graph import collect_subtree

IdFactory = Callable[..., str]
Transition = Tuple[HierarchyState, OperationResult]


# ---------------------------------------------------------------------------
# Nodes
# ---------------------------------------------------------------------------

def add_node(
    state: HierarchyState,
    parent_id: Optional[str],
    name: str,
    role_id: Optional[str],
    id_factory: IdFactory,
    allow_empty_name: bool = False,
) -> Transition:
    """
    Append a new node under *parent_id* ("" / None makes a root).

    parent_id is not checked for existence; a stale id produces a node with
    a dangling parent, and the new id never equals any referenced parent
    id. role_id, if set, must name an existing role.
    """
    name = (name or "").strip()
    role_id = role_id or ""
    parent_id = parent_id or ""

    if not name and not allow_empty_name:
        return state, _failed("add_node", STATUS_VALIDATION_FAILED,
                              "Node name is required")
    if role_id and not _has_role(state, role_id):
        return state, _failed("add_node", STATUS_NOT_FOUND,
                              f"Role {role_id!r} does not exist")

    new_state = state.copy()
    # Fresh ids must not collide with any id still used as a parent reference,
    # or a stale reference would turn the new node into its own ancestor.
    taken = {n.id for n in new_state.nodes}
    taken.update(n.parent_id for n in new_state.nodes if n.parent_id)
    if parent_id:
        taken.add(parent_id)
    node_id = id_factory(NODE_ID_PREFIX, taken)
    new_state.nodes.append(Node(
        id=node_id, name=name, role_id=role_id, parent_id=parent_id,
    ))
    return new_state, OperationResult(
        operation="add_node", status=STATUS_OK, node_id=node_id,
    )


def update_node(
    state: HierarchyState,
    node_id: str,
    name: str,
    role_id: Optional[str],
) -> Transition:
    """Overwrite name and role of an existing node. id/parent are immutable."""
    name = (name or "").strip()
    role_id = role_id or ""

    if _find_node_index(state, node_id) is None:
        return state, _failed("update_node", STATUS_NOT_FOUND,
                              f"Node {node_id!r} does not exist",
                              node_id=node_id)
    if not name:
        return state, _failed("update_node", STATUS_VALIDATION_FAILED,
                              "Node name is required", node_id=node_id)
    if role_id and not _has_role(state, role_id):
        return state, _failed("update_node", STATUS_NOT_FOUND,
                              f"Role {role_id!r} does not exist",
                              node_id=node_id)

    new_state = state.copy()
    node = new_state.nodes[_find_node_index(new_state, node_id)]
    node.name = name
    node.role_id = role_id
    return new_state, OperationResult(
        operation="update_node", status=STATUS_OK, node_id=node_id,
    )


def delete_node(state: HierarchyState, node_id: str) -> Transition:
    """Remove *node_id* and its whole descendant subtree in one pass."""
    if _find_node_index(state, node_id) is None:
        return state, _failed("delete_node", STATUS_NOT_FOUND,
                              f"Node {node_id!r} does not exist",
                              node_id=node_id)

    doomed = collect_subtree(state.nodes, node_id)
    new_state = state.copy()
    removed = tuple(n.id for n in new_state.nodes if n.id in doomed)
    new_state.nodes = [n for n in new_state.nodes if n.id not in doomed]
    return new_state, OperationResult(
        operation="delete_node", status=STATUS_OK,
        node_id=node_id, removed_node_ids=removed,
    )


# ---------------------------------------------------------------------------
# Roles
# ---------------------------------------------------------------------------

def add_role(
    state: HierarchyState, name: str, id_factory: IdFactory,
) -> Transition:
    name = (name or "").strip()
    if not name:
        return state, _failed("add_role", STATUS_VALIDATION_FAILED,
                              "Role name is required")

    new_state = state.copy()
    taken = {r.id for r in new_state.roles}
    taken.update(n.role_id for n in new_state.nodes if n.role_id)
    role_id = id_factory(ROLE_ID_PREFIX, taken)
    new_state.roles.append(Role(id=role_id, name=name))
    return new_state, OperationResult(
        operation="add_role", status=STATUS_OK, role_id=role_id,
    )


def remove_role(state: HierarchyState, role_id: str) -> Transition:
    """
    Remove a role and clear it from every node that referenced it.

    Both happen on the same copy, so no node is ever observed pointing at
    the removed role.
    """
    if not role_id or not _has_role(state, role_id):
        return state, _failed("remove_role", STATUS_NOT_FOUND,
                              f"Role {role_id!r} does not exist",
                              role_id=role_id)

    new_state = state.copy()
    new_state.roles = [r for r in new_state.roles if r.id != role_id]
    cleared = []
    for node in new_state.nodes:
        if node.role_id == role_id:
            node.role_id = ""
            cleared.append(node.id)
    return new_state, OperationResult(
        operation="remove_role", status=STATUS_OK,
        role_id=role_id, cleared_node_ids=tuple(cleared),
    )


def replace_roles(
    state: HierarchyState, names: Iterable[str], id_factory: IdFactory,
) -> Transition:
    """
    Discard every role and rebuild the list from *names* (trimmed, empties
    dropped), each with a fresh id.

    Node role references are left untouched, so nodes may end up pointing
    at role ids that no longer exist; resolve_role_name yields "" for them.
    """
    new_state = state.copy()
    # Fresh ids must not collide with ids still referenced by nodes.
    taken = {n.role_id for n in new_state.nodes if n.role_id}
    taken.update(r.id for r in new_state.roles)
    roles = []
    for raw in names:
        name = (raw or "").strip()
        if not name:
            continue
        role_id = id_factory(ROLE_ID_PREFIX, taken)
        taken.add(role_id)
        roles.append(Role(id=role_id, name=name))
    new_state.roles = roles
    return new_state, OperationResult(
        operation="replace_roles", status=STATUS_OK,
        role_ids=tuple(r.id for r in roles),
    )


# ---------------------------------------------------------------------------
# Helpers (private)
# ---------------------------------------------------------------------------

def _failed(operation: str, status: str, reason: str, **kwargs) -> OperationResult:
    return OperationResult(operation=operation, status=status, reason=reason, **kwargs)


def _has_role(state: HierarchyState, role_id: str) -> bool:
    return any(r.id == role_id for r in state.roles)


def _find_node_index(state: HierarchyState, node_id: str) -> Optional[int]:
    for i, node in enumerate(state.nodes):
        if node.id == node_id:
            return i
    return None
