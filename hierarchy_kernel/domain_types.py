"""
Hierarchy Kernel — Core Domain Types

Pure data. No behaviour, no mutation logic.
Unset references (role_id, parent_id) use the empty string, never None.

────────────────────────────────────────────────
DOMAIN GLOSSARY
────────────────────────────────────────────────

Node:
    A single entry in the organization hierarchy (a person or position).

Role:
    A named label assignable to nodes (e.g. a job title).

Root node:
    A node whose parent_id is empty.

Cascade delete:
    Deleting a node together with its entire descendant subtree.

Forest:
    A set of disjoint rooted trees — the required shape of the node graph.

────────────────────────────────────────────────
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import List, Tuple


# ── Operation Status ──────────────────────────────────────────
STATUS_OK: str = "ok"
STATUS_NOT_FOUND: str = "not_found"
STATUS_PERMISSION_DENIED: str = "permission_denied"
STATUS_VALIDATION_FAILED: str = "validation_failed"


# ── Core Domain Types ─────────────────────────────────────────

@dataclass
class Role:
    """A named label assignable to nodes."""

    id: str
    name: str


@dataclass
class Node:
    """A single organization entry. id is immutable after creation."""

    id: str
    name: str
    role_id: str = ""
    parent_id: str = ""

    @property
    def is_root(self) -> bool:
        return not self.parent_id


@dataclass
class HierarchyState:
    """
    Complete hierarchy snapshot.

    Order of `roles` matters for default selection only.
    Order of `nodes` is irrelevant to structure — parent/child links are
    reconstructed by scanning parent_id.
    """

    roles: List[Role] = field(default_factory=list)
    nodes: List[Node] = field(default_factory=list)

    def copy(self) -> "HierarchyState":
        """Deep-copy the entire state so a mutation can be applied atomically."""
        return copy.deepcopy(self)

    def to_dict(self) -> dict:
        """Serialise state to the wire format (store order preserved)."""
        return {
            "roles": [{"id": r.id, "name": r.name} for r in self.roles],
            "nodes": [
                {
                    "id": n.id,
                    "name": n.name,
                    "roleId": n.role_id,
                    "parentId": n.parent_id,
                }
                for n in self.nodes
            ],
        }


@dataclass(frozen=True)
class OperationResult:
    """
    Structured, immutable outcome of a command.

    Validation, permission and lookup failures are reported here rather
    than raised, so the view layer can decide on user-visible messaging.
    """

    operation: str = ""
    status: str = STATUS_OK
    reason: str = ""
    node_id: str = ""
    role_id: str = ""
    role_ids: Tuple[str, ...] = ()
    removed_node_ids: Tuple[str, ...] = ()
    cleared_node_ids: Tuple[str, ...] = ()
    persisted: bool = False

    @property
    def success(self) -> bool:
        return self.status == STATUS_OK

    def to_dict(self) -> dict:
        return {
            "operation": self.operation,
            "status": self.status,
            "reason": self.reason,
            "node_id": self.node_id,
            "role_id": self.role_id,
            "role_ids": list(self.role_ids),
            "removed_node_ids": list(self.removed_node_ids),
            "cleared_node_ids": list(self.cleared_node_ids),
            "persisted": self.persisted,
        }
