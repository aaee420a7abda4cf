"""
Hierarchy Kernel — Invariant Checks

Hard-fail validation. Every check raises InvariantViolationError on failure.

Dangling role references are deliberately NOT checked here: a bulk
replace_roles leaves them behind, and they are reported by diagnostics.
"""

from __future__ import annotations

from .domain_types import HierarchyState
from .graph import detect_parent_cycles


class InvariantViolationError(Exception):
    """Raised when a hierarchy invariant is violated."""

    def __init__(self, rule: str, detail: str) -> None:
        self.rule = rule
        self.detail = detail
        super().__init__(f"[INVARIANT:{rule}] {detail}")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def validate_invariants(state: HierarchyState) -> None:
    """
    Run all structural checks. Raises InvariantViolationError on the
    first failure.
    """
    _check_duplicate_role_ids(state)
    _check_duplicate_node_ids(state)
    _check_empty_ids(state)
    _check_self_parent(state)
    _check_no_parent_cycles(state)


# ---------------------------------------------------------------------------
# Individual checks (private)
# ---------------------------------------------------------------------------

def _check_duplicate_role_ids(state: HierarchyState) -> None:
    ids = [r.id for r in state.roles]
    if len(ids) != len(set(ids)):
        raise InvariantViolationError(
            "duplicate_role_ids",
            "Duplicate role IDs detected"
        )


def _check_duplicate_node_ids(state: HierarchyState) -> None:
    ids = [n.id for n in state.nodes]
    if len(ids) != len(set(ids)):
        raise InvariantViolationError(
            "duplicate_node_ids",
            "Duplicate node IDs detected"
        )


def _check_empty_ids(state: HierarchyState) -> None:
    if any(not r.id for r in state.roles):
        raise InvariantViolationError("empty_id", "Role with empty id")
    if any(not n.id for n in state.nodes):
        raise InvariantViolationError("empty_id", "Node with empty id")


def _check_self_parent(state: HierarchyState) -> None:
    for node in state.nodes:
        if node.parent_id == node.id:
            raise InvariantViolationError(
                "self_parent",
                f"Node {node.id!r} is its own parent"
            )


def _check_no_parent_cycles(state: HierarchyState) -> None:
    cycles = detect_parent_cycles(state.nodes)
    if cycles:
        cycle_str = " -> ".join(cycles[0])
        raise InvariantViolationError(
            "parent_cycle",
            f"Parent cycle detected: {cycle_str}"
        )
