"""
Hierarchy Kernel — Diagnostics

Compute a diagnostic snapshot of the current hierarchy.
"""

from __future__ import annotations

from .domain_types import HierarchyState
from .graph import compute_depths, find_dangling_parents, find_roots


def compute_diagnostics(state: HierarchyState) -> dict:
    """Return a diagnostic dict summarising the current state health."""
    role_ids = {r.id for r in state.roles}
    depths = compute_depths(state.nodes)
    dangling = find_dangling_parents(state.nodes)
    orphaned_refs = [
        n.id for n in state.nodes if n.role_id and n.role_id not in role_ids
    ]
    unassigned = sum(1 for n in state.nodes if not n.role_id)

    warnings: list[str] = []

    if orphaned_refs:
        warnings.append(
            f"{len(orphaned_refs)} node(s) reference missing roles: "
            f"{', '.join(orphaned_refs)}"
        )
    if dangling:
        warnings.append(
            f"{len(dangling)} node(s) reference missing parents: "
            f"{', '.join(dangling)}"
        )
    if state.nodes and not state.roles:
        warnings.append("No roles defined — every node is unassigned")

    return {
        "node_count": len(state.nodes),
        "role_count": len(state.roles),
        "root_count": len(find_roots(state.nodes)),
        "max_depth": max(depths.values()) if depths else 0,
        "unassigned_node_count": unassigned,
        "orphaned_role_refs": orphaned_refs,
        "dangling_parent_refs": dangling,
        "warnings": warnings,
    }
