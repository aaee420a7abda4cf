"""
Hierarchy Kernel — Graph Utilities

Pure list-based analysis of the parent-pointer graph.
All traversals use explicit worklists — no call recursion, so depth of the
hierarchy never bounds stack usage.
"""

from __future__ import annotations

from collections import deque
from typing import Dict, List, Set

from .domain_types import HierarchyState, Node


# ---------------------------------------------------------------------------
# Adjacency
# ---------------------------------------------------------------------------

def build_children_map(nodes: List[Node]) -> Dict[str, List[str]]:
    """Build parent_id -> [child ids], children kept in store order."""
    children: Dict[str, List[str]] = {}
    for node in nodes:
        if node.parent_id:
            children.setdefault(node.parent_id, []).append(node.id)
    return children


def find_roots(nodes: List[Node]) -> List[Node]:
    """All nodes with an empty parent_id, in store order."""
    return [n for n in nodes if not n.parent_id]


def find_children(nodes: List[Node], parent_id: str) -> List[Node]:
    """All nodes whose parent_id equals *parent_id*, in store order."""
    if not parent_id:
        return []
    return [n for n in nodes if n.parent_id == parent_id]


# ---------------------------------------------------------------------------
# Cascade
# ---------------------------------------------------------------------------

def collect_subtree(nodes: List[Node], node_id: str) -> Set[str]:
    """
    Return *node_id* plus every node reachable from it through child links.

    Worklist traversal to fixpoint. An id already collected is never
    re-expanded, so a malformed cyclic graph still terminates.
    """
    children = build_children_map(nodes)
    collected: Set[str] = {node_id}
    stack: List[str] = [node_id]
    while stack:
        current = stack.pop()
        for child_id in children.get(current, []):
            if child_id not in collected:
                collected.add(child_id)
                stack.append(child_id)
    return collected


# ---------------------------------------------------------------------------
# Depth / dangling references
# ---------------------------------------------------------------------------

def compute_depths(nodes: List[Node]) -> Dict[str, int]:
    """Depth of every node reachable from a root (roots are depth 0)."""
    children = build_children_map(nodes)
    depths: Dict[str, int] = {}
    queue = deque((n.id, 0) for n in find_roots(nodes))
    while queue:
        nid, depth = queue.popleft()
        if nid in depths:
            continue
        depths[nid] = depth
        for child_id in children.get(nid, []):
            queue.append((child_id, depth + 1))
    return depths


def find_dangling_parents(nodes: List[Node]) -> List[str]:
    """Ids of nodes whose parent_id names no existing node."""
    ids = {n.id for n in nodes}
    return [n.id for n in nodes if n.parent_id and n.parent_id not in ids]


# ---------------------------------------------------------------------------
# Cycle detection
# ---------------------------------------------------------------------------

def detect_parent_cycles(nodes: List[Node]) -> List[List[str]]:
    """
    Detect cycles in the parent-pointer graph.

    Each node has at most one outgoing edge (to its parent), so a walk from
    any node either reaches a root, leaves the graph through a dangling
    reference, or revisits a node on the current path.
    Returns a list of cycles (each a list of node ids, in walk order).
    """
    parent_of: Dict[str, str] = {n.id: n.parent_id for n in nodes}

    WHITE, GREY, BLACK = 0, 1, 2
    colour: Dict[str, int] = {nid: WHITE for nid in parent_of}
    cycles: List[List[str]] = []

    for start in parent_of:
        if colour[start] != WHITE:
            continue
        path: List[str] = []
        current = start
        while current in parent_of and colour[current] == WHITE:
            colour[current] = GREY
            path.append(current)
            current = parent_of[current]
        if current in parent_of and colour[current] == GREY:
            cycles.append(path[path.index(current):])
        for nid in path:
            colour[nid] = BLACK

    return cycles


# ---------------------------------------------------------------------------
# Tree view
# ---------------------------------------------------------------------------

def build_tree(state: HierarchyState) -> List[dict]:
    """
    Nested tree for the view layer, one entry per root:
    ``{id, name, role_id, role_name, children: [...]}``.
    """
    role_names = {r.id: r.name for r in state.roles}
    by_id = {n.id: n for n in state.nodes}
    children = build_children_map(state.nodes)

    def _entry(node: Node) -> dict:
        return {
            "id": node.id,
            "name": node.name,
            "role_id": node.role_id,
            "role_name": role_names.get(node.role_id, ""),
            "children": [],
        }

    forest: List[dict] = []
    seen: Set[str] = set()
    stack: List[tuple] = []
    for root in find_roots(state.nodes):
        entry = _entry(root)
        forest.append(entry)
        seen.add(root.id)
        stack.append((root.id, entry))

    while stack:
        nid, entry = stack.pop()
        for child_id in children.get(nid, []):
            if child_id in seen:
                continue
            seen.add(child_id)
            child_entry = _entry(by_id[child_id])
            entry["children"].append(child_entry)
            stack.append((child_id, child_entry))

    return forest
