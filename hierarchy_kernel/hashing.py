"""
Hierarchy Kernel — Canonical Hashing

Deterministic canonical serialization + SHA-256 hashing.

Rules:
  - Roles sorted by id, nodes sorted by id
  - Fields in fixed order
  - UTF-8 JSON, no whitespace

Two states that differ only in store order hash identically, which is the
normalisation used when comparing a state with its persisted round trip.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any, Dict, List

from .domain_types import HierarchyState


def canonical_serialize(state: HierarchyState) -> bytes:
    """Canonical serialization of HierarchyState to UTF-8 JSON bytes."""
    obj = _build_canonical_dict(state)
    return json.dumps(
        obj, ensure_ascii=True, separators=(",", ":"), sort_keys=False,
    ).encode("utf-8")


def canonical_hash(state: HierarchyState) -> str:
    """SHA-256 of canonical serialization. Lowercase hex string."""
    return hashlib.sha256(canonical_serialize(state)).hexdigest()


def _build_canonical_dict(state: HierarchyState) -> Dict[str, Any]:
    roles_list: List[Dict[str, Any]] = [
        {"id": r.id, "name": r.name}
        for r in sorted(state.roles, key=lambda r: r.id)
    ]
    nodes_list: List[Dict[str, Any]] = [
        {
            "id": n.id,
            "name": n.name,
            "roleId": n.role_id,
            "parentId": n.parent_id,
        }
        for n in sorted(state.nodes, key=lambda n: n.id)
    ]
    return {
        "format_version": 1,
        "roles": roles_list,
        "nodes": nodes_list,
    }
