"""
Hierarchy Kernel — Snapshot Encoder / Decoder

JSON serialization of HierarchyState in the persisted wire format:

    {"roles": [{"id", "name"}],
     "nodes": [{"id", "name", "roleId", "parentId"}]}

Rules:
  - Store order preserved on encode (roles order drives default selection).
  - Unset references are "" on the wire; null or missing roleId/parentId
    are accepted on decode and normalised to "".
  - id and name are required strings; unknown extra keys are ignored.
  - Validation of structural invariants only via restore_snapshot.
"""

from __future__ import annotations

import json
import pathlib
from typing import Any, List

from .domain_types import HierarchyState, Node, Role
from .invariants import InvariantViolationError, validate_invariants


# ══════════════════════════════════════════════════════════════
# Exception Hierarchy
# ══════════════════════════════════════════════════════════════

class SnapshotError(Exception):
    """Base exception for all snapshot operations."""


class SerializationError(SnapshotError):
    """Raised when encoding a HierarchyState to JSON fails."""


class DeserializationError(SnapshotError):
    """Raised when decoding JSON to HierarchyState fails."""


class InvariantViolationSnapshotError(SnapshotError):
    """Wraps an InvariantViolationError raised during restore."""

    def __init__(self, original: InvariantViolationError) -> None:
        self.original = original
        super().__init__(
            f"Invariant violation during snapshot restore: {original}"
        )


# ══════════════════════════════════════════════════════════════
# Encoder
# ══════════════════════════════════════════════════════════════

def encode_snapshot(state: HierarchyState) -> str:
    """Serialize a HierarchyState into a JSON string. No mutation."""
    try:
        return json.dumps(state.to_dict(), ensure_ascii=False)
    except Exception as exc:
        raise SerializationError(f"Failed to encode snapshot: {exc}") from exc


# ══════════════════════════════════════════════════════════════
# Decoder
# ══════════════════════════════════════════════════════════════

def decode_snapshot(json_str: str) -> HierarchyState:
    """
    Shape-checked deserialization of the wire format.

    Fails on: invalid JSON, non-object top level, missing or non-array
    roles/nodes, entries that are not objects, missing or non-string
    id/name, non-string references.
    """
    try:
        raw = json.loads(json_str)
    except (json.JSONDecodeError, TypeError) as exc:
        raise DeserializationError(f"Invalid JSON: {exc}") from exc

    if not isinstance(raw, dict):
        raise DeserializationError(
            f"Top-level JSON must be object, got {type(raw).__name__}"
        )

    raw_roles = _require_array(raw, "roles")
    raw_nodes = _require_array(raw, "nodes")

    roles: List[Role] = []
    for i, rdata in enumerate(raw_roles):
        context = f"roles[{i}]"
        _require_object(rdata, context)
        roles.append(Role(
            id=_require_string(rdata, "id", context),
            name=_require_string(rdata, "name", context),
        ))

    nodes: List[Node] = []
    for i, ndata in enumerate(raw_nodes):
        context = f"nodes[{i}]"
        _require_object(ndata, context)
        nodes.append(Node(
            id=_require_string(ndata, "id", context),
            name=_require_string(ndata, "name", context),
            role_id=_optional_reference(ndata, "roleId", context),
            parent_id=_optional_reference(ndata, "parentId", context),
        ))

    return HierarchyState(roles=roles, nodes=nodes)


# ══════════════════════════════════════════════════════════════
# Restore (decode + validate)
# ══════════════════════════════════════════════════════════════

def restore_snapshot(json_str: str) -> HierarchyState:
    """
    Decode a snapshot and immediately validate invariants.

    Hard fail on first invariant violation.
    """
    state = decode_snapshot(json_str)
    try:
        validate_invariants(state)
    except InvariantViolationError as exc:
        raise InvariantViolationSnapshotError(exc) from exc
    return state


# ══════════════════════════════════════════════════════════════
# File I/O
# ══════════════════════════════════════════════════════════════

def export_snapshot_to_file(state: HierarchyState, path: pathlib.Path) -> None:
    """Export snapshot JSON to a file. UTF-8 only."""
    path.write_text(encode_snapshot(state), encoding="utf-8")


def import_snapshot_from_file(path: pathlib.Path) -> HierarchyState:
    """Import a snapshot from a file and validate invariants."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise DeserializationError(
            f"Failed to read snapshot file {path}: {exc}"
        ) from exc
    return restore_snapshot(text)


# ══════════════════════════════════════════════════════════════
# Internal Validation Helpers
# ══════════════════════════════════════════════════════════════

def _require_array(data: dict, key: str) -> list:
    if key not in data:
        raise DeserializationError(f"Missing field {key!r}")
    value = data[key]
    if not isinstance(value, list):
        raise DeserializationError(f"{key!r} must be a JSON array")
    return value


def _require_object(value: Any, context: str) -> None:
    if not isinstance(value, dict):
        raise DeserializationError(f"{context} must be a JSON object")


def _require_string(data: dict, key: str, context: str) -> str:
    if key not in data:
        raise DeserializationError(f"Missing field {key!r} in {context}")
    value = data[key]
    if not isinstance(value, str):
        raise DeserializationError(
            f"Field {key!r} in {context} must be string, "
            f"got {type(value).__name__}"
        )
    return value


def _optional_reference(data: dict, key: str, context: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise DeserializationError(
            f"Field {key!r} in {context} must be string or null, "
            f"got {type(value).__name__}"
        )
    return value
