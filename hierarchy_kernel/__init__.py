"""
Hierarchy Kernel
Deterministic, in-memory organization hierarchy: a forest of nodes with
optional parents and optional role labels.
"""

from .domain_types import (
    Role, Node, HierarchyState, OperationResult,
    STATUS_OK, STATUS_NOT_FOUND, STATUS_PERMISSION_DENIED,
    STATUS_VALIDATION_FAILED,
)
from .ids import RandomIdFactory, SequentialIdFactory
from .graph import (
    build_children_map,
    build_tree,
    collect_subtree,
    detect_parent_cycles,
    find_children,
    find_roots,
)
from .invariants import InvariantViolationError, validate_invariants
from .hashing import canonical_serialize, canonical_hash
from .snapshot import (
    SnapshotError,
    SerializationError,
    DeserializationError,
    InvariantViolationSnapshotError,
    encode_snapshot,
    decode_snapshot,
    restore_snapshot,
    export_snapshot_to_file,
    import_snapshot_from_file,
)
from .state import create_initial_state, create_empty_state
from .diagnostics import compute_diagnostics
from .constants import (
    STORAGE_KEY,
    PRIVILEGED_ROLE,
    SEED_ROLE_NAME,
    SEED_NODE_NAME,
)

__all__ = [
    "Role",
    "Node",
    "HierarchyState",
    "OperationResult",
    "STATUS_OK",
    "STATUS_NOT_FOUND",
    "STATUS_PERMISSION_DENIED",
    "STATUS_VALIDATION_FAILED",
    "RandomIdFactory",
    "SequentialIdFactory",
    "build_children_map",
    "build_tree",
    "collect_subtree",
    "detect_parent_cycles",
    "find_children",
    "find_roots",
    "InvariantViolationError",
    "validate_invariants",
    "canonical_serialize",
    "canonical_hash",
    "SnapshotError",
    "SerializationError",
    "DeserializationError",
    "InvariantViolationSnapshotError",
    "encode_snapshot",
    "decode_snapshot",
    "restore_snapshot",
    "export_snapshot_to_file",
    "import_snapshot_from_file",
    "create_initial_state",
    "create_empty_state",
    "compute_diagnostics",
    "STORAGE_KEY",
    "PRIVILEGED_ROLE",
    "SEED_ROLE_NAME",
    "SEED_NODE_NAME",
]
