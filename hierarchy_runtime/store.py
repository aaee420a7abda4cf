"""
HierarchyStore — owns the authoritative hierarchy and persists it.

Wraps the pure transition layer with load/save against a snapshot
repository. One instance per session; construct as many independent
stores as needed (each with its own repository or key).

Apply-then-persist order for every mutation:
  1. transitions.<op>(state, ...)    — pure, works on a copy
  2. swap the new state in           — only on an ok result
  3. repository.save(key, blob)      — whole state, one call

A failed save is logged and swallowed: the in-memory state stays
authoritative for the session and the result carries persisted=False.
"""

from __future__ import annotations

import dataclasses
from typing import Callable, Iterable, List, Optional

from hierarchy_kernel import transitions
from hierarchy_kernel.constants import SEED_NODE_NAME, SEED_ROLE_NAME, STORAGE_KEY
from hierarchy_kernel.diagnostics import compute_diagnostics
from hierarchy_kernel.domain_types import HierarchyState, Node, OperationResult, Role
from hierarchy_kernel.graph import build_tree, find_children, find_roots
from hierarchy_kernel.hashing import canonical_hash
from hierarchy_kernel.ids import RandomIdFactory
from hierarchy_kernel.snapshot import SnapshotError, encode_snapshot, restore_snapshot
from hierarchy_kernel.state import create_empty_state, create_initial_state

from .logging_setup import get_logger
from .snapshot_repository import PersistenceUnavailable, SnapshotStore


class HierarchyStore:
    """
    Authoritative in-memory forest of nodes plus the role list.

    States: "not yet loaded" until load() runs, then "loaded". Every
    operation on an unloaded store raises RuntimeError.
    """

    def __init__(
        self,
        repository: SnapshotStore,
        key: str = STORAGE_KEY,
        id_factory: Optional[Callable[..., str]] = None,
        seed: bool = True,
        seed_role_name: str = SEED_ROLE_NAME,
        seed_node_name: str = SEED_NODE_NAME,
    ) -> None:
        self._repository = repository
        self._key = key
        self._id_factory = id_factory or RandomIdFactory()
        self._seed = seed
        self._seed_role_name = seed_role_name
        self._seed_node_name = seed_node_name
        self._state: HierarchyState | None = None
        self._log = get_logger(__name__).bind(storage_key=key)

    @classmethod
    def open(cls, repository: SnapshotStore, **kwargs) -> "HierarchyStore":
        """Construct and load in one step."""
        store = cls(repository, **kwargs)
        store.load()
        return store

    # -- State access -------------------------------------------------------

    @property
    def loaded(self) -> bool:
        return self._state is not None

    @property
    def state(self) -> HierarchyState:
        if self._state is None:
            raise RuntimeError("Store not loaded — call load() first")
        return self._state

    @property
    def key(self) -> str:
        return self._key

    # -- Initialization -----------------------------------------------------

    def load(self) -> HierarchyState:
        """
        Load the snapshot stored under the key, falling back to the seeded
        default when it is absent, unreadable or malformed. Seeds one root
        node if the loaded hierarchy has none.
        """
        state = self._read_snapshot()
        if state is None:
            if self._seed:
                state = create_initial_state(self._id_factory, self._seed_role_name)
            else:
                state = create_empty_state()
        self._state = state

        if self._seed and not state.nodes:
            first_role = state.roles[0].id if state.roles else ""
            new_state, result = transitions.add_node(
                state, "", self._seed_node_name, first_role,
                self._id_factory, allow_empty_name=True,
            )
            self._commit(new_state, result)

        self._log.info(
            "hierarchy_loaded",
            node_count=len(self.state.nodes),
            role_count=len(self.state.roles),
        )
        return self.state

    def _read_snapshot(self) -> Optional[HierarchyState]:
        try:
            blob = self._repository.load(self._key)
        except PersistenceUnavailable as exc:
            self._log.error("snapshot_load_failed", error=str(exc))
            return None
        if blob is None:
            return None
        try:
            return restore_snapshot(blob)
        except SnapshotError as exc:
            self._log.error("snapshot_malformed", error=str(exc))
            return None

    # -- Mutations ----------------------------------------------------------

    def add_node(
        self, parent_id: Optional[str], name: str, role_id: Optional[str] = None,
    ) -> OperationResult:
        return self._apply(*transitions.add_node(
            self.state, parent_id, name, role_id, self._id_factory,
        ))

    def update_node(
        self, node_id: str, name: str, role_id: Optional[str] = None,
    ) -> OperationResult:
        return self._apply(*transitions.update_node(self.state, node_id, name, role_id))

    def delete_node(self, node_id: str) -> OperationResult:
        return self._apply(*transitions.delete_node(self.state, node_id))

    def add_role(self, name: str) -> OperationResult:
        return self._apply(*transitions.add_role(self.state, name, self._id_factory))

    def remove_role(self, role_id: str) -> OperationResult:
        return self._apply(*transitions.remove_role(self.state, role_id))

    def replace_roles(self, names: Iterable[str]) -> OperationResult:
        return self._apply(*transitions.replace_roles(
            self.state, list(names), self._id_factory,
        ))

    def _apply(self, new_state: HierarchyState, result: OperationResult) -> OperationResult:
        if not result.success:
            self._log.info(
                "operation_rejected",
                operation=result.operation,
                status=result.status,
                reason=result.reason,
            )
            return result
        return self._commit(new_state, result)

    def _commit(self, new_state: HierarchyState, result: OperationResult) -> OperationResult:
        self._state = new_state
        persisted = self._persist()
        self._log.info(
            "operation_applied",
            operation=result.operation,
            node_id=result.node_id or None,
            role_id=result.role_id or None,
            removed=len(result.removed_node_ids),
            persisted=persisted,
        )
        return dataclasses.replace(result, persisted=persisted)

    def _persist(self) -> bool:
        try:
            self._repository.save(self._key, encode_snapshot(self.state))
        except (PersistenceUnavailable, SnapshotError) as exc:
            self._log.warning("snapshot_save_failed", error=str(exc))
            return False
        return True

    # -- Reads --------------------------------------------------------------

    def list_roots(self) -> List[Node]:
        return [dataclasses.replace(n) for n in find_roots(self.state.nodes)]

    def list_children(self, parent_id: str) -> List[Node]:
        return [dataclasses.replace(n) for n in find_children(self.state.nodes, parent_id)]

    def list_roles(self) -> List[Role]:
        return [dataclasses.replace(r) for r in self.state.roles]

    def get_node(self, node_id: str) -> Optional[Node]:
        for node in self.state.nodes:
            if node.id == node_id:
                return dataclasses.replace(node)
        return None

    def get_role(self, role_id: str) -> Optional[Role]:
        for role in self.state.roles:
            if role.id == role_id:
                return dataclasses.replace(role)
        return None

    def resolve_role_name(self, role_id: Optional[str]) -> str:
        """Role name, or "" when unset or no longer defined."""
        if not role_id:
            return ""
        role = self.get_role(role_id)
        return role.name if role else ""

    def snapshot(self) -> HierarchyState:
        return self.state.copy()

    def tree(self) -> List[dict]:
        return build_tree(self.state)

    def diagnostics(self) -> dict:
        return compute_diagnostics(self.state)

    def state_hash(self) -> str:
        return canonical_hash(self.state)
