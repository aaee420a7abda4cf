# file: hierarchy_runtime/test_runtime.py
"""
Hierarchy Runtime — Integration Tests

Phases:
  1. First load seeds the default (CEO role + one root) and persists it
  2. Malformed / unavailable storage falls back to the seeded default
  3. Existing snapshot with roles but no nodes gets one seeded root
  4. Mutations persist the whole state; a fresh store reloads it
  5. Failed saves are swallowed: state kept, persisted=False
  6. Rejected commands never touch the repository
  7. Session gating: non-admin gets permission_denied, nothing changes
  8. Missing identity is fatal
  9. sqlite3 repository round trip across restarts
 10. Project tracker validation, filters, persistence

Run:  python -m hierarchy_runtime.test_runtime
"""

from __future__ import annotations

import json
import os
import sys
import tempfile
from datetime import date

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from hierarchy_kernel.constants import STORAGE_KEY
from hierarchy_kernel.domain_types import (
    STATUS_NOT_FOUND,
    STATUS_OK,
    STATUS_PERMISSION_DENIED,
    STATUS_VALIDATION_FAILED,
)
from hierarchy_kernel.hashing import canonical_hash
from hierarchy_kernel.ids import SequentialIdFactory
from hierarchy_kernel.snapshot import restore_snapshot

from hierarchy_runtime.access import (
    Identity,
    IdentityRequiredError,
    identity_from_mapping,
    is_privileged,
)
from hierarchy_runtime.projects import Project, ProjectTracker, validate_dates
from hierarchy_runtime.session import OrgChartSession
from hierarchy_runtime.snapshot_repository import (
    MemorySnapshotRepository,
    SnapshotRepository,
)
from hierarchy_runtime.store import HierarchyStore

ADMIN = Identity(role="admin", user_id="1", username="root")
VIEWER = Identity(role="viewer", user_id="2", username="guest")


def _header(title: str) -> None:
    print(f"\n{'='*60}")
    print(f"  {title}")
    print(f"{'='*60}")


def _open(repo, **kwargs) -> HierarchyStore:
    kwargs.setdefault("id_factory", SequentialIdFactory())
    return HierarchyStore.open(repo, **kwargs)


def _empty_blob() -> str:
    return json.dumps({"roles": [], "nodes": []})


# ══════════════════════════════════════════════════════════════
# Store
# ══════════════════════════════════════════════════════════════

def test_01_first_load_seeds_default() -> bool:
    _header("Phase 1 — First load seeds default")
    repo = MemorySnapshotRepository()
    store = _open(repo)
    assert [r.name for r in store.list_roles()] == ["CEO"]
    roots = store.list_roots()
    assert len(roots) == 1
    assert roots[0].name == "Alex Sharma"
    assert roots[0].role_id == store.list_roles()[0].id
    assert repo.save_count == 1
    persisted = restore_snapshot(repo.load(STORAGE_KEY))
    assert canonical_hash(persisted) == store.state_hash()
    print("  [PASS]")
    return True


def test_02_fallback_on_bad_storage() -> bool:
    _header("Phase 2 — Fallback on malformed / unavailable storage")
    for blob in ("{broken", json.dumps({"roles": "x", "nodes": []}),
                 json.dumps({"roles": [], "nodes": [
                     {"id": "a", "name": "A", "parentId": "a"}]})):
        store = _open(MemorySnapshotRepository({STORAGE_KEY: blob}))
        assert [r.name for r in store.list_roles()] == ["CEO"]
        assert len(store.list_roots()) == 1

    offline = MemorySnapshotRepository()
    offline.fail_on_load = True
    store = _open(offline)
    assert store.loaded and len(store.state.nodes) == 1
    print("  [PASS]")
    return True


def test_03_seed_root_when_no_nodes() -> bool:
    _header("Phase 3 — Roles but no nodes")
    blob = json.dumps({"roles": [{"id": "r_ops", "name": "Ops"},
                                 {"id": "r_x", "name": "X"}], "nodes": []})
    store = _open(MemorySnapshotRepository({STORAGE_KEY: blob}))
    assert [r.id for r in store.list_roles()] == ["r_ops", "r_x"]
    roots = store.list_roots()
    assert len(roots) == 1 and roots[0].role_id == "r_ops"

    empty = _open(MemorySnapshotRepository({STORAGE_KEY: _empty_blob()}))
    assert empty.list_roles() == []
    assert empty.list_roots()[0].role_id == ""

    unseeded = _open(MemorySnapshotRepository(), seed=False)
    assert unseeded.state.roles == [] and unseeded.state.nodes == []
    print("  [PASS]")
    return True


def test_04_mutations_persist_and_reload() -> bool:
    _header("Phase 4 — Persist and reload")
    repo = MemorySnapshotRepository({STORAGE_KEY: _empty_blob()})
    store = _open(repo, seed=False)
    r1 = store.add_role("CEO").role_id
    res = store.add_node(None, "Alex", r1)
    assert res.status == STATUS_OK and res.persisted
    store.add_node(res.node_id, "Priya", None)
    assert repo.save_count == 3

    reloaded = _open(repo, seed=False)
    assert reloaded.state_hash() == store.state_hash()
    assert [n.name for n in reloaded.list_children(res.node_id)] == ["Priya"]
    assert reloaded.resolve_role_name(r1) == "CEO"
    assert reloaded.resolve_role_name("") == ""
    assert reloaded.resolve_role_name("r_gone") == ""
    print("  [PASS]")
    return True


def test_05_failed_save_is_swallowed() -> bool:
    _header("Phase 5 — Save failure swallowed")
    repo = MemorySnapshotRepository()
    store = _open(repo)
    repo.fail_on_save = True
    root = store.list_roots()[0].id
    res = store.add_node(root, "Kim", None)
    assert res.status == STATUS_OK
    assert res.persisted is False
    assert store.get_node(res.node_id).name == "Kim"
    repo.fail_on_save = False
    assert _open(repo).get_node(res.node_id) is None
    print("  [PASS]")
    return True


def test_06_rejected_commands_skip_repository() -> bool:
    _header("Phase 6 — Rejections never save")
    repo = MemorySnapshotRepository()
    store = _open(repo)
    saves = repo.save_count
    before = store.state_hash()
    results = [
        store.update_node("ghost", "X"),
        store.delete_node("ghost"),
        store.remove_role("ghost"),
        store.add_role("   "),
        store.add_node(None, "", None),
    ]
    assert [r.status for r in results] == [
        STATUS_NOT_FOUND, STATUS_NOT_FOUND, STATUS_NOT_FOUND,
        STATUS_VALIDATION_FAILED, STATUS_VALIDATION_FAILED,
    ]
    assert all(r.persisted is False for r in results)
    assert repo.save_count == saves
    assert store.state_hash() == before
    print("  [PASS]")
    return True


def test_07_reads_return_copies() -> bool:
    _header("Phase 7 — Reads return copies")
    store = _open(MemorySnapshotRepository())
    store.list_roots()[0].name = "Mutated"
    store.snapshot().nodes.clear()
    store.list_roles()[0].name = "Mutated"
    assert store.list_roots()[0].name == "Alex Sharma"
    assert store.list_roles()[0].name == "CEO"
    print("  [PASS]")
    return True


def test_07b_stale_parent_survives_reload() -> bool:
    """A child added under a stale parent id reloads intact."""
    _header("Phase 7b — Stale parent survives reload")
    repo = MemorySnapshotRepository()
    store = _open(repo, seed=False)
    child = store.add_node("n1", "Stale child")
    assert child.node_id != "n1"
    store.add_node(None, "Root")
    reopened = _open(repo, seed=False)
    assert len(reopened.state.nodes) == 2
    assert reopened.state_hash() == store.state_hash()
    assert reopened.diagnostics()["dangling_parent_refs"] == [child.node_id]
    print("  [PASS]")
    return True


def test_08_unloaded_store_raises() -> bool:
    _header("Phase 8 — Unloaded store")
    store = HierarchyStore(MemorySnapshotRepository())
    assert not store.loaded
    try:
        store.list_roots()
    except RuntimeError:
        print("  [PASS]")
        return True
    raise AssertionError("Expected RuntimeError")


# ══════════════════════════════════════════════════════════════
# Session / access
# ══════════════════════════════════════════════════════════════

def test_09_viewer_is_denied() -> bool:
    _header("Phase 9 — Viewer denied")
    repo = MemorySnapshotRepository()
    store = _open(repo)
    session = OrgChartSession(store, VIEWER)
    assert session.can_edit is False
    saves = repo.save_count
    before = store.state_hash()
    root = session.list_roots()[0]
    role = session.roles()[0]
    results = [
        session.add_node(root.id, "Kim", None),
        session.update_node(root.id, "X", None),
        session.delete_node(root.id),
        session.add_role("CTO"),
        session.remove_role(role.id),
        session.replace_roles(["A"]),
        session.update_node("ghost", "X", None),
    ]
    assert all(r.status == STATUS_PERMISSION_DENIED for r in results)
    assert repo.save_count == saves
    assert store.state_hash() == before
    assert session.resolve_role_name(root.role_id) == "CEO"
    print("  [PASS]")
    return True


def test_10_admin_commands() -> bool:
    _header("Phase 10 — Admin commands")
    store = HierarchyStore(MemorySnapshotRepository(), id_factory=SequentialIdFactory())
    session = OrgChartSession(store, ADMIN)
    assert store.loaded and session.can_edit
    root = session.list_roots()[0]
    res = session.add_node(root.id, "Kim", None)
    assert res.status == STATUS_OK
    assert session.role_label("") == "Unassigned"
    assert session.role_label(root.role_id) == "CEO"
    res = session.delete_node(root.id)
    assert len(res.removed_node_ids) == 2
    assert session.list_roots() == []
    assert session.diagnostics()["node_count"] == 0
    print("  [PASS]")
    return True


def test_11_identity_required() -> bool:
    _header("Phase 11 — Identity required")
    store = _open(MemorySnapshotRepository())
    for bad in (None, {}, {"role": ""}, {"role": 3}, "admin"):
        try:
            if bad is None:
                OrgChartSession(store, None)
            else:
                identity_from_mapping(bad)
        except IdentityRequiredError:
            continue
        raise AssertionError(f"Expected IdentityRequiredError for {bad!r}")
    ident = identity_from_mapping({"id": 3, "username": "priya", "role": "admin"})
    assert ident == Identity(role="admin", user_id="3", username="priya")
    assert is_privileged(ident)
    assert not is_privileged(Identity(role="Admin"))
    padded = identity_from_mapping({"role": " admin "})
    assert padded.role == " admin " and not is_privileged(padded)
    print("  [PASS]")
    return True


# ══════════════════════════════════════════════════════════════
# sqlite3
# ══════════════════════════════════════════════════════════════

def test_12_sqlite_roundtrip() -> bool:
    _header("Phase 12 — sqlite3 restart")
    with tempfile.TemporaryDirectory() as tmp:
        db_path = os.path.join(tmp, "orgflow.db")
        repo = SnapshotRepository(db_path)
        store = _open(repo)
        root = store.list_roots()[0].id
        store.add_node(root, "Priya", None)
        expected = store.state_hash()
        repo.close()

        repo = SnapshotRepository(db_path)
        reopened = _open(repo)
        assert reopened.state_hash() == expected
        assert repo.load("other-key") is None
        repo.delete(STORAGE_KEY)
        assert repo.load(STORAGE_KEY) is None
        repo.close()
    print("  [PASS]")
    return True


def test_13_independent_stores() -> bool:
    """Two stores on different keys do not see each other."""
    _header("Phase 13 — Independent stores")
    repo = MemorySnapshotRepository()
    a = _open(repo, key="org-a")
    b = _open(repo, key="org-b")
    a.add_role("Only in A")
    assert [r.name for r in b.list_roles()] == ["CEO"]
    print("  [PASS]")
    return True


# ══════════════════════════════════════════════════════════════
# Projects
# ══════════════════════════════════════════════════════════════

TODAY = date(2026, 10, 19)


def _tracker(repo=None) -> ProjectTracker:
    return ProjectTracker(repo or MemorySnapshotRepository(), today=lambda: TODAY)


def test_14_project_dates() -> bool:
    _header("Phase 14 — Project date rules")
    assert validate_dates("2025-01-01", "2025-06-01", False, TODAY)
    assert validate_dates("2025-01-01", "", True, TODAY)
    assert not validate_dates("2027-01-01", "", True, TODAY)
    assert not validate_dates("2025-06-01", "2025-01-01", False, TODAY)
    assert not validate_dates("2025-01-01", "2027-01-01", False, TODAY)
    assert not validate_dates("2025-01-01", "", False, TODAY)
    assert not validate_dates("yesterday", "", True, TODAY)
    print("  [PASS]")
    return True


def test_15_project_tracker() -> bool:
    _header("Phase 15 — Project tracker")
    repo = MemorySnapshotRepository()
    tracker = _tracker(repo)
    res = tracker.add_project(Project("Atlas", "Web", "Retail", "2025-01-01", "", True))
    assert res.status == STATUS_OK and res.persisted
    tracker.add_project(Project("Beacon", "Data", "Health", "2024-02-01", "2024-09-01"))
    tracker.add_project(Project("atlas mobile", "Web", "Retail", "2025-03-01",
                                "2026-01-01", True))
    bad = tracker.add_project(Project("", "Web", "Retail", "2025-01-01", "", True))
    assert bad.status == STATUS_VALIDATION_FAILED

    assert tracker.stats() == {"total": 3, "running": 2, "completed": 1}
    assert tracker.projects[2].end == ""
    assert [p.name for p in tracker.find(search="ATLAS")] == ["Atlas", "atlas mobile"]
    assert [p.name for p in tracker.find(domain="Data")] == ["Beacon"]
    assert [p.name for p in tracker.find(status="completed")] == ["Beacon"]
    tracker.find(domain="Data")[0].name = "Mutated"
    assert tracker.projects[1].name == "Beacon"

    assert tracker.update_project(7, tracker.projects[0]).status == STATUS_NOT_FOUND
    done = Project("Atlas", "Web", "Retail", "2025-01-01", "2026-01-01", False)
    assert tracker.update_project(0, done).status == STATUS_OK
    assert tracker.delete_project(1).status == STATUS_OK

    reloaded = _tracker(repo)
    assert [p.name for p in reloaded.projects] == ["Atlas", "atlas mobile"]
    assert reloaded.projects[0].running is False
    print("  [PASS]")
    return True


def test_16_project_storage_fallback() -> bool:
    _header("Phase 16 — Project storage fallback")
    repo = MemorySnapshotRepository({"projects": "{not a list"})
    assert _tracker(repo).projects == []
    repo.fail_on_load = True
    assert _tracker(repo).projects == []
    print("  [PASS]")
    return True


# ══════════════════════════════════════════════════════════════
# Runner
# ══════════════════════════════════════════════════════════════

def main() -> None:
    tests = [
        test_01_first_load_seeds_default,
        test_02_fallback_on_bad_storage,
        test_03_seed_root_when_no_nodes,
        test_04_mutations_persist_and_reload,
        test_05_failed_save_is_swallowed,
        test_06_rejected_commands_skip_repository,
        test_07_reads_return_copies,
        test_07b_stale_parent_survives_reload,
        test_08_unloaded_store_raises,
        test_09_viewer_is_denied,
        test_10_admin_commands,
        test_11_identity_required,
        test_12_sqlite_roundtrip,
        test_13_independent_stores,
        test_14_project_dates,
        test_15_project_tracker,
        test_16_project_storage_fallback,
    ]
    results = []
    for fn in tests:
        try:
            results.append(fn())
        except Exception as e:
            print(f"\n[ERROR] {fn.__name__}: {e}")
            import traceback
            traceback.print_exc()
            results.append(False)

    passed = sum(results)
    total = len(results)
    print(f"\n{'='*60}")
    print(f"  RESULTS: {passed}/{total} tests passed")
    print(f"{'='*60}")
    sys.exit(0 if all(results) else 1)


if __name__ == "__main__":
    main()
