from __future__ import annotations

import pytest

from comedor.db import create_all, init_engine, normalize_url
from comedor.documents import WEEKLY_MENUS, subcollection
from comedor.errors import DatabaseError, NotFoundError, ValidationError
from comedor.memory_store import MemoryDocumentStore
from comedor.sql_store import SqlDocumentStore


@pytest.fixture(params=["memory", "sql"])
def doc_store(request):
    if request.param == "memory":
        return MemoryDocumentStore()
    init_engine("sqlite://", force=True)
    create_all()
    return SqlDocumentStore()


def test_set_get_update_delete(doc_store):
    doc_store.set("branches", "matriz", {"name": "Matriz", "employeeCount": 0})
    assert doc_store.get("branches", "matriz").data == {"name": "Matriz", "employeeCount": 0}
    doc_store.update("branches", "matriz", {"active": True})
    assert doc_store.get("branches", "matriz").get("active") is True
    doc_store.set("branches", "matriz", {"coordinatorId": "c1"}, merge=True)
    assert doc_store.get("branches", "matriz").get("name") == "Matriz"
    doc_store.delete("branches", "matriz")
    assert doc_store.get("branches", "matriz") is None


def test_update_missing_raises(doc_store):
    with pytest.raises(NotFoundError):
        doc_store.update("branches", "nope", {"name": "x"})
    with pytest.raises(NotFoundError):
        doc_store.require("branches", "nope")


def test_add_generates_id(doc_store):
    doc_id = doc_store.add("employees", {"name": "Ana"})
    assert doc_store.get("employees", doc_id).get("name") == "Ana"


def test_query_filters_order_limit(doc_store):
    for i, (name, branch, active) in enumerate(
        [("Carla", "a", True), ("Ana", "a", False), ("Beto", "a", True), ("Dora", "b", True)]
    ):
        doc_store.set("employees", f"e{i}", {"name": name, "branchId": branch, "active": active, "tags": [branch]})
    names = [d.get("name") for d in doc_store.query("employees", where=[("branchId", "==", "a")], order_by="name")]
    assert names == ["Ana", "Beto", "Carla"]
    active = doc_store.query("employees", where=[("branchId", "==", "a"), ("active", "==", True)])
    assert {d.get("name") for d in active} == {"Carla", "Beto"}
    assert len(doc_store.query("employees", where=[("branchId", "in", ["a", "b"])], limit=2)) == 2
    assert [d.id for d in doc_store.query("employees", where=[("tags", "array-contains", "b")])] == ["e3"]
    desc = doc_store.query("employees", order_by="name", descending=True, limit=1)
    assert desc[0].get("name") == "Dora"
    with pytest.raises(ValidationError):
        doc_store.query("employees", where=[("name", "like", "A%")])


def test_batch_is_atomic(doc_store):
    doc_store.set("branches", "a", {"employeeCount": 1})
    with pytest.raises(NotFoundError):
        with doc_store.batch() as batch:
            batch.increment("branches", "a", "employeeCount", 1)
            batch.update("branches", "missing", {"x": 1})
    assert doc_store.get("branches", "a").get("employeeCount") == 1


def test_increment_clamps_at_floor(doc_store):
    doc_store.set("branches", "a", {"employeeCount": 1})
    doc_store.increment("branches", "a", "employeeCount", -5)
    assert doc_store.get("branches", "a").get("employeeCount") == 0
    doc_store.increment("branches", "a", "employeeCount", 3)
    assert doc_store.get("branches", "a").get("employeeCount") == 3


def test_transaction_commits_all_or_nothing(doc_store):
    doc_store.set("counters", "c", {"n": 1})

    def bump(tx):
        current = tx.get("counters", "c")
        tx.set("counters", "c", {"n": current.get("n") + 1})
        tx.set("counters", "log", {"last": current.get("n") + 1})
        return current.get("n") + 1

    assert doc_store.transaction(bump) == 2
    assert doc_store.get("counters", "log").get("last") == 2

    def broken(tx):
        tx.set("counters", "c", {"n": 99})
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        doc_store.transaction(broken)
    assert doc_store.get("counters", "c").get("n") == 2


def test_transaction_reads_must_precede_writes(doc_store):
    def bad(tx):
        tx.set("counters", "x", {"n": 1})
        tx.get("counters", "x")

    with pytest.raises(DatabaseError):
        doc_store.transaction(bad)


def test_subcollections_are_separate(doc_store):
    path = subcollection(WEEKLY_MENUS, "2026-10-26", "dailyMenus")
    doc_store.set(path, "lunes", {"items": [{"name": "Sopa"}]})
    assert doc_store.query(WEEKLY_MENUS) == []
    assert doc_store.query(path)[0].id == "lunes"


def test_memory_store_simulated_failure():
    store = MemoryDocumentStore({"branches": {"a": {"name": "A"}}})
    store.fail_with = "unavailable"
    with pytest.raises(DatabaseError) as exc:
        store.get("branches", "a")
    assert exc.value.code == "unavailable"


def test_legacy_postgres_scheme_normalized():
    assert normalize_url("postgres://u:p@db/comedor") == "postgresql://u:p@db/comedor"
    assert normalize_url("sqlite:///comedor.db") == "sqlite:///comedor.db"
