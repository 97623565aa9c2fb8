"""
Contract tests for the keyed store backends (in-memory and SQLite).
"""

from concurrent.futures import ThreadPoolExecutor

import pytest

from app.core.errors import StoreError
from app.core.sqlite_store import SqliteStore
from app.core.store import InMemoryStore, create_store


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    if request.param == "memory":
        return InMemoryStore()
    return SqliteStore(tmp_path / "store.db")


def test_upsert_inserts_then_replaces(store) -> None:
    store.upsert_by_key("items", "a", {"name": "first", "n": 1})
    store.upsert_by_key("items", "a", {"name": "second", "n": 2})
    rows = store.select_where("items")
    assert rows == [{"name": "second", "n": 2}]


def test_upsert_callable_sees_missing_then_existing(store) -> None:
    seen = []

    def merge(existing):
        seen.append(existing)
        return {"n": (existing or {"n": 0})["n"] + 1}

    store.upsert_by_key("items", "a", merge)
    row = store.upsert_by_key("items", "a", merge)
    assert seen == [None, {"n": 1}]
    assert row == {"n": 2}


def test_upsert_callable_returning_none_keeps_row(store) -> None:
    store.upsert_by_key("items", "a", {"n": 1})
    row = store.upsert_by_key("items", "a", lambda existing: None)
    assert row == {"n": 1}


def test_update_where_with_dict_and_callable(store) -> None:
    store.upsert_by_key("items", "a", {"k": "a", "n": 1})
    store.upsert_by_key("items", "b", {"k": "b", "n": 5})
    updated = store.update_where("items", lambda r: r["n"] > 2, {"flag": True})
    assert updated == [{"k": "b", "n": 5, "flag": True}]
    store.update_where("items", lambda r: True, lambda r: {"n": r["n"] * 10})
    assert sorted(r["n"] for r in store.select_where("items")) == [10, 50]


def test_delete_where_returns_removed_rows(store) -> None:
    store.upsert_by_key("items", "a", {"k": "a"})
    store.upsert_by_key("items", "b", {"k": "b"})
    removed = store.delete_where("items", lambda r: r["k"] == "a")
    assert removed == [{"k": "a"}]
    assert store.select_where("items") == [{"k": "b"}]


def test_select_returns_copies(store) -> None:
    store.upsert_by_key("items", "a", {"tags": ["x"]})
    rows = store.select_where("items")
    rows[0]["tags"].append("y")
    assert store.select_where("items") == [{"tags": ["x"]}]


def test_insert_assigns_id(store) -> None:
    row = store.insert("logs", {"message": "hello"})
    assert row["id"]
    assert store.select_where("logs", lambda r: r["id"] == row["id"]) == [row]


def test_concurrent_callable_updates_are_not_lost(store) -> None:
    store.upsert_by_key("counters", "c", {"key": "c", "count": 0})

    def bump(_):
        store.update_where("counters", lambda r: r["key"] == "c", lambda r: {"count": r["count"] + 1})

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(bump, range(40)))
    assert store.select_where("counters")[0]["count"] == 40


def test_sqlite_rejects_unsafe_collection_name(tmp_path) -> None:
    store = SqliteStore(tmp_path / "store.db")
    with pytest.raises(StoreError):
        store.select_where("items; DROP TABLE x")


def test_sqlite_persists_across_instances(tmp_path) -> None:
    SqliteStore(tmp_path / "store.db").upsert_by_key("items", "a", {"n": 1})
    assert SqliteStore(tmp_path / "store.db").select_where("items") == [{"n": 1}]


def test_create_store_unknown_backend() -> None:
    with pytest.raises(ValueError):
        create_store("redis")
