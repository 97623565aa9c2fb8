"""
Tests for the demo seeding script's backend check.
"""

import sys

import pytest

from scripts import seed_demo_data


def test_refuses_to_seed_when_server_uses_memory_backend(monkeypatch, tmp_path) -> None:
    db_path = tmp_path / "seed.db"
    monkeypatch.setattr(seed_demo_data, "STORE_BACKEND", "memory")
    monkeypatch.setattr(seed_demo_data, "STORE_DB_PATH", str(db_path))
    monkeypatch.setattr(sys, "argv", ["seed_demo_data.py"])
    with pytest.raises(SystemExit) as exc:
        seed_demo_data.main()
    assert exc.value.code == 2
    assert not db_path.exists()


def test_seeds_sqlite_store(monkeypatch, tmp_path) -> None:
    db_path = tmp_path / "seed.db"
    monkeypatch.setattr(seed_demo_data, "STORE_BACKEND", "sqlite")
    monkeypatch.setattr(seed_demo_data, "STORE_DB_PATH", str(db_path))
    monkeypatch.setattr(sys, "argv", ["seed_demo_data.py", "--reset"])
    seed_demo_data.main()
    store = seed_demo_data.SqliteStore(str(db_path))
    assert len(store.select_where(seed_demo_data.AGENT_METADATA)) == len(seed_demo_data.SEED_AGENTS)
    assert len(store.select_where(seed_demo_data.QUERY_CACHE)) == len(seed_demo_data.SEED_QUERIES)
