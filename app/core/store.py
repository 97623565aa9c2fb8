"""
Keyed store capability shared by the pipeline, cache maintainer, and agent lifecycle manager.

Rows are plain JSON-compatible dicts (pydantic ``model_dump(mode="json")``); the
repositories in app/services re-validate them into models. Every mutating call is
atomic per collection: callables passed as ``changes`` or ``record`` run under the
store lock against the current row, so read-modify-write updates never race.
"""

import copy
import logging
import threading
import uuid
from typing import Any, Callable, Protocol

logger = logging.getLogger(__name__)

Row = dict[str, Any]
Where = Callable[[Row], bool]
Changes = Row | Callable[[Row], Row]
Upsert = Row | Callable[[Row | None], Row | None]

# Collection names
QUERY_CACHE = "query_cache"
EMBEDDINGS_CACHE = "embeddings_cache"
CONFIDENCE_SCORES = "confidence_scores"
AGENT_METADATA = "agent_metadata"
SYSTEM_LOGS = "system_logs"


class KeyedStore(Protocol):
    """Contract every backend implements."""

    def upsert_by_key(self, collection: str, key: str, record: Upsert) -> Row | None: ...

    def update_where(self, collection: str, where: Where, changes: Changes) -> list[Row]: ...

    def delete_where(self, collection: str, where: Where) -> list[Row]: ...

    def select_where(self, collection: str, where: Where | None = None) -> list[Row]: ...

    def insert(self, collection: str, record: Row) -> Row: ...


def apply_upsert(existing: Row | None, record: Upsert) -> Row | None:
    """Resolve an upsert argument against the current row. None means 'leave as is'."""
    if callable(record):
        return record(copy.deepcopy(existing) if existing is not None else None)
    return dict(record)


def apply_changes(row: Row, changes: Changes) -> Row:
    """Return the row with changes merged in (dict of fields, or callable returning fields)."""
    fields = changes(copy.deepcopy(row)) if callable(changes) else changes
    merged = dict(row)
    merged.update(fields)
    return merged


class InMemoryStore:
    """Process-local store: collection -> key -> row, guarded by one lock."""

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, Row]] = {}
        self._lock = threading.Lock()

    def _table(self, collection: str) -> dict[str, Row]:
        return self._collections.setdefault(collection, {})

    def upsert_by_key(self, collection: str, key: str, record: Upsert) -> Row | None:
        with self._lock:
            table = self._table(collection)
            existing = table.get(key)
            new_row = apply_upsert(existing, record)
            if new_row is not None:
                table[key] = copy.deepcopy(new_row)
            current = table.get(key)
            out = copy.deepcopy(current) if current is not None else None
        logger.debug("[store:upsert_by_key] collection=%s key=%s written=%s", collection, key[:16], new_row is not None)
        return out

    def update_where(self, collection: str, where: Where, changes: Changes) -> list[Row]:
        updated: list[Row] = []
        with self._lock:
            table = self._table(collection)
            for key, row in table.items():
                if where(row):
                    table[key] = apply_changes(row, changes)
                    updated.append(copy.deepcopy(table[key]))
        logger.debug("[store:update_where] collection=%s updated=%d", collection, len(updated))
        return updated

    def delete_where(self, collection: str, where: Where) -> list[Row]:
        with self._lock:
            table = self._table(collection)
            doomed = [key for key, row in table.items() if where(row)]
            removed = [table.pop(key) for key in doomed]
        logger.debug("[store:delete_where] collection=%s deleted=%d", collection, len(removed))
        return removed

    def select_where(self, collection: str, where: Where | None = None) -> list[Row]:
        with self._lock:
            rows = list(self._table(collection).values())
            return [copy.deepcopy(r) for r in rows if where is None or where(r)]

    def insert(self, collection: str, record: Row) -> Row:
        row = dict(record)
        row.setdefault("id", uuid.uuid4().hex)
        with self._lock:
            self._table(collection)[row["id"]] = copy.deepcopy(row)
        return row


def create_store(backend: str, db_path: str | None = None) -> KeyedStore:
    """Build the configured backend ("memory" or "sqlite")."""
    if backend == "memory":
        return InMemoryStore()
    if backend == "sqlite":
        from app.core.sqlite_store import SqliteStore

        return SqliteStore(db_path or "data/query_service.db")
    raise ValueError(f"Unknown store backend: {backend!r} (expected 'memory' or 'sqlite')")
