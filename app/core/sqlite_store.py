"""
Lightweight SQLite implementation of the keyed store.

Creates the DB file on first use (relative paths resolve against the project root).
One table per collection: (key TEXT PRIMARY KEY, data TEXT JSON). Filtering runs in
Python over decoded rows; every write happens inside a BEGIN IMMEDIATE transaction
while holding the instance lock, so per-record updates are atomic.
"""

import json
import logging
import re
import sqlite3
import threading
import uuid
from pathlib import Path

from app.core.errors import StoreError
from app.core.store import Changes, Row, Upsert, Where, apply_changes, apply_upsert

logger = logging.getLogger(__name__)

# Project root
_ROOT = Path(__file__).resolve().parent.parent.parent
_NAME_RE = re.compile(r"^[a-z_][a-z0-9_]*$")


class SqliteStore:
    """Keyed store backed by a single SQLite file."""

    def __init__(self, db_path: str | Path) -> None:
        path = Path(db_path)
        self._db_path = path if path.is_absolute() else _ROOT / path
        self._lock = threading.Lock()
        self._known: set[str] = set()

    def _get_conn(self) -> sqlite3.Connection:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        return sqlite3.connect(str(self._db_path), isolation_level=None, timeout=30.0)

    def _ensure_table(self, conn: sqlite3.Connection, collection: str) -> None:
        if collection in self._known:
            return
        if not _NAME_RE.match(collection):
            raise StoreError(f"Invalid collection name: {collection!r}")
        conn.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {collection} (
                key TEXT PRIMARY KEY,
                data TEXT NOT NULL
            )
            """
        )
        self._known.add(collection)

    def _rows(self, conn: sqlite3.Connection, collection: str) -> list[tuple[str, Row]]:
        cur = conn.execute(f"SELECT key, data FROM {collection} ORDER BY rowid ASC")
        return [(key, json.loads(data)) for key, data in cur.fetchall()]

    def _write(self, conn: sqlite3.Connection, collection: str, key: str, row: Row) -> None:
        conn.execute(
            f"INSERT INTO {collection} (key, data) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET data = excluded.data",
            (key, json.dumps(row)),
        )

    def _transaction(self, collection: str, fn):
        """Run fn(conn) inside an immediate transaction under the lock; map sqlite errors to StoreError."""
        with self._lock:
            conn = self._get_conn()
            try:
                self._ensure_table(conn, collection)
                conn.execute("BEGIN IMMEDIATE")
                try:
                    result = fn(conn)
                except BaseException:
                    conn.execute("ROLLBACK")
                    raise
                conn.execute("COMMIT")
                return result
            except sqlite3.Error as e:
                logger.warning("[sqlite_store] collection=%s error=%s", collection, e)
                raise StoreError(f"Store operation failed on {collection}") from e
            finally:
                conn.close()

    def upsert_by_key(self, collection: str, key: str, record: Upsert) -> Row | None:
        def op(conn: sqlite3.Connection) -> Row | None:
            cur = conn.execute(f"SELECT data FROM {collection} WHERE key = ?", (key,))
            found = cur.fetchone()
            existing = json.loads(found[0]) if found else None
            new_row = apply_upsert(existing, record)
            if new_row is None:
                return existing
            self._write(conn, collection, key, new_row)
            return new_row

        return self._transaction(collection, op)

    def update_where(self, collection: str, where: Where, changes: Changes) -> list[Row]:
        def op(conn: sqlite3.Connection) -> list[Row]:
            updated = []
            for key, row in self._rows(conn, collection):
                if where(row):
                    merged = apply_changes(row, changes)
                    self._write(conn, collection, key, merged)
                    updated.append(merged)
            return updated

        return self._transaction(collection, op)

    def delete_where(self, collection: str, where: Where) -> list[Row]:
        def op(conn: sqlite3.Connection) -> list[Row]:
            removed = []
            for key, row in self._rows(conn, collection):
                if where(row):
                    conn.execute(f"DELETE FROM {collection} WHERE key = ?", (key,))
                    removed.append(row)
            return removed

        return self._transaction(collection, op)

    def select_where(self, collection: str, where: Where | None = None) -> list[Row]:
        def op(conn: sqlite3.Connection) -> list[Row]:
            return [row for _, row in self._rows(conn, collection) if where is None or where(row)]

        return self._transaction(collection, op)

    def insert(self, collection: str, record: Row) -> Row:
        row = dict(record)
        row.setdefault("id", uuid.uuid4().hex)

        def op(conn: sqlite3.Connection) -> Row:
            self._write(conn, collection, row["id"], row)
            return row

        return self._transaction(collection, op)
