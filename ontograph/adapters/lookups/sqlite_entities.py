"""Entity lookup adapter: SQLite ``entities`` table.

The table is owned by the entity service and lookups only read its ``id``
and ``entity_type`` columns.  The constructor creates the table when it is
missing, so a fresh database file can be used for local work.
"""

from __future__ import annotations

import sqlite3
import threading
from pathlib import Path

from ontograph.domain.errors import StoreFailure
from ontograph.ports.entity_lookup import EntityLookupPort


class SQLiteEntityLookup(EntityLookupPort):
    def __init__(self, db_path: str = "data/ontograph.db"):
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        try:
            self._conn = sqlite3.connect(db_path, check_same_thread=False)
            self._conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS entities (
                    id          TEXT PRIMARY KEY,
                    entity_type TEXT NOT NULL
                );
                CREATE INDEX IF NOT EXISTS idx_entity_type ON entities(entity_type);
                """
            )
            self._conn.commit()
        except sqlite3.Error as exc:
            raise StoreFailure(f"Entity lookup could not open {db_path}: {exc}") from exc

    def type_of(self, entity_id: str) -> str | None:
        try:
            with self._lock:
                cur = self._conn.execute(
                    "SELECT entity_type FROM entities WHERE id=?", (entity_id,)
                )
                row = cur.fetchone()
        except sqlite3.Error as exc:
            raise StoreFailure(f"Entity lookup failed: {exc}") from exc
        return row[0] if row else None

    def close(self) -> None:
        with self._lock:
            self._conn.close()
