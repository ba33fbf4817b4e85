"""Graph store adapter: SQLite."""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from ontograph.domain.errors import DuplicateRelation, StoreFailure
from ontograph.domain.models import Direction, Relation
from ontograph.ports.graph_store import RelationGraphPort

log = logging.getLogger(__name__)


class SQLiteGraphStore(RelationGraphPort):
    """Persist the relation graph in a local SQLite database.

    The connection runs in autocommit mode; :meth:`atomic` opens a
    ``BEGIN IMMEDIATE`` transaction so the write lock is taken before the
    first read inside the unit.  That keeps other processes sharing the
    file from slipping a write in between a check and the insert it gates.
    """

    def __init__(self, db_path: str = "data/ontograph.db", *, busy_timeout: float = 5.0):
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._db_path = db_path
        self._conn = sqlite3.connect(
            db_path,
            check_same_thread=False,
            isolation_level=None,
            timeout=busy_timeout,
        )
        self._lock = threading.RLock()
        self._depth = 0
        with self._guard("open"):
            if db_path != ":memory:":
                self._conn.execute("PRAGMA journal_mode=WAL")
            self._create_tables()

    # ── schema ──

    def _create_tables(self) -> None:
        self._conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS relations (
                seq         INTEGER PRIMARY KEY AUTOINCREMENT,
                source_id   TEXT NOT NULL,
                target_id   TEXT NOT NULL,
                rel_type    TEXT NOT NULL,
                created_at  TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
                UNIQUE (source_id, target_id, rel_type)
            );
            CREATE INDEX IF NOT EXISTS idx_rel_src ON relations(source_id, rel_type);
            CREATE INDEX IF NOT EXISTS idx_rel_tgt ON relations(target_id, rel_type);
            """
        )

    @contextmanager
    def _guard(self, op: str) -> Iterator[None]:
        try:
            yield
        except sqlite3.IntegrityError:
            raise
        except sqlite3.Error as exc:
            log.error("SQLite %s failed on %s: %s", op, self._db_path, exc)
            raise StoreFailure(f"SQLite {op} failed: {exc}") from exc

    # ── atomic unit ──

    @contextmanager
    def atomic(self) -> Iterator[None]:
        with self._lock:
            outermost = self._depth == 0
            if outermost:
                with self._guard("begin"):
                    self._conn.execute("BEGIN IMMEDIATE")
            self._depth += 1
            try:
                yield
            except BaseException:
                self._depth -= 1
                if outermost:
                    self._rollback()
                raise
            self._depth -= 1
            if outermost:
                try:
                    with self._guard("commit"):
                        self._conn.execute("COMMIT")
                except StoreFailure:
                    self._rollback()
                    raise

    def _rollback(self) -> None:
        # Never masks the exception that aborted the unit.
        try:
            if self._conn.in_transaction:
                self._conn.execute("ROLLBACK")
        except sqlite3.Error as exc:
            log.error("SQLite rollback failed on %s: %s", self._db_path, exc)

    # ── write ──

    def add_edge(self, relation: Relation) -> None:
        with self._lock, self._guard("insert"):
            try:
                self._conn.execute(
                    "INSERT INTO relations (source_id, target_id, rel_type) VALUES (?, ?, ?)",
                    relation.triple,
                )
            except sqlite3.IntegrityError as exc:
                raise DuplicateRelation(*relation.triple) from exc

    def remove_edge(self, relation: Relation) -> bool:
        with self._lock, self._guard("delete"):
            cur = self._conn.execute(
                "DELETE FROM relations WHERE source_id=? AND target_id=? AND rel_type=?",
                relation.triple,
            )
            return cur.rowcount > 0

    # ── read ──

    @staticmethod
    def _row_to_relation(row: tuple) -> Relation:
        return Relation(source_id=row[0], target_id=row[1], rel_type=row[2])

    def has_edge(self, relation: Relation) -> bool:
        with self._lock, self._guard("select"):
            cur = self._conn.execute(
                "SELECT 1 FROM relations WHERE source_id=? AND target_id=? AND rel_type=?",
                relation.triple,
            )
            return cur.fetchone() is not None

    def edges_of(
        self,
        entity_id: str,
        rel_type: str | None = None,
        direction: Direction = Direction.BOTH,
    ) -> list[Relation]:
        if direction is Direction.OUTGOING:
            where, params = "source_id=?", [entity_id]
        elif direction is Direction.INCOMING:
            where, params = "target_id=?", [entity_id]
        else:
            where, params = "(source_id=? OR target_id=?)", [entity_id, entity_id]
        if rel_type is not None:
            where += " AND rel_type=?"
            params.append(rel_type)
        with self._lock, self._guard("select"):
            cur = self._conn.execute(
                f"SELECT source_id, target_id, rel_type FROM relations "
                f"WHERE {where} ORDER BY seq",
                params,
            )
            return [self._row_to_relation(r) for r in cur.fetchall()]

    def all_edges(self, rel_type: str | None = None) -> list[Relation]:
        with self._lock, self._guard("select"):
            if rel_type is None:
                cur = self._conn.execute(
                    "SELECT source_id, target_id, rel_type FROM relations ORDER BY seq"
                )
            else:
                cur = self._conn.execute(
                    "SELECT source_id, target_id, rel_type FROM relations "
                    "WHERE rel_type=? ORDER BY seq",
                    (rel_type,),
                )
            return [self._row_to_relation(r) for r in cur.fetchall()]

    def count_by_type(self) -> dict[str, int]:
        with self._lock, self._guard("select"):
            cur = self._conn.execute(
                "SELECT rel_type, COUNT(*) FROM relations GROUP BY rel_type"
            )
            return {row[0]: row[1] for row in cur.fetchall()}

    # ── lifecycle ──

    def clear(self) -> None:
        with self._lock, self._guard("clear"):
            self._conn.execute("DELETE FROM relations")

    def close(self) -> None:
        with self._lock:
            self._conn.close()
