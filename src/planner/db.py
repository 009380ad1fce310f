from __future__ import annotations

import json
import logging
import os
import re
import sqlite3
from contextlib import contextmanager
from typing import Any, Generator, Iterable, List, Optional, Tuple

from .remote import TASKS_COLLECTION, USERS_COLLECTION, Document, RemoteClient

logger = logging.getLogger(__name__)

_FIELD_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Indexed json fields per collection.
_INDEXES = {
    TASKS_COLLECTION: ("user_id",),
    USERS_COLLECTION: ("xp",),
}


def _json_path(field: str) -> str:
    if not _FIELD_RE.match(field):
        raise ValueError(f"Invalid field name: {field!r}")
    return f"json_extract(doc, '$.{field}')"


class SQLiteRemoteClient(RemoteClient):
    """
    Durable document store on SQLite implementing the RemoteClient interface.

    One table per collection, each row holding the JSON document. The rowid
    gives the natural insertion order used for tie-breaks.
    """

    def __init__(self, db_path: str) -> None:
        os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        self._db_path = db_path
        self._init_db()

    @contextmanager
    def _conn(self) -> Generator[sqlite3.Connection, None, None]:
        conn = sqlite3.connect(self._db_path, timeout=30.0, isolation_level=None)
        conn.row_factory = sqlite3.Row
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")
        finally:
            conn.close()

    def _init_db(self) -> None:
        with self._conn() as conn:
            for table, fields in _INDEXES.items():
                conn.execute(
                    f"""
                    CREATE TABLE IF NOT EXISTS {table} (
                        id TEXT PRIMARY KEY NOT NULL,
                        doc TEXT NOT NULL
                    )
                    """
                )
                for field in fields:
                    conn.execute(
                        f"CREATE INDEX IF NOT EXISTS idx_{table}_{field} ON {table}({_json_path(field)})"
                    )
        logger.debug("Remote store ready db=%s", self._db_path)

    @staticmethod
    def _table(collection: str) -> str:
        if collection not in _INDEXES:
            raise ValueError(f"Unknown collection: {collection!r}")
        return collection

    def insert(self, collection: str, document: Document) -> str:
        table = self._table(collection)
        doc_id = str(document["id"])
        with self._conn() as conn:
            conn.execute(
                f"INSERT INTO {table} (id, doc) VALUES (?, ?)",
                (doc_id, json.dumps(document, ensure_ascii=False)),
            )
        return doc_id

    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        table = self._table(collection)
        with self._conn() as conn:
            row = conn.execute(f"SELECT doc FROM {table} WHERE id = ?", (doc_id,)).fetchone()
            return json.loads(row["doc"]) if row else None

    def query(
        self,
        collection: str,
        where: Optional[Tuple[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Document]:
        table = self._table(collection)
        params: list = []

        where_sql = ""
        if where is not None:
            field, value = where
            where_sql = f"WHERE {_json_path(field)} = ?"
            params.append(value)

        order_sql = "ORDER BY rowid ASC"
        if order_by is not None:
            direction = "DESC" if descending else "ASC"
            order_sql = f"ORDER BY {_json_path(order_by)} {direction}, rowid ASC"

        limit_sql = ""
        if limit is not None:
            limit_sql = "LIMIT ?"
            params.append(max(int(limit), 0))

        with self._conn() as conn:
            rows = conn.execute(
                f"SELECT doc FROM {table} {where_sql} {order_sql} {limit_sql}", params
            ).fetchall()
            return [json.loads(r["doc"]) for r in rows]

    def update(self, collection: str, doc_id: str, fields: Document) -> bool:
        table = self._table(collection)
        with self._conn() as conn:
            row = conn.execute(f"SELECT doc FROM {table} WHERE id = ?", (doc_id,)).fetchone()
            if not row:
                return False
            merged = {**json.loads(row["doc"]), **fields, "id": doc_id}
            conn.execute(
                f"UPDATE {table} SET doc = ? WHERE id = ?",
                (json.dumps(merged, ensure_ascii=False), doc_id),
            )
            return True

    def delete(self, collection: str, doc_id: str) -> bool:
        table = self._table(collection)
        with self._conn() as conn:
            cur = conn.execute(f"DELETE FROM {table} WHERE id = ?", (doc_id,))
            return cur.rowcount > 0

    def batch_delete(self, collection: str, doc_ids: Iterable[str]) -> int:
        table = self._table(collection)
        ids = list(doc_ids)
        if not ids:
            return 0
        with self._conn() as conn:
            removed = 0
            for doc_id in ids:
                removed += conn.execute(f"DELETE FROM {table} WHERE id = ?", (doc_id,)).rowcount
            return removed
