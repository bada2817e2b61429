"""SQLite-backed item store for durable orchestration state.

Items are JSON documents addressed by a partition key (``pk``) and a sort key
(``sk``), so that everything owned by one capture record shares a partition.
"""

from __future__ import annotations

import json
import sqlite3
from contextlib import closing, contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional


class SQLiteStore:
    """Durable ``(pk, sk) -> document`` items in a single SQLite table."""

    def __init__(self, db_path: str) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS durable_items (
                    pk TEXT NOT NULL,
                    sk TEXT NOT NULL,
                    document TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    PRIMARY KEY (pk, sk)
                )
                """
            )

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        with closing(sqlite3.connect(self._db_path, check_same_thread=False)) as conn:
            conn.row_factory = sqlite3.Row
            with conn:
                yield conn

    def put_item(self, item: Dict[str, Any]) -> None:
        """Insert or replace an item. ``item`` must carry non-empty ``pk`` and ``sk``."""
        pk, sk = item.get("pk"), item.get("sk")
        if not pk or not sk:
            raise ValueError("Item must include 'pk' and 'sk' keys")

        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO durable_items (pk, sk, document, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(pk, sk) DO UPDATE SET
                    document = excluded.document,
                    updated_at = excluded.updated_at
                """,
                (pk, sk, json.dumps(item), datetime.now(timezone.utc).isoformat()),
            )

    def get_item(self, *, partition_key: str, sort_key: str) -> Optional[Dict[str, Any]]:
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT document FROM durable_items WHERE pk = ? AND sk = ?",
                (partition_key, sort_key),
            ).fetchone()
        return json.loads(row["document"]) if row else None

    def delete_item(self, *, partition_key: str, sort_key: str) -> None:
        with self._transaction() as conn:
            conn.execute(
                "DELETE FROM durable_items WHERE pk = ? AND sk = ?",
                (partition_key, sort_key),
            )

    def scan_sort_key_prefix(self, sort_key_prefix: str) -> List[Dict[str, Any]]:
        """Return every item, across partitions, whose sort key starts with a prefix."""
        # Literal prefix match; ids may contain "_" or "%".
        with self._transaction() as conn:
            rows = conn.execute(
                """
                SELECT document FROM durable_items
                WHERE substr(sk, 1, ?) = ?
                ORDER BY pk, sk
                """,
                (len(sort_key_prefix), sort_key_prefix),
            ).fetchall()
        return [json.loads(row["document"]) for row in rows]


__all__ = ["SQLiteStore"]
