"""SQLite implementation of the workflow repository."""

from __future__ import annotations

import asyncio
import sqlite3
import threading
from pathlib import Path
from typing import Any, List, Optional

from ..contracts import Workflow
from .repository import WorkflowRepository


class SQLiteWorkflowRepository(WorkflowRepository):
    """Persist workflow state using SQLite, one JSON document per workflow."""

    def __init__(self, db_path: str | Path):
        super().__init__()
        self.db_path = str(db_path)
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn_lock = threading.Lock()
        self._ensure_schema()

    # ------------------------------------------------------------------
    # Schema management
    def _ensure_schema(self) -> None:
        self._execute(
            """
            CREATE TABLE IF NOT EXISTS workflows (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                id TEXT NOT NULL UNIQUE,
                type TEXT NOT NULL,
                status TEXT NOT NULL,
                created_at TEXT NOT NULL,
                document TEXT NOT NULL
            )
            """
        )

    # ------------------------------------------------------------------
    # Helper methods
    def _execute(self, query: str, *params: Any) -> int:
        with self._conn_lock:
            cur = self._conn.cursor()
            cur.execute(query, params)
            self._conn.commit()
            return cur.rowcount

    def _fetchone(self, query: str, *params: Any) -> sqlite3.Row | None:
        with self._conn_lock:
            cur = self._conn.cursor()
            cur.execute(query, params)
            return cur.fetchone()

    def _fetchall(self, query: str, *params: Any) -> list[sqlite3.Row]:
        with self._conn_lock:
            cur = self._conn.cursor()
            cur.execute(query, params)
            return cur.fetchall()

    # ------------------------------------------------------------------
    # Backend hooks
    async def _insert(self, workflow: Workflow) -> None:
        await asyncio.to_thread(
            self._execute,
            "INSERT INTO workflows (id, type, status, created_at, document) VALUES (?, ?, ?, ?, ?)",
            workflow.id,
            workflow.type.value,
            workflow.status.value,
            workflow.created_at.isoformat(),
            workflow.to_json(),
        )

    async def _load(self, workflow_id: str) -> Optional[Workflow]:
        row = await asyncio.to_thread(
            self._fetchone,
            "SELECT document FROM workflows WHERE id = ?",
            workflow_id,
        )
        if not row:
            return None
        return Workflow.from_json(row["document"])

    async def _save(self, workflow: Workflow) -> None:
        await asyncio.to_thread(
            self._execute,
            "UPDATE workflows SET status = ?, document = ? WHERE id = ?",
            workflow.status.value,
            workflow.to_json(),
            workflow.id,
        )

    async def _remove(self, workflow_id: str) -> bool:
        deleted = await asyncio.to_thread(
            self._execute, "DELETE FROM workflows WHERE id = ?", workflow_id
        )
        return deleted > 0

    async def _list_ids(self) -> List[str]:
        rows = await asyncio.to_thread(
            self._fetchall, "SELECT id FROM workflows ORDER BY seq"
        )
        return [row["id"] for row in rows]

    async def close(self) -> None:
        await asyncio.to_thread(self._conn.close)
