"""SQLite implementation of the submission repository."""

from __future__ import annotations

import asyncio
import json
import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

from ..contracts import Actor
from .models import Submission, WorkflowScope, merge_fields
from .repository import SubmissionRepository

_COLUMNS = (
    "id, form_id, workflow_id, workflow_session_id, step_position, owner, "
    "field_values, status, created_at, updated_at, completed_at"
)


class SQLiteSubmissionRepository(SubmissionRepository):
    """Persist submissions using SQLite."""

    def __init__(self, db_path: str | Path):
        self.db_path = str(db_path)
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._ensure_schema()

    # ------------------------------------------------------------------
    # Schema management
    def _ensure_schema(self) -> None:
        cur = self._conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS submissions (
                id TEXT PRIMARY KEY,
                form_id TEXT NOT NULL,
                workflow_id TEXT NOT NULL,
                workflow_session_id TEXT NOT NULL,
                step_position INTEGER NOT NULL,
                owner TEXT NOT NULL,
                field_values TEXT NOT NULL,
                status TEXT NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                completed_at TEXT,
                UNIQUE (owner, workflow_session_id, form_id, step_position)
            )
            """
        )
        self._conn.commit()

    # ------------------------------------------------------------------
    # Helper methods
    def _execute(self, query: str, *params: Any) -> int:
        cur = self._conn.cursor()
        cur.execute(query, params)
        self._conn.commit()
        return cur.rowcount

    def _fetchone(self, query: str, *params: Any) -> sqlite3.Row | None:
        cur = self._conn.cursor()
        cur.execute(query, params)
        return cur.fetchone()

    def _fetchall(self, query: str, *params: Any) -> list[sqlite3.Row]:
        cur = self._conn.cursor()
        cur.execute(query, params)
        return cur.fetchall()

    def _find_or_create_row(
        self, form_id: str, actor: Actor, scope: WorkflowScope, step_position: int
    ) -> sqlite3.Row:
        now = datetime.now(timezone.utc).isoformat()
        self._execute(
            """
            INSERT OR IGNORE INTO submissions
                (id, form_id, workflow_id, workflow_session_id, step_position,
                 owner, field_values, status, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            str(uuid.uuid4()),
            form_id,
            scope.workflow_id,
            scope.session_id,
            step_position,
            actor.key,
            json.dumps({}),
            "draft",
            now,
            now,
        )
        return self._fetchone(
            f"""
            SELECT {_COLUMNS} FROM submissions
            WHERE owner = ? AND workflow_session_id = ? AND form_id = ?
              AND step_position = ?
            """,
            actor.key,
            scope.session_id,
            form_id,
            step_position,
        )

    def _merge_fields(self, submission_id: str, values: Mapping[str, Any]) -> bool:
        row = self._fetchone(
            "SELECT field_values FROM submissions WHERE id = ?", submission_id
        )
        if not row:
            return False
        merged = merge_fields(json.loads(row["field_values"]), values)
        self._execute(
            "UPDATE submissions SET field_values = ?, updated_at = ? WHERE id = ?",
            json.dumps(merged),
            datetime.now(timezone.utc).isoformat(),
            submission_id,
        )
        return True

    @staticmethod
    def _to_submission(row: sqlite3.Row) -> Submission:
        return Submission(
            id=row["id"],
            form_id=row["form_id"],
            workflow_id=row["workflow_id"],
            workflow_session_id=row["workflow_session_id"],
            step_position=row["step_position"],
            owner=row["owner"],
            field_values=json.loads(row["field_values"]),
            status=row["status"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
            completed_at=(
                datetime.fromisoformat(row["completed_at"])
                if row["completed_at"]
                else None
            ),
        )

    # ------------------------------------------------------------------
    # Repository API
    async def find_or_create(
        self, form_id: str, actor: Actor, scope: WorkflowScope, step_position: int
    ) -> Submission:
        row = await asyncio.to_thread(
            self._find_or_create_row, form_id, actor, scope, step_position
        )
        return self._to_submission(row)

    async def get(self, submission_id: str) -> Submission | None:
        row = await asyncio.to_thread(
            self._fetchone,
            f"SELECT {_COLUMNS} FROM submissions WHERE id = ?",
            submission_id,
        )
        return self._to_submission(row) if row else None

    async def update_fields(
        self, submission_id: str, values: Mapping[str, Any]
    ) -> bool:
        return await asyncio.to_thread(self._merge_fields, submission_id, values)

    async def mark_completed(self, submission_id: str) -> bool:
        now = datetime.now(timezone.utc).isoformat()
        updated = await asyncio.to_thread(
            self._execute,
            """
            UPDATE submissions
            SET status = ?, completed_at = ?, updated_at = ?
            WHERE id = ?
            """,
            "completed",
            now,
            now,
            submission_id,
        )
        return updated > 0

    async def reopen(self, submission_id: str) -> bool:
        updated = await asyncio.to_thread(
            self._execute,
            """
            UPDATE submissions
            SET status = ?, completed_at = NULL, updated_at = ?
            WHERE id = ?
            """,
            "draft",
            datetime.now(timezone.utc).isoformat(),
            submission_id,
        )
        return updated > 0

    async def list_for_scope(
        self, scope: WorkflowScope, actor: Actor
    ) -> list[Submission]:
        rows = await asyncio.to_thread(
            self._fetchall,
            f"""
            SELECT {_COLUMNS} FROM submissions
            WHERE workflow_session_id = ? AND owner = ?
            ORDER BY step_position
            """,
            scope.session_id,
            actor.key,
        )
        return [self._to_submission(row) for row in rows]
