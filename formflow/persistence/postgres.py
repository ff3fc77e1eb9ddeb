"""PostgreSQL implementation of the submission repository."""

from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from typing import Any, Mapping

import asyncpg

from ..contracts import Actor
from .models import Submission, WorkflowScope
from .repository import SubmissionRepository

_COLUMNS = (
    "id, form_id, workflow_id, workflow_session_id, step_position, owner, "
    "field_values, status, created_at, updated_at, completed_at"
)


def _affected(status: str) -> int:
    # asyncpg returns command tags such as "UPDATE 1"
    try:
        return int(status.rsplit(" ", 1)[-1])
    except (ValueError, AttributeError):
        return 0


class PostgresSubmissionRepository(SubmissionRepository):
    """Persist submissions using PostgreSQL."""

    def __init__(self, dsn: str):
        self._dsn = dsn
        self._initialized = False

    async def _connect(self) -> asyncpg.Connection:
        conn = await asyncpg.connect(self._dsn)
        if not self._initialized:
            await self._ensure_schema(conn)
            self._initialized = True
        return conn

    async def _ensure_schema(self, conn: asyncpg.Connection) -> None:
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS submissions (
                id TEXT PRIMARY KEY,
                form_id TEXT NOT NULL,
                workflow_id TEXT NOT NULL,
                workflow_session_id TEXT NOT NULL,
                step_position INTEGER NOT NULL,
                owner TEXT NOT NULL,
                field_values JSONB NOT NULL DEFAULT '{}'::jsonb,
                status TEXT NOT NULL,
                created_at TIMESTAMPTZ NOT NULL,
                updated_at TIMESTAMPTZ NOT NULL,
                completed_at TIMESTAMPTZ,
                UNIQUE (owner, workflow_session_id, form_id, step_position)
            )
            """
        )

    @staticmethod
    def _to_submission(row: asyncpg.Record) -> Submission:
        values = row["field_values"]
        if isinstance(values, str):
            values = json.loads(values)
        return Submission(
            id=row["id"],
            form_id=row["form_id"],
            workflow_id=row["workflow_id"],
            workflow_session_id=row["workflow_session_id"],
            step_position=row["step_position"],
            owner=row["owner"],
            field_values=values or {},
            status=row["status"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            completed_at=row["completed_at"],
        )

    # ------------------------------------------------------------------
    async def find_or_create(
        self, form_id: str, actor: Actor, scope: WorkflowScope, step_position: int
    ) -> Submission:
        now = datetime.now(timezone.utc)
        conn = await self._connect()
        try:
            await conn.execute(
                """
                INSERT INTO submissions
                    (id, form_id, workflow_id, workflow_session_id, step_position,
                     owner, field_values, status, created_at, updated_at)
                VALUES ($1, $2, $3, $4, $5, $6, $7::jsonb, $8, $9, $10)
                ON CONFLICT (owner, workflow_session_id, form_id, step_position)
                DO NOTHING
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
            row = await conn.fetchrow(
                f"""
                SELECT {_COLUMNS} FROM submissions
                WHERE owner = $1 AND workflow_session_id = $2 AND form_id = $3
                  AND step_position = $4
                """,
                actor.key,
                scope.session_id,
                form_id,
                step_position,
            )
        finally:
            await conn.close()
        return self._to_submission(row)

    async def get(self, submission_id: str) -> Submission | None:
        conn = await self._connect()
        try:
            row = await conn.fetchrow(
                f"SELECT {_COLUMNS} FROM submissions WHERE id = $1", submission_id
            )
        finally:
            await conn.close()
        return self._to_submission(row) if row else None

    async def update_fields(
        self, submission_id: str, values: Mapping[str, Any]
    ) -> bool:
        conn = await self._connect()
        try:
            status = await conn.execute(
                """
                UPDATE submissions
                SET field_values = field_values || $1::jsonb, updated_at = $2
                WHERE id = $3
                """,
                json.dumps(dict(values)),
                datetime.now(timezone.utc),
                submission_id,
            )
        finally:
            await conn.close()
        return _affected(status) > 0

    async def mark_completed(self, submission_id: str) -> bool:
        now = datetime.now(timezone.utc)
        conn = await self._connect()
        try:
            status = await conn.execute(
                """
                UPDATE submissions
                SET status = 'completed', completed_at = $1, updated_at = $1
                WHERE id = $2
                """,
                now,
                submission_id,
            )
        finally:
            await conn.close()
        return _affected(status) > 0

    async def reopen(self, submission_id: str) -> bool:
        conn = await self._connect()
        try:
            status = await conn.execute(
                """
                UPDATE submissions
                SET status = 'draft', completed_at = NULL, updated_at = $1
                WHERE id = $2
                """,
                datetime.now(timezone.utc),
                submission_id,
            )
        finally:
            await conn.close()
        return _affected(status) > 0

    async def list_for_scope(
        self, scope: WorkflowScope, actor: Actor
    ) -> list[Submission]:
        conn = await self._connect()
        try:
            rows = await conn.fetch(
                f"""
                SELECT {_COLUMNS} FROM submissions
                WHERE workflow_session_id = $1 AND owner = $2
                ORDER BY step_position
                """,
                scope.session_id,
                actor.key,
            )
        finally:
            await conn.close()
        return [self._to_submission(r) for r in rows]
