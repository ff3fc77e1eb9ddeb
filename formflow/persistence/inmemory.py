"""In-memory implementation of the submission repository."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Tuple

from ..contracts import Actor
from .models import Submission, WorkflowScope, merge_fields
from .repository import SubmissionRepository

_Key = Tuple[str, str, str, int]


class InMemorySubmissionRepository(SubmissionRepository):
    """Store submissions in local memory.

    Useful for tests or when no database is configured. Data is not
    persisted across process restarts. Callers always receive copies so that
    mutating a returned submission never changes stored state.
    """

    def __init__(self) -> None:
        self._submissions: Dict[str, Submission] = {}
        self._index: Dict[_Key, str] = {}

    # ------------------------------------------------------------------
    async def find_or_create(
        self, form_id: str, actor: Actor, scope: WorkflowScope, step_position: int
    ) -> Submission:
        key = (actor.key, scope.session_id, form_id, step_position)
        submission_id = self._index.get(key)
        if submission_id is None:
            submission = Submission(
                form_id=form_id,
                workflow_id=scope.workflow_id,
                workflow_session_id=scope.session_id,
                step_position=step_position,
                owner=actor.key,
            )
            self._submissions[submission.id] = submission
            self._index[key] = submission.id
            submission_id = submission.id
        return self._submissions[submission_id].model_copy(deep=True)

    async def get(self, submission_id: str) -> Submission | None:
        submission = self._submissions.get(submission_id)
        return submission.model_copy(deep=True) if submission else None

    async def update_fields(
        self, submission_id: str, values: Mapping[str, Any]
    ) -> bool:
        submission = self._submissions.get(submission_id)
        if not submission:
            return False
        submission.field_values = merge_fields(submission.field_values, values)
        submission.updated_at = datetime.now(timezone.utc)
        return True

    async def mark_completed(self, submission_id: str) -> bool:
        submission = self._submissions.get(submission_id)
        if not submission:
            return False
        now = datetime.now(timezone.utc)
        submission.status = "completed"
        submission.completed_at = now
        submission.updated_at = now
        return True

    async def reopen(self, submission_id: str) -> bool:
        submission = self._submissions.get(submission_id)
        if not submission:
            return False
        submission.status = "draft"
        submission.completed_at = None
        submission.updated_at = datetime.now(timezone.utc)
        return True

    async def list_for_scope(
        self, scope: WorkflowScope, actor: Actor
    ) -> list[Submission]:
        matches = [
            s.model_copy(deep=True)
            for s in self._submissions.values()
            if s.workflow_session_id == scope.session_id and s.owner == actor.key
        ]
        return sorted(matches, key=lambda s: s.step_position)
