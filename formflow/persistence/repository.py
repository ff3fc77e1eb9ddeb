"""Repository abstraction for submission persistence."""

from __future__ import annotations

from typing import Any, Mapping, Protocol

from ..contracts import Actor
from .models import Submission, WorkflowScope


class SubmissionRepository(Protocol):
    """Protocol for submission persistence backends.

    ``find_or_create`` must be atomic per (form, actor, scope, position): the
    engine relies on the backend's uniqueness guarantee instead of locking.
    """

    async def find_or_create(
        self, form_id: str, actor: Actor, scope: WorkflowScope, step_position: int
    ) -> Submission:
        """Return the submission for the key, creating a draft if absent."""

    async def get(self, submission_id: str) -> Submission | None:
        """Retrieve a submission by id."""

    async def update_fields(
        self, submission_id: str, values: Mapping[str, Any]
    ) -> bool:
        """Merge ``values`` into the stored field values."""

    async def mark_completed(self, submission_id: str) -> bool:
        """Flag the submission as completed."""

    async def reopen(self, submission_id: str) -> bool:
        """Return a completed submission to draft."""

    async def list_for_scope(
        self, scope: WorkflowScope, actor: Actor
    ) -> list[Submission]:
        """Return the actor's submissions in ``scope`` ordered by step."""
