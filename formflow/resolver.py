"""Map (workflow, step, actor) onto exactly one submission."""

from __future__ import annotations

import logging
from typing import Mapping, Optional

from .contracts import Actor, EngineState, FormDefinition, StepDefinition
from .errors import InvalidActorError, InvalidStateError, UnknownFormError
from .persistence import Submission, SubmissionRepository, WorkflowScope

logger = logging.getLogger(__name__)


class SubmissionResolver:
    """Find-or-create the submission that backs a workflow step.

    Duplicate protection is delegated to the repository's uniqueness
    guarantee; the resolver itself keeps no cache.

    Args:
        repository: Submission persistence backend.
        forms: Optional form catalog. When given, steps referencing a form
            outside the catalog raise ``UnknownFormError``.
    """

    def __init__(
        self,
        repository: SubmissionRepository,
        forms: Optional[Mapping[str, FormDefinition]] = None,
    ) -> None:
        self.repository = repository
        self.forms = forms

    def form_for(self, step: StepDefinition) -> Optional[FormDefinition]:
        return (self.forms or {}).get(step.form_id)

    async def resolve_or_create(
        self,
        workflow_id: str,
        step: StepDefinition,
        actor: Optional[Actor],
        workflow_session_id: str,
    ) -> Submission:
        if actor is None:
            raise InvalidActorError("a user id or session token is required")
        if self.forms is not None and step.form_id not in self.forms:
            raise UnknownFormError(step.form_id)
        scope = WorkflowScope(workflow_id=workflow_id, session_id=workflow_session_id)
        submission = await self.repository.find_or_create(
            step.form_id, actor, scope, step.position
        )
        logger.debug(
            f"Resolved submission {submission.id} for {workflow_id} step {step.position} "
            f"({actor.key})"
        )
        return submission

    @staticmethod
    def _belongs_to(
        submission: Submission, state: EngineState, step: StepDefinition
    ) -> bool:
        return (
            submission.owner == state.actor.key
            and submission.workflow_id == state.workflow_id
            and submission.workflow_session_id == state.workflow_session_id
            and submission.form_id == step.form_id
            and submission.step_position == step.position
        )

    async def resolve(self, state: EngineState, step: StepDefinition) -> Submission:
        """Return the submission recorded in ``state`` for ``step``.

        Falls back to find-or-create when the state has no record for the
        position, the recorded submission no longer exists, or it is keyed to
        another actor, workflow session, form or position.
        """
        if not state.workflow_session_id:
            raise InvalidStateError("engine state has no workflow session id")
        submission_id = state.submissions.get(step.position)
        if submission_id is not None:
            submission = await self.repository.get(submission_id)
            if submission is None:
                logger.warning(
                    f"Submission {submission_id} for {state.workflow_id} step "
                    f"{step.position} is gone; resolving again"
                )
            elif self._belongs_to(submission, state, step):
                return submission
            else:
                logger.warning(
                    f"Submission {submission_id} recorded for {state.workflow_id} "
                    f"step {step.position} does not belong to {state.actor.key}; "
                    "resolving again"
                )
        return await self.resolve_or_create(
            state.workflow_id, step, state.actor, state.workflow_session_id
        )
