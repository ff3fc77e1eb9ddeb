"""Guided workflow state machine."""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List, Mapping, Optional, Union

from .contracts import (
    Actor,
    EngineState,
    EngineStatus,
    Progress,
    StepDefinition,
    WorkflowDefinition,
    is_present,
)
from .definitions import WorkflowDefinitionStore
from .errors import InvalidActorError, InvalidStateError, RequiredStepsIncompleteError
from .mapping import DataMapper
from .persistence import Submission, WorkflowScope
from .progress import is_at_final_step, missing_required_steps, progress
from .resolver import SubmissionResolver

logger = logging.getLogger(__name__)


class WorkflowEngine:
    """Track one actor's position across the steps of a workflow.

    The engine is rebuilt from its serialized state for every logical
    operation and serialized back afterwards; it holds no long-lived caches.

    States are ``not_started``, ``in_progress`` (at ``step``) and
    ``complete`` (``step == total_steps + 1``).
    """

    def __init__(
        self,
        definition: WorkflowDefinition,
        resolver: SubmissionResolver,
        state: Union[EngineState, Mapping[str, Any], None] = None,
        *,
        actor: Optional[Actor] = None,
    ) -> None:
        self.definition = definition
        self.resolver = resolver
        if state is None:
            if actor is None:
                raise InvalidActorError("a user id or session token is required")
            state = EngineState(
                workflow_id=definition.workflow_id,
                actor=actor,
                status=EngineStatus.NOT_STARTED,
            )
        else:
            state = EngineState.from_dict(state)
            if state.workflow_id != definition.workflow_id:
                raise InvalidStateError(
                    f"state belongs to workflow {state.workflow_id}, "
                    f"not {definition.workflow_id}"
                )
        self._state = self._normalize(state)

    # ------------------------------------------------------------------
    # Serialization
    @classmethod
    def from_serializable(
        cls,
        data: Union[EngineState, Mapping[str, Any]],
        definitions: Union[WorkflowDefinitionStore, WorkflowDefinition],
        resolver: SubmissionResolver,
    ) -> "WorkflowEngine":
        """Rebuild an engine from a session blob."""
        state = EngineState.from_dict(data)
        if isinstance(definitions, WorkflowDefinition):
            definition = definitions
        else:
            definition = definitions.load(state.workflow_id)
        return cls(definition, resolver, state)

    def to_serializable(self) -> Dict[str, Any]:
        return self._state.to_dict()

    def _normalize(self, state: EngineState) -> EngineState:
        total = self.definition.total_steps
        status = state.status
        if status is None:
            if state.step > total:
                status = EngineStatus.COMPLETE
            elif state.submissions or state.step > 1:
                status = EngineStatus.IN_PROGRESS
            else:
                status = EngineStatus.NOT_STARTED

        if status == EngineStatus.COMPLETE:
            step = total + 1
        elif status == EngineStatus.NOT_STARTED:
            step = 1
        else:
            step = min(state.step, total)
        if step != state.step:
            logger.debug(
                f"Clamped step {state.step} to {step} for workflow {state.workflow_id}"
            )

        submissions = {
            position: submission_id
            for position, submission_id in state.submissions.items()
            if 1 <= position <= total
        }
        return state.model_copy(
            update={"status": status, "step": step, "submissions": submissions}
        )

    # ------------------------------------------------------------------
    # Read-only accessors
    @property
    def state(self) -> EngineState:
        return self._state.model_copy(deep=True)

    @property
    def status(self) -> EngineStatus:
        return self._state.status

    @property
    def position(self) -> int:
        return self._state.step

    @property
    def actor(self) -> Actor:
        return self._state.actor

    def current_step(self) -> Optional[StepDefinition]:
        """The step being filled, or ``None`` once complete."""
        if self._state.status == EngineStatus.COMPLETE:
            return None
        return self.definition.step_at(self._state.step)

    def progress(self) -> Progress:
        return progress(self._state, self.definition)

    def is_at_final_step(self) -> bool:
        return is_at_final_step(self._state, self.definition)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, WorkflowEngine):
            return NotImplemented
        return (
            self.definition.workflow_id == other.definition.workflow_id
            and self._state == other._state
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return (
            f"WorkflowEngine(workflow_id={self.definition.workflow_id!r}, "
            f"status={self._state.status.value!r}, step={self._state.step})"
        )

    # ------------------------------------------------------------------
    # Helpers
    @property
    def _repository(self):
        return self.resolver.repository

    def _scope(self) -> WorkflowScope:
        if not self._state.workflow_session_id:
            self._state.workflow_session_id = str(uuid.uuid4())
        return WorkflowScope(
            workflow_id=self.definition.workflow_id,
            session_id=self._state.workflow_session_id,
        )

    async def _submission_for(self, step: StepDefinition) -> Submission:
        self._scope()
        submission = await self.resolver.resolve(self._state, step)
        self._state.submissions[step.position] = submission.id
        return submission

    async def _scope_submissions(self) -> List[Submission]:
        if not self._state.workflow_session_id:
            return []
        return await self._repository.list_for_scope(self._scope(), self.actor)

    @staticmethod
    def _collected_data(submissions: List[Submission]) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        for submission in sorted(submissions, key=lambda s: s.step_position):
            data.update(
                {k: v for k, v in submission.field_values.items() if is_present(v)}
            )
        return data

    def _shared_data(self, submissions: List[Submission]) -> Dict[str, Any]:
        shared: Dict[str, Any] = {}
        for submission in sorted(submissions, key=lambda s: s.step_position):
            if not submission.is_complete:
                continue
            step = self.definition.step_at(submission.step_position)
            if step is None:
                continue
            shared.update(submission.shared_data(self.resolver.form_for(step)))
        return shared

    def _visibility(self, data: Mapping[str, Any]) -> Dict[int, bool]:
        # the first step is always shown
        return {
            step.position: step.position == 1 or step.should_show(data)
            for step in self.definition.steps
        }

    def _next_visible(
        self, position: int, visible: Mapping[int, bool]
    ) -> Optional[StepDefinition]:
        for step in self.definition.steps[position:]:
            if visible.get(step.position, True):
                return step
        return None

    def _previous_visible(
        self, position: int, visible: Mapping[int, bool]
    ) -> Optional[StepDefinition]:
        for step in reversed(self.definition.steps[: max(position - 1, 0)]):
            if visible.get(step.position, True):
                return step
        return None

    def _missing_required(self, submissions: List[Submission]) -> List[int]:
        completed = [s.step_position for s in submissions if s.is_complete]
        visible = self._visibility(self._collected_data(submissions))
        return missing_required_steps(self.definition, completed, visible)

    # ------------------------------------------------------------------
    # Transitions
    async def start(self) -> Optional[Submission]:
        """Enter the workflow at step 1 and return its submission.

        Calling ``start`` on a workflow already in progress returns the
        current submission; on a completed workflow it returns ``None``.
        """
        if self._state.status == EngineStatus.COMPLETE:
            return None
        if self._state.status == EngineStatus.NOT_STARTED:
            self._scope()
            self._state.status = EngineStatus.IN_PROGRESS
            self._state.step = 1
            logger.info(
                f"Started workflow {self.definition.workflow_id} for {self.actor.key}"
            )
        return await self._submission_for(self.current_step())

    async def current_submission(self) -> Optional[Submission]:
        if self._state.status != EngineStatus.IN_PROGRESS:
            return None
        return await self._submission_for(self.current_step())

    async def advance(
        self, field_values: Optional[Mapping[str, Any]] = None
    ) -> Optional[Submission]:
        """Save ``field_values`` on the current step and move forward.

        Returns the next step's submission, or ``None`` when the workflow
        became (or already was) complete.

        Raises:
            RequiredStepsIncompleteError: On the last step while a required
                step has no completed submission. The engine stays put.
        """
        if self._state.status == EngineStatus.NOT_STARTED:
            await self.start()
        if self._state.status == EngineStatus.COMPLETE:
            logger.debug(
                f"Workflow {self.definition.workflow_id} already complete for "
                f"{self.actor.key}"
            )
            return None

        step = self.current_step()
        current = await self._submission_for(step)
        if field_values:
            await self._repository.update_fields(current.id, dict(field_values))
            current = await self._submission_for(step)

        form = self.resolver.form_for(step)
        if form is None or form.is_satisfied_by(current.field_values):
            await self._repository.mark_completed(current.id)
            current.status = "completed"
        elif current.is_complete:
            await self._repository.reopen(current.id)
            current.status = "draft"

        submissions = await self._scope_submissions()
        visible = self._visibility(self._collected_data(submissions))
        next_step = self._next_visible(step.position, visible)

        if next_step is None:
            missing = self._missing_required(submissions)
            if missing:
                logger.warning(
                    f"Refused completion of {self.definition.workflow_id} for "
                    f"{self.actor.key}: required steps {missing} incomplete"
                )
                raise RequiredStepsIncompleteError(missing)
            self._state.status = EngineStatus.COMPLETE
            self._state.step = self.definition.total_steps + 1
            logger.info(
                f"Completed workflow {self.definition.workflow_id} for {self.actor.key}"
            )
            return None

        target = await self._submission_for(next_step)
        updates = DataMapper.apply(current, target, step.field_mappings)
        updates.update(
            DataMapper.prefill_shared(
                self._shared_data(submissions),
                target,
                self.resolver.form_for(next_step),
            )
        )
        if updates:
            await self._repository.update_fields(target.id, updates)

        self._state.step = next_step.position
        logger.info(
            f"Workflow {self.definition.workflow_id} advanced to step "
            f"{next_step.position} for {self.actor.key}"
        )
        return target

    async def go_back(self) -> Optional[Submission]:
        """Re-enter the previous visible step and reopen its submission.

        A no-op returning ``None`` at the first step or before starting. From
        ``complete`` the last visible step is re-entered.
        """
        if self._state.status == EngineStatus.NOT_STARTED:
            return None

        submissions = await self._scope_submissions()
        visible = self._visibility(self._collected_data(submissions))
        if self._state.status == EngineStatus.COMPLETE:
            target = self._previous_visible(self.definition.total_steps + 1, visible)
        else:
            target = self._previous_visible(self._state.step, visible)
        if target is None:
            return None

        self._state.status = EngineStatus.IN_PROGRESS
        self._state.step = target.position
        submission = await self._submission_for(target)
        if submission.is_complete:
            await self._repository.reopen(submission.id)
            submission.status = "draft"
        logger.info(
            f"Workflow {self.definition.workflow_id} went back to step "
            f"{target.position} for {self.actor.key}"
        )
        return submission

    def restart(self) -> None:
        """Forget the current position but keep every submission.

        The workflow session id is kept so re-entering reuses the same
        submissions.
        """
        self._state.status = EngineStatus.NOT_STARTED
        self._state.step = 1
        self._state.submissions = {}
        logger.info(
            f"Restarted workflow {self.definition.workflow_id} for {self.actor.key}"
        )

    # ------------------------------------------------------------------
    # Completion
    async def is_complete(self) -> bool:
        """``True`` past the last step with every required step completed."""
        if self._state.status != EngineStatus.COMPLETE:
            return False
        return not self._missing_required(await self._scope_submissions())

    async def completed_submissions(self) -> List[Submission]:
        return [s for s in await self._scope_submissions() if s.is_complete]
