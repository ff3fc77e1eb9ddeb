"""Exception taxonomy for formflow workflows."""

from __future__ import annotations

from typing import Iterable, List

REQUIRED_STEPS_MESSAGE = "Please complete all required steps first."


class FormflowError(Exception):
    """Base class for all formflow errors."""


class NotFoundError(FormflowError, LookupError):
    """Workflow or step definition does not exist."""

    def __init__(self, workflow_id: str, message: str | None = None) -> None:
        self.workflow_id = workflow_id
        super().__init__(message or f"Workflow not found: {workflow_id}")


class InvalidActorError(FormflowError, ValueError):
    """Neither a user id nor a session token was supplied (or both were)."""


class UnknownFormError(FormflowError, LookupError):
    """A step references a form the form catalog cannot resolve."""

    def __init__(self, form_id: str) -> None:
        self.form_id = form_id
        super().__init__(f"Unknown form: {form_id}")


class RequiredStepsIncompleteError(FormflowError):
    """Completion was requested while required steps are still open.

    This is the one error raised as part of normal control flow; callers
    should re-prompt the user with ``message``.
    """

    def __init__(self, missing_positions: Iterable[int]) -> None:
        self.missing_positions: List[int] = sorted(missing_positions)
        self.message = REQUIRED_STEPS_MESSAGE
        super().__init__(
            f"{REQUIRED_STEPS_MESSAGE} Missing steps: {self.missing_positions}"
        )


class InvalidStateError(FormflowError, ValueError):
    """A serialized engine state blob failed validation."""
