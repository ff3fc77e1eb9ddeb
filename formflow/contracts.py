"""Core data contracts for formflow guided workflows."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Literal, Mapping, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from .errors import InvalidActorError, InvalidStateError


def is_present(value: Any) -> bool:
    """Return ``True`` for values a user actually entered."""
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) > 0
    return True


class FieldMapping(BaseModel):
    """Copy ``from`` on the step being left into ``to`` on the next step."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    from_key: str = Field(alias="from")
    to_key: str = Field(alias="to")


class StepCondition(BaseModel):
    """Visibility rule evaluated against data collected so far."""

    model_config = ConfigDict(frozen=True)

    field: str
    operator: Literal["equals", "not_equals", "present", "blank", "includes"] = (
        "equals"
    )
    value: Any = None

    def evaluate(self, data: Mapping[str, Any]) -> bool:
        actual = data.get(self.field)
        if self.operator == "present":
            return is_present(actual)
        if self.operator == "blank":
            return not is_present(actual)
        if self.operator == "includes":
            if isinstance(actual, (list, tuple, set)):
                return self.value in actual or str(self.value) in map(str, actual)
            return actual is not None and str(self.value) in str(actual)
        matches = _as_text(actual) == _as_text(self.value)
        return matches if self.operator == "equals" else not matches


def _as_text(value: Any) -> Optional[str]:
    return None if value is None else str(value)


class FormDefinition(BaseModel):
    """Catalog entry for a fillable form."""

    model_config = ConfigDict(frozen=True)

    form_id: str
    title: Optional[str] = None
    required_fields: List[str] = Field(default_factory=list)
    shared_fields: Dict[str, str] = Field(
        default_factory=dict, description="Field name -> shared data key"
    )

    def is_satisfied_by(self, values: Mapping[str, Any]) -> bool:
        """Return ``True`` when every required field has a value."""
        return all(is_present(values.get(name)) for name in self.required_fields)


class StepDefinition(BaseModel):
    """One position in a workflow."""

    model_config = ConfigDict(frozen=True)

    position: int = Field(ge=1)
    form_id: str
    name: Optional[str] = None
    instructions: Optional[str] = None
    required: bool = True
    field_mappings: List[FieldMapping] = Field(default_factory=list)
    conditions: List[StepCondition] = Field(default_factory=list)

    @field_validator("field_mappings", mode="before")
    @classmethod
    def _mappings_from_dict(cls, v: Any) -> Any:
        # ``{source: target}`` shorthand
        if isinstance(v, Mapping):
            return [{"from": src, "to": dst} for src, dst in v.items()]
        return v or []

    @field_validator("conditions", mode="before")
    @classmethod
    def _conditions_as_list(cls, v: Any) -> Any:
        if isinstance(v, Mapping):
            return [v] if v else []
        return v or []

    @property
    def is_conditional(self) -> bool:
        return bool(self.conditions)

    def should_show(self, data: Mapping[str, Any]) -> bool:
        """Return ``True`` when all visibility conditions hold for ``data``."""
        return all(condition.evaluate(data) for condition in self.conditions)

    def display_name(self, forms: Mapping[str, FormDefinition] | None = None) -> str:
        if self.name:
            return self.name
        form = (forms or {}).get(self.form_id)
        if form is not None and form.title:
            return form.title
        return self.form_id


class WorkflowDefinition(BaseModel):
    """A named guided process made of ordered steps."""

    model_config = ConfigDict(frozen=True)

    workflow_id: str
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    active: bool = True
    steps: List[StepDefinition]

    @field_validator("steps")
    @classmethod
    def _ordered_contiguous(cls, v: List[StepDefinition]) -> List[StepDefinition]:
        if not v:
            raise ValueError("workflow must define at least one step")
        ordered = sorted(v, key=lambda step: step.position)
        positions = [step.position for step in ordered]
        expected = list(range(1, len(ordered) + 1))
        if positions != expected:
            raise ValueError(
                f"step positions must be contiguous from 1, got {positions}"
            )
        return ordered

    @property
    def total_steps(self) -> int:
        return len(self.steps)

    def step_at(self, position: int) -> Optional[StepDefinition]:
        """Return the step at ``position`` or ``None`` when out of range."""
        if 1 <= position <= len(self.steps):
            return self.steps[position - 1]
        return None

    def required_steps(self) -> List[StepDefinition]:
        return [step for step in self.steps if step.required]


class Actor(BaseModel):
    """Owner of submissions: a registered user or an anonymous session.

    Build actors with :meth:`of`, which raises ``InvalidActorError`` unless
    exactly one identity is given. Direct construction enforces the same rule
    but pydantic reports it as a ``ValidationError``.
    """

    model_config = ConfigDict(frozen=True)

    user_id: Optional[str] = None
    session_token: Optional[str] = None

    @field_validator("user_id", "session_token", mode="before")
    @classmethod
    def _stringify(cls, v: Any) -> Any:
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @model_validator(mode="after")
    def _exactly_one(self) -> "Actor":
        if bool(self.user_id) == bool(self.session_token):
            raise InvalidActorError(
                "exactly one of user_id or session_token must be set"
            )
        return self

    @classmethod
    def of(
        cls, user_id: Optional[str] = None, session_token: Optional[str] = None
    ) -> "Actor":
        """Build an actor, raising ``InvalidActorError`` on bad identity."""
        if bool(user_id) == bool(session_token):
            raise InvalidActorError(
                "exactly one of user_id or session_token must be set"
            )
        return cls(user_id=user_id, session_token=session_token)

    @property
    def is_anonymous(self) -> bool:
        return self.user_id is None

    @property
    def key(self) -> str:
        """Stable storage key for this actor."""
        if self.user_id:
            return f"user:{self.user_id}"
        return f"session:{self.session_token}"

    def to_dict(self) -> Dict[str, str]:
        if self.user_id:
            return {"user_id": self.user_id}
        return {"session_token": self.session_token}


class EngineStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"


class EngineState(BaseModel):
    """Serializable position of one actor inside one workflow."""

    workflow_id: str
    step: int = Field(default=1, ge=1)
    status: Optional[EngineStatus] = None
    submissions: Dict[int, str] = Field(default_factory=dict)
    actor: Actor
    workflow_session_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the session blob layout."""
        return {
            "workflow_id": self.workflow_id,
            "step": self.step,
            "status": self.status.value if self.status else None,
            "submissions": {str(k): v for k, v in sorted(self.submissions.items())},
            "actor": self.actor.to_dict(),
            "workflow_session_id": self.workflow_session_id,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "EngineState":
        """Validate a session blob, raising ``InvalidStateError`` if malformed."""
        if isinstance(data, EngineState):
            return data.model_copy(deep=True)
        if not isinstance(data, Mapping):
            raise InvalidStateError(
                f"engine state must be a mapping, got {type(data).__name__}"
            )
        try:
            return cls.model_validate(dict(data))
        except ValidationError as exc:
            raise InvalidStateError(f"malformed engine state: {exc}") from exc


class Progress(BaseModel):
    """Position summary for progress bars."""

    current: int
    total: int
    percent: int = Field(ge=0, le=100)
    completed_steps: int = 0
