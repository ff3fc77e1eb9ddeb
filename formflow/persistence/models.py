"""Data models for persisted form submissions."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..contracts import FormDefinition, is_present


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WorkflowScope(BaseModel):
    """One pass of an actor through a workflow."""

    model_config = ConfigDict(frozen=True)

    workflow_id: str
    session_id: str


class Submission(BaseModel):
    """Field values a user entered for one form inside a workflow."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    form_id: str
    workflow_id: str
    workflow_session_id: str
    step_position: int
    owner: str
    field_values: Dict[str, Any] = Field(default_factory=dict)
    status: Literal["draft", "completed"] = "draft"
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    completed_at: Optional[datetime] = None

    @property
    def is_complete(self) -> bool:
        return self.status == "completed"

    def value(self, key: str) -> Any:
        """Return the value for ``key`` or ``None`` when blank."""
        value = self.field_values.get(key)
        return value if is_present(value) else None

    def shared_data(self, form: FormDefinition | None) -> Dict[str, Any]:
        """Map the form's shared keys to the values entered here."""
        if form is None:
            return {}
        shared: Dict[str, Any] = {}
        for field_name, shared_key in form.shared_fields.items():
            value = self.value(field_name)
            if value is not None:
                shared[shared_key] = value
        return shared


def merge_fields(current: Mapping[str, Any], updates: Mapping[str, Any]) -> Dict[str, Any]:
    merged = dict(current)
    merged.update(updates)
    return merged
