"""Shared fixtures for formflow tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from formflow.contracts import Actor, FormDefinition, StepDefinition, WorkflowDefinition
from formflow.persistence import InMemorySubmissionRepository
from formflow.resolver import SubmissionResolver

FIXTURES = Path(__file__).parent / "fixtures" / "workflows"


def build_workflow(
    total: int = 3,
    required: tuple[int, ...] = (1, 3),
    workflow_id: str = "claim",
    **step_overrides: dict,
) -> WorkflowDefinition:
    """Build a workflow of ``total`` steps using forms ``F1``..``Fn``."""
    steps = []
    for position in range(1, total + 1):
        data = {
            "position": position,
            "form_id": f"F{position}",
            "required": position in required,
        }
        data.update(step_overrides.get(f"step{position}", {}))
        steps.append(StepDefinition.model_validate(data))
    return WorkflowDefinition(workflow_id=workflow_id, name="Claim", steps=steps)


@pytest.fixture
def fixtures_path() -> Path:
    return FIXTURES


@pytest.fixture
def actor() -> Actor:
    return Actor.of(session_token="anon-123")


@pytest.fixture
def repository() -> InMemorySubmissionRepository:
    return InMemorySubmissionRepository()


@pytest.fixture
def forms() -> dict[str, FormDefinition]:
    return {
        "F1": FormDefinition(form_id="F1", title="Claim", required_fields=["name"]),
        "F2": FormDefinition(form_id="F2", title="Business"),
        "F3": FormDefinition(form_id="F3", title="Service", required_fields=["signature"]),
        "F4": FormDefinition(form_id="F4", title="Extra"),
    }


@pytest.fixture
def resolver(repository, forms) -> SubmissionResolver:
    return SubmissionResolver(repository, forms)
