"""Formflow: guided multi-form filing workflows."""

from .contracts import (
    Actor,
    EngineState,
    EngineStatus,
    FieldMapping,
    FormDefinition,
    Progress,
    StepCondition,
    StepDefinition,
    WorkflowDefinition,
)
from .definitions import WorkflowDefinitionStore, get_definition_store
from .engine import WorkflowEngine
from .errors import (
    FormflowError,
    InvalidActorError,
    InvalidStateError,
    NotFoundError,
    RequiredStepsIncompleteError,
    UnknownFormError,
)
from .mapping import DataMapper
from .persistence import Submission, get_repository
from .progress import is_at_final_step, progress
from .resolver import SubmissionResolver
from .service import WorkflowService
from .sessions import get_session_store

__version__ = "0.1.0"
__all__ = [
    "Actor",
    "DataMapper",
    "EngineState",
    "EngineStatus",
    "FieldMapping",
    "FormDefinition",
    "FormflowError",
    "InvalidActorError",
    "InvalidStateError",
    "NotFoundError",
    "Progress",
    "RequiredStepsIncompleteError",
    "StepCondition",
    "StepDefinition",
    "Submission",
    "SubmissionResolver",
    "UnknownFormError",
    "WorkflowDefinition",
    "WorkflowDefinitionStore",
    "WorkflowEngine",
    "WorkflowService",
    "get_definition_store",
    "get_repository",
    "get_session_store",
    "is_at_final_step",
    "progress",
]
