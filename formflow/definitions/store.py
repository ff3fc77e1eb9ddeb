"""YAML-backed repository of workflow and form definitions."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import yaml
from pydantic import ValidationError

from ..constants import DEFINITION_FILE_PATTERNS
from ..contracts import FormDefinition, StepDefinition, WorkflowDefinition
from ..errors import NotFoundError

logger = logging.getLogger(__name__)


class WorkflowDefinitionStore:
    """Load, cache and expose workflow definitions.

    Every ``*.yml``/``*.yaml`` file under ``path`` may contain a ``workflow``
    mapping, a ``forms`` list, or both. Files are read lazily on first access
    and cached until :meth:`reload` is called. Definitions registered with
    :meth:`add_workflow` / :meth:`add_form` survive reloads.
    """

    def __init__(
        self,
        path: str | Path | None = None,
        workflows: Iterable[WorkflowDefinition] = (),
        forms: Iterable[FormDefinition] = (),
    ) -> None:
        self.path = Path(path) if path is not None else None
        self._registered_workflows: Dict[str, WorkflowDefinition] = {
            wf.workflow_id: wf for wf in workflows
        }
        self._registered_forms: Dict[str, FormDefinition] = {
            form.form_id: form for form in forms
        }
        self._workflows: Dict[str, WorkflowDefinition] = {}
        self._forms: Dict[str, FormDefinition] = {}
        self._errors: List[Tuple[Path, str]] = []
        self._loaded = False

    # ------------------------------------------------------------------
    # Loading
    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self._load()

    def _load(self) -> None:
        self._workflows = {}
        self._forms = {}
        self._errors = []
        for file_path in self._definition_files():
            self._load_file(file_path)
        self._workflows.update(self._registered_workflows)
        self._forms.update(self._registered_forms)
        self._loaded = True
        logger.debug(
            f"Loaded {len(self._workflows)} workflows and {len(self._forms)} forms"
        )

    def _definition_files(self) -> List[Path]:
        if self.path is None or not self.path.exists():
            return []
        if self.path.is_file():
            return [self.path]
        files: set[Path] = set()
        for pattern in DEFINITION_FILE_PATTERNS:
            files.update(self.path.glob(pattern))
        return sorted(files)

    def _load_file(self, file_path: Path) -> None:
        try:
            with open(file_path) as f:
                data = yaml.safe_load(f) or {}
            if not isinstance(data, Mapping):
                raise ValueError("top level must be a mapping")
            forms = [FormDefinition.model_validate(f) for f in data.get("forms") or []]
            workflow = (
                WorkflowDefinition.model_validate(data["workflow"])
                if data.get("workflow")
                else None
            )
        except (OSError, yaml.YAMLError, ValidationError, ValueError) as e:
            logger.error(f"Failed to load definition file {file_path}: {e}")
            self._errors.append((file_path, str(e)))
            return

        for form in forms:
            self._forms[form.form_id] = form
        if workflow is not None:
            if workflow.workflow_id in self._workflows:
                logger.warning(
                    f"Duplicate workflow id {workflow.workflow_id} in {file_path}; "
                    "later file wins"
                )
            self._workflows[workflow.workflow_id] = workflow

    def reload(self) -> None:
        """Drop cached definitions and read the files again."""
        self._loaded = False
        self._load()

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def errors(self) -> List[Tuple[Path, str]]:
        """Files skipped during the last load with their error messages."""
        self._ensure_loaded()
        return list(self._errors)

    # ------------------------------------------------------------------
    # Registration
    def add_workflow(self, workflow: WorkflowDefinition) -> None:
        self._registered_workflows[workflow.workflow_id] = workflow
        if self._loaded:
            self._workflows[workflow.workflow_id] = workflow

    def add_form(self, form: FormDefinition) -> None:
        self._registered_forms[form.form_id] = form
        if self._loaded:
            self._forms[form.form_id] = form

    # ------------------------------------------------------------------
    # Queries
    def load(self, workflow_id: str) -> WorkflowDefinition:
        """Return the workflow or raise ``NotFoundError``."""
        self._ensure_loaded()
        workflow = self._workflows.get(workflow_id)
        if workflow is None:
            raise NotFoundError(workflow_id)
        return workflow

    def steps_for(self, workflow_id: str) -> Tuple[StepDefinition, ...]:
        """Return the workflow's steps ordered by position."""
        return tuple(self.load(workflow_id).steps)

    def step_at(self, workflow_id: str, position: int) -> Optional[StepDefinition]:
        return self.load(workflow_id).step_at(position)

    def list_workflows(
        self, active_only: bool = True, category: Optional[str] = None
    ) -> List[WorkflowDefinition]:
        self._ensure_loaded()
        workflows = [
            wf
            for wf in self._workflows.values()
            if (wf.active or not active_only)
            and (category is None or wf.category == category)
        ]
        return sorted(workflows, key=lambda wf: (wf.name, wf.workflow_id))

    @property
    def forms(self) -> Dict[str, FormDefinition]:
        self._ensure_loaded()
        return dict(self._forms)

    def get_form(self, form_id: str) -> Optional[FormDefinition]:
        self._ensure_loaded()
        return self._forms.get(form_id)


def parse_definitions(data: Mapping[str, Any]) -> WorkflowDefinitionStore:
    """Build a store from an already-parsed mapping (``workflows``/``forms``)."""
    workflows = [WorkflowDefinition.model_validate(w) for w in data.get("workflows", [])]
    forms = [FormDefinition.model_validate(f) for f in data.get("forms", [])]
    return WorkflowDefinitionStore(workflows=workflows, forms=forms)
