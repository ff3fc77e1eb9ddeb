"""Wire definitions, submissions and session state around the engine."""

from __future__ import annotations

import logging
from typing import Optional

from .config import FormflowConfig
from .contracts import Actor
from .definitions import WorkflowDefinitionStore, get_definition_store
from .engine import WorkflowEngine
from .errors import InvalidStateError
from .persistence import SubmissionRepository, get_repository
from .resolver import SubmissionResolver
from .sessions import BaseSessionStore, get_session_store, session_key

logger = logging.getLogger(__name__)


class WorkflowService:
    """Load an engine from the session store and save it back.

    This is the seam a request handler uses: ``open`` at the start of a
    request, call engine operations, then ``save``.
    """

    def __init__(
        self,
        definitions: WorkflowDefinitionStore,
        repository: SubmissionRepository,
        session_store: BaseSessionStore,
    ) -> None:
        self.definitions = definitions
        self.repository = repository
        self.session_store = session_store

    @classmethod
    def from_config(cls, config: Optional[FormflowConfig] = None) -> "WorkflowService":
        return cls(
            get_definition_store(config=config) if config else get_definition_store(),
            get_repository(config=config) if config else get_repository(),
            get_session_store(config=config) if config else get_session_store(),
        )

    def resolver(self) -> SubmissionResolver:
        # an empty catalog means forms are not validated
        forms = self.definitions.forms
        return SubmissionResolver(self.repository, forms or None)

    async def open(self, workflow_id: str, actor: Actor) -> WorkflowEngine:
        """Return the actor's engine for ``workflow_id``, fresh if none is stored."""
        definition = self.definitions.load(workflow_id)
        blob = await self.session_store.load(session_key(workflow_id, actor))
        if blob is None:
            return WorkflowEngine(definition, self.resolver(), actor=actor)
        engine = WorkflowEngine.from_serializable(blob, definition, self.resolver())
        if engine.actor != actor:
            raise InvalidStateError(
                f"stored state for {workflow_id} belongs to {engine.actor.key}"
            )
        return engine

    async def save(self, engine: WorkflowEngine) -> None:
        key = session_key(engine.definition.workflow_id, engine.actor)
        await self.session_store.save(key, engine.to_serializable())
        logger.debug(f"Saved engine state under {key}")

    async def forget(self, workflow_id: str, actor: Actor) -> None:
        """Drop stored state; submissions are left untouched."""
        await self.session_store.delete(session_key(workflow_id, actor))
