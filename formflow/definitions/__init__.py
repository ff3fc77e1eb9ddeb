"""Workflow definition loading."""

from __future__ import annotations

from typing import Optional

from ..config import FormflowConfig, load_config
from .store import WorkflowDefinitionStore, parse_definitions

_store_instance: WorkflowDefinitionStore | None = None


def get_definition_store(
    path: Optional[str] = None, config: Optional[FormflowConfig] = None
) -> WorkflowDefinitionStore:
    """Return the process-wide definition store.

    An explicit ``path`` or ``config`` always builds a fresh store; otherwise
    the cached store is reused, reading ``workflows_path`` from configuration
    the first time.
    """

    global _store_instance
    if _store_instance is not None and path is None and config is None:
        return _store_instance

    config = config or load_config()
    _store_instance = WorkflowDefinitionStore(path or config.workflows_path)
    return _store_instance


__all__ = ["WorkflowDefinitionStore", "get_definition_store", "parse_definitions"]
