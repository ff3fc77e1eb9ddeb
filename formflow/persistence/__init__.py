"""Persistence layer for formflow submissions."""

from __future__ import annotations

import os
from typing import Optional

from ..config import FormflowConfig, load_config
from .inmemory import InMemorySubmissionRepository
from .models import Submission, WorkflowScope
from .repository import SubmissionRepository
from .sqlite import SQLiteSubmissionRepository

try:  # pragma: no cover - optional dependency
    from .postgres import PostgresSubmissionRepository
except ImportError:  # pragma: no cover - optional dependency
    PostgresSubmissionRepository = None  # type: ignore

_repository_instance: SubmissionRepository | None = None


def _repository_for(database_url: Optional[str]) -> SubmissionRepository:
    if not database_url:
        return InMemorySubmissionRepository()
    scheme, _, location = database_url.partition("://")
    if scheme == "sqlite":
        return SQLiteSubmissionRepository(location)
    if scheme in ("postgres", "postgresql"):
        if PostgresSubmissionRepository is None:
            raise RuntimeError("Postgres support not available")
        return PostgresSubmissionRepository(database_url)
    raise ValueError(f"Unsupported database backend: {database_url}")


def get_repository(
    database_url: Optional[str] = None, config: Optional[FormflowConfig] = None
) -> SubmissionRepository:
    """Return the submission repository for the configured database.

    ``sqlite://<path>`` and ``postgres(ql)://`` URLs are supported. The URL
    comes from the argument, then ``FORMFLOW_DATABASE_URL`` / ``DATABASE_URL``,
    then ``config.database_url``. Without one, submissions live in memory.
    """

    global _repository_instance
    if _repository_instance is not None and database_url is None and config is None:
        return _repository_instance

    config = config or load_config()
    _repository_instance = _repository_for(
        database_url
        or os.getenv("FORMFLOW_DATABASE_URL")
        or os.getenv("DATABASE_URL")
        or config.database_url
    )
    return _repository_instance


__all__ = [
    "Submission",
    "WorkflowScope",
    "SubmissionRepository",
    "SQLiteSubmissionRepository",
    "PostgresSubmissionRepository",
    "InMemorySubmissionRepository",
    "get_repository",
]
