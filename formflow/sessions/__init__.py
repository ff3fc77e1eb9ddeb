"""Session store factory and initialization."""

from __future__ import annotations

import os
from typing import Optional

from ..config import FormflowConfig, load_config
from .base import BaseSessionStore, session_key
from .file import FileSessionStore
from .inmemory import InMemorySessionStore

_session_store_instance: BaseSessionStore | None = None


def get_session_store(
    backend: Optional[str] = None, config: Optional[FormflowConfig] = None
) -> BaseSessionStore:
    """Factory function to get the configured session store.

    Without explicit arguments the first store built is cached and reused so
    that in-memory state survives across calls in one process.
    """

    global _session_store_instance
    if _session_store_instance is not None and backend is None and config is None:
        return _session_store_instance

    config = config or load_config()
    backend = (
        backend
        or os.getenv("FORMFLOW_SESSION_BACKEND")
        or config.session.backend
    ).lower()

    if backend == "inmemory":
        store: BaseSessionStore = InMemorySessionStore()
    elif backend == "file":
        store = FileSessionStore(config.session.path)
    elif backend == "redis":
        from .redis import RedisSessionStore

        redis_conf = config.session.redis
        store = RedisSessionStore(
            host=redis_conf.host,
            port=redis_conf.port,
            db=redis_conf.db,
            password=redis_conf.password,
            ttl_seconds=config.session.ttl_seconds,
        )
    else:
        raise ValueError(f"Unsupported session backend: {backend}")

    _session_store_instance = store
    return store


__all__ = [
    "BaseSessionStore",
    "FileSessionStore",
    "InMemorySessionStore",
    "get_session_store",
    "session_key",
]
