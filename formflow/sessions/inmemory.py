"""In-memory session store for testing."""

from __future__ import annotations

import copy
from typing import Any, Dict, Optional

from .base import BaseSessionStore


class InMemorySessionStore(BaseSessionStore):
    """Keep engine state in a process-local dictionary."""

    def __init__(self) -> None:
        self._sessions: Dict[str, Dict[str, Any]] = {}

    async def load(self, key: str) -> Optional[Dict[str, Any]]:
        state = self._sessions.get(key)
        return copy.deepcopy(state) if state is not None else None

    async def save(self, key: str, state: Dict[str, Any]) -> None:
        self._sessions[key] = copy.deepcopy(state)

    async def delete(self, key: str) -> None:
        self._sessions.pop(key, None)
