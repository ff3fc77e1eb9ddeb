"""Base session store interface for engine state blobs."""

from __future__ import annotations

import abc
from typing import Any, Dict, Optional

from ..constants import SESSION_KEY_PREFIX
from ..contracts import Actor


def session_key(workflow_id: str, actor: Actor) -> str:
    """Key under which ``actor``'s state for ``workflow_id`` is stored."""
    return f"{SESSION_KEY_PREFIX}:{workflow_id}:{actor.key}"


class BaseSessionStore(metaclass=abc.ABCMeta):
    """Abstract store for serialized engine state.

    Stores are last-write-wins: concurrent saves for the same key are not
    merged or locked.
    """

    async def connect(self) -> None:
        """Open connection to the backend (no-op by default)."""
        pass

    async def disconnect(self) -> None:
        """Close connection to the backend (no-op by default)."""
        pass

    @abc.abstractmethod
    async def load(self, key: str) -> Optional[Dict[str, Any]]:
        """Return the stored blob or ``None``."""
        raise NotImplementedError

    @abc.abstractmethod
    async def save(self, key: str, state: Dict[str, Any]) -> None:
        """Persist ``state`` under ``key``."""
        raise NotImplementedError

    @abc.abstractmethod
    async def delete(self, key: str) -> None:
        """Forget ``key``; missing keys are ignored."""
        raise NotImplementedError
