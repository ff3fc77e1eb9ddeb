"""Redis session store for multi-process deployments."""

from __future__ import annotations

import json
from typing import Any, Dict, Optional

import redis.asyncio as redis

from .base import BaseSessionStore


class RedisSessionStore(BaseSessionStore):
    """Redis-backed session store with optional expiry."""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        db: int = 0,
        password: Optional[str] = None,
        ttl_seconds: Optional[int] = None,
    ) -> None:
        self.host = host
        self.port = port
        self.db = db
        self.password = password
        self.ttl_seconds = ttl_seconds
        self._redis: Optional[Any] = None

    async def connect(self) -> None:
        """Connect to Redis."""
        self._redis = redis.Redis(
            host=self.host,
            port=self.port,
            db=self.db,
            password=self.password,
            decode_responses=True,
        )
        # Test connection
        await self._redis.ping()

    async def disconnect(self) -> None:
        """Disconnect from Redis."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    async def load(self, key: str) -> Optional[Dict[str, Any]]:
        if not self._redis:
            await self.connect()
        raw = await self._redis.get(key)
        return json.loads(raw) if raw else None

    async def save(self, key: str, state: Dict[str, Any]) -> None:
        if not self._redis:
            await self.connect()
        await self._redis.set(key, json.dumps(state), ex=self.ttl_seconds)

    async def delete(self, key: str) -> None:
        if not self._redis:
            await self.connect()
        await self._redis.delete(key)
