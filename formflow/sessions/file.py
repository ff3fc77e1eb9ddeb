"""JSON file session store for single-host use and the CLI."""

from __future__ import annotations

import asyncio
import hashlib
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

from .base import BaseSessionStore


class FileSessionStore(BaseSessionStore):
    """Store each session blob as a JSON file inside ``directory``."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def _path_for(self, key: str) -> Path:
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self.directory / f"{digest}.json"

    def _read(self, key: str) -> Optional[Dict[str, Any]]:
        path = self._path_for(key)
        if not path.exists():
            return None
        with open(path) as f:
            document = json.load(f)
        return document.get("state")

    def _write(self, key: str, state: Dict[str, Any]) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump({"key": key, "state": state}, f)
            os.replace(tmp_path, self._path_for(key))
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise

    def _remove(self, key: str) -> None:
        self._path_for(key).unlink(missing_ok=True)

    async def load(self, key: str) -> Optional[Dict[str, Any]]:
        return await asyncio.to_thread(self._read, key)

    async def save(self, key: str, state: Dict[str, Any]) -> None:
        await asyncio.to_thread(self._write, key, state)

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(self._remove, key)
