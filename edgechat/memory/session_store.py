"""Durable per-session key-value storage."""

from __future__ import annotations

import asyncio
import copy
import hashlib
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from edgechat.core.config import ConfigError, StorageConfig

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Raised when a session record cannot be read or written."""


class StoreScope(ABC):
    """Key-value view onto one session's storage; never sees other sessions."""

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """Return the stored value for ``key``, or None if absent."""

    @abstractmethod
    async def put(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""


class BaseSessionStore(ABC):
    """Hands out isolated storage scopes keyed by session id."""

    @abstractmethod
    def scope(self, session_id: str) -> StoreScope:
        """Return the storage scope for ``session_id``."""


# ---------------------------------------------------------------------------
# In-memory backend
# ---------------------------------------------------------------------------


class _MemoryScope(StoreScope):
    def __init__(self, records: dict[str, Any]) -> None:
        self._records = records

    async def get(self, key: str) -> Any | None:
        return copy.deepcopy(self._records.get(key))

    async def put(self, key: str, value: Any) -> None:
        self._records[key] = copy.deepcopy(value)


class InMemorySessionStore(BaseSessionStore):
    """Process-local store; contents are lost on restart."""

    def __init__(self) -> None:
        self._data: dict[str, dict[str, Any]] = {}

    def scope(self, session_id: str) -> StoreScope:
        return _MemoryScope(self._data.setdefault(session_id, {}))


# ---------------------------------------------------------------------------
# File backend
# ---------------------------------------------------------------------------


class _FileScope(StoreScope):
    def __init__(self, path: Path) -> None:
        self._path = path

    def _read_all(self) -> dict[str, Any]:
        try:
            with open(self._path, encoding="utf-8") as fh:
                data = json.load(fh)
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError) as exc:
            raise StoreError(f"Cannot read session record {self._path.name}: {exc}") from exc
        if not isinstance(data, dict):
            raise StoreError(f"Session record {self._path.name} is not a JSON object")
        return data

    def _write_all(self, data: dict[str, Any]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self._path.parent, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(data, fh, ensure_ascii=False)
                os.replace(tmp_path, self._path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except (OSError, TypeError, ValueError) as exc:
            raise StoreError(f"Cannot write session record {self._path.name}: {exc}") from exc

    def _put_sync(self, key: str, value: Any) -> None:
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    async def get(self, key: str) -> Any | None:
        data = await asyncio.to_thread(self._read_all)
        return data.get(key)

    async def put(self, key: str, value: Any) -> None:
        await asyncio.to_thread(self._put_sync, key, value)
        logger.debug("Wrote key %r to %s", key, self._path.name)


class FileSessionStore(BaseSessionStore):
    """One JSON file per session under ``directory``.

    File names are the SHA-256 of the session id, so arbitrary client ids are
    safe to use as keys.
    """

    def __init__(self, directory: str = "./data/sessions") -> None:
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def path_for(self, session_id: str) -> Path:
        digest = hashlib.sha256(session_id.encode("utf-8")).hexdigest()
        return self._directory / f"{digest}.json"

    def scope(self, session_id: str) -> StoreScope:
        return _FileScope(self.path_for(session_id))


def build_store(storage_config: StorageConfig) -> BaseSessionStore:
    """Create the session store named by ``storage_config.backend``."""
    backend = storage_config.backend
    if backend == "memory":
        return InMemorySessionStore()
    if backend == "file":
        return FileSessionStore(directory=storage_config.path)
    raise ConfigError(f"Unknown storage backend: {backend!r}")
