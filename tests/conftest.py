from __future__ import annotations

import asyncio
from typing import Any

import pytest

from edgechat.ai.providers.base import BaseProvider, GenerationResult, PlainText, ProviderError
from edgechat.memory.session_store import InMemorySessionStore, StoreScope


class FakeProvider(BaseProvider):
    """Records prompts and answers from a scripted list (or echoes)."""

    name = "fake"

    def __init__(
        self,
        results: list[GenerationResult] | None = None,
        delay: float = 0.0,
        fail: bool = False,
    ) -> None:
        self.prompts: list[str] = []
        self.calls: list[dict[str, Any]] = []
        self._results = list(results or [])
        self._delay = delay
        self._fail = fail

    def is_available(self) -> bool:
        return True

    async def generate(self, prompt: str, model: str, max_tokens: int = 256) -> GenerationResult:
        self.prompts.append(prompt)
        self.calls.append({"model": model, "max_tokens": max_tokens})
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._fail:
            raise ProviderError("backend down")
        if self._results:
            return self._results.pop(0)
        return PlainText(f"reply {len(self.prompts)}")


class _CountingScope(StoreScope):
    def __init__(self, inner: StoreScope, counts: dict[str, int]) -> None:
        self._inner = inner
        self._counts = counts

    async def get(self, key: str) -> Any | None:
        self._counts["get"] += 1
        return await self._inner.get(key)

    async def put(self, key: str, value: Any) -> None:
        self._counts["put"] += 1
        await self._inner.put(key, value)


class CountingStore(InMemorySessionStore):
    """In-memory store that counts reads and writes across all sessions."""

    def __init__(self) -> None:
        super().__init__()
        self.counts = {"get": 0, "put": 0}

    def scope(self, session_id: str) -> StoreScope:
        return _CountingScope(super().scope(session_id), self.counts)


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def store() -> CountingStore:
    return CountingStore()
