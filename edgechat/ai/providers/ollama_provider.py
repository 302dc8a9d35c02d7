"""Ollama local LLM provider implementation."""

from __future__ import annotations

import os

import httpx

from edgechat.ai.providers.base import BaseProvider, GenerationResult, ProviderError, as_result

_DEFAULT_BASE_URL = "http://localhost:11434"


class OllamaProvider(BaseProvider):
    """Generation backend backed by a local Ollama instance."""

    name = "ollama"

    def __init__(
        self,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = (
            base_url or os.environ.get("OLLAMA_BASE_URL") or _DEFAULT_BASE_URL
        ).rstrip("/")
        self._transport = transport

    def is_available(self) -> bool:
        """Return True if Ollama is running and reachable."""
        try:
            with httpx.Client(timeout=3.0) as client:
                resp = client.get(f"{self._base_url}/api/tags")
                return resp.status_code == 200
        except httpx.HTTPError:
            return False

    async def generate(self, prompt: str, model: str, max_tokens: int = 256) -> GenerationResult:
        payload = {
            "model": model,
            "prompt": prompt,
            "stream": False,
            "options": {"num_predict": max_tokens},
        }
        try:
            async with httpx.AsyncClient(timeout=120.0, transport=self._transport) as client:
                resp = await client.post(f"{self._base_url}/api/generate", json=payload)
                resp.raise_for_status()
                return as_result(resp.json())
        except httpx.ConnectError as exc:
            raise ProviderError(
                f"Cannot connect to Ollama at {self._base_url}. Is it running?"
            ) from exc
        except httpx.HTTPStatusError as exc:
            raise ProviderError(
                f"Ollama API error {exc.response.status_code}: {exc}"
            ) from exc
        except Exception as exc:
            raise ProviderError(f"Ollama error: {exc}") from exc
