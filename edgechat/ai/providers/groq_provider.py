"""Groq API provider implementation."""

from __future__ import annotations

import os

from groq import AsyncGroq, RateLimitError

from edgechat.ai.providers.base import BaseProvider, GenerationResult, PlainText, ProviderError


class GroqProvider(BaseProvider):
    """Generation backend backed by the Groq API.

    Groq only exposes chat completions, so the rendered prompt travels as a
    single user message.
    """

    name = "groq"

    def __init__(self, api_key: str | None = None) -> None:
        key = api_key or os.environ.get("GROQ_API_KEY")
        self._client: AsyncGroq | None = AsyncGroq(api_key=key) if key else None

    def is_available(self) -> bool:
        return self._client is not None

    async def generate(self, prompt: str, model: str, max_tokens: int = 256) -> GenerationResult:
        if not self._client:
            raise ProviderError("GROQ_API_KEY is not set. Cannot call Groq API.")
        try:
            completion = await self._client.chat.completions.create(
                model=model,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=max_tokens,
            )
            return PlainText(completion.choices[0].message.content or "")
        except RateLimitError as exc:
            raise ProviderError(
                "Groq rate limit reached. Please wait a moment."
            ) from exc
        except Exception as exc:
            raise ProviderError(f"Groq API error: {exc}") from exc
