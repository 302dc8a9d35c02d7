"""Abstract base class for generation backends and their result types."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Union


class ProviderError(Exception):
    """Raised when a generation backend encounters an error."""


@dataclass(frozen=True)
class PlainText:
    """The backend answered with bare text."""

    text: str


@dataclass(frozen=True)
class Structured:
    """The backend answered with a structured payload.

    ``response`` holds the payload's ``response`` field when it is a string;
    ``raw`` keeps the whole payload for the stringified fallback.
    """

    raw: Any
    response: str | None = None

    @classmethod
    def from_payload(cls, payload: Any) -> Structured:
        response = None
        if isinstance(payload, dict) and isinstance(payload.get("response"), str):
            response = payload["response"]
        return cls(raw=payload, response=response)


GenerationResult = Union[PlainText, Structured]


def as_result(payload: Any) -> GenerationResult:
    """Wrap a decoded backend payload in the matching result type."""
    if isinstance(payload, str):
        return PlainText(payload)
    return Structured.from_payload(payload)


def normalize_reply(result: GenerationResult) -> str:
    """Reduce any generation result to reply text.

    Plain text is used as-is, a non-empty ``response`` field comes next, and
    anything else is the JSON form of the whole payload.
    """
    if isinstance(result, PlainText):
        return result.text
    if result.response:
        return result.response
    return json.dumps(result.raw, default=str, ensure_ascii=False)


class BaseProvider(ABC):
    """Abstract base class that all generation backends must implement."""

    name: str = "base"

    @abstractmethod
    async def generate(self, prompt: str, model: str, max_tokens: int = 256) -> GenerationResult:
        """Complete a prompt.

        Args:
            prompt: Full prompt text, system preamble included.
            model: Backend-specific model identifier.
            max_tokens: Maximum tokens in the completion.

        Returns:
            A ``PlainText`` or ``Structured`` result.

        Raises:
            ProviderError: On API or network errors.
        """

    @abstractmethod
    def is_available(self) -> bool:
        """Return True if this provider is properly configured and ready."""
