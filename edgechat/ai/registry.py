"""Backend selection: maps the configured provider name to an instance."""

from __future__ import annotations

from edgechat.ai.providers.base import BaseProvider
from edgechat.core.config import AIConfig, ConfigError


def build_provider(ai_config: AIConfig) -> BaseProvider:
    """Instantiate the provider named by ``ai_config.provider``."""
    name = ai_config.provider
    if name == "workers_ai":
        from edgechat.ai.providers.workers_ai_provider import WorkersAIProvider

        return WorkersAIProvider()
    if name == "ollama":
        from edgechat.ai.providers.ollama_provider import OllamaProvider

        return OllamaProvider()
    if name == "groq":
        from edgechat.ai.providers.groq_provider import GroqProvider

        return GroqProvider()
    raise ConfigError(f"Unknown provider: {name!r}")
