"""Configuration loader for EdgeChat."""

from __future__ import annotations

import os
import warnings
from dataclasses import dataclass, field
from pathlib import Path

import yaml
from dotenv import load_dotenv

DEFAULT_MODEL = "@cf/meta/llama-3.1-8b-instruct"

_STORAGE_BACKENDS = {"file", "memory"}

# Credentials each provider reads from the environment
_PROVIDER_KEYS: dict[str, tuple[str, ...]] = {
    "workers_ai": ("CLOUDFLARE_ACCOUNT_ID", "CLOUDFLARE_API_TOKEN"),
    "groq": ("GROQ_API_KEY",),
    "ollama": (),
}


class ConfigError(ValueError):
    """Raised when the configuration holds an unusable value."""


@dataclass
class AIConfig:
    provider: str = "workers_ai"
    model: str = DEFAULT_MODEL
    max_output_tokens: int = 256


@dataclass
class SessionConfig:
    max_turns: int = 10
    max_stored_turns: int | None = None
    default_session_id: str = "default"
    require_explicit_session_id: bool = False
    max_cached_sessions: int = 1024


@dataclass
class StorageConfig:
    backend: str = "file"
    path: str = "./data/sessions"


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 8000


@dataclass
class SystemConfig:
    debug: bool = False


@dataclass
class EdgeChatConfig:
    ai: AIConfig = field(default_factory=AIConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    system: SystemConfig = field(default_factory=SystemConfig)


def _read_yaml(path: str | None) -> dict:
    if path:
        if not Path(path).exists():
            raise ConfigError(f"Config file not found: {path}")
        with open(path) as fh:
            return yaml.safe_load(fh) or {}
    default_path = Path(__file__).parent.parent.parent / "config" / "edgechat_config.yaml"
    if default_path.exists():
        with open(default_path) as fh:
            return yaml.safe_load(fh) or {}
    return {}


def _int(section: dict, name: str, key: str, default: int) -> int:
    value = section.get(key, default)
    if isinstance(value, bool):
        raise ConfigError(f"{name}.{key} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name}.{key} must be an integer, got {value!r}") from exc


def _bool(section: dict, name: str, key: str, default: bool) -> bool:
    value = section.get(key, default)
    if not isinstance(value, bool):
        raise ConfigError(f"{name}.{key} must be true or false, got {value!r}")
    return value


def load_config(path: str | None = None) -> EdgeChatConfig:
    """Load configuration from a YAML file and .env, returning an EdgeChatConfig."""
    load_dotenv()
    raw = _read_yaml(path)

    ai_raw = raw.get("ai", {}) or {}
    ai_config = AIConfig(
        provider=os.environ.get("EDGECHAT_PROVIDER") or ai_raw.get("provider", "workers_ai"),
        model=os.environ.get("EDGECHAT_MODEL") or ai_raw.get("model", DEFAULT_MODEL),
        max_output_tokens=_int(ai_raw, "ai", "max_output_tokens", 256),
    )

    sess_raw = raw.get("session", {}) or {}
    session_config = SessionConfig(
        max_turns=_int(sess_raw, "session", "max_turns", 10),
        max_stored_turns=(
            _int(sess_raw, "session", "max_stored_turns", 0)
            if sess_raw.get("max_stored_turns") is not None
            else None
        ),
        default_session_id=str(sess_raw.get("default_session_id", "default")),
        require_explicit_session_id=_bool(
            sess_raw, "session", "require_explicit_session_id", False
        ),
        max_cached_sessions=_int(sess_raw, "session", "max_cached_sessions", 1024),
    )

    storage_raw = raw.get("storage", {}) or {}
    storage_config = StorageConfig(
        backend=storage_raw.get("backend", "file"),
        path=os.environ.get("EDGECHAT_STORAGE_PATH")
        or storage_raw.get("path", "./data/sessions"),
    )

    server_raw = raw.get("server", {}) or {}
    server_config = ServerConfig(
        host=server_raw.get("host", "0.0.0.0"),
        port=_int(server_raw, "server", "port", 8000),
    )

    sys_raw = raw.get("system", {}) or {}
    system_config = SystemConfig(debug=_bool(sys_raw, "system", "debug", False))

    config = EdgeChatConfig(
        ai=ai_config,
        session=session_config,
        storage=storage_config,
        server=server_config,
        system=system_config,
    )
    validate_config(config)
    _validate_api_keys(config.ai.provider)
    return config


def validate_config(config: EdgeChatConfig) -> None:
    """Raise ConfigError for values the rest of the app cannot work with."""
    if config.ai.provider not in _PROVIDER_KEYS:
        raise ConfigError(
            f"Unknown provider {config.ai.provider!r}; expected one of {sorted(_PROVIDER_KEYS)}"
        )
    if config.ai.max_output_tokens < 1:
        raise ConfigError("ai.max_output_tokens must be at least 1")
    if config.session.max_turns < 1:
        raise ConfigError("session.max_turns must be at least 1")
    stored = config.session.max_stored_turns
    if stored is not None and stored < config.session.max_turns:
        raise ConfigError("session.max_stored_turns must not be smaller than session.max_turns")
    if config.session.max_cached_sessions < 1:
        raise ConfigError("session.max_cached_sessions must be at least 1")
    if not config.session.default_session_id:
        raise ConfigError("session.default_session_id must not be empty")
    if config.storage.backend not in _STORAGE_BACKENDS:
        raise ConfigError(
            f"Unknown storage backend {config.storage.backend!r}; "
            f"expected one of {sorted(_STORAGE_BACKENDS)}"
        )


def _validate_api_keys(provider: str) -> None:
    """Warn if the selected provider's credentials are missing."""
    missing = [key for key in _PROVIDER_KEYS.get(provider, ()) if not os.environ.get(key)]
    if missing:
        warnings.warn(
            f"{', '.join(missing)} not set. "
            f"The {provider} provider will not be available.",
            stacklevel=3,
        )
