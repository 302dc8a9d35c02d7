"""Conversation turns, the context window and prompt rendering."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum

from edgechat.memory.session_store import StoreError

SYSTEM_PROMPT = (
    "You are a direct, technical assistant. "
    "Use the short chat history and answer clearly, no fluff."
)

_CONVERSATION_HEADER = "\n\nConversation:\n"
_ASSISTANT_CUE = "\nASSISTANT:"


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class Turn:
    role: Role
    content: str

    def to_dict(self) -> dict[str, str]:
        data = asdict(self)
        data["role"] = self.role.value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> Turn:
        return cls(role=Role(data["role"]), content=str(data.get("content", "")))


def load_transcript(raw: object) -> list[Turn]:
    """Decode a stored transcript; anything that is not a list counts as empty.

    Raises:
        StoreError: If a stored turn is malformed (missing or unknown role).
    """
    if not isinstance(raw, list):
        return []
    try:
        return [Turn.from_dict(item) for item in raw]
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise StoreError(f"Malformed turn in stored transcript: {exc!r}") from exc


def dump_transcript(turns: list[Turn]) -> list[dict[str, str]]:
    return [t.to_dict() for t in turns]


def window(turns: list[Turn], max_turns: int) -> list[Turn]:
    """Return the most recent ``max_turns`` turns (the whole list if shorter)."""
    if max_turns <= 0:
        return []
    return list(turns[-max_turns:])


def render_prompt(turns: list[Turn], system_prompt: str = SYSTEM_PROMPT) -> str:
    """Render the windowed turns into a single completion prompt.

    Each turn becomes ``"<ROLE>: <content>"``; content is inserted verbatim.
    """
    lines = "\n".join(f"{t.role.value.upper()}: {t.content}" for t in turns)
    return system_prompt + _CONVERSATION_HEADER + lines + _ASSISTANT_CUE
