"""Session state manager — owns one conversation's transcript."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from edgechat.ai.providers.base import BaseProvider, normalize_reply
from edgechat.core.config import AIConfig, SessionConfig
from edgechat.memory.session_store import StoreScope
from edgechat.memory.transcript import (
    Role,
    Turn,
    dump_transcript,
    load_transcript,
    render_prompt,
    window,
)

logger = logging.getLogger(__name__)

HISTORY_KEY = "history"


@dataclass
class ChatResult:
    reply: str
    history: list[Turn] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"reply": self.reply, "history": dump_transcript(self.history)}


class ChatSession:
    """Single writer for one session's transcript.

    Every call to :meth:`handle_message` holds the session lock from the load
    until the persist, so overlapping requests for the same id cannot read
    the same stale transcript.
    """

    def __init__(
        self,
        session_id: str,
        storage: StoreScope,
        provider: BaseProvider,
        ai_config: AIConfig | None = None,
        session_config: SessionConfig | None = None,
    ) -> None:
        self.session_id = session_id
        self._storage = storage
        self._provider = provider
        self._ai = ai_config or AIConfig()
        self._settings = session_config or SessionConfig()
        self._lock = asyncio.Lock()
        self._pending = 0

    @property
    def busy(self) -> bool:
        """True while a request is running or waiting for the lock."""
        return self._pending > 0

    async def handle_message(self, message: str) -> ChatResult:
        """Turn one user message into a reply and persist both turns.

        ``message`` must already be trimmed and non-empty. Provider and store
        errors propagate; nothing is persisted unless generation succeeds.
        """
        self._pending += 1
        try:
            async with self._lock:
                return await self._run(message)
        finally:
            self._pending -= 1

    async def _run(self, message: str) -> ChatResult:
        history = load_transcript(await self._storage.get(HISTORY_KEY))
        logger.debug("Session %s: loaded %d turns", self.session_id, len(history))

        history.append(Turn(Role.USER, message))
        recent = window(history, self._settings.max_turns)
        prompt = render_prompt(recent)
        logger.debug(
            "Session %s: prompting with %d turns (%d chars)",
            self.session_id,
            len(recent),
            len(prompt),
        )

        result = await self._provider.generate(
            prompt,
            model=self._ai.model,
            max_tokens=self._ai.max_output_tokens,
        )
        reply = normalize_reply(result)

        history.append(Turn(Role.ASSISTANT, reply))
        stored = history
        if self._settings.max_stored_turns is not None:
            stored = window(history, self._settings.max_stored_turns)
        await self._storage.put(HISTORY_KEY, dump_transcript(stored))

        logger.info(
            "Session %s: turn complete (%d stored turns, reply %d chars)",
            self.session_id,
            len(stored),
            len(reply),
        )
        return ChatResult(reply=reply, history=window(history, self._settings.max_turns))

