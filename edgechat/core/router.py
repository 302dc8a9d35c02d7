"""Session router: one ChatSession per session id, created on first use."""

from __future__ import annotations

import logging
from collections import OrderedDict

from edgechat.ai.providers.base import BaseProvider
from edgechat.core.config import AIConfig, SessionConfig
from edgechat.core.session_manager import ChatResult, ChatSession
from edgechat.memory.session_store import BaseSessionStore

logger = logging.getLogger(__name__)


class MissingSessionIdError(ValueError):
    """Raised when a request omits its session id and a default is not allowed."""


class SessionRouter:
    """Dispatches requests to the ChatSession responsible for their id.

    Sessions are kept in LRU order. Once more than ``max_cached_sessions`` are
    held, the least recently used idle ones are dropped; their transcripts stay
    in the store and a later request rebuilds the session. Busy sessions are
    never dropped, so concurrent requests for one id share one lock.
    """

    def __init__(
        self,
        store: BaseSessionStore,
        provider: BaseProvider,
        ai_config: AIConfig | None = None,
        session_config: SessionConfig | None = None,
    ) -> None:
        self._store = store
        self._provider = provider
        self._ai = ai_config or AIConfig()
        self._settings = session_config or SessionConfig()
        self._sessions: OrderedDict[str, ChatSession] = OrderedDict()

    @property
    def provider(self) -> BaseProvider:
        return self._provider

    def resolve_session_id(self, session_id: str | None) -> str:
        """Return the id to use, substituting the default when allowed."""
        if session_id:
            return session_id
        if self._settings.require_explicit_session_id:
            raise MissingSessionIdError("missing session id")
        return self._settings.default_session_id

    def get(self, session_id: str) -> ChatSession:
        session = self._sessions.get(session_id)
        if session is not None:
            self._sessions.move_to_end(session_id)
        else:
            session = ChatSession(
                session_id,
                storage=self._store.scope(session_id),
                provider=self._provider,
                ai_config=self._ai,
                session_config=self._settings,
            )
            self._sessions[session_id] = session
            logger.debug("Created session %s", session_id)
            self._evict_idle()
        return session

    def _evict_idle(self) -> None:
        excess = len(self._sessions) - self._settings.max_cached_sessions
        if excess <= 0:
            return
        # last entry is the one just created
        for session_id in list(self._sessions)[:-1]:
            if excess <= 0:
                break
            if self._sessions[session_id].busy:
                continue
            del self._sessions[session_id]
            excess -= 1
            logger.debug("Evicted idle session %s", session_id)

    async def handle_message(self, session_id: str | None, message: str) -> ChatResult:
        return await self.get(self.resolve_session_id(session_id)).handle_message(message)

    def session_count(self) -> int:
        return len(self._sessions)
