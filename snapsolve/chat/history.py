"""Session index and session/message persistence.

Sessions are numbered by a monotonically increasing counter stored under
``chat_idx``; session ``n`` lives at ``chat_<n>`` and its messages at
``chat_<n>_msg_<k>``. Numbers are never reused, so deleted sessions leave
holes that the paginated listing skips.

Pagination cursor: the number of index slots already scanned from the newest
end. Every scanned slot advances it, hit or hole, so chaining the returned
cursor enumerates each stored session exactly once, newest first.
"""

from __future__ import annotations

import logging
from typing import Iterable

from snapsolve.config import Settings, settings as default_settings
from snapsolve.models.chat import ChatMessage, ChatSession, HistoryPage
from snapsolve.storage.base import KeyValueStore, StorageKeys

logger = logging.getLogger(__name__)


class ChatHistory:
    """History index over a key-value store.

    Create one per process and share it between sessions; the counter is
    cached after the first read.
    """

    def __init__(self, store: KeyValueStore, settings: Settings | None = None) -> None:
        self._store = store
        self._batch_size = (settings or default_settings).history_batch_size
        self._current_idx: int | None = None

    @property
    def batch_size(self) -> int:
        return self._batch_size

    async def _high_water_mark(self) -> int:
        if self._current_idx is None:
            stored = await self._store.get_item(StorageKeys.CHAT_IDX)
            self._current_idx = int(stored or 0)
            logger.debug("Loaded chat history index: %d", self._current_idx)
        return self._current_idx

    # ------------------------------------------------------------------
    # Index
    # ------------------------------------------------------------------

    async def get_next_session_id(self) -> str:
        """Allocate the next session number and return its key."""
        current = await self._high_water_mark()
        next_idx = current + 1
        await self._store.set_item(StorageKeys.CHAT_IDX, next_idx)
        self._current_idx = next_idx
        logger.info("Allocated session %s", StorageKeys.session(next_idx))
        return StorageKeys.session(next_idx)

    async def load_history(self, cursor: int = 0) -> HistoryPage:
        """Return up to ``batch_size`` stored sessions, newest first.

        Always continue with the returned cursor; it counts scanned slots,
        not returned sessions.
        """
        high = await self._high_water_mark()
        cursor = max(cursor, 0)
        sessions: list[ChatSession] = []

        idx = high - cursor
        while idx >= 1 and len(sessions) < self._batch_size:
            raw = await self._store.get_item(StorageKeys.session(idx))
            cursor += 1
            idx -= 1
            if raw is not None:
                sessions.append(ChatSession.model_validate(raw))

        logger.debug(
            "Loaded %d sessions from history (cursor=%d, high=%d)",
            len(sessions),
            cursor,
            high,
        )
        return HistoryPage(cursor=cursor, sessions=sessions)

    async def has_more_history(self, cursor: int) -> bool:
        high = await self._high_water_mark()
        return high - cursor > 0

    async def clear_history(self) -> None:
        """Delete every session record and reset the counter.

        Message keys are left in place.
        """
        high = await self._high_water_mark()
        for idx in range(1, high + 1):
            await self._store.remove_item(StorageKeys.session(idx))
        self._current_idx = 0
        await self._store.set_item(StorageKeys.CHAT_IDX, 0)
        logger.info("Cleared chat history (%d slots)", high)

    # ------------------------------------------------------------------
    # Session records
    # ------------------------------------------------------------------

    async def update_session(
        self, session: ChatSession, message: ChatMessage | None = None
    ) -> None:
        """Write ``message`` (if any) and then the session record."""
        if message is not None:
            await self._store.set_item(message.id, message.model_dump(mode="json"))
        await self._store.set_item(session.id, session.model_dump(mode="json"))

    async def reset_session(
        self, session: ChatSession, message_ids: Iterable[str]
    ) -> None:
        """Delete discarded messages and then write the shortened session."""
        removed = 0
        for message_id in message_ids:
            await self._store.remove_item(message_id)
            removed += 1
        await self._store.set_item(session.id, session.model_dump(mode="json"))
        logger.debug("Reset session %s (%d messages removed)", session.id, removed)

    async def get_session(self, session_id: str) -> ChatSession | None:
        raw = await self._store.get_item(session_id)
        if raw is None:
            return None
        return ChatSession.model_validate(raw)

    async def get_messages(self, session: ChatSession) -> dict[str, ChatMessage]:
        """Load every stored message version referenced by the session."""
        messages: dict[str, ChatMessage] = {}
        for turn in session.turns:
            for message_id in turn.message_ids:
                raw = await self._store.get_item(message_id)
                if raw is None:
                    logger.warning(
                        "Session %s references missing message %s",
                        session.id,
                        message_id,
                    )
                    continue
                messages[message_id] = ChatMessage.model_validate(raw)
        return messages

    async def delete_session(self, session_id: str) -> bool:
        """Remove one session and all of its message versions.

        Returns ``False`` when no such session is stored.
        """
        session = await self.get_session(session_id)
        if session is None:
            return False
        for turn in session.turns:
            for message_id in turn.message_ids:
                await self._store.remove_item(message_id)
        await self._store.remove_item(session_id)
        logger.info("Deleted session %s", session_id)
        return True
