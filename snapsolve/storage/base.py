"""Key-value store contract and the persisted key layout."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


class StorageKeys:
    """Fixed keys and key prefixes used in the store."""

    CHAT_PREFIX = "chat_"
    CHAT_IDX = "chat_idx"
    MESSAGE_INFIX = "_msg_"
    IMAGE_CACHE_PREFIX = "imgcache_"
    SETTINGS = "settings"

    @classmethod
    def session(cls, index: int) -> str:
        return f"{cls.CHAT_PREFIX}{index}"

    @classmethod
    def message(cls, session_id: str, seq: int) -> str:
        return f"{session_id}{cls.MESSAGE_INFIX}{seq}"

    @classmethod
    def image_cache(cls, content_hash: str) -> str:
        return f"{cls.IMAGE_CACHE_PREFIX}{content_hash}"


@runtime_checkable
class KeyValueStore(Protocol):
    """Async string-keyed store of JSON-serialisable values.

    Single-key writes are atomic; there are no cross-key transactions.
    """

    async def get_item(self, key: str) -> Any | None: ...

    async def set_item(self, key: str, value: Any) -> None: ...

    async def remove_item(self, key: str) -> None: ...

    async def get_all_keys(self) -> list[str]: ...
