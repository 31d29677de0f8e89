"""Pydantic data model shared by the engine, the stores and the UI layer."""

from snapsolve.models.chat import (
    ChatInput,
    ChatMessage,
    ChatSession,
    ChatTurn,
    HistoryPage,
    MessageRole,
)
from snapsolve.models.conf import (
    ChatConf,
    ImageHostConfig,
    ModelConfig,
    ModelType,
    UploadResult,
)
from snapsolve.models.images import ImageCacheEntry

__all__ = [
    "ChatConf",
    "ChatInput",
    "ChatMessage",
    "ChatSession",
    "ChatTurn",
    "HistoryPage",
    "ImageCacheEntry",
    "ImageHostConfig",
    "MessageRole",
    "ModelConfig",
    "ModelType",
    "UploadResult",
]
