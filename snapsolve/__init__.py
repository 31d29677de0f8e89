"""Conversation state engine for a photo-or-type question solver."""

from snapsolve.chat import ChatHistory, SessionEngine
from snapsolve.client import SnapSolveClient
from snapsolve.config import Settings, get_settings
from snapsolve.errors import (
    ConfigurationError,
    GatewayError,
    ImageHostError,
    RecognitionError,
    SessionIntegrityError,
    SessionNotFoundError,
    SnapSolveError,
    TurnNotFoundError,
    TurnRoleError,
    VersionNotFoundError,
)
from snapsolve.images import ImageCache, ImageUploader
from snapsolve.models import ChatConf, ChatInput, ChatMessage, ChatSession, ModelConfig

__version__ = "0.1.0"

__all__ = [
    "ChatConf",
    "ChatHistory",
    "ChatInput",
    "ChatMessage",
    "ChatSession",
    "ConfigurationError",
    "GatewayError",
    "ImageCache",
    "ImageHostError",
    "ImageUploader",
    "ModelConfig",
    "RecognitionError",
    "SessionEngine",
    "SessionIntegrityError",
    "SessionNotFoundError",
    "Settings",
    "SnapSolveClient",
    "SnapSolveError",
    "TurnNotFoundError",
    "TurnRoleError",
    "VersionNotFoundError",
    "get_settings",
]
