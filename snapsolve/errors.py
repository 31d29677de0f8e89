"""Exception hierarchy raised by the conversation engine and its collaborators."""

from __future__ import annotations


class SnapSolveError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(SnapSolveError):
    """The model setup is missing or inconsistent."""


class SessionNotFoundError(SnapSolveError, LookupError):
    """No session record is stored under the requested id."""


class SessionIntegrityError(SnapSolveError):
    """A stored session references a message that could not be loaded."""


class TurnNotFoundError(SnapSolveError, IndexError):
    """The turn index is outside the session."""

    def __init__(self, turn_index: int, turn_count: int) -> None:
        super().__init__(
            f"turn {turn_index} does not exist (session has {turn_count} turns)"
        )
        self.turn_index = turn_index
        self.turn_count = turn_count


class VersionNotFoundError(SnapSolveError, IndexError):
    """The version index is outside the turn's version list."""

    def __init__(self, turn_index: int, version_index: int, version_count: int) -> None:
        super().__init__(
            f"version {version_index} of turn {turn_index} does not exist "
            f"(turn has {version_count} versions)"
        )
        self.turn_index = turn_index
        self.version_index = version_index
        self.version_count = version_count


class TurnRoleError(SnapSolveError, ValueError):
    """A message was appended with a role that breaks user/assistant alternation."""


class RecognitionError(SnapSolveError):
    """The OCR model declined the image or returned an unusable reply.

    ``reason`` carries the model's own explanation when it gave one.
    """

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class GatewayError(SnapSolveError):
    """The completion endpoint could not be reached or returned an error."""

    def __init__(self, message: str, model: str | None = None) -> None:
        super().__init__(message)
        self.model = model


class ImageHostError(SnapSolveError):
    """The configured image host is not supported."""
