"""The flattened one-message-per-turn view of a session."""

from __future__ import annotations

from typing import Mapping

from snapsolve.errors import SessionIntegrityError
from snapsolve.models.chat import ChatMessage, ChatSession


def project(
    session: ChatSession, messages: Mapping[str, ChatMessage]
) -> list[ChatMessage]:
    """Return the active message of every turn, in turn order.

    Raises ``SessionIntegrityError`` if an active message is missing, so the
    result always has exactly one entry per turn.
    """
    current: list[ChatMessage] = []
    for turn in session.turns:
        message_id = turn.active_message_id
        message = messages.get(message_id)
        if message is None:
            raise SessionIntegrityError(
                f"session {session.id or '<new>'} turn {turn.turn_index} "
                f"references missing message {message_id}"
            )
        current.append(message)
    return current


def referenced_message_ids(session: ChatSession, from_turn: int = 0) -> list[str]:
    """Every message id (all versions) held by turns ``from_turn`` onwards."""
    return [
        message_id
        for turn in session.turns[from_turn:]
        for message_id in turn.message_ids
    ]
