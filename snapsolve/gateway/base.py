"""Completion gateway contract."""

from __future__ import annotations

from typing import Protocol, Sequence

from langchain_core.messages import BaseMessage

from snapsolve.models.conf import ModelConfig


class CompletionGateway(Protocol):
    """Stateless chat-completion call: one request, one response.

    Implementations return the text of the top choice (``""`` when the
    model produced none) and raise ``GatewayError`` on any failure.
    """

    async def complete(
        self,
        model: ModelConfig,
        messages: Sequence[BaseMessage],
        *,
        temperature: float | None = None,
        presence_penalty: float | None = None,
        json_mode: bool = False,
    ) -> str: ...
