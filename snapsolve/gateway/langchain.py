"""LangChain-backed completion gateway.

Models are addressed by the user's ``ModelConfig`` rather than by a fixed
registry: OpenAI-compatible endpoints (any ``api_base``) go through
``ChatOpenAI``, Google models through ``ChatGoogleGenerativeAI``.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import BaseMessage
from langchain_core.runnables import Runnable
from langchain_google_genai import ChatGoogleGenerativeAI
from langchain_openai import ChatOpenAI

from snapsolve.errors import GatewayError
from snapsolve.models.conf import ModelConfig

logger = logging.getLogger(__name__)

GOOGLE_PROVIDERS = frozenset({"google", "gemini"})


def message_text(content: Any) -> str:
    """Flatten a LangChain message ``content`` into plain text."""
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    parts: list[str] = []
    for block in content:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


class LangChainGateway:
    """``CompletionGateway`` that builds a chat model per request."""

    def build_llm(
        self,
        model: ModelConfig,
        *,
        temperature: float | None = None,
        presence_penalty: float | None = None,
        json_mode: bool = False,
    ) -> Runnable:
        """Create the LangChain chat model for one request."""
        if model.provider.lower() in GOOGLE_PROVIDERS:
            kwargs: dict[str, Any] = {}
            # presence_penalty is an OpenAI sampling option; Gemini ignores it here
            if temperature is not None:
                kwargs["temperature"] = temperature
            if json_mode:
                kwargs["response_mime_type"] = "application/json"
            return ChatGoogleGenerativeAI(
                model=model.model,
                google_api_key=model.api_key,
                **kwargs,
            )

        kwargs = {}
        if temperature is not None:
            kwargs["temperature"] = temperature
        if presence_penalty is not None:
            kwargs["presence_penalty"] = presence_penalty
        llm: BaseChatModel = ChatOpenAI(
            model=model.model,
            api_key=model.api_key,
            base_url=model.api_base or None,
            **kwargs,
        )
        if json_mode:
            return llm.bind(response_format={"type": "json_object"})
        return llm

    async def complete(
        self,
        model: ModelConfig,
        messages: Sequence[BaseMessage],
        *,
        temperature: float | None = None,
        presence_penalty: float | None = None,
        json_mode: bool = False,
    ) -> str:
        try:
            llm = self.build_llm(
                model,
                temperature=temperature,
                presence_penalty=presence_penalty,
                json_mode=json_mode,
            )
            response = await llm.ainvoke(list(messages))
        except Exception as exc:
            logger.error(
                "Completion request failed: model=%s error_type=%s error=%s",
                model.model,
                type(exc).__name__,
                exc,
            )
            raise GatewayError(
                f"completion request to {model.model} failed: {exc}",
                model=model.model,
            ) from exc

        text = message_text(getattr(response, "content", None))
        logger.debug(
            "Completion received: model=%s messages=%d chars=%d",
            model.model,
            len(messages),
            len(text),
        )
        return text
