"""Question recognition for text-only solving models.

The OCR model is asked for a strict JSON verdict
``{"success": bool, "text": str}``. It refuses anything that is not plain
text (diagrams, plots, formulas drawn as graphics); the refusal reason comes
back in ``text`` and is surfaced to the user through ``RecognitionError``.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from langchain_core.messages import HumanMessage, SystemMessage

from snapsolve.chat.prompts import ocr_system_prompt, ocr_user_instruction
from snapsolve.errors import RecognitionError
from snapsolve.gateway.base import CompletionGateway
from snapsolve.models.conf import ModelConfig

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"^```[\w-]*\s*(.*?)\s*```$", re.DOTALL)


def parse_recognition(raw: str) -> str:
    """Validate the OCR model's JSON reply and return the recognised text."""
    raw = raw.strip()
    fenced = _FENCE.match(raw)
    if fenced:
        raw = fenced.group(1)

    try:
        result: Any = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise RecognitionError(f"recognition reply is not valid JSON: {exc}") from exc

    if not isinstance(result, dict):
        raise RecognitionError("recognition reply is not a JSON object")

    success = result.get("success")
    text = result.get("text")
    if not isinstance(success, bool) or not isinstance(text, str):
        raise RecognitionError(
            "recognition reply must contain a boolean 'success' and a string 'text'"
        )
    if not success:
        raise RecognitionError(text or "question could not be recognised")
    if not text.strip():
        raise RecognitionError("recognition returned no text")
    return text


class TextRecognizer:
    """Turns a question photo into text with the configured OCR model."""

    def __init__(self, gateway: CompletionGateway, model: ModelConfig) -> None:
        self._gateway = gateway
        self._model = model

    @property
    def model(self) -> ModelConfig:
        return self._model

    async def recognize(self, image_url: str) -> str:
        """Return the question text shown in ``image_url``.

        Raises:
            RecognitionError: The model declined the image or replied with
                something other than the expected JSON object.
            GatewayError: The OCR request itself failed.
        """
        messages = [
            SystemMessage(content=ocr_system_prompt()),
            HumanMessage(
                content=[
                    {"type": "image_url", "image_url": {"url": image_url}},
                    {"type": "text", "text": ocr_user_instruction()},
                ]
            ),
        ]
        raw = await self._gateway.complete(self._model, messages, json_mode=True)
        try:
            text = parse_recognition(raw)
        except RecognitionError as exc:
            logger.warning(
                "Recognition failed with model=%s: %s", self._model.model, exc.reason
            )
            raise
        logger.info(
            "Recognised question with model=%s (%d chars)", self._model.model, len(text)
        )
        return text
