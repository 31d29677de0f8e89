"""User-facing model and image-host configuration."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class ModelType(str, Enum):
    """Input modalities a configured model accepts."""

    MULTIMODAL = "mm"
    VISION_LANGUAGE = "vl"
    TEXT = "text"


class ModelConfig(BaseModel):
    """One entry of the user's model list."""

    title: str
    type: ModelType = ModelType.MULTIMODAL
    model: str
    api_base: str = ""
    api_key: str = ""
    provider: str = "openai"

    @property
    def is_text_only(self) -> bool:
        return self.type == ModelType.TEXT


class ImageHostConfig(BaseModel):
    """Credentials for the image hosting service."""

    type: str = "imgbb"
    api_key: str = ""
    api_base: Optional[str] = None


class UploadResult(BaseModel):
    """Outcome of an image upload."""

    success: bool
    url: Optional[str] = None
    error: Optional[str] = None


class ChatConf(BaseModel):
    """The user's model list plus the active solving and OCR selections."""

    models: list[ModelConfig] = Field(default_factory=list)
    active_solving_model: str = ""
    active_ocr_model: str = ""
    image_host: ImageHostConfig = Field(default_factory=ImageHostConfig)

    def find_model(self, title: str) -> ModelConfig | None:
        for model in self.models:
            if model.title == title:
                return model
        return None
