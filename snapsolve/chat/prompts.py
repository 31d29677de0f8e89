"""Prompt texts for the solving and OCR models."""

from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml


_DEFAULT_PATH = Path(__file__).parent / "prompts.yaml"

_REQUIRED_KEYS = (
    "solving_system_prompt",
    "ocr_system_prompt",
    "ocr_user_instruction",
    "image_question_instruction",
)


def load_prompts(path: Path | None = None) -> dict[str, Any]:
    """Load prompt texts from a YAML file.

    Args:
        path: Optional path to a prompts YAML file.
              Defaults to prompts.yaml in this directory.

    Returns:
        Dictionary of prompt name to text.

    Raises:
        FileNotFoundError: If the prompts file does not exist.
        KeyError: If a required prompt is missing.
        yaml.YAMLError: If the file contains invalid YAML.
    """
    config_path = path or _DEFAULT_PATH

    if not config_path.exists():
        raise FileNotFoundError(f"Prompts file not found: {config_path}")

    with open(config_path, encoding="utf-8") as f:
        prompts: dict[str, Any] = yaml.safe_load(f) or {}

    missing = [key for key in _REQUIRED_KEYS if not prompts.get(key)]
    if missing:
        raise KeyError(f"Prompts file {config_path} is missing: {', '.join(missing)}")

    return {key: str(value).strip() for key, value in prompts.items()}


@lru_cache(maxsize=1)
def default_prompts() -> dict[str, Any]:
    return load_prompts()


def solving_system_prompt() -> str:
    return default_prompts()["solving_system_prompt"]


def ocr_system_prompt() -> str:
    return default_prompts()["ocr_system_prompt"]


def ocr_user_instruction() -> str:
    return default_prompts()["ocr_user_instruction"]


def image_question_instruction() -> str:
    return default_prompts()["image_question_instruction"]
