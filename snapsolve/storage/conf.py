"""Persisted user configuration (model list and image host)."""

from __future__ import annotations

import logging

from pydantic import ValidationError

from snapsolve.errors import ConfigurationError
from snapsolve.models.conf import ChatConf
from snapsolve.storage.base import KeyValueStore, StorageKeys

logger = logging.getLogger(__name__)


async def load_chat_conf(store: KeyValueStore) -> ChatConf:
    """Return the stored configuration, or an empty one on first run."""
    raw = await store.get_item(StorageKeys.SETTINGS)
    if raw is None:
        return ChatConf()
    try:
        return ChatConf.model_validate(raw)
    except ValidationError as exc:
        logger.error("Stored chat configuration is invalid: %s", exc)
        raise ConfigurationError(f"stored chat configuration is invalid: {exc}") from exc


async def save_chat_conf(store: KeyValueStore, conf: ChatConf) -> None:
    await store.set_item(StorageKeys.SETTINGS, conf.model_dump(mode="json"))
    logger.info(
        "Saved chat configuration (%d models, solving=%s, ocr=%s)",
        len(conf.models),
        conf.active_solving_model or "-",
        conf.active_ocr_model or "-",
    )
