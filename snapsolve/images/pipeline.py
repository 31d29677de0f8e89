"""Turns a picked or captured photo into a ``ChatInput``.

Steps: compress, reuse a cached upload when one is still live, otherwise
upload to the configured image host and remember the URL. Without a host (or
when the upload fails) the image is sent inline as a base64 data URI.
"""

from __future__ import annotations

import asyncio
import logging

from snapsolve.config import Settings, settings as default_settings
from snapsolve.images.cache import ImageCache
from snapsolve.images.hosts import ImageHost, upload_image
from snapsolve.images.utils import compress_image, image_to_base64, to_data_uri
from snapsolve.models.chat import ChatInput
from snapsolve.models.conf import ImageHostConfig

logger = logging.getLogger(__name__)


class ImageUploader:
    """Prepares question images for the solving or OCR model."""

    def __init__(
        self,
        cache: ImageCache,
        hosts: dict[str, ImageHost],
        settings: Settings | None = None,
    ) -> None:
        self._cache = cache
        self._hosts = hosts
        self._settings = settings or default_settings

    async def prepare(
        self, uri: str, image_host: ImageHostConfig | None = None
    ) -> ChatInput:
        """Return the input for ``uri``: the URL to send and the URI to display."""
        compressed = await asyncio.to_thread(
            compress_image,
            uri,
            self._settings.image_work_dir,
            self._settings.image_max_width,
            self._settings.image_jpeg_quality,
        )

        image_url = ""
        encoded: str | None = None
        if image_host is not None and image_host.api_key:
            cached = await self._cache.get_cached_url(uri)
            if cached is not None:
                image_url = cached.uploaded_url
            else:
                encoded = await asyncio.to_thread(image_to_base64, compressed)
                result = await upload_image(encoded, image_host, self._hosts)
                if result.success and result.url:
                    image_url = result.url
                    await self._cache.cache_url(uri, image_url)
                    logger.info("Uploaded question image to %s", image_host.type)
                else:
                    logger.warning(
                        "Upload to %s failed, sending image inline: %s",
                        image_host.type,
                        result.error,
                    )

        if not image_url:
            if encoded is None:
                encoded = await asyncio.to_thread(image_to_base64, compressed)
            image_url = to_data_uri(encoded)

        return ChatInput(image_uri=image_url, original_uri=compressed)
