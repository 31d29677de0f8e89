"""Image hosting services that turn a base64 image into a public URL."""

from __future__ import annotations

import logging
from typing import Protocol

import httpx

from snapsolve.errors import ImageHostError
from snapsolve.models.conf import ImageHostConfig, UploadResult

logger = logging.getLogger(__name__)

IMGBB_URL = "https://api.imgbb.com/1/upload"


class ImageHost(Protocol):
    async def upload(
        self, base64_image: str, config: ImageHostConfig
    ) -> UploadResult: ...


class ImgbbHost:
    """imgbb.com uploads. Failures are reported in the result, not raised."""

    def __init__(self, http: httpx.AsyncClient) -> None:
        self._http = http

    async def upload(self, base64_image: str, config: ImageHostConfig) -> UploadResult:
        url = config.api_base or IMGBB_URL
        try:
            response = await self._http.post(
                url,
                params={"key": config.api_key},
                data={"image": base64_image},
            )
            response.raise_for_status()
            hosted = response.json()["data"]["url"]
        except (httpx.HTTPError, KeyError, TypeError, ValueError) as exc:
            logger.warning("imgbb upload failed: %s", exc)
            return UploadResult(success=False, error=str(exc) or "Upload failed")
        return UploadResult(success=True, url=hosted)


def build_hosts(http: httpx.AsyncClient) -> dict[str, ImageHost]:
    return {"imgbb": ImgbbHost(http)}


async def upload_image(
    base64_image: str,
    config: ImageHostConfig,
    hosts: dict[str, ImageHost],
) -> UploadResult:
    """Upload through the host named by ``config.type``."""
    host = hosts.get(config.type)
    if host is None:
        raise ImageHostError(f"Unsupported image host: {config.type}")
    return await host.upload(base64_image, config)
