"""Content-addressed cache of uploaded image URLs.

Entries are keyed by the SHA-256 of the image bytes (or of the URI itself
when the bytes are not on local disk). A hit is only returned after two
checks: the entry is younger than the TTL, and the hosted URL still answers
a ``HEAD`` request, since image hosts can purge uploads on their own schedule.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable
from urllib.parse import unquote, urlparse

import httpx

from snapsolve.config import Settings, settings as default_settings
from snapsolve.models.chat import utcnow
from snapsolve.models.images import ImageCacheEntry
from snapsolve.storage.base import KeyValueStore, StorageKeys

logger = logging.getLogger(__name__)


def local_path(uri: str) -> Path | None:
    """Return the file behind ``uri`` if it names a readable local file."""
    if uri.startswith("file://"):
        path = Path(unquote(urlparse(uri).path))
    elif uri.startswith("data:") or "://" in uri:
        return None
    else:
        path = Path(uri)
    return path if path.is_file() else None


async def content_hash(uri: str) -> str:
    """SHA-256 of the image bytes, or of the URI when there is no local file."""
    path = local_path(uri)
    if path is None:
        data = uri.encode("utf-8")
    else:
        data = await asyncio.to_thread(path.read_bytes)
    return hashlib.sha256(data).hexdigest()


class ImageCache:
    """Upload cache over a key-value store."""

    def __init__(
        self,
        store: KeyValueStore,
        http: httpx.AsyncClient,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._http = http
        self._ttl = timedelta(days=(settings or default_settings).image_cache_ttl_days)
        self._clock = clock

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    async def is_url_valid(self, url: str) -> bool:
        try:
            response = await self._http.head(url, follow_redirects=True)
        except httpx.HTTPError as exc:
            logger.warning("Liveness probe failed for %s: %s", url, exc)
            return False
        return response.is_success

    async def get_cached_url(self, uri: str) -> ImageCacheEntry | None:
        """Return the live, unexpired upload for this image, evicting stale ones."""
        digest = await content_hash(uri)
        key = StorageKeys.image_cache(digest)
        raw = await self._store.get_item(key)
        if raw is None:
            return None

        entry = ImageCacheEntry.model_validate(raw)
        if not entry.is_expired(self._ttl, self._clock()) and await self.is_url_valid(
            entry.uploaded_url
        ):
            logger.debug("Image cache hit for %s", uri)
            return entry

        await self._store.remove_item(key)
        logger.info("Evicted stale image cache entry %s", digest[:12])
        return None

    async def cache_url(self, uri: str, uploaded_url: str) -> ImageCacheEntry:
        """Record ``uploaded_url`` for this image, replacing any earlier entry."""
        digest = await content_hash(uri)
        entry = ImageCacheEntry(
            hash=digest,
            original_uri=uri,
            uploaded_url=uploaded_url,
            timestamp=self._clock(),
        )
        await self._store.set_item(
            StorageKeys.image_cache(digest), entry.model_dump(mode="json")
        )
        return entry

    async def clear_expired_cache(self) -> int:
        """Delete every entry older than the TTL. Returns how many were removed."""
        now = self._clock()
        removed = 0
        for key in await self._store.get_all_keys():
            if not key.startswith(StorageKeys.IMAGE_CACHE_PREFIX):
                continue
            raw = await self._store.get_item(key)
            if raw is None:
                continue
            if ImageCacheEntry.model_validate(raw).is_expired(self._ttl, now):
                await self._store.remove_item(key)
                removed += 1
        logger.info("Removed %d expired image cache entries", removed)
        return removed
