"""Tests for the content-addressed image upload cache."""

from __future__ import annotations

import hashlib
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from snapsolve.images.cache import ImageCache, content_hash, local_path
from snapsolve.storage.base import StorageKeys

HOSTED = "https://i.ibb.example/abc.jpg"


class Clock:
    def __init__(self) -> None:
        self.now = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def cache(store, mock_http, test_settings, clock) -> ImageCache:
    return ImageCache(store, mock_http.client, test_settings, clock=clock)


@pytest.fixture
def photo(tmp_path):
    path = tmp_path / "question.jpg"
    path.write_bytes(b"\xff\xd8fake-jpeg-bytes")
    return path


def test_local_path_resolution(photo) -> None:
    assert local_path(str(photo)) == photo
    assert local_path(photo.as_uri()) == photo
    assert local_path("https://example.test/a.jpg") is None
    assert local_path("data:image/jpeg;base64,AAAA") is None
    assert local_path(str(photo.parent / "missing.jpg")) is None


@pytest.mark.asyncio
async def test_hash_uses_file_bytes(photo, tmp_path) -> None:
    """Identical bytes at different paths share a hash."""
    copy = tmp_path / "copy.jpg"
    copy.write_bytes(photo.read_bytes())

    digest = await content_hash(str(photo))
    assert digest == hashlib.sha256(photo.read_bytes()).hexdigest()
    assert await content_hash(copy.as_uri()) == digest


@pytest.mark.asyncio
async def test_hash_falls_back_to_uri() -> None:
    uri = "blob:https://app.example/1234"
    assert await content_hash(uri) == hashlib.sha256(uri.encode()).hexdigest()


@pytest.mark.asyncio
async def test_cache_url_is_last_write_wins(cache, store, photo, clock) -> None:
    """Caching the same image twice leaves one entry with the latest data."""
    await cache.cache_url(str(photo), "https://old.example/1.jpg")
    clock.advance(hours=1)
    entry = await cache.cache_url(str(photo), HOSTED)

    keys = [k for k in await store.get_all_keys() if k.startswith(StorageKeys.IMAGE_CACHE_PREFIX)]
    assert keys == [StorageKeys.image_cache(entry.hash)]
    raw = await store.get_item(keys[0])
    assert raw["uploaded_url"] == HOSTED
    assert entry.timestamp == clock.now


@pytest.mark.asyncio
async def test_get_cached_url_hit(cache, mock_http, photo) -> None:
    mock_http.route("HEAD", HOSTED, lambda request: httpx.Response(200))
    await cache.cache_url(str(photo), HOSTED)

    entry = await cache.get_cached_url(str(photo))

    assert entry is not None
    assert entry.uploaded_url == HOSTED
    assert entry.original_uri == str(photo)
    assert mock_http.count("HEAD") == 1


@pytest.mark.asyncio
async def test_get_cached_url_miss(cache, photo, mock_http) -> None:
    assert await cache.get_cached_url(str(photo)) is None
    assert mock_http.count("HEAD") == 0


@pytest.mark.asyncio
async def test_dead_url_is_evicted(cache, store, photo) -> None:
    """A hosted URL that no longer answers drops the entry."""
    entry = await cache.cache_url(str(photo), HOSTED)  # HEAD falls through to 404

    assert await cache.get_cached_url(str(photo)) is None
    assert await store.get_item(StorageKeys.image_cache(entry.hash)) is None


@pytest.mark.asyncio
async def test_transport_error_counts_as_dead(cache, store, mock_http, photo) -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    mock_http.route("HEAD", HOSTED, refuse)
    entry = await cache.cache_url(str(photo), HOSTED)

    assert await cache.get_cached_url(str(photo)) is None
    assert await store.get_item(StorageKeys.image_cache(entry.hash)) is None


@pytest.mark.asyncio
async def test_expired_entry_is_evicted(cache, store, mock_http, photo, clock) -> None:
    """Entries past the TTL are dropped even when the URL is still live."""
    mock_http.route("HEAD", HOSTED, lambda request: httpx.Response(200))
    entry = await cache.cache_url(str(photo), HOSTED)

    clock.advance(days=7)

    assert await cache.get_cached_url(str(photo)) is None
    assert await store.get_item(StorageKeys.image_cache(entry.hash)) is None


@pytest.mark.asyncio
async def test_entry_within_ttl(cache, mock_http, photo, clock) -> None:
    mock_http.route("HEAD", HOSTED, lambda request: httpx.Response(200))
    await cache.cache_url(str(photo), HOSTED)
    clock.advance(days=6, hours=23)
    assert await cache.get_cached_url(str(photo)) is not None


@pytest.mark.asyncio
async def test_clear_expired_cache(cache, store, clock, tmp_path) -> None:
    """Only cache entries older than the TTL are swept."""
    await store.set_item("chat_1", {"id": "chat_1"})
    await cache.cache_url("blob:old-1", "https://h.example/1.jpg")
    await cache.cache_url("blob:old-2", "https://h.example/2.jpg")
    clock.advance(days=5)
    fresh = await cache.cache_url("blob:new", "https://h.example/3.jpg")
    clock.advance(days=3)

    removed = await cache.clear_expired_cache()

    assert removed == 2
    keys = await store.get_all_keys()
    assert StorageKeys.image_cache(fresh.hash) in keys
    assert "chat_1" in keys
    assert len(keys) == 2
