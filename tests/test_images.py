"""Tests for image hosting, compression and the upload pipeline."""

from __future__ import annotations

import base64
from urllib.parse import parse_qs

import httpx
import pytest
from PIL import Image

from snapsolve.errors import ImageHostError
from snapsolve.images.cache import ImageCache
from snapsolve.images.hosts import IMGBB_URL, ImgbbHost, build_hosts, upload_image
from snapsolve.images.pipeline import ImageUploader
from snapsolve.images.utils import compress_image, image_to_base64, to_data_uri
from snapsolve.models.conf import ImageHostConfig

HOSTED = "https://i.ibb.example/solved.jpg"


@pytest.fixture
def wide_photo(tmp_path):
    path = tmp_path / "wide.png"
    Image.new("RGB", (2048, 1024), (200, 30, 30)).save(path)
    return path


def _imgbb_ok(request: httpx.Request) -> httpx.Response:
    form = parse_qs(request.content.decode())
    assert form["image"][0]
    assert request.url.params["key"] == "imgbb-key"
    return httpx.Response(200, json={"data": {"url": HOSTED}, "success": True})


# ----------------------------------------------------------------------
# Hosts
# ----------------------------------------------------------------------


@pytest.mark.asyncio
async def test_imgbb_upload_success(mock_http) -> None:
    mock_http.route("POST", IMGBB_URL, _imgbb_ok)
    host = ImgbbHost(mock_http.client)

    result = await host.upload("QUJD", ImageHostConfig(api_key="imgbb-key"))

    assert result.success is True
    assert result.url == HOSTED
    assert result.error is None


@pytest.mark.asyncio
async def test_imgbb_upload_failure_is_reported(mock_http) -> None:
    mock_http.route("POST", IMGBB_URL, lambda request: httpx.Response(500))
    host = ImgbbHost(mock_http.client)

    result = await host.upload("QUJD", ImageHostConfig(api_key="imgbb-key"))

    assert result.success is False
    assert result.url is None
    assert result.error


@pytest.mark.asyncio
async def test_imgbb_malformed_reply(mock_http) -> None:
    mock_http.route("POST", IMGBB_URL, lambda request: httpx.Response(200, json={"oops": 1}))
    result = await ImgbbHost(mock_http.client).upload("QUJD", ImageHostConfig(api_key="k"))
    assert result.success is False


@pytest.mark.asyncio
async def test_upload_image_unknown_host(mock_http) -> None:
    with pytest.raises(ImageHostError):
        await upload_image(
            "QUJD", ImageHostConfig(type="nowhere", api_key="k"), build_hosts(mock_http.client)
        )


# ----------------------------------------------------------------------
# Utilities
# ----------------------------------------------------------------------


def test_compress_image_downscales(wide_photo, tmp_path) -> None:
    out = compress_image(str(wide_photo), tmp_path / "out", max_width=1024, quality=80)

    assert out.endswith(".jpg")
    with Image.open(out) as img:
        assert img.format == "JPEG"
        assert img.size == (1024, 512)


def test_compress_image_keeps_small_width(tmp_path) -> None:
    path = tmp_path / "small.png"
    Image.new("RGB", (300, 200)).save(path)
    out = compress_image(str(path), tmp_path / "out")
    with Image.open(out) as img:
        assert img.size == (300, 200)


def test_compress_image_falls_back(tmp_path) -> None:
    broken = tmp_path / "broken.jpg"
    broken.write_bytes(b"not an image")
    assert compress_image(str(broken), tmp_path / "out") == str(broken)
    assert compress_image("https://example.test/a.jpg", tmp_path / "out") == "https://example.test/a.jpg"


def test_image_to_base64(tmp_path) -> None:
    path = tmp_path / "raw.bin"
    path.write_bytes(b"abc")
    assert image_to_base64(str(path)) == base64.b64encode(b"abc").decode()
    assert image_to_base64("data:image/png;base64,QUJD") == "QUJD"
    assert to_data_uri("QUJD") == "data:image/jpeg;base64,QUJD"
    with pytest.raises(ValueError):
        image_to_base64("https://example.test/a.jpg")


# ----------------------------------------------------------------------
# Pipeline
# ----------------------------------------------------------------------


@pytest.fixture
def uploader(store, mock_http, test_settings) -> ImageUploader:
    cache = ImageCache(store, mock_http.client, test_settings)
    return ImageUploader(cache, build_hosts(mock_http.client), test_settings)


@pytest.mark.asyncio
async def test_prepare_without_host_inlines_image(uploader, wide_photo, mock_http) -> None:
    """No image host: the compressed image is sent as a data URI."""
    prepared = await uploader.prepare(str(wide_photo))

    assert prepared.image_uri.startswith("data:image/jpeg;base64,")
    assert prepared.original_uri.endswith(".jpg")
    assert prepared.text is None
    assert mock_http.requests == []


@pytest.mark.asyncio
async def test_prepare_uploads_then_reuses_cache(uploader, wide_photo, mock_http) -> None:
    """A second prepare of the same photo reuses the live upload."""
    mock_http.route("POST", IMGBB_URL, _imgbb_ok)
    mock_http.route("HEAD", HOSTED, lambda request: httpx.Response(200))
    host = ImageHostConfig(api_key="imgbb-key")

    first = await uploader.prepare(str(wide_photo), host)
    second = await uploader.prepare(str(wide_photo), host)

    assert first.image_uri == HOSTED
    assert second.image_uri == HOSTED
    assert mock_http.count("POST") == 1
    assert mock_http.count("HEAD") == 1


@pytest.mark.asyncio
async def test_prepare_falls_back_when_upload_fails(uploader, wide_photo, mock_http) -> None:
    mock_http.route("POST", IMGBB_URL, lambda request: httpx.Response(503))

    prepared = await uploader.prepare(str(wide_photo), ImageHostConfig(api_key="imgbb-key"))

    assert prepared.image_uri.startswith("data:image/jpeg;base64,")


@pytest.mark.asyncio
async def test_prepare_skips_host_without_key(uploader, wide_photo, mock_http) -> None:
    prepared = await uploader.prepare(str(wide_photo), ImageHostConfig(api_key=""))
    assert prepared.image_uri.startswith("data:")
    assert mock_http.requests == []
