"""Image compression and encoding helpers."""

from __future__ import annotations

import base64
import hashlib
import logging
from pathlib import Path

from PIL import Image, ImageOps, UnidentifiedImageError

from snapsolve.images.cache import local_path

logger = logging.getLogger(__name__)

DATA_URI_PREFIX = "data:image/jpeg;base64,"


def compress_image(
    uri: str,
    work_dir: Path,
    max_width: int = 1024,
    quality: int = 80,
) -> str:
    """Downscale to ``max_width`` and re-encode as JPEG.

    Returns the path of the compressed copy, or ``uri`` unchanged when it is
    not a local image Pillow can read.
    """
    path = local_path(uri)
    if path is None:
        return uri

    try:
        with Image.open(path) as src:
            img = ImageOps.exif_transpose(src).convert("RGB")
    except (OSError, UnidentifiedImageError) as exc:
        logger.warning("Image compression failed for %s: %s", uri, exc)
        return uri

    if img.width > max_width:
        height = round(img.height * max_width / img.width)
        img = img.resize((max_width, height), Image.Resampling.LANCZOS)

    work_dir.mkdir(parents=True, exist_ok=True)
    name = hashlib.sha256(str(path.resolve()).encode("utf-8")).hexdigest()[:16]
    out_path = work_dir / f"{name}.jpg"
    img.save(out_path, format="JPEG", quality=quality, optimize=True)
    logger.debug("Compressed %s -> %s (%dx%d)", uri, out_path, img.width, img.height)
    return str(out_path)


def image_to_base64(uri: str) -> str:
    """Base64 payload of a local file or a ``data:`` URI (without the prefix)."""
    if uri.startswith("data:"):
        header, sep, payload = uri.partition(",")
        if not sep or ";base64" not in header:
            raise ValueError("only base64 data URIs are supported")
        return payload

    path = local_path(uri)
    if path is None:
        raise ValueError(f"not a local image: {uri}")
    return base64.b64encode(path.read_bytes()).decode("ascii")


def to_data_uri(base64_image: str) -> str:
    return f"{DATA_URI_PREFIX}{base64_image}"
