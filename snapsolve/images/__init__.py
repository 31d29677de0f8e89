from snapsolve.images.cache import ImageCache, content_hash
from snapsolve.images.hosts import ImageHost, ImgbbHost, build_hosts, upload_image
from snapsolve.images.pipeline import ImageUploader

__all__ = [
    "ImageCache",
    "ImageHost",
    "ImageUploader",
    "ImgbbHost",
    "build_hosts",
    "content_hash",
    "upload_image",
]
