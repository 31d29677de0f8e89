"""Image upload cache entries."""

from datetime import datetime, timedelta

from pydantic import BaseModel, Field

from snapsolve.models.chat import utcnow


class ImageCacheEntry(BaseModel):
    """A previously uploaded image, keyed by the hash of its content."""

    hash: str
    original_uri: str
    uploaded_url: str
    timestamp: datetime = Field(default_factory=utcnow)

    def is_expired(self, ttl: timedelta, now: datetime | None = None) -> bool:
        return (now or utcnow()) - self.timestamp >= ttl
