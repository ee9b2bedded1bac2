from __future__ import annotations

from datetime import UTC, datetime, timedelta

from pydantic import BaseModel

from shadcndocs.models.fetch import FetchResult


class CacheEntry(BaseModel):
    """Persisted envelope for one fetched URL."""

    url: str
    data: FetchResult
    timestamp: datetime  # When the result was stored (UTC)

    def age(self, now: datetime | None = None) -> timedelta:
        return (now or datetime.now(UTC)) - self.timestamp

    def is_expired(self, ttl: timedelta, now: datetime | None = None) -> bool:
        return self.age(now) >= ttl
