"""Per-user, per-month cache of diary entries with a TTL."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Protocol
from uuid import UUID

from meal_diary.domain.calendar import CalendarCacheEntry
from meal_diary.domain.diary import MealRecord

DEFAULT_TTL_SECONDS = 30 * 60

_logger = logging.getLogger(__name__)


class CalendarCacheRepository(Protocol):
    """Storage interface for calendar cache entries."""

    def get_entry(self, user_id: UUID, cache_key: str) -> CalendarCacheEntry | None:
        """Return the stored entry, expired or not."""

    def upsert_entry(self, entry: CalendarCacheEntry) -> None:
        """Insert or replace the entry for its (user, key)."""

    def delete_entry(self, user_id: UUID, cache_key: str) -> None:
        """Delete one entry; missing entries are ignored."""

    def delete_user_entries(self, user_id: UUID) -> None:
        """Delete every entry for a user."""


def cache_key(year: int, month: int) -> str:
    """Return the cache key for a calendar month (1-based)."""
    return f"{year:04d}-{month:02d}"


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class CalendarCache:
    """Read-through accelerator for month views; failures behave as misses."""

    repository: CalendarCacheRepository
    ttl_seconds: int = DEFAULT_TTL_SECONDS
    clock: Callable[[], datetime] = field(default=_utc_now)

    def get(self, user_id: UUID, year: int, month: int) -> list[MealRecord] | None:
        """Return cached records, or None on a miss."""
        key = cache_key(year, month)
        try:
            entry = self.repository.get_entry(user_id, key)
        except Exception:
            _logger.exception(
                "Calendar cache read failed: user=%s key=%s", user_id, key
            )
            return None
        if entry is None:
            return None
        if entry.expires_at <= self.clock():
            self._delete(user_id, key)
            return None
        return list(entry.records)

    def put(
        self, user_id: UUID, year: int, month: int, records: list[MealRecord]
    ) -> None:
        """Store records for a month, resetting the expiry."""
        key = cache_key(year, month)
        entry = CalendarCacheEntry(
            user_id=user_id,
            cache_key=key,
            records=list(records),
            expires_at=self.clock() + timedelta(seconds=self.ttl_seconds),
        )
        try:
            self.repository.upsert_entry(entry)
        except Exception:
            _logger.exception(
                "Calendar cache write failed: user=%s key=%s", user_id, key
            )

    def invalidate(self, user_id: UUID, year: int, month: int) -> None:
        """Drop the entry for one month."""
        self._delete(user_id, cache_key(year, month))

    def invalidate_all(self, user_id: UUID) -> None:
        """Drop every month cached for a user."""
        try:
            self.repository.delete_user_entries(user_id)
        except Exception:
            _logger.exception("Calendar cache purge failed: user=%s", user_id)

    def _delete(self, user_id: UUID, key: str) -> None:
        try:
            self.repository.delete_entry(user_id, key)
        except Exception:
            _logger.exception(
                "Calendar cache delete failed: user=%s key=%s", user_id, key
            )
