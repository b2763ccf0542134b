"""In-memory calendar cache storage."""

from dataclasses import dataclass
from uuid import UUID

from meal_diary.domain.calendar import CalendarCacheEntry
from meal_diary.services.calendar_cache import CalendarCacheRepository


@dataclass
class InMemoryCalendarCacheRepository(CalendarCacheRepository):
    """Process-local cache storage for single-instance deployments."""

    _entries: dict[tuple[UUID, str], CalendarCacheEntry]

    def __init__(self) -> None:
        self._entries = {}

    def get_entry(self, user_id: UUID, cache_key: str) -> CalendarCacheEntry | None:
        """Return the stored entry; expiry is checked by the caller."""
        return self._entries.get((user_id, cache_key))

    def upsert_entry(self, entry: CalendarCacheEntry) -> None:
        """Replace the entry for its key."""
        self._entries[(entry.user_id, entry.cache_key)] = entry

    def delete_entry(self, user_id: UUID, cache_key: str) -> None:
        """Remove an entry if present."""
        self._entries.pop((user_id, cache_key), None)

    def delete_user_entries(self, user_id: UUID) -> None:
        """Remove all entries for a user."""
        for key in [key for key in self._entries if key[0] == user_id]:
            del self._entries[key]
