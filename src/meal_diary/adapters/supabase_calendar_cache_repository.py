"""Supabase-backed calendar cache storage."""

from dataclasses import dataclass
from uuid import UUID

from supabase import Client

from meal_diary.adapters.diary_rows import parse_record, parse_timestamp, record_row
from meal_diary.domain.calendar import CalendarCacheEntry
from meal_diary.services.calendar_cache import CalendarCacheRepository


@dataclass
class SupabaseCalendarCacheRepository(CalendarCacheRepository):
    """Stores month snapshots in the ``calendar_cache`` table."""

    client: Client

    def get_entry(self, user_id: UUID, cache_key: str) -> CalendarCacheEntry | None:
        """Return the stored entry for a user and month key."""
        response = (
            self.client.table("calendar_cache")
            .select("data, expires_at")
            .eq("user_id", str(user_id))
            .eq("cache_key", cache_key)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        row = response.data[0]
        return CalendarCacheEntry(
            user_id=user_id,
            cache_key=cache_key,
            records=[parse_record(item) for item in row.get("data") or []],
            expires_at=parse_timestamp(row["expires_at"]),
        )

    def upsert_entry(self, entry: CalendarCacheEntry) -> None:
        """Insert or overwrite the snapshot for (user, key)."""
        self.client.table("calendar_cache").upsert(
            {
                "user_id": str(entry.user_id),
                "cache_key": entry.cache_key,
                "data": [record_row(record) for record in entry.records],
                "expires_at": entry.expires_at.isoformat(),
            },
            on_conflict="user_id,cache_key",
        ).execute()

    def delete_entry(self, user_id: UUID, cache_key: str) -> None:
        """Delete one snapshot."""
        self.client.table("calendar_cache").delete().eq("user_id", str(user_id)).eq(
            "cache_key", cache_key
        ).execute()

    def delete_user_entries(self, user_id: UUID) -> None:
        """Delete all snapshots for a user."""
        self.client.table("calendar_cache").delete().eq(
            "user_id", str(user_id)
        ).execute()
