"""Calendar read path: month views backed by the calendar cache."""

import logging
from dataclasses import dataclass
from datetime import date
from uuid import UUID
from zoneinfo import ZoneInfo

from meal_diary.domain.calendar import MonthStats
from meal_diary.domain.diary import MEAL_SLOTS, MealRecord
from meal_diary.services.calendar_cache import CalendarCache
from meal_diary.services.diary import DiaryRepository, month_bounds

_logger = logging.getLogger(__name__)


@dataclass
class CalendarService:
    """Answers which days of a month have meals, and what they were."""

    repository: DiaryRepository
    cache: CalendarCache
    timezone_name: str = "UTC"

    @property
    def tz(self) -> ZoneInfo:
        """Timezone whose calendar days the diary is organised by."""
        return ZoneInfo(self.timezone_name)

    def get_month(self, user_id: UUID, year: int, month: int) -> list[MealRecord]:
        """Return a month's records, newest first, via the cache."""
        cached = self.cache.get(user_id, year, month)
        if cached is not None:
            return cached
        start, end = month_bounds(year, month, self.tz)
        try:
            records = self.repository.list_records(user_id, start, end)
        except Exception:
            _logger.exception(
                "Failed to load diary month %s-%02d for user=%s", year, month, user_id
            )
            return []
        self.cache.put(user_id, year, month, records)
        return records

    def month_overview(
        self, user_id: UUID, year: int, month: int
    ) -> dict[date, list[str]]:
        """Map each local day with meals to the meal slots present."""
        tz = self.tz
        present: dict[date, set[str]] = {}
        for record in self.get_month(user_id, year, month):
            day = record.created_at.astimezone(tz).date()
            present.setdefault(day, set()).add(record.meal_slot)
        return {
            day: [slot for slot in MEAL_SLOTS if slot in slots]
            for day, slots in sorted(present.items())
        }

    def day_detail(self, user_id: UUID, day: date) -> dict[str, list[MealRecord]]:
        """Group one local day's records by meal slot."""
        tz = self.tz
        grouped: dict[str, list[MealRecord]] = {}
        for record in self.get_month(user_id, day.year, day.month):
            if record.created_at.astimezone(tz).date() != day:
                continue
            grouped.setdefault(record.meal_slot, []).append(record)
        return {slot: grouped[slot] for slot in MEAL_SLOTS if slot in grouped}

    def month_stats(self, user_id: UUID, year: int, month: int) -> MonthStats:
        """Count meals per slot for a month."""
        records = self.get_month(user_id, year, month)
        counts = dict.fromkeys(MEAL_SLOTS, 0)
        for record in records:
            counts[record.meal_slot] = counts.get(record.meal_slot, 0) + 1
        return MonthStats(total_meals=len(records), meal_counts=counts)
