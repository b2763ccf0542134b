"""Domain models for the calendar cache."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from meal_diary.domain.diary import MealRecord


@dataclass(frozen=True)
class CalendarCacheEntry:
    """Snapshot of a user's month of diary entries."""

    user_id: UUID
    cache_key: str
    records: list[MealRecord]
    expires_at: datetime


@dataclass(frozen=True)
class MonthStats:
    """Meal counts for a calendar month."""

    total_meals: int
    meal_counts: dict[str, int]
