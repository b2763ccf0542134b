"""Diary store: persistence of analyzed meals."""

import logging
from dataclasses import dataclass, replace
from datetime import UTC, date, datetime, timedelta
from typing import Protocol
from uuid import UUID
from zoneinfo import ZoneInfo

from meal_diary.domain.analysis import MealAnalysis
from meal_diary.domain.diary import (
    MEAL_SLOTS,
    MealRecord,
    MealRecordDraft,
    UserFeedback,
)
from meal_diary.services.calendar_cache import CalendarCache

DECEMBER = 12
_UPDATABLE_FIELDS = {"meal_slot", "image_ref", "feedback"}

_logger = logging.getLogger(__name__)


class DiaryWriteError(RuntimeError):
    """Raised when a diary mutation did not happen."""


class DiaryRecordNotFound(LookupError):
    """Raised when a record is missing or belongs to another user."""


class DiaryRepository(Protocol):
    """Persistence interface for diary entries."""

    def create_record(self, draft: MealRecordDraft) -> MealRecord:
        """Persist a record with its foods and steps, all or nothing."""

    def get_record(self, record_id: UUID) -> MealRecord | None:
        """Return a record by id."""

    def list_records(
        self, user_id: UUID, start: datetime, end: datetime
    ) -> list[MealRecord]:
        """Return records created in [start, end), newest first."""

    def list_recent_records(self, user_id: UUID, limit: int) -> list[MealRecord]:
        """Return the newest records for a user."""

    def update_record(self, record_id: UUID, changes: dict[str, object]) -> None:
        """Apply a partial update to a record."""

    def delete_record(self, record_id: UUID, user_id: UUID) -> None:
        """Delete a record together with its foods and steps."""


def day_bounds(day: date, tz: ZoneInfo) -> tuple[datetime, datetime]:
    """Return the UTC instants bounding a local calendar day."""
    start = datetime(day.year, day.month, day.day, tzinfo=tz)
    following = day + timedelta(days=1)
    end = datetime(following.year, following.month, following.day, tzinfo=tz)
    return start.astimezone(UTC), end.astimezone(UTC)


def month_bounds(year: int, month: int, tz: ZoneInfo) -> tuple[datetime, datetime]:
    """Return the UTC instants bounding a local calendar month."""
    start = datetime(year, month, 1, tzinfo=tz)
    if month == DECEMBER:
        end = datetime(year + 1, 1, 1, tzinfo=tz)
    else:
        end = datetime(year, month + 1, 1, tzinfo=tz)
    return start.astimezone(UTC), end.astimezone(UTC)


def local_month(moment: datetime, tz: ZoneInfo) -> tuple[int, int]:
    """Return the (year, month) a moment falls in on the local calendar."""
    local = moment.astimezone(tz)
    return local.year, local.month


@dataclass
class DiaryService:
    """Saves, reads and mutates diary entries and keeps the calendar cache honest."""

    repository: DiaryRepository
    cache: CalendarCache
    timezone_name: str = "UTC"

    @property
    def tz(self) -> ZoneInfo:
        """Timezone whose calendar days the diary is organised by."""
        return ZoneInfo(self.timezone_name)

    def save(self, user_id: UUID, meal_slot: str, analysis: MealAnalysis) -> MealRecord:
        """Persist an analysis result as a diary entry."""
        if meal_slot not in MEAL_SLOTS:
            raise ValueError(f"Unknown meal slot: {meal_slot}")
        draft = MealRecordDraft(
            user_id=user_id,
            meal_slot=meal_slot,
            image_ref=analysis.image_ref,
            total_nutrition=analysis.total_nutrition,
            goal=analysis.goal,
            goal_label=analysis.goal_label,
            reason=analysis.reason,
            created_at=analysis.created_at,
            foods=list(analysis.foods),
            steps=list(analysis.steps),
        )
        try:
            record = self.repository.create_record(draft)
        except Exception as exc:
            _logger.exception("Failed to save diary entry for user=%s", user_id)
            raise DiaryWriteError("Failed to save the diary entry") from exc
        self.cache.invalidate(user_id, *local_month(record.created_at, self.tz))
        _logger.info("Saved diary entry id=%s slot=%s", record.id, meal_slot)
        return record

    def get_by_date_range(
        self, user_id: UUID, start: datetime, end: datetime
    ) -> list[MealRecord]:
        """Return records created in [start, end), newest first."""
        try:
            return self.repository.list_records(user_id, start, end)
        except Exception:
            _logger.exception("Failed to load diary range for user=%s", user_id)
            return []

    def get_by_day(self, user_id: UUID, day: date) -> list[MealRecord]:
        """Return records logged on a local calendar day."""
        tz = self.tz
        start, end = day_bounds(day, tz)
        records = self.get_by_date_range(user_id, start, end)
        return [
            record
            for record in records
            if record.created_at.astimezone(tz).date() == day
        ]

    def recent(self, user_id: UUID, limit: int = 5) -> list[MealRecord]:
        """Return the newest records."""
        try:
            return self.repository.list_recent_records(user_id, limit)
        except Exception:
            _logger.exception("Failed to load recent entries for user=%s", user_id)
            return []

    def update(
        self, user_id: UUID, record_id: UUID, changes: dict[str, object]
    ) -> MealRecord:
        """Apply a partial update (meal slot, image, feedback)."""
        unknown = set(changes) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be updated: {sorted(unknown)}")
        slot = changes.get("meal_slot")
        if slot is not None and slot not in MEAL_SLOTS:
            raise ValueError(f"Unknown meal slot: {slot}")
        feedback = changes.get("feedback")
        if feedback is not None and not isinstance(feedback, UserFeedback):
            raise ValueError("Feedback must be a UserFeedback")
        record = self._owned_record(user_id, record_id)
        try:
            self.repository.update_record(record_id, changes)
        except Exception as exc:
            _logger.exception("Failed to update diary entry id=%s", record_id)
            raise DiaryWriteError("Failed to update the diary entry") from exc
        self.cache.invalidate(user_id, *local_month(record.created_at, self.tz))
        try:
            updated = self.repository.get_record(record_id)
        except Exception:
            # The write went through; answer with the locally merged record.
            _logger.exception("Could not reload diary entry id=%s", record_id)
            return replace(record, **changes)
        if updated is None:
            raise DiaryRecordNotFound(str(record_id))
        return updated

    def delete(self, user_id: UUID, record_id: UUID) -> None:
        """Delete a record and everything it owns."""
        try:
            record = self.repository.get_record(record_id)
        except Exception:
            _logger.exception("Could not look up diary entry id=%s", record_id)
            month = None
        else:
            if record is None or record.user_id != user_id:
                raise DiaryRecordNotFound(str(record_id))
            month = local_month(record.created_at, self.tz)
        try:
            self.repository.delete_record(record_id, user_id)
        except Exception as exc:
            _logger.exception("Failed to delete diary entry id=%s", record_id)
            raise DiaryWriteError("Failed to delete the diary entry") from exc
        if month is None:
            self.cache.invalidate_all(user_id)
        else:
            self.cache.invalidate(user_id, *month)
        _logger.info("Deleted diary entry id=%s", record_id)

    def _owned_record(self, user_id: UUID, record_id: UUID) -> MealRecord:
        try:
            record = self.repository.get_record(record_id)
        except Exception as exc:
            _logger.exception("Could not look up diary entry id=%s", record_id)
            raise DiaryWriteError("Failed to load the diary entry") from exc
        if record is None or record.user_id != user_id:
            raise DiaryRecordNotFound(str(record_id))
        return record
