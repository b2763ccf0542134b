"""Supabase repository for diary entries."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from supabase import Client

from meal_diary.adapters.diary_rows import (
    DIARY_SELECT,
    draft_row,
    feedback_payload,
    food_rows,
    parse_record,
    step_rows,
)
from meal_diary.domain.diary import MealRecord, MealRecordDraft
from meal_diary.services.diary import DiaryRepository

_COLUMNS = {"meal_slot": "meal_time", "image_ref": "image_url"}


@dataclass
class SupabaseDiaryRepository(DiaryRepository):
    """Supabase implementation for diary entries.

    Foods and eating steps reference ``food_diaries`` with ``ON DELETE CASCADE``,
    so deleting the parent row removes them as well.
    """

    client: Client

    def create_record(self, draft: MealRecordDraft) -> MealRecord:
        """Insert the diary row with its foods and steps in one transaction.

        ``create_food_diary`` (see ``supabase/schema.sql``) runs the three
        inserts inside a single function call, so a failure leaves no rows.
        """
        response = self.client.rpc(
            "create_food_diary",
            {
                "diary": draft_row(draft),
                "food_items": food_rows(draft.foods),
                "step_items": step_rows(draft.steps),
            },
        ).execute()
        row = response.data
        if isinstance(row, list):
            row = row[0] if row else None
        if not row:
            raise RuntimeError("Failed to create diary entry")
        return parse_record(row)

    def get_record(self, record_id: UUID) -> MealRecord | None:
        """Return a diary entry by id."""
        response = (
            self.client.table("food_diaries")
            .select(DIARY_SELECT)
            .eq("id", str(record_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return parse_record(response.data[0])

    def list_records(
        self, user_id: UUID, start: datetime, end: datetime
    ) -> list[MealRecord]:
        """Return entries created in [start, end), newest first."""
        response = (
            self.client.table("food_diaries")
            .select(DIARY_SELECT)
            .eq("user_id", str(user_id))
            .gte("created_at", start.isoformat())
            .lt("created_at", end.isoformat())
            .order("created_at", desc=True)
            .execute()
        )
        return [parse_record(row) for row in response.data or []]

    def list_recent_records(self, user_id: UUID, limit: int) -> list[MealRecord]:
        """Return the newest entries for a user."""
        response = (
            self.client.table("food_diaries")
            .select(DIARY_SELECT)
            .eq("user_id", str(user_id))
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return [parse_record(row) for row in response.data or []]

    def update_record(self, record_id: UUID, changes: dict[str, object]) -> None:
        """Apply a partial update to a diary row."""
        payload: dict[str, object] = {}
        for field_name, value in changes.items():
            if field_name == "feedback":
                payload["user_feedback"] = feedback_payload(value)
            else:
                payload[_COLUMNS[field_name]] = value
        if payload:
            self.client.table("food_diaries").update(payload).eq(
                "id", str(record_id)
            ).execute()

    def delete_record(self, record_id: UUID, user_id: UUID) -> None:
        """Delete a diary row; foods and steps cascade."""
        self.client.table("food_diaries").delete().eq("id", str(record_id)).eq(
            "user_id", str(user_id)
        ).execute()
