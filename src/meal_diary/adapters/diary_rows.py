"""Conversion between diary domain models and Supabase row payloads."""

from datetime import UTC, datetime
from uuid import UUID

from meal_diary.domain.diary import (
    EatingStep,
    FoodEntry,
    FoodWarnings,
    MealRecord,
    MealRecordDraft,
    Nutrition,
    UserFeedback,
)

DIARY_SELECT = "*, foods(*), eating_order_steps(*)"


def draft_row(draft: MealRecordDraft) -> dict[str, object]:
    """Build the food_diaries insert payload."""
    return {
        "user_id": str(draft.user_id),
        "meal_time": draft.meal_slot,
        "image_url": draft.image_ref,
        "total_nutrition": nutrition_payload(draft.total_nutrition),
        "eating_goal": draft.goal,
        "eating_goal_name": draft.goal_label,
        "eating_reason": draft.reason,
        "user_feedback": feedback_payload(draft.feedback),
        "created_at": draft.created_at.isoformat(),
    }


def food_rows(
    foods: list[FoodEntry], diary_id: UUID | None = None
) -> list[dict[str, object]]:
    """Build the foods insert payload, linked to ``diary_id`` when given."""
    rows = [
        {
            "name": food.name,
            "category": food.category,
            "nutrition_benefits": food.benefits,
            "nutrition": nutrition_payload(food.nutrition),
            "warnings": _warnings_payload(food.warnings),
        }
        for food in foods
    ]
    return _linked(rows, diary_id)


def step_rows(
    steps: list[EatingStep], diary_id: UUID | None = None
) -> list[dict[str, object]]:
    """Build the eating_order_steps insert payload."""
    rows = [
        {
            "order_number": step.order,
            "food_name": step.food_name,
            "description": step.description,
        }
        for step in steps
    ]
    return _linked(rows, diary_id)


def record_row(record: MealRecord) -> dict[str, object]:
    """Serialize a record in the same shape as a joined diary select."""
    row = {
        "id": str(record.id),
        "user_id": str(record.user_id),
        "meal_time": record.meal_slot,
        "image_url": record.image_ref,
        "total_nutrition": nutrition_payload(record.total_nutrition),
        "eating_goal": record.goal,
        "eating_goal_name": record.goal_label,
        "eating_reason": record.reason,
        "user_feedback": feedback_payload(record.feedback),
        "created_at": record.created_at.isoformat(),
    }
    foods = food_rows(record.foods, record.id)
    for payload, food in zip(foods, record.foods, strict=True):
        payload["id"] = str(food.id) if food.id else None
    row["foods"] = foods
    row["eating_order_steps"] = step_rows(record.steps, record.id)
    return row


def parse_record(row: dict[str, object]) -> MealRecord:
    """Parse a joined diary row (or a cached snapshot of one)."""
    steps = sorted(
        (_parse_step(step) for step in row.get("eating_order_steps") or []),
        key=lambda step: step.order,
    )
    return MealRecord(
        id=UUID(str(row["id"])),
        user_id=UUID(str(row["user_id"])),
        meal_slot=str(row.get("meal_time", "")),
        image_ref=str(row.get("image_url") or ""),
        total_nutrition=parse_nutrition(row.get("total_nutrition"))
        or Nutrition(0.0, 0.0, 0.0),
        goal=str(row.get("eating_goal", "")),
        goal_label=str(row.get("eating_goal_name", "")),
        reason=str(row.get("eating_reason") or ""),
        created_at=parse_timestamp(row.get("created_at")),
        foods=[_parse_food(food) for food in row.get("foods") or []],
        steps=steps,
        feedback=_parse_feedback(row.get("user_feedback")),
    )


def nutrition_payload(nutrition: Nutrition | None) -> dict[str, float] | None:
    if nutrition is None:
        return None
    return {
        "carbs": nutrition.carbs,
        "protein": nutrition.protein,
        "fat": nutrition.fat,
    }


def feedback_payload(feedback: UserFeedback | None) -> dict[str, str] | None:
    if feedback is None:
        return None
    return {
        "digestion": feedback.digestion,
        "satiety": feedback.satiety,
        "energy": feedback.energy,
    }


def parse_nutrition(value: object) -> Nutrition | None:
    if not isinstance(value, dict):
        return None
    return Nutrition(
        carbs=float(value.get("carbs", 0.0)),
        protein=float(value.get("protein", 0.0)),
        fat=float(value.get("fat", 0.0)),
    )


def parse_timestamp(value: object) -> datetime:
    """Parse an ISO timestamp; naive values are taken as UTC."""
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _warnings_payload(warnings: FoodWarnings | None) -> dict[str, str | None] | None:
    if warnings is None:
        return None
    return {
        "timing": warnings.timing,
        "overconsumption": warnings.overconsumption,
        "general": warnings.general,
    }


def _parse_food(row: dict[str, object]) -> FoodEntry:
    warnings = row.get("warnings")
    return FoodEntry(
        id=UUID(str(row["id"])) if row.get("id") else None,
        name=str(row.get("name", "")),
        category=str(row.get("category", "")),
        benefits=row.get("nutrition_benefits"),
        nutrition=parse_nutrition(row.get("nutrition")),
        warnings=FoodWarnings(
            timing=warnings.get("timing"),
            overconsumption=warnings.get("overconsumption"),
            general=warnings.get("general"),
        )
        if isinstance(warnings, dict)
        else None,
    )


def _parse_step(row: dict[str, object]) -> EatingStep:
    return EatingStep(
        order=int(row["order_number"]),
        food_name=str(row.get("food_name", "")),
        description=str(row.get("description", "")),
    )


def _parse_feedback(value: object) -> UserFeedback | None:
    if not isinstance(value, dict):
        return None
    return UserFeedback(
        digestion=str(value.get("digestion", "normal")),
        satiety=str(value.get("satiety", "normal")),
        energy=str(value.get("energy", "normal")),
    )


def _linked(
    rows: list[dict[str, object]], diary_id: UUID | None
) -> list[dict[str, object]]:
    if diary_id is not None:
        for row in rows:
            row["diary_id"] = str(diary_id)
    return rows
