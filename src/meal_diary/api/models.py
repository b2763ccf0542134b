"""Request models and response serializers for the HTTP API."""

import base64
import binascii
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from meal_diary.adapters.diary_rows import feedback_payload, nutrition_payload
from meal_diary.domain.analysis import AnalysisSession, MealAnalysis
from meal_diary.domain.diary import (
    DEFAULT_FOOD_CATEGORY,
    EatingStep,
    FoodEntry,
    MealRecord,
    UserFeedback,
)

MealSlot = Literal["breakfast", "lunch", "dinner"]
FoodCategory = Literal["vegetable", "protein", "fat", "carbohydrate", "sugar"]
Rating = Literal["good", "normal", "bad"]


class StartSessionRequest(BaseModel):
    """Photo and goal for a new analysis session."""

    goal: str
    image: str = Field(description="Base64 image, optionally as a data URL")
    image_ref: str | None = None

    def image_bytes(self) -> bytes:
        """Decode the uploaded image."""
        encoded = self.image.split(",", 1)[1] if "," in self.image else self.image
        try:
            return base64.b64decode(encoded, validate=True)
        except binascii.Error as exc:
            raise ValueError("Image is not valid base64") from exc


class AddFoodRequest(BaseModel):
    """Food to append to the candidate list."""

    name: str
    category: FoodCategory = DEFAULT_FOOD_CATEGORY


class RenameFoodRequest(BaseModel):
    """New name for a candidate food."""

    name: str


class SaveRequest(BaseModel):
    """Meal slot to file the analysis under."""

    meal_slot: MealSlot = "lunch"


class FeedbackModel(BaseModel):
    """Three-axis post-meal feedback."""

    digestion: Rating
    satiety: Rating
    energy: Rating

    def to_domain(self) -> UserFeedback:
        return UserFeedback(
            digestion=self.digestion, satiety=self.satiety, energy=self.energy
        )


class UpdateRecordRequest(BaseModel):
    """Partial update of a diary entry."""

    meal_slot: MealSlot | None = None
    image_ref: str | None = None
    feedback: FeedbackModel | None = None

    @field_validator("image_ref")
    @classmethod
    def _non_blank(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            raise ValueError("image_ref cannot be blank")
        return value

    def changes(self) -> dict[str, object]:
        """Return only the fields that were sent."""
        changes: dict[str, object] = {}
        if self.meal_slot is not None:
            changes["meal_slot"] = self.meal_slot
        if self.image_ref is not None:
            changes["image_ref"] = self.image_ref
        if self.feedback is not None:
            changes["feedback"] = self.feedback.to_domain()
        return changes


def serialize_session(session: AnalysisSession) -> dict[str, object]:
    return {
        "id": str(session.id),
        "goal": session.goal,
        "phase": session.phase,
        "in_progress": session.in_progress,
        "foods": [
            {"name": food.name, "category": food.category} for food in session.foods
        ],
        "result": serialize_analysis(session.result) if session.result else None,
        "error": session.error,
        "save_error": session.save_error,
        "saving": session.saving,
        "saved_record_id": str(session.saved_record_id)
        if session.saved_record_id
        else None,
    }


def serialize_analysis(analysis: MealAnalysis) -> dict[str, object]:
    return {
        "image_ref": analysis.image_ref,
        "goal": analysis.goal,
        "goal_label": analysis.goal_label,
        "foods": [_serialize_food(food) for food in analysis.foods],
        "total_nutrition": nutrition_payload(analysis.total_nutrition),
        "eating_order": {
            "steps": [_serialize_step(step) for step in analysis.steps],
            "reason": analysis.reason,
            "eating_guide": analysis.eating_guide,
        },
        "nutrition_analysis": analysis.nutrition_analysis,
        "created_at": analysis.created_at.isoformat(),
    }


def serialize_record(record: MealRecord) -> dict[str, object]:
    return {
        "id": str(record.id),
        "meal_slot": record.meal_slot,
        "image_ref": record.image_ref,
        "goal": record.goal,
        "goal_label": record.goal_label,
        "foods": [_serialize_food(food) for food in record.foods],
        "total_nutrition": nutrition_payload(record.total_nutrition),
        "eating_order": {
            "steps": [_serialize_step(step) for step in record.steps],
            "reason": record.reason,
        },
        "feedback": feedback_payload(record.feedback),
        "created_at": record.created_at.isoformat(),
    }


def _serialize_food(food: FoodEntry) -> dict[str, object]:
    warnings = None
    if food.warnings is not None:
        warnings = {
            "timing": food.warnings.timing,
            "overconsumption": food.warnings.overconsumption,
            "general": food.warnings.general,
        }
    return {
        "id": str(food.id) if food.id else None,
        "name": food.name,
        "category": food.category,
        "benefits": food.benefits,
        "nutrition": nutrition_payload(food.nutrition),
        "warnings": warnings,
    }


def _serialize_step(step: EatingStep) -> dict[str, object]:
    return {
        "order": step.order,
        "food_name": step.food_name,
        "description": step.description,
    }
