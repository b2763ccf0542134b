"""Domain models for diary entries."""

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

MEAL_SLOTS = ("breakfast", "lunch", "dinner")
FOOD_CATEGORIES = ("vegetable", "protein", "fat", "carbohydrate", "sugar")
FEEDBACK_RATINGS = ("good", "normal", "bad")
GOAL_LABELS = {
    "digestion": "Comfortable digestion",
    "satiety": "Lasting satiety",
    "energy": "No post-meal slump",
    "weight": "Weight management",
    "muscle": "Muscle building",
    "skin": "Skin health",
}
DEFAULT_FOOD_CATEGORY = "carbohydrate"


@dataclass(frozen=True)
class Nutrition:
    """Macronutrient grams for a food or a whole meal."""

    carbs: float
    protein: float
    fat: float


@dataclass(frozen=True)
class FoodWarnings:
    """Optional cautions attached to a food."""

    timing: str | None = None
    overconsumption: str | None = None
    general: str | None = None


@dataclass(frozen=True)
class FoodEntry:
    """A food belonging to a meal; ``id`` is set once persisted."""

    name: str
    category: str
    benefits: str | None = None
    nutrition: Nutrition | None = None
    warnings: FoodWarnings | None = None
    id: UUID | None = None


@dataclass(frozen=True)
class EatingStep:
    """One step of the recommended eating order."""

    order: int
    food_name: str
    description: str


@dataclass(frozen=True)
class UserFeedback:
    """Post-meal rating on three axes."""

    digestion: str
    satiety: str
    energy: str


@dataclass(frozen=True)
class MealRecordDraft:
    """A meal record that has not been assigned an id yet."""

    user_id: UUID
    meal_slot: str
    image_ref: str
    total_nutrition: Nutrition
    goal: str
    goal_label: str
    reason: str
    created_at: datetime
    foods: list[FoodEntry]
    steps: list[EatingStep]
    feedback: UserFeedback | None = None


@dataclass(frozen=True)
class MealRecord:
    """Persisted diary entry with its foods and eating steps."""

    id: UUID
    user_id: UUID
    meal_slot: str
    image_ref: str
    total_nutrition: Nutrition
    goal: str
    goal_label: str
    reason: str
    created_at: datetime
    foods: list[FoodEntry] = field(default_factory=list)
    steps: list[EatingStep] = field(default_factory=list)
    feedback: UserFeedback | None = None
