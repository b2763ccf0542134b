"""Domain models for meal analysis sessions."""

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID, uuid4

from meal_diary.domain.diary import EatingStep, FoodEntry, Nutrition

PHASE_DETECTING = "detecting"
PHASE_CONFIRMING = "confirming"
PHASE_ANALYZING = "analyzing"
PHASE_DONE = "done"
PHASE_ERROR = "error"


@dataclass(frozen=True)
class MealAnalysis:
    """Result of the nutrition and eating-order pass."""

    image_ref: str
    goal: str
    goal_label: str
    foods: list[FoodEntry]
    total_nutrition: Nutrition
    steps: list[EatingStep]
    reason: str
    created_at: datetime
    eating_guide: str | None = None
    nutrition_analysis: str | None = None


@dataclass
class FoodCandidate:
    """Editable food guess awaiting user confirmation."""

    name: str
    category: str


@dataclass
class AnalysisSession:
    """Working state of one photo-to-diary interaction."""

    user_id: UUID
    goal: str
    image_bytes: bytes
    image_ref: str
    phase: str = PHASE_DETECTING
    foods: list[FoodCandidate] = field(default_factory=list)
    result: MealAnalysis | None = None
    in_progress: bool = False
    saving: bool = False
    saved_record_id: UUID | None = None
    error: str | None = None
    save_error: str | None = None
    last_active_at: datetime | None = None
    finished_at: datetime | None = None
    id: UUID = field(default_factory=uuid4)

    @property
    def is_saved(self) -> bool:
        """Return True once the result has been persisted."""
        return self.saved_record_id is not None
