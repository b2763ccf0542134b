"""Analysis orchestrator: detect, confirm, analyze, save."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from uuid import UUID

from meal_diary.domain.analysis import (
    PHASE_ANALYZING,
    PHASE_CONFIRMING,
    PHASE_DETECTING,
    PHASE_DONE,
    PHASE_ERROR,
    AnalysisSession,
    FoodCandidate,
    MealAnalysis,
)
from meal_diary.domain.diary import (
    DEFAULT_FOOD_CATEGORY,
    FOOD_CATEGORIES,
    GOAL_LABELS,
    MEAL_SLOTS,
    EatingStep,
    FoodEntry,
    FoodWarnings,
    MealRecord,
    Nutrition,
)
from meal_diary.domain.inference import AnalysisPayload
from meal_diary.services.diary import DiaryService, DiaryWriteError
from meal_diary.services.inference import GatewayError, InferenceGateway, to_data_url

SESSION_IDLE_TIMEOUT_SECONDS = 60 * 60
FINISHED_SESSION_RETENTION_SECONDS = 5 * 60

_logger = logging.getLogger(__name__)


class SessionNotFound(LookupError):
    """Raised when a session is unknown to the caller."""


class SessionStateError(RuntimeError):
    """Raised when an action is not allowed in the current phase."""


class SessionBusyError(SessionStateError):
    """Raised when an action arrives while another one is in flight."""


class FoodEditError(ValueError):
    """Raised when a food-list edit is rejected."""


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class AnalysisService:
    """State machine for turning a meal photo into a diary entry.

    A session moves ``detecting -> confirming -> analyzing -> done``. Detection
    failures end in ``error``; analysis failures fall back to ``confirming`` so
    the detected foods survive. Only one gateway call or save may be in flight
    per session; overlapping requests are rejected, never queued.

    Sessions live in process memory. Saved and failed sessions are kept for
    ``finished_retention_seconds`` so repeated requests still get a clear
    answer, failed ones are dropped as soon as they have been read back, and
    sessions untouched for ``idle_timeout_seconds`` count as abandoned. Stale
    sessions are evicted whenever a new one starts.
    """

    gateway: InferenceGateway
    diary_service: DiaryService
    clock: Callable[[], datetime] = field(default=_utc_now)
    idle_timeout_seconds: int = SESSION_IDLE_TIMEOUT_SECONDS
    finished_retention_seconds: int = FINISHED_SESSION_RETENTION_SECONDS
    sessions: dict[UUID, AnalysisSession] = field(default_factory=dict)

    async def start_session(
        self,
        user_id: UUID,
        goal: str,
        image_bytes: bytes,
        image_ref: str | None = None,
    ) -> AnalysisSession:
        """Create a session for a photo and run food detection."""
        if goal not in GOAL_LABELS:
            raise ValueError(f"Unknown goal: {goal}")
        if image_ref is None:
            image_ref = to_data_url(image_bytes) if image_bytes else ""
        self.evict_stale_sessions()
        session = AnalysisSession(
            user_id=user_id,
            goal=goal,
            image_bytes=image_bytes,
            image_ref=image_ref,
            last_active_at=self.clock(),
        )
        self.sessions[session.id] = session
        await self._detect(session)
        return session

    def get_session(self, user_id: UUID, session_id: UUID) -> AnalysisSession:
        """Return a session owned by the user.

        A session that ended in ``error`` is handed out one last time and
        then forgotten.
        """
        session = self.sessions.get(session_id)
        if session is None or session.user_id != user_id:
            raise SessionNotFound(str(session_id))
        session.last_active_at = self.clock()
        if session.phase == PHASE_ERROR:
            del self.sessions[session_id]
        return session

    def evict_stale_sessions(self) -> int:
        """Drop finished sessions past retention and idle ones; return the count."""
        now = self.clock()
        finished_cutoff = now - timedelta(seconds=self.finished_retention_seconds)
        idle_cutoff = now - timedelta(seconds=self.idle_timeout_seconds)
        stale = [
            session.id
            for session in self.sessions.values()
            if not (session.in_progress or session.saving)
            and (
                (
                    session.finished_at is not None
                    and session.finished_at <= finished_cutoff
                )
                or (
                    session.last_active_at is not None
                    and session.last_active_at <= idle_cutoff
                )
            )
        ]
        for session_id in stale:
            del self.sessions[session_id]
        if stale:
            _logger.info("Evicted %s stale analysis sessions", len(stale))
        return len(stale)

    def discard_session(self, user_id: UUID, session_id: UUID) -> None:
        """Forget a session, saved or abandoned."""
        self.get_session(user_id, session_id)
        self.sessions.pop(session_id, None)

    def add_food(
        self,
        user_id: UUID,
        session_id: UUID,
        name: str,
        category: str = DEFAULT_FOOD_CATEGORY,
    ) -> AnalysisSession:
        """Append a food the detector missed."""
        session = self._editable(user_id, session_id)
        if category not in FOOD_CATEGORIES:
            raise FoodEditError(f"Unknown food category: {category}")
        session.foods.append(FoodCandidate(name=_clean_name(name), category=category))
        return session

    def rename_food(
        self, user_id: UUID, session_id: UUID, index: int, name: str
    ) -> AnalysisSession:
        """Rename a food in place."""
        session = self._editable(user_id, session_id)
        food = _food_at(session, index)
        food.name = _clean_name(name)
        return session

    def delete_food(
        self, user_id: UUID, session_id: UUID, index: int
    ) -> AnalysisSession:
        """Remove a food; the last one cannot be removed."""
        session = self._editable(user_id, session_id)
        _food_at(session, index)
        if len(session.foods) <= 1:
            raise FoodEditError("At least one food is required")
        del session.foods[index]
        return session

    async def confirm(self, user_id: UUID, session_id: UUID) -> AnalysisSession:
        """Send the confirmed foods for nutrition and eating-order analysis."""
        session = self._editable(user_id, session_id)
        foods = [
            {"name": food.name, "category": food.category} for food in session.foods
        ]
        session.in_progress = True
        session.phase = PHASE_ANALYZING
        session.error = None
        try:
            payload = await self.gateway.analyze(foods, session.goal)
        except GatewayError as exc:
            session.phase = PHASE_CONFIRMING
            session.error = str(exc)
            return session
        finally:
            session.in_progress = False
        session.result = _build_analysis(session, payload, self.clock())
        session.phase = PHASE_DONE
        _logger.info(
            "Analysis done: session=%s foods=%s steps=%s",
            session.id,
            len(session.result.foods),
            len(session.result.steps),
        )
        return session

    async def save(self, user_id: UUID, session_id: UUID, meal_slot: str) -> MealRecord:
        """Persist the analysis result exactly once."""
        session = self.get_session(user_id, session_id)
        if meal_slot not in MEAL_SLOTS:
            raise ValueError(f"Unknown meal slot: {meal_slot}")
        if session.phase != PHASE_DONE or session.result is None:
            raise SessionStateError("There is no analysis result to save")
        if session.saving:
            raise SessionBusyError("A save is already in progress")
        if session.is_saved:
            raise SessionStateError("This result has already been saved")
        session.saving = True
        session.save_error = None
        try:
            record = await asyncio.to_thread(
                self.diary_service.save, user_id, meal_slot, session.result
            )
        except DiaryWriteError as exc:
            session.save_error = str(exc)
            raise
        finally:
            session.saving = False
        session.saved_record_id = record.id
        session.finished_at = self.clock()
        return record

    async def _detect(self, session: AnalysisSession) -> None:
        session.in_progress = True
        try:
            detected = await self.gateway.detect_foods(session.image_bytes)
            if not detected:
                raise GatewayError("No foods were found in the photo")
        except GatewayError as exc:
            session.phase = PHASE_ERROR
            session.error = str(exc)
            session.finished_at = self.clock()
            _logger.info("Detection failed: session=%s error=%s", session.id, exc)
            return
        finally:
            session.in_progress = False
        session.foods = [
            FoodCandidate(name=food.name, category=food.category)
            for food in detected
        ]
        session.phase = PHASE_CONFIRMING

    def _editable(self, user_id: UUID, session_id: UUID) -> AnalysisSession:
        session = self.get_session(user_id, session_id)
        if session.in_progress:
            raise SessionBusyError("Another request is in progress")
        if session.phase != PHASE_CONFIRMING:
            if session.phase == PHASE_DETECTING:
                raise SessionBusyError("Food detection is still running")
            raise SessionStateError(f"Foods cannot be changed while {session.phase}")
        return session


def _clean_name(name: str) -> str:
    cleaned = name.strip()
    if not cleaned:
        raise FoodEditError("Food name cannot be empty")
    return cleaned


def _food_at(session: AnalysisSession, index: int) -> FoodCandidate:
    if not 0 <= index < len(session.foods):
        raise FoodEditError(f"No food at position {index}")
    return session.foods[index]


def _build_analysis(
    session: AnalysisSession, payload: AnalysisPayload, created_at: datetime
) -> MealAnalysis:
    foods: list[FoodEntry] = []
    for food in payload.foods:
        warnings = None
        if food.warnings is not None:
            warnings = FoodWarnings(
                timing=food.warnings.timing,
                overconsumption=food.warnings.overconsumption,
                general=food.warnings.general,
            )
        foods.append(
            FoodEntry(
                name=food.name,
                category=food.category,
                benefits=food.nutrition_benefits,
                nutrition=Nutrition(
                    carbs=food.nutrition.carbs,
                    protein=food.nutrition.protein,
                    fat=food.nutrition.fat,
                ),
                warnings=warnings,
            )
        )
    steps = [
        EatingStep(
            order=step.order, food_name=step.food_name, description=step.description
        )
        for step in payload.eating_order.steps
    ]
    return MealAnalysis(
        image_ref=session.image_ref,
        goal=session.goal,
        goal_label=GOAL_LABELS[session.goal],
        foods=foods,
        total_nutrition=_sum_nutrition(foods),
        steps=steps,
        reason=payload.eating_order.reason,
        created_at=created_at,
        eating_guide=payload.eating_order.eating_guide,
        nutrition_analysis=payload.nutrition_analysis,
    )


def _sum_nutrition(foods: list[FoodEntry]) -> Nutrition:
    total = Nutrition(0.0, 0.0, 0.0)
    for food in foods:
        if food.nutrition is None:
            continue
        total = Nutrition(
            carbs=total.carbs + food.nutrition.carbs,
            protein=total.protein + food.nutrition.protein,
            fat=total.fat + food.nutrition.fat,
        )
    return total
