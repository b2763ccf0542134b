"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from meal_diary.adapters.http_inference_client import HttpxInferenceClient
from meal_diary.adapters.openai_inference_client import OpenAIInferenceClient
from meal_diary.adapters.supabase_calendar_cache_repository import (
    SupabaseCalendarCacheRepository,
)
from meal_diary.adapters.supabase_diary_repository import SupabaseDiaryRepository
from meal_diary.config import Settings
from meal_diary.services.analysis import AnalysisService
from meal_diary.services.cache import InMemoryCalendarCacheRepository
from meal_diary.services.calendar import CalendarService
from meal_diary.services.calendar_cache import CalendarCache, CalendarCacheRepository
from meal_diary.services.diary import DiaryService
from meal_diary.services.inference import InferenceClient, InferenceGateway


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    inference_gateway: InferenceGateway
    calendar_cache: CalendarCache
    diary_service: DiaryService
    calendar_service: CalendarService
    analysis_service: AnalysisService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    diary_repository = SupabaseDiaryRepository(supabase_client)
    cache_repository: CalendarCacheRepository
    if resolved_settings.calendar_cache_backend == "memory":
        cache_repository = InMemoryCalendarCacheRepository()
    else:
        cache_repository = SupabaseCalendarCacheRepository(supabase_client)
    calendar_cache = CalendarCache(
        repository=cache_repository,
        ttl_seconds=resolved_settings.calendar_cache_ttl_seconds,
    )
    diary_service = DiaryService(
        repository=diary_repository,
        cache=calendar_cache,
        timezone_name=resolved_settings.diary_timezone,
    )
    calendar_service = CalendarService(
        repository=diary_repository,
        cache=calendar_cache,
        timezone_name=resolved_settings.diary_timezone,
    )
    inference_client = _build_inference_client(resolved_settings)
    inference_gateway = InferenceGateway(client=inference_client)
    analysis_service = AnalysisService(
        gateway=inference_gateway,
        diary_service=diary_service,
        idle_timeout_seconds=resolved_settings.session_idle_timeout_seconds,
        finished_retention_seconds=(
            resolved_settings.finished_session_retention_seconds
        ),
    )

    async def close_resources() -> None:
        if isinstance(inference_client, HttpxInferenceClient):
            await inference_client.close()

    return AppContainer(
        settings=resolved_settings,
        inference_gateway=inference_gateway,
        calendar_cache=calendar_cache,
        diary_service=diary_service,
        calendar_service=calendar_service,
        analysis_service=analysis_service,
        close_resources=close_resources,
    )


def _build_inference_client(settings: Settings) -> InferenceClient:
    if settings.inference_backend == "http":
        if not settings.inference_base_url:
            raise ValueError("INFERENCE_BASE_URL is required for the http backend")
        return HttpxInferenceClient.create(
            base_url=settings.inference_base_url,
            api_key=settings.inference_api_key,
            timeout_seconds=settings.inference_timeout_seconds,
        )
    if not settings.openai_api_key:
        raise ValueError("OPENAI_API_KEY is required for the openai backend")
    return OpenAIInferenceClient.create(
        api_key=settings.openai_api_key,
        model=settings.openai_model,
        reasoning_effort=settings.openai_reasoning_effort,
        store=settings.openai_store,
        timeout_seconds=settings.inference_timeout_seconds,
    )
