"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from meal_diary.api.analysis import router as analysis_router
from meal_diary.api.diary import router as diary_router
from meal_diary.app_logging import configure_logging
from meal_diary.containers import AppContainer
from meal_diary.services.analysis import (
    FoodEditError,
    SessionNotFound,
    SessionStateError,
)
from meal_diary.services.diary import DiaryRecordNotFound, DiaryWriteError


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(analysis_router)
    app.include_router(diary_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.exception_handler(SessionNotFound)
    @app.exception_handler(DiaryRecordNotFound)
    async def not_found(_request: Request, exc: Exception) -> JSONResponse:
        return JSONResponse(
            {"detail": f"Not found: {exc}"}, status_code=status.HTTP_404_NOT_FOUND
        )

    @app.exception_handler(SessionStateError)
    async def conflict(_request: Request, exc: SessionStateError) -> JSONResponse:
        return JSONResponse({"detail": str(exc)}, status_code=status.HTTP_409_CONFLICT)

    @app.exception_handler(FoodEditError)
    @app.exception_handler(ValueError)
    async def rejected(_request: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(
            {"detail": str(exc)}, status_code=status.HTTP_422_UNPROCESSABLE_ENTITY
        )

    @app.exception_handler(DiaryWriteError)
    async def write_failed(_request: Request, exc: DiaryWriteError) -> JSONResponse:
        logger.warning("Diary write failed: %s", exc)
        return JSONResponse(
            {"detail": str(exc)}, status_code=status.HTTP_503_SERVICE_UNAVAILABLE
        )

    return app
