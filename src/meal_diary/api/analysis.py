"""Analysis session endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse

from meal_diary.api.auth import current_user
from meal_diary.api.models import (
    AddFoodRequest,
    RenameFoodRequest,
    SaveRequest,
    StartSessionRequest,
    serialize_record,
    serialize_session,
)
from meal_diary.domain.analysis import PHASE_ERROR
from meal_diary.services.diary import DiaryWriteError

if TYPE_CHECKING:
    from meal_diary.containers import AppContainer

router = APIRouter(prefix="/analysis/sessions", tags=["analysis"])


def _container(request: Request) -> AppContainer:
    return request.app.state.container


@router.post("", status_code=status.HTTP_201_CREATED)
async def start_session(
    body: StartSessionRequest,
    request: Request,
    user_id: UUID = Depends(current_user),
) -> JSONResponse:
    """Start a session and detect foods in the photo."""
    try:
        image_bytes = body.image_bytes()
    except ValueError as exc:
        raise HTTPException(status.HTTP_422_UNPROCESSABLE_ENTITY, str(exc)) from exc
    session = await _container(request).analysis_service.start_session(
        user_id=user_id,
        goal=body.goal,
        image_bytes=image_bytes,
        image_ref=body.image_ref,
    )
    status_code = (
        status.HTTP_502_BAD_GATEWAY
        if session.phase == PHASE_ERROR
        else status.HTTP_201_CREATED
    )
    return JSONResponse(serialize_session(session), status_code=status_code)


@router.get("/{session_id}")
async def get_session(
    session_id: UUID, request: Request, user_id: UUID = Depends(current_user)
) -> dict[str, object]:
    """Return the current session state."""
    session = _container(request).analysis_service.get_session(user_id, session_id)
    return serialize_session(session)


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def discard_session(
    session_id: UUID, request: Request, user_id: UUID = Depends(current_user)
) -> None:
    """Abandon a session."""
    _container(request).analysis_service.discard_session(user_id, session_id)


@router.post("/{session_id}/foods")
async def add_food(
    session_id: UUID,
    body: AddFoodRequest,
    request: Request,
    user_id: UUID = Depends(current_user),
) -> dict[str, object]:
    """Append a food to the candidate list."""
    session = _container(request).analysis_service.add_food(
        user_id, session_id, body.name, body.category
    )
    return serialize_session(session)


@router.patch("/{session_id}/foods/{index}")
async def rename_food(
    session_id: UUID,
    index: int,
    body: RenameFoodRequest,
    request: Request,
    user_id: UUID = Depends(current_user),
) -> dict[str, object]:
    """Rename a candidate food."""
    session = _container(request).analysis_service.rename_food(
        user_id, session_id, index, body.name
    )
    return serialize_session(session)


@router.delete("/{session_id}/foods/{index}")
async def delete_food(
    session_id: UUID,
    index: int,
    request: Request,
    user_id: UUID = Depends(current_user),
) -> dict[str, object]:
    """Remove a candidate food."""
    session = _container(request).analysis_service.delete_food(
        user_id, session_id, index
    )
    return serialize_session(session)


@router.post("/{session_id}/confirm")
async def confirm(
    session_id: UUID, request: Request, user_id: UUID = Depends(current_user)
) -> JSONResponse:
    """Analyze the confirmed foods."""
    session = await _container(request).analysis_service.confirm(user_id, session_id)
    status_code = status.HTTP_502_BAD_GATEWAY if session.error else status.HTTP_200_OK
    return JSONResponse(serialize_session(session), status_code=status_code)


@router.post("/{session_id}/save", status_code=status.HTTP_201_CREATED)
async def save(
    session_id: UUID,
    body: SaveRequest,
    request: Request,
    user_id: UUID = Depends(current_user),
) -> JSONResponse:
    """Persist the analysis result as a diary entry."""
    service = _container(request).analysis_service
    try:
        record = await service.save(user_id, session_id, body.meal_slot)
    except DiaryWriteError as exc:
        session = service.get_session(user_id, session_id)
        return JSONResponse(
            {"detail": str(exc), "session": serialize_session(session)},
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )
    return JSONResponse(
        serialize_record(record), status_code=status.HTTP_201_CREATED
    )
