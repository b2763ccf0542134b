"""Diary and calendar endpoints."""

from __future__ import annotations

from datetime import date  # noqa: TC003
from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from meal_diary.api.auth import current_user
from meal_diary.api.models import UpdateRecordRequest, serialize_record

if TYPE_CHECKING:
    from meal_diary.containers import AppContainer

router = APIRouter(prefix="/diary", tags=["diary"])


def _container(request: Request) -> AppContainer:
    return request.app.state.container


@router.get("/calendar/{year}/{month}")
async def month_calendar(
    year: int,
    month: int,
    request: Request,
    user_id: UUID = Depends(current_user),
) -> dict[str, object]:
    """Return the days of a month that have meals, with counts."""
    if not 1 <= month <= 12:  # noqa: PLR2004
        raise HTTPException(status.HTTP_422_UNPROCESSABLE_ENTITY, "Invalid month")
    calendar = _container(request).calendar_service
    overview = calendar.month_overview(user_id, year, month)
    stats = calendar.month_stats(user_id, year, month)
    return {
        "year": year,
        "month": month,
        "days": {day.isoformat(): slots for day, slots in overview.items()},
        "stats": {"total_meals": stats.total_meals, "meal_counts": stats.meal_counts},
    }


@router.get("/days/{day}")
async def day_detail(
    day: date, request: Request, user_id: UUID = Depends(current_user)
) -> dict[str, object]:
    """Return one day's entries grouped by meal slot."""
    grouped = _container(request).calendar_service.day_detail(user_id, day)
    return {
        "day": day.isoformat(),
        "meals": {
            slot: [serialize_record(record) for record in records]
            for slot, records in grouped.items()
        },
    }


@router.get("/recent")
async def recent(
    request: Request,
    limit: int = Query(default=5, ge=1, le=50),
    user_id: UUID = Depends(current_user),
) -> dict[str, object]:
    """Return the newest entries."""
    records = _container(request).diary_service.recent(user_id, limit)
    return {"records": [serialize_record(record) for record in records]}


@router.patch("/{record_id}")
async def update_record(
    record_id: UUID,
    body: UpdateRecordRequest,
    request: Request,
    user_id: UUID = Depends(current_user),
) -> dict[str, object]:
    """Update meal slot, image or feedback of an entry."""
    changes = body.changes()
    if not changes:
        raise HTTPException(status.HTTP_422_UNPROCESSABLE_ENTITY, "Nothing to update")
    record = _container(request).diary_service.update(user_id, record_id, changes)
    return serialize_record(record)


@router.delete("/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_record(
    record_id: UUID, request: Request, user_id: UUID = Depends(current_user)
) -> None:
    """Delete an entry with its foods and steps."""
    _container(request).diary_service.delete(user_id, record_id)
