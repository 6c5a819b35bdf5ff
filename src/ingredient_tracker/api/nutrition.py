"""Nutrition summary, target and profile endpoints."""

from __future__ import annotations

from datetime import UTC, date, datetime
from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Request

from ingredient_tracker.api.dependencies import require_owner_id
from ingredient_tracker.api.schemas import ProfileRequest

if TYPE_CHECKING:
    from ingredient_tracker.containers import AppContainer

router = APIRouter(tags=["nutrition"])


@router.get("/nutrition/daily")
async def daily_summary(
    request: Request,
    day: date | None = None,
    include_targets: bool = False,
    owner_id: int = Depends(require_owner_id),
) -> dict[str, object]:
    """Return the per-meal breakdown for a day, today by default."""
    container: AppContainer = request.app.state.container
    summary = await container.nutrition_aggregator.get_daily_summary(
        owner_id, day or datetime.now(tz=UTC).date(), include_targets
    )
    return {"summary": summary}


@router.get("/nutrition/weekly")
async def weekly_summary(
    request: Request,
    start: date,
    end: date,
    include_targets: bool = False,
    owner_id: int = Depends(require_owner_id),
) -> dict[str, object]:
    """Return daily summaries for an inclusive date range."""
    container: AppContainer = request.app.state.container
    summary = await container.nutrition_aggregator.get_weekly_summary(
        owner_id, start, end, include_targets
    )
    return {"summary": summary}


@router.get("/nutrition/overview")
async def overview_summary(
    request: Request,
    day_count: int = 1,
    include_targets: bool = False,
    owner_id: int = Depends(require_owner_id),
) -> dict[str, object]:
    """Return per-day averages over every date with a meal."""
    container: AppContainer = request.app.state.container
    summary = await container.nutrition_aggregator.get_overview_summary(
        owner_id, day_count, include_targets
    )
    return {"summary": summary}


@router.post("/nutrition/targets/refresh")
async def refresh_targets(
    request: Request, owner_id: int = Depends(require_owner_id)
) -> dict[str, object]:
    """Re-estimate daily targets from the stored profile."""
    container: AppContainer = request.app.state.container
    return {"targets": await container.targets_service.refresh_targets(owner_id)}


@router.put("/profile")
async def save_profile(
    body: ProfileRequest, request: Request, owner_id: int = Depends(require_owner_id)
) -> dict[str, object]:
    container: AppContainer = request.app.state.container
    profile = container.targets_service.save_profile(body.to_profile(owner_id))
    return {"profile": profile}
