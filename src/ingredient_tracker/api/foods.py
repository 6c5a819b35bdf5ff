"""Food endpoints; every write adjusts ingredient stock in one transaction."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, HTTPException, Request, status

from ingredient_tracker.api.dependencies import require_owner_id
from ingredient_tracker.domain.foods import FoodDraft

if TYPE_CHECKING:
    from ingredient_tracker.containers import AppContainer

router = APIRouter(prefix="/foods", tags=["foods"])


@router.get("")
async def list_foods(
    request: Request, owner_id: int = Depends(require_owner_id)
) -> dict[str, object]:
    container: AppContainer = request.app.state.container
    return {"foods": container.food_manager.list_foods(owner_id)}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_food(
    draft: FoodDraft, request: Request, owner_id: int = Depends(require_owner_id)
) -> dict[str, object]:
    """Log a food and consume its ingredients."""
    container: AppContainer = request.app.state.container
    return {"food": container.food_manager.create_food(owner_id, draft)}


@router.get("/{food_id}")
async def get_food(
    food_id: int, request: Request, owner_id: int = Depends(require_owner_id)
) -> dict[str, object]:
    container: AppContainer = request.app.state.container
    return {"food": container.food_manager.get_food(food_id, owner_id)}


@router.put("/{food_id}")
async def update_food(
    food_id: int,
    draft: FoodDraft,
    request: Request,
    owner_id: int = Depends(require_owner_id),
) -> dict[str, object]:
    """Replace a food and rebalance ingredient stock."""
    container: AppContainer = request.app.state.container
    return {"food": container.food_manager.update_food(food_id, owner_id, draft)}


@router.delete("/{food_id}")
async def delete_food(
    food_id: int, request: Request, owner_id: int = Depends(require_owner_id)
) -> dict[str, str]:
    """Delete a food and return its ingredients to stock."""
    container: AppContainer = request.app.state.container
    if not container.food_manager.delete_food(food_id, owner_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return {"status": "deleted"}
