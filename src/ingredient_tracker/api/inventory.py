"""Ingredient inventory endpoints."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, HTTPException, Request, status

from ingredient_tracker.api.dependencies import require_owner_id
from ingredient_tracker.api.schemas import RestockRequest
from ingredient_tracker.domain.ingredients import EXPIRING_SOON_DAYS, IngredientDraft

if TYPE_CHECKING:
    from ingredient_tracker.containers import AppContainer

router = APIRouter(prefix="/ingredients", tags=["ingredients"])


@router.get("")
async def list_ingredients(
    request: Request, owner_id: int = Depends(require_owner_id)
) -> dict[str, object]:
    """Return the caller's inventory."""
    container: AppContainer = request.app.state.container
    return {"ingredients": container.ingredient_service.list_ingredients(owner_id)}


@router.post("", status_code=status.HTTP_201_CREATED)
async def add_ingredient(
    draft: IngredientDraft,
    request: Request,
    owner_id: int = Depends(require_owner_id),
) -> dict[str, object]:
    """Add an ingredient with its initial stock."""
    container: AppContainer = request.app.state.container
    return {"ingredient": container.ingredient_service.add_ingredient(owner_id, draft)}


@router.get("/expiring")
async def list_expiring(
    request: Request,
    days: int = EXPIRING_SOON_DAYS,
    owner_id: int = Depends(require_owner_id),
) -> dict[str, object]:
    """Return ingredients expiring within the given number of days."""
    container: AppContainer = request.app.state.container
    today = datetime.now(tz=UTC).date()
    return {
        "ingredients": container.ingredient_service.list_expiring(
            owner_id, today, days
        )
    }


@router.get("/expired")
async def list_expired(
    request: Request, owner_id: int = Depends(require_owner_id)
) -> dict[str, object]:
    """Return ingredients past their expiry date."""
    container: AppContainer = request.app.state.container
    today = datetime.now(tz=UTC).date()
    return {"ingredients": container.ingredient_service.list_expired(owner_id, today)}


@router.get("/{ingredient_id}")
async def get_ingredient(
    ingredient_id: int, request: Request, owner_id: int = Depends(require_owner_id)
) -> dict[str, object]:
    container: AppContainer = request.app.state.container
    return {
        "ingredient": container.ingredient_service.get_ingredient(
            owner_id, ingredient_id
        )
    }


@router.post("/{ingredient_id}/restock")
async def restock_ingredient(
    ingredient_id: int,
    body: RestockRequest,
    request: Request,
    owner_id: int = Depends(require_owner_id),
) -> dict[str, object]:
    """Add purchased stock to an ingredient."""
    container: AppContainer = request.app.state.container
    ingredient = container.ingredient_service.restock(
        owner_id, ingredient_id, body.amount
    )
    return {"ingredient": ingredient}


@router.delete("/{ingredient_id}")
async def delete_ingredient(
    ingredient_id: int, request: Request, owner_id: int = Depends(require_owner_id)
) -> dict[str, str]:
    container: AppContainer = request.app.state.container
    if not container.ingredient_service.delete_ingredient(owner_id, ingredient_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return {"status": "deleted"}
