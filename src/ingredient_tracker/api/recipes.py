"""Recipe generation and dish suggestion endpoints."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Request

from ingredient_tracker.api.dependencies import require_owner_id
from ingredient_tracker.api.schemas import RecipeRequest, SuggestionRequest

if TYPE_CHECKING:
    from ingredient_tracker.containers import AppContainer

router = APIRouter(tags=["recipes"])


@router.post("/recipes")
async def generate_recipe(
    body: RecipeRequest, request: Request, owner_id: int = Depends(require_owner_id)
) -> dict[str, object]:
    """Return a recipe, served from the shared cache when possible."""
    container: AppContainer = request.app.state.container
    recipe = await container.recipe_service.generate_recipe(
        owner_id, body.food_name, body.ingredients, body.goal
    )
    return {"recipe": recipe.model_dump(mode="json")}


@router.post("/suggestions")
async def suggest_foods(
    body: SuggestionRequest,
    request: Request,
    owner_id: int = Depends(require_owner_id),
) -> dict[str, object]:
    """Suggest dishes from the caller's in-stock ingredients."""
    container: AppContainer = request.app.state.container
    suggestions = await container.recipe_service.suggest_foods(
        owner_id,
        datetime.now(tz=UTC).date(),
        body.goal,
        body.max_suggestions,
    )
    return {
        "suggestions": [item.model_dump(mode="json") for item in suggestions]
    }
