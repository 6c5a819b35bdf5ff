"""Models for AI-generated suggestions, recipes and the shared recipe cache."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _AIModel(BaseModel):
    """Accept both snake_case and camelCase keys from the model output."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class NutritionInfo(_AIModel):
    """Estimated nutrition of a dish."""

    calories: float = Field(default=0.0, ge=0)
    protein: float = Field(default=0.0, ge=0)
    carbohydrates: float = Field(default=0.0, ge=0)
    fat: float = Field(default=0.0, ge=0)
    fiber: float = Field(default=0.0, ge=0)


class RecipeIngredient(_AIModel):
    """Ingredient line of a recipe, also the unit of a recipe search key."""

    name: str
    quantity: Decimal = Decimal("0")
    unit: str = ""
    is_optional: bool = False


class FoodSuggestion(_AIModel):
    """A dish the AI proposes from the available ingredients."""

    name: str
    description: str = ""
    preparation_time_minutes: int = Field(default=0, ge=0)
    required_ingredients: list[str] = Field(default_factory=list)
    optional_ingredients: list[str] = Field(default_factory=list)
    estimated_nutrition: NutritionInfo = Field(default_factory=NutritionInfo)
    match_score: float = Field(default=0.0, ge=0, le=100)
    why_recommended: str = ""


class FoodSuggestionList(_AIModel):
    """Envelope for suggestion responses."""

    suggestions: list[FoodSuggestion] = Field(default_factory=list)


class GeneratedRecipe(_AIModel):
    """A detailed recipe produced by the AI or served from the cache."""

    name: str
    description: str = ""
    ingredients: list[RecipeIngredient] = Field(default_factory=list)
    instructions: list[str] = Field(default_factory=list)
    tips: list[str] = Field(default_factory=list)
    preparation_time_minutes: int = Field(default=0, ge=0)
    cooking_time_minutes: int = Field(default=0, ge=0)
    servings: int = Field(default=1, ge=1)
    difficulty_level: int = Field(default=1, ge=1, le=5)
    nutrition: NutritionInfo = Field(default_factory=NutritionInfo)


class DailyTargetsResponse(_AIModel):
    """Daily nutrition targets as returned by the AI."""

    calories: float = Field(gt=0)
    protein: float = Field(ge=0)
    carbohydrates: float = Field(ge=0)
    fat: float = Field(ge=0)
    fiber: float = Field(ge=0)


@dataclass(frozen=True)
class CachedFood:
    """Shared, cross-user cache entry for a generated recipe."""

    id: int | None
    search_key: str
    recipe: GeneratedRecipe
    hit_count: int = 0
    last_accessed_at: datetime | None = None
    created_at: datetime | None = None
