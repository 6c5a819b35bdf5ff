"""Domain models for foods composed from ingredients."""

from dataclasses import dataclass
from datetime import UTC, date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from ingredient_tracker.domain.ingredients import IngredientUnit
from ingredient_tracker.domain.meals import MealType


@dataclass(frozen=True)
class FoodIngredient:
    """Amount of an ingredient consumed by a food."""

    food_id: int
    ingredient_id: int
    quantity: Decimal
    unit: IngredientUnit


@dataclass(frozen=True)
class Food:
    """A food logged by a user."""

    id: int
    user_id: int
    name: str
    calories: float
    protein: float
    carbohydrates: float
    fat: float
    fiber: float
    description: str | None = None
    instructions: tuple[str, ...] = ()
    tips: tuple[str, ...] = ()
    difficulty_level: int = 1
    preparation_time_minutes: int = 0
    cooking_time_minutes: int = 0
    consumed_at: datetime | None = None
    ingredients: tuple[FoodIngredient, ...] = ()


class FoodIngredientLine(BaseModel):
    """Ingredient consumption requested by a food write."""

    ingredient_id: int = Field(gt=0)
    quantity: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    unit: IngredientUnit = IngredientUnit.PIECE


class FoodDraft(BaseModel):
    """Validated input for creating or updating a food."""

    name: str = Field(min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    calories: float = Field(default=0.0, ge=0)
    protein: float = Field(default=0.0, ge=0)
    carbohydrates: float = Field(default=0.0, ge=0)
    fat: float = Field(default=0.0, ge=0)
    fiber: float = Field(default=0.0, ge=0)
    instructions: list[str] = Field(default_factory=list)
    tips: list[str] = Field(default_factory=list)
    difficulty_level: int = Field(default=1, ge=1, le=5)
    preparation_time_minutes: int = Field(default=0, ge=0)
    cooking_time_minutes: int = Field(default=0, ge=0)
    meal_type: MealType = MealType.OTHER
    meal_date: date
    consumed_at: datetime | None = None
    ingredients: list[FoodIngredientLine] = Field(default_factory=list)

    @field_validator("meal_type", mode="before")
    @classmethod
    def _parse_meal_type(cls, value: object) -> MealType:
        return MealType.parse(value)

    @field_validator("consumed_at")
    @classmethod
    def _normalize_consumed_at(cls, value: datetime | None) -> datetime | None:
        return to_utc(value) if value is not None else None


def to_utc(value: datetime) -> datetime:
    """Normalize a datetime to UTC, treating naive values as UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
