"""Request bodies that are not plain domain drafts."""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field

from ingredient_tracker.domain.foods import FoodIngredientLine
from ingredient_tracker.domain.nutrition import (
    ActivityLevel,
    NutritionGoal,
    UserProfile,
)


class RestockRequest(BaseModel):
    amount: Decimal = Field(gt=0, max_digits=10, decimal_places=2)


class ProfileRequest(BaseModel):
    """Body and goal information for target estimation."""

    gender: str | None = Field(default=None, max_length=20)
    date_of_birth: date | None = None
    height_cm: Decimal | None = Field(default=None, gt=0, max_digits=5)
    weight_kg: Decimal | None = Field(default=None, gt=0, max_digits=5)
    target_weight_kg: Decimal | None = Field(default=None, gt=0, max_digits=5)
    primary_goal: NutritionGoal | None = None
    activity_level: ActivityLevel | None = None

    def to_profile(self, owner_id: int) -> UserProfile:
        return UserProfile(user_id=owner_id, **self.model_dump())


class RecipeRequest(BaseModel):
    food_name: str = Field(min_length=1, max_length=200)
    ingredients: list[FoodIngredientLine] = Field(default_factory=list)
    goal: NutritionGoal = NutritionGoal.BALANCED


class SuggestionRequest(BaseModel):
    goal: NutritionGoal = NutritionGoal.BALANCED
    max_suggestions: int = Field(default=5, ge=1, le=20)
