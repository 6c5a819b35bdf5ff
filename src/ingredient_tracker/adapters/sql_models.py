"""SQLModel tables for the per-user relational store and their domain mapping."""

import json
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import DateTime, Text
from sqlmodel import Field, SQLModel

from ingredient_tracker.domain.foods import Food, FoodDraft, FoodIngredient, to_utc
from ingredient_tracker.domain.ingredients import (
    Ingredient,
    IngredientCategory,
    IngredientDraft,
    IngredientUnit,
)
from ingredient_tracker.domain.meals import Meal, MealType
from ingredient_tracker.domain.nutrition import (
    ActivityLevel,
    NutritionGoal,
    NutritionTargets,
    UserProfile,
)


class IngredientRow(SQLModel, table=True):
    __tablename__ = "ingredients"

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(index=True)
    name: str = Field(max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    quantity: Decimal = Field(default=Decimal("0"), max_digits=10, decimal_places=2)
    unit: str = Field(default=IngredientUnit.PIECE.value, max_length=20)
    category: str = Field(default=IngredientCategory.OTHER.value, max_length=20)
    expiry_date: date


class FoodRow(SQLModel, table=True):
    __tablename__ = "foods"

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(index=True)
    name: str = Field(max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    calories: float = 0.0
    protein: float = 0.0
    carbohydrates: float = 0.0
    fat: float = 0.0
    fiber: float = 0.0
    instructions: str = Field(default="[]", sa_type=Text)
    tips: str = Field(default="[]", sa_type=Text)
    difficulty_level: int = 1
    preparation_time_minutes: int = 0
    cooking_time_minutes: int = 0
    consumed_at: datetime | None = Field(
        default=None, sa_type=DateTime(timezone=True)
    )


class FoodIngredientRow(SQLModel, table=True):
    """Consumption link; ingredient_id has no foreign key so stock can go away."""

    __tablename__ = "food_ingredients"

    id: int | None = Field(default=None, primary_key=True)
    food_id: int = Field(foreign_key="foods.id", index=True)
    ingredient_id: int = Field(index=True)
    quantity: Decimal = Field(default=Decimal("0"), max_digits=10, decimal_places=2)
    unit: str = Field(default=IngredientUnit.PIECE.value, max_length=20)


class MealRow(SQLModel, table=True):
    __tablename__ = "meals"

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(index=True)
    meal_type: int = Field(default=int(MealType.OTHER))
    meal_date: date = Field(index=True)
    consumed_at: datetime | None = Field(
        default=None, sa_type=DateTime(timezone=True)
    )


class MealFoodRow(SQLModel, table=True):
    __tablename__ = "meal_foods"

    meal_id: int = Field(foreign_key="meals.id", primary_key=True)
    food_id: int = Field(foreign_key="foods.id", primary_key=True, index=True)


class NutritionTargetsRow(SQLModel, table=True):
    __tablename__ = "user_nutrition_targets"

    user_id: int = Field(primary_key=True)
    calories: float
    protein: float
    carbohydrates: float
    fat: float
    fiber: float


class UserProfileRow(SQLModel, table=True):
    __tablename__ = "user_profiles"

    user_id: int = Field(primary_key=True)
    gender: str | None = Field(default=None, max_length=20)
    date_of_birth: date | None = None
    height_cm: Decimal | None = Field(default=None, max_digits=5, decimal_places=2)
    weight_kg: Decimal | None = Field(default=None, max_digits=5, decimal_places=2)
    target_weight_kg: Decimal | None = Field(
        default=None, max_digits=5, decimal_places=2
    )
    primary_goal: str | None = Field(default=None, max_length=30)
    activity_level: str | None = Field(default=None, max_length=20)


def ingredient_row(owner_id: int, draft: IngredientDraft) -> IngredientRow:
    return IngredientRow(
        user_id=owner_id,
        name=draft.name,
        description=draft.description,
        quantity=draft.quantity,
        unit=draft.unit.value,
        category=draft.category.value,
        expiry_date=draft.expiry_date,
    )


def ingredient_from_row(row: IngredientRow) -> Ingredient:
    """Parse an ingredient row into a domain model."""
    return Ingredient(
        id=_require_id(row.id),
        user_id=row.user_id,
        name=row.name,
        quantity=Decimal(row.quantity),
        unit=IngredientUnit(row.unit),
        category=IngredientCategory(row.category),
        expiry_date=row.expiry_date,
        description=row.description,
    )


def apply_food_draft(row: FoodRow, draft: FoodDraft) -> FoodRow:
    """Copy the scalar fields of a draft onto a food row."""
    row.name = draft.name
    row.description = draft.description
    row.calories = draft.calories
    row.protein = draft.protein
    row.carbohydrates = draft.carbohydrates
    row.fat = draft.fat
    row.fiber = draft.fiber
    row.instructions = json.dumps(draft.instructions)
    row.tips = json.dumps(draft.tips)
    row.difficulty_level = draft.difficulty_level
    row.preparation_time_minutes = draft.preparation_time_minutes
    row.cooking_time_minutes = draft.cooking_time_minutes
    row.consumed_at = draft.consumed_at
    return row


def food_from_row(row: FoodRow, links: list[FoodIngredientRow]) -> Food:
    """Parse a food row and its ingredient links into a domain model."""
    return Food(
        id=_require_id(row.id),
        user_id=row.user_id,
        name=row.name,
        calories=row.calories,
        protein=row.protein,
        carbohydrates=row.carbohydrates,
        fat=row.fat,
        fiber=row.fiber,
        description=row.description,
        instructions=decode_text_list(row.instructions),
        tips=decode_text_list(row.tips),
        difficulty_level=row.difficulty_level,
        preparation_time_minutes=row.preparation_time_minutes,
        cooking_time_minutes=row.cooking_time_minutes,
        consumed_at=to_utc(row.consumed_at) if row.consumed_at else None,
        ingredients=tuple(
            FoodIngredient(
                food_id=link.food_id,
                ingredient_id=link.ingredient_id,
                quantity=Decimal(link.quantity),
                unit=IngredientUnit(link.unit),
            )
            for link in links
        ),
    )


def meal_from_row(row: MealRow, food_ids: list[int]) -> Meal:
    return Meal(
        id=_require_id(row.id),
        user_id=row.user_id,
        meal_type=MealType(row.meal_type),
        meal_date=row.meal_date,
        consumed_at=to_utc(row.consumed_at) if row.consumed_at else None,
        food_ids=tuple(food_ids),
    )


def targets_from_row(row: NutritionTargetsRow) -> NutritionTargets:
    return NutritionTargets(
        calories=row.calories,
        protein=row.protein,
        carbohydrates=row.carbohydrates,
        fat=row.fat,
        fiber=row.fiber,
    )


def profile_row(profile: UserProfile) -> UserProfileRow:
    return UserProfileRow(
        user_id=profile.user_id,
        gender=profile.gender,
        date_of_birth=profile.date_of_birth,
        height_cm=profile.height_cm,
        weight_kg=profile.weight_kg,
        target_weight_kg=profile.target_weight_kg,
        primary_goal=profile.primary_goal.value if profile.primary_goal else None,
        activity_level=(
            profile.activity_level.value if profile.activity_level else None
        ),
    )


def profile_from_row(row: UserProfileRow) -> UserProfile:
    return UserProfile(
        user_id=row.user_id,
        gender=row.gender,
        date_of_birth=row.date_of_birth,
        height_cm=row.height_cm,
        weight_kg=row.weight_kg,
        target_weight_kg=row.target_weight_kg,
        primary_goal=NutritionGoal(row.primary_goal) if row.primary_goal else None,
        activity_level=(
            ActivityLevel(row.activity_level) if row.activity_level else None
        ),
    )


def decode_text_list(raw: str | None) -> tuple[str, ...]:
    """Decode a JSON list column, unwrapping values that were encoded twice.

    Legacy rows may hold a JSON string whose content is itself a JSON list,
    or plain text that was never encoded at all.
    """
    if not raw:
        return ()
    value: object = raw
    while isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            return (value,) if value.strip() else ()
    if isinstance(value, list):
        return tuple(str(item) for item in value if item is not None)
    return (str(value),)


def _require_id(value: int | None) -> int:
    if value is None:
        raise RuntimeError("Row has not been flushed")
    return value
