"""Persistence interfaces consumed by the core services."""

from datetime import date, datetime
from decimal import Decimal
from types import TracebackType
from typing import Protocol

from ingredient_tracker.domain.foods import Food, FoodDraft, FoodIngredient
from ingredient_tracker.domain.ingredients import Ingredient, IngredientDraft
from ingredient_tracker.domain.meals import Meal, MealType
from ingredient_tracker.domain.nutrition import NutritionTargets, UserProfile
from ingredient_tracker.domain.recipes import CachedFood


class IngredientRepository(Protocol):
    """Persistence interface for inventory ingredients."""

    def get_ingredient(self, owner_id: int, ingredient_id: int) -> Ingredient | None:
        """Return an ingredient owned by the user, if present."""

    def list_ingredients(self, owner_id: int) -> list[Ingredient]:
        """Return all ingredients owned by the user."""

    def add_ingredient(self, owner_id: int, draft: IngredientDraft) -> Ingredient:
        """Create an ingredient and return it."""

    def delete_ingredient(self, owner_id: int, ingredient_id: int) -> bool:
        """Delete an ingredient, returning whether it existed."""

    def deduct_if_available(
        self, owner_id: int, ingredient_id: int, amount: Decimal
    ) -> bool:
        """Atomically subtract amount when the stock covers it."""

    def add_quantity(self, owner_id: int, ingredient_id: int, amount: Decimal) -> bool:
        """Atomically add amount, returning whether the ingredient exists."""


class FoodRepository(Protocol):
    """Persistence interface for foods and their ingredient links."""

    def get_food(self, owner_id: int, food_id: int) -> Food | None:
        """Return a food with its ingredient links."""

    def get_foods(self, owner_id: int, food_ids: list[int]) -> dict[int, Food]:
        """Return the resolvable foods among the given ids."""

    def list_foods(self, owner_id: int) -> list[Food]:
        """Return all foods owned by the user."""

    def add_food(self, owner_id: int, draft: FoodDraft) -> Food:
        """Insert a food row from a draft."""

    def update_food(self, owner_id: int, food_id: int, draft: FoodDraft) -> Food:
        """Overwrite the scalar fields of a food."""

    def delete_food(self, owner_id: int, food_id: int) -> None:
        """Delete a food row."""

    def add_food_ingredient(self, link: FoodIngredient) -> None:
        """Insert a food-ingredient link."""

    def delete_food_ingredients(self, food_id: int) -> None:
        """Delete every ingredient link of a food."""


class MealRepository(Protocol):
    """Persistence interface for meals and meal-food links."""

    def find_meal(
        self, owner_id: int, meal_date: date, meal_type: MealType
    ) -> Meal | None:
        """Return the meal for a date and type, if present."""

    def add_meal(
        self,
        owner_id: int,
        meal_date: date,
        meal_type: MealType,
        consumed_at: datetime | None,
    ) -> Meal:
        """Create a meal and return it."""

    def list_meals_on(self, owner_id: int, day: date) -> list[Meal]:
        """Return meals dated on a day, with their food ids."""

    def list_meal_dates(self, owner_id: int) -> list[date]:
        """Return the distinct dates the user has meals on, ascending."""

    def link_food(self, meal_id: int, food_id: int) -> None:
        """Place a food in a meal."""

    def unlink_food(self, food_id: int) -> None:
        """Remove a food from every meal."""


class NutritionTargetsRepository(Protocol):
    """Persistence interface for per-user daily targets."""

    def get_targets(self, owner_id: int) -> NutritionTargets | None:
        """Return stored daily targets."""

    def save_targets(self, owner_id: int, targets: NutritionTargets) -> None:
        """Insert or replace daily targets."""


class UserProfileRepository(Protocol):
    """Persistence interface for user body and goal information."""

    def get_profile(self, owner_id: int) -> UserProfile | None:
        """Return the stored profile."""

    def save_profile(self, profile: UserProfile) -> None:
        """Insert or replace a profile."""


class UnitOfWork(Protocol):
    """Transaction scope over the user-scoped repositories.

    Leaving the ``with`` block without ``commit()`` rolls back every change.
    """

    ingredients: IngredientRepository
    foods: FoodRepository
    meals: MealRepository
    targets: NutritionTargetsRepository
    profiles: UserProfileRepository

    def __enter__(self) -> "UnitOfWork":
        """Open the transaction."""

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        """Roll back anything uncommitted and release resources."""

    def commit(self) -> None:
        """Commit all changes made in this scope."""

    def rollback(self) -> None:
        """Discard all changes made in this scope."""


class RecipeCacheRepository(Protocol):
    """Persistence interface for the shared recipe cache."""

    def find_by_search_key(self, search_key: str) -> CachedFood | None:
        """Return the entry stored under a key."""

    def add(self, entry: CachedFood) -> CachedFood:
        """Store a new entry and return it with its id."""

    def record_hit(self, search_key: str, accessed_at: datetime) -> None:
        """Increment the hit count and touch the last-accessed time."""

    def evict_beyond(self, max_entries: int) -> int:
        """Delete the least used entries above a size, returning the count."""
