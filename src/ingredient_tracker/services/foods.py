"""Food composition: food, meal and ingredient stock changes as one unit."""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from ingredient_tracker.domain.errors import (
    InsufficientIngredientError,
    InsufficientStockError,
    NotFoundOrForbiddenError,
)
from ingredient_tracker.domain.foods import Food, FoodDraft, FoodIngredient
from ingredient_tracker.domain.meals import Meal
from ingredient_tracker.services.inventory import InventoryLedger, require_positive
from ingredient_tracker.services.repositories import UnitOfWork

_logger = logging.getLogger(__name__)


@dataclass
class FoodCompositionManager:
    """Coordinates the food, meal, link and stock rows of a food write.

    Every write runs in a single unit of work; any failure leaves no row
    and no stock change behind.
    """

    uow_factory: Callable[[], UnitOfWork]

    def create_food(self, owner_id: int, draft: FoodDraft) -> Food:
        """Log a food in its meal and consume its ingredients."""
        require_positive(owner_id, "owner_id")
        with self.uow_factory() as uow:
            meal = _resolve_meal(uow, owner_id, draft)
            food = uow.foods.add_food(owner_id, draft)
            uow.meals.link_food(meal.id, food.id)
            _consume_ingredients(uow, owner_id, food.id, draft)
            created = uow.foods.get_food(owner_id, food.id) or food
            uow.commit()
        _logger.info(
            "Food created: owner_id=%s food_id=%s meal_id=%s lines=%s",
            owner_id,
            created.id,
            meal.id,
            len(draft.ingredients),
        )
        return created

    def update_food(self, food_id: int, owner_id: int, draft: FoodDraft) -> Food:
        """Replace a food's fields, meal placement and ingredient usage."""
        require_positive(owner_id, "owner_id")
        require_positive(food_id, "food_id")
        with self.uow_factory() as uow:
            existing = uow.foods.get_food(owner_id, food_id)
            if existing is None:
                raise NotFoundOrForbiddenError("Food", food_id)
            _restore_ingredients(uow, owner_id, existing)
            uow.foods.delete_food_ingredients(food_id)
            uow.foods.update_food(owner_id, food_id, draft)
            meal = _resolve_meal(uow, owner_id, draft)
            uow.meals.unlink_food(food_id)
            uow.meals.link_food(meal.id, food_id)
            _consume_ingredients(uow, owner_id, food_id, draft)
            updated = uow.foods.get_food(owner_id, food_id)
            uow.commit()
        if updated is None:
            raise NotFoundOrForbiddenError("Food", food_id)
        _logger.info(
            "Food updated: owner_id=%s food_id=%s meal_id=%s",
            owner_id,
            food_id,
            meal.id,
        )
        return updated

    def delete_food(self, food_id: int, owner_id: int) -> bool:
        """Delete a food and give its ingredients back; False if absent."""
        require_positive(owner_id, "owner_id")
        require_positive(food_id, "food_id")
        with self.uow_factory() as uow:
            existing = uow.foods.get_food(owner_id, food_id)
            if existing is None:
                return False
            _restore_ingredients(uow, owner_id, existing)
            uow.meals.unlink_food(food_id)
            uow.foods.delete_food_ingredients(food_id)
            uow.foods.delete_food(owner_id, food_id)
            uow.commit()
        _logger.info("Food deleted: owner_id=%s food_id=%s", owner_id, food_id)
        return True

    def get_food(self, food_id: int, owner_id: int) -> Food:
        """Return a food with its ingredient links."""
        require_positive(owner_id, "owner_id")
        require_positive(food_id, "food_id")
        with self.uow_factory() as uow:
            food = uow.foods.get_food(owner_id, food_id)
        if food is None:
            raise NotFoundOrForbiddenError("Food", food_id)
        return food

    def list_foods(self, owner_id: int) -> list[Food]:
        """Return the user's foods."""
        require_positive(owner_id, "owner_id")
        with self.uow_factory() as uow:
            return uow.foods.list_foods(owner_id)


def _resolve_meal(uow: UnitOfWork, owner_id: int, draft: FoodDraft) -> Meal:
    meal = uow.meals.find_meal(owner_id, draft.meal_date, draft.meal_type)
    if meal is not None:
        return meal
    return uow.meals.add_meal(
        owner_id, draft.meal_date, draft.meal_type, draft.consumed_at
    )


def _consume_ingredients(
    uow: UnitOfWork, owner_id: int, food_id: int, draft: FoodDraft
) -> None:
    ledger = InventoryLedger(uow.ingredients)
    for line in draft.ingredients:
        try:
            ledger.deduct(owner_id, line.ingredient_id, line.quantity)
        except InsufficientStockError as exc:
            ingredient = uow.ingredients.get_ingredient(owner_id, line.ingredient_id)
            name = ingredient.name if ingredient else str(line.ingredient_id)
            raise InsufficientIngredientError(
                name, line.ingredient_id, exc.requested, exc.available
            ) from exc
        # Zero-quantity lines still produce a link.
        uow.foods.add_food_ingredient(
            FoodIngredient(
                food_id=food_id,
                ingredient_id=line.ingredient_id,
                quantity=line.quantity,
                unit=line.unit,
            )
        )


def _restore_ingredients(uow: UnitOfWork, owner_id: int, food: Food) -> None:
    ledger = InventoryLedger(uow.ingredients)
    for link in food.ingredients:
        ledger.restore(owner_id, link.ingredient_id, link.quantity)
