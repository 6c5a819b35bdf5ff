"""Ingredient stock ledger and inventory service."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from ingredient_tracker.domain.errors import (
    InputValidationError,
    InsufficientStockError,
    NotFoundOrForbiddenError,
)
from ingredient_tracker.domain.ingredients import Ingredient, IngredientDraft
from ingredient_tracker.services.repositories import IngredientRepository, UnitOfWork

_logger = logging.getLogger(__name__)


@dataclass
class InventoryLedger:
    """Moves quantity between available stock and food consumption.

    The ledger never commits; the caller owns the transaction.
    """

    repository: IngredientRepository

    def deduct(self, owner_id: int, ingredient_id: int, amount: Decimal) -> None:
        """Consume stock, failing when the ingredient does not cover amount."""
        if amount < 0:
            raise InputValidationError("Deduction amount must not be negative")
        if amount == 0:
            return
        ingredient = self.repository.get_ingredient(owner_id, ingredient_id)
        if ingredient is None:
            raise NotFoundOrForbiddenError("Ingredient", ingredient_id)
        if not self.repository.deduct_if_available(owner_id, ingredient_id, amount):
            current = self.repository.get_ingredient(owner_id, ingredient_id)
            available = current.quantity if current else Decimal("0")
            raise InsufficientStockError(ingredient_id, amount, available)

    def restore(self, owner_id: int, ingredient_id: int, amount: Decimal) -> None:
        """Return consumed stock; a deleted ingredient is silently skipped."""
        if amount <= 0:
            return
        if not self.repository.add_quantity(owner_id, ingredient_id, amount):
            _logger.info(
                "Skipping restore for missing ingredient: ingredient_id=%s",
                ingredient_id,
            )

    def restock(self, owner_id: int, ingredient_id: int, amount: Decimal) -> None:
        """Add purchased stock to an existing ingredient."""
        if amount <= 0:
            raise InputValidationError("Restock amount must be positive")
        if not self.repository.add_quantity(owner_id, ingredient_id, amount):
            raise NotFoundOrForbiddenError("Ingredient", ingredient_id)


@dataclass
class IngredientService:
    """User-facing inventory operations."""

    uow_factory: Callable[[], UnitOfWork]

    def add_ingredient(self, owner_id: int, draft: IngredientDraft) -> Ingredient:
        """Create an ingredient with its initial stock."""
        require_positive(owner_id, "owner_id")
        with self.uow_factory() as uow:
            ingredient = uow.ingredients.add_ingredient(owner_id, draft)
            uow.commit()
        return ingredient

    def get_ingredient(self, owner_id: int, ingredient_id: int) -> Ingredient:
        """Return an ingredient or raise when absent."""
        require_positive(owner_id, "owner_id")
        require_positive(ingredient_id, "ingredient_id")
        with self.uow_factory() as uow:
            ingredient = uow.ingredients.get_ingredient(owner_id, ingredient_id)
        if ingredient is None:
            raise NotFoundOrForbiddenError("Ingredient", ingredient_id)
        return ingredient

    def list_ingredients(self, owner_id: int) -> list[Ingredient]:
        """Return the user's inventory ordered by name."""
        require_positive(owner_id, "owner_id")
        with self.uow_factory() as uow:
            ingredients = uow.ingredients.list_ingredients(owner_id)
        return sorted(ingredients, key=lambda item: (item.name.lower(), item.id))

    def list_available(self, owner_id: int, today: date) -> list[Ingredient]:
        """Return in-stock, unexpired ingredients."""
        return [
            item
            for item in self.list_ingredients(owner_id)
            if item.quantity > 0 and not item.is_expired(today)
        ]

    def list_expiring(
        self, owner_id: int, today: date, days: int = 7
    ) -> list[Ingredient]:
        """Return ingredients expiring within the given number of days."""
        if days < 0:
            raise InputValidationError("days must not be negative")
        return [
            item
            for item in self.list_ingredients(owner_id)
            if 0 <= item.days_until_expiry(today) <= days
        ]

    def list_expired(self, owner_id: int, today: date) -> list[Ingredient]:
        """Return ingredients past their expiry date."""
        return [
            item for item in self.list_ingredients(owner_id) if item.is_expired(today)
        ]

    def restock(
        self, owner_id: int, ingredient_id: int, amount: Decimal
    ) -> Ingredient:
        """Increase stock of an ingredient and return the new state."""
        require_positive(owner_id, "owner_id")
        require_positive(ingredient_id, "ingredient_id")
        with self.uow_factory() as uow:
            InventoryLedger(uow.ingredients).restock(owner_id, ingredient_id, amount)
            ingredient = uow.ingredients.get_ingredient(owner_id, ingredient_id)
            uow.commit()
        if ingredient is None:
            raise NotFoundOrForbiddenError("Ingredient", ingredient_id)
        return ingredient

    def delete_ingredient(self, owner_id: int, ingredient_id: int) -> bool:
        """Delete an ingredient; foods keep their links as history."""
        require_positive(owner_id, "owner_id")
        require_positive(ingredient_id, "ingredient_id")
        with self.uow_factory() as uow:
            deleted = uow.ingredients.delete_ingredient(owner_id, ingredient_id)
            uow.commit()
        return deleted


def require_positive(value: int, name: str) -> None:
    """Reject non-positive identifiers before touching persistence."""
    if value <= 0:
        raise InputValidationError(f"{name} must be positive")
