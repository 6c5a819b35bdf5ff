"""Recipe suggestions, generation and the shared recipe cache."""

import hashlib
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import UTC, date, datetime
from decimal import Decimal

from ingredient_tracker.domain.errors import (
    InputValidationError,
    NotFoundOrForbiddenError,
)
from ingredient_tracker.domain.foods import FoodIngredientLine
from ingredient_tracker.domain.nutrition import NutritionGoal
from ingredient_tracker.domain.recipes import (
    CachedFood,
    FoodSuggestion,
    GeneratedRecipe,
    RecipeIngredient,
)
from ingredient_tracker.services.ai import AIService
from ingredient_tracker.services.inventory import require_positive
from ingredient_tracker.services.repositories import RecipeCacheRepository, UnitOfWork

_logger = logging.getLogger(__name__)

MAX_SEARCH_KEY_LENGTH = 500
_HASH_MARKER = "|hash_"
_SHA256_HEX_LENGTH = 64


def build_search_key(food_name: str, ingredients: Iterable[RecipeIngredient]) -> str:
    """Build a user-independent cache key for a dish and its ingredients.

    Ingredients are keyed by name rather than id, so two users asking for the
    same dish with the same amounts share one entry. Keys never exceed
    ``MAX_SEARCH_KEY_LENGTH``; longer ones collapse to the name plus a SHA-256
    digest of the full key.
    """
    name = normalize_food_name(food_name)
    entries = sorted(
        (item.name.strip().lower(), _ingredient_entry(item))
        for item in ingredients
        if item.name.strip()
    )
    key = "|".join([name, "|".join(entry for _, entry in entries)])
    if len(key) <= MAX_SEARCH_KEY_LENGTH:
        return key
    digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
    room = MAX_SEARCH_KEY_LENGTH - len(_HASH_MARKER) - _SHA256_HEX_LENGTH
    return f"{name[:room]}{_HASH_MARKER}{digest}"


def normalize_food_name(food_name: str) -> str:
    """Trim, lowercase and replace spaces and hyphens with underscores."""
    return food_name.strip().lower().replace(" ", "_").replace("-", "_")


def _ingredient_entry(item: RecipeIngredient) -> str:
    return f"{item.name.strip().lower()}|{_format_quantity(item.quantity)}|{item.unit}"


def _format_quantity(quantity: Decimal) -> str:
    # 2.50 and 2.5 must produce the same key.
    return format(quantity.normalize(), "f")


@dataclass
class RecipeCacheService:
    """Shared cache of generated recipes keyed by search key."""

    repository: RecipeCacheRepository
    max_entries: int | None = None

    def lookup(self, search_key: str) -> GeneratedRecipe | None:
        """Return a cached recipe and record the hit."""
        entry = self.repository.find_by_search_key(search_key)
        if entry is None:
            return None
        self.repository.record_hit(search_key, accessed_at=datetime.now(tz=UTC))
        return entry.recipe

    def store(self, search_key: str, recipe: GeneratedRecipe) -> CachedFood:
        """Store a freshly generated recipe, evicting cold entries if bounded."""
        now = datetime.now(tz=UTC)
        entry = self.repository.add(
            CachedFood(
                id=None,
                search_key=search_key,
                recipe=recipe,
                hit_count=0,
                last_accessed_at=now,
                created_at=now,
            )
        )
        if self.max_entries is not None:
            evicted = self.repository.evict_beyond(self.max_entries)
            if evicted:
                _logger.info("Evicted cached recipes: count=%s", evicted)
        return entry


@dataclass
class RecipeService:
    """Suggests dishes from stock and serves recipes through the cache."""

    uow_factory: Callable[[], UnitOfWork]
    ai_service: AIService
    cache_service: RecipeCacheService

    async def suggest_foods(
        self,
        owner_id: int,
        today: date,
        goal: NutritionGoal = NutritionGoal.BALANCED,
        max_suggestions: int = 5,
    ) -> list[FoodSuggestion]:
        """Ask for dishes that use the user's in-stock, unexpired ingredients."""
        require_positive(owner_id, "owner_id")
        if max_suggestions <= 0:
            raise InputValidationError("max_suggestions must be positive")
        with self.uow_factory() as uow:
            stock = uow.ingredients.list_ingredients(owner_id)
        available = [
            item for item in stock if item.quantity > 0 and not item.is_expired(today)
        ]
        if not available:
            return []
        return await self.ai_service.suggest_foods(available, goal, max_suggestions)

    async def generate_recipe(
        self,
        owner_id: int,
        food_name: str,
        lines: list[FoodIngredientLine],
        goal: NutritionGoal = NutritionGoal.BALANCED,
    ) -> GeneratedRecipe:
        """Return a recipe for a dish, generating and caching it on a miss."""
        require_positive(owner_id, "owner_id")
        if not food_name.strip():
            raise InputValidationError("food_name must not be blank")
        ingredients = self._resolve_lines(owner_id, lines)
        search_key = build_search_key(food_name, ingredients)

        cached = self.cache_service.lookup(search_key)
        if cached is not None:
            _logger.info("Recipe cache hit: key=%s", search_key)
            return cached

        _logger.info("Recipe cache miss: key=%s", search_key)
        recipe = await self.ai_service.generate_recipe(food_name, ingredients, goal)
        # Bare fallbacks from unparsable responses are not worth sharing.
        if recipe.ingredients or recipe.instructions:
            self.cache_service.store(search_key, recipe)
        return recipe

    def _resolve_lines(
        self, owner_id: int, lines: list[FoodIngredientLine]
    ) -> list[RecipeIngredient]:
        resolved = []
        with self.uow_factory() as uow:
            for line in lines:
                ingredient = uow.ingredients.get_ingredient(
                    owner_id, line.ingredient_id
                )
                if ingredient is None:
                    raise NotFoundOrForbiddenError("Ingredient", line.ingredient_id)
                resolved.append(
                    RecipeIngredient(
                        name=ingredient.name,
                        quantity=line.quantity,
                        unit=line.unit.value,
                    )
                )
        return resolved
