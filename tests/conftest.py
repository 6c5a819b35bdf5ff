"""Shared test fixtures."""

import copy
import threading
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import UTC, date, datetime
from decimal import Decimal
from types import TracebackType

import pytest
from fastapi.testclient import TestClient

from ingredient_tracker.api.app import create_app
from ingredient_tracker.config import Settings
from ingredient_tracker.containers import AppContainer
from ingredient_tracker.domain.errors import NotFoundOrForbiddenError
from ingredient_tracker.domain.foods import Food, FoodDraft, FoodIngredient
from ingredient_tracker.domain.ingredients import (
    Ingredient,
    IngredientCategory,
    IngredientDraft,
    IngredientUnit,
)
from ingredient_tracker.domain.meals import Meal, MealType
from ingredient_tracker.domain.nutrition import NutritionTargets, UserProfile
from ingredient_tracker.domain.recipes import CachedFood
from ingredient_tracker.services.ai import AIService, CompletionClient
from ingredient_tracker.services.foods import FoodCompositionManager
from ingredient_tracker.services.inventory import IngredientService
from ingredient_tracker.services.nutrition import NutritionAggregator
from ingredient_tracker.services.recipes import RecipeCacheService, RecipeService
from ingredient_tracker.services.repositories import (
    FoodRepository,
    IngredientRepository,
    MealRepository,
    NutritionTargetsRepository,
    RecipeCacheRepository,
    UnitOfWork,
    UserProfileRepository,
)
from ingredient_tracker.services.targets import NutritionTargetsService

_DATA_FIELDS = (
    "ingredients",
    "foods",
    "food_ingredients",
    "meals",
    "meal_foods",
    "targets",
    "profiles",
    "next_id",
)


@dataclass
class InMemoryStore:
    """Shared backing data for the in-memory repositories."""

    ingredients: dict[int, Ingredient] = field(default_factory=dict)
    foods: dict[int, Food] = field(default_factory=dict)
    food_ingredients: list[FoodIngredient] = field(default_factory=list)
    meals: dict[int, Meal] = field(default_factory=dict)
    meal_foods: list[tuple[int, int]] = field(default_factory=list)
    targets: dict[int, NutritionTargets] = field(default_factory=dict)
    profiles: dict[int, UserProfile] = field(default_factory=dict)
    next_id: int = 1
    lock: threading.Lock = field(default_factory=threading.Lock)

    def allocate_id(self) -> int:
        value = self.next_id
        self.next_id += 1
        return value

    def snapshot(self) -> dict[str, object]:
        return {name: copy.deepcopy(getattr(self, name)) for name in _DATA_FIELDS}

    def restore(self, snapshot: dict[str, object]) -> None:
        for name, value in snapshot.items():
            setattr(self, name, value)


@dataclass
class InMemoryIngredientRepository(IngredientRepository):
    """In-memory ingredient repository for tests."""

    store: InMemoryStore

    def get_ingredient(self, owner_id: int, ingredient_id: int) -> Ingredient | None:
        item = self.store.ingredients.get(ingredient_id)
        if item is None or item.user_id != owner_id:
            return None
        return item

    def list_ingredients(self, owner_id: int) -> list[Ingredient]:
        return [
            item for item in self.store.ingredients.values() if item.user_id == owner_id
        ]

    def add_ingredient(self, owner_id: int, draft: IngredientDraft) -> Ingredient:
        ingredient = Ingredient(
            id=self.store.allocate_id(),
            user_id=owner_id,
            name=draft.name,
            quantity=draft.quantity,
            unit=draft.unit,
            category=draft.category,
            expiry_date=draft.expiry_date,
            description=draft.description,
        )
        self.store.ingredients[ingredient.id] = ingredient
        return ingredient

    def delete_ingredient(self, owner_id: int, ingredient_id: int) -> bool:
        if self.get_ingredient(owner_id, ingredient_id) is None:
            return False
        del self.store.ingredients[ingredient_id]
        return True

    def deduct_if_available(
        self, owner_id: int, ingredient_id: int, amount: Decimal
    ) -> bool:
        with self.store.lock:
            item = self.get_ingredient(owner_id, ingredient_id)
            if item is None or item.quantity < amount:
                return False
            self.store.ingredients[ingredient_id] = replace(
                item, quantity=item.quantity - amount
            )
            return True

    def add_quantity(self, owner_id: int, ingredient_id: int, amount: Decimal) -> bool:
        with self.store.lock:
            item = self.get_ingredient(owner_id, ingredient_id)
            if item is None:
                return False
            self.store.ingredients[ingredient_id] = replace(
                item, quantity=item.quantity + amount
            )
            return True


@dataclass
class InMemoryFoodRepository(FoodRepository):
    """In-memory food repository for tests."""

    store: InMemoryStore

    def get_food(self, owner_id: int, food_id: int) -> Food | None:
        food = self.store.foods.get(food_id)
        if food is None or food.user_id != owner_id:
            return None
        links = tuple(
            link for link in self.store.food_ingredients if link.food_id == food_id
        )
        return replace(food, ingredients=links)

    def get_foods(self, owner_id: int, food_ids: list[int]) -> dict[int, Food]:
        foods = (self.get_food(owner_id, food_id) for food_id in food_ids)
        return {food.id: food for food in foods if food is not None}

    def list_foods(self, owner_id: int) -> list[Food]:
        return [
            food
            for food_id in sorted(self.store.foods)
            if (food := self.get_food(owner_id, food_id)) is not None
        ]

    def add_food(self, owner_id: int, draft: FoodDraft) -> Food:
        food = _food_from_draft(self.store.allocate_id(), owner_id, draft)
        self.store.foods[food.id] = food
        return food

    def update_food(self, owner_id: int, food_id: int, draft: FoodDraft) -> Food:
        if self.get_food(owner_id, food_id) is None:
            raise NotFoundOrForbiddenError("Food", food_id)
        food = _food_from_draft(food_id, owner_id, draft)
        self.store.foods[food_id] = food
        return food

    def delete_food(self, owner_id: int, food_id: int) -> None:
        if self.get_food(owner_id, food_id) is not None:
            del self.store.foods[food_id]

    def add_food_ingredient(self, link: FoodIngredient) -> None:
        self.store.food_ingredients.append(link)

    def delete_food_ingredients(self, food_id: int) -> None:
        self.store.food_ingredients = [
            link for link in self.store.food_ingredients if link.food_id != food_id
        ]


@dataclass
class InMemoryMealRepository(MealRepository):
    """In-memory meal repository for tests."""

    store: InMemoryStore

    def find_meal(
        self, owner_id: int, meal_date: date, meal_type: MealType
    ) -> Meal | None:
        matches = [
            meal
            for meal in self._owned(owner_id)
            if meal.meal_date == meal_date and meal.meal_type == meal_type
        ]
        return max(matches, key=lambda meal: meal.id) if matches else None

    def add_meal(
        self,
        owner_id: int,
        meal_date: date,
        meal_type: MealType,
        consumed_at: datetime | None,
    ) -> Meal:
        meal = Meal(
            id=self.store.allocate_id(),
            user_id=owner_id,
            meal_type=meal_type,
            meal_date=meal_date,
            consumed_at=consumed_at,
        )
        self.store.meals[meal.id] = meal
        return meal

    def list_meals_on(self, owner_id: int, day: date) -> list[Meal]:
        return [meal for meal in self._owned(owner_id) if meal.meal_date == day]

    def list_meal_dates(self, owner_id: int) -> list[date]:
        return sorted({meal.meal_date for meal in self._owned(owner_id)})

    def link_food(self, meal_id: int, food_id: int) -> None:
        if (meal_id, food_id) not in self.store.meal_foods:
            self.store.meal_foods.append((meal_id, food_id))

    def unlink_food(self, food_id: int) -> None:
        self.store.meal_foods = [
            pair for pair in self.store.meal_foods if pair[1] != food_id
        ]

    def _owned(self, owner_id: int) -> list[Meal]:
        return [
            replace(
                meal,
                food_ids=tuple(
                    food_id
                    for meal_id, food_id in self.store.meal_foods
                    if meal_id == meal.id
                ),
            )
            for meal in self.store.meals.values()
            if meal.user_id == owner_id
        ]


@dataclass
class InMemoryTargetsRepository(NutritionTargetsRepository):
    store: InMemoryStore

    def get_targets(self, owner_id: int) -> NutritionTargets | None:
        return self.store.targets.get(owner_id)

    def save_targets(self, owner_id: int, targets: NutritionTargets) -> None:
        self.store.targets[owner_id] = targets


@dataclass
class InMemoryProfileRepository(UserProfileRepository):
    store: InMemoryStore

    def get_profile(self, owner_id: int) -> UserProfile | None:
        return self.store.profiles.get(owner_id)

    def save_profile(self, profile: UserProfile) -> None:
        self.store.profiles[profile.user_id] = profile


class InMemoryUnitOfWork(UnitOfWork):
    """Snapshot on enter, restore on exit unless committed."""

    def __init__(self, store: InMemoryStore) -> None:
        self.store = store
        self.ingredients = InMemoryIngredientRepository(store)
        self.foods = InMemoryFoodRepository(store)
        self.meals = InMemoryMealRepository(store)
        self.targets = InMemoryTargetsRepository(store)
        self.profiles = InMemoryProfileRepository(store)
        self._snapshot: dict[str, object] | None = None

    def __enter__(self) -> "InMemoryUnitOfWork":
        self._snapshot = self.store.snapshot()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.rollback()

    def commit(self) -> None:
        self._snapshot = None

    def rollback(self) -> None:
        if self._snapshot is not None:
            self.store.restore(self._snapshot)
            self._snapshot = None


@dataclass
class InMemoryRecipeCacheRepository(RecipeCacheRepository):
    """In-memory recipe cache for tests."""

    entries: dict[str, CachedFood] = field(default_factory=dict)
    next_id: int = 1

    def find_by_search_key(self, search_key: str) -> CachedFood | None:
        return self.entries.get(search_key)

    def add(self, entry: CachedFood) -> CachedFood:
        stored = replace(entry, id=self.next_id)
        self.next_id += 1
        self.entries[entry.search_key] = stored
        return stored

    def record_hit(self, search_key: str, accessed_at: datetime) -> None:
        entry = self.entries[search_key]
        self.entries[search_key] = replace(
            entry, hit_count=entry.hit_count + 1, last_accessed_at=accessed_at
        )

    def evict_beyond(self, max_entries: int) -> int:
        ranked = sorted(
            self.entries.values(),
            key=lambda entry: (
                entry.hit_count,
                entry.last_accessed_at or datetime.min.replace(tzinfo=UTC),
            ),
            reverse=True,
        )
        stale = ranked[max_entries:]
        for entry in stale:
            del self.entries[entry.search_key]
        return len(stale)


@dataclass
class FakeCompletionClient(CompletionClient):
    """Returns queued responses and records every prompt."""

    responses: list[str | Exception] = field(default_factory=list)
    calls: list[tuple[str, str, float | None]] = field(default_factory=list)

    def queue(self, *responses: str | Exception) -> None:
        self.responses.extend(responses)

    async def complete(
        self, system_prompt: str, user_prompt: str, timeout: float | None = None
    ) -> str:
        self.calls.append((system_prompt, user_prompt, timeout))
        if not self.responses:
            raise AssertionError("Unexpected AI call")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def ingredient_draft(
    name: str,
    quantity: str | Decimal,
    unit: IngredientUnit = IngredientUnit.KILOGRAM,
    expiry_date: date = date(2030, 1, 1),
) -> IngredientDraft:
    return IngredientDraft(
        name=name,
        quantity=Decimal(quantity),
        unit=unit,
        category=IngredientCategory.OTHER,
        expiry_date=expiry_date,
    )


def food_draft(
    name: str = "Fried rice",
    lines: list[tuple[int, str]] | None = None,
    meal_type: MealType = MealType.LUNCH,
    meal_date: date = date(2024, 5, 1),
    calories: float = 500.0,
    protein: float = 20.0,
) -> FoodDraft:
    return FoodDraft(
        name=name,
        calories=calories,
        protein=protein,
        carbohydrates=60.0,
        fat=15.0,
        fiber=4.0,
        meal_type=meal_type,
        meal_date=meal_date,
        ingredients=[
            {
                "ingredient_id": ingredient_id,
                "quantity": Decimal(quantity),
                "unit": IngredientUnit.KILOGRAM,
            }
            for ingredient_id, quantity in (lines or [])
        ],
    )


def _food_from_draft(food_id: int, owner_id: int, draft: FoodDraft) -> Food:
    return Food(
        id=food_id,
        user_id=owner_id,
        name=draft.name,
        calories=draft.calories,
        protein=draft.protein,
        carbohydrates=draft.carbohydrates,
        fat=draft.fat,
        fiber=draft.fiber,
        description=draft.description,
        instructions=tuple(draft.instructions),
        tips=tuple(draft.tips),
        difficulty_level=draft.difficulty_level,
        preparation_time_minutes=draft.preparation_time_minutes,
        cooking_time_minutes=draft.cooking_time_minutes,
        consumed_at=draft.consumed_at,
    )


TARGETS_JSON = (
    '{"calories": 2000, "protein": 100, "carbohydrates": 250, '
    '"fat": 70, "fiber": 30}'
)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url="sqlite://",
        supabase_url="https://example.supabase.co",
        supabase_service_key="test.service.key",
        openai_api_key="openai-key",
    )


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def uow_factory(store: InMemoryStore) -> Callable[[], InMemoryUnitOfWork]:
    return lambda: InMemoryUnitOfWork(store)


@pytest.fixture
def completion_client() -> FakeCompletionClient:
    return FakeCompletionClient()


@pytest.fixture
def ai_service(completion_client: FakeCompletionClient) -> AIService:
    return AIService(client=completion_client, timeout_seconds=5.0)


@pytest.fixture
def ingredient_service(uow_factory) -> IngredientService:
    return IngredientService(uow_factory)


@pytest.fixture
def food_manager(uow_factory) -> FoodCompositionManager:
    return FoodCompositionManager(uow_factory)


@pytest.fixture
def targets_service(uow_factory, ai_service: AIService) -> NutritionTargetsService:
    return NutritionTargetsService(uow_factory, ai_service)


@pytest.fixture
def aggregator(
    uow_factory, targets_service: NutritionTargetsService
) -> NutritionAggregator:
    return NutritionAggregator(uow_factory, targets_service)


@pytest.fixture
def recipe_cache_repository() -> InMemoryRecipeCacheRepository:
    return InMemoryRecipeCacheRepository()


@pytest.fixture
def recipe_service(
    uow_factory,
    ai_service: AIService,
    recipe_cache_repository: InMemoryRecipeCacheRepository,
) -> RecipeService:
    return RecipeService(
        uow_factory, ai_service, RecipeCacheService(recipe_cache_repository)
    )


@pytest.fixture
def container(
    settings: Settings,
    ingredient_service: IngredientService,
    food_manager: FoodCompositionManager,
    aggregator: NutritionAggregator,
    targets_service: NutritionTargetsService,
    recipe_service: RecipeService,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        ingredient_service=ingredient_service,
        food_manager=food_manager,
        nutrition_aggregator=aggregator,
        targets_service=targets_service,
        recipe_service=recipe_service,
        close_resources=close_resources,
    )


@pytest.fixture
def client(container: AppContainer) -> TestClient:
    return TestClient(create_app(container))
