"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from functools import partial

from supabase import create_client

from ingredient_tracker.adapters.openai_chat_client import OpenAIChatClient
from ingredient_tracker.adapters.sql_unit_of_work import (
    SqlUnitOfWork,
    create_database_engine,
    init_db,
)
from ingredient_tracker.adapters.supabase_recipe_cache_repository import (
    SupabaseRecipeCacheRepository,
)
from ingredient_tracker.config import Settings
from ingredient_tracker.services.ai import AIService
from ingredient_tracker.services.foods import FoodCompositionManager
from ingredient_tracker.services.inventory import IngredientService
from ingredient_tracker.services.nutrition import NutritionAggregator
from ingredient_tracker.services.recipes import RecipeCacheService, RecipeService
from ingredient_tracker.services.targets import NutritionTargetsService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    ingredient_service: IngredientService
    food_manager: FoodCompositionManager
    nutrition_aggregator: NutritionAggregator
    targets_service: NutritionTargetsService
    recipe_service: RecipeService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    engine = create_database_engine(
        resolved_settings.database_url, echo=resolved_settings.database_echo
    )
    init_db(engine)
    uow_factory = partial(SqlUnitOfWork, engine)

    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    cache_service = RecipeCacheService(
        repository=SupabaseRecipeCacheRepository(supabase_client),
        max_entries=resolved_settings.recipe_cache_max_entries,
    )

    openai_client = OpenAIChatClient.create(
        resolved_settings.openai_api_key,
        base_url=resolved_settings.openai_base_url,
        model=resolved_settings.openai_model,
        temperature=resolved_settings.ai_temperature,
        max_tokens=resolved_settings.ai_max_tokens,
        max_concurrent_requests=resolved_settings.ai_max_concurrent_requests,
    )
    ai_service = AIService(
        client=openai_client,
        timeout_seconds=resolved_settings.ai_timeout_seconds,
    )
    targets_service = NutritionTargetsService(uow_factory, ai_service)

    async def close_resources() -> None:
        await openai_client.close()
        engine.dispose()

    return AppContainer(
        settings=resolved_settings,
        ingredient_service=IngredientService(uow_factory),
        food_manager=FoodCompositionManager(uow_factory),
        nutrition_aggregator=NutritionAggregator(uow_factory, targets_service),
        targets_service=targets_service,
        recipe_service=RecipeService(uow_factory, ai_service, cache_service),
        close_resources=close_resources,
    )
