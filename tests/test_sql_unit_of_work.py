"""Tests for the SQLModel unit of work against SQLite."""

import asyncio
from collections.abc import Iterator
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, date, datetime, timedelta, timezone
from decimal import Decimal
from functools import partial
from pathlib import Path

import pytest
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from ingredient_tracker.adapters.sql_models import FoodRow, decode_text_list
from ingredient_tracker.adapters.sql_unit_of_work import (
    SqlUnitOfWork,
    create_database_engine,
    init_db,
)
from ingredient_tracker.domain.errors import (
    InsufficientIngredientError,
    InsufficientStockError,
)
from ingredient_tracker.domain.foods import FoodDraft
from ingredient_tracker.domain.meals import MealType
from ingredient_tracker.domain.nutrition import (
    NutritionGoal,
    NutritionTargets,
    UserProfile,
)
from ingredient_tracker.services.foods import FoodCompositionManager
from ingredient_tracker.services.inventory import IngredientService, InventoryLedger
from ingredient_tracker.services.nutrition import NutritionAggregator
from tests.conftest import food_draft, ingredient_draft

OWNER = 1


@pytest.fixture
def engine() -> Iterator[Engine]:
    engine = create_database_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


def test_conditional_deduction(engine: Engine) -> None:
    with SqlUnitOfWork(engine) as uow:
        rice = uow.ingredients.add_ingredient(OWNER, ingredient_draft("Rice", "5"))
        uow.commit()

    with SqlUnitOfWork(engine) as uow:
        repository = uow.ingredients
        assert repository.deduct_if_available(OWNER, rice.id, Decimal("2")) is True
        assert repository.deduct_if_available(OWNER, rice.id, Decimal("4")) is False
        assert repository.deduct_if_available(2, rice.id, Decimal("1")) is False
        current = uow.ingredients.get_ingredient(OWNER, rice.id)
        uow.commit()

    assert current is not None
    assert current.quantity == Decimal("3")


def test_only_in_memory_sqlite_uses_static_pool(tmp_path: Path) -> None:
    memory = create_database_engine("sqlite://")
    on_disk = create_database_engine(f"sqlite:///{tmp_path / 'pantry.db'}")

    assert isinstance(memory.pool, StaticPool)
    assert not isinstance(on_disk.pool, StaticPool)
    memory.dispose()
    on_disk.dispose()


def test_concurrent_deductions_on_file_database(tmp_path: Path) -> None:
    file_engine = create_database_engine(f"sqlite:///{tmp_path / 'pantry.db'}")
    init_db(file_engine)
    with SqlUnitOfWork(file_engine) as uow:
        rice = uow.ingredients.add_ingredient(OWNER, ingredient_draft("Rice", "10"))
        uow.commit()

    def attempt() -> bool:
        with SqlUnitOfWork(file_engine) as uow:
            try:
                InventoryLedger(uow.ingredients).deduct(OWNER, rice.id, Decimal("1"))
            except InsufficientStockError:
                return False
            uow.commit()
        return True

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda _: attempt(), range(25)))

    with SqlUnitOfWork(file_engine) as uow:
        remaining = uow.ingredients.get_ingredient(OWNER, rice.id)
    file_engine.dispose()

    assert results.count(True) == 10
    assert remaining is not None
    assert remaining.quantity == Decimal("0")


def test_uncommitted_work_is_rolled_back(engine: Engine) -> None:
    with SqlUnitOfWork(engine) as uow:
        rice = uow.ingredients.add_ingredient(OWNER, ingredient_draft("Rice", "5"))
        uow.commit()

    with SqlUnitOfWork(engine) as uow:
        uow.ingredients.add_quantity(OWNER, rice.id, Decimal("10"))

    with SqlUnitOfWork(engine) as uow:
        stored = uow.ingredients.get_ingredient(OWNER, rice.id)

    assert stored is not None
    assert stored.quantity == Decimal("5")


def test_food_scenario_end_to_end(engine: Engine) -> None:
    uow_factory = partial(SqlUnitOfWork, engine)
    ingredients = IngredientService(uow_factory)
    foods = FoodCompositionManager(uow_factory)
    beef = ingredients.add_ingredient(OWNER, ingredient_draft("Beef", "10"))

    first = foods.create_food(OWNER, food_draft(lines=[(beef.id, "4")]))
    with pytest.raises(InsufficientIngredientError):
        foods.create_food(OWNER, food_draft(name="Stew", lines=[(beef.id, "7")]))

    assert ingredients.get_ingredient(OWNER, beef.id).quantity == Decimal("6")
    assert [food.name for food in foods.list_foods(OWNER)] == ["Fried rice"]
    assert [link.quantity for link in first.ingredients] == [Decimal("4")]

    updated = foods.update_food(first.id, OWNER, food_draft(lines=[(beef.id, "4")]))
    assert ingredients.get_ingredient(OWNER, beef.id).quantity == Decimal("6")
    assert len(updated.ingredients) == 1

    assert foods.delete_food(first.id, OWNER) is True
    assert ingredients.get_ingredient(OWNER, beef.id).quantity == Decimal("10")


def test_meals_and_summary(engine: Engine) -> None:
    uow_factory = partial(SqlUnitOfWork, engine)
    foods = FoodCompositionManager(uow_factory)
    aggregator = NutritionAggregator(uow_factory)
    day = date(2024, 5, 1)
    foods.create_food(OWNER, food_draft(calories=300, meal_date=day))
    foods.create_food(
        OWNER, food_draft(calories=150, meal_date=day, meal_type=MealType.BREAKFAST)
    )
    foods.create_food(OWNER, food_draft(calories=50, meal_date=date(2024, 5, 3)))

    summary = asyncio.run(aggregator.get_daily_summary(OWNER, day))
    overview = asyncio.run(aggregator.get_overview_summary(OWNER))

    assert summary.totals.calories == 450
    assert summary.meals[MealType.BREAKFAST].totals.calories == 150
    assert overview.day_count == 2
    assert overview.average.calories == 250

    with SqlUnitOfWork(engine) as uow:
        assert uow.meals.list_meal_dates(OWNER) == [day, date(2024, 5, 3)]
        assert uow.meals.list_meal_dates(2) == []


def test_consumed_at_round_trips_as_utc(engine: Engine) -> None:
    uow_factory = partial(SqlUnitOfWork, engine)
    foods = FoodCompositionManager(uow_factory)
    draft = FoodDraft.model_validate(
        {
            **food_draft().model_dump(),
            "consumed_at": datetime(
                2024, 5, 1, 14, 0, tzinfo=timezone(timedelta(hours=7))
            ),
        }
    )

    food = foods.create_food(OWNER, draft)
    stored = foods.get_food(food.id, OWNER)

    assert stored.consumed_at == datetime(2024, 5, 1, 7, 0, tzinfo=UTC)


def test_instructions_are_decoded(engine: Engine) -> None:
    with SqlUnitOfWork(engine) as uow:
        uow.session.add(
            FoodRow(
                user_id=OWNER,
                name="Legacy",
                instructions='"[\\"Boil\\", \\"Serve\\"]"',
                tips="Eat warm",
                consumed_at=datetime(2024, 5, 1, tzinfo=UTC),
            )
        )
        uow.commit()

    with SqlUnitOfWork(engine) as uow:
        (food,) = uow.foods.list_foods(OWNER)

    assert food.instructions == ("Boil", "Serve")
    assert food.tips == ("Eat warm",)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (None, ()),
        ("", ()),
        ('["a", "b"]', ("a", "b")),
        ('"[\\"a\\"]"', ("a",)),
        ("plain text", ("plain text",)),
    ],
)
def test_decode_text_list(raw: str | None, expected: tuple[str, ...]) -> None:
    assert decode_text_list(raw) == expected


def test_targets_and_profiles_upsert(engine: Engine) -> None:
    with SqlUnitOfWork(engine) as uow:
        uow.targets.save_targets(OWNER, NutritionTargets(1, 2, 3, 4, 5))
        uow.profiles.save_profile(
            UserProfile(user_id=OWNER, primary_goal=NutritionGoal.KETO)
        )
        uow.commit()

    with SqlUnitOfWork(engine) as uow:
        uow.targets.save_targets(OWNER, NutritionTargets(10, 20, 30, 40, 50))
        uow.commit()

    with SqlUnitOfWork(engine) as uow:
        targets = uow.targets.get_targets(OWNER)
        profile = uow.profiles.get_profile(OWNER)

    assert targets == NutritionTargets(10, 20, 30, 40, 50)
    assert profile is not None
    assert profile.primary_goal == NutritionGoal.KETO
