"""Nutrition summaries aggregated from meals and their foods."""

import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, replace
from datetime import date, timedelta

from ingredient_tracker.domain.errors import InputValidationError
from ingredient_tracker.domain.foods import Food
from ingredient_tracker.domain.meals import Meal, MealType
from ingredient_tracker.domain.nutrition import (
    DailyNutritionSummary,
    MealNutrition,
    NutritionTargets,
    NutritionTotals,
    OverviewNutritionSummary,
    WeeklyNutritionSummary,
)
from ingredient_tracker.services.inventory import require_positive
from ingredient_tracker.services.repositories import UnitOfWork
from ingredient_tracker.services.targets import NutritionTargetsService

_logger = logging.getLogger(__name__)

MAX_SUMMARY_RANGE_DAYS = 366


@dataclass
class NutritionAggregator:
    """Builds daily, weekly and overview summaries for a user.

    Results depend only on the stored data and the explicit date arguments.
    Target lookups are best effort: a failure leaves ``targets`` empty.
    """

    uow_factory: Callable[[], UnitOfWork]
    targets_service: NutritionTargetsService | None = None

    async def get_daily_summary(
        self, owner_id: int, day: date, include_targets: bool = False
    ) -> DailyNutritionSummary:
        """Return one entry per meal type plus the day's totals."""
        require_positive(owner_id, "owner_id")
        summary = self._build_daily(owner_id, day)
        if not include_targets or self.targets_service is None:
            return summary
        targets = await self._fetch_targets(
            owner_id, self.targets_service.get_daily_targets(owner_id)
        )
        return replace(summary, targets=targets)

    async def get_weekly_summary(
        self,
        owner_id: int,
        start: date,
        end: date,
        include_targets: bool = False,
    ) -> WeeklyNutritionSummary:
        """Return daily summaries for [start, end] and their summed totals."""
        require_positive(owner_id, "owner_id")
        if start > end:
            raise InputValidationError("start must not be after end")
        if (end - start).days + 1 > MAX_SUMMARY_RANGE_DAYS:
            raise InputValidationError(
                f"date range must not exceed {MAX_SUMMARY_RANGE_DAYS} days"
            )
        daily: list[DailyNutritionSummary] = []
        for offset in range((end - start).days + 1):
            daily.append(
                await self.get_daily_summary(owner_id, start + timedelta(days=offset))
            )
        targets = None
        if include_targets and self.targets_service is not None:
            targets = await self._fetch_targets(
                owner_id, self.targets_service.get_weekly_targets(owner_id)
            )
        return WeeklyNutritionSummary(
            start=start,
            end=end,
            average=_sum_totals(summary.totals for summary in daily),
            daily=daily,
            targets=targets,
        )

    async def get_overview_summary(
        self, owner_id: int, day_count: int = 1, include_targets: bool = False
    ) -> OverviewNutritionSummary:
        """Return per-day averages over every date that has a meal."""
        require_positive(owner_id, "owner_id")
        with self.uow_factory() as uow:
            meal_dates = uow.meals.list_meal_dates(owner_id)
        totals = NutritionTotals()
        for day in meal_dates:
            summary = await self.get_daily_summary(owner_id, day)
            totals = _sum_totals((totals, summary.totals))
        targets = None
        if include_targets and self.targets_service is not None:
            targets = await self._fetch_targets(
                owner_id,
                self.targets_service.get_overview_targets(owner_id, day_count),
            )
        return OverviewNutritionSummary(
            average=_divide(totals, len(meal_dates)),
            day_count=len(meal_dates),
            targets=targets,
        )

    def _build_daily(self, owner_id: int, day: date) -> DailyNutritionSummary:
        with self.uow_factory() as uow:
            chosen = _latest_meal_per_type(uow.meals.list_meals_on(owner_id, day))
            food_ids = sorted(
                {food_id for meal in chosen.values() for food_id in meal.food_ids}
            )
            foods = uow.foods.get_foods(owner_id, food_ids) if food_ids else {}

        breakdown = []
        for meal_type in MealType:
            meal = chosen.get(meal_type)
            if meal is None:
                breakdown.append(
                    MealNutrition(
                        meal_id=None,
                        meal_type=meal_type,
                        meal_date=day,
                        totals=NutritionTotals(),
                        food_count=0,
                    )
                )
                continue
            meal_foods = [
                foods[food_id] for food_id in meal.food_ids if food_id in foods
            ]
            breakdown.append(
                MealNutrition(
                    meal_id=meal.id,
                    meal_type=meal_type,
                    meal_date=meal.meal_date,
                    totals=_food_totals(meal_foods),
                    food_count=len(meal_foods),
                )
            )
        return DailyNutritionSummary(
            day=day,
            totals=_sum_totals(entry.totals for entry in breakdown),
            meals=breakdown,
        )

    async def _fetch_targets(
        self, owner_id: int, pending: Awaitable[NutritionTargets]
    ) -> NutritionTargets | None:
        try:
            return await pending
        except Exception:
            _logger.exception(
                "Failed to obtain nutrition targets: owner_id=%s", owner_id
            )
            return None


def _latest_meal_per_type(meals: Iterable[Meal]) -> dict[MealType, Meal]:
    """Pick the meal with the greatest (meal_date, id) for each type."""
    chosen: dict[MealType, Meal] = {}
    for meal in meals:
        current = chosen.get(meal.meal_type)
        if current is None or (meal.meal_date, meal.id) > (
            current.meal_date,
            current.id,
        ):
            chosen[meal.meal_type] = meal
    return chosen


def _food_totals(foods: Iterable[Food]) -> NutritionTotals:
    return _sum_totals(
        NutritionTotals(
            calories=food.calories,
            protein=food.protein,
            carbohydrates=food.carbohydrates,
            fat=food.fat,
            fiber=food.fiber,
        )
        for food in foods
    )


def _sum_totals(items: Iterable[NutritionTotals]) -> NutritionTotals:
    total = NutritionTotals()
    for item in items:
        total = NutritionTotals(
            calories=total.calories + item.calories,
            protein=total.protein + item.protein,
            carbohydrates=total.carbohydrates + item.carbohydrates,
            fat=total.fat + item.fat,
            fiber=total.fiber + item.fiber,
        )
    return total


def _divide(totals: NutritionTotals, days: int) -> NutritionTotals:
    if days <= 0:
        return NutritionTotals()
    return NutritionTotals(
        calories=totals.calories / days,
        protein=totals.protein / days,
        carbohydrates=totals.carbohydrates / days,
        fat=totals.fat / days,
        fiber=totals.fiber / days,
    )
