"""Nutrition domain models."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum

from ingredient_tracker.domain.meals import MealType


class NutritionGoal(str, Enum):
    """Dietary goal used to steer AI prompts."""

    BALANCED = "balanced"
    WEIGHT_LOSS = "weight_loss"
    WEIGHT_GAIN = "weight_gain"
    MUSCLE_GAIN = "muscle_gain"
    LOW_CARB = "low_carb"
    HIGH_PROTEIN = "high_protein"
    VEGETARIAN = "vegetarian"
    VEGAN = "vegan"
    KETO = "keto"
    LOW_SODIUM = "low_sodium"
    DIABETIC_FRIENDLY = "diabetic_friendly"
    HEART_HEALTHY = "heart_healthy"

    def describe(self) -> str:
        """Return a short prompt-ready description of the goal."""
        return _GOAL_DESCRIPTIONS.get(self, "Balanced nutrition")


_GOAL_DESCRIPTIONS = {
    NutritionGoal.BALANCED: "Balanced nutrition",
    NutritionGoal.WEIGHT_LOSS: "Weight loss (fewer calories, more protein, less carb)",
    NutritionGoal.WEIGHT_GAIN: "Weight gain (more calories, high protein)",
    NutritionGoal.MUSCLE_GAIN: "Muscle gain (high protein, moderate carb)",
    NutritionGoal.LOW_CARB: "Low carb (under 50g carb per day)",
    NutritionGoal.HIGH_PROTEIN: "High protein (over 1.5g per kg body weight)",
    NutritionGoal.VEGETARIAN: "Vegetarian (no meat, eggs and dairy allowed)",
    NutritionGoal.VEGAN: "Vegan (plant based only)",
    NutritionGoal.KETO: "Keto (75% fat, 20% protein, 5% carb)",
    NutritionGoal.LOW_SODIUM: "Low sodium (under 1500mg sodium per day)",
    NutritionGoal.DIABETIC_FRIENDLY: "Diabetic friendly (low sugar, complex carbs)",
    NutritionGoal.HEART_HEALTHY: "Heart healthy (low saturated fat, rich in omega-3)",
}


class ActivityLevel(str, Enum):
    """Self-reported physical activity level."""

    SEDENTARY = "sedentary"
    LIGHT = "light"
    MODERATE = "moderate"
    ACTIVE = "active"
    VERY_ACTIVE = "very_active"


@dataclass(frozen=True)
class UserProfile:
    """Body and goal information used to derive nutrition targets."""

    user_id: int
    gender: str | None = None
    date_of_birth: date | None = None
    height_cm: Decimal | None = None
    weight_kg: Decimal | None = None
    target_weight_kg: Decimal | None = None
    primary_goal: NutritionGoal | None = None
    activity_level: ActivityLevel | None = None


@dataclass(frozen=True)
class NutritionTotals:
    """Summed nutrition values."""

    calories: float = 0.0
    protein: float = 0.0
    carbohydrates: float = 0.0
    fat: float = 0.0
    fiber: float = 0.0


@dataclass(frozen=True)
class NutritionTargets:
    """Target nutrition values for a period (a day unless scaled)."""

    calories: float
    protein: float
    carbohydrates: float
    fat: float
    fiber: float

    def scaled(self, factor: int) -> "NutritionTargets":
        """Return targets multiplied by a number of days."""
        return NutritionTargets(
            calories=self.calories * factor,
            protein=self.protein * factor,
            carbohydrates=self.carbohydrates * factor,
            fat=self.fat * factor,
            fiber=self.fiber * factor,
        )


@dataclass(frozen=True)
class MealNutrition:
    """Nutrition breakdown for one meal slot of a day."""

    meal_id: int | None
    meal_type: MealType
    meal_date: date
    totals: NutritionTotals
    food_count: int


@dataclass(frozen=True)
class DailyNutritionSummary:
    """Nutrition for one calendar day with one entry per meal type."""

    day: date
    totals: NutritionTotals
    meals: list[MealNutrition]
    targets: NutritionTargets | None = None


@dataclass(frozen=True)
class WeeklyNutritionSummary:
    """Nutrition across an inclusive date range.

    ``average`` holds the sum of the daily totals, not a per-day mean.
    """

    start: date
    end: date
    average: NutritionTotals
    daily: list[DailyNutritionSummary]
    targets: NutritionTargets | None = None


@dataclass(frozen=True)
class OverviewNutritionSummary:
    """Per-day averages across every date with at least one meal."""

    average: NutritionTotals
    day_count: int
    targets: NutritionTargets | None = None
