"""AI-backed suggestion, recipe and target generation."""

import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol, TypeVar

from pydantic import BaseModel, ValidationError

from ingredient_tracker.domain.errors import MalformedAIResponseError
from ingredient_tracker.domain.ingredients import Ingredient
from ingredient_tracker.domain.nutrition import (
    NutritionGoal,
    NutritionTargets,
    UserProfile,
)
from ingredient_tracker.domain.recipes import (
    DailyTargetsResponse,
    FoodSuggestion,
    FoodSuggestionList,
    GeneratedRecipe,
    RecipeIngredient,
)

_logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

_CLOSING = {"{": "}", "[": "]"}

SUGGESTION_SYSTEM_PROMPT = (
    "You are an expert chef and nutritionist. "
    "Always respond in valid JSON format as requested."
)
RECIPE_SYSTEM_PROMPT = (
    "You are a professional chef. "
    "Provide detailed, accurate recipes in valid JSON format."
)
TARGETS_SYSTEM_PROMPT = (
    "You are a registered dietitian. "
    "Respond only with the requested JSON object."
)


class CompletionClient(Protocol):
    """Interface for a chat-completion provider."""

    async def complete(
        self, system_prompt: str, user_prompt: str, timeout: float | None = None
    ) -> str:
        """Return the raw text of a completion."""


def extract_json_payload(raw: str) -> str:
    """Cut the JSON region out of free-form model text.

    The region runs from the first ``{`` or ``[`` to the last matching
    closing bracket.
    """
    starts = [index for index in (raw.find("{"), raw.find("[")) if index != -1]
    if not starts:
        raise MalformedAIResponseError("No JSON object or array in response")
    start = min(starts)
    end = raw.rfind(_CLOSING[raw[start]])
    if end <= start:
        raise MalformedAIResponseError("Unterminated JSON payload in response")
    return raw[start : end + 1]


def load_json_payload(raw: str) -> object:
    """Extract and decode the JSON payload of a model response."""
    payload = extract_json_payload(raw)
    try:
        return json.loads(payload)
    except json.JSONDecodeError as exc:
        raise MalformedAIResponseError(f"Invalid JSON: {exc.msg}") from exc


def parse_json_response(raw: str, model: type[ModelT]) -> ModelT:
    """Extract and strictly validate a JSON payload against a model."""
    return _validate(load_json_payload(raw), model)


def _validate(data: object, model: type[ModelT]) -> ModelT:
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise MalformedAIResponseError(str(exc)) from exc


@dataclass
class AIService:
    """Prompts the completion client and parses its answers."""

    client: CompletionClient
    timeout_seconds: float = 120.0

    async def suggest_foods(
        self,
        ingredients: list[Ingredient],
        goal: NutritionGoal = NutritionGoal.BALANCED,
        max_suggestions: int = 5,
    ) -> list[FoodSuggestion]:
        """Propose dishes from available ingredients; [] when unparsable."""
        prompt = (
            f"Available ingredients: {_describe_stock(ingredients)}\n"
            f"Nutrition goal: {goal.describe()}\n\n"
            f"Suggest the {max_suggestions} most suitable dishes. "
            "Return JSON in this format:\n"
            '{"suggestions": [{"name": "Dish name", "description": "Short '
            'description", "preparationTimeMinutes": 30, "requiredIngredients": '
            '["ingredient"], "optionalIngredients": ["ingredient"], '
            '"estimatedNutrition": {"calories": 350, "protein": 25, '
            '"carbohydrates": 30, "fat": 15, "fiber": 5}, "matchScore": 85, '
            '"whyRecommended": "Reason"}]}\n\n'
            "Prefer dishes that use as many of the available ingredients as "
            "possible, fit the goal, are easy to cook and nutritionally balanced."
        )
        raw = await self.client.complete(
            SUGGESTION_SYSTEM_PROMPT, prompt, timeout=self.timeout_seconds
        )
        try:
            data = load_json_payload(raw)
            if isinstance(data, list):
                data = {"suggestions": data}
            parsed = _validate(data, FoodSuggestionList)
        except MalformedAIResponseError as exc:
            _logger.warning("Discarding malformed suggestion response: %s", exc)
            return []
        return parsed.suggestions[:max_suggestions]

    async def generate_recipe(
        self,
        food_name: str,
        ingredients: list[RecipeIngredient],
        goal: NutritionGoal = NutritionGoal.BALANCED,
    ) -> GeneratedRecipe:
        """Write a detailed recipe; a bare recipe when unparsable."""
        prompt = (
            f"Create a detailed recipe for: {food_name}\n"
            f"Ingredients on hand: {_describe_lines(ingredients)}\n"
            f"Nutrition goal: {goal.describe()}\n\n"
            "Return JSON in this format:\n"
            f'{{"name": "{food_name}", "description": "Dish description", '
            '"ingredients": [{"name": "Ingredient", "quantity": 200, '
            '"unit": "g", "isOptional": false}], '
            '"instructions": ["Step one", "Step two"], '
            '"tips": ["General tip"], "preparationTimeMinutes": 15, '
            '"cookingTimeMinutes": 20, "servings": 2, "difficultyLevel": 2, '
            '"nutrition": {"calories": 400, "protein": 30, "carbohydrates": 35, '
            '"fat": 18, "fiber": 6}}'
        )
        raw = await self.client.complete(
            RECIPE_SYSTEM_PROMPT, prompt, timeout=self.timeout_seconds
        )
        try:
            return parse_json_response(raw, GeneratedRecipe)
        except MalformedAIResponseError as exc:
            _logger.warning("Discarding malformed recipe response: %s", exc)
            return GeneratedRecipe(name=food_name)

    async def get_daily_targets(
        self, profile: UserProfile | None
    ) -> NutritionTargets | None:
        """Estimate daily targets for a user; None when unparsable."""
        prompt = (
            f"User information: {_describe_profile(profile)}\n\n"
            "Estimate this user's daily nutrition targets. Return JSON:\n"
            '{"calories": 2000, "protein": 100, "carbohydrates": 250, '
            '"fat": 70, "fiber": 30}\n'
            "Calories in kcal, everything else in grams."
        )
        raw = await self.client.complete(
            TARGETS_SYSTEM_PROMPT, prompt, timeout=self.timeout_seconds
        )
        try:
            parsed = parse_json_response(raw, DailyTargetsResponse)
        except MalformedAIResponseError as exc:
            _logger.warning("Discarding malformed targets response: %s", exc)
            return None
        return NutritionTargets(
            calories=parsed.calories,
            protein=parsed.protein,
            carbohydrates=parsed.carbohydrates,
            fat=parsed.fat,
            fiber=parsed.fiber,
        )


def _describe_stock(ingredients: Iterable[Ingredient]) -> str:
    return ", ".join(
        f"{item.name} ({item.quantity} {item.unit.value})" for item in ingredients
    )


def _describe_lines(ingredients: Iterable[RecipeIngredient]) -> str:
    return ", ".join(
        f"{item.name} ({item.quantity} {item.unit})" for item in ingredients
    )


def _describe_profile(profile: UserProfile | None) -> str:
    if profile is None:
        return "unknown; assume an average adult"
    fields = {
        "gender": profile.gender,
        "date of birth": profile.date_of_birth,
        "height (cm)": profile.height_cm,
        "weight (kg)": profile.weight_kg,
        "target weight (kg)": profile.target_weight_kg,
        "goal": profile.primary_goal.describe() if profile.primary_goal else None,
        "activity level": (
            profile.activity_level.value if profile.activity_level else None
        ),
    }
    known = [f"{label}: {value}" for label, value in fields.items() if value]
    return "; ".join(known) or "unknown; assume an average adult"
