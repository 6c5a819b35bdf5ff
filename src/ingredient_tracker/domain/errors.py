"""Domain error taxonomy."""

from decimal import Decimal


class IngredientTrackerError(Exception):
    """Base class for errors raised by the core services."""


class InputValidationError(IngredientTrackerError):
    """Structurally invalid input rejected before touching persistence."""


class NotFoundOrForbiddenError(IngredientTrackerError):
    """Entity is absent or owned by another user."""

    def __init__(self, entity: str, entity_id: int) -> None:
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class InsufficientStockError(IngredientTrackerError):
    """Ingredient stock is lower than the requested deduction."""

    def __init__(
        self, ingredient_id: int, requested: Decimal, available: Decimal
    ) -> None:
        super().__init__(
            f"Ingredient {ingredient_id} has {available}, requested {requested}"
        )
        self.ingredient_id = ingredient_id
        self.requested = requested
        self.available = available


class InsufficientIngredientError(InsufficientStockError):
    """A food write could not consume enough of a named ingredient."""

    def __init__(
        self,
        name: str,
        ingredient_id: int,
        requested: Decimal,
        available: Decimal,
    ) -> None:
        super().__init__(ingredient_id, requested, available)
        self.name = name
        self.args = (f"Not enough {name}: have {available}, need {requested}",)


class AIServiceUnavailableError(IngredientTrackerError):
    """Upstream AI provider timed out, failed or returned nothing. Retryable."""


class MalformedAIResponseError(IngredientTrackerError):
    """AI response could not be parsed into the expected shape."""
