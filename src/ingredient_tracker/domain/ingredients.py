"""Domain models for the ingredient inventory."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field

EXPIRING_SOON_DAYS = 7


class IngredientUnit(str, Enum):
    """Measurement unit of an ingredient quantity."""

    KILOGRAM = "kg"
    LITER = "l"
    PIECE = "piece"
    BOX = "box"
    GRAM = "g"
    MILLILITER = "ml"
    CAN = "can"
    CUP = "cup"
    TABLESPOON = "tbsp"
    TEASPOON = "tsp"
    PACKAGE = "package"
    BOTTLE = "bottle"
    OTHER = "other"


class IngredientCategory(str, Enum):
    """Storage category of an ingredient."""

    DAIRY = "dairy"
    MEAT = "meat"
    VEGETABLES = "vegetables"
    FRUITS = "fruits"
    GRAINS = "grains"
    BEVERAGES = "beverages"
    CONDIMENTS = "condiments"
    SNACKS = "snacks"
    FROZEN = "frozen"
    CANNED = "canned"
    SPICES = "spices"
    OTHER = "other"


@dataclass(frozen=True)
class Ingredient:
    """Ingredient held in a user's inventory."""

    id: int
    user_id: int
    name: str
    quantity: Decimal
    unit: IngredientUnit
    category: IngredientCategory
    expiry_date: date
    description: str | None = None

    def days_until_expiry(self, today: date) -> int:
        """Return days left until expiry, negative once expired."""
        return (self.expiry_date - today).days

    def is_expired(self, today: date) -> bool:
        """Return whether the ingredient expired before today."""
        return today > self.expiry_date

    def is_expiring_soon(self, today: date) -> bool:
        """Return whether the ingredient expires within a week."""
        return 0 <= self.days_until_expiry(today) <= EXPIRING_SOON_DAYS


class IngredientDraft(BaseModel):
    """User input for a new ingredient."""

    name: str = Field(min_length=1, max_length=200)
    quantity: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    unit: IngredientUnit = IngredientUnit.PIECE
    category: IngredientCategory = IngredientCategory.OTHER
    expiry_date: date
    description: str | None = Field(default=None, max_length=1000)
