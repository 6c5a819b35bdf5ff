"""Domain models for meals."""

from dataclasses import dataclass
from datetime import date, datetime
from enum import IntEnum


class MealType(IntEnum):
    """Meal bucket; the enum value doubles as the display order."""

    BREAKFAST = 0
    LUNCH = 1
    DINNER = 2
    SNACK = 3
    OTHER = 4

    @classmethod
    def parse(cls, value: object) -> "MealType":
        """Accept a member, its integer value or its case-insensitive name."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str) and not value.strip().isdigit():
            try:
                return cls[value.strip().upper()]
            except KeyError as exc:
                raise ValueError(f"Unknown meal type: {value}") from exc
        return cls(int(value))  # type: ignore[arg-type]


@dataclass(frozen=True)
class Meal:
    """A user's meal of one type on one date."""

    id: int
    user_id: int
    meal_type: MealType
    meal_date: date
    consumed_at: datetime | None = None
    food_ids: tuple[int, ...] = ()
