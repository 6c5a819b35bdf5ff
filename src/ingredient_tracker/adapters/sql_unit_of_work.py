"""SQLModel-backed unit of work and user-scoped repositories."""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from types import TracebackType

from sqlalchemy import delete, update
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, col, create_engine, select

from ingredient_tracker.adapters.sql_models import (
    FoodIngredientRow,
    FoodRow,
    IngredientRow,
    MealFoodRow,
    MealRow,
    NutritionTargetsRow,
    UserProfileRow,
    apply_food_draft,
    food_from_row,
    ingredient_from_row,
    ingredient_row,
    meal_from_row,
    profile_from_row,
    profile_row,
    targets_from_row,
)
from ingredient_tracker.domain.errors import NotFoundOrForbiddenError
from ingredient_tracker.domain.foods import Food, FoodDraft, FoodIngredient
from ingredient_tracker.domain.ingredients import Ingredient, IngredientDraft
from ingredient_tracker.domain.meals import Meal, MealType
from ingredient_tracker.domain.nutrition import NutritionTargets, UserProfile

SQLITE_BUSY_TIMEOUT_SECONDS = 30


def create_database_engine(database_url: str, echo: bool = False) -> Engine:
    """Create the engine for the relational store.

    In-memory SQLite shares one connection; file-backed SQLite gets a
    connection per session and waits on the database lock instead of failing.
    """
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return create_engine(database_url, echo=echo, pool_pre_ping=True)
    if _is_sqlite_memory(database_url, url.database):
        return create_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(
        database_url,
        echo=echo,
        connect_args={
            "check_same_thread": False,
            "timeout": SQLITE_BUSY_TIMEOUT_SECONDS,
        },
    )


def _is_sqlite_memory(database_url: str, database: str | None) -> bool:
    return not database or ":memory:" in database_url or "mode=memory" in database_url


def init_db(engine: Engine) -> None:
    """Create missing tables."""
    SQLModel.metadata.create_all(engine)


@dataclass
class SqlIngredientRepository:
    """Ingredient rows scoped by owner."""

    session: Session

    def get_ingredient(self, owner_id: int, ingredient_id: int) -> Ingredient | None:
        row = self._get_row(owner_id, ingredient_id)
        return ingredient_from_row(row) if row else None

    def list_ingredients(self, owner_id: int) -> list[Ingredient]:
        rows = self.session.exec(
            select(IngredientRow)
            .where(IngredientRow.user_id == owner_id)
            .order_by(col(IngredientRow.id))
        ).all()
        return [ingredient_from_row(row) for row in rows]

    def add_ingredient(self, owner_id: int, draft: IngredientDraft) -> Ingredient:
        row = ingredient_row(owner_id, draft)
        self.session.add(row)
        self.session.flush()
        return ingredient_from_row(row)

    def delete_ingredient(self, owner_id: int, ingredient_id: int) -> bool:
        row = self._get_row(owner_id, ingredient_id)
        if row is None:
            return False
        self.session.delete(row)
        self.session.flush()
        return True

    def deduct_if_available(
        self, owner_id: int, ingredient_id: int, amount: Decimal
    ) -> bool:
        """Subtract stock in one conditional UPDATE; False when it does not cover."""
        statement = (
            update(IngredientRow)
            .where(
                col(IngredientRow.id) == ingredient_id,
                col(IngredientRow.user_id) == owner_id,
                col(IngredientRow.quantity) >= amount,
            )
            .values(quantity=col(IngredientRow.quantity) - amount)
            .execution_options(synchronize_session="fetch")
        )
        result = self.session.exec(statement)  # type: ignore[call-overload]
        return result.rowcount == 1

    def add_quantity(self, owner_id: int, ingredient_id: int, amount: Decimal) -> bool:
        statement = (
            update(IngredientRow)
            .where(
                col(IngredientRow.id) == ingredient_id,
                col(IngredientRow.user_id) == owner_id,
            )
            .values(quantity=col(IngredientRow.quantity) + amount)
            .execution_options(synchronize_session="fetch")
        )
        result = self.session.exec(statement)  # type: ignore[call-overload]
        return result.rowcount == 1

    def _get_row(self, owner_id: int, ingredient_id: int) -> IngredientRow | None:
        return self.session.exec(
            select(IngredientRow).where(
                IngredientRow.id == ingredient_id, IngredientRow.user_id == owner_id
            )
        ).first()


@dataclass
class SqlFoodRepository:
    """Food rows and their ingredient links scoped by owner."""

    session: Session

    def get_food(self, owner_id: int, food_id: int) -> Food | None:
        row = self._get_row(owner_id, food_id)
        if row is None:
            return None
        return food_from_row(row, self._links_for([food_id]).get(food_id, []))

    def get_foods(self, owner_id: int, food_ids: list[int]) -> dict[int, Food]:
        if not food_ids:
            return {}
        rows = self.session.exec(
            select(FoodRow).where(
                FoodRow.user_id == owner_id, col(FoodRow.id).in_(food_ids)
            )
        ).all()
        links = self._links_for([row.id for row in rows if row.id is not None])
        foods = [food_from_row(row, links.get(row.id or 0, [])) for row in rows]
        return {food.id: food for food in foods}

    def list_foods(self, owner_id: int) -> list[Food]:
        rows = self.session.exec(
            select(FoodRow)
            .where(FoodRow.user_id == owner_id)
            .order_by(col(FoodRow.id))
        ).all()
        links = self._links_for([row.id for row in rows if row.id is not None])
        return [food_from_row(row, links.get(row.id or 0, [])) for row in rows]

    def add_food(self, owner_id: int, draft: FoodDraft) -> Food:
        row = apply_food_draft(FoodRow(user_id=owner_id, name=draft.name), draft)
        self.session.add(row)
        self.session.flush()
        return food_from_row(row, [])

    def update_food(self, owner_id: int, food_id: int, draft: FoodDraft) -> Food:
        row = self._get_row(owner_id, food_id)
        if row is None:
            raise NotFoundOrForbiddenError("Food", food_id)
        apply_food_draft(row, draft)
        self.session.add(row)
        self.session.flush()
        return food_from_row(row, self._links_for([food_id]).get(food_id, []))

    def delete_food(self, owner_id: int, food_id: int) -> None:
        row = self._get_row(owner_id, food_id)
        if row is not None:
            self.session.delete(row)
            self.session.flush()

    def add_food_ingredient(self, link: FoodIngredient) -> None:
        self.session.add(
            FoodIngredientRow(
                food_id=link.food_id,
                ingredient_id=link.ingredient_id,
                quantity=link.quantity,
                unit=link.unit.value,
            )
        )
        self.session.flush()

    def delete_food_ingredients(self, food_id: int) -> None:
        statement = delete(FoodIngredientRow).where(
            col(FoodIngredientRow.food_id) == food_id
        )
        self.session.exec(statement)  # type: ignore[call-overload]

    def _get_row(self, owner_id: int, food_id: int) -> FoodRow | None:
        return self.session.exec(
            select(FoodRow).where(FoodRow.id == food_id, FoodRow.user_id == owner_id)
        ).first()

    def _links_for(self, food_ids: list[int]) -> dict[int, list[FoodIngredientRow]]:
        if not food_ids:
            return {}
        rows = self.session.exec(
            select(FoodIngredientRow)
            .where(col(FoodIngredientRow.food_id).in_(food_ids))
            .order_by(col(FoodIngredientRow.id))
        ).all()
        grouped: dict[int, list[FoodIngredientRow]] = {}
        for row in rows:
            grouped.setdefault(row.food_id, []).append(row)
        return grouped


@dataclass
class SqlMealRepository:
    """Meal rows and meal-food links scoped by owner."""

    session: Session

    def find_meal(
        self, owner_id: int, meal_date: date, meal_type: MealType
    ) -> Meal | None:
        row = self.session.exec(
            select(MealRow)
            .where(
                MealRow.user_id == owner_id,
                MealRow.meal_date == meal_date,
                MealRow.meal_type == int(meal_type),
            )
            .order_by(col(MealRow.id).desc())
        ).first()
        if row is None or row.id is None:
            return None
        return meal_from_row(row, self._food_ids_for([row.id]).get(row.id, []))

    def add_meal(
        self,
        owner_id: int,
        meal_date: date,
        meal_type: MealType,
        consumed_at: datetime | None,
    ) -> Meal:
        row = MealRow(
            user_id=owner_id,
            meal_type=int(meal_type),
            meal_date=meal_date,
            consumed_at=consumed_at,
        )
        self.session.add(row)
        self.session.flush()
        return meal_from_row(row, [])

    def list_meals_on(self, owner_id: int, day: date) -> list[Meal]:
        rows = self.session.exec(
            select(MealRow)
            .where(MealRow.user_id == owner_id, MealRow.meal_date == day)
            .order_by(col(MealRow.id))
        ).all()
        food_ids = self._food_ids_for([row.id for row in rows if row.id is not None])
        return [meal_from_row(row, food_ids.get(row.id or 0, [])) for row in rows]

    def list_meal_dates(self, owner_id: int) -> list[date]:
        dates = self.session.exec(
            select(MealRow.meal_date)
            .where(MealRow.user_id == owner_id)
            .distinct()
            .order_by(col(MealRow.meal_date))
        ).all()
        return list(dates)

    def link_food(self, meal_id: int, food_id: int) -> None:
        if self.session.get(MealFoodRow, (meal_id, food_id)) is not None:
            return
        self.session.add(MealFoodRow(meal_id=meal_id, food_id=food_id))
        self.session.flush()

    def unlink_food(self, food_id: int) -> None:
        statement = delete(MealFoodRow).where(col(MealFoodRow.food_id) == food_id)
        self.session.exec(statement)  # type: ignore[call-overload]

    def _food_ids_for(self, meal_ids: list[int]) -> dict[int, list[int]]:
        if not meal_ids:
            return {}
        rows = self.session.exec(
            select(MealFoodRow)
            .where(col(MealFoodRow.meal_id).in_(meal_ids))
            .order_by(col(MealFoodRow.food_id))
        ).all()
        grouped: dict[int, list[int]] = {}
        for row in rows:
            grouped.setdefault(row.meal_id, []).append(row.food_id)
        return grouped


@dataclass
class SqlNutritionTargetsRepository:
    session: Session

    def get_targets(self, owner_id: int) -> NutritionTargets | None:
        row = self.session.get(NutritionTargetsRow, owner_id)
        return targets_from_row(row) if row else None

    def save_targets(self, owner_id: int, targets: NutritionTargets) -> None:
        self.session.merge(
            NutritionTargetsRow(
                user_id=owner_id,
                calories=targets.calories,
                protein=targets.protein,
                carbohydrates=targets.carbohydrates,
                fat=targets.fat,
                fiber=targets.fiber,
            )
        )
        self.session.flush()


@dataclass
class SqlUserProfileRepository:
    session: Session

    def get_profile(self, owner_id: int) -> UserProfile | None:
        row = self.session.get(UserProfileRow, owner_id)
        return profile_from_row(row) if row else None

    def save_profile(self, profile: UserProfile) -> None:
        self.session.merge(profile_row(profile))
        self.session.flush()


@dataclass
class SqlUnitOfWork:
    """One session, one transaction; leaving without commit rolls back."""

    engine: Engine
    session: Session | None = field(default=None, init=False)

    def __enter__(self) -> "SqlUnitOfWork":
        self.session = Session(self.engine, expire_on_commit=False)
        self.ingredients = SqlIngredientRepository(self.session)
        self.foods = SqlFoodRepository(self.session)
        self.meals = SqlMealRepository(self.session)
        self.targets = SqlNutritionTargetsRepository(self.session)
        self.profiles = SqlUserProfileRepository(self.session)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        if self.session is None:
            return
        try:
            self.session.rollback()
        finally:
            self.session.close()
            self.session = None

    def commit(self) -> None:
        self._require_session().commit()

    def rollback(self) -> None:
        self._require_session().rollback()

    def _require_session(self) -> Session:
        if self.session is None:
            raise RuntimeError("Unit of work is not active")
        return self.session
