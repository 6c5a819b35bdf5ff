"""Per-user nutrition targets cached after the first AI estimate."""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from ingredient_tracker.domain.errors import MalformedAIResponseError
from ingredient_tracker.domain.nutrition import NutritionTargets, UserProfile
from ingredient_tracker.services.ai import AIService
from ingredient_tracker.services.inventory import require_positive
from ingredient_tracker.services.repositories import UnitOfWork

_logger = logging.getLogger(__name__)

DAYS_PER_WEEK = 7


@dataclass
class NutritionTargetsService:
    """Read-through cache of AI-derived daily targets."""

    uow_factory: Callable[[], UnitOfWork]
    ai_service: AIService

    async def get_daily_targets(self, owner_id: int) -> NutritionTargets:
        """Return stored targets, estimating and storing them on first use."""
        require_positive(owner_id, "owner_id")
        with self.uow_factory() as uow:
            existing = uow.targets.get_targets(owner_id)
            profile = uow.profiles.get_profile(owner_id)
        if existing is not None:
            return existing
        return await self._estimate_and_store(owner_id, profile)

    async def get_weekly_targets(self, owner_id: int) -> NutritionTargets:
        """Return daily targets scaled to a week."""
        targets = await self.get_daily_targets(owner_id)
        return targets.scaled(DAYS_PER_WEEK)

    async def get_overview_targets(
        self, owner_id: int, day_amount: int
    ) -> NutritionTargets:
        """Return daily targets scaled to a number of days (at least one)."""
        targets = await self.get_daily_targets(owner_id)
        return targets.scaled(max(day_amount, 1))

    async def refresh_targets(self, owner_id: int) -> NutritionTargets:
        """Re-estimate targets from the current profile and overwrite them."""
        require_positive(owner_id, "owner_id")
        with self.uow_factory() as uow:
            profile = uow.profiles.get_profile(owner_id)
        return await self._estimate_and_store(owner_id, profile)

    def save_profile(self, profile: UserProfile) -> UserProfile:
        """Store the body and goal information used for estimates."""
        require_positive(profile.user_id, "user_id")
        with self.uow_factory() as uow:
            uow.profiles.save_profile(profile)
            uow.commit()
        return profile

    async def _estimate_and_store(
        self, owner_id: int, profile: UserProfile | None
    ) -> NutritionTargets:
        targets = await self.ai_service.get_daily_targets(profile)
        if targets is None:
            raise MalformedAIResponseError("AI returned no usable targets")
        with self.uow_factory() as uow:
            uow.targets.save_targets(owner_id, targets)
            uow.commit()
        _logger.info("Nutrition targets stored: owner_id=%s", owner_id)
        return targets
