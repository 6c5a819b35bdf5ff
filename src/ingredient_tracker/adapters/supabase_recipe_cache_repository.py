"""Supabase implementation of the shared recipe cache."""

import logging
from dataclasses import dataclass
from datetime import datetime

from supabase import Client

from ingredient_tracker.domain.recipes import CachedFood, GeneratedRecipe
from ingredient_tracker.services.repositories import RecipeCacheRepository

_logger = logging.getLogger(__name__)

_TABLE = "cached_foods"
_MAX_HIT_ATTEMPTS = 3


@dataclass
class SupabaseRecipeCacheRepository(RecipeCacheRepository):
    """Supabase-backed cache of generated recipes, shared by all users."""

    client: Client

    def find_by_search_key(self, search_key: str) -> CachedFood | None:
        """Return the entry stored under a key."""
        response = (
            self.client.table(_TABLE)
            .select("*")
            .eq("search_key", search_key)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_entry(response.data[0])

    def add(self, entry: CachedFood) -> CachedFood:
        """Store a new entry and return it with its id."""
        payload: dict[str, object] = {
            "search_key": entry.search_key,
            "recipe": entry.recipe.model_dump(mode="json"),
            "hit_count": entry.hit_count,
        }
        if entry.last_accessed_at is not None:
            payload["last_accessed_at"] = entry.last_accessed_at.isoformat()
        if entry.created_at is not None:
            payload["created_at"] = entry.created_at.isoformat()
        response = self.client.table(_TABLE).insert(payload).execute()
        if not response.data:
            raise RuntimeError("Failed to store cached recipe")
        return _parse_entry(response.data[0])

    def record_hit(self, search_key: str, accessed_at: datetime) -> None:
        """Increment the hit count and touch the last-accessed time.

        The update only applies while the stored count still matches the one
        read, so a concurrent hit forces a re-read instead of being lost. After
        a few contended attempts the hit is dropped; counts only rank eviction.
        """
        for _ in range(_MAX_HIT_ATTEMPTS):
            response = (
                self.client.table(_TABLE)
                .select("hit_count")
                .eq("search_key", search_key)
                .limit(1)
                .execute()
            )
            if not response.data:
                return
            current = int(response.data[0].get("hit_count") or 0)
            updated = (
                self.client.table(_TABLE)
                .update(
                    {
                        "hit_count": current + 1,
                        "last_accessed_at": accessed_at.isoformat(),
                    }
                )
                .eq("search_key", search_key)
                .eq("hit_count", current)
                .execute()
            )
            if updated.data:
                return
        _logger.warning("Dropped recipe cache hit for %s after contention", search_key)

    def evict_beyond(self, max_entries: int) -> int:
        """Delete entries ranked past max_entries by hits, then recency."""
        response = (
            self.client.table(_TABLE)
            .select("id")
            .order("hit_count", desc=True)
            .order("last_accessed_at", desc=True)
            .execute()
        )
        stale_ids = [row["id"] for row in (response.data or [])[max(max_entries, 0) :]]
        if not stale_ids:
            return 0
        self.client.table(_TABLE).delete().in_("id", stale_ids).execute()
        return len(stale_ids)


def _parse_entry(row: dict[str, object]) -> CachedFood:
    """Parse a cached_foods row into a domain model."""
    raw_id = row.get("id")
    return CachedFood(
        id=int(raw_id) if raw_id is not None else None,
        search_key=str(row.get("search_key", "")),
        recipe=GeneratedRecipe.model_validate(row.get("recipe") or {"name": ""}),
        hit_count=int(row.get("hit_count") or 0),
        last_accessed_at=_parse_timestamp(row.get("last_accessed_at")),
        created_at=_parse_timestamp(row.get("created_at")),
    )


def _parse_timestamp(raw: object) -> datetime | None:
    if isinstance(raw, str) and raw:
        return datetime.fromisoformat(raw)
    return None
