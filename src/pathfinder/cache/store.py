"""
Local Cache Store.

Three whole-value slots:
- currentUser: the one cached UserProfile (a single global slot, not keyed
  by user id; signing in as someone else overwrites it)
- savedItineraries: the current user's library, most recently saved first
- communityItineraries: locally published entries (not user-owned, survives
  clear())

Reads never raise. Writes return False instead of raising. Every mutating
sync operation writes here first, before touching the remote store.
"""

import json
import logging
from typing import Any

from pydantic import ValidationError

from pathfinder.cache.backends import CacheBackend
from pathfinder.errors import CacheUnavailable
from pathfinder.models import Itinerary, UserProfile

logger = logging.getLogger(__name__)

CURRENT_USER = "currentUser"
SAVED_ITINERARIES = "savedItineraries"
COMMUNITY_ITINERARIES = "communityItineraries"

# Keys the Supabase auth client persists its session under
AUTH_TOKEN_PREFIXES = ("sb-", "supabase.")


class LocalCacheStore:
    """Typed access to the cache slots."""

    def __init__(self, backend: CacheBackend):
        self.backend = backend

    # =========================================================================
    # Raw slot access
    # =========================================================================

    def _read(self, key: str) -> Any:
        try:
            raw = self.backend.get(key)
        except CacheUnavailable as e:
            logger.warning(f"Cache read failed for {key}, treating as empty: {e}")
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Cache slot {key} is not valid JSON, treating as empty")
            return None

    def _write(self, key: str, value: Any) -> bool:
        try:
            self.backend.set(key, json.dumps(value))
            return True
        except CacheUnavailable as e:
            logger.error(f"Cache write failed for {key}: {e}")
            return False

    def _remove(self, key: str) -> bool:
        try:
            self.backend.remove(key)
            return True
        except CacheUnavailable as e:
            logger.error(f"Cache remove failed for {key}: {e}")
            return False

    def _read_itineraries(self, key: str) -> list[Itinerary]:
        data = self._read(key)
        if not isinstance(data, list):
            return []
        itineraries = []
        for entry in data:
            try:
                itineraries.append(Itinerary.model_validate(entry))
            except ValidationError:
                logger.warning(f"Skipping malformed itinerary in {key}")
        return itineraries

    def _write_itineraries(self, key: str, itineraries: list[Itinerary]) -> bool:
        return self._write(key, [i.model_dump(mode="json") for i in itineraries])

    def _upsert_itinerary(self, key: str, itinerary: Itinerary) -> bool:
        """Replace-or-prepend by id."""
        existing = [i for i in self._read_itineraries(key) if i.id != itinerary.id]
        return self._write_itineraries(key, [itinerary, *existing])

    # =========================================================================
    # currentUser
    # =========================================================================

    def get_user(self) -> UserProfile | None:
        data = self._read(CURRENT_USER)
        if not isinstance(data, dict):
            return None
        try:
            return UserProfile.model_validate(data)
        except ValidationError:
            logger.warning("Cached user profile is malformed, ignoring")
            return None

    def save_user(self, user: UserProfile) -> bool:
        return self._write(CURRENT_USER, user.model_dump(mode="json"))

    def clear_user(self) -> bool:
        return self._remove(CURRENT_USER)

    # =========================================================================
    # savedItineraries
    # =========================================================================

    def get_saved_itineraries(self) -> list[Itinerary]:
        return self._read_itineraries(SAVED_ITINERARIES)

    def set_saved_itineraries(self, itineraries: list[Itinerary]) -> bool:
        return self._write_itineraries(SAVED_ITINERARIES, itineraries)

    def save_itinerary(self, itinerary: Itinerary) -> bool:
        return self._upsert_itinerary(SAVED_ITINERARIES, itinerary)

    # =========================================================================
    # communityItineraries
    # =========================================================================

    def get_community_itineraries(self) -> list[Itinerary]:
        return self._read_itineraries(COMMUNITY_ITINERARIES)

    def save_community_itinerary(self, itinerary: Itinerary) -> bool:
        return self._upsert_itinerary(COMMUNITY_ITINERARIES, itinerary)

    # =========================================================================
    # Bulk operations
    # =========================================================================

    def clear(self) -> bool:
        """Drop the user-owned slots. The community snapshot is kept."""
        user_ok = self._remove(CURRENT_USER)
        saved_ok = self._remove(SAVED_ITINERARIES)
        return user_ok and saved_ok

    def sweep_auth_tokens(self) -> int:
        """Remove any persisted auth session so it cannot resurrect on restart."""
        try:
            keys = self.backend.keys()
        except CacheUnavailable as e:
            logger.error(f"Cannot list cache keys for token sweep: {e}")
            return 0
        removed = 0
        for key in keys:
            if key.startswith(AUTH_TOKEN_PREFIXES) and self._remove(key):
                removed += 1
        if removed:
            logger.info(f"Swept {removed} persisted auth token(s)")
        return removed

    def wipe(self) -> None:
        """Remove every key, community snapshot included."""
        try:
            keys = self.backend.keys()
        except CacheUnavailable as e:
            logger.error(f"Cannot list cache keys for wipe: {e}")
            return
        for key in keys:
            self._remove(key)


class CacheAuthStorage:
    """
    Session storage for the Supabase auth client, backed by the cache.

    Matches the get_item/set_item/remove_item interface of the auth
    client's sync storage, so tokens land next to the cache slots and are
    removed by LocalCacheStore.sweep_auth_tokens().
    """

    def __init__(self, backend: CacheBackend):
        self.backend = backend

    def get_item(self, key: str) -> str | None:
        try:
            return self.backend.get(key)
        except CacheUnavailable as e:
            logger.warning(f"Auth storage read failed: {e}")
            return None

    def set_item(self, key: str, value: str) -> None:
        try:
            self.backend.set(key, value)
        except CacheUnavailable as e:
            logger.warning(f"Auth storage write failed: {e}")

    def remove_item(self, key: str) -> None:
        try:
            self.backend.remove(key)
        except CacheUnavailable as e:
            logger.warning(f"Auth storage remove failed: {e}")
