"""
Synchronization Engine.

Decides, per operation, the order of cache vs remote access, which side wins
and what to fall back to.

Rules:
- Writes go to the local cache first and unconditionally; the remote leg is
  best-effort and its failure is logged, never raised.
- Reads prefer the remote store when it is reachable and has rows
  ("remote wins", no field-level merge) and fall back to the cache.
- Lookups by id go cache first, remote last.
- Late remote results are applied only if they are still the newest request
  for their slot (see RequestSequencer).
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Generic, TypeVar

from pydantic import ValidationError

from pathfinder.auth.identity import AuthSession, resolve_identity
from pathfinder.cache import COMMUNITY_ITINERARIES, CURRENT_USER, SAVED_ITINERARIES, LocalCacheStore
from pathfinder.db.remote import FailureKind, RemoteResult, RemoteStoreAdapter
from pathfinder.errors import InputValidationError
from pathfinder.models import Itinerary, UserProfile, coerce_uuid, is_valid_uuid
from pathfinder.sync.seeds import seed_itineraries
from pathfinder.sync.sequencer import RequestSequencer

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Profile fields a cached profile may contribute when the remote is slow
CACHED_PROFILE_FIELDS = ("name", "city", "personality", "role", "created_at")


@dataclass
class SaveResult(Generic[T]):
    """
    Outcome of a write.

    saved_locally is the durability guarantee; remote is None when no remote
    leg ran (not configured, or still running in the background).
    """

    value: T
    saved_locally: bool
    remote: RemoteResult | None = None

    @property
    def confirmed_remotely(self) -> bool:
        return self.remote is not None and self.remote.ok

    def __bool__(self) -> bool:
        return self.saved_locally


class SynchronizationEngine:
    """Public data operations used by the presentation layer."""

    def __init__(
        self,
        cache: LocalCacheStore,
        remote: RemoteStoreAdapter | None = None,
        *,
        profile_timeout: float = 1.0,
        community_page_size: int = 20,
    ):
        self.cache = cache
        self.remote = remote
        self.profile_timeout = profile_timeout
        self.community_page_size = community_page_size
        self.sequencer = RequestSequencer()
        self._pending: set[asyncio.Task] = set()

    # =========================================================================
    # Itineraries
    # =========================================================================

    async def save_itinerary(self, itinerary: Itinerary, wait_for_remote: bool = True) -> SaveResult[Itinerary]:
        """
        Save locally, then best-effort remotely.

        With wait_for_remote=False the remote leg runs as a background task;
        call drain() to wait for it.
        """
        record = itinerary
        if not is_valid_uuid(itinerary.id):
            record = itinerary.model_copy(update={"id": coerce_uuid(itinerary.id)})
            logger.info(f"Coerced itinerary id {itinerary.id!r} -> {record.id}")

        # Invalidates any in-flight hydration that would overwrite this write
        self.sequencer.issue(SAVED_ITINERARIES)
        saved = self.cache.save_itinerary(record)

        if self.remote is None:
            return SaveResult(record, saved)

        if wait_for_remote:
            return SaveResult(record, saved, await self._sync_itinerary(record))

        task = asyncio.create_task(self._sync_itinerary(record))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return SaveResult(record, saved)

    async def _sync_itinerary(self, itinerary: Itinerary) -> RemoteResult[str]:
        result = await self.remote.save_itinerary(itinerary)
        if result.failure is not None:
            logger.warning(f"Itinerary {itinerary.id} kept locally only: {result.error}")
        return result

    async def drain(self) -> None:
        """Wait for background remote legs to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def get_saved_itineraries(self) -> list[Itinerary]:
        """Remote list when reachable and non-empty, else the cached list."""
        if self.remote is not None:
            result = await self.remote.fetch_itineraries()
            if result.ok and result.data:
                return result.data
        return self.cache.get_saved_itineraries()

    async def hydrate_saved_itineraries(self, session: AuthSession | None = None) -> list[Itinerary]:
        """
        Login-time sync: fold remote rows into the cache.

        Remote rows replace cached rows with the same id; cached rows the
        remote has never seen (saved while offline) are kept after them.
        """
        if self.remote is None:
            return self.cache.get_saved_itineraries()

        ticket = self.sequencer.issue(SAVED_ITINERARIES)
        result = await self.remote.fetch_itineraries(session)
        if not (result.ok and result.data):
            return self.cache.get_saved_itineraries()

        remote_ids = {i.id for i in result.data}
        if self.sequencer.is_latest(SAVED_ITINERARIES, ticket):
            local_only = [i for i in self.cache.get_saved_itineraries() if coerce_uuid(i.id) not in remote_ids]
            self.cache.set_saved_itineraries([*result.data, *local_only])
            if local_only:
                logger.info(f"{len(local_only)} itinerary(ies) exist only on this device")
        else:
            logger.debug("Discarding stale itinerary hydration")
        return result.data

    async def get_itinerary_by_id(self, itinerary_id: str) -> Itinerary | None:
        """First hit wins: saved list, community snapshot, seeds, remote."""
        if not itinerary_id:
            return None
        candidates = {itinerary_id, coerce_uuid(itinerary_id)}

        for itinerary in self.cache.get_saved_itineraries():
            if itinerary.id in candidates:
                return itinerary
        for itinerary in [*self.cache.get_community_itineraries(), *seed_itineraries()]:
            if itinerary.id in candidates:
                return itinerary

        if self.remote is None:
            return None
        result = await self.remote.fetch_itinerary(coerce_uuid(itinerary_id))
        return result.data if result.ok else None

    async def publish_itinerary(
        self, itinerary: Itinerary, author_name: str, wait_for_remote: bool = True
    ) -> SaveResult[Itinerary]:
        """
        Share to the community feed.

        Echoes into the local community snapshot first, so the author sees
        it even when the remote is down, then saves with shared=True.
        """
        published = itinerary.model_copy(
            update={
                "id": coerce_uuid(itinerary.id),
                "shared": True,
                "author": author_name,
            }
        )
        self.sequencer.issue(COMMUNITY_ITINERARIES)
        echoed = self.cache.save_community_itinerary(published)
        result = await self.save_itinerary(published, wait_for_remote=wait_for_remote)
        return SaveResult(result.value, echoed or result.saved_locally, result.remote)

    async def get_community_itineraries(self) -> list[Itinerary]:
        """Remote feed by likes; offline it is the local snapshot plus seeds."""
        if self.remote is not None:
            result = await self.remote.fetch_public_itineraries(limit=self.community_page_size)
            if result.ok and result.data:
                return result.data

        snapshot = self.cache.get_community_itineraries()
        seen = {i.id for i in snapshot}
        return [*snapshot, *(s for s in seed_itineraries() if s.id not in seen)]

    # =========================================================================
    # User profile
    # =========================================================================

    def get_cached_user(self) -> UserProfile | None:
        return self.cache.get_user()

    async def get_user(self, session: AuthSession | None = None) -> UserProfile | None:
        """
        The current profile.

        Signed out: whatever is cached. Signed in: identity fields, plus
        cached preferences, plus the profiles row if it arrives within
        profile_timeout. A cold database never blocks this call for longer.
        """
        cached = self.cache.get_user()
        if session is None and self.remote is not None:
            try:
                session = await asyncio.wait_for(self.remote.current_session(), self.profile_timeout)
            except asyncio.TimeoutError:
                logger.warning(f"Session lookup exceeded {self.profile_timeout}s, using cached profile")
        if session is None:
            return cached

        ticket = self.sequencer.issue(CURRENT_USER)
        base = resolve_identity(session)
        fields: dict = {}
        if cached is not None and _owned_by(cached, session):
            fields.update(cached.model_dump(include=set(CACHED_PROFILE_FIELDS), exclude_none=True))

        remote = await self._fetch_profile(session)
        merged = self._merge_profile(base, fields, remote.data if remote.ok else None)

        if self.sequencer.is_latest(CURRENT_USER, ticket):
            self.cache.save_user(merged)
        else:
            logger.debug("Discarding stale profile result")
        return merged

    async def _fetch_profile(self, session: AuthSession) -> RemoteResult[dict]:
        if self.remote is None:
            return RemoteResult.skipped("remote store not configured")
        try:
            return await asyncio.wait_for(
                self.remote.fetch_profile(session, timeout=self.profile_timeout),
                self.profile_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Profile fetch exceeded {self.profile_timeout}s, using session + cache")
            return RemoteResult.failed(FailureKind.UNAVAILABLE, "profile fetch timed out")

    @staticmethod
    def _merge_profile(base: UserProfile, cached_fields: dict, remote_fields: dict | None) -> UserProfile:
        data = base.model_dump()
        data.update(cached_fields)
        if remote_fields:
            try:
                return UserProfile.model_validate({**data, **remote_fields, "email": base.email, "id": base.id})
            except ValidationError:
                logger.warning("Remote profile row is malformed, ignoring it")
        return UserProfile.model_validate(data)

    async def save_user(self, user: UserProfile) -> SaveResult[UserProfile]:
        """Write the profile to the cache, then best-effort to profiles."""
        if not user.name.strip():
            raise InputValidationError("Name cannot be empty")
        cached = self.cache.get_user()
        if (
            cached is not None
            and cached.id is not None
            and cached.id == user.id
            and cached.email
            and cached.email != user.email
        ):
            raise InputValidationError("Email is managed by the sign-in provider and cannot be changed")

        session = await self.remote.current_session() if self.remote is not None else None
        if session is not None and user.email and user.email != session.email:
            raise InputValidationError("Email is managed by the sign-in provider and cannot be changed")

        self.sequencer.issue(CURRENT_USER)
        saved = self.cache.save_user(user)
        if self.remote is None:
            return SaveResult(user, saved)

        remote = await self.remote.upsert_profile(user, session)
        if remote.failure is not None:
            logger.warning(f"Profile kept locally only: {remote.error}")
        return SaveResult(user, saved, remote)

    def clear_user(self) -> bool:
        """Forget the current user and their itineraries on this device."""
        self.sequencer.issue(CURRENT_USER)
        self.sequencer.issue(SAVED_ITINERARIES)
        return self.cache.clear()


def _owned_by(profile: UserProfile, session: AuthSession) -> bool:
    """Whether a cached profile belongs to the signed-in user."""
    if profile.id:
        return profile.id == session.user_id
    if profile.email:
        return profile.email == session.email
    # Anonymous profile from before the first sign-in
    return True
