"""
Remote Store Adapter.

Wraps the Supabase relational backend. Every operation:
- is skipped (RemoteResult.skipped) when Supabase is not configured or no
  user is signed in; anonymous users are local-cache-only
- runs the blocking client call in a worker thread raced against a timeout;
  a timed-out call is abandoned, not aborted, and its late result is dropped
- reports failure as RemoteResult.failed(UNAVAILABLE | REJECTED) instead of
  raising
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar

import httpx
from postgrest.exceptions import APIError

from pathfinder.auth.identity import AuthSession
from pathfinder.db import mapping
from pathfinder.db.adapter import DatabaseAdapter
from pathfinder.errors import PathfinderError, RemoteRejected, RemoteUnavailable
from pathfinder.models import Itinerary, ItineraryOption, PrivacySettings, UserProfile

logger = logging.getLogger(__name__)

T = TypeVar("T")

SessionSource = Callable[[], Awaitable[AuthSession | None]]


class FailureKind(str, Enum):
    UNAVAILABLE = "unavailable"  # timeout / network
    REJECTED = "rejected"  # server-validated error


@dataclass
class RemoteResult(Generic[T]):
    """Outcome of one remote operation."""

    data: T | None = None
    available: bool = True
    failure: FailureKind | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.available and self.failure is None

    @classmethod
    def success(cls, data: T | None = None) -> "RemoteResult[T]":
        return cls(data=data)

    @classmethod
    def skipped(cls, reason: str) -> "RemoteResult[T]":
        return cls(available=False, error=reason)

    @classmethod
    def failed(cls, kind: FailureKind, error: str) -> "RemoteResult[T]":
        return cls(failure=kind, error=error)


async def call_with_timeout(label: str, fn: Callable[[], T], timeout: float) -> T:
    """
    Run a blocking remote call in a thread, bounded by timeout.

    Maps timeouts and transport errors to RemoteUnavailable and PostgREST
    errors to RemoteRejected.
    """
    try:
        return await asyncio.wait_for(asyncio.to_thread(fn), timeout)
    except asyncio.TimeoutError as e:
        raise RemoteUnavailable(f"{label} timed out after {timeout}s") from e
    except APIError as e:
        raise RemoteRejected(f"{label} rejected: {e.message}", code=e.code) from e
    except (httpx.HTTPError, OSError) as e:
        raise RemoteUnavailable(f"{label} failed: {e}") from e


class RemoteStoreAdapter:
    """Async, failure-tolerant operations over the relational backend."""

    def __init__(
        self,
        client: DatabaseAdapter | None,
        session_source: SessionSource,
        *,
        timeout: float = 10.0,
        session_timeout: float = 5.0,
    ):
        self.client = client
        self._session_source = session_source
        self.timeout = timeout
        self.session_timeout = session_timeout

    @property
    def configured(self) -> bool:
        return self.client is not None

    async def current_session(self) -> AuthSession | None:
        """The signed-in session, or None if absent or unreachable."""
        try:
            return await asyncio.wait_for(self._session_source(), self.session_timeout)
        except asyncio.TimeoutError:
            logger.warning("Session lookup timed out, treating as signed out")
            return None
        except PathfinderError as e:
            logger.warning(f"Session lookup failed, treating as signed out: {e}")
            return None

    async def _execute(self, label: str, fn: Callable[[], T], timeout: float | None = None) -> T:
        return await call_with_timeout(label, fn, timeout or self.timeout)

    async def _run(
        self,
        label: str,
        op: Callable[[AuthSession], Awaitable[T]],
        session: AuthSession | None = None,
    ) -> RemoteResult[T]:
        """Gate on config + session, run op, fold errors into a result."""
        if self.client is None:
            return RemoteResult.skipped("remote store not configured")
        if session is None:
            session = await self.current_session()
        if session is None:
            return RemoteResult.skipped("no authenticated session")
        try:
            return RemoteResult.success(await op(session))
        except RemoteUnavailable as e:
            logger.warning(f"{label}: remote unavailable: {e}")
            return RemoteResult.failed(FailureKind.UNAVAILABLE, str(e))
        except RemoteRejected as e:
            logger.error(f"{label}: remote rejected ({e.code}): {e}")
            return RemoteResult.failed(FailureKind.REJECTED, str(e))
        except (KeyError, ValueError) as e:
            logger.error(f"{label}: malformed response: {e}")
            return RemoteResult.failed(FailureKind.REJECTED, f"malformed response: {e}")

    # =========================================================================
    # Itinerary writes (three ordered steps)
    # =========================================================================

    async def upsert_itinerary_header(self, header: dict[str, Any]) -> None:
        await self._execute(
            "Upsert itinerary header",
            lambda: self.client.table("itineraries").upsert(header, on_conflict="id").execute(),
        )

    async def upsert_places(self, places: list[dict[str, Any]]) -> None:
        if not places:
            return
        await self._execute(
            "Upsert places",
            lambda: self.client.table("places").upsert(places, on_conflict="name").execute(),
        )

    async def replace_item_links(self, itinerary_id: str, relational: mapping.RelationalItinerary) -> None:
        """
        Delete every link for the itinerary, then insert fresh ones.

        A failure after the delete leaves the remote itinerary empty until
        the next successful save; the local cache is unaffected.
        """
        await self._execute(
            "Delete item-links",
            lambda: self.client.table("itinerary_items").delete().eq("itinerary_id", itinerary_id).execute(),
        )
        if not relational.links:
            return

        names = relational.place_names
        response = await self._execute(
            "Fetch place ids",
            lambda: self.client.table("places").select("id, name").in_("name", names).execute(),
        )
        place_ids = {row["name"]: row["id"] for row in (response.data or [])}
        rows = mapping.resolve_links(relational.links, place_ids)

        await self._execute(
            "Insert item-links",
            lambda: self.client.table("itinerary_items").insert(rows).execute(),
        )

    async def save_itinerary(self, itinerary: Itinerary, session: AuthSession | None = None) -> RemoteResult[str]:
        """Persist one itinerary: header, then places, then item-links."""

        async def op(s: AuthSession) -> str:
            relational = mapping.to_relational(itinerary, s.user_id)
            await self.upsert_itinerary_header(relational.header)
            await self.upsert_places(relational.places)
            await self.replace_item_links(itinerary.id, relational)
            logger.info(f"Saved itinerary {itinerary.id} remotely ({len(relational.links)} stops)")
            return itinerary.id

        return await self._run("Save itinerary", op, session)

    # =========================================================================
    # Itinerary reads
    # =========================================================================

    async def fetch_itineraries(self, session: AuthSession | None = None) -> RemoteResult[list[Itinerary]]:
        """The signed-in user's itineraries, newest first."""

        async def op(s: AuthSession) -> list[Itinerary]:
            response = await self._execute(
                "Fetch itineraries",
                lambda: (
                    self.client.table("itineraries")
                    .select(mapping.ITINERARY_SELECT)
                    .eq("user_id", s.user_id)
                    .order("created_at", desc=True)
                    .execute()
                ),
            )
            return [mapping.from_relational(row) for row in (response.data or [])]

        return await self._run("Fetch itineraries", op, session)

    async def fetch_itinerary(self, itinerary_id: str, session: AuthSession | None = None) -> RemoteResult[Itinerary]:
        """One itinerary by id (own or public, as RLS allows)."""

        async def op(s: AuthSession) -> Itinerary | None:
            response = await self._execute(
                "Fetch itinerary",
                lambda: (
                    self.client.table("itineraries")
                    .select(mapping.ITINERARY_SELECT)
                    .eq("id", itinerary_id)
                    .limit(1)
                    .execute()
                ),
            )
            rows = response.data or []
            return mapping.from_relational(rows[0]) if rows else None

        return await self._run("Fetch itinerary", op, session)

    async def fetch_public_itineraries(self, limit: int = 20, session: AuthSession | None = None) -> RemoteResult[list[Itinerary]]:
        """Community feed: public itineraries, most liked first."""

        async def op(s: AuthSession) -> list[Itinerary]:
            response = await self._execute(
                "Fetch public itineraries",
                lambda: (
                    self.client.table("itineraries")
                    .select(mapping.PUBLIC_ITINERARY_SELECT)
                    .eq("is_public", True)
                    .order("likes_count", desc=True)
                    .limit(limit)
                    .execute()
                ),
            )
            return [mapping.from_relational(row) for row in (response.data or [])]

        return await self._run("Fetch public itineraries", op, session)

    # =========================================================================
    # Planning options
    # =========================================================================

    async def fetch_options(
        self, category: str | None = None, session: AuthSession | None = None
    ) -> RemoteResult[list[ItineraryOption]]:
        """
        Active planning options, in sort_order.

        One category goes through the get_itinerary_options RPC; all
        categories are read from itinerary_options in a single select.
        """

        async def op(s: AuthSession) -> list[ItineraryOption]:
            if category:
                response = await self._execute(
                    "Fetch options",
                    lambda: self.client.rpc("get_itinerary_options", {"p_category": category}).execute(),
                )
            else:
                response = await self._execute(
                    "Fetch options",
                    lambda: (
                        self.client.table("itinerary_options")
                        .select("*")
                        .eq("is_active", True)
                        .order("sort_order")
                        .execute()
                    ),
                )
            options = [ItineraryOption.model_validate(row) for row in (response.data or [])]
            logger.info(f"Fetched {len(options)} option(s) for {category or 'all categories'}")
            return options

        return await self._run("Fetch options", op, session)

    # =========================================================================
    # Profiles
    # =========================================================================

    async def fetch_profile(self, session: AuthSession | None = None, timeout: float | None = None) -> RemoteResult[dict]:
        """Preference fields from the profiles row ({} when there is none)."""

        async def op(s: AuthSession) -> dict:
            response = await self._execute(
                "Fetch profile",
                lambda: self.client.table("profiles").select("*").eq("id", s.user_id).maybe_single().execute(),
                timeout,
            )
            # maybe_single() yields None rather than an empty response on no rows
            return mapping.profile_from_row(response.data if response is not None else None)

        return await self._run("Fetch profile", op, session)

    async def upsert_profile(self, profile: UserProfile, session: AuthSession | None = None) -> RemoteResult[None]:
        async def op(s: AuthSession) -> None:
            row = mapping.profile_to_row(profile, s.user_id)
            await self._execute(
                "Upsert profile",
                lambda: self.client.table("profiles").upsert(row, on_conflict="id").execute(),
            )

        return await self._run("Upsert profile", op, session)

    # =========================================================================
    # Privacy & account
    # =========================================================================

    async def fetch_privacy_settings(self, session: AuthSession | None = None) -> RemoteResult[PrivacySettings]:
        async def op(s: AuthSession) -> PrivacySettings | None:
            response = await self._execute(
                "Fetch privacy settings",
                lambda: (
                    self.client.table("user_privacy_settings")
                    .select("*")
                    .eq("user_id", s.user_id)
                    .maybe_single()
                    .execute()
                ),
            )
            if response is None or not response.data:
                return None
            return PrivacySettings.model_validate(response.data)

        return await self._run("Fetch privacy settings", op, session)

    async def upsert_privacy_settings(
        self, changes: dict[str, bool], updated_at: str, session: AuthSession | None = None
    ) -> RemoteResult[None]:
        async def op(s: AuthSession) -> None:
            row = {"user_id": s.user_id, **changes, "updated_at": updated_at}
            await self._execute(
                "Upsert privacy settings",
                lambda: self.client.table("user_privacy_settings").upsert(row, on_conflict="user_id").execute(),
            )

        return await self._run("Upsert privacy settings", op, session)

    async def export_user_data(self, session: AuthSession | None = None) -> RemoteResult[dict]:
        """Server-side aggregation of everything stored for the user."""

        async def op(s: AuthSession) -> dict:
            response = await self._execute(
                "Export user data",
                lambda: self.client.rpc("export_user_data").execute(),
            )
            return response.data or {}

        return await self._run("Export user data", op, session)

    async def delete_account(self, session: AuthSession | None = None) -> RemoteResult[None]:
        """
        Wipe the user's server-side data.

        Uses the delete_user_account_data RPC; if the server rejects it,
        deletes the itineraries and profile rows directly.
        """

        async def op(s: AuthSession) -> None:
            try:
                await self._execute(
                    "Delete account",
                    lambda: self.client.rpc("delete_user_account_data").execute(),
                )
                return
            except RemoteRejected as e:
                logger.error(f"Delete RPC failed, deleting rows directly: {e}")

            await self._execute(
                "Delete itineraries",
                lambda: self.client.table("itineraries").delete().eq("user_id", s.user_id).execute(),
            )
            await self._execute(
                "Delete profile",
                lambda: self.client.table("profiles").delete().eq("id", s.user_id).execute(),
            )

        return await self._run("Delete account", op, session)
