"""
Session Lifecycle Controller.

Drives synchronization from identity-provider events:

    UNINITIALIZED -> HYDRATING -> READY_LOGGED_IN | READY_LOGGED_OUT

- start(): subscribe to auth events, then look for an existing session.
  With one, hydrate (profile + itineraries); without, restore the cached
  profile as a remembered, offline state.
- SIGNED_IN / TOKEN_REFRESHED: hydrate, unless the current user already has
  that email. Hydrations for the same email share one in-flight task.
- SIGNED_OUT: drop the user and purge the cache.
- A watchdog forces HYDRATING -> READY_LOGGED_OUT if the provider never
  answers, so nothing waits on an unreachable auth backend forever.
"""

import asyncio
import logging
from collections.abc import Callable
from enum import Enum

from pydantic import ValidationError

from pathfinder.auth.identity import AuthSession
from pathfinder.auth.provider import AuthEvent, IdentityProvider
from pathfinder.cache import CURRENT_USER
from pathfinder.errors import InputValidationError, PathfinderError
from pathfinder.models import Itinerary, UserProfile
from pathfinder.sync import SaveResult, SynchronizationEngine
from pathfinder.sync.sequencer import RequestSequencer

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    UNINITIALIZED = "uninitialized"
    HYDRATING = "hydrating"
    READY_LOGGED_OUT = "ready_logged_out"
    READY_LOGGED_IN = "ready_logged_in"


HYDRATE_EVENTS = {AuthEvent.SIGNED_IN, AuthEvent.TOKEN_REFRESHED}

# Local profile edits; a hydration that overlaps one keeps the edited profile
PROFILE_EDIT = "profileEdit"


class SessionLifecycleController:
    """Owns the in-memory current user and keeps it in step with auth events."""

    def __init__(
        self,
        identity: IdentityProvider,
        engine: SynchronizationEngine,
        *,
        watchdog_timeout: float = 4.0,
        logout_timeout: float = 0.8,
    ):
        self.identity = identity
        self.engine = engine
        self.watchdog_timeout = watchdog_timeout
        self.logout_timeout = logout_timeout

        self.state = SessionState.UNINITIALIZED
        self.user: UserProfile | None = None
        self.itineraries: list[Itinerary] = []

        self._sequencer = RequestSequencer()
        self._unsubscribe: Callable[[], None] | None = None
        self._watchdog: asyncio.Task | None = None
        self._inflight: asyncio.Task | None = None
        self._inflight_email: str | None = None

    @property
    def is_loading(self) -> bool:
        return self.state in (SessionState.UNINITIALIZED, SessionState.HYDRATING)

    @property
    def logged_in(self) -> bool:
        return self.state == SessionState.READY_LOGGED_IN

    # =========================================================================
    # Mount / unmount
    # =========================================================================

    async def start(self) -> None:
        """Subscribe to auth events, then restore whatever session exists."""
        self._unsubscribe = self.identity.on_auth_state_change(self.handle_auth_event)
        self.state = SessionState.HYDRATING
        self._watchdog = asyncio.create_task(self._watch())

        try:
            session = await self.identity.get_session()
        except PathfinderError as e:
            logger.error(f"Initial session check failed: {e}")
            session = None

        if session is not None:
            await self._hydrate(session)
            return

        cached = self.engine.get_cached_user()
        if cached is not None:
            logger.info("Restoring offline session from cache")
            self.user = cached
            self.itineraries = self.engine.cache.get_saved_itineraries()
        if self.state == SessionState.HYDRATING:
            self.state = SessionState.READY_LOGGED_OUT

    async def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self._watchdog is not None:
            self._watchdog.cancel()
            self._watchdog = None

    async def _watch(self) -> None:
        await asyncio.sleep(self.watchdog_timeout)
        if self.state == SessionState.HYDRATING:
            logger.warning(f"Identity provider silent for {self.watchdog_timeout}s, forcing logged-out state")
            self.state = SessionState.READY_LOGGED_OUT

    # =========================================================================
    # Auth events
    # =========================================================================

    async def handle_auth_event(self, event: str, session: AuthSession | None) -> None:
        logger.info(f"Auth event: {event}")
        if event in HYDRATE_EVENTS:
            if session is None:
                return
            if self.logged_in and self.user is not None and self.user.email == session.email:
                logger.debug(f"Already hydrated for {session.email}, ignoring {event}")
                return
            await self._hydrate(session)
        elif event == AuthEvent.SIGNED_OUT:
            self._clear_local()

    async def _hydrate(self, session: AuthSession) -> None:
        """Single-flight per email; only the newest hydration is applied."""
        if self._inflight is not None and not self._inflight.done() and self._inflight_email == session.email:
            logger.debug(f"Joining in-flight hydration for {session.email}")
            await asyncio.shield(self._inflight)
            return

        ticket = self._sequencer.issue(CURRENT_USER)
        self._inflight_email = session.email
        self._inflight = asyncio.create_task(self._run_hydration(session, ticket))
        await asyncio.shield(self._inflight)

    async def _run_hydration(self, session: AuthSession, ticket: int) -> None:
        # A sign-out may land before this task starts or between its steps;
        # later steps must not repopulate the cache it just purged.
        if not self._sequencer.is_latest(CURRENT_USER, ticket):
            return
        edit_ticket = self._sequencer.latest(PROFILE_EDIT)
        if not self.logged_in:
            self.state = SessionState.HYDRATING
        try:
            user = await self.engine.get_user(session)
            if not self._sequencer.is_latest(CURRENT_USER, ticket):
                logger.debug(f"Hydration for {session.email} superseded after profile fetch")
                return
            itineraries = await self.engine.hydrate_saved_itineraries(session)
        except Exception as e:
            logger.error(f"Hydration failed for {session.email}: {e}")
            if self._sequencer.is_latest(CURRENT_USER, ticket) and self.state == SessionState.HYDRATING:
                self.state = SessionState.READY_LOGGED_OUT
            return

        if not self._sequencer.is_latest(CURRENT_USER, ticket):
            logger.debug(f"Discarding stale hydration for {session.email}")
            return
        if self._sequencer.latest(PROFILE_EDIT) == edit_ticket or self.user is None:
            self.user = user
        else:
            logger.debug("Profile edited during hydration, keeping the edit")
        self.itineraries = itineraries
        self.state = SessionState.READY_LOGGED_IN
        logger.info(f"Session ready for {session.email} ({len(itineraries)} itineraries)")

    def _clear_local(self) -> None:
        # Newer than any in-flight hydration, so it cannot resurrect the user
        self._sequencer.issue(CURRENT_USER)
        self.user = None
        self.itineraries = []
        self.engine.clear_user()
        self.state = SessionState.READY_LOGGED_OUT

    # =========================================================================
    # User actions
    # =========================================================================

    async def refresh_session(self) -> None:
        """Re-read the provider session and hydrate or clear accordingly."""
        try:
            session = await self.identity.get_session()
        except PathfinderError as e:
            logger.warning(f"Session refresh failed, keeping current state: {e}")
            return
        if session is None:
            self._clear_local()
        else:
            await self._hydrate(session)

    async def update_profile(self, profile: UserProfile) -> SaveResult[UserProfile]:
        self._sequencer.issue(PROFILE_EDIT)
        result = await self.engine.save_user(profile)
        self.user = profile
        return result

    async def edit_profile(self, **changes) -> SaveResult[UserProfile]:
        """Apply field changes to the current (or a new anonymous) profile."""
        base = self.user.model_dump() if self.user is not None else {}
        try:
            profile = UserProfile.model_validate({**base, **changes})
        except ValidationError as e:
            raise InputValidationError(f"Invalid profile: {e}") from e
        return await self.update_profile(profile)

    async def logout(self) -> None:
        """
        Sign out everywhere we can, locally no matter what.

        The remote sign-out gets logout_timeout; the local user, cache and
        persisted auth tokens are cleared regardless of its outcome.
        """
        try:
            await asyncio.wait_for(self.identity.sign_out(), self.logout_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Remote sign-out exceeded {self.logout_timeout}s, continuing locally")
        except PathfinderError as e:
            logger.error(f"Remote sign-out failed, continuing locally: {e}")

        self._clear_local()
        self.engine.cache.sweep_auth_tokens()
