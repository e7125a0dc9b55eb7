"""
Identity provider boundary.

IdentityProvider is the contract the session controller depends on.
SupabaseIdentityProvider implements it over supabase-py's auth client:
blocking calls run in a worker thread under a timeout, provider errors
become AuthRejected with the provider's message, and obviously bad input
is rejected before any request is made.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any, Protocol, TypeVar, runtime_checkable

import httpx
from supabase import AuthError

from pathfinder.auth.identity import AuthSession
from pathfinder.errors import AuthRejected, InputValidationError, RemoteUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AuthEvent(str, Enum):
    INITIAL_SESSION = "INITIAL_SESSION"
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"
    PASSWORD_RECOVERY = "PASSWORD_RECOVERY"


AuthCallback = Callable[[str, AuthSession | None], Awaitable[None]]


@runtime_checkable
class IdentityProvider(Protocol):
    """Sign-in/up/out, the current session, and change notifications."""

    async def sign_in(self, email: str, password: str) -> AuthSession: ...

    async def sign_up(self, email: str, password: str, name: str | None = None) -> AuthSession | None: ...

    async def sign_in_with_otp(self, email: str) -> None: ...

    async def reset_password(self, email: str) -> None: ...

    async def sign_out(self) -> None: ...

    async def get_session(self) -> AuthSession | None: ...

    def on_auth_state_change(self, callback: AuthCallback) -> Callable[[], None]:
        """Subscribe; returns an unsubscribe function."""
        ...


def _require_email(email: str) -> str:
    email = (email or "").strip()
    if not email:
        raise InputValidationError("Email is required")
    if "@" not in email:
        raise InputValidationError(f"'{email}' is not an email address")
    return email


class SupabaseIdentityProvider:
    """IdentityProvider backed by a supabase-py Client."""

    def __init__(
        self,
        client: Any,
        *,
        site_url: str = "http://localhost:5173",
        auth_timeout: float = 15.0,
        session_timeout: float = 5.0,
        sign_out_timeout: float = 3.0,
    ):
        self.client = client
        self.site_url = site_url.rstrip("/")
        self.auth_timeout = auth_timeout
        self.session_timeout = session_timeout
        self.sign_out_timeout = sign_out_timeout

    async def _call(self, label: str, fn: Callable[[], T], timeout: float) -> T:
        try:
            return await asyncio.wait_for(asyncio.to_thread(fn), timeout)
        except asyncio.TimeoutError as e:
            raise RemoteUnavailable(f"{label} timed out after {timeout}s") from e
        except AuthError as e:
            raise AuthRejected(e.message) from e
        except (httpx.HTTPError, OSError) as e:
            raise RemoteUnavailable(f"{label} failed: {e}") from e

    async def sign_in(self, email: str, password: str) -> AuthSession:
        email = _require_email(email)
        if not password:
            raise InputValidationError("Password is required")
        response = await self._call(
            "Sign in",
            lambda: self.client.auth.sign_in_with_password({"email": email, "password": password}),
            self.auth_timeout,
        )
        session = AuthSession.from_supabase(response.session)
        if session is None:
            raise AuthRejected("Sign in returned no session")
        return session

    async def sign_up(self, email: str, password: str, name: str | None = None) -> AuthSession | None:
        """Returns None when the project requires email confirmation first."""
        email = _require_email(email)
        if not password:
            raise InputValidationError("Password is required")
        credentials = {
            "email": email,
            "password": password,
            "options": {"data": {"full_name": name}},
        }
        response = await self._call(
            "Sign up",
            lambda: self.client.auth.sign_up(credentials),
            self.auth_timeout,
        )
        return AuthSession.from_supabase(response.session)

    async def sign_in_with_otp(self, email: str) -> None:
        email = _require_email(email)
        await self._call(
            "OTP request",
            lambda: self.client.auth.sign_in_with_otp(
                {"email": email, "options": {"email_redirect_to": self.site_url}}
            ),
            self.auth_timeout,
        )

    async def reset_password(self, email: str) -> None:
        email = _require_email(email)
        await self._call(
            "Password reset",
            lambda: self.client.auth.reset_password_for_email(
                email, {"redirect_to": f"{self.site_url}/reset-password"}
            ),
            self.auth_timeout,
        )

    async def sign_out(self) -> None:
        await self._call("Sign out", self.client.auth.sign_out, self.sign_out_timeout)

    async def get_session(self) -> AuthSession | None:
        session = await self._call("Get session", self.client.auth.get_session, self.session_timeout)
        return AuthSession.from_supabase(session)

    def on_auth_state_change(self, callback: AuthCallback) -> Callable[[], None]:
        """
        Forward provider events to an async callback on the current loop.

        supabase-py fires callbacks synchronously from whichever thread made
        the auth call, so events are handed back to the loop thread-safely.
        """
        loop = asyncio.get_running_loop()

        def _listener(event: str, session: Any) -> None:
            logger.debug(f"Auth event: {event}")
            future = asyncio.run_coroutine_threadsafe(
                callback(str(event), AuthSession.from_supabase(session)), loop
            )
            future.add_done_callback(_log_callback_error)

        subscription = self.client.auth.on_auth_state_change(_listener)
        return subscription.unsubscribe


def _log_callback_error(future) -> None:
    if future.cancelled():
        return
    error = future.exception()
    if error is not None:
        logger.error(f"Auth event handler failed: {error}")
