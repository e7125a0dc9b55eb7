"""
Identity Resolver.

Maps an authenticated session to the normalized UserProfile shape.
Stateless.
"""

from dataclasses import dataclass, field
from typing import Any

from pathfinder.models import UserProfile

DEFAULT_DISPLAY_NAME = "Explorer"


@dataclass(frozen=True)
class AuthSession:
    """The parts of a provider session the app relies on."""

    user_id: str
    email: str
    access_token: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_supabase(cls, session: Any) -> "AuthSession | None":
        """Build from a Supabase auth Session (or None)."""
        if session is None or getattr(session, "user", None) is None:
            return None
        user = session.user
        return cls(
            user_id=str(user.id),
            email=user.email or "",
            access_token=session.access_token or "",
            metadata=dict(user.user_metadata or {}),
        )


def display_name(session: AuthSession) -> str:
    """full_name from sign-up metadata, else the email's local part."""
    full_name = session.metadata.get("full_name")
    if full_name:
        return str(full_name)
    if session.email:
        return session.email.split("@")[0]
    return DEFAULT_DISPLAY_NAME


def resolve_identity(session: AuthSession) -> UserProfile:
    """Identity-provider fields only. Preferences are merged in by the caller."""
    return UserProfile(
        id=session.user_id,
        email=session.email,
        name=display_name(session),
    )
