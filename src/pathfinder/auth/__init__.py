"""
Pathfinder - Authentication.

Identity resolution and the identity-provider boundary. The session
lifecycle controller lives in pathfinder.auth.lifecycle.
"""

from pathfinder.auth.identity import AuthSession, resolve_identity
from pathfinder.auth.provider import AuthEvent, IdentityProvider, SupabaseIdentityProvider

__all__ = [
    "AuthSession",
    "resolve_identity",
    "AuthEvent",
    "IdentityProvider",
    "SupabaseIdentityProvider",
]
