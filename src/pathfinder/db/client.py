"""
Pathfinder - Supabase Client.

Low-level client construction. Returns None when Supabase is not
configured, which the rest of the app treats as "remote absent".
"""

import logging

from supabase import Client, ClientOptions, create_client

from pathfinder.cache import CacheAuthStorage, CacheBackend
from pathfinder.config import settings

logger = logging.getLogger(__name__)

# Singleton client instance
_client: Client | None = None


def get_client(auth_backend: CacheBackend | None = None) -> Client | None:
    """
    Get the Supabase client, or None if not configured.

    Uses singleton pattern to reuse connection. When auth_backend is given
    on first use, the auth session is persisted in the local cache.
    """
    global _client

    if _client is None:
        if not settings.supabase_configured:
            logger.info("Supabase not configured, running local-cache-only")
            return None
        option_kwargs = {"persist_session": True, "auto_refresh_token": True}
        if auth_backend is not None:
            option_kwargs["storage"] = CacheAuthStorage(auth_backend)
        options = ClientOptions(**option_kwargs)
        _client = create_client(
            settings.supabase_url,
            settings.supabase_anon_key,
            options=options,
        )

    return _client


def reset_client() -> None:
    """Forget the singleton (used after logout and in tests)."""
    global _client
    _client = None
