"""
Pathfinder - Service wiring.

Builds the cache, remote store, identity provider and engine from settings.
Anything remote comes back as None when Supabase is not configured.
"""

import logging

from pathfinder.auth.identity import AuthSession
from pathfinder.auth.lifecycle import SessionLifecycleController
from pathfinder.auth.provider import SupabaseIdentityProvider
from pathfinder.cache import FileCacheBackend, LocalCacheStore
from pathfinder.compliance import ComplianceService
from pathfinder.config import settings
from pathfinder.db.client import get_client
from pathfinder.db.remote import RemoteStoreAdapter
from pathfinder.sync import SynchronizationEngine

logger = logging.getLogger(__name__)


def get_cache_backend() -> FileCacheBackend:
    return FileCacheBackend(settings.cache_dir)


def get_cache_store(backend: FileCacheBackend | None = None) -> LocalCacheStore:
    return LocalCacheStore(backend or get_cache_backend())


def get_identity_provider(backend: FileCacheBackend | None = None) -> SupabaseIdentityProvider | None:
    client = get_client(backend or get_cache_backend())
    if client is None:
        return None
    return SupabaseIdentityProvider(
        client,
        site_url=settings.site_url,
        auth_timeout=settings.auth_timeout_seconds,
        session_timeout=settings.get_session_timeout_seconds,
        sign_out_timeout=settings.sign_out_timeout_seconds,
    )


def get_remote_store(identity: SupabaseIdentityProvider | None) -> RemoteStoreAdapter | None:
    if identity is None:
        return None

    async def session_source() -> AuthSession | None:
        return await identity.get_session()

    return RemoteStoreAdapter(
        identity.client,
        session_source,
        timeout=settings.remote_timeout_seconds,
        session_timeout=settings.get_session_timeout_seconds,
    )


class Services:
    """Everything a command needs, built once per process."""

    def __init__(self):
        backend = get_cache_backend()
        self.cache = get_cache_store(backend)
        self.identity = get_identity_provider(backend)
        self.remote = get_remote_store(self.identity)
        self.engine = SynchronizationEngine(
            self.cache,
            self.remote,
            profile_timeout=settings.profile_fetch_timeout_seconds,
            community_page_size=settings.community_page_size,
        )
        if self.identity is None:
            logger.debug("No identity provider, session features disabled")

    def controller(self) -> SessionLifecycleController | None:
        if self.identity is None:
            return None
        return SessionLifecycleController(
            self.identity,
            self.engine,
            watchdog_timeout=settings.session_watchdog_seconds,
            logout_timeout=settings.logout_timeout_seconds,
        )

    def compliance(self) -> ComplianceService | None:
        if self.remote is None:
            return None
        return ComplianceService(self.remote, self.engine, self.identity)
