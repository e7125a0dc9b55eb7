"""
Pytest configuration and fixtures for Pathfinder tests.
"""

import asyncio
import os
from unittest.mock import MagicMock

import pytest

# Run local-cache-only regardless of any developer .env
os.environ["PATHFINDER_ENV"] = "development"
os.environ["SUPABASE_URL"] = ""
os.environ["SUPABASE_ANON_KEY"] = ""
os.environ["OPENAI_API_KEY"] = ""

from pathfinder.auth.identity import AuthSession  # noqa: E402
from pathfinder.cache import LocalCacheStore, MemoryCacheBackend  # noqa: E402
from pathfinder.db.remote import FailureKind, RemoteResult  # noqa: E402
from pathfinder.models import Itinerary, ItineraryItem, ItineraryOption, PrivacySettings  # noqa: E402

ALICE_ID = "a11ce000-0000-4000-8000-000000000001"
BOB_ID = "b0b00000-0000-4000-8000-000000000002"


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeRemoteStore:
    """
    In-memory stand-in for RemoteStoreAdapter.

    Flip `online` to simulate an outage, set `delay` to simulate a slow
    backend. Every call is counted in `calls`.
    """

    def __init__(self, session: AuthSession | None = None):
        self.session = session
        self.online = True
        self.delay = 0.0
        self.itineraries: dict[str, tuple[str, Itinerary]] = {}
        self.profiles: dict[str, dict] = {}
        self.privacy: dict[str, dict] = {}
        self.export_rows: dict | None = None
        self.options: list[ItineraryOption] = []
        self.delete_fails = False
        self.calls: list[str] = []

    async def current_session(self) -> AuthSession | None:
        return self.session

    async def _gate(self, name: str, session: AuthSession | None):
        self.calls.append(name)
        session = session or self.session
        if session is None:
            return None, RemoteResult.skipped("no authenticated session")
        if self.delay:
            await asyncio.sleep(self.delay)
        if not self.online:
            return None, RemoteResult.failed(FailureKind.UNAVAILABLE, "offline")
        return session, None

    def add(self, itinerary: Itinerary, user_id: str = ALICE_ID) -> None:
        # Newest first, like ORDER BY created_at DESC
        self.itineraries = {itinerary.id: (user_id, itinerary), **self.itineraries}

    async def save_itinerary(self, itinerary, session=None):
        s, skipped = await self._gate("save_itinerary", session)
        if skipped:
            return skipped
        if itinerary.id in self.itineraries:
            self.itineraries[itinerary.id] = (s.user_id, itinerary)
        else:
            self.add(itinerary, s.user_id)
        return RemoteResult.success(itinerary.id)

    async def fetch_itineraries(self, session=None):
        s, skipped = await self._gate("fetch_itineraries", session)
        if skipped:
            return skipped
        return RemoteResult.success([i for uid, i in self.itineraries.values() if uid == s.user_id])

    async def fetch_itinerary(self, itinerary_id, session=None):
        _, skipped = await self._gate("fetch_itinerary", session)
        if skipped:
            return skipped
        entry = self.itineraries.get(itinerary_id)
        return RemoteResult.success(entry[1] if entry else None)

    async def fetch_public_itineraries(self, limit=20, session=None):
        _, skipped = await self._gate("fetch_public_itineraries", session)
        if skipped:
            return skipped
        public = [i for _, i in self.itineraries.values() if i.shared]
        return RemoteResult.success(sorted(public, key=lambda i: i.likes, reverse=True)[:limit])

    async def fetch_options(self, category=None, session=None):
        _, skipped = await self._gate("fetch_options", session)
        if skipped:
            return skipped
        return RemoteResult.success([o for o in self.options if category is None or o.category == category])

    async def fetch_profile(self, session=None, timeout=None):
        s, skipped = await self._gate("fetch_profile", session)
        if skipped:
            return skipped
        return RemoteResult.success(dict(self.profiles.get(s.user_id, {})))

    async def upsert_profile(self, profile, session=None):
        s, skipped = await self._gate("upsert_profile", session)
        if skipped:
            return skipped
        self.profiles[s.user_id] = {"name": profile.name, "city": profile.city, "personality": profile.personality.value}
        return RemoteResult.success(None)

    async def fetch_privacy_settings(self, session=None):
        s, skipped = await self._gate("fetch_privacy_settings", session)
        if skipped:
            return skipped
        row = self.privacy.get(s.user_id)
        return RemoteResult.success(PrivacySettings.model_validate(row) if row else None)

    async def upsert_privacy_settings(self, changes, updated_at, session=None):
        s, skipped = await self._gate("upsert_privacy_settings", session)
        if skipped:
            return skipped
        self.privacy.setdefault(s.user_id, {}).update(changes)
        return RemoteResult.success(None)

    async def export_user_data(self, session=None):
        _, skipped = await self._gate("export_user_data", session)
        if skipped:
            return skipped
        if self.export_rows is None:
            return RemoteResult.failed(FailureKind.REJECTED, "function export_user_data does not exist")
        return RemoteResult.success(self.export_rows)

    async def delete_account(self, session=None):
        s, skipped = await self._gate("delete_account", session)
        if skipped:
            return skipped
        if self.delete_fails:
            return RemoteResult.failed(FailureKind.REJECTED, "permission denied")
        self.itineraries = {k: v for k, v in self.itineraries.items() if v[0] != s.user_id}
        self.profiles.pop(s.user_id, None)
        return RemoteResult.success(None)


class FakeIdentityProvider:
    """IdentityProvider with scriptable latency and manual event emission."""

    def __init__(self, session: AuthSession | None = None):
        self.session = session
        self.callbacks = []
        self.get_session_delay = 0.0
        self.sign_out_delay = 0.0
        self.signed_out = False

    async def sign_in(self, email, password):
        self.session = AuthSession(user_id=ALICE_ID, email=email)
        await self.emit("SIGNED_IN")
        return self.session

    async def sign_up(self, email, password, name=None):
        return None

    async def sign_in_with_otp(self, email):
        return None

    async def reset_password(self, email):
        return None

    async def sign_out(self):
        if self.sign_out_delay:
            await asyncio.sleep(self.sign_out_delay)
        self.session = None
        self.signed_out = True

    async def get_session(self):
        if self.get_session_delay:
            await asyncio.sleep(self.get_session_delay)
        return self.session

    def on_auth_state_change(self, callback):
        self.callbacks.append(callback)
        return lambda: self.callbacks.remove(callback)

    async def emit(self, event: str) -> None:
        for callback in list(self.callbacks):
            await callback(event, self.session)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def backend():
    return MemoryCacheBackend()


@pytest.fixture
def cache(backend):
    return LocalCacheStore(backend)


@pytest.fixture
def alice():
    return AuthSession(
        user_id=ALICE_ID,
        email="alice@example.com",
        access_token="token-alice",
        metadata={"full_name": "Alice Liddell"},
    )


@pytest.fixture
def bob():
    return AuthSession(user_id=BOB_ID, email="bob@example.com")


@pytest.fixture
def remote(alice):
    return FakeRemoteStore(session=alice)


@pytest.fixture
def identity(alice):
    return FakeIdentityProvider(session=alice)


@pytest.fixture
def mock_supabase():
    """Mock Supabase client for unit tests."""
    mock_client = MagicMock()

    # Mock table operations
    mock_table = MagicMock()
    for method in ("select", "insert", "upsert", "update", "delete", "eq", "in_", "order", "limit", "maybe_single"):
        getattr(mock_table, method).return_value = mock_table
    mock_table.execute.return_value = MagicMock(data=[])

    mock_client.table.return_value = mock_table

    mock_rpc = MagicMock()
    mock_rpc.execute.return_value = MagicMock(data={})
    mock_client.rpc.return_value = mock_rpc

    return mock_client


def make_itinerary(title: str = "Sunday in Lisbon", **overrides) -> Itinerary:
    """A three-stop itinerary; stop order matters."""
    data = {
        "title": title,
        "date": "2024-06-02",
        "mood": "Chill",
        "tags": ["Couple", "$$", "Full Day"],
        "items": [
            ItineraryItem(time="09:00", activity="Coffee", location_name="Fabrica Coffee Roasters", category="Food", rating=4.6),
            ItineraryItem(time="11:00", activity="Tram ride", location_name="Tram 28", category="Activity", rating=4.2),
            ItineraryItem(time="13:00", activity="Lunch", location_name="Time Out Market", category="Food", rating=4.4),
        ],
    }
    data.update(overrides)
    return Itinerary(**data)


@pytest.fixture
def sample_itinerary():
    return make_itinerary()
