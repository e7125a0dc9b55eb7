"""Tests for the local cache store and its backends."""

import json

import pytest

from pathfinder.cache import (
    COMMUNITY_ITINERARIES,
    CURRENT_USER,
    SAVED_ITINERARIES,
    CacheAuthStorage,
    FileCacheBackend,
    LocalCacheStore,
    MemoryCacheBackend,
)
from pathfinder.errors import CacheUnavailable
from pathfinder.models import UserProfile
from conftest import make_itinerary


class BrokenBackend(MemoryCacheBackend):
    """Every operation fails, like a full disk or revoked storage."""

    def get(self, key):
        raise CacheUnavailable("disk on fire")

    def set(self, key, value):
        raise CacheUnavailable("disk on fire")

    def remove(self, key):
        raise CacheUnavailable("disk on fire")

    def keys(self):
        raise CacheUnavailable("disk on fire")


class TestSlots:
    def test_empty_store(self, cache):
        assert cache.get_user() is None
        assert cache.get_saved_itineraries() == []
        assert cache.get_community_itineraries() == []

    def test_user_round_trip(self, cache):
        user = UserProfile(name="Alice", email="alice@example.com", city="Lisbon")
        assert cache.save_user(user)
        assert cache.get_user() == user

    def test_save_prepends_new_itineraries(self, cache):
        first, second = make_itinerary("First"), make_itinerary("Second")
        cache.save_itinerary(first)
        cache.save_itinerary(second)
        assert [i.title for i in cache.get_saved_itineraries()] == ["Second", "First"]

    def test_save_replaces_by_id_and_moves_to_front(self, cache):
        first, second = make_itinerary("First"), make_itinerary("Second")
        cache.save_itinerary(first)
        cache.save_itinerary(second)
        cache.save_itinerary(first.model_copy(update={"title": "First, edited"}))

        saved = cache.get_saved_itineraries()
        assert [i.title for i in saved] == ["First, edited", "Second"]
        assert saved[0].id == first.id

    def test_item_order_survives_the_cache(self, cache, sample_itinerary):
        cache.save_itinerary(sample_itinerary)
        restored = cache.get_saved_itineraries()[0]
        assert restored.items == sample_itinerary.items

    def test_clear_keeps_community_snapshot(self, cache, sample_itinerary):
        cache.save_user(UserProfile(name="Alice"))
        cache.save_itinerary(sample_itinerary)
        cache.save_community_itinerary(sample_itinerary)

        assert cache.clear()
        assert cache.get_user() is None
        assert cache.get_saved_itineraries() == []
        assert cache.get_community_itineraries() == [sample_itinerary]


class TestCorruption:
    def test_unparsable_slot_reads_as_empty(self, backend, cache):
        backend.set(SAVED_ITINERARIES, "{not json")
        backend.set(CURRENT_USER, "[[[")
        assert cache.get_saved_itineraries() == []
        assert cache.get_user() is None

    def test_wrong_shape_reads_as_empty(self, backend, cache):
        backend.set(SAVED_ITINERARIES, json.dumps({"title": "not a list"}))
        backend.set(CURRENT_USER, json.dumps(["not", "a", "dict"]))
        assert cache.get_saved_itineraries() == []
        assert cache.get_user() is None

    def test_malformed_entries_are_skipped(self, backend, cache, sample_itinerary):
        good = sample_itinerary.model_dump(mode="json")
        backend.set(COMMUNITY_ITINERARIES, json.dumps([{"items": "nope"}, good]))
        assert cache.get_community_itineraries() == [sample_itinerary]

    def test_broken_backend_never_raises(self, sample_itinerary):
        cache = LocalCacheStore(BrokenBackend())
        assert cache.get_user() is None
        assert cache.get_saved_itineraries() == []
        assert cache.save_itinerary(sample_itinerary) is False
        assert cache.clear() is False
        assert cache.sweep_auth_tokens() == 0
        cache.wipe()


class TestAuthTokens:
    def test_sweep_removes_only_session_tokens(self, backend, cache, sample_itinerary):
        cache.save_itinerary(sample_itinerary)
        backend.set("sb-abcd-auth-token", "{}")
        backend.set("supabase.auth.token", "{}")

        assert cache.sweep_auth_tokens() == 2
        assert sorted(backend.keys()) == [SAVED_ITINERARIES]

    def test_wipe_removes_everything(self, backend, cache, sample_itinerary):
        cache.save_community_itinerary(sample_itinerary)
        backend.set("sb-abcd-auth-token", "{}")
        cache.wipe()
        assert backend.keys() == []

    def test_auth_storage_shares_the_backend(self, backend, cache):
        storage = CacheAuthStorage(backend)
        storage.set_item("sb-abcd-auth-token", '{"access_token": "x"}')
        assert storage.get_item("sb-abcd-auth-token") == '{"access_token": "x"}'

        cache.sweep_auth_tokens()
        assert storage.get_item("sb-abcd-auth-token") is None


class TestFileBackend:
    def test_round_trip(self, tmp_path, sample_itinerary):
        cache = LocalCacheStore(FileCacheBackend(tmp_path / "cache"))
        cache.save_itinerary(sample_itinerary)

        reopened = LocalCacheStore(FileCacheBackend(tmp_path / "cache"))
        assert reopened.get_saved_itineraries() == [sample_itinerary]
        assert (tmp_path / "cache" / f"{SAVED_ITINERARIES}.json").is_file()

    def test_missing_directory_is_empty(self, tmp_path):
        backend = FileCacheBackend(tmp_path / "nowhere")
        assert backend.keys() == []
        assert backend.get(CURRENT_USER) is None

    def test_remove_missing_key(self, tmp_path):
        FileCacheBackend(tmp_path).remove("never-written")

    def test_unwritable_directory(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("")
        backend = FileCacheBackend(blocker)
        with pytest.raises(CacheUnavailable):
            backend.set(CURRENT_USER, "{}")

    def test_invalid_utf8_reads_as_empty(self, tmp_path):
        (tmp_path / f"{SAVED_ITINERARIES}.json").write_bytes(b"\xff\xfe[garbage")
        backend = FileCacheBackend(tmp_path)
        with pytest.raises(CacheUnavailable):
            backend.get(SAVED_ITINERARIES)
        assert LocalCacheStore(backend).get_saved_itineraries() == []

    def test_failed_write_leaves_no_temp_file(self, tmp_path, monkeypatch):
        def failing_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr("pathfinder.cache.backends.os.replace", failing_replace)
        backend = FileCacheBackend(tmp_path)
        with pytest.raises(CacheUnavailable):
            backend.set(CURRENT_USER, "{}")
        assert list(tmp_path.iterdir()) == []
