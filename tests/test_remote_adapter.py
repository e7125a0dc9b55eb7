"""
Tests for RemoteStoreAdapter against a mocked PostgREST client.

Covers gating (no client / no session), the three-step save order,
failure classification and the row mapping on reads.
"""

import asyncio
import time
from unittest.mock import MagicMock

import httpx
from postgrest.exceptions import APIError

from pathfinder.db.remote import FailureKind, RemoteStoreAdapter
from conftest import make_itinerary


def _run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio needed)."""
    return asyncio.run(coro)


def _adapter(client, session, **kwargs) -> RemoteStoreAdapter:
    async def session_source():
        return session

    return RemoteStoreAdapter(client, session_source, **kwargs)


def _api_error(message="duplicate key value violates unique constraint", code="23505") -> APIError:
    return APIError({"message": message, "code": code, "hint": None, "details": None})


class TestGating:
    def test_skipped_without_client(self, alice, sample_itinerary):
        result = _run(_adapter(None, alice).save_itinerary(sample_itinerary))
        assert not result.available
        assert not result.ok
        assert result.failure is None

    def test_skipped_without_session(self, mock_supabase, sample_itinerary):
        result = _run(_adapter(mock_supabase, None).save_itinerary(sample_itinerary))
        assert not result.available
        mock_supabase.table.assert_not_called()

    def test_session_lookup_failure_is_signed_out(self, mock_supabase):
        async def slow_source():
            await asyncio.sleep(1)

        adapter = RemoteStoreAdapter(mock_supabase, slow_source, session_timeout=0.01)
        assert _run(adapter.current_session()) is None


class TestSaveItinerary:
    def test_three_steps_in_order(self, mock_supabase, alice, sample_itinerary):
        table = mock_supabase.table.return_value
        table.execute.return_value = MagicMock(
            data=[
                {"id": "p-1", "name": "Fabrica Coffee Roasters"},
                {"id": "p-2", "name": "Tram 28"},
                {"id": "p-3", "name": "Time Out Market"},
            ]
        )

        result = _run(_adapter(mock_supabase, alice).save_itinerary(sample_itinerary))

        assert result.ok
        assert result.data == sample_itinerary.id
        tables = [c.args[0] for c in mock_supabase.table.call_args_list]
        assert tables == ["itineraries", "places", "itinerary_items", "places", "itinerary_items"]

        header = table.upsert.call_args_list[0].args[0]
        assert header["user_id"] == alice.user_id
        assert table.upsert.call_args_list[1].kwargs == {"on_conflict": "name"}
        table.delete.assert_called_once()
        table.eq.assert_any_call("itinerary_id", sample_itinerary.id)

        rows = table.insert.call_args.args[0]
        assert [r["place_id"] for r in rows] == ["p-1", "p-2", "p-3"]
        assert [r["order_index"] for r in rows] == [0, 1, 2]

    def test_empty_itinerary_only_clears_links(self, mock_supabase, alice):
        empty = make_itinerary(items=[])
        result = _run(_adapter(mock_supabase, alice).save_itinerary(empty))
        assert result.ok
        tables = [c.args[0] for c in mock_supabase.table.call_args_list]
        assert tables == ["itineraries", "itinerary_items"]
        mock_supabase.table.return_value.insert.assert_not_called()

    def test_constraint_violation_is_rejected(self, mock_supabase, alice, sample_itinerary):
        mock_supabase.table.return_value.execute.side_effect = _api_error()
        result = _run(_adapter(mock_supabase, alice).save_itinerary(sample_itinerary))
        assert result.failure == FailureKind.REJECTED
        assert "duplicate key" in result.error

    def test_network_error_is_unavailable(self, mock_supabase, alice, sample_itinerary):
        mock_supabase.table.return_value.execute.side_effect = httpx.ConnectError("connection refused")
        result = _run(_adapter(mock_supabase, alice).save_itinerary(sample_itinerary))
        assert result.failure == FailureKind.UNAVAILABLE

    def test_timeout_is_unavailable(self, mock_supabase, alice, sample_itinerary):
        mock_supabase.table.return_value.execute.side_effect = lambda: time.sleep(0.3)
        result = _run(_adapter(mock_supabase, alice, timeout=0.02).save_itinerary(sample_itinerary))
        assert result.failure == FailureKind.UNAVAILABLE
        assert "timed out" in result.error


class TestReads:
    def test_fetch_itineraries_maps_rows(self, mock_supabase, alice):
        table = mock_supabase.table.return_value
        table.execute.return_value = MagicMock(
            data=[
                {
                    "id": "c0ffee00-0000-4000-8000-000000000001",
                    "title": "Rainy day",
                    "itinerary_items": [
                        {"order_index": 1, "time": "14:00", "places": {"name": "Cinema"}},
                        {"order_index": 0, "time": "10:00", "places": {"name": "Museum"}},
                    ],
                }
            ]
        )
        result = _run(_adapter(mock_supabase, alice).fetch_itineraries())

        assert result.ok
        assert [i.location_name for i in result.data[0].items] == ["Museum", "Cinema"]
        table.eq.assert_called_with("user_id", alice.user_id)
        table.order.assert_called_with("created_at", desc=True)

    def test_fetch_public_itineraries(self, mock_supabase, alice):
        table = mock_supabase.table.return_value
        _run(_adapter(mock_supabase, alice).fetch_public_itineraries(limit=5))
        table.eq.assert_called_with("is_public", True)
        table.order.assert_called_with("likes_count", desc=True)
        table.limit.assert_called_with(5)

    def test_fetch_itinerary_not_found(self, mock_supabase, alice):
        result = _run(_adapter(mock_supabase, alice).fetch_itinerary("c0ffee00-0000-4000-8000-000000000009"))
        assert result.ok
        assert result.data is None

    def test_fetch_profile_without_row(self, mock_supabase, alice):
        mock_supabase.table.return_value.execute.return_value = None
        result = _run(_adapter(mock_supabase, alice).fetch_profile())
        assert result.ok
        assert result.data == {}

    def test_fetch_profile_row(self, mock_supabase, alice):
        mock_supabase.table.return_value.execute.return_value = MagicMock(
            data={"id": alice.user_id, "name": "Alice", "city": "Porto", "personality": "Foodie"}
        )
        result = _run(_adapter(mock_supabase, alice).fetch_profile())
        assert result.data == {"name": "Alice", "city": "Porto", "personality": "Foodie"}

    def test_fetch_privacy_settings_defaults_to_none(self, mock_supabase, alice):
        mock_supabase.table.return_value.execute.return_value = None
        result = _run(_adapter(mock_supabase, alice).fetch_privacy_settings())
        assert result.ok
        assert result.data is None


class TestAccount:
    def test_upsert_privacy_settings(self, mock_supabase, alice):
        table = mock_supabase.table.return_value
        result = _run(
            _adapter(mock_supabase, alice).upsert_privacy_settings({"marketing_opt_in": True}, "2024-06-02T00:00:00+00:00")
        )
        assert result.ok
        row = table.upsert.call_args.args[0]
        assert row == {"user_id": alice.user_id, "marketing_opt_in": True, "updated_at": "2024-06-02T00:00:00+00:00"}

    def test_delete_account_uses_rpc(self, mock_supabase, alice):
        result = _run(_adapter(mock_supabase, alice).delete_account())
        assert result.ok
        mock_supabase.rpc.assert_called_once_with("delete_user_account_data")
        mock_supabase.table.assert_not_called()

    def test_delete_account_falls_back_to_direct_deletes(self, mock_supabase, alice):
        mock_supabase.rpc.return_value.execute.side_effect = _api_error("function does not exist", "42883")
        result = _run(_adapter(mock_supabase, alice).delete_account())
        assert result.ok
        tables = [c.args[0] for c in mock_supabase.table.call_args_list]
        assert tables == ["itineraries", "profiles"]

    def test_export_user_data(self, mock_supabase, alice):
        mock_supabase.rpc.return_value.execute.return_value = MagicMock(data={"profile": None, "itineraries": []})
        result = _run(_adapter(mock_supabase, alice).export_user_data())
        assert result.data == {"profile": None, "itineraries": []}


class TestOptions:
    def test_all_categories_read_the_table_in_sort_order(self, mock_supabase, alice):
        table = mock_supabase.table.return_value
        table.execute.return_value = MagicMock(
            data=[
                {"id": "o-1", "category": "mood", "label": "Cozy", "value": "Cozy", "sort_order": 10, "is_active": True},
                {"id": "o-2", "category": "type", "label": "Dining", "value": "Restaurant", "icon": "Utensils"},
            ]
        )

        result = _run(_adapter(mock_supabase, alice).fetch_options())

        assert result.ok
        assert [o.label for o in result.data] == ["Cozy", "Dining"]
        mock_supabase.table.assert_called_once_with("itinerary_options")
        table.eq.assert_called_once_with("is_active", True)
        table.order.assert_called_once_with("sort_order")
        mock_supabase.rpc.assert_not_called()

    def test_one_category_uses_the_rpc(self, mock_supabase, alice):
        mock_supabase.rpc.return_value.execute.return_value = MagicMock(
            data=[{"category": "budget", "label": "$", "value": "$"}]
        )
        result = _run(_adapter(mock_supabase, alice).fetch_options("budget"))
        assert [o.value for o in result.data] == ["$"]
        mock_supabase.rpc.assert_called_once_with("get_itinerary_options", {"p_category": "budget"})
        mock_supabase.table.assert_not_called()

    def test_slow_catalog_times_out(self, mock_supabase, alice):
        mock_supabase.table.return_value.execute.side_effect = lambda: time.sleep(0.3)
        result = _run(_adapter(mock_supabase, alice, timeout=0.05).fetch_options())
        assert result.failure == FailureKind.UNAVAILABLE

    def test_unknown_category_row_is_rejected(self, mock_supabase, alice):
        mock_supabase.table.return_value.execute.return_value = MagicMock(
            data=[{"category": "weather", "label": "Sunny", "value": "Sunny"}]
        )
        result = _run(_adapter(mock_supabase, alice).fetch_options())
        assert result.failure == FailureKind.REJECTED

def test_malformed_row_is_a_failure_not_an_exception(mock_supabase, alice):
    mock_supabase.table.return_value.execute.return_value = MagicMock(data=[{"title": "no id"}])
    result = _run(_adapter(mock_supabase, alice).fetch_itineraries())
    assert result.failure == FailureKind.REJECTED
