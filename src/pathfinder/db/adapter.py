"""
Database Adapter Protocol.

The thin interface RemoteStoreAdapter needs from a database client. It
matches the Supabase/PostgREST query builder: table() returns a builder,
rpc() calls a stored procedure. Tests substitute a MagicMock chain.
"""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class DatabaseAdapter(Protocol):
    """
    Abstract database access for the remote store.

    The returned builders must support the PostgREST fluent API:
    .select(), .upsert(), .insert(), .delete(), .eq(), .in_(), .order(),
    .limit(), .maybe_single(), .execute().
    """

    def table(self, name: str) -> Any:
        """Return a query builder for the given table."""
        ...

    def rpc(self, function_name: str, params: dict | None = None) -> Any:
        """Call a database function. Returns an object with .execute()."""
        ...
