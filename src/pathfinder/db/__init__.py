"""
Pathfinder - Remote Store.

Supabase access plus the nested <-> relational itinerary mapping.
"""

from pathfinder.db.client import get_client
from pathfinder.db.remote import FailureKind, RemoteResult, RemoteStoreAdapter

__all__ = [
    "get_client",
    "FailureKind",
    "RemoteResult",
    "RemoteStoreAdapter",
]
