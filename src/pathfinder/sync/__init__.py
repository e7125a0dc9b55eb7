"""
Pathfinder - Synchronization.

Reconciles the local cache with the remote store.
"""

from pathfinder.sync.engine import SaveResult, SynchronizationEngine
from pathfinder.sync.sequencer import RequestSequencer
from pathfinder.sync.seeds import seed_itineraries

__all__ = [
    "SaveResult",
    "SynchronizationEngine",
    "RequestSequencer",
    "seed_itineraries",
]
