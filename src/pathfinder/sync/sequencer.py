"""
Latest-request-wins guard.

Remote calls cannot be cancelled, only abandoned, so a slow response can
arrive after a newer one (or after a local write). Each logical slot hands
out increasing tickets; a result is applied only if its ticket is still the
newest for that slot.
"""

import itertools


class RequestSequencer:
    """Per-slot monotonic tickets."""

    def __init__(self) -> None:
        self._counter = itertools.count(1)
        self._latest: dict[str, int] = {}

    def issue(self, slot: str) -> int:
        """Start a request (or record a local write) on a slot."""
        ticket = next(self._counter)
        self._latest[slot] = ticket
        return ticket

    def is_latest(self, slot: str, ticket: int) -> bool:
        return self._latest.get(slot) == ticket

    def latest(self, slot: str) -> int | None:
        return self._latest.get(slot)
