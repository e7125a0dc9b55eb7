"""
Pathfinder - Error taxonomy.

Read paths recover from these locally and never let them reach the
presentation layer. Write paths report them through result objects, except
auth and input errors, which are always surfaced to the user.
"""


class PathfinderError(Exception):
    """Base class for all Pathfinder errors."""


class CacheUnavailable(PathfinderError):
    """Local storage could not be read or written. Treated as empty."""


class RemoteUnavailable(PathfinderError):
    """Network failure or timeout talking to a remote service."""


class RemoteRejected(PathfinderError):
    """The relational backend returned a structured error (constraint, RLS)."""

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.code = code


class AuthRejected(PathfinderError):
    """Invalid credentials or an expired link. Message comes from the provider."""


class InputValidationError(PathfinderError):
    """Bad input detected locally, before any network call."""
