"""Error taxonomy for the recommendation engine.

InvalidArgumentError and NotFoundError reach the caller. ProviderDegradedError
and CacheFailureError are raised inside the provider layer and handled there
(haversine fallback, cache bypass).
"""


class DispatchError(Exception):
    """Base class for all engine errors."""


class InvalidArgumentError(DispatchError, ValueError):
    """Caller supplied a structurally invalid input."""


class NotFoundError(DispatchError, LookupError):
    """A referenced job or contractor does not exist."""


class ProviderDegradedError(DispatchError):
    """The distance provider failed or returned a non-OK status."""


class CacheFailureError(DispatchError):
    """The distance cache could not be read or written."""
