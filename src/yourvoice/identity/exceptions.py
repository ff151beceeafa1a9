"""Custom exceptions for the identity core."""


class IdentityError(Exception):
    """Base class for identity failures surfaced to identify() callers."""

    pass


class IdentityInProgressError(IdentityError):
    """Raised when identify() is called for a different email while one is in flight."""

    pass


class SessionExpiredError(IdentityError):
    """Raised when a stored session token resolves to a profile past its TTL."""

    pass
