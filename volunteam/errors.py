"""
Error taxonomy for the volunteam client.

Every error is recoverable by repeating the user action that triggered it.
Cache-adjacent errors fail closed: callers treat them as "no session".
"""
from __future__ import annotations


class VolunteamError(Exception):
    """Base class for all volunteam errors."""


class ConfigurationError(VolunteamError):
    """Configuration failed schema validation."""


class MalformedToken(VolunteamError):
    """Session token could not be decoded or carries no usable expiry claim."""


class CacheUnavailable(VolunteamError):
    """Persistent key/value store could not be read or written."""


class AuthenticationRejected(VolunteamError):
    """Remote service answered the login request with an auth failure."""

    def __init__(self, message: str, status: int | None = None) -> None:
        self.message = message
        self.status = status
        super().__init__(message)


class NetworkUnreachable(VolunteamError):
    """Remote call could not be completed at all."""


class DataLoadFailed(VolunteamError):
    """Event listing, detail or update request failed. Safe to retry."""


class LoginFormInvalid(VolunteamError):
    """Login form did not pass local validation."""

    def __init__(self, errors: dict[str, str]) -> None:
        self.errors = errors
        super().__init__(f"Invalid login form: {errors}")
