"""
SessionCache: persisted copy of the signed-in identity and access token.

Reads never raise: they return a tagged CacheResult (found / absent /
failed). Writes raise CacheUnavailable. The two session keys are always
written and cleared together in a single store write.
"""
from __future__ import annotations

import asyncio
import dataclasses
import enum
import logging
from typing import Any, Iterable

from .const import ACCESS_TOKEN_KEY, CACHE_CLEAR_ATTEMPTS, SESSION_KEYS, USER_INFO_KEY
from .errors import CacheUnavailable
from .models import User
from .storage import JsonFileStore, StorageError

_LOGGER = logging.getLogger(__name__)

# Pause between clear attempts
CLEAR_RETRY_DELAY = 0.05


class CacheOutcome(enum.Enum):
    FOUND = "found"
    ABSENT = "absent"
    FAILED = "failed"


@dataclasses.dataclass(frozen=True)
class CacheResult:
    """Outcome of a cache read."""

    outcome: CacheOutcome
    value: Any = None
    reason: str | None = None

    @classmethod
    def found(cls, value: Any) -> CacheResult:
        return cls(CacheOutcome.FOUND, value=value)

    @classmethod
    def absent(cls) -> CacheResult:
        return cls(CacheOutcome.ABSENT)

    @classmethod
    def failed(cls, reason: str) -> CacheResult:
        return cls(CacheOutcome.FAILED, reason=reason)

    @property
    def is_found(self) -> bool:
        return self.outcome is CacheOutcome.FOUND

    @property
    def is_failed(self) -> bool:
        return self.outcome is CacheOutcome.FAILED


class SessionCache:
    """Key/value cache for session data on top of a durable store."""

    def __init__(self, store: JsonFileStore) -> None:
        self._store = store

    async def async_get(self, key: str) -> CacheResult:
        try:
            value = await self._store.async_get(key)
        except (StorageError, OSError) as e:
            _LOGGER.error("Error loading %s from cache: %s", key, e)
            return CacheResult.failed(str(e))
        # a stored null counts as absent
        if value is None:
            return CacheResult.absent()
        return CacheResult.found(value)

    async def async_set(self, key: str, value: Any) -> None:
        try:
            await self._store.async_set(key, value)
        except (StorageError, OSError) as e:
            _LOGGER.error("Error writing %s to cache: %s", key, e)
            raise CacheUnavailable(f"Cannot write {key}: {e}") from e

    async def async_clear(self, keys: Iterable[str] = SESSION_KEYS) -> None:
        """
        Remove keys in one atomic write, retrying on store failure.

        Raises:
            CacheUnavailable: every attempt failed; the cache still holds
                the previous (complete) document
        """
        keys = sorted(keys)
        last_error: Exception | None = None
        for attempt in range(CACHE_CLEAR_ATTEMPTS):
            try:
                await self._store.async_remove_many(keys)
                _LOGGER.debug("Cleared cache keys %s", keys)
                return
            except (StorageError, OSError) as e:
                last_error = e
                _LOGGER.warning(
                    "Failed to clear cache keys %s (attempt %s/%s): %s",
                    keys, attempt + 1, CACHE_CLEAR_ATTEMPTS, e,
                )
                if attempt < CACHE_CLEAR_ATTEMPTS - 1:
                    await asyncio.sleep(CLEAR_RETRY_DELAY)
        raise CacheUnavailable(f"Cannot clear {keys}: {last_error}") from last_error

    # ------------------------------------------------------------------
    # Session helpers
    # ------------------------------------------------------------------

    async def async_store_session(self, user: User, access_token: str) -> None:
        """Persist identity and token together."""
        try:
            await self._store.async_set_many(
                {USER_INFO_KEY: user.to_dict(), ACCESS_TOKEN_KEY: access_token}
            )
        except (StorageError, OSError) as e:
            _LOGGER.error("Error writing session to cache: %s", e)
            raise CacheUnavailable(f"Cannot write session: {e}") from e

    async def async_get_user(self) -> CacheResult:
        """Read the cached identity, decoded into a User."""
        result = await self.async_get(USER_INFO_KEY)
        if not result.is_found:
            return result
        try:
            return CacheResult.found(User.from_dict(result.value))
        except (ValueError, TypeError, AttributeError) as e:
            _LOGGER.error("Cached user info is invalid: %s", e)
            return CacheResult.failed(f"Invalid cached user: {e}")

    async def async_get_token(self) -> CacheResult:
        result = await self.async_get(ACCESS_TOKEN_KEY)
        if result.is_found and not isinstance(result.value, str):
            return CacheResult.failed("Cached access token is not a string")
        return result
