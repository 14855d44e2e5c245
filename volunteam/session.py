"""
SessionManager: single owner of the signed-in state.

Responsibilities:
- Restore a cached session on startup and validate the token expiry.
- Log in and out, keeping the session cache consistent with memory.
- Publish state changes to listeners (the navigation layer), which must gate
  the map screen on SessionState.AUTHENTICATED rather than reading the cache.

Ordering rules:
- login writes identity and token to the cache before announcing AUTHENTICATED;
- every path to UNAUTHENTICATED clears the cache first.
"""
from __future__ import annotations

import enum
import logging
from typing import Callable

from .api import VolunteamApi, get_standard_headers
from .const import SESSION_KEYS
from .errors import (
    AuthenticationRejected,
    CacheUnavailable,
    LoginFormInvalid,
    MalformedToken,
    NetworkUnreachable,
)
from .forms import sanitize_email, validate_login_form
from .models import User
from .session_cache import SessionCache
from .token_inspector import is_expired

_LOGGER = logging.getLogger(__name__)

SessionListener = Callable[["SessionState"], None]


class SessionState(enum.Enum):
    RESTORING = "restoring"
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"
    EXPIRED = "expired"


class SessionManager:
    """State machine for the local session. Single writer, many readers."""

    def __init__(self, cache: SessionCache, api: VolunteamApi) -> None:
        self._cache = cache
        self._api = api
        self._state = SessionState.RESTORING
        self._user: User | None = None
        self._token: str | None = None
        self._listeners: list[SessionListener] = []
        api.set_token_provider(lambda: self.access_token)

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def current_user(self) -> User | None:
        return self._user

    @property
    def current_user_id(self) -> str | None:
        return self._user.id if self._user is not None else None

    @property
    def access_token(self) -> str | None:
        return self._token if self._state is SessionState.AUTHENTICATED else None

    @property
    def auth_headers(self) -> dict:
        return get_standard_headers(self.access_token)

    @property
    def can_navigate_to_map(self) -> bool:
        return self._state is SessionState.AUTHENTICATED

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def async_add_listener(self, listener: SessionListener) -> Callable[[], None]:
        """Register listener for state changes; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def remove_listener() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove_listener

    def _set_state(self, state: SessionState) -> None:
        if state is self._state:
            return
        _LOGGER.debug("Session state %s -> %s", self._state.value, state.value)
        self._state = state
        for listener in list(self._listeners):
            listener(state)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def async_restore(self) -> SessionState:
        """Load the cached session and settle in AUTHENTICATED or UNAUTHENTICATED."""
        self._set_state(SessionState.RESTORING)
        user_result = await self._cache.async_get_user()
        token_result = await self._cache.async_get_token()

        if user_result.is_failed or token_result.is_failed:
            _LOGGER.warning(
                "Cached session unreadable (%s / %s), signing out",
                user_result.reason, token_result.reason,
            )
            await self._async_settle_unauthenticated()
            return self._state

        if not user_result.is_found or not token_result.is_found:
            if user_result.is_found or token_result.is_found:
                _LOGGER.debug("Discarding half-cached session")
                await self._async_settle_unauthenticated()
            else:
                self._drop_in_memory()
                self._set_state(SessionState.UNAUTHENTICATED)
            return self._state

        token = token_result.value
        try:
            expired = is_expired(token)
        except MalformedToken as e:
            _LOGGER.warning("Cached access token is malformed: %s", e)
            expired = True

        if expired:
            _LOGGER.info("Cached session expired")
            self._set_state(SessionState.EXPIRED)
            await self._async_settle_unauthenticated()
            return self._state

        self._user = user_result.value
        self._token = token
        self._set_state(SessionState.AUTHENTICATED)
        _LOGGER.info("Restored session for user %s", self._user.id)
        return self._state

    async def async_login(self, email: str, password: str) -> User:
        """
        Authenticate against the API and persist the new session.

        Raises:
            LoginFormInvalid: email or password failed local validation
            AuthenticationRejected: the server refused the credentials
            NetworkUnreachable: the server could not be reached
            CacheUnavailable: the session could not be persisted
        """
        errors = validate_login_form(email, password)
        if errors:
            raise LoginFormInvalid(errors)

        email = sanitize_email(email)
        _LOGGER.debug("Login attempt for %s", email)
        try:
            response = await self._api.authenticate(email, password)
            await self._cache.async_store_session(response.user, response.access_token)
        except (AuthenticationRejected, NetworkUnreachable, CacheUnavailable) as e:
            _LOGGER.warning("Login failed: %s", e)
            await self._async_settle_unauthenticated()
            raise

        self._user = response.user
        self._token = response.access_token
        self._set_state(SessionState.AUTHENTICATED)
        _LOGGER.info("Logged in as user %s", self._user.id)
        return self._user

    async def async_logout(self) -> None:
        """
        Clear the cached session, then the in-memory one.

        Raises:
            CacheUnavailable: the cache could not be cleared; memory is
                cleared anyway and the caller may retry
        """
        try:
            await self._cache.async_clear(SESSION_KEYS)
        finally:
            self._drop_in_memory()
            self._set_state(SessionState.UNAUTHENTICATED)
        _LOGGER.info("Logged out")

    async def async_check_expiry(self) -> SessionState:
        """Sign out if the in-memory token has expired since it was validated."""
        if self._state is not SessionState.AUTHENTICATED:
            return self._state
        try:
            expired = is_expired(self._token)
        except MalformedToken:
            expired = True
        if expired:
            _LOGGER.info("Session token expired")
            self._set_state(SessionState.EXPIRED)
            await self._async_settle_unauthenticated()
        return self._state

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _drop_in_memory(self) -> None:
        self._user = None
        self._token = None

    async def _async_settle_unauthenticated(self) -> None:
        """Clear cache (best effort) and memory, then report UNAUTHENTICATED."""
        try:
            await self._cache.async_clear(SESSION_KEYS)
        except CacheUnavailable as e:
            _LOGGER.error("Could not clear cached session: %s", e)
        self._drop_in_memory()
        self._set_state(SessionState.UNAUTHENTICATED)
