"""
Thin asynchronous client for the volunteam REST API.

VolunteamApi binds the base URL, timeouts and the current access token to the
module-level request functions in auth.py, events.py and users.py.
"""
from __future__ import annotations

from typing import Callable

from volunteam.const import DEFAULT_API_BASE_URL, REQUEST_ATTEMPTS, REQUEST_TIMEOUT
from volunteam.models import EventRecord, User

from .auth import LoginResponse, authenticate, get_standard_headers
from .events import fetch_event, fetch_events, update_event
from .users import fetch_user

__all__ = ["LoginResponse", "VolunteamApi", "get_standard_headers"]


class VolunteamApi:
    """Remote API collaborator used by the session manager and coordinators."""

    def __init__(
        self,
        base_url: str = DEFAULT_API_BASE_URL,
        timeout: int = REQUEST_TIMEOUT,
        max_attempts: int = REQUEST_ATTEMPTS,
        token_provider: Callable[[], str | None] | None = None,
    ) -> None:
        self.base_url = base_url
        self.timeout = timeout
        self.max_attempts = max_attempts
        self._token_provider = token_provider

    def set_token_provider(self, token_provider: Callable[[], str | None]) -> None:
        self._token_provider = token_provider

    def _headers(self) -> dict:
        token = self._token_provider() if self._token_provider else None
        return get_standard_headers(token)

    async def authenticate(self, email: str, password: str) -> LoginResponse:
        return await authenticate(self.base_url, email, password, self.timeout, self.max_attempts)

    async def list_events(self) -> list[EventRecord]:
        return await fetch_events(self.base_url, self._headers(), self.timeout, self.max_attempts)

    async def get_event(self, event_id: str) -> EventRecord:
        return await fetch_event(self.base_url, event_id, self._headers(), self.timeout, self.max_attempts)

    async def get_user(self, user_id: str) -> User:
        return await fetch_user(self.base_url, user_id, self._headers(), self.timeout, self.max_attempts)

    async def update_event(self, event_id: str, changes: dict) -> EventRecord:
        return await update_event(
            self.base_url, event_id, changes, self._headers(), self.timeout, self.max_attempts
        )
