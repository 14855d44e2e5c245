"""
EventsCoordinator: state behind the events map screen.

Responsibilities:
- Load the event list from the API on first show and on every focus.
- Keep past events loaded but out of the displayed list and the viewport fit.
- Publish immutable EventsSnapshot objects to listeners after each change.
- Hand the displayed set to the ViewportFitController.
"""
from __future__ import annotations

import dataclasses
import logging
from datetime import datetime
from typing import Callable

from .api import VolunteamApi
from .errors import DataLoadFailed
from .event_status import ResolvedStatus, events_count_text, marker_for, resolve
from .models import EventRecord
from .session import SessionManager
from .viewport import ViewportFitController, fit_set

_LOGGER = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class EventsSnapshot:
    """
    Copy-on-write snapshot of the map screen data.

    Always replace via dataclasses.replace(), never mutate in place.
    """

    # Everything the API returned on the last successful load
    all_events: tuple[EventRecord, ...] = ()

    # Future events only: shown on the map and used for fitting
    events: tuple[EventRecord, ...] = ()

    loading: bool = False

    # User-facing message of the last failed load, cleared on success
    last_error: str | None = None


@dataclasses.dataclass(frozen=True)
class EventPin:
    event: EventRecord
    resolved: ResolvedStatus
    marker: str


class EventsCoordinator:
    """Loads events and keeps the map screen state consistent."""

    def __init__(
        self,
        api: VolunteamApi,
        session: SessionManager,
        viewport: ViewportFitController,
    ) -> None:
        self.api = api
        self.session = session
        self.viewport = viewport
        self.data = EventsSnapshot()
        self._listeners: list[Callable[[EventsSnapshot], None]] = []

    def async_add_listener(self, listener: Callable[[EventsSnapshot], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove_listener() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove_listener

    def async_set_updated_data(self, data: EventsSnapshot) -> None:
        self.data = data
        for listener in list(self._listeners):
            listener(data)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def async_refresh(self, now: datetime | None = None) -> EventsSnapshot:
        """
        Reload all events and refit the viewport.

        Raises:
            DataLoadFailed: the listing failed; the previous events stay
                displayed and the message is kept in data.last_error
        """
        # a token that lapsed while the screen was open signs the user out
        await self.session.async_check_expiry()
        self.async_set_updated_data(dataclasses.replace(self.data, loading=True))
        try:
            all_events = await self.api.list_events()
        except DataLoadFailed as exc:
            _LOGGER.warning("Failed to load events: %s", exc)
            self.async_set_updated_data(
                dataclasses.replace(self.data, loading=False, last_error=str(exc))
            )
            raise

        displayed = fit_set(all_events, now)
        _LOGGER.debug("Loaded %s events, %s upcoming", len(all_events), len(displayed))
        self.async_set_updated_data(
            EventsSnapshot(
                all_events=tuple(all_events),
                events=tuple(displayed),
                loading=False,
                last_error=None,
            )
        )
        self.viewport.request_fit(displayed)
        return self.data

    # ------------------------------------------------------------------
    # Screen helpers
    # ------------------------------------------------------------------

    def pins(self) -> list[EventPin]:
        """Pin data for every displayed event, resolved for the current user."""
        user_id = self.session.current_user_id
        pins = []
        for event in self.data.events:
            resolved = resolve(event, user_id)
            pins.append(EventPin(event, resolved, marker_for(resolved.status)))
        return pins

    def count_text(self) -> str:
        return events_count_text(len(self.data.events))

    def fit_to_all(self):
        """Manual "fit to all" button."""
        return self.viewport.fit_now()

    async def async_logout(self) -> None:
        await self.session.async_logout()

    async def async_shutdown(self) -> None:
        await self.viewport.async_shutdown()
        self._listeners.clear()
