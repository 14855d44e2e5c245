"""
Event detail screen state and volunteering actions.

The organizer id doubles as the organizer's contact number: it is passed
through to tel:/sms: links as an opaque string, without phone validation.
"""
from __future__ import annotations

import dataclasses
import logging
from urllib.parse import quote

from .api import VolunteamApi
from .errors import DataLoadFailed, VolunteamError
from .event_status import DetailActions, EventStatus, ResolvedStatus, detail_actions, resolve
from .models import EventRecord, Position, User
from .session import SessionManager

_LOGGER = logging.getLogger(__name__)

PLATFORM_IOS = "ios"
PLATFORM_ANDROID = "android"


class VolunteerNotAllowed(VolunteamError):
    """The current user cannot sign up for this event."""


@dataclasses.dataclass(frozen=True)
class EventDetails:
    event: EventRecord
    resolved: ResolvedStatus
    actions: DetailActions
    organizer: User | None = None

    @property
    def contact(self) -> str:
        return self.event.organizer_id

    @property
    def organizer_name(self) -> str:
        if self.organizer is not None:
            return self.organizer.display_name
        return self.event.organizer_id


def call_url(contact: str, platform: str = PLATFORM_ANDROID) -> str:
    scheme = "telprompt" if platform == PLATFORM_IOS else "tel"
    return f"{scheme}:{quote(contact, safe='+')}"


def sms_url(contact: str) -> str:
    return f"sms:{quote(contact, safe='+')}"


def directions_url(position: Position, platform: str = PLATFORM_ANDROID) -> str:
    scheme = "maps" if platform == PLATFORM_IOS else "geo"
    return f"{scheme}:0,0?q={position.latitude},{position.longitude}"


def build_details(event: EventRecord, user_id: str | None, organizer: User | None = None) -> EventDetails:
    resolved = resolve(event, user_id)
    return EventDetails(event, resolved, detail_actions(resolved), organizer)


class EventDetailsLoader:
    """Loads one event for the detail screen and performs its actions."""

    def __init__(self, api: VolunteamApi, session: SessionManager) -> None:
        self.api = api
        self.session = session

    async def async_load(self, event_id: str, with_organizer: bool = True) -> EventDetails:
        """
        Fetch an event (and, best effort, its organizer).

        Raises:
            DataLoadFailed: the event itself could not be loaded
        """
        event = await self.api.get_event(event_id)
        organizer = None
        if with_organizer:
            try:
                organizer = await self.api.get_user(event.organizer_id)
            except DataLoadFailed as exc:
                _LOGGER.debug("Organizer %s not available: %s", event.organizer_id, exc)
        return build_details(event, self.session.current_user_id, organizer)

    async def async_volunteer(self, details: EventDetails) -> EventDetails:
        """
        Sign the current user up for the event.

        Raises:
            VolunteerNotAllowed: no signed-in user, or the event is not
                AVAILABLE for them
            DataLoadFailed: the update request failed
        """
        user_id = self.session.current_user_id
        if user_id is None or not self.session.can_navigate_to_map:
            raise VolunteerNotAllowed("Sign in to volunteer")

        # Re-resolve against the latest identity, details may be stale
        current = resolve(details.event, user_id)
        if current.status is not EventStatus.AVAILABLE:
            raise VolunteerNotAllowed(f"Event {details.event.id} is {current.status.value}")

        volunteers = sorted(details.event.volunteers_ids | {user_id})
        event = await self.api.update_event(details.event.id, {"volunteersIds": volunteers})
        _LOGGER.info("User %s volunteered for event %s", user_id, event.id)
        return build_details(event, user_id, details.organizer)
