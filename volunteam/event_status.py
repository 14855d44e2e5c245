"""
Per-event display state shared by the map pins and the detail screen.

Everything here is a pure function of an EventRecord and the current user
id, recomputed on every render; nothing is cached.
"""
from __future__ import annotations

import dataclasses
import enum

from .const import MARKER_AVAILABLE, MARKER_FULL, MARKER_VOLUNTEERED
from .models import EventRecord


class EventStatus(enum.Enum):
    VOLUNTEERED = "volunteered"
    FULL = "full"
    AVAILABLE = "available"


@dataclasses.dataclass(frozen=True)
class ResolvedStatus:
    status: EventStatus
    # Raw needed - taken; negative when over-subscribed
    spots_left: int

    @property
    def display_spots_left(self) -> int:
        return max(self.spots_left, 0)


@dataclasses.dataclass(frozen=True)
class DetailActions:
    """Which volunteering actions the detail screen offers."""

    show_contact: bool
    show_volunteer: bool
    show_share: bool


def resolve(event: EventRecord, current_user_id: str | None) -> ResolvedStatus:
    """
    Derive the display status of event for the given user.

    Precedence is VOLUNTEERED > FULL > AVAILABLE: a user who signed up for an
    event that later filled up still sees it as volunteered.
    """
    taken = len(event.volunteers_ids)
    spots_left = event.volunteers_needed - taken
    is_volunteered = current_user_id is not None and current_user_id in event.volunteers_ids
    is_full = taken >= event.volunteers_needed

    if is_volunteered:
        status = EventStatus.VOLUNTEERED
    elif is_full:
        status = EventStatus.FULL
    else:
        status = EventStatus.AVAILABLE
    return ResolvedStatus(status, spots_left)


_MARKERS = {
    EventStatus.VOLUNTEERED: MARKER_VOLUNTEERED,
    EventStatus.FULL: MARKER_FULL,
    EventStatus.AVAILABLE: MARKER_AVAILABLE,
}


def marker_for(status: EventStatus) -> str:
    """Map pin style for a status."""
    return _MARKERS[status]


def detail_actions(resolved: ResolvedStatus) -> DetailActions:
    volunteered = resolved.status is EventStatus.VOLUNTEERED
    return DetailActions(
        show_contact=volunteered,
        show_volunteer=resolved.status is EventStatus.AVAILABLE,
        show_share=resolved.status is not EventStatus.FULL,
    )


def volunteer_count_text(event: EventRecord) -> str:
    return f"{len(event.volunteers_ids)} of {event.volunteers_needed}"


def events_count_text(count: int) -> str:
    return f"{count} event{'' if count == 1 else 's'} found"
