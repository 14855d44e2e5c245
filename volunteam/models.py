"""
Domain models for the volunteam client.

This module contains pure data classes representing the records served by
the remote API. They have no dependencies on HTTP, caching or session logic.
"""
from __future__ import annotations

import dataclasses
import logging
from datetime import datetime, timezone
from typing import Any

_LOGGER = logging.getLogger(__name__)


def parse_datetime(value: str) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclasses.dataclass(frozen=True)
class Position:
    """Geographic coordinate of an event."""

    latitude: float
    longitude: float

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Position:
        return cls(float(data["latitude"]), float(data["longitude"]))

    def to_dict(self) -> dict[str, float]:
        return {"latitude": self.latitude, "longitude": self.longitude}


@dataclasses.dataclass(frozen=True)
class User:
    """
    Identity of a signed-in user.

    Only ``id`` is interpreted. ``name`` and ``mobile`` are passed through as
    received and any other field is kept in ``extra`` so a cached identity is
    written back exactly as the server sent it.
    """

    id: str
    name: Any = None
    mobile: str | None = None
    extra: dict[str, Any] = dataclasses.field(default_factory=dict, compare=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> User:
        if not isinstance(data, dict) or data.get("id") is None:
            raise ValueError(f"User record without id: {data!r}")
        extra = {k: v for k, v in data.items() if k not in ("id", "name", "mobile")}
        mobile = data.get("mobile")
        return cls(
            id=str(data["id"]),
            name=data.get("name"),
            mobile=str(mobile) if mobile is not None else None,
            extra=extra,
        )

    def to_dict(self) -> dict[str, Any]:
        data = dict(self.extra)
        data["id"] = self.id
        if self.name is not None:
            data["name"] = self.name
        if self.mobile is not None:
            data["mobile"] = self.mobile
        return data

    @property
    def display_name(self) -> str:
        """Human-readable name; the API sends either a string or {first, last}."""
        if isinstance(self.name, dict):
            parts = [self.name.get("first"), self.name.get("last")]
            return " ".join(str(p) for p in parts if p)
        if self.name:
            return str(self.name)
        return self.id


@dataclasses.dataclass(frozen=True)
class EventRecord:
    """
    A volunteering event as served by ``GET /events``.

    ``volunteers_ids`` is a set: ids are unique and order carries no meaning.
    Its size may exceed ``volunteers_needed`` (over-subscribed events).
    """

    id: str
    date_time: datetime
    description: str
    name: str
    organizer_id: str
    position: Position
    volunteers_needed: int
    volunteers_ids: frozenset[str] = frozenset()
    image_url: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EventRecord:
        """
        Build an EventRecord from the API JSON.

        Raises ValueError (or KeyError/TypeError) on malformed records.
        """
        volunteers_needed = int(data["volunteersNeeded"])
        if volunteers_needed < 0:
            raise ValueError(f"Negative volunteersNeeded in event {data.get('id')!r}")
        return cls(
            id=str(data["id"]),
            date_time=parse_datetime(data["dateTime"]),
            description=data.get("description", ""),
            name=data["name"],
            organizer_id=str(data["organizerId"]),
            position=Position.from_dict(data["position"]),
            volunteers_needed=volunteers_needed,
            volunteers_ids=frozenset(str(v) for v in data.get("volunteersIds", [])),
            image_url=data.get("imageUrl"),
        )

    def to_dict(self) -> dict[str, Any]:
        data = {
            "id": self.id,
            "dateTime": self.date_time.isoformat(),
            "description": self.description,
            "name": self.name,
            "organizerId": self.organizer_id,
            "position": self.position.to_dict(),
            "volunteersNeeded": self.volunteers_needed,
            "volunteersIds": sorted(self.volunteers_ids),
        }
        if self.image_url is not None:
            data["imageUrl"] = self.image_url
        return data
