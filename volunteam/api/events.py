"""
Low-level event fetching from the volunteam API.

Responsible for:
- Fetching the full event list
- Fetching a single event by id
- Patching an event (volunteer sign-up)

All failures surface as DataLoadFailed; they never touch the session.
"""
import asyncio
import logging

import aiohttp

from volunteam.const import (
    MSG_EVENT_LOAD_FAILED,
    MSG_EVENTS_LOAD_FAILED,
    MSG_VOLUNTEER_FAILED,
    REQUEST_ATTEMPTS,
    REQUEST_TIMEOUT,
)
from volunteam.errors import DataLoadFailed
from volunteam.models import EventRecord
from volunteam.requests import make_request, ApiResponseError

_LOGGER = logging.getLogger(__name__)

_TRANSPORT_ERRORS = (ApiResponseError, asyncio.TimeoutError, TimeoutError, aiohttp.ClientError, ValueError)


async def fetch_events(
    base_url: str,
    headers: dict,
    timeout: int = REQUEST_TIMEOUT,
    max_attempts: int = REQUEST_ATTEMPTS,
) -> list[EventRecord]:
    """
    Fetch every event known to the server.

    Corresponding CURL command:
    curl -X 'GET' 'http://HOST:3333/events' -H 'accept: application/json'
    """
    url = base_url.rstrip("/") + "/events"
    try:
        raw_json = await make_request("GET", url, headers, timeout=timeout, max_attempts=max_attempts)
    except _TRANSPORT_ERRORS as e:
        _LOGGER.warning("Error while getting events: %s", e)
        raise DataLoadFailed(MSG_EVENTS_LOAD_FAILED) from e

    if not isinstance(raw_json, list):
        _LOGGER.error("Unexpected response format in event list: %s", raw_json)
        raise DataLoadFailed(MSG_EVENTS_LOAD_FAILED)

    try:
        return [EventRecord.from_dict(item) for item in raw_json]
    except (KeyError, TypeError, ValueError) as e:
        _LOGGER.error("Malformed event in event list: %s", e)
        raise DataLoadFailed(MSG_EVENTS_LOAD_FAILED) from e


async def fetch_event(
    base_url: str,
    event_id: str,
    headers: dict,
    timeout: int = REQUEST_TIMEOUT,
    max_attempts: int = REQUEST_ATTEMPTS,
) -> EventRecord:
    """
    Fetch a single event.

    Corresponding CURL command:
    curl -X 'GET' 'http://HOST:3333/events/<id>' -H 'accept: application/json'
    """
    url = f"{base_url.rstrip('/')}/events/{event_id}"
    try:
        raw_json = await make_request("GET", url, headers, timeout=timeout, max_attempts=max_attempts)
        return EventRecord.from_dict(raw_json)
    except _TRANSPORT_ERRORS + (KeyError, TypeError) as e:
        _LOGGER.warning("Error while getting event %s: %s", event_id, e)
        raise DataLoadFailed(MSG_EVENT_LOAD_FAILED) from e


async def update_event(
    base_url: str,
    event_id: str,
    changes: dict,
    headers: dict,
    timeout: int = REQUEST_TIMEOUT,
    max_attempts: int = REQUEST_ATTEMPTS,
) -> EventRecord:
    """
    Apply a partial update to an event and return the server's copy.

    Corresponding CURL command:
    curl -X 'PATCH' 'http://HOST:3333/events/<id>' \\
      -H 'Content-Type: application/json' -d '{"volunteersIds": [...]}'
    """
    url = f"{base_url.rstrip('/')}/events/{event_id}"
    try:
        raw_json = await make_request(
            "PATCH", url, headers, payload=changes, timeout=timeout, max_attempts=max_attempts
        )
        return EventRecord.from_dict(raw_json)
    except _TRANSPORT_ERRORS + (KeyError, TypeError) as e:
        _LOGGER.warning("Error while updating event %s: %s", event_id, e)
        raise DataLoadFailed(MSG_VOLUNTEER_FAILED) from e
