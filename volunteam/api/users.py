"""
Low-level user record fetching from the volunteam API.
"""
import asyncio
import logging

import aiohttp

from volunteam.const import REQUEST_ATTEMPTS, REQUEST_TIMEOUT
from volunteam.errors import DataLoadFailed
from volunteam.models import User
from volunteam.requests import make_request, ApiResponseError

_LOGGER = logging.getLogger(__name__)


async def fetch_user(
    base_url: str,
    user_id: str,
    headers: dict,
    timeout: int = REQUEST_TIMEOUT,
    max_attempts: int = REQUEST_ATTEMPTS,
) -> User:
    """
    Fetch a user record, e.g. an event organizer.

    Corresponding CURL command:
    curl -X 'GET' 'http://HOST:3333/users/<id>' -H 'accept: application/json'
    """
    url = f"{base_url.rstrip('/')}/users/{user_id}"
    try:
        raw_json = await make_request("GET", url, headers, timeout=timeout, max_attempts=max_attempts)
        return User.from_dict(raw_json)
    except (ApiResponseError, asyncio.TimeoutError, TimeoutError, aiohttp.ClientError, ValueError) as e:
        _LOGGER.warning("Error while getting user %s: %s", user_id, e)
        raise DataLoadFailed(f"Failed to load user {user_id}") from e
