"""
Low-level authentication logic for the volunteam API.

Responsible for:
- Exchanging email/password for a user record and bearer token
- Classifying login failures into rejected credentials vs. unreachable server
- Building the standard authorization headers used by all API calls
"""
import asyncio
import logging

import aiohttp

from volunteam.const import (
    MSG_AUTH_FAILED,
    MSG_INCORRECT_CREDENTIALS,
    MSG_INVALID_CREDENTIALS,
    MSG_NETWORK_UNREACHABLE,
    REQUEST_ATTEMPTS,
    REQUEST_TIMEOUT,
)
from volunteam.errors import AuthenticationRejected, NetworkUnreachable
from volunteam.models import User
from volunteam.requests import make_request, ApiResponseError

_LOGGER = logging.getLogger(__name__)


class LoginResponse:
    """Parsed response from the login endpoint."""

    user: User
    access_token: str

    def __init__(self, json: dict) -> None:
        self.user = User.from_dict(json["user"])
        self.access_token = json["accessToken"]
        if not isinstance(self.access_token, str) or not self.access_token:
            raise ValueError("Login response carries no access token")

    def __str__(self) -> str:
        # never print the token itself
        return f"user: {self.user.id}, accessToken: <{len(self.access_token)} chars>"


def auth_error_message(status: int | None, body) -> str:
    """Derive the message shown to the user from a failed login response."""
    if isinstance(body, str) and body:
        return body
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    if status == 400:
        return MSG_INVALID_CREDENTIALS
    if status == 401:
        return MSG_INCORRECT_CREDENTIALS
    return MSG_AUTH_FAILED


async def authenticate(
    base_url: str,
    email: str,
    password: str,
    timeout: int = REQUEST_TIMEOUT,
    max_attempts: int = REQUEST_ATTEMPTS,
) -> LoginResponse:
    """
    Obtain a user record and access token from the API.

    Sends a POST to /login with the supplied credentials.

    Corresponding CURL command:
    curl -X 'POST' 'http://HOST:3333/login' \\
      -H 'Content-Type: application/json' \\
      -d '{"email": "EMAIL", "password": "PASSWORD"}'

    Raises:
        AuthenticationRejected: the server answered with an error status or
            an unusable body
        NetworkUnreachable: the server could not be reached
    """
    url = base_url.rstrip("/") + "/login"
    headers = {"accept": "application/json"}
    payload = {"email": email, "password": password}
    try:
        json_response = await make_request(
            "POST", url, headers, payload=payload, timeout=timeout, max_attempts=max_attempts
        )
    except ApiResponseError as e:
        _LOGGER.warning("Login rejected with status %s", e.status)
        raise AuthenticationRejected(auth_error_message(e.status, e.body), e.status) from e
    except (asyncio.TimeoutError, TimeoutError, aiohttp.ClientError) as e:
        _LOGGER.warning("Cannot reach %s: %s", url, e)
        raise NetworkUnreachable(MSG_NETWORK_UNREACHABLE) from e
    except ValueError as e:
        _LOGGER.error("Unexpected login response: %s", e)
        raise AuthenticationRejected(MSG_AUTH_FAILED) from e

    try:
        login_response = LoginResponse(json_response)
    except (KeyError, TypeError, ValueError) as e:
        _LOGGER.error("Missing key in login response: %s", e)
        raise AuthenticationRejected(MSG_AUTH_FAILED) from e
    _LOGGER.debug("Login succeeded: %s", login_response)
    return login_response


def get_standard_headers(token: str | None) -> dict:
    """
    Build the standard HTTP headers used by all volunteam API requests.

    :param token: Bearer token obtained from :func:`authenticate`, or None
        for anonymous requests.
    :return: Dictionary of HTTP headers.
    """
    headers = {"accept": "application/json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers
