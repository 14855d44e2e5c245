"""
Low-level HTTP request library for the volunteam API.
This module handles all HTTP requests with automatic retry logic and proper error handling.
"""
import asyncio
import logging
import aiohttp

from .const import REQUEST_ATTEMPTS, REQUEST_TIMEOUT

_LOGGER = logging.getLogger(__name__)

SUPPORTED_METHODS = ("GET", "POST", "PUT", "PATCH")


class ApiResponseError(Exception):
    """Exception raised when the API answers with a non-2xx status."""
    def __init__(self, status: int, body):
        self.status = status
        self.body = body
        super().__init__(f"API Error {status}: {body}")


async def make_request(
    method: str,
    url: str,
    headers: dict,
    payload: dict = None,
    params: dict = None,
    timeout: int = REQUEST_TIMEOUT,
    max_attempts: int = REQUEST_ATTEMPTS,
):
    """
    Make an HTTP request with automatic retry on timeout.

    Args:
        method: HTTP method (GET, POST, PUT, PATCH)
        url: Target URL for the request
        headers: HTTP headers dictionary
        payload: JSON payload for POST/PUT/PATCH requests (optional)
        params: URL query parameters (optional)
        timeout: Base timeout in seconds (multiplied by attempt number for each retry)
        max_attempts: Maximum number of attempts

    Returns:
        Parsed JSON response

    Raises:
        asyncio.TimeoutError: If all attempts time out
        ApiResponseError: If the server answers with a non-2xx status
        aiohttp.ClientError: For connection level failures (not retried)
        ValueError: If the method is unsupported or the response is not JSON
    """
    method = method.upper()
    if method not in SUPPORTED_METHODS:
        raise ValueError(f"Unsupported HTTP method: {method}")

    for attempt in range(max_attempts):
        # Timeout increases with each attempt
        timeout_config = aiohttp.ClientTimeout(total=timeout * (attempt + 1))
        try:
            async with aiohttp.ClientSession(timeout=timeout_config) as session:
                kwargs = {"headers": headers, "params": params}
                if method != "GET":
                    kwargs["json"] = payload
                async with session.request(method, url, **kwargs) as response:
                    return await _process_response(response, url)

        except (asyncio.TimeoutError, TimeoutError):
            if attempt < max_attempts - 1:
                _LOGGER.debug(
                    "Timeout on %s request to %s (attempt %s/%s), retrying",
                    method, url, attempt + 1, max_attempts,
                )
                continue
            _LOGGER.warning(
                "Timeout on %s request to %s after %s attempts",
                method, url, max_attempts
            )
            raise

    # max_attempts < 1
    raise ValueError(f"max_attempts must be positive, got {max_attempts}")


async def _process_response(response, url: str):
    """
    Process HTTP response and extract JSON data.

    Args:
        response: aiohttp response object
        url: Request URL (for logging)

    Returns:
        Parsed JSON response

    Raises:
        ApiResponseError: For any non-2xx status, carrying the decoded body
        ValueError: If a successful response is not JSON
    """
    content_type = response.headers.get('Content-Type', '')

    if 200 <= response.status < 300:
        if 'application/json' in content_type:
            return await response.json()
        _LOGGER.warning(
            "Unexpected content type in successful response: %s (status %s) from %s",
            content_type, response.status, url
        )
        text = await response.text()
        raise ValueError(f"Expected JSON but got {content_type}: {text[:200]}")

    # Error responses: keep the body so callers can derive a user-facing message.
    # json-server-auth answers login failures with a plain JSON string.
    if 'application/json' in content_type:
        try:
            body = await response.json()
        except (aiohttp.ContentTypeError, ValueError) as e:
            _LOGGER.error(
                "Failed to parse error response as JSON from %s: %s (status %s)",
                url, e, response.status
            )
            body = None
    else:
        text = await response.text()
        _LOGGER.debug(
            "Received non-JSON error response from %s: status %s, content-type: %s, body preview: %s",
            url, response.status, content_type, text[:200]
        )
        body = text
    raise ApiResponseError(response.status, body)
