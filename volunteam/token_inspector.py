"""
Session token inspection.

The client never holds the signing key, so tokens are decoded without
signature verification and only the ``exp`` claim is interpreted.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from numbers import Real

import jwt

from .const import EPOCH_MILLIS_THRESHOLD
from .errors import MalformedToken

_LOGGER = logging.getLogger(__name__)

_DECODE_OPTIONS = {
    "verify_signature": False,
    "verify_exp": False,
    "verify_nbf": False,
    "verify_iat": False,
    "verify_aud": False,
    "verify_iss": False,
    "verify_sub": False,
    "verify_jti": False,
}


def get_expiry(token: str) -> datetime:
    """
    Return the expiry instant of token as an aware UTC datetime.

    Raises:
        MalformedToken: token is not a decodable JWT, or its exp claim is
            missing or not a number
    """
    if not isinstance(token, (str, bytes)) or not token:
        raise MalformedToken("Token must be a non-empty string")
    try:
        claims = jwt.decode(token, options=_DECODE_OPTIONS, algorithms=["HS256", "RS256", "ES256"])
    except jwt.PyJWTError as e:
        raise MalformedToken(f"Cannot decode token: {e}") from e

    exp = claims.get("exp") if isinstance(claims, dict) else None
    if isinstance(exp, bool) or not isinstance(exp, Real):
        raise MalformedToken("Token has no numeric exp claim")

    try:
        seconds = float(exp)
        if seconds > EPOCH_MILLIS_THRESHOLD:
            seconds /= 1000.0
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as e:
        raise MalformedToken(f"Token exp claim out of range: {exp}") from e


def is_expired(token: str, now: datetime | None = None) -> bool:
    """True iff the token's expiry is at or before now (default: current instant)."""
    expiry = get_expiry(token)
    if now is None:
        now = datetime.now(timezone.utc)
    expired = expiry <= now
    _LOGGER.debug("Token expires at %s (expired=%s)", expiry.isoformat(), expired)
    return expired
