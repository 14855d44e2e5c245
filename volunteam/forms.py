"""Login form helpers."""
from __future__ import annotations

import re

from .const import EMAIL_PATTERN, MIN_PASSWORD_LENGTH

_EMAIL_RE = re.compile(EMAIL_PATTERN)


def sanitize_email(email: str) -> str:
    return (email or "").strip().lower()


def validate_email(email: str) -> bool:
    return bool(_EMAIL_RE.match(sanitize_email(email)))


def validate_login_form(email: str, password: str) -> dict[str, str]:
    """Return a field -> error-key dict; empty when the form is valid."""
    errors: dict[str, str] = {}
    if not validate_email(email):
        errors["email"] = "invalid_email"
    if len(password or "") < MIN_PASSWORD_LENGTH:
        errors["password"] = "password_too_short"
    return errors
