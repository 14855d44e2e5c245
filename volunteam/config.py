"""
Configuration for the volunteam client.

Settings are merged from keyword overrides, VOLUNTEAM_* environment
variables (a .env file is honoured) and the defaults in const.py, then
validated against CONFIG_SCHEMA.
"""
from __future__ import annotations

import dataclasses
import logging
import os
from typing import Any

import voluptuous as vol
from dotenv import load_dotenv

from .const import (
    DEFAULT_API_BASE_URL,
    DEFAULT_CACHE_PATH,
    FIT_INITIAL_DELAY,
    FIT_PADDING,
    FIT_SETTLE_DELAY,
    MAP_SIZE,
    REQUEST_ATTEMPTS,
    REQUEST_TIMEOUT,
)
from .errors import ConfigurationError

_LOGGER = logging.getLogger(__name__)

ENV_PREFIX = "VOLUNTEAM_"

pixels = vol.All(vol.Coerce(int), vol.Range(min=0))
positive_int = vol.All(vol.Coerce(int), vol.Range(min=1))
delay = vol.All(vol.Coerce(float), vol.Range(min=0))
url_validator = vol.All(str, vol.Length(min=1), vol.Match(r"^https?://"))

PADDING_SCHEMA = vol.Schema(
    {
        vol.Required("top"): pixels,
        vol.Required("right"): pixels,
        vol.Required("bottom"): pixels,
        vol.Required("left"): pixels,
    }
)

MAP_SIZE_SCHEMA = vol.Schema(
    {
        vol.Required("width"): positive_int,
        vol.Required("height"): positive_int,
    }
)


def _padding_fits_map(config: dict) -> dict:
    padding = config["fit_padding"]
    size = config["map_size"]
    if padding["left"] + padding["right"] >= size["width"]:
        raise vol.Invalid("horizontal padding leaves no room on the map", path=["fit_padding"])
    if padding["top"] + padding["bottom"] >= size["height"]:
        raise vol.Invalid("vertical padding leaves no room on the map", path=["fit_padding"])
    return config


CONFIG_SCHEMA = vol.All(
    vol.Schema(
        {
            vol.Required("api_base_url", default=DEFAULT_API_BASE_URL): url_validator,
            vol.Required("cache_path", default=DEFAULT_CACHE_PATH): vol.All(str, vol.Length(min=1)),
            vol.Required("request_timeout", default=REQUEST_TIMEOUT): positive_int,
            vol.Required("request_attempts", default=REQUEST_ATTEMPTS): positive_int,
            vol.Required("fit_initial_delay", default=FIT_INITIAL_DELAY): delay,
            vol.Required("fit_settle_delay", default=FIT_SETTLE_DELAY): delay,
            vol.Required("fit_padding", default=dict(FIT_PADDING)): PADDING_SCHEMA,
            vol.Required("map_size", default=dict(MAP_SIZE)): MAP_SIZE_SCHEMA,
        }
    ),
    _padding_fits_map,
)

# Scalar options that may be set from the environment
_ENV_OPTIONS = (
    "api_base_url",
    "cache_path",
    "request_timeout",
    "request_attempts",
    "fit_initial_delay",
    "fit_settle_delay",
)


@dataclasses.dataclass(frozen=True)
class VolunteamConfig:
    """Validated client settings."""

    api_base_url: str
    cache_path: str
    request_timeout: int
    request_attempts: int
    fit_initial_delay: float
    fit_settle_delay: float
    fit_padding: dict[str, int]
    map_size: dict[str, int]

    @property
    def expanded_cache_path(self) -> str:
        return os.path.expanduser(self.cache_path)


def load_config(use_dotenv: bool = True, **overrides: Any) -> VolunteamConfig:
    """
    Build a validated VolunteamConfig.

    Precedence: overrides > environment > defaults.

    Raises:
        ConfigurationError: if the merged settings fail validation
    """
    if use_dotenv:
        load_dotenv()

    raw: dict[str, Any] = {}
    for option in _ENV_OPTIONS:
        value = os.getenv(ENV_PREFIX + option.upper())
        if value:
            raw[option] = value
    raw.update({k: v for k, v in overrides.items() if v is not None})

    try:
        validated = CONFIG_SCHEMA(raw)
    except vol.Invalid as e:
        _LOGGER.error("Invalid configuration: %s", e)
        raise ConfigurationError(str(e)) from e

    _LOGGER.debug("Loaded configuration for %s", validated["api_base_url"])
    return VolunteamConfig(**validated)
