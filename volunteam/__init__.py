"""
volunteam: session and event-state engine for the volunteer events client.
"""
import logging

from .api import VolunteamApi
from .config import VolunteamConfig, load_config
from .event_details import EventDetailsLoader
from .events_coordinator import EventsCoordinator
from .session import SessionManager, SessionState
from .session_cache import SessionCache
from .storage import JsonFileStore
from .viewport import MapSurface, ViewportFitController

_LOGGER = logging.getLogger(__name__)


class VolunteamClient:
    """Wires the session, map and detail state for one configuration."""

    def __init__(self, config: VolunteamConfig, map_surface: MapSurface) -> None:
        self.config = config
        self.api = VolunteamApi(
            config.api_base_url, config.request_timeout, config.request_attempts
        )
        self.cache = SessionCache(JsonFileStore(config.expanded_cache_path))
        self.session = SessionManager(self.cache, self.api)
        self.viewport = ViewportFitController(
            map_surface,
            padding=config.fit_padding,
            map_size=config.map_size,
            initial_delay=config.fit_initial_delay,
            settle_delay=config.fit_settle_delay,
        )
        self.events = EventsCoordinator(self.api, self.session, self.viewport)
        self.details = EventDetailsLoader(self.api, self.session)

    async def async_setup(self) -> SessionState:
        """Restore any cached session."""
        state = await self.session.async_restore()
        _LOGGER.debug("Client ready, session %s", state.value)
        return state

    async def async_shutdown(self) -> None:
        await self.events.async_shutdown()


__all__ = [
    "SessionState",
    "VolunteamClient",
    "load_config",
]
