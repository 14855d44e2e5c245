"""
Map viewport fitting.

compute_region() is a pure function turning a set of coordinates and a pixel
padding into the map surface's center/span region. ViewportFitController
decides *when* that region is applied: never before the map surface reports
readiness, and twice per request (after an initial delay, then again after a
settle delay) because the surface may silently drop the first command while
it is still settling. Both applies use the same computed region.
"""
from __future__ import annotations

import asyncio
import dataclasses
import logging
from datetime import datetime, timezone
from typing import Iterable, Protocol, Sequence

from .const import (
    DEFAULT_REGION,
    DETAIL_REGION_DELTA,
    FIT_INITIAL_DELAY,
    FIT_PADDING,
    FIT_SETTLE_DELAY,
    MAP_SIZE,
    MIN_REGION_DELTA,
)
from .models import EventRecord, Position

_LOGGER = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class Region:
    """Visible map area: centre point plus latitude/longitude span in degrees."""

    latitude: float
    longitude: float
    latitude_delta: float
    longitude_delta: float

    @classmethod
    def from_dict(cls, data: dict[str, float]) -> Region:
        return cls(
            data["latitude"], data["longitude"], data["latitude_delta"], data["longitude_delta"]
        )


class MapSurface(Protocol):
    """The map widget collaborator."""

    async def fit_to_region(self, region: Region, animated: bool = True) -> None:
        ...


def fit_set(events: Iterable[EventRecord], now: datetime | None = None) -> list[EventRecord]:
    """Events strictly in the future, in their original order."""
    if now is None:
        now = datetime.now(timezone.utc)
    return [event for event in events if event.date_time > now]


def compute_region(
    points: Sequence[Position],
    padding: dict[str, int] = FIT_PADDING,
    map_size: dict[str, int] = MAP_SIZE,
) -> Region | None:
    """
    Smallest region showing every point inside the padded area of the map.

    Returns None for an empty point set. Padding is in screen pixels and is
    converted with a linear degrees-per-pixel scale per axis; the centre is
    shifted so the points sit in the middle of the padded area rather than
    the middle of the screen.
    """
    if not points:
        return None

    min_lat = min(p.latitude for p in points)
    max_lat = max(p.latitude for p in points)
    min_lng = min(p.longitude for p in points)
    max_lng = max(p.longitude for p in points)

    span_lat = max(max_lat - min_lat, MIN_REGION_DELTA)
    span_lng = max(max_lng - min_lng, MIN_REGION_DELTA)

    width, height = map_size["width"], map_size["height"]
    usable_width = width - padding["left"] - padding["right"]
    usable_height = height - padding["top"] - padding["bottom"]
    if usable_width <= 0 or usable_height <= 0:
        raise ValueError(f"Padding {padding} leaves no room on a {width}x{height} map")

    lat_per_px = span_lat / usable_height
    lng_per_px = span_lng / usable_width

    mid_lat = (min_lat + max_lat) / 2
    mid_lng = (min_lng + max_lng) / 2

    # Screen y grows downwards, latitude grows upwards
    center_lat = mid_lat + (padding["top"] - padding["bottom"]) / 2 * lat_per_px
    center_lng = mid_lng - (padding["left"] - padding["right"]) / 2 * lng_per_px

    return Region(
        latitude=center_lat,
        longitude=center_lng,
        latitude_delta=lat_per_px * height,
        longitude_delta=lng_per_px * width,
    )


def detail_region(position: Position) -> Region:
    """Fixed close-up region used by the event detail map."""
    return Region(position.latitude, position.longitude, DETAIL_REGION_DELTA, DETAIL_REGION_DELTA)


class ViewportFitController:
    """
    Applies fitted regions to a map surface once it is ready.

    A new request never cancels an earlier one still in flight; the later
    request simply applies after it.
    """

    def __init__(
        self,
        map_surface: MapSurface,
        padding: dict[str, int] = FIT_PADDING,
        map_size: dict[str, int] = MAP_SIZE,
        initial_delay: float = FIT_INITIAL_DELAY,
        settle_delay: float = FIT_SETTLE_DELAY,
    ) -> None:
        self._map_surface = map_surface
        self._padding = dict(padding)
        self._map_size = dict(map_size)
        self._initial_delay = initial_delay
        self._settle_delay = settle_delay

        self._map_ready = False
        self._events: tuple[EventRecord, ...] = ()
        self._pending_region: Region | None = None
        self._last_region = Region.from_dict(DEFAULT_REGION)
        self._fit_tasks: set[asyncio.Task] = set()

    @property
    def map_ready(self) -> bool:
        return self._map_ready

    @property
    def last_region(self) -> Region:
        """Most recently applied region (the default region before any fit)."""
        return self._last_region

    def region_for(self, events: Iterable[EventRecord]) -> Region | None:
        return compute_region([e.position for e in events], self._padding, self._map_size)

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------

    def request_fit(self, events: Iterable[EventRecord]) -> asyncio.Task | None:
        """
        Fit the map to events, from scratch.

        Returns the scheduled fit task, or None when nothing was scheduled
        (empty event set, or map not ready yet; in the latter case the fit
        runs on readiness).
        """
        self._events = tuple(events)
        region = self.region_for(self._events)
        if region is None:
            _LOGGER.debug("Nothing to fit, keeping current viewport")
            # drop a deferred fit for events no longer displayed
            self._pending_region = None
            return None
        if not self._map_ready:
            _LOGGER.debug("Map not ready, deferring fit to %s", region)
            self._pending_region = region
            return None
        return self._schedule(region)

    def fit_now(self) -> asyncio.Task | None:
        """Manual "fit to all": same algorithm on the current event set."""
        return self.request_fit(self._events)

    def on_map_ready(self) -> asyncio.Task | None:
        """Readiness callback from the map surface; flushes a deferred fit."""
        if self._map_ready:
            return None
        self._map_ready = True
        region, self._pending_region = self._pending_region, None
        if region is None:
            return None
        return self._schedule(region)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _schedule(self, region: Region) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(self._run_fit(region))
        self._fit_tasks.add(task)
        task.add_done_callback(self._fit_tasks.discard)
        return task

    async def _run_fit(self, region: Region) -> None:
        await asyncio.sleep(self._initial_delay)
        await self._apply(region)
        # The surface may have ignored the first command while settling
        await asyncio.sleep(self._settle_delay)
        await self._apply(region)

    async def _apply(self, region: Region) -> None:
        try:
            await self._map_surface.fit_to_region(region, animated=True)
        except Exception as exc:  # noqa: BLE001
            _LOGGER.warning("Map surface rejected fit to %s: %s", region, exc)
            return
        self._last_region = region

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def async_shutdown(self) -> None:
        """Cancel fit tasks that are still waiting."""
        for task in list(self._fit_tasks):
            task.cancel()
        if self._fit_tasks:
            await asyncio.gather(*self._fit_tasks, return_exceptions=True)
        self._fit_tasks.clear()
