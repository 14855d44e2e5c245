"""
Tests for viewport fitting: the pure region computation, the future-only
fit set, and the controller's readiness gating and double apply.
"""

from __future__ import annotations

import asyncio
import unittest
from datetime import datetime, timedelta, timezone

from volunteam.const import DEFAULT_REGION, MIN_REGION_DELTA
from volunteam.models import Position
from volunteam.viewport import Region, ViewportFitController, compute_region, detail_region, fit_set

from .test_common import make_event, make_map_surface, region_contains

NO_PADDING = {"top": 0, "right": 0, "bottom": 0, "left": 0}
SQUARE = {"width": 100, "height": 100}


class TestComputeRegion(unittest.TestCase):

    def test_empty_points_give_none(self):
        self.assertIsNone(compute_region([]))

    def test_unpadded_region_is_bounding_box(self):
        points = [Position(10.0, 20.0), Position(12.0, 24.0)]
        region = compute_region(points, NO_PADDING, SQUARE)
        self.assertAlmostEqual(region.latitude, 11.0)
        self.assertAlmostEqual(region.longitude, 22.0)
        self.assertAlmostEqual(region.latitude_delta, 2.0)
        self.assertAlmostEqual(region.longitude_delta, 4.0)

    def test_single_point_gets_minimum_span(self):
        region = compute_region([Position(51.0, -114.0)], NO_PADDING, SQUARE)
        self.assertAlmostEqual(region.latitude, 51.0)
        self.assertAlmostEqual(region.longitude, -114.0)
        self.assertAlmostEqual(region.latitude_delta, MIN_REGION_DELTA)
        self.assertAlmostEqual(region.longitude_delta, MIN_REGION_DELTA)

    def test_symmetric_padding_widens_span(self):
        padding = {"top": 25, "right": 25, "bottom": 25, "left": 25}
        region = compute_region([Position(0.0, 0.0), Position(1.0, 1.0)], padding, SQUARE)
        self.assertAlmostEqual(region.latitude, 0.5)
        self.assertAlmostEqual(region.longitude, 0.5)
        self.assertAlmostEqual(region.latitude_delta, 2.0)
        self.assertAlmostEqual(region.longitude_delta, 2.0)

    def test_asymmetric_padding_shifts_centre(self):
        # 50px bottom padding on a 100px map: points occupy the top half
        padding = {"top": 0, "right": 0, "bottom": 50, "left": 0}
        region = compute_region([Position(0.0, 0.0), Position(1.0, 1.0)], padding, SQUARE)
        self.assertAlmostEqual(region.latitude_delta, 2.0)
        self.assertAlmostEqual(region.latitude, 0.0)
        # the lowest point sits 50px (one degree) above the bottom of the screen
        self.assertAlmostEqual(region.latitude - region.latitude_delta / 2, -1.0)

    def test_every_point_inside_region(self):
        points = [Position(51.0, -114.2), Position(51.1, -113.9), Position(50.9, -114.0)]
        region = compute_region(points)
        for point in points:
            self.assertTrue(region_contains(region, point))

    def test_deterministic(self):
        points = [Position(51.0, -114.2), Position(51.1, -113.9)]
        self.assertEqual(compute_region(points), compute_region(list(points)))

    def test_padding_larger_than_map_rejected(self):
        padding = {"top": 60, "right": 0, "bottom": 60, "left": 0}
        with self.assertRaises(ValueError):
            compute_region([Position(0.0, 0.0)], padding, SQUARE)

    def test_detail_region(self):
        self.assertEqual(detail_region(Position(1.0, 2.0)), Region(1.0, 2.0, 0.008, 0.008))


class TestFitSet(unittest.TestCase):

    def test_only_strictly_future_events(self):
        now = datetime(2026, 1, 1, tzinfo=timezone.utc)
        past = make_event("past", date_time=now - timedelta(hours=1))
        exact = make_event("exact", date_time=now)
        future = make_event("future", date_time=now + timedelta(hours=1))
        self.assertEqual(fit_set([past, future, exact], now), [future])

    def test_preserves_order(self):
        now = datetime(2026, 1, 1, tzinfo=timezone.utc)
        events = [make_event(str(i), date_time=now + timedelta(days=10 - i)) for i in range(3)]
        self.assertEqual([e.id for e in fit_set(events, now)], ["0", "1", "2"])


class TestViewportFitController(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.surface = make_map_surface()
        self.controller = ViewportFitController(
            self.surface, NO_PADDING, SQUARE, initial_delay=0, settle_delay=0
        )
        self.events = [make_event("a", lat=10.0, lng=20.0), make_event("b", lat=12.0, lng=24.0)]
        self.expected = compute_region([e.position for e in self.events], NO_PADDING, SQUARE)

    async def asyncTearDown(self):
        await self.controller.async_shutdown()

    async def test_empty_set_is_noop(self):
        self.controller.on_map_ready()
        self.assertIsNone(self.controller.request_fit([]))
        await asyncio.sleep(0)
        self.surface.fit_to_region.assert_not_awaited()
        self.assertEqual(self.controller.last_region, Region.from_dict(DEFAULT_REGION))

    async def test_nothing_applied_before_ready(self):
        self.assertIsNone(self.controller.request_fit(self.events))
        await asyncio.sleep(0.01)
        self.surface.fit_to_region.assert_not_awaited()

        task = self.controller.on_map_ready()
        await task

        self.assertEqual(self.surface.fit_to_region.await_count, 2)
        for call in self.surface.fit_to_region.await_args_list:
            self.assertEqual(call.args[0], self.expected)
        self.assertEqual(self.controller.last_region, self.expected)

    async def test_ready_without_request_applies_nothing(self):
        self.assertIsNone(self.controller.on_map_ready())
        self.surface.fit_to_region.assert_not_awaited()

    async def test_fit_applies_same_region_twice(self):
        self.controller.on_map_ready()
        await self.controller.request_fit(self.events)
        calls = self.surface.fit_to_region.await_args_list
        self.assertEqual(len(calls), 2)
        self.assertEqual(calls[0], calls[1])

    async def test_second_apply_converges_when_first_dropped(self):
        self.surface.fit_to_region.side_effect = [RuntimeError("map settling"), None]
        self.controller.on_map_ready()
        await self.controller.request_fit(self.events)
        self.assertEqual(self.surface.fit_to_region.await_count, 2)
        self.assertEqual(self.controller.last_region, self.expected)

    async def test_waits_for_delays(self):
        controller = ViewportFitController(
            self.surface, NO_PADDING, SQUARE, initial_delay=0.05, settle_delay=0.05
        )
        controller.on_map_ready()
        task = controller.request_fit(self.events)
        await asyncio.sleep(0.02)
        self.surface.fit_to_region.assert_not_awaited()
        await task
        self.assertEqual(self.surface.fit_to_region.await_count, 2)

    async def test_manual_fit_matches_automatic_fit(self):
        self.controller.on_map_ready()
        await self.controller.request_fit(self.events)
        automatic = self.surface.fit_to_region.await_args_list[-1].args[0]

        await self.controller.fit_now()
        manual = self.surface.fit_to_region.await_args_list[-1].args[0]

        self.assertEqual(manual, automatic)
        self.assertEqual(self.surface.fit_to_region.await_count, 4)

    async def test_reload_refits_from_scratch(self):
        self.controller.on_map_ready()
        await self.controller.request_fit(self.events)
        await self.controller.request_fit([make_event("c", lat=0.0, lng=0.0)])
        self.assertEqual(self.controller.last_region.latitude, 0.0)
        self.assertEqual(self.controller.last_region.longitude, 0.0)

    async def test_latest_deferred_request_wins(self):
        self.controller.request_fit([make_event("old", lat=0.0, lng=0.0)])
        self.controller.request_fit(self.events)
        await self.controller.on_map_ready()
        self.assertEqual(self.controller.last_region, self.expected)
        self.assertEqual(self.surface.fit_to_region.await_count, 2)

    async def test_empty_reload_drops_deferred_fit(self):
        self.controller.request_fit(self.events)
        self.assertIsNone(self.controller.request_fit([]))

        self.assertIsNone(self.controller.on_map_ready())
        await asyncio.sleep(0.01)

        self.surface.fit_to_region.assert_not_awaited()
        self.assertEqual(self.controller.last_region, Region.from_dict(DEFAULT_REGION))

    async def test_second_ready_signal_ignored(self):
        self.controller.request_fit(self.events)
        await self.controller.on_map_ready()
        self.assertIsNone(self.controller.on_map_ready())

    async def test_shutdown_cancels_waiting_fits(self):
        controller = ViewportFitController(
            self.surface, NO_PADDING, SQUARE, initial_delay=10, settle_delay=10
        )
        controller.on_map_ready()
        task = controller.request_fit(self.events)
        await controller.async_shutdown()
        self.assertTrue(task.cancelled())
        self.surface.fit_to_region.assert_not_awaited()


if __name__ == "__main__":
    unittest.main()
