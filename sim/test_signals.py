#!/usr/bin/env python3
"""
Tests for the six-phase signal controller and the coordinator queries.
"""

from __future__ import annotations

import math
import random
import unittest

from sim.road_graph import (
    Intersection,
    IntersectionId,
    RoadGraph,
    Segment,
    SegmentId,
    SegmentType,
    StraightGeometry,
    city_road_graph,
)
from sim.signals import (
    NO_STOP,
    Approach,
    Aspect,
    Phase,
    SignalConfigError,
    SignalController,
    SignalCoordinator,
    build_phase_cycle,
    classify_approach,
    green_wave_offsets,
    stop_position,
)
from sim.traffic_policy import TrafficPolicy


def _cross_graph() -> RoadGraph:
    def seg(seg_id, start, end):
        return Segment(
            id=SegmentId(seg_id), type=SegmentType.MAIN,
            geometry=StraightGeometry(start, end),
            width=10.0, lane_count=2, speed_limit=50.0,
        )

    return RoadGraph(
        [seg("h", (-60.0, 0.0), (60.0, 0.0)), seg("v", (0.0, -60.0), (0.0, 60.0))],
        [Intersection(
            id=IntersectionId("x0"), x=0.0, z=0.0,
            connected_segments=(SegmentId("h"), SegmentId("v")),
        )],
    )


class SignalControllerTests(unittest.TestCase):
    def test_default_cycle(self) -> None:
        ctrl = SignalController("x0", (0.0, 0.0))
        self.assertAlmostEqual(ctrl.cycle_length, 26.0)
        self.assertEqual(
            [p.name for p in ctrl.phases],
            ["NS_GREEN", "NS_YELLOW", "ALL_RED_1", "EW_GREEN", "EW_YELLOW", "ALL_RED_2"],
        )
        self.assertEqual(ctrl.get_state(Approach.NORTH), Aspect.GREEN)
        self.assertEqual(ctrl.get_state("east"), Aspect.RED)

    def test_update_advances_on_duration(self) -> None:
        ctrl = SignalController("x0", (0.0, 0.0))
        ctrl.update(9.5)
        self.assertEqual(ctrl.phase_index, 0)
        ctrl.update(0.5)
        self.assertEqual(ctrl.phase_index, 1)
        self.assertEqual(ctrl.time_in_phase, 0.0)
        self.assertTrue(ctrl.should_prepare_to_stop(Approach.SOUTH))

        ctrl.update(-3.0)
        self.assertEqual(ctrl.phase_index, 1)
        self.assertEqual(ctrl.time_in_phase, 0.0)

    def test_never_two_axes_released(self) -> None:
        ctrl = SignalController("x0", (0.0, 0.0))
        rng = random.Random(4)
        for _ in range(2000):
            ctrl.update(rng.uniform(0.0, 0.7))
            ns = ctrl.get_state(Approach.NORTH)
            ew = ctrl.get_state(Approach.WEST)
            self.assertTrue(ns is Aspect.RED or ew is Aspect.RED)
            self.assertEqual(ctrl.get_state(Approach.SOUTH), ns)
            self.assertEqual(ctrl.get_state(Approach.EAST), ew)
            self.assertIn(ctrl.phase_index, range(6))

    def test_set_phase_offset(self) -> None:
        ctrl = SignalController("x0", (0.0, 0.0))
        ctrl.set_phase_offset(14.5)
        self.assertEqual(ctrl.phase_index, 3)
        self.assertAlmostEqual(ctrl.time_in_phase, 1.5)

        ctrl.set_phase_offset(13.5)
        self.assertTrue(ctrl.can_proceed(Approach.WEST))
        self.assertFalse(ctrl.can_proceed(Approach.NORTH))

        ctrl.set_phase_offset(12.5)
        self.assertTrue(ctrl.is_all_red)

    def test_phase_offset_is_idempotent(self) -> None:
        for offset in (0.0, 3.3, 11.0, 25.9, 40.2, -4.0):
            with self.subTest(offset=offset):
                once = SignalController("a", (0.0, 0.0))
                once.set_phase_offset(offset)
                twice = SignalController("b", (0.0, 0.0))
                twice.set_phase_offset(offset)
                twice.set_phase_offset(offset)
                wrapped = SignalController("c", (0.0, 0.0))
                wrapped.set_phase_offset(offset + 26.0)

                for other in (twice, wrapped):
                    self.assertEqual(other.phase_index, once.phase_index)
                    self.assertAlmostEqual(other.time_in_phase, once.time_in_phase, places=6)

    def test_phase_offset_matches_running_the_clock(self) -> None:
        dt = 0.125
        for offset in (3.25, 11.5, 12.75, 20.0, 24.375, 40.25, -4.5):
            with self.subTest(offset=offset):
                jumped = SignalController("a", (0.0, 0.0))
                jumped.set_phase_offset(offset)
                replayed = SignalController("b", (0.0, 0.0))
                for _ in range(round((offset % 26.0) / dt)):
                    replayed.update(dt)

                self.assertEqual(jumped.phase_index, replayed.phase_index)
                self.assertAlmostEqual(jumped.time_in_phase, replayed.time_in_phase)
                self.assertEqual(jumped.as_dict()["ns"], replayed.as_dict()["ns"])
                self.assertEqual(jumped.as_dict()["ew"], replayed.as_dict()["ew"])

    def test_invalid_phase_lists(self) -> None:
        with self.assertRaises(SignalConfigError):
            SignalController("x0", (0.0, 0.0), phases=[])
        with self.assertRaises(SignalConfigError):
            SignalController("x0", (0.0, 0.0), phases=build_phase_cycle(green_s=0.0))
        with self.assertRaises(SignalConfigError):
            SignalController(
                "x0", (0.0, 0.0), phases=[Phase("BOTH", 5.0, Aspect.GREEN, Aspect.YELLOW)],
            )

    def test_as_dict(self) -> None:
        ctrl = SignalController("x0", (4.0, -2.0))
        data = ctrl.as_dict()
        self.assertEqual(data["id"], "x0")
        self.assertEqual((data["x"], data["z"]), (4.0, -2.0))
        self.assertEqual((data["ns"], data["ew"]), ("green", "red"))


class StopGeometryTests(unittest.TestCase):
    def test_classify_approach(self) -> None:
        self.assertIs(classify_approach(10.0, 1.0), Approach.WEST)
        self.assertIs(classify_approach(-10.0, 1.0), Approach.EAST)
        self.assertIs(classify_approach(1.0, 10.0), Approach.SOUTH)
        self.assertIs(classify_approach(1.0, -10.0), Approach.NORTH)

    def test_stop_position_is_before_center(self) -> None:
        self.assertEqual(stop_position((10.0, 20.0), Approach.WEST, 8.0), (2.0, 20.0))
        self.assertEqual(stop_position((10.0, 20.0), Approach.EAST, 8.0), (18.0, 20.0))
        self.assertEqual(stop_position((10.0, 20.0), Approach.SOUTH, 8.0), (10.0, 12.0))
        self.assertEqual(stop_position((10.0, 20.0), Approach.NORTH, 8.0), (10.0, 28.0))


class GreenWaveTests(unittest.TestCase):
    def test_offsets_follow_travel_time(self) -> None:
        offsets = green_wave_offsets([("c", 100.0), ("a", 0.0), ("b", 50.0)], 50.0, 26.0)
        self.assertAlmostEqual(offsets["a"], 0.0)
        self.assertAlmostEqual(offsets["b"], 1.0)
        self.assertAlmostEqual(offsets["c"], 2.0)

    def test_offsets_wrap_modulo_cycle(self) -> None:
        stops = [("a", 0.0), ("b", 800.0), ("c", 1600.0)]
        offsets = green_wave_offsets(stops, 50.0, 26.0, base_offset=13.0)
        ordered = [offsets[s] for s, _ in stops]
        for offset in ordered:
            self.assertGreaterEqual(offset, 0.0)
            self.assertLess(offset, 26.0)
        for (prev, cur), ((_, c0), (_, c1)) in zip(
            zip(ordered, ordered[1:]), zip(stops, stops[1:]),
        ):
            self.assertAlmostEqual((cur - prev) % 26.0, ((c1 - c0) / 50.0) % 26.0)

    def test_non_positive_arguments(self) -> None:
        with self.assertRaises(ValueError):
            green_wave_offsets([("a", 0.0)], 0.0, 26.0)
        with self.assertRaises(ValueError):
            green_wave_offsets([("a", 0.0)], 50.0, 0.0)

    def test_city_green_wave(self) -> None:
        coordinator = SignalCoordinator(city_road_graph(rng=random.Random(0)))
        self.assertEqual(len(coordinator.controllers), 21)

        # Main x main crossings carry the vertical wave (half a cycle base)
        self.assertAlmostEqual(
            coordinator.get_controller("intersection-1-0").phase_offset, 13.0,
        )
        self.assertAlmostEqual(
            coordinator.get_controller("intersection-1-1").phase_offset, 14.6,
        )
        # Main x side crossings on a horizontal road keep the horizontal wave
        self.assertAlmostEqual(
            coordinator.get_controller("cross-h1-sv0").phase_offset, 0.8,
        )

    def test_green_wave_can_be_disabled(self) -> None:
        coordinator = SignalCoordinator(
            city_road_graph(rng=random.Random(0)),
            TrafficPolicy(green_wave_enabled=False),
        )
        for ctrl in coordinator.controllers.values():
            self.assertEqual(ctrl.phase_index, 0)
            self.assertEqual(ctrl.phase_offset, 0.0)


class SignalCoordinatorTests(unittest.TestCase):
    def setUp(self) -> None:
        self.coordinator = SignalCoordinator(
            _cross_graph(), TrafficPolicy(green_wave_enabled=False),
        )

    def test_red_light_ahead(self) -> None:
        query = self.coordinator.should_stop(-15.0, 0.0, math.pi / 2.0)
        self.assertTrue(query.should_stop)
        self.assertAlmostEqual(query.distance, 15.0)
        self.assertEqual(query.intersection_id, "x0")
        self.assertIs(query.approach, Approach.WEST)
        self.assertIs(query.aspect, Aspect.RED)
        self.assertEqual(query.stop_position, (-8.0, 0.0))

    def test_red_light_from_the_stop_position(self) -> None:
        query = self.coordinator.should_stop(-8.0, 0.0, math.pi / 2.0)
        self.assertTrue(query.should_stop)
        self.assertAlmostEqual(query.distance, 8.0)
        self.assertIs(query.approach, Approach.WEST)
        self.assertEqual(query.stop_position, (-8.0, 0.0))

    def test_lights_behind_far_green_or_entered_are_ignored(self) -> None:
        # Behind
        self.assertIs(self.coordinator.should_stop(-15.0, 0.0, -math.pi / 2.0), NO_STOP)
        # Beyond the look-ahead
        self.assertFalse(self.coordinator.should_stop(-30.0, 0.0, math.pi / 2.0).should_stop)
        self.assertTrue(
            self.coordinator.should_stop(-30.0, 0.0, math.pi / 2.0, lookahead=40.0).should_stop
        )
        # Green for the north-south axis
        self.assertFalse(self.coordinator.should_stop(0.0, -15.0, 0.0).should_stop)
        # Already inside the junction
        self.assertFalse(self.coordinator.should_stop(-1.0, 0.0, math.pi / 2.0).should_stop)

    def test_yellow_also_stops(self) -> None:
        self.coordinator.get_controller("x0").set_phase_offset(10.5)
        query = self.coordinator.should_stop(0.0, -15.0, 0.0)
        self.assertTrue(query.should_stop)
        self.assertIs(query.aspect, Aspect.YELLOW)
        self.assertEqual(query.stop_position, (0.0, -8.0))

    def test_update_advances_every_light(self) -> None:
        self.coordinator.update(10.0)
        self.assertEqual(self.coordinator.get_controller("x0").phase_index, 1)
        self.assertEqual(self.coordinator.as_dict()[0]["phase"], "NS_YELLOW")

    def test_pedestrian_walk_signal(self) -> None:
        self.assertTrue(self.coordinator.is_pedestrian_walk_signal(100.0, 100.0))
        self.assertFalse(self.coordinator.is_pedestrian_walk_signal(5.0, 5.0))
        self.coordinator.get_controller("x0").set_phase_offset(12.5)
        self.assertTrue(self.coordinator.is_pedestrian_walk_signal(5.0, 5.0))

    def test_release_drops_controllers(self) -> None:
        self.coordinator.release()
        self.assertEqual(len(self.coordinator.controllers), 0)
        self.assertIs(self.coordinator.should_stop(-15.0, 0.0, math.pi / 2.0), NO_STOP)


if __name__ == "__main__":
    unittest.main()
