#!/usr/bin/env python3
"""
Tests for road graph construction, spatial queries and navigation.
"""

from __future__ import annotations

import math
import random
import unittest

from sim.geometry import heading_vector
from sim.road_graph import (
    ArcGeometry,
    BezierGeometry,
    Intersection,
    IntersectionId,
    RoadGraph,
    RoadGraphError,
    Segment,
    SegmentId,
    SegmentType,
    StraightGeometry,
    city_road_graph,
)


def _segment(
    seg_id: str,
    start,
    end,
    lanes: int = 2,
    width: float = 10.0,
    speed_limit: float = 50.0,
    seg_type: SegmentType = SegmentType.MAIN,
) -> Segment:
    return Segment(
        id=SegmentId(seg_id),
        type=seg_type,
        geometry=StraightGeometry(start, end),
        width=width,
        lane_count=lanes,
        speed_limit=speed_limit,
    )


class RoadGraphConstructionTests(unittest.TestCase):
    def test_straight_segment_waypoint_count(self) -> None:
        graph = RoadGraph([_segment("main", (-120.0, 0.0), (120.0, 0.0), lanes=4)])

        self.assertEqual(len(graph.lanes), 4)
        self.assertEqual(len(graph.waypoints), 124)
        for lane in graph.lanes.values():
            self.assertEqual(len(lane.waypoint_ids), 31)

    def test_every_waypoint_resolves_to_its_lane(self) -> None:
        graph = city_road_graph(rng=random.Random(3))
        for lane in graph.lanes.values():
            self.assertTrue(lane.waypoint_ids)
            for wp_id in lane.waypoint_ids:
                wp = graph.get_waypoint(wp_id)
                self.assertIsNotNone(wp)
                self.assertEqual(wp.lane_id, lane.id)

    def test_lanes_split_into_opposing_halves(self) -> None:
        graph = RoadGraph([_segment("main", (-40.0, 0.0), (40.0, 0.0), lanes=4)])
        directions = [graph.get_lane(f"main-lane{i}").direction for i in range(4)]
        self.assertEqual(directions, [1, 1, -1, -1])

        lane = graph.get_lane("main-lane0")
        first = graph.get_waypoint(lane.waypoint_ids[0])
        self.assertAlmostEqual(first.z, -3.75)

    def test_curved_segments_follow_arc_length(self) -> None:
        arc = Segment(
            id=SegmentId("ring"),
            type=SegmentType.HIGHWAY,
            geometry=ArcGeometry((0.0, 0.0), 100.0, 0.0, math.pi / 2.0),
            width=14.0,
            lane_count=2,
            speed_limit=80.0,
        )
        ramp = Segment(
            id=SegmentId("ramp"),
            type=SegmentType.CONNECTOR,
            geometry=BezierGeometry(start=(120.0, 0.0), end=(140.0, 0.0), control=(135.0, 10.0)),
            width=10.0,
            lane_count=2,
            speed_limit=40.0,
        )
        graph = RoadGraph([arc, ramp])

        ring_lane = graph.get_lane("ring-lane0")
        self.assertEqual(len(ring_lane.waypoint_ids), math.ceil(arc.length / 8.0) + 1)
        for wp_id in ring_lane.waypoint_ids:
            wp = graph.get_waypoint(wp_id)
            self.assertAlmostEqual(math.hypot(wp.x, wp.z), 100.0 + ring_lane.offset, places=6)

        mid = ramp.geometry.point_at(0.5)
        start = ramp.geometry.point_at(0.0)
        end = ramp.geometry.point_at(1.0)
        self.assertAlmostEqual(start[0], 120.0)
        self.assertAlmostEqual(end[0], 140.0)
        self.assertGreater(mid[1], 0.0)

    def test_invalid_segments_are_rejected(self) -> None:
        bad = [
            _segment("odd", (0.0, 0.0), (50.0, 0.0), lanes=3),
            _segment("single", (0.0, 0.0), (50.0, 0.0), lanes=1),
            _segment("flat", (0.0, 0.0), (0.0, 0.0)),
            _segment("narrow", (0.0, 0.0), (50.0, 0.0), width=0.0),
            _segment("parked", (0.0, 0.0), (50.0, 0.0), speed_limit=0.0),
        ]
        for seg in bad:
            with self.subTest(segment=seg.id):
                with self.assertRaises(RoadGraphError):
                    RoadGraph([seg])

    def test_duplicate_and_dangling_ids_are_rejected(self) -> None:
        a = _segment("a", (0.0, 0.0), (50.0, 0.0))
        with self.assertRaises(RoadGraphError):
            RoadGraph([a, _segment("a", (0.0, 10.0), (50.0, 10.0))])

        node = Intersection(
            id=IntersectionId("x"), x=0.0, z=0.0,
            connected_segments=(SegmentId("a"), SegmentId("missing")),
        )
        with self.assertRaises(RoadGraphError):
            RoadGraph([a], [node])

        twin = Intersection(
            id=IntersectionId("x"), x=0.0, z=0.0, connected_segments=(SegmentId("a"),),
        )
        with self.assertRaises(RoadGraphError):
            RoadGraph([a], [twin, twin])

    def test_city_layout(self) -> None:
        graph = city_road_graph(rng=random.Random(0))
        self.assertEqual(len(graph.segments), 30)
        self.assertEqual(len(graph.intersections), 25)
        self.assertEqual(len(graph.signaled_intersections()), 21)

        axes = graph.main_road_axes()
        self.assertEqual(len(axes["horizontal"]), 3)
        self.assertEqual(len(axes["vertical"]), 3)

        zones = graph.building_zones()
        self.assertTrue(zones)
        for zone in zones:
            self.assertFalse(graph.on_road(zone.x, zone.z))


class RoadGraphQueryTests(unittest.TestCase):
    def setUp(self) -> None:
        self.graph = RoadGraph(
            [
                _segment("h", (-60.0, 0.0), (60.0, 0.0)),
                _segment("v", (0.0, -60.0), (0.0, 60.0)),
            ],
            [
                Intersection(
                    id=IntersectionId("x0"), x=0.0, z=0.0,
                    connected_segments=(SegmentId("h"), SegmentId("v")),
                ),
            ],
            rng=random.Random(5),
        )

    def test_unknown_ids_return_none(self) -> None:
        self.assertIsNone(self.graph.get_segment("nope"))
        self.assertIsNone(self.graph.get_lane("nope"))
        self.assertIsNone(self.graph.get_waypoint("nope"))
        self.assertIsNone(self.graph.get_intersection("nope"))
        self.assertIsNone(self.graph.next_waypoint("nope"))

    def test_on_road(self) -> None:
        self.assertTrue(self.graph.on_road(30.0, 3.0))
        self.assertTrue(self.graph.on_road(0.0, -45.0))
        self.assertFalse(self.graph.on_road(30.0, 20.0))
        self.assertFalse(self.graph.on_road(100.0, 0.0))

    def test_nearest_queries(self) -> None:
        lane = self.graph.nearest_lane(30.0, -1.0)
        self.assertEqual(lane.segment_id, "h")
        self.assertEqual(lane.direction, 1)

        node, dist = self.graph.nearest_intersection(3.0, 4.0)
        self.assertEqual(node.id, "x0")
        self.assertAlmostEqual(dist, 5.0)

        seg, d = self.graph.nearest_segment(5.0, 30.0)
        self.assertEqual(seg.id, "v")
        self.assertAlmostEqual(d, 5.0)
        self.assertIsNone(self.graph.nearest_segment(5.0, 30.0, max_distance=4.0))

    def test_next_waypoint_stays_on_lane(self) -> None:
        nxt = self.graph.next_waypoint("h-wp0-lane0", 1)
        self.assertEqual(nxt.id, "h-wp1-lane0")
        back = self.graph.next_waypoint("h-wp3-lane1", -1)
        self.assertEqual(back.id, "h-wp2-lane1")

    def test_lane_end_without_junction_loops_back(self) -> None:
        lane = self.graph.get_lane("h-lane0")
        last = self.graph.get_waypoint(lane.waypoint_ids[-1])

        looped = self.graph.next_waypoint(last.id, 1)
        self.assertEqual(looped.id, lane.waypoint_ids[0])

        first = self.graph.get_waypoint(lane.waypoint_ids[0])
        self.assertEqual(
            self.graph.find_connecting_waypoint(first, -1).id, lane.waypoint_ids[-1],
        )

    def test_lane_end_at_junction_turns_onto_another_segment(self) -> None:
        graph = RoadGraph(
            [
                _segment("a", (-60.0, 0.0), (0.0, 0.0)),
                _segment("b", (0.0, 0.0), (0.0, 60.0)),
            ],
            [
                Intersection(
                    id=IntersectionId("t"), x=0.0, z=0.0,
                    connected_segments=(SegmentId("a"), SegmentId("b")),
                ),
            ],
        )
        lane = graph.get_lane("a-lane0")
        end = graph.get_waypoint(lane.waypoint_ids[-1])

        rng = random.Random(11)
        seen = set()
        for _ in range(20):
            wp = graph.find_connecting_waypoint(end, 1, rng)
            self.assertEqual(wp.segment_id, "b")
            target = graph.lane_of(wp)
            self.assertEqual(wp.id, target.entry_waypoint_id)
            seen.add(target.id)
        self.assertEqual(seen, {"b-lane0", "b-lane1"})

    def test_random_spawn_point_faces_travel_direction(self) -> None:
        graph = city_road_graph(rng=random.Random(1))
        rng = random.Random(8)
        for _ in range(50):
            spawn = graph.random_spawn_point(rng)
            lane = graph.get_lane(spawn.lane_id)
            seg = graph.get_segment(lane.segment_id)
            self.assertIn(seg.type, (SegmentType.MAIN, SegmentType.HIGHWAY))
            self.assertLess(spawn.waypoint_index, len(lane.waypoint_ids) - 1)

            here = graph.get_waypoint(lane.waypoint_ids[spawn.waypoint_index])
            nxt = graph.get_waypoint(lane.waypoint_ids[spawn.waypoint_index + 1])
            self.assertEqual((spawn.x, spawn.z), (here.x, here.z))
            fx, fz = heading_vector(spawn.heading)
            along = fx * (nxt.x - here.x) + fz * (nxt.z - here.z)
            self.assertGreater(along * lane.direction, 0.0)

    def test_as_dict_describes_geometry(self) -> None:
        data = self.graph.as_dict()
        self.assertEqual({s["id"] for s in data["segments"]}, {"h", "v"})
        self.assertEqual(data["intersections"][0]["center"], (0.0, 0.0))
        (min_x, max_x), _ = data["bounds"]
        self.assertAlmostEqual(min_x, -60.0)
        self.assertAlmostEqual(max_x, 60.0)


if __name__ == "__main__":
    unittest.main()
