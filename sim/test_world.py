#!/usr/bin/env python3
"""
World-level tests: tick orchestration, collision response, pedestrians,
the telemetry bus, the background bridge and the log wiring.
"""

from __future__ import annotations

import logging
import math
import os
import tempfile
import unittest

import config
from bus import TrafficBus
from logging_setup import setup_logging
from sim.car_agent import ExternalVehicle, VehicleState
from sim.pedestrian import Pedestrian
from sim.road_graph import RoadGraph, Segment, SegmentId, SegmentType, StraightGeometry
from sim.sim_bridge import TOPIC_VEHICLES, SimBridge
from sim.traffic_policy import TrafficPolicy
from sim.world import TrafficSimulation


def _remote_graph() -> RoadGraph:
    return RoadGraph([
        Segment(
            id=SegmentId("remote"), type=SegmentType.SIDE,
            geometry=StraightGeometry((100.0, 100.0), (160.0, 100.0)),
            width=6.0, lane_count=2, speed_limit=30.0,
        ),
    ])


class TrafficSimulationTests(unittest.TestCase):
    def test_city_population(self) -> None:
        sim = TrafficSimulation(num_agents=6, num_pedestrians=4, seed=1)
        self.assertEqual([a.id for a in sim.agents], [f"npc-{i}" for i in range(6)])
        self.assertEqual(len(sim.pedestrians), 4)
        self.assertEqual(len(sim.signal_states()), 21)
        self.assertEqual(sum(sim.state_counts().values()), 6)

    def test_colliding_agents_reverse_and_roll_back(self) -> None:
        sim = TrafficSimulation(num_agents=0, num_pedestrians=0, seed=1, graph=_remote_graph())
        a = sim.add_agent(0.0, 0.0, 0.0)
        b = sim.add_agent(2.0, 0.0, 0.0)
        a.speed = b.speed = 0.0

        sim.update(0.1)

        self.assertEqual(sim.collisions, 1)
        for agent, start in ((a, (0.0, 0.0)), (b, (2.0, 0.0))):
            self.assertEqual(agent.segment_direction, -1)
            self.assertAlmostEqual(agent.heading, math.pi)
            self.assertEqual((agent.x, agent.z), start)

    def test_player_is_never_moved_by_collisions(self) -> None:
        sim = TrafficSimulation(num_agents=0, num_pedestrians=0, seed=1, graph=_remote_graph())
        agent = sim.add_agent(0.0, 0.0, 0.0)
        agent.speed = 0.0
        player = ExternalVehicle(x=1.0, z=0.0)
        sim.set_player(player)

        sim.update(0.1)

        self.assertEqual(sim.collisions, 0)
        self.assertEqual((player.x, player.z), (1.0, 0.0))
        self.assertEqual(sim.snapshots()[-1].kind, "player")
        self.assertEqual(len(sim.snapshots(include_player=False)), 1)

    def test_frame_delta_is_clamped(self) -> None:
        sim = TrafficSimulation(num_agents=0, num_pedestrians=0, seed=1, graph=_remote_graph())
        sim.update(5.0)
        self.assertAlmostEqual(sim.elapsed, 0.1)
        sim.update(-1.0)
        self.assertAlmostEqual(sim.elapsed, 0.1)
        self.assertEqual(sim.tick_count, 2)

    def test_frame_clamp_comes_from_config_unless_overridden(self) -> None:
        self.assertEqual(TrafficPolicy().max_frame_dt_s, config.MAX_FRAME_DT_S)

        sim = TrafficSimulation(
            num_agents=0, num_pedestrians=0, seed=1, graph=_remote_graph(),
            policy=TrafficPolicy(max_frame_dt_s=0.25),
        )
        sim.update(5.0)
        self.assertAlmostEqual(sim.elapsed, 0.25)

    def test_same_seed_replays_same_scenario(self) -> None:
        def run(sim: TrafficSimulation):
            for _ in range(40):
                sim.update(0.05)
            return [(s.id, s.x, s.z, s.heading, s.speed) for s in sim.snapshots()]

        first = TrafficSimulation(num_agents=6, num_pedestrians=4, seed=42)
        second = TrafficSimulation(num_agents=6, num_pedestrians=4, seed=42)
        trace = run(first)
        self.assertEqual(trace, run(second))

        first.reset()
        self.assertEqual(first.tick_count, 0)
        self.assertEqual(trace, run(first))

    def test_stats(self) -> None:
        sim = TrafficSimulation(num_agents=2, num_pedestrians=2, seed=5)
        sim.update(0.05)
        stats = sim.stats()
        self.assertEqual(stats["tick"], 1)
        self.assertEqual(stats["agents"], 2)
        self.assertEqual(stats["pedestrians"], 2)
        self.assertIn("waiting", stats["states"])

    def test_release(self) -> None:
        sim = TrafficSimulation(num_agents=2, num_pedestrians=2, seed=5)
        agents = list(sim.agents)
        sim.release()
        self.assertTrue(all(a.released for a in agents))
        self.assertEqual(sim.snapshots(), [])


class PedestrianTests(unittest.TestCase):
    def _pedestrian(self) -> Pedestrian:
        return Pedestrian("ped-0", 0.0, 0.0, walk_radius=3.0, walk_speed=1.5)

    def test_walks_the_loop(self) -> None:
        ped = self._pedestrian()
        self.assertAlmostEqual(ped.x, 3.0)
        ped.update(1.0)
        self.assertAlmostEqual(ped.angle, 0.5)
        self.assertAlmostEqual(math.hypot(ped.x, ped.z), 3.0)

    def test_dodges_fast_vehicle_then_recovers(self) -> None:
        ped = self._pedestrian()
        car = VehicleState(id="npc-1", x=3.0, z=2.0, heading=0.0, speed=10.0)

        ped.update(0.1, [car])

        self.assertTrue(ped.dodging)
        self.assertAlmostEqual(ped.dodge_offset[0], 0.0)
        self.assertAlmostEqual(ped.dodge_offset[1], -1.5)
        self.assertLess(ped.z, 0.0)

        for _ in range(10):
            ped.update(0.1)
        self.assertFalse(ped.dodging)
        self.assertEqual(ped.dodge_offset, (0.0, 0.0))

    def test_slow_or_distant_vehicles_are_no_hazard(self) -> None:
        ped = self._pedestrian()
        crawling = VehicleState(id="npc-1", x=3.0, z=1.0, heading=0.0, speed=0.5)
        distant = VehicleState(id="npc-2", x=3.0, z=10.0, heading=0.0, speed=20.0)
        ped.update(0.1, [crawling, distant])
        self.assertFalse(ped.dodging)

    def test_waits_at_curb_without_walk_signal(self) -> None:
        ped = self._pedestrian()
        ped.update(0.1, walk_signal=False, on_road=lambda x, z: True)
        self.assertTrue(ped.waiting_for_signal)
        self.assertEqual(ped.angle, 0.0)

        ped.update(0.1, walk_signal=True, on_road=lambda x, z: True)
        self.assertFalse(ped.waiting_for_signal)
        self.assertAlmostEqual(ped.angle, 0.05)
        self.assertEqual(ped.as_dict()["id"], "ped-0")


class TrafficBusTests(unittest.TestCase):
    def test_dropped_messages_are_counted(self) -> None:
        bus = TrafficBus(drop_rate=1.0)
        with self.assertLogs("bus", level="WARNING"):
            self.assertIsNone(bus.publish("t", "sim", {"n": 1}))
        self.assertEqual(bus.metrics.dropped, 1)
        self.assertEqual(bus.metrics.published, 0)
        self.assertIsNone(bus.latest("t"))

    def test_latest_drains_topic(self) -> None:
        bus = TrafficBus()
        bus.publish("t", "sim", {"n": 1}, tick=1)
        bus.publish("t", "sim", {"n": 2}, tick=2)
        bus.publish("other", "sim", {"n": 3})

        msg = bus.latest("t")
        self.assertEqual(msg.payload, {"n": 2})
        self.assertEqual(msg.tick, 2)
        self.assertIsNone(bus.latest("t"))
        self.assertEqual(len(bus.poll("other")), 1)
        self.assertEqual(bus.metrics.report()["polled"], 3)

    def test_latency_holds_messages_back(self) -> None:
        bus = TrafficBus(latency_ms=60_000)
        bus.publish("t", "sim", {"n": 1})
        self.assertEqual(bus.poll("t"), [])
        self.assertEqual(bus.metrics.polled, 0)
        bus.latency_ms = 0
        self.assertEqual(len(bus.poll("t")), 1)


class SimBridgeTests(unittest.TestCase):
    def setUp(self) -> None:
        self.sim = TrafficSimulation(num_agents=3, num_pedestrians=2, seed=3)
        self.bridge = SimBridge(simulation=self.sim, random_seed=3)

    def test_step_publishes_and_caches(self) -> None:
        self.bridge.step(0.05)

        vehicles = self.bridge.get_vehicles()
        self.assertEqual(len(vehicles), 3)
        for vehicle in vehicles:
            self.assertIn("color", vehicle)
            self.assertIn("state", vehicle)
        self.assertEqual(len(self.bridge.get_signals()), 21)
        self.assertEqual(len(self.bridge.get_pedestrians()), 2)

        stats = self.bridge.get_stats()
        self.assertEqual(stats["tick"], 1)
        self.assertEqual(stats["rendered_tick"], 1)
        self.assertEqual(stats["bus"]["published"], 3)

    def test_dropped_frame_keeps_previous_snapshot(self) -> None:
        self.bridge.step(0.05)
        before = self.bridge.get_vehicles()

        self.bridge.bus.drop_rate = 1.0
        with self.assertLogs("bus", level="WARNING"):
            self.bridge.step(0.05)

        self.assertEqual(self.bridge.get_vehicles(), before)
        stats = self.bridge.get_stats()
        self.assertEqual(stats["tick"], 2)
        self.assertEqual(stats["rendered_tick"], 1)
        self.assertEqual(stats["bus"]["dropped"], 3)

    def test_player_is_published(self) -> None:
        self.bridge.set_player(10.0, 20.0, 0.0, 5.0)
        self.bridge.step(0.05)

        player = [v for v in self.bridge.get_vehicles() if v["kind"] == "player"]
        self.assertEqual(len(player), 1)
        self.assertEqual((player[0]["x"], player[0]["z"]), (10.0, 20.0))
        self.assertEqual(player[0]["color"], (255, 255, 255))

    def test_reset_clears_cache(self) -> None:
        self.bridge.step(0.05)
        self.bridge.reset()
        self.assertEqual(self.sim.tick_count, 0)
        self.assertEqual(self.bridge.get_vehicles(), [])
        self.assertIsNone(self.bridge.bus.latest(TOPIC_VEHICLES))

    def test_network_and_pause(self) -> None:
        network = self.bridge.get_network()
        self.assertEqual(len(network["segments"]), 30)
        self.assertEqual(len(network["intersections"]), 25)

        self.assertFalse(self.bridge.is_paused())
        self.bridge.set_paused(True)
        self.assertTrue(self.bridge.is_paused())


class LoggingSetupTests(unittest.TestCase):
    def setUp(self) -> None:
        root = logging.getLogger()
        world = logging.getLogger("world")
        self._saved = (root.level, list(root.handlers), world.level, list(world.handlers))
        self._tmp = tempfile.TemporaryDirectory()

    def tearDown(self) -> None:
        root = logging.getLogger()
        world = logging.getLogger("world")
        for logger in (root, world):
            for handler in list(logger.handlers):
                logger.removeHandler(handler)
                handler.close()
        root_level, root_handlers, world_level, world_handlers = self._saved
        root.setLevel(root_level)
        for handler in root_handlers:
            root.addHandler(handler)
        world.setLevel(world_level)
        for handler in world_handlers:
            world.addHandler(handler)
        self._tmp.cleanup()

    def test_tick_dump_only_reaches_debug_file(self) -> None:
        main_log = os.path.join(self._tmp.name, "traffic.log")
        debug_log = os.path.join(self._tmp.name, "traffic_debug.log")
        setup_logging(logging.INFO, log_file=main_log, debug_file=debug_log)

        logging.getLogger("world").debug("=== TICK 1 ===")
        logging.getLogger("world").info("Simulation reset")
        for handler in logging.getLogger().handlers + logging.getLogger("world").handlers:
            handler.flush()

        with open(debug_log, encoding="utf-8") as fh:
            debug_text = fh.read()
        with open(main_log, encoding="utf-8") as fh:
            main_text = fh.read()
        self.assertIn("=== TICK 1 ===", debug_text)
        self.assertIn("Simulation reset", debug_text)
        self.assertNotIn("=== TICK 1 ===", main_text)
        self.assertIn("Simulation reset", main_text)

    def test_repeated_setup_does_not_stack_handlers(self) -> None:
        main_log = os.path.join(self._tmp.name, "traffic.log")
        debug_log = os.path.join(self._tmp.name, "traffic_debug.log")
        for _ in range(2):
            setup_logging(logging.WARNING, log_file=main_log, debug_file=debug_log)
        self.assertEqual(len(logging.getLogger("world").handlers), 1)
        self.assertEqual(len(logging.getLogger().handlers), 2)

        setup_logging(logging.WARNING, log_file=main_log, debug_file=None)
        self.assertEqual(logging.getLogger("world").handlers, [])


if __name__ == "__main__":
    unittest.main()
