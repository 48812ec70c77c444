#!/usr/bin/env python3
"""
sim/world.py
============
City traffic orchestrator.

:class:`TrafficSimulation` owns the road graph, the signal coordinator,
every NPC :class:`~sim.car_agent.CarAgent` and every
:class:`~sim.pedestrian.Pedestrian`.  One call to :meth:`update` is one
tick:

1. clamp the frame delta,
2. advance the lights,
3. snapshot every vehicle (plus the player) once,
4. update the agents in list order against that snapshot,
5. apply the pairwise collision response,
6. update the pedestrians against the committed vehicle positions.
"""

from __future__ import annotations

import logging
import math
import random
from typing import Any, Dict, List, Optional, Set, Tuple

import config
from sim.car_agent import BehaviorState, CarAgent, ExternalVehicle, VehicleState
from sim.pedestrian import Pedestrian
from sim.road_graph import RoadGraph, city_road_graph
from sim.signals import SignalCoordinator, StopQuery
from sim.traffic_policy import TrafficPolicy

log = logging.getLogger("world")

# Per-tick state dump cadence (ticks)
_DEBUG_DUMP_EVERY = 30


class TrafficSimulation:
    """City scenario: lights, NPC cars and pedestrians on a road graph.

    Parameters
    ----------
    num_agents : int
        Number of NPC cars spawned at random main-road / highway points.
    num_pedestrians : int
        Number of pedestrians placed around the building zones.
    seed : int or None
        Random seed; the same seed replays the same scenario.
    policy : TrafficPolicy or None
        Tunable constants; uses defaults when *None*.
    graph : RoadGraph or None
        The road layout.  Uses :func:`city_road_graph` when *None*.
    """

    def __init__(
        self,
        num_agents: int = config.DEFAULT_NPC_COUNT,
        num_pedestrians: int = config.DEFAULT_PEDESTRIAN_COUNT,
        seed: Optional[int] = None,
        policy: Optional[TrafficPolicy] = None,
        graph: Optional[RoadGraph] = None,
    ) -> None:
        self.policy = policy or TrafficPolicy()
        self.seed = seed
        self.num_agents = max(0, int(num_agents))
        self.num_pedestrians = max(0, int(num_pedestrians))
        self._rng = random.Random(seed)
        self.graph = graph or city_road_graph(rng=random.Random(seed))
        self.signals = SignalCoordinator(self.graph, self.policy)

        self.agents: List[CarAgent] = []
        self.pedestrians: List[Pedestrian] = []
        self.player: Optional[ExternalVehicle] = None
        self.tick_count = 0
        self.elapsed = 0.0
        self.collisions = 0
        self._next_agent_index = 0

        self._populate()
        log.info(
            "Traffic simulation ready: %d agents, %d pedestrians, seed=%s",
            len(self.agents), len(self.pedestrians), seed,
        )

    # ── initialisation / reset ────────────────────────────────────────────

    def _populate(self) -> None:
        for _ in range(self.num_agents):
            spawn = self.graph.random_spawn_point(self._rng)
            if spawn is None:
                log.warning("No main-road or highway lane to spawn on")
                break
            self.add_agent(spawn.x, spawn.z, spawn.heading)

        zones = self.graph.building_zones()
        if self.num_pedestrians and not zones:
            log.warning("No building zones, pedestrians not placed")
            return
        p = self.policy
        for i in range(self.num_pedestrians):
            zone = zones[i % len(zones)]
            jitter = zone.size / 8.0
            self.pedestrians.append(Pedestrian(
                f"ped-{i}",
                zone.x + self._rng.uniform(-jitter, jitter),
                zone.z + self._rng.uniform(-jitter, jitter),
                walk_radius=self._rng.uniform(p.pedestrian_walk_radius_min, p.pedestrian_walk_radius_max),
                walk_speed=self._rng.uniform(p.pedestrian_walk_speed_min, p.pedestrian_walk_speed_max),
                angle=self._rng.uniform(0.0, 2.0 * math.pi),
                policy=p,
            ))

    def add_agent(self, x: float, z: float, heading: float) -> CarAgent:
        """Spawn one more NPC at *(x, z)* facing *heading*."""
        agent = CarAgent(
            f"npc-{self._next_agent_index}",
            self.graph,
            self.signals,
            self.policy,
            rng=random.Random(self._rng.getrandbits(32)),
        )
        self._next_agent_index += 1
        agent.spawn(x, z, heading)
        self.agents.append(agent)
        return agent

    def set_player(self, vehicle: Optional[ExternalVehicle]) -> None:
        """Register the externally driven vehicle agents must sense."""
        self.player = vehicle

    def reset(self) -> None:
        """Re-initialise lights, agents and pedestrians so the scenario replays."""
        for agent in self.agents:
            agent.release()
        self.agents = []
        self.pedestrians = []
        self._rng = random.Random(self.seed)
        self.signals = SignalCoordinator(self.graph, self.policy)
        self.tick_count = 0
        self.elapsed = 0.0
        self.collisions = 0
        self._next_agent_index = 0
        self._populate()
        log.info("Simulation reset (seed=%s)", self.seed)

    def release(self) -> None:
        for agent in self.agents:
            agent.release()
        self.agents = []
        self.pedestrians = []
        self.signals.release()
        log.info("Simulation released after %d ticks", self.tick_count)

    # ── tick ──────────────────────────────────────────────────────────────

    def update(self, dt: float) -> None:
        """Advance the whole scenario by one tick of *dt* seconds."""
        dt = max(0.0, min(float(dt), self.policy.max_frame_dt_s))
        self.tick_count += 1
        self.elapsed += dt

        self.signals.update(dt)

        frame = self.snapshots()
        before = [(agent.x, agent.z) for agent in self.agents]
        for agent in self.agents:
            agent.update(dt, frame)

        self._apply_collision_response(before)

        committed = self.snapshots()
        for ped in self.pedestrians:
            ped.update(
                dt,
                committed,
                self.signals.is_pedestrian_walk_signal(ped.x, ped.z),
                self.graph.on_road,
            )

        if self.tick_count % _DEBUG_DUMP_EVERY == 1:
            self._debug_dump()

    def _apply_collision_response(self, before: List[Tuple[float, float]]) -> int:
        """Reverse and roll back every agent closer than the collision radius.

        Each marked agent is handled once per tick, however many pairs it
        belongs to.  The player is never moved.
        """
        radius = self.policy.collision_radius
        marked: Set[int] = set()
        agents = self.agents
        for i in range(len(agents)):
            a = agents[i]
            if a.released:
                continue
            for j in range(i + 1, len(agents)):
                b = agents[j]
                if b.released:
                    continue
                if math.hypot(a.x - b.x, a.z - b.z) < radius:
                    marked.add(i)
                    marked.add(j)
                    self.collisions += 1
                    log.debug("collision %s <-> %s at tick %d", a.id, b.id, self.tick_count)

        for i in sorted(marked):
            agent = agents[i]
            agent.reverse_direction()
            agent.x, agent.z = before[i]
        return len(marked)

    def _debug_dump(self) -> None:
        log.debug("=== TICK %d (t=%.1fs) ===", self.tick_count, self.elapsed)
        for agent in self.agents:
            log.debug(
                "  %s pos=(%.1f,%.1f) hdg=%.2f spd=%.1f tgt=%.1f state=%s seg=%s "
                "prog=%.2f dir=%+d ahead=%s",
                agent.id, agent.x, agent.z, agent.heading, agent.speed,
                agent.target_speed, agent.state.value,
                agent.segment.id if agent.segment else None,
                agent.segment_progress, agent.segment_direction,
                agent.vehicle_ahead,
            )

    # ── queries ───────────────────────────────────────────────────────────

    def snapshots(self, include_player: bool = True) -> List[VehicleState]:
        """Immutable snapshot of every live agent, plus the player if set."""
        frame = [agent.snapshot() for agent in self.agents if not agent.released]
        if include_player and self.player is not None:
            frame.append(self.player.snapshot())
        return frame

    def signal_states(self) -> List[Dict[str, Any]]:
        return self.signals.as_dict()

    def pedestrian_states(self) -> List[Dict[str, Any]]:
        return [ped.as_dict() for ped in self.pedestrians]

    def state_counts(self) -> Dict[str, int]:
        counts = {state.value: 0 for state in BehaviorState}
        for agent in self.agents:
            counts[agent.state.value] += 1
        return counts

    def should_stop(
        self, x: float, z: float, heading: float, lookahead: Optional[float] = None,
    ) -> StopQuery:
        return self.signals.should_stop(x, z, heading, lookahead)

    def is_pedestrian_walk_signal(self, x: float, z: float) -> bool:
        return self.signals.is_pedestrian_walk_signal(x, z)

    def stats(self) -> Dict[str, Any]:
        return {
            "tick": self.tick_count,
            "elapsed_s": round(self.elapsed, 2),
            "agents": len(self.agents),
            "pedestrians": len(self.pedestrians),
            "dodging": sum(1 for ped in self.pedestrians if ped.dodging),
            "collisions": self.collisions,
            "states": self.state_counts(),
        }
