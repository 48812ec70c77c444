"""
sim/car_agent.py
================
A single autonomous NPC car. Each agent:
  - owns its position / heading / speed and behaviour state
  - queries the signal coordinator for red or yellow lights ahead
  - keeps its distance to the nearest vehicle ahead in the frame snapshot
  - follows its current road segment and picks a random continuation at
    the end of it

Agents never mutate the road graph, the signals or each other; the world
orchestrator alone applies the collision response through
:meth:`CarAgent.reverse_direction`.
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Optional, Protocol, Sequence

from sim.geometry import distance, heading_towards, heading_vector, wrap_angle
from sim.road_graph import Lane, RoadGraph, Segment
from sim.signals import SignalCoordinator
from sim.traffic_policy import TrafficPolicy

log = logging.getLogger("car_agent")


class BehaviorState(str, Enum):
    DRIVING = "driving"
    STOPPING = "stopping"
    WAITING = "waiting"
    ACCELERATING = "accelerating"
    TURNING = "turning"


class TurnSignal(str, Enum):
    LEFT = "left"
    RIGHT = "right"
    NONE = "none"


class SensedVehicle(Protocol):
    """Anything another agent can see: an id, a pose and a speed."""

    @property
    def id(self) -> str: ...

    @property
    def x(self) -> float: ...

    @property
    def z(self) -> float: ...

    @property
    def heading(self) -> float: ...

    @property
    def speed(self) -> float: ...


@dataclass(frozen=True)
class VehicleState:
    """Immutable per-frame snapshot of a vehicle."""

    id: str
    x: float
    z: float
    heading: float
    speed: float
    state: str = BehaviorState.DRIVING.value
    turn_signal: str = TurnSignal.NONE.value
    signal_lit: bool = False
    braking: bool = False
    kind: str = "npc"

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ExternalVehicle:
    """Sensed actor driven by something outside the simulation (the player).

    The host updates the pose every frame; agents only read it.
    """

    id: str = "player"
    x: float = 0.0
    z: float = 0.0
    heading: float = 0.0
    speed: float = 0.0

    def snapshot(self) -> VehicleState:
        return VehicleState(
            id=self.id, x=self.x, z=self.z, heading=self.heading,
            speed=self.speed, kind="player",
        )


class CarAgent:
    """
    One autonomous NPC car.

    Parameters
    ----------
    agent_id : str
        Unique identifier, e.g. ``"npc-0"``.
    graph : RoadGraph
        Static road topology (read only).
    signals : SignalCoordinator
        Traffic lights to obey (read only).
    policy : TrafficPolicy, optional
        Driving parameters; defaults to :class:`TrafficPolicy`.
    rng : random.Random, optional
        Source for turn choices and lane offsets.
    """

    def __init__(
        self,
        agent_id: str,
        graph: RoadGraph,
        signals: SignalCoordinator,
        policy: Optional[TrafficPolicy] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.id = agent_id
        self.graph = graph
        self.signals = signals
        self.policy = policy or TrafficPolicy()
        self._rng = rng or random.Random()

        self.x = 0.0
        self.z = 0.0
        self.heading = 0.0
        self.speed = 0.0
        self.target_speed = self.policy.default_speed
        self.state = BehaviorState.DRIVING

        self.lane: Optional[Lane] = None
        self.segment: Optional[Segment] = None
        self.segment_progress = 0.0
        self.segment_direction = 1
        self.lateral_offset = 0.0

        self.stopping_distance = 0.0
        self.wait_timer = 0.0

        self.turn_signal = TurnSignal.NONE
        self.blink_timer = 0.0
        self.signal_lit = False
        self.braking = False

        self.vehicle_ahead: Optional[str] = None
        self.vehicle_ahead_distance = math.inf
        self.released = False

    def __repr__(self) -> str:
        return (
            f"CarAgent({self.id!r}, x={self.x:.1f}, z={self.z:.1f}, "
            f"speed={self.speed:.1f}, state={self.state.value})"
        )

    # ── lifecycle ─────────────────────────────────────────────────────────

    def spawn(self, x: float, z: float, heading: float) -> None:
        """Place the agent and bind it to the nearest lane.

        The segment itself is bound on the first :meth:`update`.
        """
        self.x = float(x)
        self.z = float(z)
        self.heading = wrap_angle(heading)
        self.lane = self.graph.nearest_lane(self.x, self.z)
        self.segment = None
        self.segment_progress = 0.0
        self.target_speed = self._lane_speed_limit()
        self.speed = self.target_speed * self.policy.spawn_speed_factor
        self.state = BehaviorState.DRIVING
        self.wait_timer = 0.0
        self.released = False
        log.debug(
            "%s spawned at (%.1f, %.1f) heading %.2f on %s",
            self.id, self.x, self.z, self.heading,
            self.lane.id if self.lane else None,
        )

    def release(self) -> None:
        self.released = True
        self.lane = None
        self.segment = None
        self.vehicle_ahead = None
        log.debug("%s released", self.id)

    # ── per-tick behaviour ────────────────────────────────────────────────

    def update(self, dt: float, frame: Sequence[SensedVehicle]) -> None:
        """Advance the agent by *dt* seconds.

        Parameters
        ----------
        dt : float
            Frame delta in seconds (negative values are treated as 0).
        frame : sequence of SensedVehicle
            Snapshot of every vehicle taken at the top of the tick,
            including this agent and the player.
        """
        if self.released:
            return
        dt = max(0.0, dt)

        self._react_to_signals()
        follow_cap = self._scan_traffic(frame)
        self._apply_state_rules(dt, follow_cap)
        self._update_speed(dt)
        self._follow_segment(dt)
        self._keep_in_bounds(dt)

        fx, fz = heading_vector(self.heading)
        self.x += fx * self.speed * dt
        self.z += fz * self.speed * dt

        self._update_turn_signal(dt)

    def _set_state(self, state: BehaviorState) -> None:
        if state is not self.state:
            log.debug("%s: %s -> %s", self.id, self.state.value, state.value)
            self.state = state

    def _lane_speed_limit(self) -> float:
        """Lane limit, never above what the agent can actually reach."""
        limit = self.lane.speed_limit if self.lane is not None else self.policy.default_speed
        return min(limit, self.policy.max_speed)

    def _react_to_signals(self) -> None:
        p = self.policy
        query = self.signals.should_stop(self.x, self.z, self.heading, p.signal_lookahead)
        if query.should_stop and query.distance < p.signal_stop_trigger:
            if self.state is not BehaviorState.WAITING:
                self._set_state(BehaviorState.STOPPING)
            self.stopping_distance = max(0.0, query.distance - p.stop_margin)
        elif self.state in (BehaviorState.STOPPING, BehaviorState.WAITING):
            self._set_state(BehaviorState.ACCELERATING)

    def _scan_traffic(self, frame: Sequence[SensedVehicle]) -> Optional[float]:
        """Track the nearest vehicle ahead; return a speed cap if following."""
        p = self.policy
        fx, fz = heading_vector(self.heading)
        nearest: Optional[SensedVehicle] = None
        nearest_dist = math.inf

        for other in frame:
            if other.id == self.id:
                continue
            dx = other.x - self.x
            dz = other.z - self.z
            dist = math.hypot(dx, dz)
            if dist > 2.0 * p.follow_distance:
                continue
            if fx * dx + fz * dz < 0.0:
                continue
            if abs(fx * dz - fz * dx) > p.follow_lateral_tolerance:
                continue
            if dist < nearest_dist:
                nearest = other
                nearest_dist = dist

        self.vehicle_ahead = nearest.id if nearest is not None else None
        self.vehicle_ahead_distance = nearest_dist
        if nearest is None:
            return None
        if nearest_dist < p.safe_distance:
            if self.state is not BehaviorState.WAITING:
                self._set_state(BehaviorState.STOPPING)
            return None
        if nearest_dist < p.follow_distance:
            return max(0.0, nearest.speed)
        return None

    def _apply_state_rules(self, dt: float, follow_cap: Optional[float]) -> None:
        p = self.policy
        limit = self._lane_speed_limit()
        if self.state is BehaviorState.DRIVING:
            self.target_speed = limit
        elif self.state is BehaviorState.STOPPING:
            self.target_speed = 0.0
            if self.speed < p.stopped_speed:
                self._set_state(BehaviorState.WAITING)
                self.wait_timer = 0.0
        elif self.state is BehaviorState.WAITING:
            self.target_speed = 0.0
            self.wait_timer += dt
        elif self.state is BehaviorState.ACCELERATING:
            self.target_speed = limit
            if self.speed >= p.resume_fraction * self.target_speed:
                self._set_state(BehaviorState.DRIVING)
        elif self.state is BehaviorState.TURNING:
            self.target_speed = p.turning_speed

        if follow_cap is not None:
            self.target_speed = min(self.target_speed, follow_cap)

    def _update_speed(self, dt: float) -> None:
        p = self.policy
        self.braking = (
            self.speed > self.target_speed
            or self.state in (BehaviorState.STOPPING, BehaviorState.WAITING)
        )
        if self.speed < self.target_speed:
            self.speed = min(self.target_speed, self.speed + p.acceleration * dt)
        elif self.speed > self.target_speed:
            self.speed = max(self.target_speed, self.speed - p.brake_force * dt)
        self.speed = max(0.0, min(self.speed, p.max_speed))

    # ── segment following ─────────────────────────────────────────────────

    def _segment_param(self, progress: float) -> float:
        """Geometry parameter for *progress* along the travel direction."""
        return progress if self.segment_direction > 0 else 1.0 - progress

    def _follow_segment(self, dt: float) -> None:
        p = self.policy
        if self.segment is None:
            self._bind_nearest_segment()
            if self.segment is None:
                self.turn_signal = TurnSignal.NONE
                return

        seg = self.segment
        projected = seg.geometry.project(self.x, self.z)
        along = projected if self.segment_direction > 0 else 1.0 - projected
        self.segment_progress = max(self.segment_progress, along)

        ahead = min(1.0, self.segment_progress + p.lookahead_progress)
        tx, tz = seg.geometry.point_at(self._segment_param(ahead), self.lateral_offset)
        dx = tx - self.x
        dz = tz - self.z

        delta = wrap_angle(heading_towards(dx, dz) - self.heading)
        self.heading = wrap_angle(self.heading + delta * p.turn_speed * dt)

        # Heading grows clockwise seen from above: positive delta is a right turn.
        if abs(delta) > p.turn_signal_threshold:
            self.turn_signal = TurnSignal.RIGHT if delta > 0 else TurnSignal.LEFT
        else:
            self.turn_signal = TurnSignal.NONE

        if self.state is BehaviorState.DRIVING and abs(delta) > p.turning_enter_delta:
            self._set_state(BehaviorState.TURNING)
        elif self.state is BehaviorState.TURNING and abs(delta) <= p.turn_signal_threshold:
            self._set_state(BehaviorState.DRIVING)

        if math.hypot(dx, dz) < p.target_reach_distance:
            self.segment_progress += p.progress_step
        if self.segment_progress >= 1.0:
            self.pick_next_segment()

    def _random_offset(self, seg: Segment) -> float:
        return (self._rng.random() - 0.5) * seg.width * self.policy.lateral_offset_fraction

    def _lane_for(self, seg: Segment, direction: int, offset: float) -> Optional[Lane]:
        lanes = [lane for lane in (self.graph.get_lane(lid) for lid in seg.lane_ids) if lane]
        same_way = [lane for lane in lanes if lane.direction == direction] or lanes
        if not same_way:
            return None
        return min(same_way, key=lambda lane: abs(lane.offset - offset))

    def _enter_segment(
        self, seg: Segment, direction: int, offset: float, progress: float = 0.0,
    ) -> None:
        self.segment = seg
        self.segment_direction = direction
        self.lateral_offset = offset
        self.segment_progress = max(0.0, min(1.0, progress))
        self.lane = self._lane_for(seg, direction, offset)
        log.debug(
            "%s entered %s (direction %+d, offset %.2f, progress %.2f)",
            self.id, seg.id, direction, offset, self.segment_progress,
        )

    def _bind_nearest_segment(self) -> None:
        """Bind to the closest segment within the bind radius, if any."""
        found = self.graph.nearest_segment(self.x, self.z, self.policy.bind_radius)
        if found is None:
            return
        seg, _ = found
        lane = self.graph.nearest_lane(self.x, self.z)
        if lane is not None and lane.segment_id == seg.id:
            direction, offset = lane.direction, lane.offset
        else:
            direction = 1 if self._rng.random() > 0.5 else -1
            offset = self._random_offset(seg)
        t = seg.geometry.project(self.x, self.z)
        self._enter_segment(seg, direction, offset, t if direction > 0 else 1.0 - t)

    def pick_next_segment(self) -> None:
        """Continue onto a random segment touching the current position.

        The new direction leads away from the junction.  With no candidate
        the agent turns around on its current segment.
        """
        here = (self.x, self.z)
        current = self.segment.id if self.segment is not None else None
        candidates = [
            seg for seg in self.graph.segments_touching(
                self.x, self.z, self.policy.junction_radius,
            )
            if seg.id != current
        ]
        if candidates:
            seg = self._rng.choice(candidates)
            direction = 1 if distance(seg.start, here) <= distance(seg.end, here) else -1
            self._enter_segment(seg, direction, self._random_offset(seg))
        else:
            self.segment_progress = 0.0
            self.segment_direction *= -1
            log.debug("%s dead end, reversing to %+d", self.id, self.segment_direction)

    def reverse_direction(self) -> None:
        """Turn around on the current segment (collision response)."""
        self.segment_direction *= -1
        self.heading = wrap_angle(self.heading + math.pi)
        self.segment_progress = max(0.0, min(1.0, 1.0 - self.segment_progress))

    def _keep_in_bounds(self, dt: float) -> None:
        p = self.policy
        if abs(self.x) > p.city_bound or abs(self.z) > p.city_bound:
            delta = wrap_angle(heading_towards(-self.x, -self.z) - self.heading)
            self.heading = wrap_angle(self.heading + delta * p.bound_steer_rate * dt)

    def _update_turn_signal(self, dt: float) -> None:
        if self.turn_signal is TurnSignal.NONE:
            self.blink_timer = 0.0
            self.signal_lit = False
            return
        self.blink_timer += dt
        if self.blink_timer >= self.policy.blink_interval_s:
            self.blink_timer = 0.0
            self.signal_lit = not self.signal_lit

    # ── serialisation ─────────────────────────────────────────────────────

    def snapshot(self) -> VehicleState:
        return VehicleState(
            id=self.id,
            x=self.x,
            z=self.z,
            heading=self.heading,
            speed=self.speed,
            state=self.state.value,
            turn_signal=self.turn_signal.value,
            signal_lit=self.signal_lit,
            braking=self.braking,
        )

    def as_dict(self) -> Dict[str, Any]:
        """Full state dict for UI / bus consumers."""
        data = self.snapshot().as_dict()
        data.update({
            "target_speed": self.target_speed,
            "lane": self.lane.id if self.lane else None,
            "segment": self.segment.id if self.segment else None,
            "segment_progress": round(self.segment_progress, 3),
            "segment_direction": self.segment_direction,
            "wait_timer": round(self.wait_timer, 2),
            "vehicle_ahead": self.vehicle_ahead,
        })
        return data
