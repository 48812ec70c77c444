#!/usr/bin/env python3
"""
sim/signals.py
==============
Fixed-cycle traffic lights and their green-wave coordination.

* :class:`SignalController` — six-phase state machine for one signaled
  intersection (NS green → NS yellow → all red → EW green → EW yellow →
  all red).
* :class:`SignalCoordinator` — owns one controller per signaled
  intersection of a :class:`~sim.road_graph.RoadGraph`, applies the
  green-wave offsets once, and answers "must I stop?" queries for agents
  and "may I walk?" queries for pedestrians.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from sim.geometry import Point, heading_vector
from sim.road_graph import IntersectionId, RoadGraph
from sim.traffic_policy import TrafficPolicy

log = logging.getLogger("signals")


class SignalConfigError(ValueError):
    """Raised for an empty or malformed phase list."""


class Aspect(str, Enum):
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"


class Approach(str, Enum):
    """Side of the intersection a vehicle arrives from."""

    NORTH = "north"
    SOUTH = "south"
    EAST = "east"
    WEST = "west"

    @property
    def axis(self) -> str:
        return "NS" if self in (Approach.NORTH, Approach.SOUTH) else "EW"


@dataclass(frozen=True)
class Phase:
    name: str
    duration: float
    ns: Aspect
    ew: Aspect

    @property
    def is_all_red(self) -> bool:
        return self.ns is Aspect.RED and self.ew is Aspect.RED


def build_phase_cycle(
    green_s: float = 10.0,
    yellow_s: float = 2.0,
    all_red_s: float = 1.0,
) -> Tuple[Phase, ...]:
    """Return the standard six-phase cycle for the given durations."""
    return (
        Phase("NS_GREEN", green_s, Aspect.GREEN, Aspect.RED),
        Phase("NS_YELLOW", yellow_s, Aspect.YELLOW, Aspect.RED),
        Phase("ALL_RED_1", all_red_s, Aspect.RED, Aspect.RED),
        Phase("EW_GREEN", green_s, Aspect.RED, Aspect.GREEN),
        Phase("EW_YELLOW", yellow_s, Aspect.RED, Aspect.YELLOW),
        Phase("ALL_RED_2", all_red_s, Aspect.RED, Aspect.RED),
    )


# ── Single intersection ───────────────────────────────────────────────────────

class SignalController:
    """Phase state machine for one intersection.

    Parameters
    ----------
    intersection_id : str
        Id of the intersection this light belongs to.
    position : (float, float)
        Intersection centre.
    phases : sequence of Phase, optional
        Phase list; defaults to :func:`build_phase_cycle`.

    Raises
    ------
    SignalConfigError
        If *phases* is empty, a duration is not positive, or a phase shows
        a non-red aspect on both axes.
    """

    def __init__(
        self,
        intersection_id: str,
        position: Point,
        phases: Optional[Sequence[Phase]] = None,
    ) -> None:
        phases = tuple(phases) if phases is not None else build_phase_cycle()
        if not phases:
            raise SignalConfigError(f"{intersection_id}: empty phase list")
        for phase in phases:
            if not phase.duration > 0.0:
                raise SignalConfigError(
                    f"{intersection_id}: phase {phase.name} has non-positive "
                    f"duration {phase.duration}"
                )
            if phase.ns is not Aspect.RED and phase.ew is not Aspect.RED:
                raise SignalConfigError(
                    f"{intersection_id}: phase {phase.name} releases both axes"
                )
        self.intersection_id = intersection_id
        self.position: Point = (float(position[0]), float(position[1]))
        self.phases: Tuple[Phase, ...] = phases
        self._phase_index = 0
        self._time_in_phase = 0.0
        self._phase_offset = 0.0

    # ── state ─────────────────────────────────────────────────────────────

    @property
    def cycle_length(self) -> float:
        return sum(p.duration for p in self.phases)

    @property
    def phase_index(self) -> int:
        return self._phase_index

    @property
    def current_phase(self) -> Phase:
        return self.phases[self._phase_index]

    @property
    def time_in_phase(self) -> float:
        return self._time_in_phase

    @property
    def phase_offset(self) -> float:
        return self._phase_offset

    @property
    def is_all_red(self) -> bool:
        return self.current_phase.is_all_red

    # ── behaviour ─────────────────────────────────────────────────────────

    def update(self, dt: float) -> None:
        """Advance the clock by *dt*; negative deltas are ignored."""
        self._time_in_phase += max(0.0, dt)
        if self._time_in_phase >= self.current_phase.duration:
            self._time_in_phase = 0.0
            self._phase_index = (self._phase_index + 1) % len(self.phases)

    def get_state(self, approach: Union[Approach, str]) -> Aspect:
        phase = self.current_phase
        return phase.ns if Approach(approach).axis == "NS" else phase.ew

    def can_proceed(self, approach: Union[Approach, str]) -> bool:
        return self.get_state(approach) is Aspect.GREEN

    def should_prepare_to_stop(self, approach: Union[Approach, str]) -> bool:
        return self.get_state(approach) is Aspect.YELLOW

    def set_phase_offset(self, offset: float) -> None:
        """Jump to the point of the cycle *offset* seconds after its start.

        The offset is reduced modulo the cycle length; phase durations are
        then subtracted until the remainder fits inside a phase.  This is a
        one-time re-synchronisation, not a persistent delay.
        """
        cycle = self.cycle_length
        t = offset % cycle
        index = 0
        remainder = t
        for i, phase in enumerate(self.phases):
            if remainder < phase.duration:
                index = i
                break
            remainder -= phase.duration
        else:
            # Floating-point residue at the very end of the cycle
            remainder = 0.0
        self._phase_index = index
        self._time_in_phase = remainder
        self._phase_offset = t

    def as_dict(self) -> Dict[str, Any]:
        phase = self.current_phase
        return {
            "id": self.intersection_id,
            "x": self.position[0],
            "z": self.position[1],
            "phase": phase.name,
            "phase_index": self._phase_index,
            "time_in_phase": round(self._time_in_phase, 2),
            "ns": phase.ns.value,
            "ew": phase.ew.value,
            "offset": round(self._phase_offset, 2),
        }


# ── Stop query ────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class StopQuery:
    """Result of :meth:`SignalCoordinator.should_stop`."""

    should_stop: bool
    distance: float = math.inf
    intersection_id: Optional[str] = None
    aspect: Optional[Aspect] = None
    approach: Optional[Approach] = None
    stop_position: Optional[Point] = None


NO_STOP = StopQuery(should_stop=False)


def classify_approach(dx: float, dz: float) -> Approach:
    """Approach side for a vehicle whose offset to the light is *(dx, dz)*."""
    if abs(dx) > abs(dz):
        return Approach.WEST if dx > 0 else Approach.EAST
    return Approach.SOUTH if dz > 0 else Approach.NORTH


def stop_position(center: Point, approach: Approach, stop_distance: float) -> Point:
    """Point *stop_distance* before *center* on the *approach* side."""
    cx, cz = center
    if approach is Approach.WEST:
        return (cx - stop_distance, cz)
    if approach is Approach.EAST:
        return (cx + stop_distance, cz)
    if approach is Approach.SOUTH:
        return (cx, cz - stop_distance)
    return (cx, cz + stop_distance)


def green_wave_offsets(
    stops: Sequence[Tuple[str, float]],
    wave_speed: float,
    cycle_length: float,
    base_offset: float = 0.0,
) -> Dict[str, float]:
    """Phase offsets for lights along one road.

    Parameters
    ----------
    stops : sequence of (id, coordinate)
        Lights on the road and their coordinate along it.
    wave_speed : float
        Progression speed; each light starts ``distance / wave_speed``
        seconds after the previous one.
    cycle_length : float
        Offsets are reduced modulo this.
    base_offset : float
        Offset of the first light after sorting.

    Returns
    -------
    dict
        ``{id: offset}`` with every offset in ``[0, cycle_length)``.
    """
    if wave_speed <= 0.0 or cycle_length <= 0.0:
        raise ValueError("wave speed and cycle length must be positive")
    offsets: Dict[str, float] = {}
    cumulative = base_offset
    previous: Optional[float] = None
    for stop_id, coord in sorted(stops, key=lambda s: s[1]):
        if previous is not None:
            cumulative += (coord - previous) / wave_speed
        offsets[stop_id] = cumulative % cycle_length
        previous = coord
    return offsets


# ── Network of lights ─────────────────────────────────────────────────────────

class SignalCoordinator:
    """All traffic lights of a road graph.

    One :class:`SignalController` is created per signaled intersection,
    with the phase durations from *policy*.  When the policy enables it the
    green wave is applied immediately.
    """

    def __init__(self, graph: RoadGraph, policy: Optional[TrafficPolicy] = None) -> None:
        self.graph = graph
        self.policy = policy or TrafficPolicy()
        self._phases = build_phase_cycle(
            self.policy.green_s, self.policy.yellow_s, self.policy.all_red_s,
        )
        self._controllers: Dict[IntersectionId, SignalController] = {
            node.id: SignalController(node.id, node.position, self._phases)
            for node in graph.signaled_intersections()
        }
        self.controllers: Mapping[IntersectionId, SignalController] = MappingProxyType(
            self._controllers
        )
        if self.policy.green_wave_enabled:
            self.apply_green_wave()
        log.info(
            "Signal coordinator ready: %d controllers, cycle %.1fs, green wave %s",
            len(self._controllers), self.cycle_length,
            "on" if self.policy.green_wave_enabled else "off",
        )

    @property
    def cycle_length(self) -> float:
        return sum(p.duration for p in self._phases)

    def get_controller(self, intersection_id: str) -> Optional[SignalController]:
        return self._controllers.get(IntersectionId(intersection_id))

    def apply_green_wave(self) -> Dict[str, float]:
        """Offset lights along every main road so a platoon meets greens.

        Horizontal roads progress west→east from offset 0, vertical roads
        south→north from half a cycle.  Vertical groups are applied last,
        so a main×main crossing ends up on its vertical wave.
        """
        axes = self.graph.main_road_axes()
        cycle = self.cycle_length
        signaled = self.graph.signaled_intersections()
        applied: Dict[str, float] = {}
        for axis, coord_index, base in (
            ("horizontal", 0, 0.0),
            ("vertical", 1, cycle / 2.0),
        ):
            for seg_id in axes[axis]:
                stops = [
                    (node.id, node.position[coord_index])
                    for node in signaled
                    if seg_id in node.connected_segments and node.id in self._controllers
                ]
                offsets = green_wave_offsets(
                    stops, self.policy.green_wave_speed, cycle, base,
                )
                for node_id, offset in offsets.items():
                    self._controllers[IntersectionId(node_id)].set_phase_offset(offset)
                    applied[node_id] = offset
                log.debug("green wave %s: %s", seg_id, offsets)
        return applied

    def update(self, dt: float) -> None:
        for ctrl in self._controllers.values():
            ctrl.update(dt)

    def should_stop(
        self,
        x: float,
        z: float,
        heading: float,
        lookahead: Optional[float] = None,
    ) -> StopQuery:
        """Nearest red or yellow light ahead of a vehicle.

        Lights farther than *lookahead*, closer than the minimum distance,
        or behind the vehicle's heading are ignored.
        """
        if lookahead is None:
            lookahead = self.policy.stop_query_lookahead
        fx, fz = heading_vector(heading)
        best = NO_STOP
        for ctrl in self._controllers.values():
            cx, cz = ctrl.position
            dx = cx - x
            dz = cz - z
            dist = math.hypot(dx, dz)
            if dist > lookahead or dist < self.policy.stop_query_min_distance:
                continue
            if fx * dx + fz * dz < 0.0:
                continue
            approach = classify_approach(dx, dz)
            aspect = ctrl.get_state(approach)
            if aspect is Aspect.GREEN:
                continue
            if dist < best.distance:
                best = StopQuery(
                    should_stop=True,
                    distance=dist,
                    intersection_id=ctrl.intersection_id,
                    aspect=aspect,
                    approach=approach,
                    stop_position=stop_position(
                        ctrl.position, approach, self.policy.stop_line_distance,
                    ),
                )
        return best

    def is_pedestrian_walk_signal(self, x: float, z: float) -> bool:
        """Walk is allowed away from lights, or during an all-red phase."""
        nearest: Optional[SignalController] = None
        min_dist = math.inf
        for ctrl in self._controllers.values():
            d = math.hypot(ctrl.position[0] - x, ctrl.position[1] - z)
            if d < min_dist:
                min_dist = d
                nearest = ctrl
        if nearest is None or min_dist > self.policy.pedestrian_signal_radius:
            return True
        return nearest.is_all_red

    def as_dict(self) -> List[Dict[str, Any]]:
        return [ctrl.as_dict() for ctrl in self._controllers.values()]

    def release(self) -> None:
        log.info("Releasing %d signal controllers", len(self._controllers))
        self._controllers.clear()
