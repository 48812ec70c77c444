"""
sim/road_graph.py
=================
Static road topology for the city simulation.

Defines the immutable building blocks (:class:`Segment`, :class:`Lane`,
:class:`Waypoint`, :class:`Intersection`) and :class:`RoadGraph`, the
owning container that generates lanes and waypoints once at construction
and answers spatial queries afterwards (nearest lane, on-road test,
waypoint successor, random spawn point).

:func:`city_road_graph` builds the fixed city layout from :mod:`config`.
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import (
    Any, Dict, Iterable, List, Mapping, NewType, Optional, Sequence, Tuple, Union,
)

import numpy as np

import config
from sim.geometry import (
    Point,
    bezier_tangent,
    distance,
    heading_towards,
    lateral_offset,
    point_segment_distance,
    project_parameter,
    quadratic_bezier,
    wrap_angle,
)

log = logging.getLogger("road_graph")

SegmentId = NewType("SegmentId", str)
LaneId = NewType("LaneId", str)
WaypointId = NewType("WaypointId", str)
IntersectionId = NewType("IntersectionId", str)

# Slack on the projection parameter and lateral margin used by on_road()
_ON_ROAD_PARAM_SLACK = 0.1
_ON_ROAD_MARGIN = 2.0

_BEZIER_TABLE_SAMPLES = 64


class RoadGraphError(ValueError):
    """Raised when the static topology violates a construction invariant."""


class SegmentType(str, Enum):
    MAIN = "main"
    SIDE = "side"
    HIGHWAY = "highway"
    CONNECTOR = "connector"


# ── Geometry ──────────────────────────────────────────────────────────────────
# Every geometry is parameterised by the fraction of its length ``t`` in
# [0, 1] and accepts a lateral offset for lane placement.

@dataclass(frozen=True)
class StraightGeometry:
    start: Point
    end: Point

    @property
    def length(self) -> float:
        return distance(self.start, self.end)

    def point_at(self, t: float, lateral: float = 0.0) -> Point:
        dx = self.end[0] - self.start[0]
        dz = self.end[1] - self.start[1]
        point = (self.start[0] + t * dx, self.start[1] + t * dz)
        if lateral == 0.0:
            return point
        length = self.length
        return lateral_offset(point, (dx / length, dz / length), lateral)

    def project(self, x: float, z: float) -> float:
        return max(0.0, min(1.0, project_parameter(x, z, self.start, self.end)))

    def distance_to(self, x: float, z: float) -> float:
        return point_segment_distance(x, z, self.start, self.end)


@dataclass(frozen=True)
class ArcGeometry:
    """Circular arc swept from *start_angle* to *end_angle* (radians).

    Positions are ``center + r * (cos a, sin a)``; a lateral offset is
    applied to the radius.
    """

    center: Point
    radius: float
    start_angle: float
    end_angle: float

    @property
    def sweep(self) -> float:
        return self.end_angle - self.start_angle

    @property
    def length(self) -> float:
        return abs(self.sweep) * self.radius

    @property
    def start(self) -> Point:
        return self.point_at(0.0)

    @property
    def end(self) -> Point:
        return self.point_at(1.0)

    def point_at(self, t: float, lateral: float = 0.0) -> Point:
        angle = self.start_angle + t * self.sweep
        r = self.radius + lateral
        return (
            self.center[0] + math.cos(angle) * r,
            self.center[1] + math.sin(angle) * r,
        )

    def radial_distance(self, x: float, z: float) -> float:
        """Distance from *(x, z)* to the full circle carrying this arc."""
        return abs(math.hypot(x - self.center[0], z - self.center[1]) - self.radius)

    def project(self, x: float, z: float) -> float:
        span = abs(self.sweep)
        if span <= 0.0:
            return 0.0
        sign = 1.0 if self.sweep >= 0.0 else -1.0
        angle = math.atan2(z - self.center[1], x - self.center[0])
        rel = ((angle - self.start_angle) * sign) % (2.0 * math.pi)
        if rel <= span:
            return rel / span
        # Outside the swept span: snap to the nearer end.
        return 1.0 if (rel - span) < (2.0 * math.pi - rel) else 0.0

    def distance_to(self, x: float, z: float) -> float:
        px, pz = self.point_at(self.project(x, z))
        return math.hypot(x - px, z - pz)


@dataclass(frozen=True)
class BezierGeometry:
    """Quadratic bezier connector, re-parameterised by arc length."""

    start: Point
    end: Point
    control: Point
    _ts: Tuple[float, ...] = field(init=False, repr=False, compare=False)
    _cum: Tuple[float, ...] = field(init=False, repr=False, compare=False)
    _samples: Tuple[Point, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        ts = np.linspace(0.0, 1.0, _BEZIER_TABLE_SAMPLES + 1)
        u = 1.0 - ts
        xs = u * u * self.start[0] + 2.0 * u * ts * self.control[0] + ts * ts * self.end[0]
        zs = u * u * self.start[1] + 2.0 * u * ts * self.control[1] + ts * ts * self.end[1]
        steps = np.hypot(np.diff(xs), np.diff(zs))
        cum = np.concatenate(([0.0], np.cumsum(steps)))
        object.__setattr__(self, "_ts", tuple(float(v) for v in ts))
        object.__setattr__(self, "_cum", tuple(float(v) for v in cum))
        object.__setattr__(
            self, "_samples", tuple((float(a), float(b)) for a, b in zip(xs, zs))
        )

    @property
    def length(self) -> float:
        return self._cum[-1]

    def curve_parameter(self, t: float) -> float:
        """Map a length fraction *t* to the bezier's own parameter."""
        return float(np.interp(t * self.length, self._cum, self._ts))

    def point_at(self, t: float, lateral: float = 0.0) -> Point:
        s = self.curve_parameter(t)
        point = quadratic_bezier(self.start, self.control, self.end, s)
        if lateral == 0.0:
            return point
        return lateral_offset(
            point, bezier_tangent(self.start, self.control, self.end, s), lateral
        )

    def _nearest_sample(self, x: float, z: float) -> Tuple[int, float]:
        pts = np.asarray(self._samples)
        d = np.hypot(pts[:, 0] - x, pts[:, 1] - z)
        idx = int(np.argmin(d))
        return idx, float(d[idx])

    def project(self, x: float, z: float) -> float:
        if self.length <= 0.0:
            return 0.0
        idx, _ = self._nearest_sample(x, z)
        return self._cum[idx] / self.length

    def distance_to(self, x: float, z: float) -> float:
        return self._nearest_sample(x, z)[1]


Geometry = Union[StraightGeometry, ArcGeometry, BezierGeometry]


# ── Topology records ──────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Segment:
    """A stretch of road with fixed geometry, width and lane count."""

    id: SegmentId
    type: SegmentType
    geometry: Geometry
    width: float
    lane_count: int
    speed_limit: float

    @property
    def start(self) -> Point:
        return self.geometry.start

    @property
    def end(self) -> Point:
        return self.geometry.end

    @property
    def length(self) -> float:
        return self.geometry.length

    @property
    def is_curved(self) -> bool:
        return not isinstance(self.geometry, StraightGeometry)

    @property
    def orientation(self) -> Optional[str]:
        """``"horizontal"`` / ``"vertical"`` for axis-aligned straight roads."""
        if self.is_curved:
            return None
        (sx, sz), (ex, ez) = self.start, self.end
        if sz == ez:
            return "horizontal"
        if sx == ex:
            return "vertical"
        return None

    @property
    def lane_ids(self) -> Tuple[LaneId, ...]:
        return tuple(LaneId(f"{self.id}-lane{i}") for i in range(self.lane_count))

    def lane_offset(self, lane_index: int, lane_width: float) -> float:
        return (lane_index - (self.lane_count - 1) / 2.0) * lane_width

    def lane_direction(self, lane_index: int) -> int:
        """Lower half of the lanes travels start→end (+1), upper half back (−1)."""
        return 1 if lane_index < self.lane_count / 2.0 else -1


@dataclass(frozen=True)
class Lane:
    id: LaneId
    segment_id: SegmentId
    index: int
    direction: int
    speed_limit: float
    offset: float
    waypoint_ids: Tuple[WaypointId, ...]

    @property
    def entry_waypoint_id(self) -> WaypointId:
        return self.waypoint_ids[0] if self.direction > 0 else self.waypoint_ids[-1]

    @property
    def exit_waypoint_id(self) -> WaypointId:
        return self.waypoint_ids[-1] if self.direction > 0 else self.waypoint_ids[0]


@dataclass(frozen=True)
class Waypoint:
    id: WaypointId
    x: float
    z: float
    segment_id: SegmentId
    lane_index: int
    index: int
    direction: int

    @property
    def position(self) -> Point:
        return (self.x, self.z)

    @property
    def lane_id(self) -> LaneId:
        return LaneId(f"{self.segment_id}-lane{self.lane_index}")


@dataclass(frozen=True)
class Intersection:
    """A four-way node where segments cross; may carry a traffic signal."""

    id: IntersectionId
    x: float
    z: float
    connected_segments: Tuple[SegmentId, ...]
    has_signal: bool = True
    kind: str = "four-way"
    size: float = 0.0

    @property
    def position(self) -> Point:
        return (self.x, self.z)


@dataclass(frozen=True)
class SpawnPoint:
    x: float
    z: float
    heading: float
    lane_id: LaneId
    waypoint_index: int
    direction: int


@dataclass(frozen=True)
class BuildingZone:
    x: float
    z: float
    size: float
    max_buildings: int


# ── Road graph ────────────────────────────────────────────────────────────────

class RoadGraph:
    """Owning container for the static road topology.

    Segments and intersections are validated, then lanes and waypoints are
    generated once.  All collections are exposed as read-only mappings keyed
    by their typed ids; lookups return ``None`` for unknown ids.

    Parameters
    ----------
    segments : iterable of Segment
        Road segments, in build order.
    intersections : iterable of Intersection
        Crossing nodes; every connected segment id must exist.
    waypoint_spacing : float
        Target longitudinal spacing between waypoints (arc length).
    lane_width : float
        Lateral distance between adjacent lane centres.
    junction_radius : float
        Radius used to associate segment ends and waypoints with an
        intersection.
    rng : random.Random or None
        Source for random turn choices and spawn points.

    Raises
    ------
    RoadGraphError
        On zero-length geometry, odd / too few lanes, non-positive width or
        speed limit, duplicate ids, or dangling intersection references.
    """

    def __init__(
        self,
        segments: Iterable[Segment],
        intersections: Iterable[Intersection] = (),
        *,
        waypoint_spacing: float = config.WAYPOINT_SPACING,
        lane_width: float = config.LANE_WIDTH,
        junction_radius: float = config.JUNCTION_RADIUS,
        rng: Optional[random.Random] = None,
    ) -> None:
        if waypoint_spacing <= 0.0:
            raise RoadGraphError(f"waypoint spacing must be positive, got {waypoint_spacing}")
        self.waypoint_spacing = float(waypoint_spacing)
        self.lane_width = float(lane_width)
        self.junction_radius = float(junction_radius)
        self._rng = rng or random.Random()

        segs: Dict[SegmentId, Segment] = {}
        for seg in segments:
            self._validate_segment(seg)
            if seg.id in segs:
                raise RoadGraphError(f"duplicate segment id {seg.id!r}")
            segs[seg.id] = seg

        inters: Dict[IntersectionId, Intersection] = {}
        for node in intersections:
            if node.id in inters:
                raise RoadGraphError(f"duplicate intersection id {node.id!r}")
            unknown = [s for s in node.connected_segments if s not in segs]
            if unknown:
                raise RoadGraphError(
                    f"intersection {node.id!r} references unknown segments {unknown}"
                )
            inters[node.id] = node

        lanes: Dict[LaneId, Lane] = {}
        waypoints: Dict[WaypointId, Waypoint] = {}
        for seg in segs.values():
            self._generate_lanes(seg, lanes, waypoints)

        self._segments = segs
        self._intersections = inters
        self._lanes = lanes
        self._waypoints = waypoints

        self.segments: Mapping[SegmentId, Segment] = MappingProxyType(segs)
        self.intersections: Mapping[IntersectionId, Intersection] = MappingProxyType(inters)
        self.lanes: Mapping[LaneId, Lane] = MappingProxyType(lanes)
        self.waypoints: Mapping[WaypointId, Waypoint] = MappingProxyType(waypoints)

        # Flat position table for vectorised nearest-waypoint search
        ordered = list(waypoints.values())
        self._wp_xy = np.array([(w.x, w.z) for w in ordered], dtype=float).reshape(-1, 2)
        self._wp_lane: List[LaneId] = [w.lane_id for w in ordered]

        log.info(
            "Road graph built: %d segments, %d lanes, %d waypoints, "
            "%d intersections (%d signaled)",
            len(segs), len(lanes), len(waypoints), len(inters),
            len(self.signaled_intersections()),
        )

    # ── construction ──────────────────────────────────────────────────────

    @staticmethod
    def _validate_segment(seg: Segment) -> None:
        if seg.lane_count < 2 or seg.lane_count % 2 != 0:
            raise RoadGraphError(
                f"segment {seg.id!r} needs an even lane count >= 2, got {seg.lane_count}"
            )
        if seg.width <= 0.0:
            raise RoadGraphError(f"segment {seg.id!r} has non-positive width {seg.width}")
        if seg.speed_limit <= 0.0:
            raise RoadGraphError(
                f"segment {seg.id!r} has non-positive speed limit {seg.speed_limit}"
            )
        if isinstance(seg.geometry, ArcGeometry) and seg.geometry.radius <= 0.0:
            raise RoadGraphError(f"segment {seg.id!r} has non-positive arc radius")
        if not seg.length > 1e-9:
            raise RoadGraphError(f"segment {seg.id!r} has zero length")

    def _generate_lanes(
        self,
        seg: Segment,
        lanes: Dict[LaneId, Lane],
        waypoints: Dict[WaypointId, Waypoint],
    ) -> None:
        """Sample *seg* at ~``waypoint_spacing`` and emit one waypoint per lane."""
        min_points = 3 if seg.is_curved else 2
        count = max(min_points, math.ceil(seg.length / self.waypoint_spacing))

        per_lane: List[List[WaypointId]] = [[] for _ in range(seg.lane_count)]
        for i in range(count + 1):
            t = i / count
            for lane in range(seg.lane_count):
                x, z = seg.geometry.point_at(t, seg.lane_offset(lane, self.lane_width))
                wp = Waypoint(
                    id=WaypointId(f"{seg.id}-wp{i}-lane{lane}"),
                    x=x,
                    z=z,
                    segment_id=seg.id,
                    lane_index=lane,
                    index=i,
                    direction=seg.lane_direction(lane),
                )
                if wp.id in waypoints:
                    raise RoadGraphError(f"duplicate waypoint id {wp.id!r}")
                waypoints[wp.id] = wp
                per_lane[lane].append(wp.id)

        for lane, lane_id in enumerate(seg.lane_ids):
            if lane_id in lanes:
                raise RoadGraphError(f"duplicate lane id {lane_id!r}")
            lanes[lane_id] = Lane(
                id=lane_id,
                segment_id=seg.id,
                index=lane,
                direction=seg.lane_direction(lane),
                speed_limit=seg.speed_limit,
                offset=seg.lane_offset(lane, self.lane_width),
                waypoint_ids=tuple(per_lane[lane]),
            )

    # ── lookups ───────────────────────────────────────────────────────────

    def get_segment(self, segment_id: str) -> Optional[Segment]:
        return self._segments.get(SegmentId(segment_id))

    def get_lane(self, lane_id: str) -> Optional[Lane]:
        return self._lanes.get(LaneId(lane_id))

    def get_waypoint(self, waypoint_id: str) -> Optional[Waypoint]:
        return self._waypoints.get(WaypointId(waypoint_id))

    def get_intersection(self, intersection_id: str) -> Optional[Intersection]:
        return self._intersections.get(IntersectionId(intersection_id))

    def lane_of(self, waypoint: Waypoint) -> Optional[Lane]:
        return self._lanes.get(waypoint.lane_id)

    def signaled_intersections(self) -> List[Intersection]:
        return [node for node in self._intersections.values() if node.has_signal]

    def main_road_axes(self) -> Dict[str, List[SegmentId]]:
        """Straight main segments grouped by ``"horizontal"`` / ``"vertical"``."""
        axes: Dict[str, List[SegmentId]] = {"horizontal": [], "vertical": []}
        for seg in self._segments.values():
            if seg.type is SegmentType.MAIN and seg.orientation in axes:
                axes[seg.orientation].append(seg.id)
        return axes

    # ── spatial queries ───────────────────────────────────────────────────

    def nearest_lane(self, x: float, z: float) -> Optional[Lane]:
        """Lane owning the waypoint closest to *(x, z)*."""
        if not len(self._wp_xy):
            return None
        d2 = np.sum((self._wp_xy - np.array([x, z], dtype=float)) ** 2, axis=1)
        return self._lanes.get(self._wp_lane[int(np.argmin(d2))])

    def nearest_intersection(
        self, x: float, z: float,
    ) -> Tuple[Optional[Intersection], float]:
        nearest: Optional[Intersection] = None
        min_dist = math.inf
        for node in self._intersections.values():
            d = math.hypot(node.x - x, node.z - z)
            if d < min_dist:
                min_dist = d
                nearest = node
        return nearest, min_dist

    def nearest_segment(
        self, x: float, z: float, max_distance: float = math.inf,
    ) -> Optional[Tuple[Segment, float]]:
        """Closest segment to *(x, z)* if it lies within *max_distance*."""
        nearest: Optional[Segment] = None
        min_dist = math.inf
        for seg in self._segments.values():
            d = seg.geometry.distance_to(x, z)
            if d < min_dist:
                min_dist = d
                nearest = seg
        if nearest is None or min_dist >= max_distance:
            return None
        return nearest, min_dist

    def on_road(self, x: float, z: float) -> bool:
        """True if *(x, z)* lies on any road surface (plus a 2-unit margin)."""
        for seg in self._segments.values():
            tolerance = seg.width / 2.0 + _ON_ROAD_MARGIN
            geom = seg.geometry
            if isinstance(geom, ArcGeometry):
                if geom.radial_distance(x, z) < tolerance:
                    return True
            elif isinstance(geom, StraightGeometry):
                t = project_parameter(x, z, geom.start, geom.end)
                if -_ON_ROAD_PARAM_SLACK <= t <= 1.0 + _ON_ROAD_PARAM_SLACK:
                    cx, cz = geom.point_at(t)
                    if math.hypot(x - cx, z - cz) < tolerance:
                        return True
            elif geom.distance_to(x, z) < tolerance:
                return True
        return False

    def segments_touching(
        self, x: float, z: float, radius: Optional[float] = None,
    ) -> List[Segment]:
        """Segments whose start or end lies within *radius* of *(x, z)*."""
        r = self.junction_radius if radius is None else radius
        return [
            seg for seg in self._segments.values()
            if distance(seg.start, (x, z)) < r or distance(seg.end, (x, z)) < r
        ]

    # ── navigation ────────────────────────────────────────────────────────

    def next_waypoint(self, current_id: str, direction: int = 1) -> Optional[Waypoint]:
        """Successor of *current_id* along its lane in *direction*.

        Past either end of the lane the choice is delegated to
        :meth:`find_connecting_waypoint`.
        """
        wp = self.get_waypoint(current_id)
        if wp is None:
            return None
        lane = self.lane_of(wp)
        if lane is None:
            return None
        nxt = wp.index + direction
        if nxt < 0 or nxt >= len(lane.waypoint_ids):
            return self.find_connecting_waypoint(wp, direction)
        return self._waypoints.get(lane.waypoint_ids[nxt])

    def find_connecting_waypoint(
        self,
        waypoint: Waypoint,
        direction: int,
        rng: Optional[random.Random] = None,
    ) -> Optional[Waypoint]:
        """Pick where to continue once *waypoint* ends its lane.

        Without an intersection within ``junction_radius`` the lane loops to
        its opposite end (this is what closes the highway ring; dead-end
        roads loop the same way).  Otherwise a uniformly random lane of
        another segment touching that intersection is chosen and its entry
        waypoint returned.  ``None`` when nothing connects.
        """
        rng = rng or self._rng
        node, dist = self.nearest_intersection(waypoint.x, waypoint.z)
        if node is None or dist >= self.junction_radius:
            lane = self.lane_of(waypoint)
            if lane is None or not lane.waypoint_ids:
                return None
            loop_id = lane.waypoint_ids[0] if direction > 0 else lane.waypoint_ids[-1]
            log.debug("lane %s loops back to %s", lane.id, loop_id)
            return self._waypoints.get(loop_id)

        touching = {seg.id for seg in self.segments_touching(node.x, node.z)}
        candidates = [
            lane for lane in self._lanes.values()
            if lane.segment_id != waypoint.segment_id and lane.segment_id in touching
        ]
        if not candidates:
            return None
        lane = rng.choice(candidates)
        log.debug("turn at %s: %s -> %s", node.id, waypoint.segment_id, lane.id)
        return self._waypoints.get(lane.entry_waypoint_id)

    def random_spawn_point(self, rng: Optional[random.Random] = None) -> Optional[SpawnPoint]:
        """Random position on a main-road or highway lane, facing its travel direction."""
        rng = rng or self._rng
        drivable = [
            lane for lane in self._lanes.values()
            if self._segments[lane.segment_id].type in (SegmentType.MAIN, SegmentType.HIGHWAY)
            and len(lane.waypoint_ids) >= 2
        ]
        if not drivable:
            return None
        lane = rng.choice(drivable)
        idx = rng.randrange(len(lane.waypoint_ids) - 1)
        wp = self._waypoints[lane.waypoint_ids[idx]]
        nxt = self._waypoints[lane.waypoint_ids[idx + 1]]
        heading = heading_towards(
            (nxt.x - wp.x) * lane.direction, (nxt.z - wp.z) * lane.direction,
        )
        return SpawnPoint(
            x=wp.x,
            z=wp.z,
            heading=wrap_angle(heading),
            lane_id=lane.id,
            waypoint_index=idx,
            direction=lane.direction,
        )

    def building_zones(
        self,
        positions: Sequence[float] = config.BUILDING_ZONE_POSITIONS,
        size: float = config.BUILDING_ZONE_SIZE,
        max_buildings: int = config.BUILDING_ZONE_MAX_BUILDINGS,
    ) -> List[BuildingZone]:
        """Block centres between roads that are clear of every road surface."""
        return [
            BuildingZone(x=x, z=z, size=size, max_buildings=max_buildings)
            for x in positions
            for z in positions
            if not self.on_road(x, z)
        ]

    # ── serialisation ─────────────────────────────────────────────────────

    def bounds(self) -> Tuple[Tuple[float, float], Tuple[float, float]]:
        """Return ``((min_x, max_x), (min_z, max_z))`` over all waypoints."""
        if not len(self._wp_xy):
            return ((-config.HALF_CITY, config.HALF_CITY), (-config.HALF_CITY, config.HALF_CITY))
        lo = self._wp_xy.min(axis=0)
        hi = self._wp_xy.max(axis=0)
        return ((float(lo[0]), float(hi[0])), (float(lo[1]), float(hi[1])))

    def as_dict(self, samples: int = 12) -> Dict[str, Any]:
        """Static geometry for renderers: centre polylines and intersections."""
        segments = []
        for seg in self._segments.values():
            n = samples if seg.is_curved else 1
            segments.append({
                "id": seg.id,
                "type": seg.type.value,
                "width": seg.width,
                "lanes": seg.lane_count,
                "speed_limit": seg.speed_limit,
                "polyline": [seg.geometry.point_at(i / n) for i in range(n + 1)],
            })
        return {
            "segments": segments,
            "intersections": [
                {
                    "id": node.id,
                    "center": node.position,
                    "size": node.size,
                    "has_signal": node.has_signal,
                }
                for node in self._intersections.values()
            ],
            "bounds": self.bounds(),
        }


# ── Default layout ────────────────────────────────────────────────────────────

def _straight(
    seg_id: str, seg_type: SegmentType, start: Point, end: Point,
    width: float, lanes: int, speed_limit: float,
) -> Segment:
    return Segment(
        id=SegmentId(seg_id),
        type=seg_type,
        geometry=StraightGeometry(start, end),
        width=width,
        lane_count=lanes,
        speed_limit=speed_limit,
    )


def _city_segments() -> List[Segment]:
    segments: List[Segment] = []
    ext = config.MAIN_ROAD_EXTENT

    for i, z in enumerate(config.MAIN_ROAD_POSITIONS):
        segments.append(_straight(
            f"main-h{i}", SegmentType.MAIN, (-ext, z), (ext, z),
            config.MAIN_ROAD_WIDTH, config.MAIN_ROAD_LANES, config.MAIN_SPEED_LIMIT,
        ))
    for i, x in enumerate(config.MAIN_ROAD_POSITIONS):
        segments.append(_straight(
            f"main-v{i}", SegmentType.MAIN, (x, -ext), (x, ext),
            config.MAIN_ROAD_WIDTH, config.MAIN_ROAD_LANES, config.MAIN_SPEED_LIMIT,
        ))

    side_ext = config.SIDE_ROAD_EXTENT
    for i, z in enumerate(config.SIDE_ROAD_POSITIONS):
        segments.append(_straight(
            f"side-h{i}", SegmentType.SIDE, (-side_ext, z), (side_ext, z),
            config.SIDE_ROAD_WIDTH, config.SIDE_ROAD_LANES, config.SIDE_SPEED_LIMIT,
        ))
    for i, x in enumerate(config.SIDE_ROAD_POSITIONS):
        segments.append(_straight(
            f"side-v{i}", SegmentType.SIDE, (x, -side_ext), (x, side_ext),
            config.SIDE_ROAD_WIDTH, config.SIDE_ROAD_LANES, config.SIDE_SPEED_LIMIT,
        ))

    n = config.HIGHWAY_SEGMENTS
    for i in range(n):
        segments.append(Segment(
            id=SegmentId(f"highway-{i}"),
            type=SegmentType.HIGHWAY,
            geometry=ArcGeometry(
                center=(0.0, 0.0),
                radius=config.HIGHWAY_RADIUS,
                start_angle=(i / n) * 2.0 * math.pi,
                end_angle=((i + 1) / n) * 2.0 * math.pi,
            ),
            width=config.HIGHWAY_WIDTH,
            lane_count=config.HIGHWAY_LANES,
            speed_limit=config.HIGHWAY_SPEED_LIMIT,
        ))

    for i, (start, end, control) in enumerate(config.CONNECTORS):
        segments.append(Segment(
            id=SegmentId(f"connector-{i}"),
            type=SegmentType.CONNECTOR,
            geometry=BezierGeometry(start=start, end=end, control=control),
            width=config.MAIN_ROAD_WIDTH,
            lane_count=config.CONNECTOR_LANES,
            speed_limit=config.CONNECTOR_SPEED_LIMIT,
        ))
    return segments


def _city_intersections() -> List[Intersection]:
    nodes: List[Intersection] = []
    main = config.MAIN_ROAD_POSITIONS
    side = config.SIDE_ROAD_POSITIONS

    # Main × main, signaled
    for xi, x in enumerate(main):
        for zi, z in enumerate(main):
            nodes.append(Intersection(
                id=IntersectionId(f"intersection-{xi}-{zi}"),
                x=x, z=z,
                connected_segments=(SegmentId(f"main-h{zi}"), SegmentId(f"main-v{xi}")),
                has_signal=True,
                size=config.MAIN_ROAD_WIDTH,
            ))

    # Side × side, yield only
    for zi, z in enumerate(side):
        for xi, x in enumerate(side):
            nodes.append(Intersection(
                id=IntersectionId(f"side-intersection-{xi}-{zi}"),
                x=x, z=z,
                connected_segments=(SegmentId(f"side-h{zi}"), SegmentId(f"side-v{xi}")),
                has_signal=False,
                size=config.SIDE_ROAD_WIDTH,
            ))

    # Main × side, signaled
    for mi, m in enumerate(main):
        for si, sz in enumerate(side):
            nodes.append(Intersection(
                id=IntersectionId(f"cross-v{mi}-sh{si}"),
                x=m, z=sz,
                connected_segments=(SegmentId(f"main-v{mi}"), SegmentId(f"side-h{si}")),
                has_signal=True,
                size=config.MAIN_ROAD_WIDTH,
            ))
        for si, sx in enumerate(side):
            nodes.append(Intersection(
                id=IntersectionId(f"cross-h{mi}-sv{si}"),
                x=sx, z=m,
                connected_segments=(SegmentId(f"main-h{mi}"), SegmentId(f"side-v{si}")),
                has_signal=True,
                size=config.MAIN_ROAD_WIDTH,
            ))
    return nodes


def city_road_graph(rng: Optional[random.Random] = None) -> RoadGraph:
    """Build the fixed city: main grid, side streets, highway ring, connectors.

    Parameters
    ----------
    rng : random.Random or None
        Source for turn choices and spawn points; seed it for reproducible
        routing.
    """
    return RoadGraph(_city_segments(), _city_intersections(), rng=rng)
