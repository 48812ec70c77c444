#!/usr/bin/env python3
"""
sim/geometry.py
===============
Low-level planar helpers used by :mod:`sim.road_graph`, :mod:`sim.signals`
and :mod:`sim.car_agent`.

World space is the (x, z) ground plane: x grows east, z grows north.
A heading ``h`` in radians points along ``(sin h, cos h)``, so heading 0
faces north.

Keeping these in a separate module avoids circular imports and makes unit
testing straightforward.
"""

from __future__ import annotations

import math
from typing import Tuple

Point = Tuple[float, float]


def heading_vector(heading: float) -> Point:
    """Unit forward vector ``(sin h, cos h)`` for *heading*."""
    return (math.sin(heading), math.cos(heading))


def heading_towards(dx: float, dz: float) -> float:
    """Heading that points along the offset ``(dx, dz)``."""
    return math.atan2(dx, dz)


def wrap_angle(angle: float) -> float:
    """Wrap *angle* into ``(-pi, pi]``."""
    wrapped = math.fmod(angle + math.pi, 2.0 * math.pi)
    if wrapped <= 0.0:
        wrapped += 2.0 * math.pi
    return wrapped - math.pi


def distance(a: Point, b: Point) -> float:
    return math.hypot(b[0] - a[0], b[1] - a[1])


def project_parameter(x: float, z: float, a: Point, b: Point) -> float:
    """Unclamped parameter of the projection of *(x, z)* on line *a*→*b*.

    ``0`` is *a*, ``1`` is *b*.  A degenerate line returns ``0``.
    """
    dx = b[0] - a[0]
    dz = b[1] - a[1]
    length_sq = dx * dx + dz * dz
    if length_sq <= 0.0:
        return 0.0
    return ((x - a[0]) * dx + (z - a[1]) * dz) / length_sq


def point_segment_distance(x: float, z: float, a: Point, b: Point) -> float:
    """Distance from *(x, z)* to the closed segment *a*→*b*."""
    t = max(0.0, min(1.0, project_parameter(x, z, a, b)))
    cx = a[0] + t * (b[0] - a[0])
    cz = a[1] + t * (b[1] - a[1])
    return math.hypot(x - cx, z - cz)


def quadratic_bezier(p0: Point, control: Point, p1: Point, t: float) -> Point:
    """Point on the quadratic bezier *p0*, *control*, *p1* at parameter *t*."""
    u = 1.0 - t
    return (
        u * u * p0[0] + 2.0 * u * t * control[0] + t * t * p1[0],
        u * u * p0[1] + 2.0 * u * t * control[1] + t * t * p1[1],
    )


def bezier_tangent(p0: Point, control: Point, p1: Point, t: float) -> Point:
    """Unit tangent of the quadratic bezier at *t*.

    Falls back to the chord direction where the derivative vanishes.
    """
    u = 1.0 - t
    tx = 2.0 * u * (control[0] - p0[0]) + 2.0 * t * (p1[0] - control[0])
    tz = 2.0 * u * (control[1] - p0[1]) + 2.0 * t * (p1[1] - control[1])
    norm = math.hypot(tx, tz)
    if norm < 1e-9:
        tx = p1[0] - p0[0]
        tz = p1[1] - p0[1]
        norm = math.hypot(tx, tz) or 1.0
    return (tx / norm, tz / norm)


def lateral_offset(point: Point, tangent: Point, offset: float) -> Point:
    """Shift *point* sideways by *offset* along the normal ``(-tz, tx)``."""
    return (point[0] - tangent[1] * offset, point[1] + tangent[0] * offset)
