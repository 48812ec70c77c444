#!/usr/bin/env python3
"""
config.py
=========
Application-wide configuration constants.

Values can be overridden via environment variables (see :mod:`main`).
This module is a thin, import-safe leaf: it never imports from
other project packages.
"""

from typing import Tuple

# ── City layout ──────────────────────────────────────────────────────────────
CITY_SIZE: float = 300.0
HALF_CITY: float = CITY_SIZE / 2.0

MAIN_ROAD_POSITIONS: Tuple[float, ...] = (-80.0, 0.0, 80.0)
MAIN_ROAD_EXTENT: float = 120.0
SIDE_ROAD_POSITIONS: Tuple[float, ...] = (-40.0, 40.0)
SIDE_ROAD_EXTENT: float = 80.0

HIGHWAY_RADIUS: float = 140.0
HIGHWAY_SEGMENTS: int = 16

# (from, to, control) for the four bezier ramps joining main roads to the loop
CONNECTORS: Tuple[Tuple[Tuple[float, float], Tuple[float, float], Tuple[float, float]], ...] = (
    ((120.0, 0.0), (140.0, 0.0), (135.0, 10.0)),
    ((-120.0, 0.0), (-140.0, 0.0), (-135.0, -10.0)),
    ((0.0, 120.0), (0.0, 140.0), (10.0, 135.0)),
    ((0.0, -120.0), (0.0, -140.0), (-10.0, -135.0)),
)

# Block centres checked for building placement
BUILDING_ZONE_POSITIONS: Tuple[float, ...] = (-60.0, -20.0, 20.0, 60.0)
BUILDING_ZONE_SIZE: float = 35.0
BUILDING_ZONE_MAX_BUILDINGS: int = 4

# ── Road properties ──────────────────────────────────────────────────────────
MAIN_ROAD_WIDTH: float = 10.0
SIDE_ROAD_WIDTH: float = 6.0
HIGHWAY_WIDTH: float = 14.0
LANE_WIDTH: float = 2.5

MAIN_ROAD_LANES: int = 4
SIDE_ROAD_LANES: int = 2
HIGHWAY_LANES: int = 4
CONNECTOR_LANES: int = 2

MAIN_SPEED_LIMIT: float = 50.0
SIDE_SPEED_LIMIT: float = 30.0
HIGHWAY_SPEED_LIMIT: float = 80.0
CONNECTOR_SPEED_LIMIT: float = 40.0

WAYPOINT_SPACING: float = 8.0
JUNCTION_RADIUS: float = 15.0

# ── Simulation defaults ──────────────────────────────────────────────────────
DEFAULT_NPC_COUNT: int = 12
DEFAULT_PEDESTRIAN_COUNT: int = 16
DEFAULT_TICK_RATE_HZ: float = 30.0
MAX_FRAME_DT_S: float = 0.1

# ── Telemetry bus defaults ───────────────────────────────────────────────────
DEFAULT_DROP_RATE: float = 0.0
DEFAULT_LATENCY_MS: int = 0

# ── UI defaults ──────────────────────────────────────────────────────────────
WINDOW_WIDTH: int = 1000
WINDOW_HEIGHT: int = 760
TARGET_FPS: int = 60
