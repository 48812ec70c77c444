#!/usr/bin/env python3
"""Visual constants shared across all renderers."""

from __future__ import annotations

from typing import Dict, Sequence, Tuple

from .types import ColorRGB


class ViewConstants:
    """Mixin providing every visual / layout constant."""

    BG_COLOR: ColorRGB = (34, 52, 34)
    ROAD_COLOR: ColorRGB = (44, 44, 46)
    HIGHWAY_COLOR: ColorRGB = (52, 52, 56)
    LANE_DASH_COLOR: ColorRGB = (120, 120, 120)
    INTERSECTION_COLOR: ColorRGB = (58, 58, 60)
    HUD_BG_COLOR: ColorRGB = (22, 22, 22)
    HUD_BORDER_COLOR: ColorRGB = (42, 42, 42)
    WARNING_COLOR: ColorRGB = (255, 60, 60)

    LIGHT_COLORS: Dict[str, ColorRGB] = {
        "green": (0, 230, 110),
        "yellow": (250, 200, 40),
        "red": (240, 50, 50),
    }

    STATE_COLORS: Dict[str, ColorRGB] = {
        "driving": (86, 168, 255),
        "accelerating": (100, 226, 170),
        "turning": (180, 120, 255),
        "stopping": (246, 191, 90),
        "waiting": (255, 88, 88),
    }
    PLAYER_COLOR: ColorRGB = (255, 255, 255)
    BRAKE_LIGHT_COLOR: ColorRGB = (255, 30, 30)
    INDICATOR_COLOR: ColorRGB = (255, 170, 0)
    PEDESTRIAN_COLOR: ColorRGB = (230, 210, 170)
    PEDESTRIAN_DODGE_COLOR: ColorRGB = (255, 90, 200)

    LEGEND_ITEMS: Sequence[Tuple[str, ColorRGB]] = (
        ("DRIVING", (86, 168, 255)),
        ("ACCELERATING", (100, 226, 170)),
        ("TURNING", (180, 120, 255)),
        ("STOPPING", (246, 191, 90)),
        ("WAITING", (255, 88, 88)),
        ("PEDESTRIAN DODGE", (255, 90, 200)),
    )

    VEHICLE_LENGTH = 4.4  # world units
    VEHICLE_WIDTH = 2.0
    PEDESTRIAN_RADIUS = 0.6
    SMOOTHING = 12.0  # 1/s, render pose convergence rate

    ZOOM_MIN = 0.8
    ZOOM_MAX = 8.0
    ZOOM_STEP = 0.2

    SCREENSHOT_DIR = "screenshots"
