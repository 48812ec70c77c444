"""
ui/types.py
===========
Lightweight data containers used across every UI module.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np

ColorRGB = Tuple[int, int, int]
ColorRGBA = Tuple[int, int, int, int]


@dataclass
class Camera:
    """Viewport mapping world (x east, z north) coordinates to screen pixels."""
    screen_w: int
    screen_h: int
    world_x: float = 0.0
    world_z: float = 0.0
    zoom: float = 2.4

    def world_to_screen(self, wx: float, wz: float) -> Tuple[float, float]:
        sx = self.screen_w / 2 + (wx - self.world_x) * self.zoom
        sy = self.screen_h / 2 - (wz - self.world_z) * self.zoom
        return sx, sy

    def world_to_screen_many(self, points: Sequence[Tuple[float, float]]) -> np.ndarray:
        """Vectorised :meth:`world_to_screen` for a polyline; returns an (N, 2) array."""
        pts = np.asarray(points, dtype=float).reshape(-1, 2)
        out = np.empty_like(pts)
        out[:, 0] = self.screen_w / 2 + (pts[:, 0] - self.world_x) * self.zoom
        out[:, 1] = self.screen_h / 2 - (pts[:, 1] - self.world_z) * self.zoom
        return out


@dataclass
class VehicleRenderState:
    """Smoothed vehicle pose for interpolation between bridge ticks."""
    x: float
    z: float
    heading: float
    color: ColorRGB
