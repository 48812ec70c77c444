"""
ui/helpers.py
=============
Pure utility functions shared across UI modules:
interpolation, font loading and alpha-surface drawing.
"""

from __future__ import annotations

import math
from typing import Tuple

import pygame

from .types import ColorRGBA


# ── Interpolation helpers ─────────────────────────────────────────────────────

def lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


def angle_lerp(a: float, b: float, t: float) -> float:
    """Shortest-arc angle interpolation (radians)."""
    diff = math.atan2(math.sin(b - a), math.cos(b - a))
    return a + diff * t


# ── Alpha drawing helpers ────────────────────────────────────────────────────

def draw_alpha_circle(
    target: pygame.Surface,
    color: ColorRGBA,
    centre: Tuple[int, int],
    radius: int,
) -> None:
    """Draw a semi-transparent circle."""
    if radius < 1:
        return
    size = radius * 2
    tmp = pygame.Surface((size, size), pygame.SRCALPHA)
    pygame.draw.circle(tmp, color, (radius, radius), radius)
    target.blit(tmp, (centre[0] - radius, centre[1] - radius))


class ViewHelpers:
    """Mixin of small static utilities used by every renderer."""

    @staticmethod
    def _load_font(size: int, bold: bool = False) -> pygame.font.Font:
        for name in ("consolas", "menlo", "dejavusansmono"):
            path = pygame.font.match_font(name, bold=bold)
            if path:
                return pygame.font.Font(path, size)
        return pygame.font.Font(None, size + 4)

