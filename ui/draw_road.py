#!/usr/bin/env python3
"""Road surfaces, lane markings, intersections and traffic lights (mixin)."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Sequence, Tuple

import pygame

# Light placement around the centre, in world units, per approach side
_LIGHT_OFFSETS: Dict[str, Tuple[float, float]] = {
    "north": (-5.5, 5.5),
    "south": (5.5, -5.5),
    "east": (5.5, 5.5),
    "west": (-5.5, -5.5),
}

# Draw order: wide roads underneath
_TYPE_ORDER = {"highway": 0, "connector": 1, "main": 2, "side": 3}


class RoadRenderer:
    """Mixin that draws the static road network and the live light aspects."""

    def draw_roads(self, surface: pygame.Surface, network: Mapping[str, Any]) -> None:
        cam = self.camera
        segments = sorted(
            network.get("segments", []), key=lambda s: _TYPE_ORDER.get(s.get("type"), 9)
        )
        for seg in segments:
            pts = cam.world_to_screen_many(seg["polyline"])
            width_px = max(1, int(seg["width"] * cam.zoom))
            color = self.HIGHWAY_COLOR if seg.get("type") == "highway" else self.ROAD_COLOR
            points = [(int(x), int(y)) for x, y in pts]
            pygame.draw.lines(surface, color, False, points, width_px)
            # Round the joints of curved polylines
            if len(points) > 2:
                for p in points[1:-1]:
                    pygame.draw.circle(surface, color, p, width_px // 2)

        if cam.zoom >= 1.5:
            for seg in segments:
                pts = cam.world_to_screen_many(seg["polyline"])
                self._draw_dashed_polyline(surface, [(float(x), float(y)) for x, y in pts])

    def _draw_dashed_polyline(
        self, surface: pygame.Surface, points: Sequence[Tuple[float, float]],
    ) -> None:
        dash = max(4.0, 2.0 * self.camera.zoom)
        for (x1, y1), (x2, y2) in zip(points, points[1:]):
            seg_vec = pygame.Vector2(x2 - x1, y2 - y1)
            length = seg_vec.length()
            if length < 1e-6:
                continue
            step = seg_vec / length
            d = 0.0
            while d < length:
                a = pygame.Vector2(x1, y1) + step * d
                b = pygame.Vector2(x1, y1) + step * min(length, d + dash)
                pygame.draw.line(surface, self.LANE_DASH_COLOR, a, b, 1)
                d += dash * 2

    def draw_intersections(self, surface: pygame.Surface, network: Mapping[str, Any]) -> None:
        cam = self.camera
        for node in network.get("intersections", []):
            cx, cz = node["center"]
            sx, sy = cam.world_to_screen(cx, cz)
            size_px = max(2, int(node.get("size", 0.0) * cam.zoom))
            rect = pygame.Rect(0, 0, size_px, size_px)
            rect.center = (int(sx), int(sy))
            pygame.draw.rect(surface, self.INTERSECTION_COLOR, rect)

    def draw_signals(self, surface: pygame.Surface, signals: Sequence[Mapping[str, Any]]) -> None:
        cam = self.camera
        bulb_r = max(2, int(0.9 * cam.zoom))
        for sig in signals:
            for approach, (ox, oz) in _LIGHT_OFFSETS.items():
                aspect = sig["ns"] if approach in ("north", "south") else sig["ew"]
                sx, sy = cam.world_to_screen(sig["x"] + ox, sig["z"] + oz)
                color = self.LIGHT_COLORS.get(aspect, self.LIGHT_COLORS["red"])
                pygame.draw.circle(surface, (15, 15, 15), (int(sx), int(sy)), bulb_r + 1)
                pygame.draw.circle(surface, color, (int(sx), int(sy)), bulb_r)
