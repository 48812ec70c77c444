#!/usr/bin/env python3
"""Stats panel, legend, debug overlay, title card, and pause veil (mixin)."""

from __future__ import annotations

from typing import Any, List, Mapping, Sequence, Tuple

import pygame

from .types import ColorRGB

_TEXT: ColorRGB = (200, 200, 200)
_DIM: ColorRGB = (120, 120, 120)

# Key help shown on the title card
_CONTROLS: Sequence[Tuple[str, str]] = (
    ("SPACE", "pause / resume"),
    ("+ -", "zoom"),
    ("R", "reset scenario"),
    ("L", "legend"),
    ("F3", "debug overlay"),
    ("F12", "screenshot"),
)


class HudRenderer:
    """Mixin that draws every overlay on top of the city."""

    def _panel(self, surface: pygame.Surface, rect: pygame.Rect, radius: int = 6) -> None:
        pygame.draw.rect(surface, self.HUD_BG_COLOR, rect, border_radius=radius)
        pygame.draw.rect(surface, self.HUD_BORDER_COLOR, rect, width=1, border_radius=radius)

    # ── stats panel ──────────────────────────────────────────────────────

    def _hud_lines(self, stats: Mapping[str, Any]) -> List[Tuple[str, ColorRGB]]:
        collisions = stats.get("collisions", 0)
        bus = stats.get("bus", {})
        rows: List[Tuple[str, ColorRGB]] = [
            (f"TICK {stats.get('tick', 0):>6}   {stats.get('elapsed_s', 0.0):7.1f}s", _TEXT),
            (f"CARS {stats.get('agents', 0):>3}   PEDS {stats.get('pedestrians', 0):>3}"
             f"  DODGE {stats.get('dodging', 0)}", _TEXT),
            (f"COLLISIONS {collisions}", self.WARNING_COLOR if collisions else _TEXT),
        ]
        for state, count in stats.get("states", {}).items():
            rows.append((f"  {state:<13}{count:>3}", self.STATE_COLORS.get(state, _TEXT)))
        rows.append((
            f"BUS {bus.get('published', 0)} sent / {bus.get('dropped', 0)} lost"
            f" ({bus.get('drop_ratio', 0.0):.0%})",
            _DIM,
        ))
        return rows

    def draw_hud(self, surface: pygame.Surface, stats: Mapping[str, Any]) -> None:
        if self.font_tiny is None:
            return
        rows = self._hud_lines(stats)
        row_h = 16
        rect = pygame.Rect(12, 12, 250, len(rows) * row_h + 14)
        self._panel(surface, rect)
        for i, (text, color) in enumerate(rows):
            surface.blit(
                self.font_tiny.render(text, True, color),
                (rect.x + 10, rect.y + 7 + i * row_h),
            )

    # ── title card ───────────────────────────────────────────────────────

    def _draw_splash(self, surface: pygame.Surface, tick: float) -> None:
        if self.font_title is None or self.font_tiny is None:
            return
        cx, cy = self.width // 2, self.height // 2
        heading = self.font_title.render("CITY TRAFFIC", True, (235, 235, 235))
        surface.blit(heading, heading.get_rect(center=(cx, cy - 70)))

        # Blink the prompt at 1 Hz
        if tick % 1.0 < 0.5:
            hint = self.font_tiny.render("any key to begin", True, _DIM)
            surface.blit(hint, hint.get_rect(center=(cx, cy - 36)))

        for i, (key, action) in enumerate(_CONTROLS):
            y = cy + i * 18
            k = self.font_tiny.render(key, True, self.INDICATOR_COLOR)
            a = self.font_tiny.render(action, True, _TEXT)
            surface.blit(k, k.get_rect(midright=(cx - 8, y)))
            surface.blit(a, a.get_rect(midleft=(cx + 8, y)))

    # ── legend ───────────────────────────────────────────────────────────

    def _draw_legend(self, surface: pygame.Surface) -> None:
        if self.font_tiny is None:
            return
        row_h = 17
        rect = pygame.Rect(0, 0, 150, len(self.LEGEND_ITEMS) * row_h + 12)
        rect.bottomright = (self.width - 12, self.height - 12)
        self._panel(surface, rect, radius=4)
        for i, (label, color) in enumerate(self.LEGEND_ITEMS):
            y = rect.y + 6 + i * row_h
            pygame.draw.rect(surface, color, (rect.x + 8, y + 3, 12, 8), border_radius=2)
            surface.blit(self.font_tiny.render(label, True, _TEXT), (rect.x + 28, y))

    # ── debug overlay ────────────────────────────────────────────────────

    def _draw_debug_overlay(
        self, surface: pygame.Surface, vehicles: Sequence[Mapping[str, Any]], dt: float
    ) -> None:
        if self.font_tiny is None:
            return
        fps = self.clock.get_fps() if self.clock else 0.0
        readout = (
            f"fps {fps:5.1f}  frame {dt * 1000:4.1f} ms",
            f"zoom {self.camera.zoom:.2f}  window {self.width}x{self.height}",
            f"vehicles {len(vehicles)}  wall {self.time_seconds:.1f}s",
        )
        y = self.height - 12 - len(readout) * 14
        for line in readout:
            surface.blit(self.font_tiny.render(line, True, (0, 255, 127)), (12, y))
            y += 14

        for vehicle in vehicles:
            sx, sy = self.camera.world_to_screen(vehicle["x"], vehicle["z"])
            tag = f"{vehicle['id']} {vehicle.get('speed', 0.0):.0f}"
            if vehicle.get("vehicle_ahead"):
                tag += f" > {vehicle['vehicle_ahead']}"
            surface.blit(self.font_tiny.render(tag, True, _TEXT), (int(sx) + 8, int(sy) - 8))

    # ── pause ────────────────────────────────────────────────────────────

    def _draw_pause_banner(self, surface: pygame.Surface) -> None:
        veil = pygame.Surface((self.width, self.height), pygame.SRCALPHA)
        veil.fill((0, 0, 0, 110))
        surface.blit(veil, (0, 0))
        if self.font_title is not None:
            label = self.font_title.render("PAUSED", True, (225, 225, 225))
            surface.blit(label, label.get_rect(center=(self.width // 2, self.height // 2)))
