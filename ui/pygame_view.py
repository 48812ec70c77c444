#!/usr/bin/env python3
"""
Top-down city viewer: the concrete window class built from the UI mixins.

Module layout
─────────────
    ui/
    ├── types.py           – Camera, VehicleRenderState, colour aliases
    ├── constants.py       – ViewConstants mixin (palette, sizes, zoom limits)
    ├── helpers.py         – ViewHelpers mixin + lerp helpers
    ├── draw_road.py       – RoadRenderer mixin (segments, junctions, lights)
    ├── draw_vehicles.py   – VehicleRenderer mixin (cars, pedestrians)
    ├── hud.py             – HudRenderer mixin (stats, legend, debug, title)
    └── pygame_view.py     – PygameTrafficView (this file, event loop)
"""

from __future__ import annotations

import logging
import os
from datetime import datetime
from typing import Any, Callable, Dict, Optional

import pygame

import config
from .constants import ViewConstants
from .draw_road import RoadRenderer
from .draw_vehicles import VehicleRenderer
from .helpers import ViewHelpers
from .hud import HudRenderer
from .types import Camera, VehicleRenderState

log = logging.getLogger("ui")

_MIN_WINDOW = (480, 360)


class PygameTrafficView(
    ViewConstants,
    ViewHelpers,
    RoadRenderer,
    VehicleRenderer,
    HudRenderer,
):
    """Pygame window that renders whatever the bridge currently caches.

    Only the bridge's public getters are used (``get_network``,
    ``get_vehicles``, ``get_signals``, ``get_pedestrians``, ``get_stats``)
    plus ``reset`` / ``set_paused`` for the keyboard controls.

    Parameters
    ----------
    bridge : SimBridge-like
        Snapshot source.
    on_frame : callable, optional
        ``on_frame(dt)`` hook run once per unpaused frame before drawing.
    """

    def __init__(
        self,
        bridge: Any,
        width: int = config.WINDOW_WIDTH,
        height: int = config.WINDOW_HEIGHT,
        fps: int = config.TARGET_FPS,
        on_frame: Optional[Callable[[float], None]] = None,
    ):
        self.bridge = bridge
        self.width = width
        self.height = height
        self.fps = fps
        self.on_frame = on_frame

        self.screen: Optional[pygame.Surface] = None
        self.clock: Optional[pygame.time.Clock] = None
        self.font_tiny: Optional[pygame.font.Font] = None
        self.font_title: Optional[pygame.font.Font] = None

        # Fit the whole city into the shorter window side
        fit = min(width, height) / (config.CITY_SIZE + 20.0)
        self.camera = Camera(width, height, zoom=max(self.ZOOM_MIN, fit))
        self.network: Dict[str, Any] = bridge.get_network()
        self.vehicle_states: Dict[str, VehicleRenderState] = {}
        self.time_seconds = 0.0

        self.paused = False
        self.show_debug = False
        self.show_legend = True
        self.show_splash = True
        self._flash_until = 0.0

    # ── window ───────────────────────────────────────────────────────────

    def _open_window(self) -> None:
        self.screen = pygame.display.set_mode((self.width, self.height), pygame.RESIZABLE)

    def _resize(self, w: int, h: int) -> None:
        self.width = max(_MIN_WINDOW[0], w)
        self.height = max(_MIN_WINDOW[1], h)
        self.camera.screen_w, self.camera.screen_h = self.width, self.height
        self._open_window()

    def _save_screenshot(self) -> None:
        if self.screen is None:
            return
        os.makedirs(self.SCREENSHOT_DIR, exist_ok=True)
        name = f"city_{datetime.now():%Y%m%d_%H%M%S}.png"
        path = os.path.join(self.SCREENSHOT_DIR, name)
        pygame.image.save(self.screen, path)
        log.info("Screenshot written: %s", path)
        self._flash_until = self.time_seconds + 0.3

    # ── input ────────────────────────────────────────────────────────────

    def _zoom(self, step: float) -> None:
        self.camera.zoom = max(self.ZOOM_MIN, min(self.ZOOM_MAX, self.camera.zoom + step))

    def _toggle_pause(self) -> None:
        self.paused = not self.paused
        self.bridge.set_paused(self.paused)

    def _reset(self) -> None:
        self.bridge.reset()
        self.vehicle_states.clear()
        if self.paused:
            self._toggle_pause()

    def _on_key(self, key: int) -> None:
        actions: Dict[int, Callable[[], None]] = {
            pygame.K_SPACE: self._toggle_pause,
            pygame.K_r: self._reset,
            pygame.K_F12: self._save_screenshot,
            pygame.K_EQUALS: lambda: self._zoom(self.ZOOM_STEP),
            pygame.K_PLUS: lambda: self._zoom(self.ZOOM_STEP),
            pygame.K_KP_PLUS: lambda: self._zoom(self.ZOOM_STEP),
            pygame.K_MINUS: lambda: self._zoom(-self.ZOOM_STEP),
            pygame.K_KP_MINUS: lambda: self._zoom(-self.ZOOM_STEP),
        }
        if key == pygame.K_F3:
            self.show_debug = not self.show_debug
        elif key == pygame.K_l:
            self.show_legend = not self.show_legend
        elif key in actions:
            actions[key]()

    def _pump_events(self) -> bool:
        """Handle pending events; ``False`` once the window is closed."""
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                return False
            if event.type == pygame.VIDEORESIZE:
                self._resize(event.w, event.h)
            elif event.type == pygame.KEYDOWN:
                if self.show_splash:
                    self.show_splash = False
                else:
                    self._on_key(event.key)
        return True

    # ── frame ────────────────────────────────────────────────────────────

    def _render(self, dt: float) -> None:
        surface = self.screen
        surface.fill(self.BG_COLOR)
        if self.show_splash:
            self._draw_splash(surface, self.time_seconds)
            return

        if not self.paused and self.on_frame is not None:
            self.on_frame(dt)

        vehicles = self.bridge.get_vehicles()
        if not self.paused:
            self._sync_vehicle_states(vehicles, dt)

        self.draw_roads(surface, self.network)
        self.draw_intersections(surface, self.network)
        self.draw_signals(surface, self.bridge.get_signals())
        for ped in self.bridge.get_pedestrians():
            self.draw_pedestrian(surface, ped)
        for vehicle in vehicles:
            self.draw_vehicle(surface, vehicle)

        self.draw_hud(surface, self.bridge.get_stats())
        if self.show_legend:
            self._draw_legend(surface)
        if self.show_debug:
            self._draw_debug_overlay(surface, vehicles, dt)
        if self.paused:
            self._draw_pause_banner(surface)
        if self.time_seconds < self._flash_until:
            flash = pygame.Surface((self.width, self.height), pygame.SRCALPHA)
            flash.fill((255, 255, 255, 40))
            surface.blit(flash, (0, 0))

    def run(self) -> None:
        pygame.init()
        pygame.display.set_caption("City Traffic")
        self._open_window()
        self.clock = pygame.time.Clock()
        self.font_tiny = self._load_font(11)
        self.font_title = self._load_font(28, bold=True)
        log.info("Viewer open at %dx%d", self.width, self.height)

        try:
            while self._pump_events():
                dt = self.clock.tick(self.fps) / 1000.0
                self.time_seconds += dt
                self._render(dt)
                pygame.display.flip()
        finally:
            pygame.quit()


def run_pygame_view(
    bridge: Any,
    width: int = config.WINDOW_WIDTH,
    height: int = config.WINDOW_HEIGHT,
    fps: int = config.TARGET_FPS,
    on_frame: Optional[Callable[[float], None]] = None,
) -> None:
    """Open the viewer on *bridge* and block until the window is closed."""
    PygameTrafficView(bridge, width=width, height=height, fps=fps, on_frame=on_frame).run()


if __name__ == "__main__":
    raise SystemExit(
        "pygame_view.py needs a bridge object. Run `python demo.py` "
        "or call run_pygame_view(your_bridge)."
    )
