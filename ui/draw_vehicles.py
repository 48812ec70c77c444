#!/usr/bin/env python3
"""Vehicle and pedestrian rendering plus pose smoothing (mixin)."""

from __future__ import annotations

import math
from typing import Any, Mapping, Sequence

import pygame

from .helpers import angle_lerp, draw_alpha_circle, lerp
from .types import VehicleRenderState


class VehicleRenderer:
    """Mixin that draws cars as oriented boxes and pedestrians as dots."""

    def _sync_vehicle_states(self, vehicles: Sequence[Mapping[str, Any]], dt: float) -> None:
        """Ease every render pose toward the latest bridge snapshot."""
        t = min(1.0, self.SMOOTHING * dt)
        seen = set()
        for vehicle in vehicles:
            vid = str(vehicle["id"])
            seen.add(vid)
            color = self._vehicle_color(vehicle)
            state = self.vehicle_states.get(vid)
            if state is None:
                self.vehicle_states[vid] = VehicleRenderState(
                    vehicle["x"], vehicle["z"], vehicle["heading"], color,
                )
                continue
            # Snap on large jumps (reset, collision rollback)
            if math.hypot(vehicle["x"] - state.x, vehicle["z"] - state.z) > 20.0:
                t_v = 1.0
            else:
                t_v = t
            state.x = lerp(state.x, vehicle["x"], t_v)
            state.z = lerp(state.z, vehicle["z"], t_v)
            state.heading = angle_lerp(state.heading, vehicle["heading"], t_v)
            state.color = color
        for vid in list(self.vehicle_states):
            if vid not in seen:
                del self.vehicle_states[vid]

    def _vehicle_color(self, vehicle: Mapping[str, Any]):
        if vehicle.get("kind") == "player":
            return self.PLAYER_COLOR
        return self.STATE_COLORS.get(vehicle.get("state", ""), tuple(vehicle.get("color", (200, 200, 200))))

    def draw_vehicle(self, surface: pygame.Surface, vehicle: Mapping[str, Any]) -> None:
        state = self.vehicle_states.get(str(vehicle["id"]))
        if state is None:
            return
        zoom = self.camera.zoom
        w = max(6, int(self.VEHICLE_LENGTH * zoom))
        h = max(3, int(self.VEHICLE_WIDTH * zoom))
        sprite = pygame.Surface((w, h), pygame.SRCALPHA)

        # Body, nose pointing to +x of the sprite
        body = pygame.Rect(0, 0, w, h)
        pygame.draw.rect(sprite, state.color, body, border_radius=max(1, h // 4))
        pygame.draw.rect(sprite, (20, 20, 20), body, width=1, border_radius=max(1, h // 4))

        lamp = max(1, h // 4)
        if vehicle.get("braking"):
            pygame.draw.circle(sprite, self.BRAKE_LIGHT_COLOR, (lamp, lamp), lamp)
            pygame.draw.circle(sprite, self.BRAKE_LIGHT_COLOR, (lamp, h - lamp - 1), lamp)

        signal = vehicle.get("turn_signal", "none")
        if signal != "none" and vehicle.get("signal_lit"):
            # Sprite row 0 is the left side when the nose points to +x
            side_y = lamp if signal == "left" else h - lamp - 1
            pygame.draw.circle(sprite, self.INDICATOR_COLOR, (w - lamp - 1, side_y), lamp)
            pygame.draw.circle(sprite, self.INDICATOR_COLOR, (lamp, side_y), lamp)

        # World heading h points along (sin h, cos h); screen y grows down.
        angle = math.degrees(math.pi / 2.0 - state.heading)
        rotated = pygame.transform.rotate(sprite, angle)
        sx, sy = self.camera.world_to_screen(state.x, state.z)
        surface.blit(rotated, rotated.get_rect(center=(int(sx), int(sy))))

    def draw_pedestrian(self, surface: pygame.Surface, ped: Mapping[str, Any]) -> None:
        sx, sy = self.camera.world_to_screen(ped["x"], ped["z"])
        r = max(2, int(self.PEDESTRIAN_RADIUS * self.camera.zoom))
        if ped.get("dodging"):
            draw_alpha_circle(surface, (*self.PEDESTRIAN_DODGE_COLOR, 90), (int(sx), int(sy)), r * 3)
            color = self.PEDESTRIAN_DODGE_COLOR
        else:
            color = self.PEDESTRIAN_COLOR
        pygame.draw.circle(surface, color, (int(sx), int(sy)), r)
