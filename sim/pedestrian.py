"""
sim/pedestrian.py
=================
Pedestrians that walk small loops around a home point near the buildings.

A pedestrian never collides physically with anything; a fast vehicle
passing close only triggers a short side-step (the dodge), and a
pedestrian about to step onto the road holds position until the nearby
lights give the walk signal.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

from sim.car_agent import SensedVehicle
from sim.geometry import heading_towards, heading_vector
from sim.traffic_policy import TrafficPolicy

log = logging.getLogger("pedestrian")


class Pedestrian:
    """
    One walking pedestrian.

    Parameters
    ----------
    ped_id : str
        Unique identifier, e.g. ``"ped-3"``.
    home_x, home_z : float
        Centre of the walking loop.
    walk_radius : float
        Radius of the loop.
    walk_speed : float
        Walking speed along the loop (units per second).
    angle : float
        Starting angle on the loop (radians, measured from +x).
    policy : TrafficPolicy, optional
        Dodge parameters.
    """

    def __init__(
        self,
        ped_id: str,
        home_x: float,
        home_z: float,
        walk_radius: float,
        walk_speed: float,
        angle: float = 0.0,
        policy: Optional[TrafficPolicy] = None,
    ) -> None:
        self.id = ped_id
        self.home_x = float(home_x)
        self.home_z = float(home_z)
        self.walk_radius = max(0.1, float(walk_radius))
        self.walk_speed = max(0.0, float(walk_speed))
        self.angle = float(angle) % (2.0 * math.pi)
        self.policy = policy or TrafficPolicy()

        self.x, self.z = self._loop_point(self.angle)
        self.heading = self._loop_heading(self.angle)

        self.dodging = False
        self.dodge_timer = 0.0
        self.dodge_offset: Tuple[float, float] = (0.0, 0.0)
        self.waiting_for_signal = False

    def _loop_point(self, angle: float) -> Tuple[float, float]:
        return (
            self.home_x + math.cos(angle) * self.walk_radius,
            self.home_z + math.sin(angle) * self.walk_radius,
        )

    @staticmethod
    def _loop_heading(angle: float) -> float:
        return heading_towards(-math.sin(angle), math.cos(angle))

    def _nearest_hazard(self, hazards: Sequence[SensedVehicle]) -> Optional[SensedVehicle]:
        p = self.policy
        nearest: Optional[SensedVehicle] = None
        nearest_dist = p.pedestrian_danger_radius
        for vehicle in hazards:
            if vehicle.speed <= p.pedestrian_hazard_min_speed:
                continue
            d = math.hypot(vehicle.x - self.x, vehicle.z - self.z)
            if d < nearest_dist:
                nearest = vehicle
                nearest_dist = d
        return nearest

    def _start_dodge(self, hazard: SensedVehicle) -> None:
        dx = self.x - hazard.x
        dz = self.z - hazard.z
        norm = math.hypot(dx, dz)
        if norm < 1e-6:
            # Standing on the hazard: step to its right-hand side.
            fx, fz = heading_vector(hazard.heading)
            dx, dz, norm = fz, -fx, 1.0
        step = self.policy.pedestrian_dodge_distance / norm
        self.dodge_offset = (dx * step, dz * step)
        self.dodge_timer = self.policy.pedestrian_dodge_s
        self.dodging = True
        log.debug("%s dodging %s", self.id, hazard.id)

    def update(
        self,
        dt: float,
        hazards: Sequence[SensedVehicle] = (),
        walk_signal: bool = True,
        on_road: Optional[Callable[[float, float], bool]] = None,
    ) -> None:
        """Advance the walk by *dt* seconds.

        Parameters
        ----------
        dt : float
            Frame delta in seconds.
        hazards : sequence of SensedVehicle
            Vehicle positions after this tick's movement.
        walk_signal : bool
            Whether the nearby lights currently allow crossing.
        on_road : callable, optional
            ``on_road(x, z)`` predicate; without it the pedestrian never
            waits.
        """
        dt = max(0.0, dt)

        if self.dodging:
            self.dodge_timer -= dt
            if self.dodge_timer <= 0.0:
                self.dodging = False
                self.dodge_timer = 0.0
                self.dodge_offset = (0.0, 0.0)
        if not self.dodging:
            hazard = self._nearest_hazard(hazards)
            if hazard is not None:
                self._start_dodge(hazard)

        next_angle = self.angle + self.walk_speed / self.walk_radius * dt
        nx, nz = self._loop_point(next_angle)
        if on_road is not None and not walk_signal and on_road(nx, nz):
            self.waiting_for_signal = True
        else:
            self.waiting_for_signal = False
            self.angle = next_angle % (2.0 * math.pi)

        lx, lz = self._loop_point(self.angle)
        self.x = lx + self.dodge_offset[0]
        self.z = lz + self.dodge_offset[1]
        self.heading = self._loop_heading(self.angle)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "x": self.x,
            "z": self.z,
            "heading": self.heading,
            "dodging": self.dodging,
            "waiting": self.waiting_for_signal,
        }
