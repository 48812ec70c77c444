#!/usr/bin/env python3
"""
Quick demo: runs the city simulation in the background and opens the
Pygame viewer on top of it.  A scripted "player" car laps the highway
ring so the NPCs have an external vehicle to sense and follow.

Usage:
    python3 demo.py

Environment overrides: ``TRAFFIC_NPC_COUNT``, ``TRAFFIC_PEDESTRIAN_COUNT``,
``TRAFFIC_SEED``, ``TRAFFIC_TICK_HZ``, ``TRAFFIC_DROP_RATE``,
``TRAFFIC_LOG_LEVEL``.
"""

import logging
import math

import config
from logging_setup import setup_logging
from main import _env_float, _env_int, _env_log_level
from sim.geometry import heading_towards
from sim.sim_bridge import SimBridge

log = logging.getLogger("demo")


class ScriptedPlayer:
    """Drives the player counter-clockwise around the highway ring."""

    # Inner lane of the ring, in world units
    RADIUS = config.HIGHWAY_RADIUS - config.HIGHWAY_WIDTH / 4.0
    SPEED = 25.0

    def __init__(self, bridge: SimBridge, start_angle: float = 0.0):
        self.bridge = bridge
        self.angle = start_angle

    def step(self, dt: float) -> None:
        self.angle = (self.angle + self.SPEED / self.RADIUS * dt) % (2.0 * math.pi)
        x = math.cos(self.angle) * self.RADIUS
        z = math.sin(self.angle) * self.RADIUS
        heading = heading_towards(-math.sin(self.angle), math.cos(self.angle))
        self.bridge.set_player(x, z, heading, self.SPEED)


def main() -> None:
    level, bad_level = _env_log_level()
    setup_logging(level)
    if bad_level is not None:
        log.warning("Ignoring malformed TRAFFIC_LOG_LEVEL=%r", bad_level)

    drop_rate = _env_float("TRAFFIC_DROP_RATE", config.DEFAULT_DROP_RATE)
    if not 0.0 <= drop_rate <= 1.0:
        log.warning("TRAFFIC_DROP_RATE must be within [0, 1], using %s", config.DEFAULT_DROP_RATE)
        drop_rate = config.DEFAULT_DROP_RATE
    tick_hz = _env_float("TRAFFIC_TICK_HZ", float(config.DEFAULT_TICK_RATE_HZ))
    if tick_hz <= 0:
        log.warning("TRAFFIC_TICK_HZ must be positive, using %s", config.DEFAULT_TICK_RATE_HZ)
        tick_hz = float(config.DEFAULT_TICK_RATE_HZ)

    bridge = SimBridge(
        tick_rate_hz=tick_hz,
        drop_rate=drop_rate,
        vehicle_count=_env_int("TRAFFIC_NPC_COUNT", config.DEFAULT_NPC_COUNT),
        pedestrian_count=_env_int("TRAFFIC_PEDESTRIAN_COUNT", config.DEFAULT_PEDESTRIAN_COUNT),
        random_seed=_env_int("TRAFFIC_SEED", None),
    )
    player = ScriptedPlayer(bridge)
    player.step(0.0)

    from ui import run_pygame_view

    print("Starting city traffic demo...")
    print("Controls: SPACE=pause  +/-=zoom  F3=debug  L=legend  F12=screenshot  R=reset")
    bridge.start()
    try:
        run_pygame_view(bridge, on_frame=player.step)
    finally:
        bridge.stop()


if __name__ == "__main__":
    main()
