#!/usr/bin/env python3
"""
main.py
=======
Headless city traffic run: builds a :class:`~sim.world.TrafficSimulation`,
ticks it at a fixed delta and logs a summary every few seconds of
simulated time.

Environment overrides
---------------------
``TRAFFIC_NPC_COUNT``, ``TRAFFIC_PEDESTRIAN_COUNT``, ``TRAFFIC_SEED``,
``TRAFFIC_TICK_HZ``, ``TRAFFIC_MAX_TICKS`` (0 runs until Ctrl-C) and
``TRAFFIC_LOG_LEVEL``.
"""

import logging
import os
import time
from typing import Optional, Tuple

import config
from logging_setup import setup_logging
from sim.world import TrafficSimulation

log = logging.getLogger("main")

# Summary cadence in simulated seconds
_SUMMARY_EVERY_S = 5.0


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        log.warning("Ignoring malformed %s=%r, using %s", name, raw, default)
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        log.warning("Ignoring malformed %s=%r, using %s", name, raw, default)
        return default


def _env_log_level(default: int = logging.INFO) -> Tuple[int, Optional[str]]:
    """Resolve ``TRAFFIC_LOG_LEVEL``; the second item is the rejected raw value, if any."""
    raw = os.environ.get("TRAFFIC_LOG_LEVEL")
    if not raw:
        return default, None
    level = logging.getLevelName(raw.strip().upper())
    if isinstance(level, int):
        return level, None
    return default, raw


def main() -> None:
    level, bad_level = _env_log_level()
    setup_logging(level)
    if bad_level is not None:
        log.warning("Ignoring malformed TRAFFIC_LOG_LEVEL=%r", bad_level)

    num_agents = _env_int("TRAFFIC_NPC_COUNT", config.DEFAULT_NPC_COUNT)
    num_pedestrians = _env_int("TRAFFIC_PEDESTRIAN_COUNT", config.DEFAULT_PEDESTRIAN_COUNT)
    seed = _env_int("TRAFFIC_SEED", None)
    tick_hz = _env_float("TRAFFIC_TICK_HZ", float(config.DEFAULT_TICK_RATE_HZ))
    if tick_hz <= 0:
        log.warning("TRAFFIC_TICK_HZ must be positive, using %s", config.DEFAULT_TICK_RATE_HZ)
        tick_hz = float(config.DEFAULT_TICK_RATE_HZ)
    max_ticks = _env_int("TRAFFIC_MAX_TICKS", 0)

    log.info("Starting headless traffic run...")
    sim = TrafficSimulation(num_agents=num_agents, num_pedestrians=num_pedestrians, seed=seed)
    dt = 1.0 / tick_hz
    summary_every = max(1, int(round(_SUMMARY_EVERY_S * tick_hz)))

    try:
        while not max_ticks or sim.tick_count < max_ticks:
            t0 = time.perf_counter()
            sim.update(dt)

            if sim.tick_count % summary_every == 0:
                stats = sim.stats()
                log.info(
                    "tick=%d t=%.1fs states=%s collisions=%d dodging=%d",
                    stats["tick"], stats["elapsed_s"], stats["states"],
                    stats["collisions"], stats["dodging"],
                )

            # Real-time pacing only when running open-ended
            if not max_ticks:
                time.sleep(max(0.0, dt - (time.perf_counter() - t0)))

    except KeyboardInterrupt:
        log.info("Shutting down...")
    finally:
        log.info("Final stats: %s", sim.stats())
        sim.release()


if __name__ == "__main__":
    main()
