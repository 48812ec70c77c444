"""
sim/sim_bridge.py
=================
Background-thread orchestrator tying :mod:`sim.world` and the
:class:`bus.traffic_bus.TrafficBus` together.  Every tick the simulation
snapshot is published on the bus; the bridge drains the bus into a
lock-protected cache so the UI polls the latest state without blocking.

Public API consumed by :mod:`ui.pygame_view`
--------------------------------------------
* ``get_vehicles()``     → ``List[dict]``
* ``get_signals()``      → ``List[dict]``
* ``get_pedestrians()``  → ``List[dict]``
* ``get_network()``      → ``dict`` (static road geometry)
* ``get_stats()``        → ``dict``
* ``set_player(...)``    → ``None``
* ``reset()``            → ``None``
* ``set_paused(bool)``   → ``None``
"""

from __future__ import annotations

import threading
import time
import logging
import random
from typing import Any, Dict, List, Optional, Sequence, Tuple

import config
from bus.traffic_bus import TrafficBus
from sim.car_agent import ExternalVehicle
from sim.traffic_policy import TrafficPolicy
from sim.world import TrafficSimulation

log = logging.getLogger("sim_bridge")

TOPIC_VEHICLES = "traffic.vehicles"
TOPIC_SIGNALS = "traffic.signals"
TOPIC_PEDESTRIANS = "traffic.pedestrians"

_SENDER = "sim"

# Vehicle palette (same order as ViewConstants.DEFAULT_VEHICLE_COLORS)
_VEHICLE_COLORS: Sequence[Tuple[int, int, int]] = (
    (86, 168, 255),
    (255, 88, 88),
    (100, 226, 170),
    (246, 191, 90),
    (180, 120, 255),
    (255, 160, 100),
)
_PLAYER_COLOR: Tuple[int, int, int] = (255, 255, 255)


class SimBridge:
    """Simulation orchestrator running in a background thread.

    The thread calls :meth:`step` at ``tick_rate_hz``, advancing the
    :class:`~sim.world.TrafficSimulation`, publishing its snapshots on the
    :class:`~bus.traffic_bus.TrafficBus` and caching whatever the bus
    delivers for the UI thread.

    Parameters
    ----------
    tick_rate_hz : float
        Simulation ticks per second.
    drop_rate : float
        Bus message drop probability (0.0–1.0).
    latency_ms : int
        Simulated bus latency in milliseconds.
    vehicle_count : int
        Number of NPC cars to spawn.
    pedestrian_count : int
        Number of pedestrians to place.
    random_seed : int or None
        Seed for reproducibility.
    policy : TrafficPolicy or None
        Tunable constants.
    simulation : TrafficSimulation or None
        Pre-built simulation; the count / seed / policy arguments are
        ignored when given.
    """

    def __init__(
        self,
        tick_rate_hz: float = config.DEFAULT_TICK_RATE_HZ,
        drop_rate: float = config.DEFAULT_DROP_RATE,
        latency_ms: int = config.DEFAULT_LATENCY_MS,
        vehicle_count: int = config.DEFAULT_NPC_COUNT,
        pedestrian_count: int = config.DEFAULT_PEDESTRIAN_COUNT,
        random_seed: Optional[int] = None,
        policy: Optional[TrafficPolicy] = None,
        simulation: Optional[TrafficSimulation] = None,
    ) -> None:
        self._tick_rate_hz = max(1.0, float(tick_rate_hz))
        self._world = simulation or TrafficSimulation(
            num_agents=vehicle_count,
            num_pedestrians=pedestrian_count,
            seed=random_seed,
            policy=policy,
        )
        self._bus = TrafficBus(
            drop_rate=drop_rate,
            latency_ms=latency_ms,
            rng=random.Random(random_seed),
        )

        # Guards the simulation against reset / set_player from the UI thread
        self._sim_lock = threading.RLock()
        self._lock = threading.Lock()

        # Cached state: written by the sim thread, read by the UI thread
        self._vehicles: List[Dict[str, Any]] = []
        self._signals: List[Dict[str, Any]] = []
        self._pedestrians: List[Dict[str, Any]] = []
        self._last_tick = 0
        self._color_by_id: Dict[str, Tuple[int, int, int]] = {}
        self._network: Dict[str, Any] = self._world.graph.as_dict()

        self._thread: Optional[threading.Thread] = None
        self._running = False
        self._paused = False

    @property
    def simulation(self) -> TrafficSimulation:
        return self._world

    @property
    def bus(self) -> TrafficBus:
        return self._bus

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    def start(self) -> None:
        """Spawn the background simulation thread."""
        if self._running:
            return
        self._running = True
        self._thread = threading.Thread(
            target=self._loop, daemon=True, name="SimBridge"
        )
        self._thread.start()
        log.info("SimBridge started at %.1f Hz", self._tick_rate_hz)

    def stop(self) -> None:
        """Signal the thread to stop and wait for it to join."""
        self._running = False
        if self._thread:
            self._thread.join(timeout=2.0)
            self._thread = None
        log.info("SimBridge stopped")

    # ── UI adapter API ────────────────────────────────────────────────────────

    def get_vehicles(self) -> List[Dict[str, Any]]:
        with self._lock:
            return list(self._vehicles)

    def get_signals(self) -> List[Dict[str, Any]]:
        with self._lock:
            return list(self._signals)

    def get_pedestrians(self) -> List[Dict[str, Any]]:
        with self._lock:
            return list(self._pedestrians)

    def get_network(self) -> Dict[str, Any]:
        """Static road geometry (segments, intersections, bounds)."""
        return self._network

    def get_stats(self) -> Dict[str, Any]:
        with self._sim_lock:
            stats = self._world.stats()
        stats.update({
            "bus": self._bus.metrics.report(),
            "paused": self._paused,
            "tick_rate_hz": self._tick_rate_hz,
        })
        with self._lock:
            stats["rendered_tick"] = self._last_tick
        return stats

    def set_player(
        self, x: float, z: float, heading: float, speed: float, player_id: str = "player",
    ) -> None:
        """Update (or create) the externally driven vehicle agents must sense."""
        with self._sim_lock:
            player = self._world.player
            if player is None:
                player = ExternalVehicle(id=player_id)
                self._world.set_player(player)
            player.x, player.z = float(x), float(z)
            player.heading, player.speed = float(heading), float(speed)

    def reset(self) -> None:
        """Re-initialise the simulation so the scenario replays."""
        with self._sim_lock:
            self._world.reset()
            self._bus.clear()
        with self._lock:
            self._vehicles = []
            self._signals = []
            self._pedestrians = []
            self._last_tick = 0
            self._color_by_id = {}
        log.info("SimBridge reset")

    def set_paused(self, paused: bool) -> None:
        """Pause / unpause the simulation tick."""
        self._paused = paused

    def is_paused(self) -> bool:
        return self._paused

    # ── Background loop ───────────────────────────────────────────────────────

    def _loop(self) -> None:
        dt = 1.0 / self._tick_rate_hz
        while self._running:
            t0 = time.perf_counter()
            if not self._paused:
                try:
                    self.step(dt)
                except Exception:
                    log.exception("SimBridge tick error")
            time.sleep(max(0.0, dt - (time.perf_counter() - t0)))

    # ── helpers ───────────────────────────────────────────────────────────────

    def _color_for(self, vehicle_id: str, kind: str) -> Tuple[int, int, int]:
        if kind == "player":
            return _PLAYER_COLOR
        existing = self._color_by_id.get(vehicle_id)
        if existing:
            return existing
        color = _VEHICLE_COLORS[len(self._color_by_id) % len(_VEHICLE_COLORS)]
        self._color_by_id[vehicle_id] = color
        return color

    def _vehicle_dicts(self) -> List[Dict[str, Any]]:
        vehicles = [agent.as_dict() for agent in self._world.agents if not agent.released]
        if self._world.player is not None:
            vehicles.append(self._world.player.snapshot().as_dict())
        for vehicle in vehicles:
            vehicle["color"] = self._color_for(vehicle["id"], vehicle["kind"])
        return vehicles

    # ── tick ──────────────────────────────────────────────────────────────────

    def step(self, dt: float) -> None:
        """Advance one tick, publish it, and refresh the cache from the bus.

        A topic whose message was dropped keeps its previous cached value.
        """
        with self._sim_lock:
            self._world.update(dt)
            tick = self._world.tick_count

            # 1. Publish this tick's snapshots.
            self._bus.publish(TOPIC_VEHICLES, _SENDER, {"vehicles": self._vehicle_dicts()}, tick)
            self._bus.publish(TOPIC_SIGNALS, _SENDER, {"signals": self._world.signal_states()}, tick)
            self._bus.publish(
                TOPIC_PEDESTRIANS, _SENDER, {"pedestrians": self._world.pedestrian_states()}, tick,
            )

            # 2. Take whatever the bus delivered (newest wins).
            vehicles_msg = self._bus.latest(TOPIC_VEHICLES)
            signals_msg = self._bus.latest(TOPIC_SIGNALS)
            pedestrians_msg = self._bus.latest(TOPIC_PEDESTRIANS)

        # 3. Atomic swap; the UI thread reads these via public methods.
        with self._lock:
            if vehicles_msg is not None:
                self._vehicles = vehicles_msg.payload["vehicles"]
                self._last_tick = vehicles_msg.tick
            if signals_msg is not None:
                self._signals = signals_msg.payload["signals"]
            if pedestrians_msg is not None:
                self._pedestrians = pedestrians_msg.payload["pedestrians"]
