"""
TrafficBus: In-memory pub/sub channel between the simulation and its renderers.

Supports:
    - Topic-based messaging
    - Packet drop and delivery latency simulation
    - Counters via BusMetrics
    - Logging of events

Intended usage:
    - The bridge publishes per-tick snapshots to 'traffic.vehicles',
      'traffic.signals' and 'traffic.pedestrians'
    - Renderers drain a topic with poll() or keep only the newest with latest()
"""

import logging
import random
import time
import uuid
from typing import Dict, List, Optional

from .message import TrafficMessage
from .metrics import BusMetrics

log = logging.getLogger("bus")


class TrafficBus:
    """
    Transport layer for simulation telemetry.

    Attributes:
        drop_rate (float): Probability of randomly dropping a message.
        latency_ms (int): Delay before a published message becomes visible to poll().
        metrics (BusMetrics): Message flow counters.
    """

    def __init__(
        self,
        drop_rate: float = 0.0,
        latency_ms: int = 0,
        rng: Optional[random.Random] = None,
    ):
        """
        Initialize a TrafficBus instance.

        Args:
            drop_rate (float): Chance of randomly dropping a message (clamped to 0.0 - 1.0).
            latency_ms (int): Simulated delivery latency in milliseconds.
            rng (random.Random): Source for drop decisions; seed it for reproducible drops.
        """
        self._topics: Dict[str, List[TrafficMessage]] = {}
        self.drop_rate = max(0.0, min(1.0, float(drop_rate)))
        self.latency_ms = max(0, int(latency_ms))
        self._rng = rng or random.Random()
        self.metrics = BusMetrics()

    def publish(
        self,
        topic: str,
        sender: str,
        payload: dict,
        tick: int = 0,
    ) -> Optional[str]:
        """
        Publish a message to a specific topic.

        Args:
            topic (str): The topic name (e.g., 'traffic.vehicles').
            sender (str): ID of the publisher.
            payload (dict): Data dictionary representing the message contents.
            tick (int): Simulation tick the payload belongs to.

        Returns:
            Optional[str]: The unique message ID if successfully published, or None if dropped.
        """
        if self._maybe_drop():
            self.metrics.dropped += 1
            log.warning("packet_dropped topic=%s sender=%s tick=%d", topic, sender, tick)
            return None

        msg_id = str(uuid.uuid4())
        msg = TrafficMessage(
            id=msg_id,
            topic=topic,
            sender=sender,
            payload=payload,
            ts=time.monotonic(),
            tick=tick,
        )
        self._topics.setdefault(topic, []).append(msg)
        self.metrics.published += 1
        log.debug("publish topic=%s sender=%s tick=%d id=%s", topic, sender, tick, msg_id)
        return msg_id

    def poll(self, topic: str) -> List[TrafficMessage]:
        """
        Retrieve and clear all delivered messages from a given topic.

        Messages younger than latency_ms stay queued for a later poll.

        Args:
            topic (str): The topic name to poll messages from.

        Returns:
            List[TrafficMessage]: Messages in publish order.
        """
        queued = self._topics.get(topic, [])
        if self.latency_ms <= 0:
            ready, waiting = queued, []
        else:
            cutoff = time.monotonic() - self.latency_ms / 1000.0
            ready = [m for m in queued if m.ts <= cutoff]
            waiting = [m for m in queued if m.ts > cutoff]
        self._topics[topic] = waiting
        self.metrics.polled += len(ready)
        return ready

    def latest(self, topic: str) -> Optional[TrafficMessage]:
        """
        Drain a topic and return only its newest delivered message.

        Args:
            topic (str): The topic name.

        Returns:
            Optional[TrafficMessage]: The last message, or None if nothing was delivered.
        """
        msgs = self.poll(topic)
        return msgs[-1] if msgs else None

    def clear(self) -> None:
        """Discard every queued message on every topic."""
        self._topics.clear()

    def _maybe_drop(self) -> bool:
        """
        Decide whether to randomly drop a message based on drop_rate.

        Returns:
            bool: True if the message should be dropped, False otherwise.
        """
        if self.drop_rate <= 0.0:
            return False
        return self._rng.random() < self.drop_rate
