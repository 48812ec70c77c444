"""
bus — In-memory telemetry channel
=================================

Provides a lightweight pub/sub transport between the traffic simulation
and its renderers, with optional message-loss and latency simulation.

Modules
-------
message
    :class:`TrafficMessage` dataclass.
traffic_bus
    :class:`TrafficBus` publish / poll / latest transport.
metrics
    :class:`BusMetrics` counter snapshot.
"""

from .message import TrafficMessage
from .traffic_bus import TrafficBus
from .metrics import BusMetrics

__all__ = [
    "TrafficMessage",
    "TrafficBus",
    "BusMetrics",
]
