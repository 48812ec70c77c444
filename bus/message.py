"""
TrafficMessage: Data structure representing a message carried by the TrafficBus.
"""

from dataclasses import dataclass


@dataclass
class TrafficMessage:
    """
    Represents a single telemetry message published on the TrafficBus.

    Attributes:
        id (str): Unique identifier for the message.
        topic (str): The topic of the message (e.g., 'traffic.vehicles', 'traffic.signals').
        sender (str): ID of the publisher (e.g., 'sim').
        payload (dict): Arbitrary dictionary containing message contents.
        ts (float): Monotonic timestamp (in seconds) when the message was created.
        tick (int): Simulation tick the payload belongs to.
    """
    id: str
    topic: str
    sender: str
    payload: dict
    ts: float
    tick: int = 0
