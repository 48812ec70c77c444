"""
BusMetrics: Tracks simple statistics for TrafficBus message flow.
"""


class BusMetrics:
    """
    Tracks metrics for published, dropped and polled messages.

    Attributes:
        published (int): Total number of messages successfully published.
        dropped (int): Number of messages dropped due to simulated faults.
        polled (int): Number of messages handed to consumers.
    """

    def __init__(self):
        """Initialize all counters to zero."""
        self.published = 0
        self.dropped = 0
        self.polled = 0

    @property
    def drop_ratio(self) -> float:
        """Fraction of publish attempts that were dropped."""
        attempts = self.published + self.dropped
        return self.dropped / attempts if attempts else 0.0

    def report(self) -> dict:
        """
        Return a snapshot of current metrics.

        Returns:
            dict: Dictionary containing 'published', 'dropped', 'polled' and 'drop_ratio'.
        """
        return {
            "published": self.published,
            "dropped": self.dropped,
            "polled": self.polled,
            "drop_ratio": round(self.drop_ratio, 3),
        }
