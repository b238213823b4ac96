"""
Inter-step interval history for GaitIQ.
"""

from collections import deque
from typing import Tuple


class IntervalTracker:
    """
    Bounded FIFO of the most recent inter-step intervals (ms).

    Also counts every interval ever recorded, which drives the
    "recompute every N steps" trigger independently of the cap.

    Usage:
        tracker = IntervalTracker(capacity=20, metrics_every=4)
        if tracker.record(612.0):
            metrics = compute_gait_metrics(tracker.snapshot(), ...)
    """

    def __init__(self, capacity: int = 20, metrics_every: int = 4):
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        if metrics_every < 1:
            raise ValueError("metrics_every must be >= 1")
        self.capacity = capacity
        self.metrics_every = metrics_every
        self._intervals = deque(maxlen=capacity)
        self.total_recorded = 0

    def record(self, interval_ms: float) -> bool:
        """
        Append an accepted interval.

        Returns:
            True when this is the Nth interval and metrics should be recomputed
        """
        self._intervals.append(float(interval_ms))
        self.total_recorded += 1
        return self.total_recorded % self.metrics_every == 0

    def snapshot(self) -> Tuple[float, ...]:
        """Current intervals, oldest first."""
        return tuple(self._intervals)

    def clear(self):
        self._intervals.clear()
        self.total_recorded = 0

    def __len__(self) -> int:
        return len(self._intervals)
