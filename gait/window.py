"""
Rolling magnitude window for GaitIQ.
"""

from collections import deque
from typing import Iterator, List


class RollingWindow:
    """
    Fixed-capacity FIFO of recent magnitudes.

    Oldest values are evicted first once the window is full. Push and
    tail access are O(1) (deque with maxlen).

    Usage:
        window = RollingWindow(capacity=200)
        window.push(9.81)
        prev2, prev, curr = window.last(3)
    """

    MIN_CAPACITY = 3  # three-point peak detection

    def __init__(self, capacity: int = 200):
        if capacity < self.MIN_CAPACITY:
            raise ValueError(f"capacity must be >= {self.MIN_CAPACITY}, got {capacity}")
        self.capacity = int(capacity)
        self._values = deque(maxlen=self.capacity)

    def push(self, value: float):
        self._values.append(float(value))

    def last(self, n: int) -> List[float]:
        """
        Most recent n values, oldest first.

        Raises:
            ValueError: fewer than n values buffered
        """
        if n > len(self._values):
            raise ValueError(f"window holds {len(self._values)} values, asked for {n}")
        return [self._values[i] for i in range(-n, 0)]

    def clear(self):
        self._values.clear()

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[float]:
        return iter(self._values)

    def __repr__(self) -> str:
        return f"RollingWindow(capacity={self.capacity}, size={len(self)})"
