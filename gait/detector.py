"""
Step detection for GaitIQ.

Finds footsteps as local maxima in the magnitude stream and gates them
with a plausible inter-step band (250-2000 ms, i.e. 30-240 steps/min).
"""

from dataclasses import dataclass
from typing import Optional

import structlog

from .window import RollingWindow

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class StepEvent:
    """An accepted footstep."""

    timestamp: float                 # ms, time of the sample that confirmed the peak
    magnitude: float                 # peak magnitude (m/s²)
    interval_ms: Optional[float]     # None for the first step of a session


class StepDetector:
    """
    Three-point peak detector with threshold and interval gate.

    A candidate peak is the middle of the last three magnitudes when it is
    above both neighbours and above the threshold. It is confirmed one
    sample late, once the signal has started to fall.

    Cycle per step: awaiting rise -> candidate peak -> accepted / rejected.

    Usage:
        detector = StepDetector(threshold=11.0)
        window.push(mag)
        event = detector.update(window, now_ms)
        if event is not None and event.interval_ms is not None:
            tracker.record(event.interval_ms)
    """

    def __init__(
        self,
        threshold: float = 11.0,
        min_interval_ms: float = 250.0,
        max_interval_ms: float = 2000.0,
        reanchor_on_reject: bool = True
    ):
        """
        Initialize the detector.

        Args:
            threshold: Minimum peak magnitude (m/s²). 11 sits just above
                       resting gravity so only footstep impulses qualify.
            min_interval_ms: Shortest accepted inter-step interval (inclusive)
            max_interval_ms: Longest accepted inter-step interval (inclusive)
            reanchor_on_reject: When True, a rejected peak still becomes the
                       reference for the next interval. When False, the
                       next interval is measured from the last accepted step.
        """
        self.threshold = threshold
        self.min_interval_ms = min_interval_ms
        self.max_interval_ms = max_interval_ms
        self.reanchor_on_reject = reanchor_on_reject

        self.last_step_ms: Optional[float] = None

        # Diagnostics
        self.peaks_seen = 0
        self.rejected = 0

    def is_peak(self, prev2: float, prev: float, curr: float) -> bool:
        return prev > curr and prev > prev2 and prev > self.threshold

    def accepts(self, interval_ms: float) -> bool:
        return self.min_interval_ms <= interval_ms <= self.max_interval_ms

    def update(self, window: RollingWindow, now_ms: float) -> Optional[StepEvent]:
        """
        Inspect the newest magnitudes for a step.

        Args:
            window: Magnitude window, most recent value last
            now_ms: Timestamp of the newest sample (ms)

        Returns:
            StepEvent when a step is accepted, otherwise None
        """
        if len(window) < 3:
            return None

        prev2, prev, curr = window.last(3)
        if not self.is_peak(prev2, prev, curr):
            return None

        self.peaks_seen += 1

        if self.last_step_ms is None:
            self.last_step_ms = now_ms
            return StepEvent(timestamp=now_ms, magnitude=prev, interval_ms=None)

        interval = now_ms - self.last_step_ms
        if not self.accepts(interval):
            self.rejected += 1
            logger.debug("step_rejected", interval_ms=interval, magnitude=round(prev, 3))
            if self.reanchor_on_reject:
                self.last_step_ms = now_ms
            return None

        self.last_step_ms = now_ms
        return StepEvent(timestamp=now_ms, magnitude=prev, interval_ms=interval)

    def reset(self):
        self.last_step_ms = None
        self.peaks_seen = 0
        self.rejected = 0
