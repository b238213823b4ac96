"""
Gait metrics for GaitIQ.

Cadence and a symmetry index computed from recent inter-step intervals,
plus the small walking helpers (step length, distance, speed) used for
session statistics.

Symmetry here is a regularity proxy: low variation in step timing is read
as even left/right stepping. There is a single sensor and no left/right
separation, so it is not a true bilateral measurement.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence, Tuple

import numpy as np

MIN_INTERVALS = 4

# Step length as a fraction of body height
STEP_LENGTH_RATIO = {
    "male": 0.415,
    "female": 0.413,
    "neutral": 0.414,
}


def round_half_up(value: float) -> int:
    """Round to nearest integer, halves away from zero for positives."""
    return int(math.floor(value + 0.5))


def clamp(v, lo, hi):
    return lo if v < lo else hi if v > hi else v


@dataclass(frozen=True)
class GaitMetrics:
    """One metrics update, as published to on_metrics_updated."""

    symmetry: int
    cadence: int
    step_intervals: Tuple[float, ...] = field(default_factory=tuple)
    timestamp: float = 0.0
    coefficient_of_variation: Optional[float] = None

    def as_payload(self) -> Dict[str, Any]:
        return {
            "symmetry": self.symmetry,
            "cadence": self.cadence,
            "stepIntervals": list(self.step_intervals),
            "timestamp": self.timestamp,
        }


def coefficient_of_variation(values: Sequence[float]) -> Optional[float]:
    """
    Population coefficient of variation in percent.

    Returns:
        CV %, or None if values are empty or the mean is not positive
    """
    if len(values) == 0:
        return None
    arr = np.asarray(values, dtype=float)
    mean = float(arr.mean())
    if mean <= 0:
        return None
    std_dev = float(np.sqrt(np.mean((arr - mean) ** 2)))
    return (std_dev / mean) * 100.0


def symmetry_index(intervals: Sequence[float]) -> int:
    """
    Map step-timing variability to a 0-100 score (100 = perfectly even).

    Degenerate sets (non-positive mean) score 0.
    """
    cv = coefficient_of_variation(intervals)
    if cv is None:
        return 0
    return round_half_up(clamp(100.0 - cv, 0.0, 100.0))


def session_cadence(interval_count: int, elapsed_ms: float) -> int:
    """
    Steps per minute averaged over the whole session.

    Uses wall-clock time since the session started, not the span of the
    interval buffer, so the value does not churn with the small buffer.
    """
    if elapsed_ms <= 0:
        return 0
    elapsed_minutes = elapsed_ms / 60000.0
    return round_half_up(interval_count / elapsed_minutes)


def compute_gait_metrics(
    intervals: Sequence[float],
    elapsed_ms: float,
    timestamp: float
) -> GaitMetrics:
    """
    Compute cadence and symmetry from the tracked intervals.

    Args:
        intervals: Inter-step intervals (ms), at least 4
        elapsed_ms: Time since the session started (ms)
        timestamp: Time of this update (ms), echoed in the payload

    Returns:
        GaitMetrics snapshot

    Raises:
        ValueError: fewer than 4 intervals
    """
    if len(intervals) < MIN_INTERVALS:
        raise ValueError(f"need at least {MIN_INTERVALS} intervals, got {len(intervals)}")

    cv = coefficient_of_variation(intervals)
    return GaitMetrics(
        symmetry=symmetry_index(intervals),
        cadence=session_cadence(len(intervals), elapsed_ms),
        step_intervals=tuple(float(i) for i in intervals),
        timestamp=timestamp,
        coefficient_of_variation=None if cv is None else round(cv, 2),
    )


def instantaneous_cadence(intervals: Sequence[float]) -> int:
    """Steps per minute from the mean interval (0 when unknown)."""
    if len(intervals) == 0:
        return 0
    mean = float(np.mean(intervals))
    if mean <= 0:
        return 0
    return round_half_up(60000.0 / mean)


def estimate_step_length(height_cm: float, gender: str = "neutral") -> float:
    """Step length in meters estimated from body height."""
    ratio = STEP_LENGTH_RATIO.get(gender, STEP_LENGTH_RATIO["neutral"])
    return (height_cm / 100.0) * ratio


def distance_from_steps(step_count: int, step_length_m: float) -> float:
    """Distance walked in kilometers."""
    return step_count * step_length_m / 1000.0


def walking_speed(step_count: int, step_length_m: float, duration_s: float) -> float:
    """Average walking speed in m/s (0 for an empty duration)."""
    if duration_s <= 0:
        return 0.0
    return (step_count * step_length_m) / duration_s


def is_in_motion(mag: float, threshold: float = 10.5, gravity: float = 9.8) -> bool:
    """True when the magnitude deviates from gravity by more than threshold."""
    return abs(mag - gravity) > threshold
