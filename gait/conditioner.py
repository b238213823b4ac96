"""
Signal conditioning for GaitIQ.

Smooths raw 3-axis accelerometer readings with a single-pole low-pass
filter and reduces them to a scalar magnitude for step detection.
"""

import math
from numbers import Real
from typing import Any, Tuple

from .errors import InvalidSampleError


def low_pass(current: float, previous: float, alpha: float = 0.2) -> float:
    """Exponential smoothing: y[n] = y[n-1] + alpha * (x[n] - y[n-1])."""
    return previous + alpha * (current - previous)


def magnitude(x: float, y: float, z: float) -> float:
    """Euclidean norm of a 3-axis vector."""
    return math.sqrt(x * x + y * y + z * z)


def as_xyz(sample: Any) -> Tuple[float, float, float]:
    """
    Coerce a sample into a validated (x, y, z) float triple.

    Accepts a mapping with x/y/z keys, a 3-sequence, or any object
    exposing x/y/z attributes (like a sensor reading).

    Raises:
        InvalidSampleError: missing, non-numeric or non-finite component
    """
    try:
        if isinstance(sample, dict):
            raw = (sample["x"], sample["y"], sample["z"])
        elif isinstance(sample, (tuple, list)):
            if len(sample) != 3:
                raise InvalidSampleError(f"expected 3 components, got {len(sample)}")
            raw = tuple(sample)
        else:
            raw = (sample.x, sample.y, sample.z)
    except (KeyError, AttributeError) as e:
        raise InvalidSampleError(f"sample is missing component {e}") from e

    for axis, value in zip("xyz", raw):
        # bool is an int subclass but never a valid reading
        if isinstance(value, bool) or not isinstance(value, Real):
            raise InvalidSampleError(f"{axis}={value!r} is not numeric")
        if not math.isfinite(value):
            raise InvalidSampleError(f"{axis}={value!r} is not finite")
    return (float(raw[0]), float(raw[1]), float(raw[2]))


class SignalConditioner:
    """
    Per-axis low-pass filter with magnitude output.

    The filtered state starts at (0, 0, 0) for every session, so the first
    few magnitudes ramp up towards gravity instead of jumping straight to it.
    Invalid samples are rejected before the state is touched.

    Usage:
        conditioner = SignalConditioner(alpha=0.2)
        mag = conditioner.process({"x": 0.1, "y": 0.3, "z": 9.8})
    """

    def __init__(self, alpha: float = 0.2):
        """
        Initialize the conditioner.

        Args:
            alpha: Smoothing coefficient in (0, 1].
                   Lower = smoother but slower to follow the signal.
        """
        if not (0.0 < alpha <= 1.0):
            raise ValueError(f"alpha must be in (0, 1], got {alpha}")
        self.alpha = alpha
        self.filtered: Tuple[float, float, float] = (0.0, 0.0, 0.0)
        self.samples_filtered = 0

    def filter(self, sample: Any) -> Tuple[float, float, float]:
        """
        Filter one sample and update the stored state.

        Returns:
            Filtered (x, y, z)

        Raises:
            InvalidSampleError: state is left unchanged
        """
        x, y, z = as_xyz(sample)
        px, py, pz = self.filtered
        self.filtered = (
            low_pass(x, px, self.alpha),
            low_pass(y, py, self.alpha),
            low_pass(z, pz, self.alpha),
        )
        self.samples_filtered += 1
        return self.filtered

    def process(self, sample: Any) -> float:
        """Filter a sample and return the magnitude of the filtered vector."""
        return magnitude(*self.filter(sample))

    def reset(self):
        self.filtered = (0.0, 0.0, 0.0)
        self.samples_filtered = 0
