"""
Configuration for GaitIQ.

Defaults live as module constants (tuned for a phone carried at the hip,
sampling at ~60 Hz). Every value can be overridden with a GAIT_* environment
variable through GaitConfig.from_env().
"""

import os
from dataclasses import dataclass, field, fields
from typing import Any, Callable, Dict, Optional

from .metrics import MIN_INTERVALS


# =============================================================================
# Defaults
# =============================================================================

WINDOW_SIZE = 200            # magnitude lookback buffer
SAMPLE_RATE_HZ = 60          # requested sensor rate (best effort)
FILTER_ALPHA = 0.2           # low-pass coefficient, lower = smoother
STEP_THRESHOLD = 11.0        # m/s², gravity (~9.8) plus footstep impulse
MIN_INTERVAL_MS = 250        # 240 steps/min
MAX_INTERVAL_MS = 2000       # 30 steps/min
MAX_INTERVALS = 20           # interval history kept for metrics
METRICS_EVERY = 4            # recompute metrics every N accepted intervals
SYMMETRY_BASELINE = 0        # symmetry reported before the first update
USER_HEIGHT_CM = 170.0
USER_GENDER = "neutral"

HOST = os.getenv("GAIT_HOST", "0.0.0.0")
PORT = int(os.getenv("GAIT_PORT", "8765"))
LOG_LEVEL = os.getenv("GAIT_LOG_LEVEL", "INFO")


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class GaitConfig:
    """
    Tuning knobs for one tracking session.

    Usage:
        config = GaitConfig(window_size=120, step_threshold=11.5)
        config = GaitConfig.from_env()
    """

    window_size: int = WINDOW_SIZE
    sample_rate: int = SAMPLE_RATE_HZ
    enabled: bool = True
    filter_alpha: float = FILTER_ALPHA
    step_threshold: float = STEP_THRESHOLD
    min_interval_ms: float = MIN_INTERVAL_MS
    max_interval_ms: float = MAX_INTERVAL_MS
    max_intervals: int = MAX_INTERVALS
    metrics_every: int = METRICS_EVERY
    reanchor_on_reject: bool = True
    symmetry_baseline: int = SYMMETRY_BASELINE
    user_height_cm: float = USER_HEIGHT_CM
    user_gender: str = USER_GENDER
    use_motion_fallback: bool = True
    on_metrics_updated: Optional[Callable[[Dict[str, Any]], None]] = field(
        default=None, repr=False, compare=False
    )

    # env var -> (field, parser)
    _ENV = {
        "GAIT_WINDOW_SIZE": ("window_size", int),
        "GAIT_SAMPLE_RATE": ("sample_rate", int),
        "GAIT_ENABLED": ("enabled", _env_bool),
        "GAIT_FILTER_ALPHA": ("filter_alpha", float),
        "GAIT_STEP_THRESHOLD": ("step_threshold", float),
        "GAIT_MIN_INTERVAL_MS": ("min_interval_ms", float),
        "GAIT_MAX_INTERVAL_MS": ("max_interval_ms", float),
        "GAIT_MAX_INTERVALS": ("max_intervals", int),
        "GAIT_METRICS_EVERY": ("metrics_every", int),
        "GAIT_REANCHOR_ON_REJECT": ("reanchor_on_reject", _env_bool),
        "GAIT_USER_HEIGHT_CM": ("user_height_cm", float),
        "GAIT_USER_GENDER": ("user_gender", str),
        "GAIT_MOTION_FALLBACK": ("use_motion_fallback", _env_bool),
    }

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None, **overrides) -> "GaitConfig":
        """
        Build a config from GAIT_* environment variables.

        Args:
            environ: Mapping to read instead of os.environ (handy in tests)
            **overrides: Explicit field values, applied last

        Returns:
            Validated GaitConfig
        """
        environ = os.environ if environ is None else environ
        values: Dict[str, Any] = {}
        for var, (name, parse) in cls._ENV.items():
            raw = environ.get(var, "").strip()
            if raw:
                try:
                    values[name] = parse(raw)
                except ValueError as e:
                    raise ValueError(f"{var}={raw!r} is not valid: {e}") from e
        values.update(overrides)
        config = cls(**values)
        config.validate()
        return config

    def validate(self) -> None:
        if self.window_size < 3:
            raise ValueError("window_size must be at least 3 for peak detection")
        if self.sample_rate <= 0:
            raise ValueError("sample_rate must be positive")
        if not (0.0 < self.filter_alpha <= 1.0):
            raise ValueError("filter_alpha must be in (0, 1]")
        if self.min_interval_ms < 0 or self.max_interval_ms < self.min_interval_ms:
            raise ValueError("interval band must satisfy 0 <= min <= max")
        if self.metrics_every < MIN_INTERVALS:
            raise ValueError(f"metrics_every must be >= {MIN_INTERVALS}, metrics need that many intervals")
        if self.max_intervals < self.metrics_every:
            raise ValueError("max_intervals must hold at least metrics_every intervals")
        if not (0 <= self.symmetry_baseline <= 100):
            raise ValueError("symmetry_baseline must be within 0-100")

    def as_dict(self) -> Dict[str, Any]:
        """Plain values for status reports (callbacks excluded)."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if f.name != "on_metrics_updated"
        }
