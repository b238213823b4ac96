"""
Gait tracking session for GaitIQ.

GaitSession owns one complete pipeline (conditioner -> window -> detector
-> interval tracker -> metrics) and drives it from a SensorSource:

    source.on_reading -> handle_reading -> filter -> window.push
        -> detector.update -> tracker.record -> compute_gait_metrics
        -> on_metrics_updated(payload)

Sensor problems never raise out of the session: they are stored in
``error`` and the host polls ``error`` / ``is_available``.

Usage:
    session = GaitSession(source, on_metrics_updated=print)
    if await session.request_access():
        session.start()
    ...
    session.stop()
"""

import math
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple

import structlog

from .conditioner import SignalConditioner
from .config import GaitConfig
from .detector import StepDetector
from .errors import (
    GaitError,
    InvalidSampleError,
    PermissionDeniedError,
    SensorUnavailableError,
    TransientSensorError,
)
from .intervals import IntervalTracker
from .metrics import (
    GaitMetrics,
    compute_gait_metrics,
    distance_from_steps,
    estimate_step_length,
    instantaneous_cadence,
    walking_speed,
)
from .sources import SensorSource, now_ms
from .window import RollingWindow

logger = structlog.get_logger(__name__)

MetricsCallback = Callable[[Dict[str, Any]], Any]
StepCallback = Callable[[Dict[str, Any]], Any]


class SessionState(str, Enum):
    IDLE = "IDLE"
    RUNNING = "RUNNING"


def make_session_id() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%SZ")


class GaitSession:
    """
    Start/stop/reset lifecycle around one gait pipeline.

    Each instance has its own components; never share a pipeline between
    users or devices.
    """

    def __init__(
        self,
        source: Optional[SensorSource] = None,
        config: Optional[GaitConfig] = None,
        on_metrics_updated: Optional[MetricsCallback] = None,
        on_step_detected: Optional[StepCallback] = None,
        fallback_source: Optional[SensorSource] = None,
        clock: Callable[[], float] = now_ms
    ):
        """
        Initialize a session.

        Args:
            source: Primary sensor source (may be None; the session then
                    reports SensorUnavailable on request_access)
            config: Tuning; defaults to GaitConfig()
            on_metrics_updated: Called with {symmetry, cadence,
                    stepIntervals, timestamp} every Nth accepted interval.
                    Falls back to config.on_metrics_updated.
            on_step_detected: Called with {steps, timestamp, magnitude}
                    for every accepted step
            fallback_source: Used when the primary source is unavailable
                    and config.use_motion_fallback is set
            clock: Millisecond wall clock
        """
        self.config = config or GaitConfig()
        self.config.validate()
        self.on_metrics_updated = on_metrics_updated or self.config.on_metrics_updated
        self.on_step_detected = on_step_detected
        self.clock = clock

        cfg = self.config
        self.conditioner = SignalConditioner(alpha=cfg.filter_alpha)
        self.window = RollingWindow(capacity=cfg.window_size)
        self.detector = StepDetector(
            threshold=cfg.step_threshold,
            min_interval_ms=cfg.min_interval_ms,
            max_interval_ms=cfg.max_interval_ms,
            reanchor_on_reject=cfg.reanchor_on_reject,
        )
        self.tracker = IntervalTracker(capacity=cfg.max_intervals, metrics_every=cfg.metrics_every)
        self.step_length_m = estimate_step_length(cfg.user_height_cm, cfg.user_gender)

        self.state = SessionState.IDLE
        self.session_id: Optional[str] = None
        self.is_available = False
        self.error: Optional[str] = None
        self.using_fallback = False

        self.activity_start_ms: Optional[float] = None
        self.activity_end_ms: Optional[float] = None
        # first sample time, on the same clock as the sample timestamps
        self.stream_start_ms: Optional[float] = None
        self.dropped_samples = 0
        self._reset_metrics()

        self.source: Optional[SensorSource] = None
        self.fallback_source = fallback_source
        if source is not None:
            self._attach(source)

    # -------------------------------------------------------------------------
    # Getters
    # -------------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self.state is SessionState.RUNNING

    @property
    def step_intervals(self) -> Tuple[float, ...]:
        return self.tracker.snapshot()

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def request_access(self) -> bool:
        """
        Acquire the sensor (phase one of two).

        Returns:
            True when a source is available; otherwise False with
            ``error`` describing why
        """
        if not self.config.enabled:
            return False
        self.error = None

        if self.source is None:
            if self.fallback_source is not None and self.config.use_motion_fallback:
                self._attach(self.fallback_source)
                self.using_fallback = True
            else:
                self._fail(SensorUnavailableError("no sensor source configured"))
                return False

        try:
            await self.source.request_access()
        except SensorUnavailableError as e:
            self._fail(e)
            return await self._try_fallback()
        except PermissionDeniedError as e:
            self._fail(e)
            return False

        self.is_available = True
        logger.info("sensor_available", source=self.source.kind, fallback=self.using_fallback)
        return True

    def start(self):
        """Begin tracking (phase two). No-op when running or unavailable."""
        if self.is_running or not self.config.enabled:
            return
        if not self.is_available or self.source is None:
            logger.warning("start_ignored_sensor_unavailable", error=self.error)
            return

        self._reset_pipeline()
        self._reset_metrics()
        self.session_id = make_session_id()
        self.activity_start_ms = self.clock()
        self.activity_end_ms = None
        self.state = SessionState.RUNNING

        try:
            self.source.start()
        except GaitError as e:
            self.state = SessionState.IDLE
            self._fail(e)
            return
        logger.info("session_started", session_id=self.session_id, source=self.source.kind)

    def stop(self):
        """Stop tracking. Metrics stay readable until the next start()/reset()."""
        if not self.is_running:
            return
        # flip state first so readings racing with the source shutdown are ignored
        self.state = SessionState.IDLE
        self.activity_end_ms = self.clock()
        try:
            self.source.stop()
        except GaitError as e:
            self._fail(e)
        logger.info(
            "session_stopped",
            session_id=self.session_id,
            steps=self.step_count,
            cadence=self.cadence,
            symmetry=self.symmetry,
        )

    def reset(self):
        """Clear metrics and pipeline state; restarts the activity clock if running."""
        self._reset_pipeline()
        self._reset_metrics()
        if self.is_running:
            self.activity_start_ms = self.clock()
        else:
            self.activity_start_ms = None
            self.activity_end_ms = None
        logger.info("session_reset", session_id=self.session_id)

    # -------------------------------------------------------------------------
    # Sensor callbacks
    # -------------------------------------------------------------------------

    def handle_reading(self, sample: Any, timestamp_ms: Optional[float] = None) -> bool:
        """
        Run one sample through the pipeline.

        Args:
            sample: {x, y, z} mapping, 3-sequence or object with x/y/z
            timestamp_ms: Arrival time; defaults to the session clock.
                    A non-numeric or non-finite value drops the sample.

        Returns:
            True when the sample completed an accepted step
        """
        if not self.is_running or not self.config.enabled:
            return False

        try:
            now = self._sample_time(timestamp_ms)
            mag = self.conditioner.process(sample)
        except InvalidSampleError as e:
            self.dropped_samples += 1
            logger.debug("sample_dropped", reason=str(e), dropped=self.dropped_samples)
            return False

        if self.stream_start_ms is None:
            self.stream_start_ms = now

        self.window.push(mag)
        event = self.detector.update(self.window, now)
        if event is None:
            return False

        self.step_count += 1
        if self.on_step_detected is not None:
            self.on_step_detected({
                "steps": self.step_count,
                "timestamp": now,
                "magnitude": event.magnitude,
            })

        if event.interval_ms is not None and self.tracker.record(event.interval_ms):
            self._update_metrics(now)
        return True

    def handle_error(self, error: Exception):
        """
        Record a runtime sensor fault.

        The session keeps running; metrics simply stop updating until
        readings resume.
        """
        if not isinstance(error, GaitError):
            error = TransientSensorError(str(error))
        self.error = error.describe()
        logger.warning("sensor_error", error=self.error, running=self.is_running)

    # -------------------------------------------------------------------------
    # Reporting
    # -------------------------------------------------------------------------

    def duration_s(self) -> int:
        if self.activity_start_ms is None:
            return 0
        end = self.clock() if self.is_running else (self.activity_end_ms or self.clock())
        return int(max(0.0, end - self.activity_start_ms) // 1000)

    def stats(self) -> Dict[str, Any]:
        """Summary of the current (or last) session."""
        return {
            "session_id": self.session_id,
            "steps": self.step_count,
            "distance_km": round(distance_from_steps(self.step_count, self.step_length_m), 4),
            "speed_mps": round(walking_speed(self.step_count, self.step_length_m, self.duration_s()), 3),
            "cadence": self.cadence,
            "instantaneous_cadence": instantaneous_cadence(self.tracker.snapshot()),
            "symmetry": self.symmetry,
            "duration_s": self.duration_s(),
            "start_time": self.activity_start_ms,
            "dropped_samples": self.dropped_samples,
            "rejected_peaks": self.detector.rejected,
            "source": None if self.source is None else self.source.kind,
            "using_fallback": self.using_fallback,
        }

    def status(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "is_available": self.is_available,
            "is_running": self.is_running,
            "error": self.error,
            "symmetry": self.symmetry,
            "cadence": self.cadence,
            "steps": self.step_count,
        }

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _attach(self, source: SensorSource):
        self.source = source
        source.on_reading(self.handle_reading)
        source.on_error(self.handle_error)

    async def _try_fallback(self) -> bool:
        fallback = self.fallback_source
        if fallback is None or fallback is self.source or not self.config.use_motion_fallback:
            return False
        logger.info("trying_fallback_source", primary=self.source.kind, fallback=fallback.kind)
        self._attach(fallback)
        self.using_fallback = True
        try:
            await fallback.request_access()
        except (SensorUnavailableError, PermissionDeniedError) as e:
            self._fail(e)
            return False
        self.error = None
        self.is_available = True
        logger.info("sensor_available", source=fallback.kind, fallback=True)
        return True

    def _fail(self, error: GaitError):
        self.error = error.describe()
        if isinstance(error, (SensorUnavailableError, PermissionDeniedError)):
            self.is_available = False
        logger.warning("sensor_failure", error=self.error)

    def _sample_time(self, timestamp_ms: Optional[float]) -> float:
        if timestamp_ms is None:
            return self.clock()
        try:
            now = float(timestamp_ms)
        except (TypeError, ValueError) as e:
            raise InvalidSampleError(f"timestamp {timestamp_ms!r} is not numeric") from e
        if not math.isfinite(now):
            raise InvalidSampleError(f"timestamp {timestamp_ms!r} is not finite")
        return now

    def _reset_pipeline(self):
        self.conditioner.reset()
        self.window.clear()
        self.detector.reset()
        self.tracker.clear()
        self.stream_start_ms = None
        self.dropped_samples = 0

    def _reset_metrics(self):
        self.symmetry = self.config.symmetry_baseline
        self.cadence = 0
        self.step_count = 0
        self.last_metrics: Optional[GaitMetrics] = None

    def _update_metrics(self, now: float):
        # elapsed on the sample clock, which need not match self.clock
        elapsed = now - (self.stream_start_ms if self.stream_start_ms is not None else now)
        metrics = compute_gait_metrics(self.tracker.snapshot(), elapsed, now)
        self.symmetry = metrics.symmetry
        self.cadence = metrics.cadence
        self.last_metrics = metrics
        logger.info(
            "gait_metrics_updated",
            session_id=self.session_id,
            cadence=metrics.cadence,
            symmetry=metrics.symmetry,
            cv_pct=metrics.coefficient_of_variation,
        )
        if self.on_metrics_updated is not None:
            self.on_metrics_updated(metrics.as_payload())
