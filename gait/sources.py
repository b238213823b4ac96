"""
Sensor sources for GaitIQ.

A SensorSource delivers accelerometer readings to registered callbacks on
the asyncio event loop. Two real strategies exist:

- DriverAccelerometerSource: polls a high-level accelerometer driver
  (an object with init() / read_accel() / close(), e.g. an I2C IMU).
- MotionEventSource: receives pushed motion events (e.g. phone
  devicemotion frames relayed over a websocket).

SimulatedAccelerometer produces a deterministic walking signal for demos
and tests. select_source() picks a strategy by capability probing.

Usage:
    source = select_source(driver=imu, sample_rate=60)
    source.on_reading(lambda sample, t_ms: ...)
    source.on_error(lambda exc: ...)
    if await source.request_access():
        source.start()
"""

import asyncio
import math
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Awaitable, Iterator, List, Optional, Sequence, Tuple

import numpy as np
import structlog

from .errors import (
    GaitError,
    PermissionDeniedError,
    SensorUnavailableError,
    TransientSensorError,
)

logger = structlog.get_logger(__name__)

ReadingCallback = Callable[[Any, float], Any]
ErrorCallback = Callable[[GaitError], Any]


def now_ms() -> float:
    return time.time() * 1000.0


class SensorSource(ABC):
    """
    Base class for accelerometer sources.

    Readings are only forwarded while the source is running, so events
    that race with stop() are dropped here before they reach a session.
    """

    kind = "sensor"

    def __init__(self, sample_rate: float = 60.0, clock: Callable[[], float] = now_ms):
        self.sample_rate = float(sample_rate)
        self.clock = clock
        self.running = False
        self._reading_callbacks: List[ReadingCallback] = []
        self._error_callbacks: List[ErrorCallback] = []

    def on_reading(self, callback: ReadingCallback):
        self._reading_callbacks.append(callback)

    def on_error(self, callback: ErrorCallback):
        self._error_callbacks.append(callback)

    def remove_listeners(self):
        self._reading_callbacks.clear()
        self._error_callbacks.clear()

    async def request_access(self) -> bool:
        """
        Ask the host for access to motion data.

        Returns:
            True when granted

        Raises:
            SensorUnavailableError: no usable sensor
            PermissionDeniedError: host refused access
        """
        return True

    @abstractmethod
    def start(self):
        """Begin delivering readings."""

    @abstractmethod
    def stop(self):
        """Stop delivering readings."""

    def _emit_reading(self, sample: Any, timestamp_ms: Optional[float] = None) -> bool:
        if not self.running:
            return False
        t = self.clock() if timestamp_ms is None else timestamp_ms
        for cb in list(self._reading_callbacks):
            cb(sample, t)
        return True

    def _emit_error(self, error: GaitError):
        for cb in list(self._error_callbacks):
            cb(error)


# =============================================================================
# Driver-polled accelerometer
# =============================================================================

class DriverAccelerometerSource(SensorSource):
    """
    Polls an accelerometer driver at the configured rate.

    The driver needs init(), read_accel() -> (x, y, z) in m/s², and
    optionally close(). I/O faults (OSError) while reading are reported as
    TransientSensorError at most once per second; after 10 consecutive
    failures the driver is re-initialised.
    """

    kind = "accelerometer"

    REINIT_AFTER_FAILURES = 10
    ERROR_REPORT_INTERVAL_S = 1.0

    def __init__(self, driver: Any, sample_rate: float = 60.0, clock: Callable[[], float] = now_ms):
        super().__init__(sample_rate=sample_rate, clock=clock)
        self.driver = driver
        self.initialized = False
        self.consecutive_failures = 0
        self._task: Optional[asyncio.Task] = None
        self._last_error_report: Optional[float] = None

    @staticmethod
    def supports(driver: Any) -> bool:
        """Capability probe: does this object look like an accelerometer driver?"""
        return driver is not None and callable(getattr(driver, "read_accel", None))

    async def request_access(self) -> bool:
        if not self.supports(self.driver):
            raise SensorUnavailableError("driver does not provide read_accel()")
        init = getattr(self.driver, "init", None)
        if callable(init):
            try:
                init()
            except PermissionError as e:
                raise PermissionDeniedError(str(e)) from e
            except OSError as e:
                raise SensorUnavailableError(f"driver init failed: {e}") from e
        self.initialized = True
        return True

    def start(self):
        if self.running:
            return
        if not self.initialized:
            raise SensorUnavailableError("request_access() must succeed before start()")
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as e:
            raise SensorUnavailableError("polling needs a running event loop") from e
        self.running = True
        self.consecutive_failures = 0
        self._task = loop.create_task(self._poll())

    def stop(self):
        if not self.running:
            return
        self.running = False
        if self._task is not None:
            self._task.cancel()
            self._task = None

    def close(self):
        self.stop()
        close = getattr(self.driver, "close", None)
        if callable(close):
            try:
                close()
            except OSError as e:
                logger.warning("driver_close_failed", error=str(e))

    def poll_once(self) -> bool:
        """
        Read one sample from the driver and emit it.

        Returns:
            True when a reading was delivered
        """
        try:
            x, y, z = self.driver.read_accel()
        except OSError as e:
            self.consecutive_failures += 1
            self._report_failure(e)
            if self.consecutive_failures >= self.REINIT_AFTER_FAILURES:
                self._reinit()
            return False
        self.consecutive_failures = 0
        return self._emit_reading((x, y, z))

    def _report_failure(self, exc: OSError):
        now = time.monotonic()
        last = self._last_error_report
        if last is not None and now - last < self.ERROR_REPORT_INTERVAL_S:
            return
        self._last_error_report = now
        self._emit_error(TransientSensorError(
            f"read failed ({self.consecutive_failures} consecutive): {exc}"
        ))

    def _reinit(self):
        init = getattr(self.driver, "init", None)
        if not callable(init):
            return
        try:
            init()
            self.consecutive_failures = 0
            logger.info("driver_reinitialized")
        except OSError as e:
            logger.warning("driver_reinit_failed", error=str(e))

    async def _poll(self):
        period = 1.0 / self.sample_rate
        while self.running:
            self.poll_once()
            await asyncio.sleep(period)


# =============================================================================
# Pushed motion events
# =============================================================================

class MotionEventSource(SensorSource):
    """
    Source fed by motion events pushed from outside (websocket, UI bridge).

    Events are dicts carrying x/y/z either flat or under
    "accelerationIncludingGravity", and optionally a timestamp in ms under
    "t" or "timestamp". Events without acceleration are ignored; a
    non-numeric timestamp is forwarded as is and the session drops the sample.
    """

    kind = "motion_event"

    def __init__(
        self,
        sample_rate: float = 60.0,
        permission: Optional[Callable[[], Awaitable[bool]]] = None,
        clock: Callable[[], float] = now_ms
    ):
        """
        Args:
            sample_rate: Expected event rate (informational)
            permission: Optional async callable asking the host for access;
                        a False result means access was denied
            clock: Millisecond clock used for events without a timestamp
        """
        super().__init__(sample_rate=sample_rate, clock=clock)
        self.permission = permission
        self.events_received = 0

    async def request_access(self) -> bool:
        if self.permission is None:
            return True
        granted = await self.permission()
        if not granted:
            raise PermissionDeniedError("motion event access was refused")
        return True

    def start(self):
        self.running = True

    def stop(self):
        self.running = False

    def dispatch(self, event: dict) -> bool:
        """
        Deliver one motion event.

        Returns:
            True when the event was forwarded to listeners
        """
        self.events_received += 1
        accel = event.get("accelerationIncludingGravity", event)
        if not isinstance(accel, dict) or not any(k in accel for k in ("x", "y", "z")):
            return False
        sample = {axis: accel.get(axis) for axis in ("x", "y", "z")}
        # t is validated by the session
        t = event.get("t", event.get("timestamp"))
        return self._emit_reading(sample, t)

    def fail(self, message: str):
        """Report a runtime fault from the event producer."""
        self._emit_error(TransientSensorError(message))


# =============================================================================
# Simulated walking accelerometer
# =============================================================================

class SimulatedAccelerometer(SensorSource):
    """
    Deterministic walking signal for demos and tests.

    Produces gravity on z plus a Gaussian impulse at every footstep and a
    little seeded noise. Step intervals cycle through step_intervals_ms,
    so [500, 700] simulates an uneven gait.

    Usage:
        sim = SimulatedAccelerometer(step_intervals_ms=[600], seed=1)
        for t_ms, (x, y, z) in sim.samples(duration_ms=6000):
            session.handle_reading((x, y, z), t_ms)
    """

    kind = "simulated"

    def __init__(
        self,
        sample_rate: float = 60.0,
        step_intervals_ms: Sequence[float] = (600.0,),
        impulse: float = 6.0,
        impulse_width_ms: float = 40.0,
        noise: float = 0.05,
        first_step_ms: float = 300.0,
        seed: Optional[int] = None,
        clock: Callable[[], float] = now_ms
    ):
        super().__init__(sample_rate=sample_rate, clock=clock)
        if not step_intervals_ms:
            raise ValueError("step_intervals_ms must not be empty")
        self.step_intervals_ms = [float(i) for i in step_intervals_ms]
        self.impulse = impulse
        self.impulse_width_ms = impulse_width_ms
        self.noise = noise
        self.first_step_ms = first_step_ms
        self.seed = seed
        self._task: Optional[asyncio.Task] = None

    def step_times(self, duration_ms: float) -> np.ndarray:
        """Footstep times (ms from start) within duration_ms."""
        times = []
        t = self.first_step_ms
        i = 0
        while t < duration_ms:
            times.append(t)
            t += self.step_intervals_ms[i % len(self.step_intervals_ms)]
            i += 1
        return np.asarray(times, dtype=float)

    def samples(self, duration_ms: float, start_ms: float = 0.0) -> Iterator[Tuple[float, Tuple[float, float, float]]]:
        """
        Generate (timestamp_ms, (x, y, z)) for duration_ms of walking.
        """
        rng = np.random.default_rng(self.seed)
        dt = 1000.0 / self.sample_rate
        t = np.arange(0.0, duration_ms, dt)
        steps = self.step_times(duration_ms)

        z = np.full_like(t, 9.8)
        half_span = 4.0 * self.impulse_width_ms
        for s in steps:
            lo, hi = np.searchsorted(t, [s - half_span, s + half_span])
            z[lo:hi] += self.impulse * np.exp(-0.5 * ((t[lo:hi] - s) / self.impulse_width_ms) ** 2)

        sway = 0.3 * np.sin(2.0 * math.pi * t / (2.0 * np.mean(self.step_intervals_ms)))
        x = sway + rng.normal(0.0, self.noise, t.shape)
        y = rng.normal(0.0, self.noise, t.shape)
        z = z + rng.normal(0.0, self.noise, t.shape)

        for i in range(len(t)):
            yield float(start_ms + t[i]), (float(x[i]), float(y[i]), float(z[i]))

    def start(self):
        if self.running:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as e:
            raise SensorUnavailableError("simulation needs a running event loop") from e
        self.running = True
        self._task = loop.create_task(self._run())

    def stop(self):
        if not self.running:
            return
        self.running = False
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _run(self, duration_ms: float = 3_600_000.0):
        period = 1.0 / self.sample_rate
        for _t, sample in self.samples(duration_ms):
            if not self.running:
                break
            self._emit_reading(sample)
            await asyncio.sleep(period)


def select_source(
    driver: Any = None,
    sample_rate: float = 60.0,
    use_motion_fallback: bool = True,
    clock: Callable[[], float] = now_ms
) -> SensorSource:
    """
    Pick a sensor strategy by probing capabilities.

    Args:
        driver: Accelerometer driver object, if the host has one
        sample_rate: Requested rate in Hz
        use_motion_fallback: Allow the pushed motion-event source when no
                             driver is usable

    Raises:
        SensorUnavailableError: nothing usable
    """
    if DriverAccelerometerSource.supports(driver):
        return DriverAccelerometerSource(driver, sample_rate=sample_rate, clock=clock)
    if use_motion_fallback:
        logger.info("using_motion_event_fallback")
        return MotionEventSource(sample_rate=sample_rate, clock=clock)
    raise SensorUnavailableError("no accelerometer driver and motion fallback disabled")
