"""Fakes and sample stream builders shared by the tests."""

REST = 9.8
PEAK = 15.0


class FakeClock:
    """Millisecond clock the tests move by hand."""

    def __init__(self, start_ms: float = 0.0):
        self.now = float(start_ms)

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float):
        self.now += ms


class FakeDriver:
    """Accelerometer driver returning scripted readings."""

    def __init__(self, readings=None, init_error=None):
        self.readings = list(readings or [])
        self.init_error = init_error
        self.init_calls = 0
        self.closed = False

    def init(self):
        self.init_calls += 1
        if self.init_error is not None:
            raise self.init_error

    def read_accel(self):
        if not self.readings:
            return (0.0, 0.0, 9.8)
        item = self.readings.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def close(self):
        self.closed = True


def step_times(first_ms, intervals):
    """Cumulative step times from a first step and a list of intervals."""
    times = [float(first_ms)]
    for interval in intervals:
        times.append(times[-1] + interval)
    return times


def step_stream(times_ms, dt_ms=20.0, end_ms=None, peak=PEAK, rest=REST):
    """
    (timestamp_ms, (x, y, z)) samples at a fixed rate with a one-sample
    peak at each step time. Step times must be multiples of dt_ms.

    With an unsmoothed conditioner the step is confirmed on the sample
    after the peak, i.e. at step_time + dt_ms.
    """
    peaks = {int(round(t / dt_ms)) for t in times_ms}
    end = end_ms if end_ms is not None else max(times_ms) + 5 * dt_ms
    for i in range(int(end / dt_ms) + 1):
        z = peak if i in peaks else rest
        yield i * dt_ms, (0.0, 0.0, z)


def feed(session, samples):
    """Push samples into a session, returning how many completed a step."""
    return sum(1 for t, sample in samples if session.handle_reading(sample, t))
