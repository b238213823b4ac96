"""Tests for three-point peak detection and the interval gate."""

import pytest

from gait import RollingWindow, StepDetector


def window_with(*values):
    window = RollingWindow(capacity=200)
    for v in values:
        window.push(v)
    return window


class TestPeakDetection:

    def test_single_peak_detected_once(self):
        detector = StepDetector(threshold=11.0)
        window = RollingWindow(capacity=200)
        hits = []
        for i, v in enumerate([9.8, 9.8, 15.0, 9.8, 9.8]):
            window.push(v)
            if detector.update(window, now_ms=1000.0 + i * 20) is not None:
                hits.append(i)
        # confirmed when the sample after 15.0 arrives
        assert hits == [3]

    def test_needs_three_values(self):
        detector = StepDetector()
        assert detector.update(window_with(15.0, 9.8), 100.0) is None
        assert detector.peaks_seen == 0

    def test_peak_must_exceed_threshold(self):
        detector = StepDetector(threshold=11.0)
        assert detector.update(window_with(9.8, 11.0, 9.8), 100.0) is None
        assert detector.update(window_with(9.8, 11.01, 9.8), 200.0) is not None

    def test_plateau_is_not_a_peak(self):
        detector = StepDetector()
        assert detector.update(window_with(15.0, 15.0, 9.8), 100.0) is None
        assert detector.update(window_with(9.8, 15.0, 15.0), 100.0) is None

    def test_first_step_has_no_interval(self):
        detector = StepDetector()
        event = detector.update(window_with(9.8, 14.0, 9.8), 1234.0)
        assert event.interval_ms is None
        assert event.timestamp == 1234.0
        assert event.magnitude == 14.0
        assert detector.last_step_ms == 1234.0


class TestIntervalGate:

    @pytest.mark.parametrize("interval,accepted", [
        (249.0, False),
        (250.0, True),
        (600.0, True),
        (2000.0, True),
        (2001.0, False),
    ])
    def test_band_is_inclusive(self, interval, accepted):
        detector = StepDetector()
        detector.update(window_with(9.8, 15.0, 9.8), 1000.0)
        event = detector.update(window_with(9.8, 15.0, 9.8), 1000.0 + interval)
        assert (event is not None) is accepted
        if accepted:
            assert event.interval_ms == interval

    def test_reanchors_on_rejected_peak_by_default(self):
        detector = StepDetector()
        peak = window_with(9.8, 15.0, 9.8)
        detector.update(peak, 1000.0)
        assert detector.update(peak, 1100.0) is None  # 100 ms, too fast
        assert detector.last_step_ms == 1100.0

        # measured from the rejected peak: 1600 - 1100
        event = detector.update(peak, 1600.0)
        assert event.interval_ms == 500.0
        assert detector.rejected == 1

    def test_keeps_anchor_when_reanchor_disabled(self):
        detector = StepDetector(reanchor_on_reject=False)
        peak = window_with(9.8, 15.0, 9.8)
        detector.update(peak, 1000.0)
        assert detector.update(peak, 1100.0) is None
        assert detector.last_step_ms == 1000.0

        # measured from the last accepted step: 1600 - 1000
        event = detector.update(peak, 1600.0)
        assert event.interval_ms == 600.0

    def test_long_pause_policies_differ(self):
        peak = window_with(9.8, 15.0, 9.8)

        reanchoring = StepDetector(reanchor_on_reject=True)
        reanchoring.update(peak, 0.0)
        assert reanchoring.update(peak, 5000.0) is None
        assert reanchoring.update(peak, 5600.0).interval_ms == 600.0

        anchored = StepDetector(reanchor_on_reject=False)
        anchored.update(peak, 0.0)
        assert anchored.update(peak, 5000.0) is None
        # stays anchored at 0, so walking never resumes
        assert anchored.update(peak, 5600.0) is None

    def test_reset(self):
        detector = StepDetector()
        detector.update(window_with(9.8, 15.0, 9.8), 1000.0)
        detector.reset()
        assert detector.last_step_ms is None
        assert detector.peaks_seen == 0
