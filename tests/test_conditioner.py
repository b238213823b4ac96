"""Tests for the low-pass signal conditioner."""

import math

import pytest

from gait import InvalidSampleError, SignalConditioner, low_pass, magnitude
from gait.conditioner import as_xyz


class TestLowPass:

    def test_moves_fraction_towards_input(self):
        assert low_pass(10.0, 0.0, 0.2) == pytest.approx(2.0)
        assert low_pass(10.0, 2.0, 0.2) == pytest.approx(3.6)

    def test_alpha_one_tracks_input(self):
        assert low_pass(7.5, 1.0, 1.0) == 7.5

    def test_magnitude(self):
        assert magnitude(3.0, 4.0, 0.0) == 5.0
        assert magnitude(0.0, 0.0, -9.8) == pytest.approx(9.8)


class TestSignalConditioner:

    def test_initial_state_is_zero(self):
        conditioner = SignalConditioner()
        assert conditioner.filtered == (0.0, 0.0, 0.0)

    def test_filters_each_axis_independently(self):
        conditioner = SignalConditioner(alpha=0.5)
        assert conditioner.filter({"x": 2.0, "y": -4.0, "z": 10.0}) == (1.0, -2.0, 5.0)
        assert conditioner.filter({"x": 2.0, "y": -4.0, "z": 10.0}) == (1.5, -3.0, 7.5)

    def test_process_returns_filtered_magnitude(self):
        conditioner = SignalConditioner(alpha=0.5)
        mag = conditioner.process((6.0, 8.0, 0.0))
        assert mag == pytest.approx(5.0)

    def test_converges_to_constant_input(self):
        conditioner = SignalConditioner(alpha=0.2)
        for _ in range(200):
            mag = conditioner.process((0.0, 0.0, 9.8))
        assert mag == pytest.approx(9.8, abs=1e-6)

    def test_accepts_attribute_samples(self):
        class Reading:
            x, y, z = 1.0, 2.0, 2.0

        assert SignalConditioner(alpha=1.0).process(Reading()) == pytest.approx(3.0)

    @pytest.mark.parametrize("sample", [
        {"x": float("nan"), "y": 0.0, "z": 9.8},
        {"x": 0.0, "y": float("inf"), "z": 9.8},
        {"x": 0.0, "y": 0.0, "z": None},
        {"x": 0.0, "y": "1.0", "z": 9.8},
        {"x": True, "y": 0.0, "z": 9.8},
        {"x": 0.0, "y": 0.0},
        (1.0, 2.0),
        object(),
    ])
    def test_invalid_sample_leaves_state_untouched(self, sample):
        conditioner = SignalConditioner(alpha=0.5)
        conditioner.filter((2.0, 2.0, 2.0))
        before = conditioner.filtered

        with pytest.raises(InvalidSampleError):
            conditioner.filter(sample)

        assert conditioner.filtered == before
        assert conditioner.samples_filtered == 1

    def test_reset_clears_state(self):
        conditioner = SignalConditioner(alpha=0.5)
        conditioner.filter((4.0, 4.0, 4.0))
        conditioner.reset()
        assert conditioner.filtered == (0.0, 0.0, 0.0)
        assert conditioner.samples_filtered == 0

    @pytest.mark.parametrize("alpha", [0.0, -0.1, 1.5])
    def test_rejects_bad_alpha(self, alpha):
        with pytest.raises(ValueError):
            SignalConditioner(alpha=alpha)


def test_as_xyz_coerces_ints():
    x, y, z = as_xyz([0, 0, 10])
    assert (x, y, z) == (0.0, 0.0, 10.0)
    assert all(isinstance(v, float) for v in (x, y, z))
    assert not math.isnan(z)
