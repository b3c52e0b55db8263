# tests/metrics/test_numeric.py
"""Tests for guarded arithmetic helpers."""

import math

import pytest

from neuroscroll.metrics.numeric import (
    clamp,
    ewma,
    finite_or_zero,
    is_finite_number,
    linear_regression_slope,
    mean,
    pstdev,
    safe_div,
)


class TestFiniteChecks:
    @pytest.mark.parametrize("value", [0, 1, -2.5, 1e300])
    def test_finite_numbers(self, value):
        assert is_finite_number(value)

    @pytest.mark.parametrize("value", [math.nan, math.inf, -math.inf, None, "3", True])
    def test_non_finite_values(self, value):
        assert not is_finite_number(value)
        assert finite_or_zero(value) == 0.0


class TestSafeDiv:
    def test_divides(self):
        assert safe_div(6, 3) == 2

    def test_zero_denominator(self):
        assert safe_div(1, 0) == 0.0
        assert safe_div(1, 0, default=-1.0) == -1.0

    def test_non_finite_operands(self):
        assert safe_div(math.nan, 2) == 0.0
        assert safe_div(2, math.inf) == 0.0

    def test_overflowing_result(self):
        assert safe_div(1e308, 1e-308) == 0.0


class TestClampAndMean:
    def test_clamp(self):
        assert clamp(1.5) == 1.0
        assert clamp(-0.5) == 0.0
        assert clamp(0.25) == 0.25
        assert clamp(math.nan) == 0.0

    def test_mean(self):
        assert mean([]) == 0.0
        assert mean([1, 2, 3, 4]) == 2.5


class TestPstdev:
    def test_fewer_than_two_samples(self):
        assert pstdev([]) == 0.0
        assert pstdev([7.0]) == 0.0

    def test_population_stddev(self):
        assert pstdev([2, 4, 4, 4, 5, 5, 7, 9]) == pytest.approx(2.0)

    def test_constant_sequence(self):
        assert pstdev([3.0, 3.0, 3.0]) == 0.0


class TestLinearRegressionSlope:
    def test_perfect_line(self):
        assert linear_regression_slope([0, 1, 2], [1, 3, 5]) == pytest.approx(2.0)

    def test_decreasing(self):
        assert linear_regression_slope([0, 1, 2, 3], [20, 15, 10, 5]) == pytest.approx(-5.0)

    def test_degenerate_inputs(self):
        assert linear_regression_slope([1], [1]) == 0.0
        assert linear_regression_slope([2, 2, 2], [1, 5, 9]) == 0.0


class TestEwma:
    def test_empty(self):
        assert ewma([], 0.3) == 0.0

    def test_seeded_with_first_value(self):
        assert ewma([10.0], 0.3) == 10.0

    def test_weights_recent_values(self):
        assert ewma([20.0, 15.0], 0.3) == pytest.approx(18.5)

    def test_aborts_to_zero_on_non_finite(self):
        assert ewma([math.inf, 1.0], 0.3) == 0.0
        assert ewma([1.0, math.nan, 2.0], 0.3) == 0.0
