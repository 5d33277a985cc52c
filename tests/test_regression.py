import itertools

import pytest

from trendtrader.exceptions import InvalidInput
from trendtrader.signals.regression import RegressionResult, fit


def test_fit_perfect_line():
    result = fit([(0, 100), (5, 105), (10, 110)])
    assert result.slope == pytest.approx(1.0)
    assert result.intercept == pytest.approx(100.0)
    assert result.r_squared == pytest.approx(1.0)
    assert result.predict(10) == pytest.approx(110.0)


def test_fit_is_order_invariant():
    samples = [(0.0, 10.3), (1.5, 9.7), (2.0, 11.2), (4.25, 12.9), (7.0, 12.1), (9.5, 14.4)]
    expected = fit(samples)
    for permutation in itertools.islice(itertools.permutations(samples), 0, 720, 37):
        assert fit(list(permutation)) == expected


def test_fit_noisy_series_r_squared_in_unit_interval():
    result = fit([(0, 1.0), (1, 3.0), (2, 2.0), (3, 5.0), (4, 4.0)])
    assert 0.0 < result.r_squared < 1.0
    assert result.slope > 0


def test_fit_single_sample():
    assert fit([(3.0, 42.0)]) == RegressionResult(slope=0.0, intercept=42.0, r_squared=0.0)


def test_fit_flat_series():
    result = fit([(0, 7.0), (1, 7.0), (2, 7.0)])
    assert result.slope == 0.0
    assert result.intercept == 7.0
    assert result.r_squared == 0.0


def test_fit_same_x_has_no_direction():
    result = fit([(2.0, 1.0), (2.0, 3.0)])
    assert result.slope == 0.0
    assert result.intercept == pytest.approx(2.0)
    assert result.r_squared == 0.0


def test_fit_empty_input_rejected():
    with pytest.raises(InvalidInput):
        fit([])


def test_fit_non_finite_rejected():
    with pytest.raises(InvalidInput):
        fit([(0, 1.0), (1, float("nan"))])


def test_invalid_input_is_value_error():
    with pytest.raises(ValueError):
        fit([(1, 2, 3)])
