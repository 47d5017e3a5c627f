import numpy as np

from chartscan.indicators.overlap import (
    sma_numba, ema_numba, wma_numba, dema_numba, hull_ma_numba, vwma_numba, wilder_smooth_numba
)
from chartscan.indicators.statistical import (
    std_dev_numba, rolling_max_numba, rolling_min_numba, true_range_numba
)


def test_sma_warmup_and_values():
    values = np.arange(1.0, 11.0)
    sma = sma_numba(values, 3)
    assert np.all(np.isnan(sma[:2]))
    np.testing.assert_allclose(sma[2:], np.arange(2.0, 10.0))


def test_sma_period_longer_than_series_is_all_nan():
    assert np.all(np.isnan(sma_numba(np.arange(5.0), 10)))


def test_ema_seeded_with_simple_mean():
    values = np.array([1.0, 2.0, 3.0, 4.0, 5.0])
    ema = ema_numba(values, 3)
    assert np.isnan(ema[1])
    assert ema[2] == 2.0
    # multiplier 0.5
    assert ema[3] == 3.0
    assert ema[4] == 4.0


def test_ema_of_constant_is_constant():
    ema = ema_numba(np.full(30, 7.0), 10)
    np.testing.assert_allclose(ema[9:], 7.0)


def test_wma_weights_recent_values_more():
    wma = wma_numba(np.array([1.0, 2.0, 3.0]), 3)
    # (1*1 + 2*2 + 3*3) / 6
    assert abs(wma[2] - 14.0 / 6.0) < 1e-12


def test_wilder_smoothing_recurrence():
    values = np.array([2.0, 4.0, 6.0, 8.0])
    out = wilder_smooth_numba(values, 3)
    assert out[2] == 4.0
    assert abs(out[3] - (4.0 * 2 + 8.0) / 3) < 1e-12


def test_derived_averages_converge_on_a_constant():
    # The second EMA pass starts from zero-filled warm-up values and decays toward the input
    flat = np.full(200, 50.0)
    np.testing.assert_allclose(dema_numba(flat, 10)[-20:], 50.0)
    np.testing.assert_allclose(hull_ma_numba(flat, 9)[-20:], 50.0)


def test_vwma_nan_when_window_has_no_volume():
    close = np.array([1.0, 2.0, 3.0, 4.0])
    volume = np.array([0.0, 0.0, 0.0, 10.0])
    out = vwma_numba(close, volume, 2)
    assert np.isnan(out[1]) and np.isnan(out[2])
    assert out[3] == 4.0


def test_population_std_dev():
    values = np.array([2.0, 4.0, 4.0, 4.0, 5.0, 5.0, 7.0, 9.0])
    assert std_dev_numba(values, 8)[-1] == 2.0


def test_rolling_extremes():
    values = np.array([3.0, 1.0, 4.0, 1.0, 5.0])
    assert rolling_max_numba(values, 2)[1:].tolist() == [3.0, 4.0, 4.0, 5.0]
    assert rolling_min_numba(values, 2)[1:].tolist() == [1.0, 1.0, 1.0, 1.0]


def test_true_range_uses_previous_close_gaps():
    high = np.array([10.0, 12.0])
    low = np.array([9.0, 11.5])
    close = np.array([9.5, 12.0])
    tr = true_range_numba(high, low, close)
    assert tr[0] == 1.0
    assert tr[1] == 2.5
