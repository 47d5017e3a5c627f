import numpy as np
import pytest

from chartscan.indicators.volume import (
    obv_numba, vwap_numba, relative_volume_numba,
    chaikin_money_flow_numba, accumulation_distribution_numba
)
from chartscan.indicators.pivots import PIVOT_FIELDS, pivot_levels, compute_pivot
from chartscan.indicators.setups import crossover_numba
from chartscan.indicators.price import trailing_high_numba, percent_change_numba, percent_from_numba


def test_obv_accumulates_signed_volume():
    close = np.array([10.0, 11.0, 9.0, 9.0, 12.0])
    volume = np.array([100.0, 200.0, 300.0, 400.0, 500.0])
    assert obv_numba(close, volume).tolist() == [100.0, 300.0, 0.0, 0.0, 500.0]


def test_vwap_weights_typical_price():
    vwap = vwap_numba(np.array([11.0, 12.0]), np.array([9.0, 10.0]),
                      np.array([10.0, 11.0]), np.array([100.0, 300.0]))
    assert vwap[0] == 10.0
    assert vwap[1] == pytest.approx(10.75)


def test_vwap_undefined_without_volume():
    vwap = vwap_numba(np.array([11.0]), np.array([9.0]), np.array([10.0]), np.array([0.0]))
    assert np.isnan(vwap[0])


def test_relative_volume_and_money_flow_on_closes_at_high():
    n = 30
    close = np.full(n, 100.0)
    high = close.copy()
    low = close - 2.0
    volume = np.full(n, 1000.0)

    rv = relative_volume_numba(volume, 20)
    assert np.all(np.isnan(rv[:19]))
    assert np.all(rv[19:] == 1.0)

    cmf = chaikin_money_flow_numba(high, low, close, volume, 20)
    assert np.all(cmf[19:] == 1.0)

    ad = accumulation_distribution_numba(high, low, close, volume)
    assert ad[-1] == n * 1000.0


def test_money_flow_zero_range_bar_contributes_nothing():
    flat = np.full(5, 50.0)
    cmf = chaikin_money_flow_numba(flat, flat, flat, np.full(5, 10.0), 5)
    assert cmf[-1] == 0.0


def test_pivot_levels_from_previous_bar():
    levels = pivot_levels(np.array([12.0, 13.0]), np.array([8.0, 9.0]), np.array([10.0, 11.0]))
    assert set(levels) == set(PIVOT_FIELDS)

    expected = {'pp': 10.0, 'r1': 12.0, 's1': 8.0, 'r2': 14.0, 's2': 6.0, 'r3': 16.0, 's3': 4.0}
    for field, value in expected.items():
        assert np.isnan(levels[field][0]), f"{field} should be undefined on the first bar"
        assert levels[field][1] == pytest.approx(value), field

    assert levels['cam_r1'][1] == pytest.approx(10.3667, abs=1e-4)
    assert levels['cam_r4'][1] == pytest.approx(12.2)
    assert levels['cam_s4'][1] == pytest.approx(7.8)
    assert levels['cpr_width_pct'][1] == 0.0
    assert np.isnan(levels['cpr_width_pct'][0])


def test_compute_pivot_rejects_unknown_field():
    with pytest.raises(KeyError):
        compute_pivot(np.ones(3), np.ones(3), np.ones(3), 'r9')


def test_crossover_fires_once_on_the_crossing_bar():
    slow = np.array([2.0, 2.0, 2.0])
    assert crossover_numba(np.array([1.0, 1.0, 3.0]), slow, True).tolist() == [0.0, 0.0, 1.0]
    # Touch then cross
    assert crossover_numba(np.array([1.0, 2.0, 3.0]), slow, True).tolist() == [0.0, 0.0, 1.0]
    assert crossover_numba(np.array([3.0, 2.0, 1.0]), slow, False).tolist() == [0.0, 0.0, 1.0]
    assert crossover_numba(np.array([1.0, 1.0, 3.0]), slow, False).tolist() == [0.0, 0.0, 0.0]


def test_crossover_skips_undefined_bars():
    fast = np.array([np.nan, 1.0, 3.0])
    slow = np.array([2.0, 2.0, 2.0])
    assert crossover_numba(fast, slow, True).tolist() == [0.0, 0.0, 1.0]
    assert crossover_numba(np.array([1.0, np.nan, 3.0]), slow, True).tolist() == [0.0, 0.0, 0.0]


def test_trailing_high_excludes_current_bar():
    out = trailing_high_numba(np.array([5.0, 3.0, 4.0, 1.0]), 2)
    assert np.isnan(out[0])
    assert out[1:].tolist() == [5.0, 5.0, 4.0]


def test_percent_helpers():
    change = percent_change_numba(np.array([100.0, 110.0]), 1)
    assert np.isnan(change[0])
    assert change[1] == pytest.approx(10.0)

    dist = percent_from_numba(np.array([110.0, 50.0]), np.array([100.0, 0.0]))
    assert dist[0] == pytest.approx(10.0)
    assert np.isnan(dist[1])
