import logging

import numpy as np
import pytest

from chartscan.registry import (
    INDICATORS, OUTPUT_PATTERN, IndicatorRegistry, compute_indicator,
    get_indicator, operators_for
)


@pytest.fixture(scope="module")
def registry():
    return IndicatorRegistry()


def test_every_catalog_id_is_computable(registry):
    catalog_ids = {definition.id for definition in INDICATORS}
    assert catalog_ids == set(registry.indicator_ids)


@pytest.mark.parametrize("indicator_id", [definition.id for definition in INDICATORS])
def test_output_aligned_with_series(registry, random_walk, indicator_id):
    values = registry.compute(indicator_id, None, random_walk)
    assert values.dtype == np.float64
    assert len(values) == len(random_walk)
    if get_indicator(indicator_id).output_kind == OUTPUT_PATTERN:
        assert set(np.unique(values)) <= {0.0, 1.0}


@pytest.mark.parametrize("indicator_id", [definition.id for definition in INDICATORS])
def test_no_lookahead(registry, random_walk, indicator_id):
    full = registry.compute(indicator_id, None, random_walk)
    for cut in (60, 90):
        partial = registry.compute(indicator_id, None, random_walk.truncate(cut))
        np.testing.assert_allclose(partial, full[:cut], rtol=1e-9, equal_nan=True,
                                   err_msg=f"{indicator_id} changed when later bars were removed")


def test_unknown_indicator_returns_nan_and_warns(registry, random_walk, caplog):
    with caplog.at_level(logging.WARNING):
        values = registry.compute('not_an_indicator', {'period': 5}, random_walk)
    assert np.all(np.isnan(values))
    assert len(values) == len(random_walk)
    assert "Unknown indicator: not_an_indicator" in caplog.text


def test_number_params_fall_back_and_clamp(registry):
    assert registry.params_for('rsi', {'period': '0'})['period'] == 14
    assert registry.params_for('rsi', {'period': 'abc'})['period'] == 14
    assert registry.params_for('rsi', {'period': 1000})['period'] == 100
    assert registry.params_for('rsi', {'period': '21'})['period'] == 21
    assert registry.params_for('rsi', {'period': 20.6})['period'] == 21
    assert registry.params_for('rsi', {'period': float('nan')})['period'] == 14


def test_fractional_params_stay_float(registry):
    params = registry.params_for('bb_upper', {'period': 10, 'stddev': '2.5'})
    assert params['period'] == 10
    assert params['stddev'] == 2.5
    assert registry.params_for('bb_upper', {'stddev': 9})['stddev'] == 5.0


def test_select_params_reject_unknown_values(registry):
    assert registry.params_for('rsi_divergence', {'div_type': 'sideways'})['div_type'] == 'bullish'
    assert registry.params_for('rsi_divergence', {'div_type': 'hidden_bearish'})['div_type'] == 'hidden_bearish'


def test_params_change_the_result(registry, random_walk):
    fast = registry.compute('sma', {'period': 5}, random_walk)
    slow = registry.compute('sma', {'period': 50}, random_walk)
    assert np.isnan(slow[10]) and not np.isnan(fast[10])


def test_price_ids_read_the_series(registry, random_walk):
    np.testing.assert_array_equal(registry.compute('close', None, random_walk), random_walk.close)
    prev = registry.compute('prev_close', None, random_walk)
    assert np.isnan(prev[0])
    np.testing.assert_array_equal(prev[1:], random_walk.close[:-1])
    assert np.all(np.isnan(registry.compute('delivery_pct', None, random_walk)))


def test_module_level_compute(random_walk):
    values = compute_indicator('ema', {'period': 10}, random_walk)
    assert np.isnan(values[8]) and not np.isnan(values[9])


def test_operators_by_output_kind():
    assert [op.id for op in operators_for(OUTPUT_PATTERN)] == ['detected']
    numeric_ops = {op.id for op in operators_for('numeric')}
    assert 'detected' not in numeric_ops
    assert {'crossed_above', 'is_between', 'is_increasing'} <= numeric_ops
