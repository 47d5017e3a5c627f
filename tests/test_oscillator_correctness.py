import numpy as np

from chartscan.indicators.momentum import (
    rsi_numba, stochastic_k_numba, stochastic_d_numba, stoch_rsi_k_numba,
    williams_r_numba, cci_numba, roc_numba, mfi_numba, macd_numba
)


def test_rsi_after_fourteen_gains_and_one_loss():
    close = np.concatenate([np.arange(100.0, 115.0), [113.0]])
    rsi = rsi_numba(close, 14)
    assert rsi[14] == 100.0
    assert 90.0 < rsi[15] < 100.0


def test_rsi_bounded(random_walk):
    rsi = rsi_numba(random_walk.close, 14)
    valid = rsi[~np.isnan(rsi)]
    assert np.all((valid >= 0) & (valid <= 100))
    assert np.all(np.isnan(rsi[:14]))


def test_stochastic_bounded_and_flat_range(random_walk):
    k = stochastic_k_numba(random_walk.high, random_walk.low, random_walk.close, 14, 3)
    d = stochastic_d_numba(random_walk.high, random_walk.low, random_walk.close, 14, 3, 3)
    for values in (k, d):
        valid = values[~np.isnan(values)]
        assert len(valid) > 0
        assert np.all((valid >= 0) & (valid <= 100))

    flat = np.full(20, 10.0)
    assert stochastic_k_numba(flat, flat, flat, 5, 1)[-1] == 50.0


def test_stoch_rsi_bounded(random_walk):
    k = stoch_rsi_k_numba(random_walk.close, 14, 14, 3)
    valid = k[~np.isnan(k)]
    assert len(valid) > 0
    assert np.all((valid >= 0) & (valid <= 100))


def test_williams_r_range(random_walk):
    wr = williams_r_numba(random_walk.high, random_walk.low, random_walk.close, 14)
    valid = wr[~np.isnan(wr)]
    assert np.all((valid >= -100) & (valid <= 0))


def test_cci_zero_for_constant_prices():
    flat = np.full(30, 50.0)
    cci = cci_numba(flat, flat, flat, 20)
    assert np.all(cci[19:] == 0.0)


def test_roc_guards_zero_base():
    values = np.array([0.0, 5.0, 10.0])
    roc = roc_numba(values, 1)
    assert roc[1] == 0.0
    assert roc[2] == 100.0


def test_mfi_all_positive_flow_is_100():
    close = np.arange(10.0, 30.0)
    mfi = mfi_numba(close + 1, close - 1, close, np.full(20, 100.0), 14)
    assert mfi[-1] == 100.0


def test_macd_histogram_is_line_minus_signal(random_walk):
    line, signal, hist = macd_numba(random_walk.close, 12, 26, 9)
    valid = ~np.isnan(hist)
    assert valid.sum() > 0
    np.testing.assert_allclose(hist[valid], line[valid] - signal[valid])
    # Signal needs 9 MACD values on top of the 26-bar slow EMA warm-up
    assert np.all(np.isnan(signal[:33]))
    assert not np.isnan(signal[33])
