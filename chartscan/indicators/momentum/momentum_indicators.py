import numpy as np
from numba import njit

from chartscan.indicators.overlap import ema_numba, sma_numba, fill_nan_numba
from chartscan.indicators.statistical import rolling_max_numba, rolling_min_numba


@njit(cache=True)
def rsi_numba(close, length):
    n = len(close)
    rsi = np.full(n, np.nan)
    avg_gain = 0.0
    avg_loss = 0.0

    for i in range(1, n):
        change = close[i] - close[i - 1]
        gain = change if change > 0 else 0.0
        loss = -change if change < 0 else 0.0

        if i <= length:
            avg_gain += gain
            avg_loss += loss
            if i < length:
                continue
            avg_gain /= length
            avg_loss /= length
        else:
            avg_gain = (avg_gain * (length - 1) + gain) / length
            avg_loss = (avg_loss * (length - 1) + loss) / length

        if avg_loss == 0:
            rsi[i] = 100.0
        else:
            rsi[i] = 100.0 - 100.0 / (1.0 + avg_gain / avg_loss)

    return rsi


@njit(cache=True)
def cutler_rsi_numba(close, length):
    """RSI from plain sums of the last ``length`` changes, without Wilder smoothing."""
    n = len(close)
    rsi = np.full(n, np.nan)

    for i in range(length, n):
        gains = 0.0
        losses = 0.0
        for j in range(i - length + 1, i + 1):
            change = close[j] - close[j - 1]
            if change > 0:
                gains += change
            else:
                losses -= change

        if losses == 0:
            rsi[i] = 100.0
        else:
            rsi[i] = 100.0 - 100.0 / (1.0 + gains / losses)

    return rsi


@njit(cache=True)
def _smooth_masked(values, length):
    """SMA over ``values`` with NaN read as 0, re-masked wherever the input was NaN."""
    smoothed = sma_numba(fill_nan_numba(values), length)
    for i in range(len(values)):
        if np.isnan(values[i]):
            smoothed[i] = np.nan
    return smoothed


@njit(cache=True)
def stochastic_k_numba(high, low, close, period_k, smooth_k):
    n = len(close)
    raw_k = np.full(n, np.nan)

    for i in range(period_k - 1, n):
        hh = -np.inf
        ll = np.inf
        for j in range(i - period_k + 1, i + 1):
            if high[j] > hh:
                hh = high[j]
            if low[j] < ll:
                ll = low[j]
        if hh == ll:
            raw_k[i] = 50.0
        else:
            raw_k[i] = (close[i] - ll) / (hh - ll) * 100.0

    if smooth_k > 1:
        return _smooth_masked(raw_k, smooth_k)
    return raw_k


@njit(cache=True)
def stochastic_d_numba(high, low, close, period_k, period_d, smooth_k):
    k = stochastic_k_numba(high, low, close, period_k, smooth_k)
    return _smooth_masked(k, period_d)


@njit(cache=True)
def stoch_rsi_k_numba(close, rsi_length, stoch_length, k_smooth):
    rsi = rsi_numba(close, rsi_length)
    rsi_filled = fill_nan_numba(rsi)
    hh = rolling_max_numba(rsi_filled, stoch_length)
    ll = rolling_min_numba(rsi_filled, stoch_length)

    n = len(close)
    raw_k = np.full(n, np.nan)
    for i in range(n):
        if np.isnan(rsi[i]) or np.isnan(hh[i]) or np.isnan(ll[i]):
            continue
        rng = hh[i] - ll[i]
        raw_k[i] = 50.0 if rng == 0 else (rsi[i] - ll[i]) / rng * 100.0

    if k_smooth <= 1:
        return raw_k
    return _smooth_masked(raw_k, k_smooth)


@njit(cache=True)
def stoch_rsi_d_numba(close, rsi_length, stoch_length, k_smooth, d_smooth):
    k = stoch_rsi_k_numba(close, rsi_length, stoch_length, k_smooth)
    return _smooth_masked(k, d_smooth)


@njit(cache=True)
def williams_r_numba(high, low, close, length):
    n = len(close)
    out = np.full(n, np.nan)
    for i in range(length - 1, n):
        hh = -np.inf
        ll = np.inf
        for j in range(i - length + 1, i + 1):
            if high[j] > hh:
                hh = high[j]
            if low[j] < ll:
                ll = low[j]
        out[i] = -50.0 if hh == ll else (hh - close[i]) / (hh - ll) * -100.0
    return out


@njit(cache=True)
def cci_numba(high, low, close, length):
    n = len(close)
    tp = (high + low + close) / 3.0
    tp_sma = sma_numba(tp, length)
    out = np.full(n, np.nan)

    for i in range(n):
        if np.isnan(tp_sma[i]):
            continue
        mean_dev = 0.0
        for j in range(i - length + 1, i + 1):
            mean_dev += abs(tp[j] - tp_sma[i])
        mean_dev /= length
        out[i] = 0.0 if mean_dev == 0 else (tp[i] - tp_sma[i]) / (0.015 * mean_dev)

    return out


@njit(cache=True)
def roc_numba(values, length):
    n = len(values)
    out = np.full(n, np.nan)
    for i in range(length, n):
        prev = values[i - length]
        out[i] = 0.0 if prev == 0 else (values[i] - prev) / prev * 100.0
    return out


@njit(cache=True)
def mfi_numba(high, low, close, volume, length):
    n = len(close)
    tp = (high + low + close) / 3.0
    raw_mf = tp * volume
    out = np.full(n, np.nan)

    for i in range(max(1, length), n):
        pos_flow = 0.0
        neg_flow = 0.0
        for j in range(i - length + 1, i + 1):
            if tp[j] > tp[j - 1]:
                pos_flow += raw_mf[j]
            elif tp[j] < tp[j - 1]:
                neg_flow += raw_mf[j]
        out[i] = 100.0 if neg_flow == 0 else 100.0 - 100.0 / (1.0 + pos_flow / neg_flow)

    return out


@njit(cache=True)
def macd_numba(close, fast_length=12, slow_length=26, signal_length=9):
    n = len(close)
    fast_ema = ema_numba(close, fast_length)
    slow_ema = ema_numba(close, slow_length)

    macd_line = np.full(n, np.nan)
    for i in range(n):
        if not np.isnan(fast_ema[i]) and not np.isnan(slow_ema[i]):
            macd_line[i] = fast_ema[i] - slow_ema[i]

    signal_line = np.full(n, np.nan)
    histogram = np.full(n, np.nan)

    valid_start = -1
    for i in range(n):
        if not np.isnan(macd_line[i]):
            valid_start = i
            break
    if valid_start == -1:
        return macd_line, signal_line, histogram

    # Signal EMA runs over the valid suffix only, then is re-aligned
    signal_raw = ema_numba(fill_nan_numba(macd_line[valid_start:]), signal_length)
    for k in range(len(signal_raw)):
        i = valid_start + k
        if np.isnan(macd_line[i]) or np.isnan(signal_raw[k]):
            continue
        signal_line[i] = signal_raw[k]
        histogram[i] = macd_line[i] - signal_raw[k]

    return macd_line, signal_line, histogram
