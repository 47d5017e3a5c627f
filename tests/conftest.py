import numpy as np
import pytest

from chartscan.utils.series import PriceSeries


def _dates(n):
    start = np.datetime64('2024-01-01')
    return [str(start + i) for i in range(n)]


def series_from_rows(rows):
    """Build a series from (open, high, low, close, volume) rows with consecutive daily dates."""
    data = np.asarray(rows, dtype=np.float64)
    return PriceSeries(_dates(len(data)), data[:, 0], data[:, 1], data[:, 2], data[:, 3], data[:, 4])


@pytest.fixture
def make_series():
    return series_from_rows


@pytest.fixture
def random_walk():
    """Deterministic random-walk OHLCV series of 150 bars."""
    rng = np.random.default_rng(42)
    n = 150
    close = 100 + np.cumsum(rng.normal(0, 1.0, n))
    open_ = close + rng.normal(0, 0.5, n)
    high = np.maximum(open_, close) + rng.uniform(0.1, 1.0, n)
    low = np.minimum(open_, close) - rng.uniform(0.1, 1.0, n)
    volume = rng.uniform(1000, 5000, n)
    return PriceSeries(_dates(n), open_, high, low, close, volume)


def swing_breakout_rows():
    """61 bars: slow uptrend, 20-bar advance, 10-bar tight base, breakout on the last bar."""
    rows = []
    for i in range(30):
        close = 80 + 0.5 * i
        rows.append([close - 0.2, close + 0.5, close - 0.7, close, 1000])
    for i in range(30, 50):
        close = 95 + 1.25 * (i - 30)
        rows.append([close - 0.2, close + 0.5, close - 0.7, close, 2000])
    for _ in range(50, 60):
        rows.append([119.5, 121.0, 118.0, 119.6, 500])
    rows.append([120.5, 124.0, 120.0, 123.5, 3000])
    return rows


@pytest.fixture
def swing_rows():
    return swing_breakout_rows()


_BASE_PATTERN = (0, 1, 2, 1, 0, -1, -2, -1)


def positional_base_rows(today_close=118.0, today_volume=5000.0):
    """260 bars: 220-bar uptrend into a 39-bar sideways base, then a configurable last bar."""
    rows = []
    for i in range(220):
        close = 60 + 0.25 * i
        rows.append([close - 0.1, close + 0.4, close - 0.4, close, 2000])
    for k in range(39):
        close = 113 + 1.25 * _BASE_PATTERN[k % 8]
        rows.append([close - 0.1, close + 0.5, close - 0.5, close, 1000])
    rows.append([today_close - 0.5, today_close + 0.5, today_close - 1.0, today_close, today_volume])
    return rows


@pytest.fixture
def positional_rows():
    return positional_base_rows


def cup_and_handle_rows():
    """160 bars: uptrend to a 100 rim, 40-bar choppy decline to 79.5, 40-bar recovery, 19-bar handle."""
    rows = []
    for i in range(60):
        close = 60 + 0.65 * i
        rows.append([close - 0.2, close + 0.5, close - 0.5, close, 2000])
    rows.append([99.2, 100.0, 99.0, 99.5, 2000])
    for k in range(1, 41):
        close = 98 - 0.45 * k + (1.2 if k % 2 else 0.0)
        rows.append([close + 0.1, close + 0.5, close - 0.5, close, 1500])
    for m in range(1, 41):
        close = 80 + 0.475 * m
        rows.append([close - 0.1, close + 0.5, close - 0.5, close, 1500])
    for j in range(1, 20):
        close = 96 - 0.15 * j if j <= 10 else 94.5 + 0.25 * (j - 10)
        rows.append([close + 0.05, close + 0.3, close - 0.4, close, 800])
    return rows


@pytest.fixture
def cup_rows():
    return cup_and_handle_rows()
