import numpy as np
import pytest

from chartscan.utils.series import Bar, PriceSeries, SeriesLengthError


def test_from_bars_accepts_mappings_and_missing_volume():
    series = PriceSeries.from_bars([
        {'date': '2024-01-01', 'open': 1, 'high': 2, 'low': 0.5, 'close': 1.5, 'volume': 100},
        {'date': '2024-01-02', 'open': 1.5, 'high': 2.5, 'low': 1, 'close': 2},
    ])
    assert len(series) == 2
    assert series.volume.tolist() == [100.0, 0.0]
    assert series.close.dtype == np.float64


def test_from_bars_accepts_bar_objects():
    series = PriceSeries.from_bars([Bar('d1', 1, 2, 0.5, 1.5, 10), Bar('d2', 2, 3, 1.5, 2.5)])
    assert series.dates == ['d1', 'd2']
    assert series.bar(1) == Bar('d2', 2.0, 3.0, 1.5, 2.5, 0.0)


def test_from_ohlcv_array_with_timestamp_column():
    data = np.array([[1000, 1, 2, 0.5, 1.5, 10], [2000, 1.5, 2.5, 1, 2, 20]])
    series = PriceSeries.from_ohlcv_array(data)
    assert series.dates == ['1000', '2000']
    assert series.volume.tolist() == [10.0, 20.0]


def test_from_ohlcv_array_rejects_bad_shape():
    with pytest.raises(SeriesLengthError):
        PriceSeries.from_ohlcv_array(np.zeros((3, 4)))


def test_mismatched_columns_raise():
    with pytest.raises(SeriesLengthError):
        PriceSeries(['a', 'b'], [1, 2], [1, 2], [1, 2], [1], [1, 2])


def test_truncate_and_tail(make_series):
    series = make_series([[i, i + 1, i - 1, i, 10] for i in range(1, 11)])
    head = series.truncate(4)
    assert len(head) == 4
    assert head.close[-1] == 4.0

    tail = series.tail(3)
    assert tail.close.tolist() == [8.0, 9.0, 10.0]
    assert tail.dates == series.dates[-3:]
    assert len(series.tail(50)) == 10


def test_series_copies_input_arrays():
    close = np.array([1.0, 2.0])
    series = PriceSeries(['a', 'b'], close, close, close, close)
    close[0] = 99.0
    assert series.close[0] == 1.0
