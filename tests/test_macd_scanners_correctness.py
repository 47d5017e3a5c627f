from chartscan.analyzer.structural import (
    scan_bullish_cross_building_negative, scan_bullish_cross_building_positive, scan_macd_crossover
)
from chartscan.utils.series import PriceSeries


def _close_rows(closes):
    return [[c, c + 0.5, c - 0.5, c, 1000] for c in closes]


def _v_reversal():
    """Accelerating 40-bar decline followed by a steady 20-bar rally."""
    closes = [100 - 0.02 * i * i for i in range(40)]
    closes += [closes[-1] + 2 * (i - 39) for i in range(40, 60)]
    return closes


def test_crossover_after_reversal(make_series):
    series = make_series(_close_rows(_v_reversal()))
    result = scan_macd_crossover(series)

    assert result.match
    assert result.crossover_date in series.dates[40:]
    assert result.histogram_value > 0
    assert result.macd_value > result.signal_value
    assert result.today_close == series.close[-1]


def test_crossover_outside_lookback_is_ignored(make_series):
    result = scan_macd_crossover(make_series(_close_rows(_v_reversal())), lookback_bars=5)
    assert not result.match
    assert result.crossover_date is None


def test_bars_are_ordered_by_date(make_series):
    series = make_series(_close_rows(_v_reversal()))
    shuffled = PriceSeries(series.dates[::-1], series.open[::-1], series.high[::-1], series.low[::-1],
                           series.close[::-1], series.volume[::-1])
    assert scan_macd_crossover(shuffled).crossover_date == scan_macd_crossover(series).crossover_date


def test_short_history_never_matches(make_series):
    series = make_series(_close_rows(_v_reversal()[:34]))
    assert not scan_macd_crossover(series).match
    assert not scan_bullish_cross_building_negative(series).match
    assert not scan_bullish_cross_building_positive(series).match


def test_bullish_cross_building_below_zero(make_series):
    # Linear decline, one sharp drop, then a partial rebound
    closes = [200.0 - 2 * i for i in range(50)] + [92.0, 98.0]
    series = make_series(_close_rows(closes))

    result = scan_bullish_cross_building_negative(series)
    assert result.match
    assert result.macd_value < 0
    assert result.signal_value < 0
    assert result.previous_histogram < result.current_histogram < 0
    assert result.histogram_change == result.current_histogram - result.previous_histogram

    assert not scan_bullish_cross_building_positive(series).match


def test_bullish_cross_building_above_zero(make_series):
    # Linear rally, a three-bar pullback, then a strong up bar
    closes = [50.0 + 2 * i for i in range(50)] + [147.0, 146.0, 145.0, 153.0]
    series = make_series(_close_rows(closes))

    result = scan_bullish_cross_building_positive(series)
    assert result.match
    assert result.macd_value > 0
    assert result.signal_value > 0
    assert result.previous_histogram < result.current_histogram < 0

    assert not scan_bullish_cross_building_negative(series).match
