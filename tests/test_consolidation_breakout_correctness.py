import logging
import math

import pytest

from chartscan.analyzer.structural import (
    SwingBreakoutSettings, SwingConsolidationScanner, scan_consolidation_breakout
)


def _with_today(rows, **changes):
    """Copy of rows with the last bar's fields replaced."""
    rows = [list(row) for row in rows]
    fields = {'open': 0, 'high': 1, 'low': 2, 'close': 3, 'volume': 4}
    for name, value in changes.items():
        rows[-1][fields[name]] = value
    return rows


def test_breakout_matches(make_series, swing_rows):
    series = make_series(swing_rows)
    result = scan_consolidation_breakout(series, "TEST")

    assert result.match, result.failure
    assert result.symbol == "TEST"
    assert result.scan_date == series.dates[-1]
    assert result.failure is None
    assert result.breakout_level == pytest.approx(121.605)

    consolidation = result.consolidation
    assert consolidation.duration_days == 5
    assert consolidation.high == 121.0
    assert consolidation.low == 118.0
    assert consolidation.start_date == series.dates[55]
    assert consolidation.end_date == series.dates[59]

    assert result.prior_move.move_percent > 15.0
    assert result.volume_analysis.contraction_ratio == 0.31
    assert result.breakout_candle.gap_percent == 0.75
    assert result.trend_context.price_vs_ema50 == "above"
    assert result.trend_context.ema_50_slope == "up"

    levels = result.trade_levels
    assert levels.entry == 123.5
    assert levels.stop_loss == 116.82
    assert levels.target > levels.entry
    assert levels.risk_reward_ratio > 0

    checks = result.quality_checks
    assert checks.support_touches == 5
    assert checks.resistance_touches == 5
    assert not checks.lower_lows_after_day_3
    assert not checks.large_red_candles


def test_result_serializes(make_series, swing_rows):
    data = scan_consolidation_breakout(make_series(swing_rows), "TEST").to_dict()
    assert data['match'] is True
    assert data['consolidation']['duration_days'] == 5
    assert data['failure'] is None


def test_insufficient_rows(make_series, swing_rows):
    result = scan_consolidation_breakout(make_series(swing_rows[:30]))
    assert not result.match
    assert result.failure.step == 1
    assert result.failure.reason == "insufficient_data"
    assert result.failure.details == {'rows': 30, 'required': 60}


def test_no_consolidation_reports_every_window(make_series):
    rows = []
    for i in range(61):
        close = 100.0 if i % 2 else 120.0
        rows.append([close, close + 0.5, close - 0.5, close, 1000])
    result = scan_consolidation_breakout(make_series(rows))

    assert result.failure.step == 4
    assert result.failure.reason == "no_valid_consolidation"
    tried = result.failure.details['tried']
    assert [t['duration'] for t in tried] == list(range(5, 26))
    assert all(t['reason'].startswith("range_too_wide") for t in tried)


def test_flat_history_has_no_prior_move(make_series):
    rows = [[100.0, 100.5, 99.5, 100.0, 1000]] * 61
    result = scan_consolidation_breakout(make_series(rows))
    assert result.failure.step == 5
    assert result.failure.reason == "prior_move_too_small"


def test_base_without_volume_contraction(make_series, swing_rows):
    rows = [list(row) for row in swing_rows]
    for i in range(50, 60):
        rows[i][4] = 2000
    result = scan_consolidation_breakout(make_series(rows))
    assert result.failure.step == 6
    assert result.failure.reason == "no_volume_contraction"
    assert result.failure.details['ratio'] == 1.0


def test_zero_volume_history_leaves_contraction_undefined(make_series, swing_rows):
    rows = [row[:4] + [0] for row in swing_rows]
    result = scan_consolidation_breakout(make_series(rows))
    assert result.match, result.failure
    assert math.isnan(result.volume_analysis.contraction_ratio)


def test_volume_after_silent_prior_move_fails_contraction(make_series, swing_rows):
    rows = [row[:4] + [0 if i < 55 else row[4]] for i, row in enumerate(swing_rows)]
    result = scan_consolidation_breakout(make_series(rows))
    assert result.failure.step == 6
    assert result.failure.reason == "no_volume_contraction"
    assert math.isinf(result.failure.details["ratio"])


@pytest.mark.parametrize("changes, step, reason", [
    ({'close': 121.0, 'high': 121.5, 'low': 120.0}, 7, "no_breakout_today"),
    ({'volume': 1000}, 8, "breakout_volume_too_low"),
    ({'high': 126.0}, 9, "weak_candle_close"),
    ({'open': 124.0, 'high': 124.5}, 10, "gap_up_too_large"),
])
def test_breakout_day_gates(make_series, swing_rows, changes, step, reason):
    result = scan_consolidation_breakout(make_series(_with_today(swing_rows, **changes)))
    assert not result.match
    assert result.failure.step == step
    assert result.failure.reason == reason


def test_settings_change_the_outcome(make_series, swing_rows):
    strict = SwingBreakoutSettings(min_breakout_volume_ratio=3.0)
    result = SwingConsolidationScanner(strict).scan(make_series(swing_rows))
    assert result.failure.step == 8


def test_logs_failing_step(make_series, swing_rows, caplog):
    with caplog.at_level(logging.DEBUG, logger="chartscan.analyzer.structural.consolidation_breakout"):
        scan_consolidation_breakout(make_series(swing_rows[:30]), "LOG")
    assert "[LOG] Step 1: FAIL - insufficient_data" in caplog.text
