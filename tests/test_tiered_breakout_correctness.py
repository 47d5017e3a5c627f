import math
from datetime import date

import numpy as np
import pytest

from chartscan.analyzer.structural import (
    TieredBreakoutScanner, TieredPositionalSettings, scan_tiered_breakout, summarize_tiered_scan
)
from chartscan.analyzer.structural.criteria import (
    PARTIAL, contraction_ratio, find_best_quality_window, has_higher_lows, window_quality_score
)
from chartscan.analyzer.structural.tiered_breakout import (
    BREAKOUT_CONFIRMED, BREAKOUT_NO_VOLUME, BREAKOUT_WEAK_VOLUME, IMMINENT, TOO_FAR, market_note
)


def _with_bar(rows, index, row):
    rows = [list(r) for r in rows]
    rows[index] = list(row)
    return rows


def _with_today(rows, row):
    return _with_bar(rows, -1, row)


def test_window_quality_score_weights():
    assert window_quality_score(2.5, 5, 5, False, False) == 100.0
    assert window_quality_score(12.0, 1, 0, True, True) == pytest.approx(12.5 + 25 / 3)
    assert window_quality_score(20.0, 0, 0, False, True) == 15.0


def test_best_window_prefers_shortest_on_ties(make_series, swing_rows):
    window = find_best_quality_window(make_series(swing_rows), 5, 25, 0.03)
    assert window.duration == 5
    assert (window.start, window.end) == (55, 60)
    assert window.quality_score == 100.0
    assert window.range_pct == pytest.approx(3 / 118 * 100)


def test_contraction_ratio_edge_cases():
    assert contraction_ratio(1.0, 2.0) == 0.5
    assert math.isnan(contraction_ratio(0.0, 0.0))
    assert math.isinf(contraction_ratio(5.0, 0.0))


def test_higher_lows():
    assert has_higher_lows(np.array([10, 9, 11, 12, 12, 13.0]))
    assert not has_higher_lows(np.array([10, 9, 11, 12, 8, 13.0]))
    assert not has_higher_lows(np.array([10, 11, 12.0]))


def test_confirmed_breakout_is_tier_1(make_series, swing_rows):
    result = scan_tiered_breakout(make_series(swing_rows), "TIER1")

    assert result.tier == "1"
    assert result.tier_classification.tier_name == "Ready to Trade"
    assert result.tier_classification.confidence == "high"
    assert result.score.criteria_passed == 10
    assert result.score.score_pct == 100
    assert result.caveats == []
    assert all(c.passed is True for c in result.criteria_results.values())

    analysis = result.consolidation_analysis
    assert analysis.window_duration == 5
    assert analysis.start_idx == 55
    assert analysis.consolidation_high == 121.0

    c8 = result.criteria_results['C8_prior_move_direction']
    assert c8.details['type'] == "continuation"
    assert result.criteria_results['C9_volume_contraction'].actual == 0.31

    c10 = result.criteria_results['C10_breakout_status']
    assert c10.details['status'] == BREAKOUT_CONFIRMED
    assert c10.details['tier_eligible'] == 1
    assert c10.details['volume_ratio'] == 2.24

    assert result.price_info.current_price == 123.5
    assert result.price_info.breakout_level == pytest.approx(121.605, abs=0.01)
    assert result.price_info.distance_to_breakout == "-1.53%"
    assert result.price_info.suggested_stop == pytest.approx(116.82)
    assert result.volume_info.avg_volume_50d == 1340.0
    assert result.volume_info.volume_trigger == "2,010"
    assert result.volume_info.today_volume_ratio == "2.24x"


def test_near_breakout_is_tier_2a(make_series, swing_rows):
    rows = _with_today(swing_rows, [119.8, 121.0, 119.8, 120.5, 600])
    result = scan_tiered_breakout(make_series(rows), "NEAR")

    c10 = result.criteria_results['C10_breakout_status']
    assert c10.details['status'] == IMMINENT
    assert c10.passed is False
    assert result.tier == "2A"
    assert result.tier_classification.action.startswith("Enter on break above")
    assert result.score.criteria_passed == 9
    assert result.score.score_pct == 90


def test_far_from_breakout_has_no_tier(make_series, swing_rows):
    rows = _with_today(swing_rows, [112.0, 112.5, 109.5, 110.0, 600])
    result = scan_tiered_breakout(make_series(rows), "FAR")

    assert result.criteria_results['C10_breakout_status'].details['status'] == TOO_FAR
    assert result.tier is None
    assert result.tier_classification.tier_name == "No Pattern"
    assert result.price_info is None
    assert result.volume_info is None


def test_weak_volume_breakout_stays_tier_1_with_caveat(make_series, swing_rows):
    rows = _with_today(swing_rows, [120.5, 124.0, 120.0, 123.5, 1500])
    result = scan_tiered_breakout(make_series(rows), "WEAK")

    assert result.criteria_results['C10_breakout_status'].details['status'] == BREAKOUT_WEAK_VOLUME
    assert result.tier == "1"
    assert "Breakout on below-average volume - watch for follow-through" in result.caveats


def test_breakout_without_volume_scores_half(make_series, swing_rows):
    rows = _with_today(swing_rows, [120.5, 124.0, 120.0, 123.5, 500])
    result = scan_tiered_breakout(make_series(rows), "THIN")

    c10 = result.criteria_results['C10_breakout_status']
    assert c10.details['status'] == BREAKOUT_NO_VOLUME
    assert c10.passed == PARTIAL
    assert result.score.score_pct == 95
    assert result.score.criteria_passed == 10
    assert result.tier == "2A"
    assert "Breakout with very low volume - high risk of false breakout" in result.caveats


def test_flat_prior_trend_is_neutral_base(make_series, swing_rows):
    rows = _with_bar(swing_rows, 35, [124.8, 125.5, 124.3, 125.0, 2000])
    rows = _with_bar(rows, 15, [124.8, 125.5, 124.3, 125.0, 1000])
    result = scan_tiered_breakout(make_series(rows), "NEUTRAL")

    c8 = result.criteria_results['C8_prior_move_direction']
    assert c8.passed == PARTIAL
    assert c8.details['type'] == "neutral_base"
    assert c8.details['direction_short_pct'] == -4.32
    assert result.tier == "2A"
    assert "Neutral trend context - not a classic continuation setup" in result.caveats


def test_falling_prior_trend_blocks_every_tier(make_series, swing_rows):
    rows = _with_bar(swing_rows, 35, [139.8, 140.5, 139.3, 140.0, 2000])
    rows = _with_bar(rows, 15, [139.8, 140.5, 139.3, 140.0, 1000])
    result = scan_tiered_breakout(make_series(rows), "DOWN")

    c8 = result.criteria_results['C8_prior_move_direction']
    assert c8.passed is False
    assert c8.details['type'] == "downtrend"
    assert result.tier is None
    assert "Prior 20-day trend down -14.57%" in result.caveats


def test_short_history_is_reported(make_series, swing_rows):
    result = scan_tiered_breakout(make_series(swing_rows[:30]), "SHORT")
    assert result.tier is None
    assert result.score.score_pct == 0
    assert result.caveats == ["Insufficient data: 30 rows, need 60"]
    assert result.criteria_results['C1_consolidation_found'].passed is False


def test_positional_context_uses_its_own_thresholds(make_series, swing_rows):
    scanner = TieredBreakoutScanner(context="positional")
    assert isinstance(scanner.settings, TieredPositionalSettings)
    result = scanner.scan(make_series(swing_rows), "POS")
    assert result.context == "positional"
    assert result.caveats == ["Insufficient data: 61 rows, need 120"]


def test_unknown_context_is_rejected():
    with pytest.raises(ValueError):
        TieredBreakoutScanner(context="intraday")


def test_result_serializes(make_series, swing_rows):
    data = scan_tiered_breakout(make_series(swing_rows), "TIER1").to_dict()
    assert data['tier_classification']['tier'] == "1"
    assert data['criteria_results']['C10_breakout_status']['details']['status'] == BREAKOUT_CONFIRMED
    assert data['price_info']['current_price'] == 123.5


def test_summary_buckets_and_orders_by_distance(make_series, swing_rows):
    tier_1 = scan_tiered_breakout(make_series(swing_rows), "A")
    near = scan_tiered_breakout(make_series(_with_today(swing_rows, [119.8, 121.0, 119.8, 120.5, 600])), "B")
    thin = scan_tiered_breakout(make_series(_with_today(swing_rows, [120.5, 124.0, 120.0, 123.5, 500])), "C")
    far = scan_tiered_breakout(make_series(_with_today(swing_rows, [112.0, 112.5, 109.5, 110.0, 600])), "D")

    summary = summarize_tiered_scan([tier_1, near, thin, far])
    assert summary.total_scanned == 4
    assert summary.tier_1_count == 1
    assert summary.tier_2a_count == 2
    assert summary.tier_2b_count == 0
    assert [r.symbol for r in summary.tier_2a_imminent_breakout] == ["C", "B"]
    assert summary.scan_date == tier_1.scan_date
    assert summary.market_note == "Selective opportunities - few confirmed breakouts"


def test_empty_summary():
    summary = summarize_tiered_scan([])
    assert summary.total_scanned == 0
    assert summary.scan_date == date.today().isoformat()
    assert summary.market_note == "Correction phase - breakout setups require patience"


def test_market_note_thresholds():
    assert market_note(5, 0) == "Healthy market - multiple confirmed breakouts"
    assert market_note(0, 10) == "Building momentum - multiple stocks near breakout"
    assert market_note(0, 9) == "Correction phase - breakout setups require patience"
