"""
Threshold settings for the structural classifiers.

Defaults are the literal rule constants; an INI section of the same name may
override any field (see ``from_config``).
"""

from dataclasses import dataclass
from typing import Optional, Type, TypeVar

from chartscan.contracts.config import ConfigProtocol
from chartscan.utils.dataclass_utils import SerializableMixin

S = TypeVar("S", bound="ClassifierSettings")


class ClassifierSettings(SerializableMixin):
    section: str = ""

    @classmethod
    def from_config(cls: Type[S], config: Optional[ConfigProtocol] = None) -> S:
        if config is None:
            return cls()
        return cls.from_dict(config.get_section(cls.section))


@dataclass(frozen=True)
class SwingBreakoutSettings(ClassifierSettings):
    section = "swing_breakout"

    min_rows: int = 60
    prior_move_window: int = 20
    min_prior_move_percent: float = 15.0
    prior_move_upward_ratio: float = 1.1
    consolidation_min_days: int = 5
    consolidation_max_days: int = 25
    max_consolidation_range: float = 0.10
    lower_low_tolerance: float = 0.998
    touch_zone_fraction: float = 0.3
    min_touches: int = 2
    large_red_body_pct: float = 0.03
    volume_contraction_threshold: float = 0.6
    breakout_buffer: float = 1.005
    volume_average_bars: int = 50
    min_breakout_volume_ratio: float = 1.5
    min_close_position: float = 0.6
    max_gap_pct: float = 0.03
    ema_fast: int = 20
    ema_slow: int = 50
    ema_slope_bars: int = 10
    stop_buffer: float = 0.99
    target_move_fraction: float = 0.5


@dataclass(frozen=True)
class PositionalBreakoutSettings(ClassifierSettings):
    section = "positional_breakout"

    min_bars: int = 200
    consol_min_days: int = 20
    consol_max_days: int = 80
    max_range_pct: float = 15.0
    large_red_body_pct: float = 0.045
    min_prior_advance_pct: float = 8.0
    prior_advance_bars: int = 65
    max_pullback_pct: float = -10.0
    pullback_bars: int = 20
    min_base_position_pct: float = 85.0
    base_position_bars: int = 60
    min_base_vs_sma200: float = 0.95
    max_volume_ratio: float = 0.90
    prior_volume_bars: int = 30
    v_shape_max_drift: float = 0.55
    v_shape_min_middle: float = 0.25
    v_shape_extreme_middle: float = 0.52
    breakout_buffer: float = 1.005
    breakout_volume_ratio: float = 1.5
    min_rr_for_tier1: float = 2.0
    imminent_distance_pct: float = 3.0
    watchlist_distance_pct: float = 6.0
    min_score_to_qualify: float = 50.0
    base_stage_lookback: int = 250
    base_stage_window: int = 20
    base_stage_drawdown: float = 0.92
    base_stage_search: int = 60
    stop_buffer: float = 0.99


@dataclass(frozen=True)
class CupAndHandleSettings(ClassifierSettings):
    section = "cup_and_handle"

    min_rows: int = 60
    max_lookback: int = 250
    min_cup_depth: float = 0.12
    max_cup_depth: float = 0.35
    min_cup_duration: int = 30
    max_cup_duration: int = 150
    min_roundedness: float = 1.3
    min_symmetry: float = 0.5
    max_symmetry: float = 2.0
    min_bottom_position: float = 0.30
    max_bottom_position: float = 0.70
    max_bottom_flatness: float = 0.03
    min_handle_duration: int = 5
    max_handle_duration: int = 40
    max_handle_depth: float = 0.15
    max_handle_to_cup_ratio: float = 0.5
    min_prior_uptrend: float = 0.30
    max_prior_uptrend_bars: int = 120
    min_prior_uptrend_bars: int = 20
    right_rim_tolerance: float = 0.03
    right_rim_min_ratio: float = 0.97
    min_bars_after_left_rim: int = 35
    min_prominence_ratio: float = 0.10
    min_lower_highs: int = 3
    breakout_proximity_max: float = 0.10
    allow_post_breakout: bool = True
    min_confidence_score: float = 75.0


@dataclass(frozen=True)
class TieredBreakoutSettings(ClassifierSettings):
    """Swing context: 5-25 bar bases after a 20-bar prior move."""
    section = "tiered_swing"

    min_bars: int = 60
    consolidation_min_days: int = 5
    consolidation_max_days: int = 25
    max_range_pct: float = 10.0
    min_support_touches: int = 2
    min_resistance_touches: int = 2
    large_red_body_pct: float = 0.03
    prior_move_window: int = 20
    prior_move_window_extended: int = 40
    min_prior_move_pct: float = 15.0
    min_prior_move_pct_relaxed: float = 10.0
    max_volume_contraction: float = 0.60
    max_volume_contraction_relaxed: float = 0.70
    min_close_position: float = 0.60
    min_breakout_volume_ratio: float = 1.5
    weak_breakout_volume_ratio: float = 1.0
    breakout_buffer: float = 1.005
    tier_2a_distance_pct: float = 2.0
    tier_2b_distance_pct: float = 5.0
    ema_slow: int = 50
    ema_slope_bars: int = 10
    volume_average_bars: int = 50
    stop_buffer: float = 0.99


@dataclass(frozen=True)
class TieredPositionalSettings(TieredBreakoutSettings):
    """Positional context: 10-60 bar bases after a 40-bar prior move, wider watchlist."""
    section = "tiered_positional"

    min_bars: int = 120
    consolidation_min_days: int = 10
    consolidation_max_days: int = 60
    max_range_pct: float = 12.0
    large_red_body_pct: float = 0.035
    prior_move_window: int = 40
    prior_move_window_extended: int = 60
    min_prior_move_pct: float = 12.0
    min_prior_move_pct_relaxed: float = 8.0
    max_volume_contraction: float = 0.65
    max_volume_contraction_relaxed: float = 0.75
    min_close_position: float = 0.55
    min_breakout_volume_ratio: float = 1.3
    tier_2a_distance_pct: float = 2.5
    tier_2b_distance_pct: float = 8.0


@dataclass(frozen=True)
class DiagnosticSettings(ClassifierSettings):
    """Strict thresholds of the swing breakout plus the relaxed levels reported as near misses."""
    section = "breakout_diagnostic"

    min_rows: int = 60
    consolidation_min_days: int = 5
    consolidation_max_days: int = 25
    max_range_pct: float = 10.0
    relaxed_range_pct: float = 12.0
    loose_range_pct: float = 15.0
    min_support_touches: int = 2
    min_resistance_touches: int = 2
    relaxed_min_touches: int = 1
    large_red_body_pct: float = 0.03
    prior_move_window: int = 20
    min_prior_move_pct: float = 15.0
    relaxed_prior_move_pct: float = 12.0
    loose_prior_move_pct: float = 10.0
    prior_move_direction_pct: float = 10.0
    max_volume_contraction: float = 0.60
    relaxed_volume_contraction: float = 0.70
    min_close_position: float = 0.60
    min_breakout_volume_ratio: float = 1.5
    breakout_buffer: float = 1.005
    max_gap_pct: float = 0.03
    ema_slow: int = 50
    ema_slope_bars: int = 10
    volume_average_bars: int = 50
