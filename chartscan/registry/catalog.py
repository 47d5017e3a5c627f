"""
Indicator and operator catalog.

Declares every indicator id the registry can compute, with its display name,
category, typed parameters and output kind (``numeric`` level or ``pattern`` flag),
plus the comparison operators the condition evaluator understands.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple, Union

from chartscan.utils.dataclass_utils import SerializableMixin

OUTPUT_NUMERIC = "numeric"
OUTPUT_PATTERN = "pattern"


@dataclass(frozen=True)
class NumberParam(SerializableMixin):
    key: str
    label: str
    default: float
    min: Optional[float] = None
    max: Optional[float] = None
    step: Optional[float] = None
    type: str = "number"

    @property
    def is_integer(self) -> bool:
        """Params without a step (or with a whole-number step) take integer values."""
        return self.step is None or float(self.step).is_integer()


@dataclass(frozen=True)
class SelectParam(SerializableMixin):
    key: str
    label: str
    default: str
    options: Tuple[Tuple[str, str], ...] = ()
    type: str = "select"

    @property
    def values(self) -> Tuple[str, ...]:
        return tuple(value for value, _ in self.options)


ParamDefinition = Union[NumberParam, SelectParam]


@dataclass(frozen=True)
class IndicatorDefinition(SerializableMixin):
    id: str
    name: str
    category: str
    params: Tuple[ParamDefinition, ...] = ()
    output_kind: str = OUTPUT_NUMERIC

    def param(self, key: str) -> Optional[ParamDefinition]:
        for param in self.params:
            if param.key == key:
                return param
        return None


@dataclass(frozen=True)
class OperatorDefinition(SerializableMixin):
    id: str
    label: str
    needs_right: bool
    right_type: str
    time_modifier: str


CATEGORIES: Tuple[Tuple[str, str], ...] = (
    ("price", "Price"),
    ("moving_averages", "Moving Averages"),
    ("oscillators", "Oscillators"),
    ("macd", "MACD"),
    ("trend", "Trend"),
    ("volatility", "Volatility"),
    ("volume", "Volume"),
    ("pivot", "Pivot Levels"),
    ("setups", "Setups"),
    ("divergence", "Divergence Patterns"),
    ("candlestick", "Candlestick Patterns"),
)


def _period(default: int, max_value: int = 100, key: str = "period", label: str = "Period",
            min_value: int = 1) -> NumberParam:
    return NumberParam(key, label, default, min_value, max_value)


def _numeric(id_: str, name: str, category: str, *params: ParamDefinition) -> IndicatorDefinition:
    return IndicatorDefinition(id_, name, category, tuple(params), OUTPUT_NUMERIC)


def _pattern(id_: str, name: str, category: str, *params: ParamDefinition) -> IndicatorDefinition:
    return IndicatorDefinition(id_, name, category, tuple(params), OUTPUT_PATTERN)


_MACD_PARAMS = (_period(12, key="fast", label="Fast"), _period(26, key="slow", label="Slow"),
                _period(9, key="signal", label="Signal"))
_STOCH_PARAMS = (_period(14, key="k_period", label="K"), _period(3, key="d_period", label="D"),
                 _period(3, key="smooth", label="Smooth"))
_STOCH_RSI_PARAMS = (_period(14, key="rsi_period", label="RSI"), _period(14, key="stoch_period", label="Stoch"),
                     _period(3, 50, key="k_smooth", label="K"), _period(3, 50, key="d_smooth", label="D"))
_BB_PARAMS = (_period(20), NumberParam("stddev", "StdDev", 2, 0.5, 5, 0.5))
_MA_PARAMS = (_period(20, 500),)
_DIV_TYPE = SelectParam("div_type", "Type", "bullish", (
    ("bullish", "Bullish (Regular)"),
    ("bearish", "Bearish (Regular)"),
    ("hidden_bullish", "Hidden Bullish"),
    ("hidden_bearish", "Hidden Bearish"),
))
_DIV_WINDOW = (_period(20, key="lookback", label="Lookback", min_value=5),
               _period(5, 20, key="pivot_strength", label="Pivot Strength", min_value=2))
_SUPERTREND_PARAMS = (_period(10), NumberParam("multiplier", "Mult", 3, 0.5, 10, 0.5))

_PIVOT_NAMES = (
    ("pivot_pp", "Pivot Point"), ("pivot_r1", "Pivot R1"), ("pivot_r2", "Pivot R2"),
    ("pivot_r3", "Pivot R3"), ("pivot_s1", "Pivot S1"), ("pivot_s2", "Pivot S2"),
    ("pivot_s3", "Pivot S3"), ("camarilla_r1", "Camarilla R1"), ("camarilla_r2", "Camarilla R2"),
    ("camarilla_r3", "Camarilla R3"), ("camarilla_r4", "Camarilla R4"), ("camarilla_s1", "Camarilla S1"),
    ("camarilla_s2", "Camarilla S2"), ("camarilla_s3", "Camarilla S3"), ("camarilla_s4", "Camarilla S4"),
    ("cpr_upper", "CPR Upper"), ("cpr_lower", "CPR Lower"), ("cpr_width_pct", "CPR Width %"),
)

_CANDLESTICK_NAMES = (
    ("doji", "Doji"), ("hammer", "Hammer"), ("inverted_hammer", "Inverted Hammer"),
    ("spinning_top", "Spinning Top"), ("marubozu", "Marubozu"), ("hanging_man", "Hanging Man"),
    ("shooting_star", "Shooting Star"), ("bullish_engulfing", "Bullish Engulfing"),
    ("bearish_engulfing", "Bearish Engulfing"), ("piercing_line", "Piercing Line"),
    ("dark_cloud_cover", "Dark Cloud Cover"), ("bullish_harami", "Bullish Harami"),
    ("bearish_harami", "Bearish Harami"), ("tweezer_top", "Tweezer Top"),
    ("tweezer_bottom", "Tweezer Bottom"), ("morning_star", "Morning Star"),
    ("evening_star", "Evening Star"), ("three_white_soldiers", "Three White Soldiers"),
    ("three_black_crows", "Three Black Crows"), ("three_inside_up", "Three Inside Up"),
    ("three_inside_down", "Three Inside Down"),
)

INDICATORS: Tuple[IndicatorDefinition, ...] = (
    # Price
    _numeric("close", "Close", "price"),
    _numeric("open", "Open", "price"),
    _numeric("high", "High", "price"),
    _numeric("low", "Low", "price"),
    _numeric("prev_close", "Previous Close", "price"),
    _numeric("high_52w", "52-Week High", "price"),
    _numeric("low_52w", "52-Week Low", "price"),
    _numeric("change_1d_pct", "1D Change %", "price"),
    _numeric("change_1w_pct", "1W Change %", "price"),
    _numeric("change_1m_pct", "1M Change %", "price"),
    _numeric("pct_from_sma", "% from SMA", "price", _period(200, 500)),
    _numeric("pct_from_ema", "% from EMA", "price", _period(200, 500)),
    _numeric("pct_from_52w_high", "% from 52W High", "price"),
    _numeric("pct_from_52w_low", "% from 52W Low", "price"),

    # Moving averages
    _numeric("sma", "SMA", "moving_averages", *_MA_PARAMS),
    _numeric("ema", "EMA", "moving_averages", *_MA_PARAMS),
    _numeric("wma", "WMA", "moving_averages", *_MA_PARAMS),
    _numeric("hull_ma", "Hull MA", "moving_averages", *_MA_PARAMS),
    _numeric("vwma", "VWMA", "moving_averages", *_MA_PARAMS),
    _numeric("dema", "DEMA", "moving_averages", *_MA_PARAMS),
    _numeric("tema", "TEMA", "moving_averages", *_MA_PARAMS),

    # Oscillators
    _numeric("rsi", "RSI", "oscillators", _period(14)),
    _numeric("stoch_k", "Stochastic %K", "oscillators", *_STOCH_PARAMS),
    _numeric("stoch_d", "Stochastic %D", "oscillators", *_STOCH_PARAMS),
    _numeric("stoch_rsi_k", "StochRSI %K", "oscillators", *_STOCH_RSI_PARAMS),
    _numeric("stoch_rsi_d", "StochRSI %D", "oscillators", *_STOCH_RSI_PARAMS),
    _numeric("williams_r", "Williams %R", "oscillators", _period(14)),
    _numeric("cci", "CCI", "oscillators", _period(20)),
    _numeric("roc", "ROC", "oscillators", _period(12)),
    _numeric("mfi", "MFI", "oscillators", _period(14)),

    # MACD
    _numeric("macd_line", "MACD Line", "macd", *_MACD_PARAMS),
    _numeric("macd_signal", "MACD Signal", "macd", *_MACD_PARAMS),
    _numeric("macd_histogram", "MACD Histogram", "macd", *_MACD_PARAMS),

    # Volatility
    _numeric("bb_upper", "Bollinger Upper", "volatility", *_BB_PARAMS),
    _numeric("bb_middle", "Bollinger Middle", "volatility", *_BB_PARAMS),
    _numeric("bb_lower", "Bollinger Lower", "volatility", *_BB_PARAMS),
    _numeric("bb_bandwidth", "Bollinger Bandwidth", "volatility", *_BB_PARAMS),
    _numeric("atr", "ATR", "volatility", _period(14)),
    _numeric("supertrend", "Supertrend", "volatility", *_SUPERTREND_PARAMS),
    _numeric("keltner_upper", "Keltner Upper", "volatility",
             _period(20), NumberParam("multiplier", "Mult", 2, 0.5, 5, 0.5)),
    _numeric("keltner_lower", "Keltner Lower", "volatility",
             _period(20), NumberParam("multiplier", "Mult", 2, 0.5, 5, 0.5)),

    # Volume
    _numeric("volume", "Volume", "volume"),
    _numeric("volume_sma", "Volume SMA", "volume", _period(20)),
    _numeric("obv", "OBV", "volume"),
    _numeric("vwap", "VWAP", "volume"),
    _numeric("delivery_pct", "Delivery %", "volume"),
    _numeric("relative_volume", "Relative Volume", "volume", _period(20)),

    # Trend
    _numeric("adx", "ADX", "trend", _period(14)),
    _numeric("plus_di", "+DI", "trend", _period(14)),
    _numeric("minus_di", "-DI", "trend", _period(14)),
    _numeric("parabolic_sar", "Parabolic SAR", "trend",
             NumberParam("step", "Step", 0.02, 0.001, 0.5, 0.005),
             NumberParam("max", "Max", 0.2, 0.01, 1, 0.01)),
    _numeric("ichimoku_tenkan", "Ichimoku Tenkan", "trend", _period(9, key="tenkan", label="Tenkan")),
    _numeric("ichimoku_kijun", "Ichimoku Kijun", "trend", _period(26, key="kijun", label="Kijun")),
    _numeric("ichimoku_senkou_a", "Ichimoku Senkou A", "trend",
             _period(9, key="tenkan", label="Tenkan"), _period(26, key="kijun", label="Kijun")),
    _numeric("ichimoku_senkou_b", "Ichimoku Senkou B", "trend",
             _period(52, 200, key="senkou_b", label="Senkou B")),
    _numeric("aroon_up", "Aroon Up", "trend", _period(25)),
    _numeric("aroon_down", "Aroon Down", "trend", _period(25)),

    # Extra volatility
    _numeric("bb_pct_b", "Bollinger %B", "volatility", *_BB_PARAMS),
    _numeric("atr_pct", "ATR %", "volatility", _period(14)),
    _numeric("donchian_upper", "Donchian Upper", "volatility", _period(20, 200)),
    _numeric("donchian_lower", "Donchian Lower", "volatility", _period(20, 200)),
    _numeric("hist_volatility", "Historical Volatility", "volatility", _period(20)),

    # Extra volume
    _numeric("volume_ema", "Volume EMA", "volume", _period(20)),
    _numeric("cmf", "Chaikin Money Flow", "volume", _period(20)),
    _numeric("ad_line", "Accumulation/Distribution", "volume"),
    _numeric("volume_roc", "Volume ROC", "volume", _period(14)),

    # Pivot levels
    *(_numeric(id_, name, "pivot") for id_, name in _PIVOT_NAMES),

    # Setups
    _pattern("ema_cross_bullish", "EMA Cross (Bullish)", "setups",
             _period(9, 200, key="fast", label="Fast"), _period(21, 500, key="slow", label="Slow")),
    _pattern("ema_cross_bearish", "EMA Cross (Bearish)", "setups",
             _period(9, 200, key="fast", label="Fast"), _period(21, 500, key="slow", label="Slow")),
    _pattern("sma_cross_bullish", "SMA Cross (Bullish)", "setups",
             _period(50, 200, key="fast", label="Fast"), _period(200, 500, key="slow", label="Slow")),
    _pattern("sma_cross_bearish", "SMA Cross (Bearish)", "setups",
             _period(50, 200, key="fast", label="Fast"), _period(200, 500, key="slow", label="Slow")),
    _pattern("macd_cross_bullish", "MACD Bullish Cross", "setups", *_MACD_PARAMS),
    _pattern("macd_cross_bearish", "MACD Bearish Cross", "setups", *_MACD_PARAMS),
    _pattern("supertrend_flip_bullish", "Supertrend Flip (Bullish)", "setups", *_SUPERTREND_PARAMS),
    _pattern("supertrend_flip_bearish", "Supertrend Flip (Bearish)", "setups", *_SUPERTREND_PARAMS),

    # Divergence
    _pattern("rsi_divergence", "RSI Divergence", "divergence",
             _DIV_TYPE, _period(14, key="rsi_period", label="RSI Period", min_value=2), *_DIV_WINDOW),
    _pattern("macd_divergence", "MACD Divergence", "divergence", _DIV_TYPE, *_MACD_PARAMS, *_DIV_WINDOW),
    _pattern("stoch_divergence", "Stochastic Divergence", "divergence", _DIV_TYPE, *_STOCH_PARAMS, *_DIV_WINDOW),
    _pattern("obv_divergence", "OBV Divergence", "divergence", _DIV_TYPE, *_DIV_WINDOW),
    _pattern("cci_divergence", "CCI Divergence", "divergence", _DIV_TYPE, _period(20), *_DIV_WINDOW),

    # Candlestick patterns
    *(_pattern(id_, name, "candlestick") for id_, name in _CANDLESTICK_NAMES),
)

OPERATORS: Tuple[OperatorDefinition, ...] = (
    OperatorDefinition("greater_than", "is greater than", True, "value_or_indicator", "none"),
    OperatorDefinition("less_than", "is less than", True, "value_or_indicator", "none"),
    OperatorDefinition("greater_equal", "is >= (greater or equal)", True, "value_or_indicator", "none"),
    OperatorDefinition("less_equal", "is <= (less or equal)", True, "value_or_indicator", "none"),
    OperatorDefinition("crossed_above", "crossed above", True, "value_or_indicator", "optional_within"),
    OperatorDefinition("crossed_below", "crossed below", True, "value_or_indicator", "optional_within"),
    OperatorDefinition("is_increasing", "is increasing", False, "none", "required_for"),
    OperatorDefinition("is_decreasing", "is decreasing", False, "none", "required_for"),
    OperatorDefinition("is_between", "is between", True, "range", "none"),
    OperatorDefinition("detected", "detected", False, "none", "optional_within"),
)

_INDICATORS_BY_ID: Dict[str, IndicatorDefinition] = {definition.id: definition for definition in INDICATORS}
_OPERATORS_BY_ID: Dict[str, OperatorDefinition] = {operator.id: operator for operator in OPERATORS}


def get_indicator(indicator_id: str) -> Optional[IndicatorDefinition]:
    return _INDICATORS_BY_ID.get(indicator_id)


def get_operator(operator_id: str) -> Optional[OperatorDefinition]:
    return _OPERATORS_BY_ID.get(operator_id)


def operators_for(output_kind: str) -> List[OperatorDefinition]:
    """Pattern outputs only support ``detected``; numeric outputs support everything else."""
    if output_kind == OUTPUT_PATTERN:
        return [operator for operator in OPERATORS if operator.id == "detected"]
    return [operator for operator in OPERATORS if operator.id != "detected"]


def indicators_in_category(category: str) -> List[IndicatorDefinition]:
    return [definition for definition in INDICATORS if definition.category == category]
