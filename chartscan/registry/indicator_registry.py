import logging
from typing import Any, Callable, Dict, Mapping, Optional

import numpy as np

from chartscan.analyzer.pattern_engine.candlestick_patterns import CANDLESTICK_PATTERNS
from chartscan.analyzer.pattern_engine.indicator_patterns import (
    DIVERGENCE_TYPES,
    rsi_divergence_numba,
    macd_divergence_numba,
    stoch_divergence_numba,
    obv_divergence_numba,
    cci_divergence_numba
)
from chartscan.indicators.constants import TRADING_DAYS_52W, CHANGE_LAGS
from chartscan.indicators.momentum import (
    rsi_numba, stochastic_k_numba, stochastic_d_numba, stoch_rsi_k_numba, stoch_rsi_d_numba,
    williams_r_numba, cci_numba, roc_numba, mfi_numba, macd_numba
)
from chartscan.indicators.overlap import (
    sma_numba, ema_numba, wma_numba, dema_numba, tema_numba, hull_ma_numba, vwma_numba
)
from chartscan.indicators.pivots import compute_pivot
from chartscan.indicators.price import (
    previous_value_numba, trailing_high_numba, trailing_low_numba,
    percent_change_numba, percent_from_numba
)
from chartscan.indicators.setups import (
    ema_cross_numba, sma_cross_numba, macd_cross_numba, supertrend_flip_numba
)
from chartscan.indicators.statistical import rolling_max_numba, rolling_min_numba
from chartscan.indicators.trend import (
    adx_numba, parabolic_sar_numba, ichimoku_tenkan_numba, ichimoku_kijun_numba,
    ichimoku_senkou_a_numba, ichimoku_senkou_b_numba, aroon_up_numba, aroon_down_numba
)
from chartscan.indicators.volatility import (
    bollinger_bands_numba, bollinger_bandwidth_numba, bollinger_percent_b_numba,
    atr_numba, atr_percent_numba, supertrend_numba, keltner_channels_numba,
    historical_volatility_numba
)
from chartscan.indicators.volume import (
    obv_numba, vwap_numba, relative_volume_numba,
    chaikin_money_flow_numba, accumulation_distribution_numba
)
from chartscan.registry.catalog import get_indicator
from chartscan.registry.params import IndicatorParams
from chartscan.utils.series import PriceSeries

IndicatorFn = Callable[[PriceSeries, IndicatorParams], np.ndarray]

# Registry id -> pivot field understood by compute_pivot
_PIVOT_FIELDS = {
    'pivot_pp': 'pp', 'pivot_r1': 'r1', 'pivot_r2': 'r2', 'pivot_r3': 'r3',
    'pivot_s1': 's1', 'pivot_s2': 's2', 'pivot_s3': 's3',
    'camarilla_r1': 'cam_r1', 'camarilla_r2': 'cam_r2', 'camarilla_r3': 'cam_r3', 'camarilla_r4': 'cam_r4',
    'camarilla_s1': 'cam_s1', 'camarilla_s2': 'cam_s2', 'camarilla_s3': 'cam_s3', 'camarilla_s4': 'cam_s4',
    'cpr_upper': 'cpr_upper', 'cpr_lower': 'cpr_lower', 'cpr_width_pct': 'cpr_width_pct',
}


class IndicatorRegistry:
    """Maps catalog ids to indicator kernels.

    ``compute`` is total: every call returns a float array aligned with the series.
    Unknown ids yield all-NaN output and a warning instead of an exception, so one
    bad condition does not abort a scan across many instruments.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self._dispatch: Dict[str, IndicatorFn] = {}
        self._dispatch.update(self._price_indicators())
        self._dispatch.update(self._moving_average_indicators())
        self._dispatch.update(self._oscillator_indicators())
        self._dispatch.update(self._macd_indicators())
        self._dispatch.update(self._volatility_indicators())
        self._dispatch.update(self._volume_indicators())
        self._dispatch.update(self._trend_indicators())
        self._dispatch.update(self._pivot_indicators())
        self._dispatch.update(self._setup_indicators())
        self._dispatch.update(self._divergence_indicators())
        self._dispatch.update(self._candlestick_indicators())

    def __contains__(self, indicator_id: str) -> bool:
        return indicator_id in self._dispatch

    @property
    def indicator_ids(self):
        return list(self._dispatch)

    def params_for(self, indicator_id: str, raw_params: Optional[Mapping[str, Any]] = None) -> IndicatorParams:
        definition = get_indicator(indicator_id)
        if definition is None:
            return IndicatorParams({})
        return IndicatorParams.build(definition, raw_params)

    def compute(self, indicator_id: str, params: Optional[Mapping[str, Any]],
                series: PriceSeries) -> np.ndarray:
        """Compute one indicator over the whole series."""
        fn = self._dispatch.get(indicator_id)
        if fn is None:
            self.logger.warning(f"Unknown indicator: {indicator_id}")
            return np.full(len(series), np.nan)

        if len(series) == 0:
            return np.empty(0)

        if not isinstance(params, IndicatorParams):
            params = self.params_for(indicator_id, params)
        return np.asarray(fn(series, params), dtype=np.float64)

    @staticmethod
    def _price_indicators() -> Dict[str, IndicatorFn]:
        def high_52w(s, p):
            return trailing_high_numba(s.high, TRADING_DAYS_52W)

        def low_52w(s, p):
            return trailing_low_numba(s.low, TRADING_DAYS_52W)

        indicators = {
            'close': lambda s, p: s.close.copy(),
            'open': lambda s, p: s.open.copy(),
            'high': lambda s, p: s.high.copy(),
            'low': lambda s, p: s.low.copy(),
            'prev_close': lambda s, p: previous_value_numba(s.close),
            'high_52w': high_52w,
            'low_52w': low_52w,
            'pct_from_sma': lambda s, p: percent_from_numba(s.close, sma_numba(s.close, p['period'])),
            'pct_from_ema': lambda s, p: percent_from_numba(s.close, ema_numba(s.close, p['period'])),
            'pct_from_52w_high': lambda s, p: percent_from_numba(s.close, high_52w(s, p)),
            'pct_from_52w_low': lambda s, p: percent_from_numba(s.close, low_52w(s, p)),
        }
        for indicator_id, lag in CHANGE_LAGS.items():
            indicators[indicator_id] = lambda s, p, lag=lag: percent_change_numba(s.close, lag)
        return indicators

    @staticmethod
    def _moving_average_indicators() -> Dict[str, IndicatorFn]:
        return {
            'sma': lambda s, p: sma_numba(s.close, p['period']),
            'ema': lambda s, p: ema_numba(s.close, p['period']),
            'wma': lambda s, p: wma_numba(s.close, p['period']),
            'hull_ma': lambda s, p: hull_ma_numba(s.close, p['period']),
            'vwma': lambda s, p: vwma_numba(s.close, s.volume, p['period']),
            'dema': lambda s, p: dema_numba(s.close, p['period']),
            'tema': lambda s, p: tema_numba(s.close, p['period']),
        }

    @staticmethod
    def _oscillator_indicators() -> Dict[str, IndicatorFn]:
        return {
            'rsi': lambda s, p: rsi_numba(s.close, p['period']),
            'stoch_k': lambda s, p: stochastic_k_numba(s.high, s.low, s.close, p['k_period'], p['smooth']),
            'stoch_d': lambda s, p: stochastic_d_numba(s.high, s.low, s.close,
                                                       p['k_period'], p['d_period'], p['smooth']),
            'stoch_rsi_k': lambda s, p: stoch_rsi_k_numba(s.close, p['rsi_period'], p['stoch_period'],
                                                          p['k_smooth']),
            'stoch_rsi_d': lambda s, p: stoch_rsi_d_numba(s.close, p['rsi_period'], p['stoch_period'],
                                                          p['k_smooth'], p['d_smooth']),
            'williams_r': lambda s, p: williams_r_numba(s.high, s.low, s.close, p['period']),
            'cci': lambda s, p: cci_numba(s.high, s.low, s.close, p['period']),
            'roc': lambda s, p: roc_numba(s.close, p['period']),
            'mfi': lambda s, p: mfi_numba(s.high, s.low, s.close, s.volume, p['period']),
        }

    @staticmethod
    def _macd_indicators() -> Dict[str, IndicatorFn]:
        def component(index: int) -> IndicatorFn:
            return lambda s, p: macd_numba(s.close, p['fast'], p['slow'], p['signal'])[index]

        return {
            'macd_line': component(0),
            'macd_signal': component(1),
            'macd_histogram': component(2),
        }

    @staticmethod
    def _volatility_indicators() -> Dict[str, IndicatorFn]:
        def band(index: int) -> IndicatorFn:
            return lambda s, p: bollinger_bands_numba(s.close, p['period'], p['stddev'])[index]

        def keltner(index: int) -> IndicatorFn:
            return lambda s, p: keltner_channels_numba(s.high, s.low, s.close, p['period'], p['multiplier'])[index]

        return {
            'bb_upper': band(0),
            'bb_middle': lambda s, p: sma_numba(s.close, p['period']),
            'bb_lower': band(2),
            'bb_bandwidth': lambda s, p: bollinger_bandwidth_numba(s.close, p['period'], p['stddev']),
            'bb_pct_b': lambda s, p: bollinger_percent_b_numba(s.close, p['period'], p['stddev']),
            'atr': lambda s, p: atr_numba(s.high, s.low, s.close, p['period']),
            'atr_pct': lambda s, p: atr_percent_numba(s.high, s.low, s.close, p['period']),
            'supertrend': lambda s, p: supertrend_numba(s.high, s.low, s.close, p['period'], p['multiplier']),
            'keltner_upper': keltner(0),
            'keltner_lower': keltner(1),
            'donchian_upper': lambda s, p: rolling_max_numba(s.high, p['period']),
            'donchian_lower': lambda s, p: rolling_min_numba(s.low, p['period']),
            'hist_volatility': lambda s, p: historical_volatility_numba(s.close, p['period']),
        }

    @staticmethod
    def _volume_indicators() -> Dict[str, IndicatorFn]:
        return {
            'volume': lambda s, p: s.volume.copy(),
            'volume_sma': lambda s, p: sma_numba(s.volume, p['period']),
            'volume_ema': lambda s, p: ema_numba(s.volume, p['period']),
            'obv': lambda s, p: obv_numba(s.close, s.volume),
            'vwap': lambda s, p: vwap_numba(s.high, s.low, s.close, s.volume),
            # Delivery data is not part of an OHLCV bar
            'delivery_pct': lambda s, p: np.full(len(s), np.nan),
            'relative_volume': lambda s, p: relative_volume_numba(s.volume, p['period']),
            'cmf': lambda s, p: chaikin_money_flow_numba(s.high, s.low, s.close, s.volume, p['period']),
            'ad_line': lambda s, p: accumulation_distribution_numba(s.high, s.low, s.close, s.volume),
            'volume_roc': lambda s, p: roc_numba(s.volume, p['period']),
        }

    @staticmethod
    def _trend_indicators() -> Dict[str, IndicatorFn]:
        def directional(index: int) -> IndicatorFn:
            return lambda s, p: adx_numba(s.high, s.low, s.close, p['period'])[index]

        return {
            'adx': directional(0),
            'plus_di': directional(1),
            'minus_di': directional(2),
            'parabolic_sar': lambda s, p: parabolic_sar_numba(s.high, s.low, p['step'], p['max']),
            'ichimoku_tenkan': lambda s, p: ichimoku_tenkan_numba(s.high, s.low, p['tenkan']),
            'ichimoku_kijun': lambda s, p: ichimoku_kijun_numba(s.high, s.low, p['kijun']),
            'ichimoku_senkou_a': lambda s, p: ichimoku_senkou_a_numba(s.high, s.low, p['tenkan'], p['kijun']),
            'ichimoku_senkou_b': lambda s, p: ichimoku_senkou_b_numba(s.high, s.low, p['senkou_b']),
            'aroon_up': lambda s, p: aroon_up_numba(s.high, p['period']),
            'aroon_down': lambda s, p: aroon_down_numba(s.low, p['period']),
        }

    @staticmethod
    def _pivot_indicators() -> Dict[str, IndicatorFn]:
        return {
            indicator_id: (lambda s, p, field=field: compute_pivot(s.high, s.low, s.close, field))
            for indicator_id, field in _PIVOT_FIELDS.items()
        }

    @staticmethod
    def _setup_indicators() -> Dict[str, IndicatorFn]:
        indicators = {}
        for direction, bullish in (('bullish', True), ('bearish', False)):
            indicators[f'ema_cross_{direction}'] = (
                lambda s, p, b=bullish: ema_cross_numba(s.close, p['fast'], p['slow'], b))
            indicators[f'sma_cross_{direction}'] = (
                lambda s, p, b=bullish: sma_cross_numba(s.close, p['fast'], p['slow'], b))
            indicators[f'macd_cross_{direction}'] = (
                lambda s, p, b=bullish: macd_cross_numba(s.close, p['fast'], p['slow'], p['signal'], b))
            indicators[f'supertrend_flip_{direction}'] = (
                lambda s, p, b=bullish: supertrend_flip_numba(s.high, s.low, s.close,
                                                              p['period'], p['multiplier'], b))
        return indicators

    @staticmethod
    def _divergence_indicators() -> Dict[str, IndicatorFn]:
        def div_type(p: IndicatorParams) -> int:
            return DIVERGENCE_TYPES[p['div_type']]

        return {
            'rsi_divergence': lambda s, p: rsi_divergence_numba(
                s.close, div_type(p), p['rsi_period'], p['lookback'], p['pivot_strength']),
            'macd_divergence': lambda s, p: macd_divergence_numba(
                s.close, div_type(p), p['fast'], p['slow'], p['signal'], p['lookback'], p['pivot_strength']),
            # %K drives the comparison; d_period is accepted for catalog parity only
            'stoch_divergence': lambda s, p: stoch_divergence_numba(
                s.high, s.low, s.close, div_type(p), p['k_period'], p['smooth'],
                p['lookback'], p['pivot_strength']),
            'obv_divergence': lambda s, p: obv_divergence_numba(
                s.close, s.volume, div_type(p), p['lookback'], p['pivot_strength']),
            'cci_divergence': lambda s, p: cci_divergence_numba(
                s.high, s.low, s.close, div_type(p), p['period'], p['lookback'], p['pivot_strength']),
        }

    @staticmethod
    def _candlestick_indicators() -> Dict[str, IndicatorFn]:
        return {
            pattern_id: (lambda s, p, detector=detector: detector(s.open, s.high, s.low, s.close))
            for pattern_id, detector in CANDLESTICK_PATTERNS.items()
        }


_default_registry: Optional[IndicatorRegistry] = None


def get_registry() -> IndicatorRegistry:
    global _default_registry
    if _default_registry is None:
        _default_registry = IndicatorRegistry()
    return _default_registry


def compute_indicator(indicator_id: str, params: Optional[Mapping[str, Any]], series: PriceSeries) -> np.ndarray:
    """Compute an indicator with the shared module-level registry."""
    return get_registry().compute(indicator_id, params, series)
