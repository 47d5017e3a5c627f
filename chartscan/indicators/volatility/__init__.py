from .volatility_indicators import (
    bollinger_bands_numba, bollinger_bandwidth_numba, bollinger_percent_b_numba,
    atr_numba, atr_percent_numba, supertrend_numba, keltner_channels_numba,
    historical_volatility_numba
)

__all__ = [
    'bollinger_bands_numba', 'bollinger_bandwidth_numba', 'bollinger_percent_b_numba',
    'atr_numba', 'atr_percent_numba', 'supertrend_numba', 'keltner_channels_numba',
    'historical_volatility_numba'
]
