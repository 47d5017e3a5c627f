from .candlestick_patterns import CANDLESTICK_PATTERNS, detect_candlestick
from .swing_detection import detect_swing_highs_numba, detect_swing_lows_numba

__all__ = [
    'CANDLESTICK_PATTERNS',
    'detect_candlestick',
    'detect_swing_highs_numba',
    'detect_swing_lows_numba'
]
