"""
Indicator constants shared by the price ids and the structural classifiers.
"""

# Trading sessions in a year; used for 52-week extremes and volatility annualisation
TRADING_DAYS_52W = 252

# Bar lags for the percent-change price ids
CHANGE_LAGS = {
    'change_1d_pct': 1,
    'change_1w_pct': 5,
    'change_1m_pct': 22,
}

DEFAULT_PCT_FROM_PERIOD = 200
