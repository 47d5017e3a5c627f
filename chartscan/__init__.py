"""Technical-analysis pattern scanning engine."""

__version__ = "0.1.0"
