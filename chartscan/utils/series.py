"""Price series container shared by every indicator, detector and classifier."""

from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Sequence, Union

import numpy as np


class ChartscanError(Exception):
    """Base class for errors raised by chartscan."""


class SeriesLengthError(ChartscanError, ValueError):
    """Raised when OHLCV columns do not share one length."""


@dataclass(frozen=True)
class Bar:
    """One OHLCV observation."""
    date: str
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0


def _column(values: Any) -> np.ndarray:
    return np.array(values, dtype=np.float64)


@dataclass(frozen=True, eq=False)
class PriceSeries:
    """Ordered OHLCV columns as float64 arrays (copied on construction, never mutated).

    Volume may be omitted by the data source; it is stored as 0 in that case.
    """
    dates: List[str]
    open: np.ndarray
    high: np.ndarray
    low: np.ndarray
    close: np.ndarray
    volume: np.ndarray = field(default=None)

    def __post_init__(self):
        n = len(self.close)
        volume = np.zeros(n) if self.volume is None else self.volume
        object.__setattr__(self, 'open', _column(self.open))
        object.__setattr__(self, 'high', _column(self.high))
        object.__setattr__(self, 'low', _column(self.low))
        object.__setattr__(self, 'close', _column(self.close))
        object.__setattr__(self, 'volume', _column(np.nan_to_num(np.asarray(volume, dtype=np.float64))))
        object.__setattr__(self, 'dates', [str(d) for d in self.dates])

        lengths = {
            'dates': len(self.dates), 'open': len(self.open), 'high': len(self.high),
            'low': len(self.low), 'close': len(self.close), 'volume': len(self.volume),
        }
        if len(set(lengths.values())) != 1:
            raise SeriesLengthError(f"OHLCV columns have mismatched lengths: {lengths}")

    def __len__(self) -> int:
        return len(self.close)

    @classmethod
    def from_bars(cls, rows: Sequence[Union[Bar, Mapping[str, Any]]]) -> "PriceSeries":
        """Build a series from ``Bar`` objects or mappings with date/open/high/low/close/volume keys."""
        dates, opens, highs, lows, closes, volumes = [], [], [], [], [], []
        for row in rows:
            get = row.get if isinstance(row, Mapping) else lambda key, default=None, r=row: getattr(r, key, default)
            dates.append(get('date', ''))
            opens.append(get('open'))
            highs.append(get('high'))
            lows.append(get('low'))
            closes.append(get('close'))
            volumes.append(get('volume', 0) or 0)
        return cls(dates, opens, highs, lows, closes, volumes)

    @classmethod
    def from_ohlcv_array(cls, ohlcv: np.ndarray, dates: Optional[Sequence[Any]] = None) -> "PriceSeries":
        """Build a series from an N x 5 (OHLCV) or N x 6 (timestamp + OHLCV) array."""
        data = np.asarray(ohlcv, dtype=np.float64)
        if data.ndim != 2 or data.shape[1] not in (5, 6):
            raise SeriesLengthError(f"Expected an N x 5 or N x 6 OHLCV array, got shape {data.shape}")
        offset = data.shape[1] - 5
        if dates is None:
            dates = [str(int(ts)) for ts in data[:, 0]] if offset else [str(i) for i in range(len(data))]
        return cls(list(dates), data[:, offset], data[:, offset + 1], data[:, offset + 2],
                   data[:, offset + 3], data[:, offset + 4])

    def truncate(self, end: int) -> "PriceSeries":
        """Return the bars ``[0, end)`` as a new series."""
        return PriceSeries(self.dates[:end], self.open[:end], self.high[:end], self.low[:end],
                           self.close[:end], self.volume[:end])

    def bar(self, index: int) -> Bar:
        return Bar(self.dates[index], float(self.open[index]), float(self.high[index]),
                   float(self.low[index]), float(self.close[index]), float(self.volume[index]))

    def tail(self, count: int) -> "PriceSeries":
        """Return the last ``count`` bars (the whole series when it is shorter)."""
        start = max(0, len(self) - count)
        return PriceSeries(self.dates[start:], self.open[start:], self.high[start:], self.low[start:],
                           self.close[start:], self.volume[start:])
