from .dataclass_utils import SerializableMixin
from .series import Bar, PriceSeries, ChartscanError, SeriesLengthError

__all__ = ['SerializableMixin', 'Bar', 'PriceSeries', 'ChartscanError', 'SeriesLengthError']
