from .logger import Logger, DailyRotatingFileHandler

__all__ = ['Logger', 'DailyRotatingFileHandler']
