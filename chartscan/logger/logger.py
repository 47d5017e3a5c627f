import logging
import os
from datetime import datetime
from logging.handlers import TimedRotatingFileHandler
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler


class DailyRotatingFileHandler(TimedRotatingFileHandler):
    """Writes to ``<log_dir>/<logger>/<date>/`` and switches folders when the date changes."""

    def __init__(self, filename, log_dir, log_filename_prefix, logger_name, is_error_handler=False, *args, **kwargs):
        self.log_dir = log_dir
        self.log_filename_prefix = log_filename_prefix
        self.logger_name = logger_name
        self.is_error_handler = is_error_handler
        super().__init__(filename, *args, **kwargs)

    def _current_filename(self) -> str:
        current_date = datetime.now().strftime("%Y_%m_%d")
        folder = "errors" if self.is_error_handler else self.logger_name
        current_log_dir = os.path.join(self.log_dir, folder, current_date)
        return os.path.abspath(
            os.path.join(current_log_dir, f"{self.log_filename_prefix}{self.logger_name}.log")
        )

    def emit(self, record):
        current_filename = self._current_filename()
        base = os.path.abspath(self.baseFilename) if getattr(self, 'baseFilename', None) else None

        if base != current_filename:
            if getattr(self, 'stream', None):
                self.stream.close()
                self.stream = None
            self.baseFilename = current_filename
            os.makedirs(os.path.dirname(current_filename), exist_ok=True)
            self.stream = self._open()

        super().emit(record)


class Logger(logging.Logger):
    """Scanner logger with a rich console handler and optional dated log files."""

    def __init__(self, logger_name: str = '', log_filename_prefix: str = '', log_dir: Optional[str] = None,
                 logger_debug: Optional[bool] = None, log_to_file: Optional[bool] = None) -> None:
        sanitized_name = logger_name.replace('/', '_').replace('\\', '_')

        if log_dir is None or logger_debug is None or log_to_file is None:
            from chartscan.config.loader import config
            log_dir = config.LOG_DIR if log_dir is None else log_dir
            logger_debug = config.LOGGER_DEBUG if logger_debug is None else logger_debug
            log_to_file = config.LOG_TO_FILE if log_to_file is None else log_to_file

        level = logging.DEBUG if logger_debug else logging.INFO
        super().__init__(sanitized_name, level)

        self.log_filename_prefix = log_filename_prefix
        self.log_dir = log_dir
        self.log_to_file = log_to_file
        self.date_format = "%d.%m.%Y %H:%M:%S"

        self._setup_logger()
        self.debug(f"Logger {sanitized_name} initialized (file output: {self.log_to_file})")

    def _get_log_dir(self, current_date: str, is_error: bool = False) -> str:
        folder = 'errors' if is_error else self.name
        log_dir = os.path.join(self.log_dir, folder, current_date)
        os.makedirs(log_dir, exist_ok=True)
        return log_dir

    def _get_log_filename(self, log_dir: str) -> str:
        name = self.name if self.name else "default"
        return os.path.join(log_dir, f"{self.log_filename_prefix}{name}.log")

    def _plain_formatter(self) -> logging.Formatter:
        if self.level == logging.DEBUG:
            format_string = "[{asctime}] {filename}.{funcName} - {message}"
        else:
            format_string = "[{asctime}] - {message}"
        return logging.Formatter(format_string, datefmt=self.date_format, style="{")

    def _setup_logger(self) -> None:
        if self.handlers:
            return
        self._add_console_handler()
        if self.log_to_file:
            current_date = datetime.now().strftime("%Y_%m_%d")
            self._add_file_handler(self._get_log_dir(current_date), logging.DEBUG, is_error=False)
            self._add_file_handler(self._get_log_dir(current_date, is_error=True), logging.ERROR, is_error=True)

    def _add_console_handler(self) -> None:
        console = Console(color_system="auto", width=180)
        rich_handler = RichHandler(console=console, rich_tracebacks=False, show_path=False)
        rich_handler.setLevel(self.level)
        self.addHandler(rich_handler)

    def _add_file_handler(self, log_dir: str, level: int, is_error: bool) -> None:
        file_handler = DailyRotatingFileHandler(
            self._get_log_filename(log_dir),
            self.log_dir,
            self.log_filename_prefix,
            self.name,
            is_error_handler=is_error,
            when='midnight',
            interval=1,
            backupCount=30,
            encoding='utf-8',
            delay=True,
        )
        file_handler.setLevel(max(level, self.level))
        file_handler.setFormatter(self._plain_formatter())
        self.addHandler(file_handler)
