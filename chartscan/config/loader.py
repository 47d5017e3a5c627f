"""
Configuration loader for chartscan.
Loads scanner settings from config/config.ini and optional overrides from scanner.env.
"""

import configparser
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

from dotenv import dotenv_values

# Root directory (where scanner.env lives) and config directory (where config.ini lives)
ROOT_DIR = Path(__file__).parent.parent.parent.resolve()
CONFIG_DIR = ROOT_DIR / "config"
ENV_PATH = ROOT_DIR / "scanner.env"
CONFIG_INI_PATH = CONFIG_DIR / "config.ini"

ENV_PREFIX = "CHARTSCAN_"


class ConfigError(RuntimeError):
    """Raised when a configuration file exists but cannot be parsed."""


class Config:
    """Configuration class that loads settings from an INI file and an env file.

    Both files are optional; every property has a built-in default so the scanner
    runs as a library without any configuration on disk.

    Env entries named ``CHARTSCAN_<SECTION>__<KEY>`` override the INI value of
    ``[section] key``.
    """

    def __init__(self, ini_path: Union[str, Path, None] = None, env_path: Union[str, Path, None] = None):
        self.ini_path = Path(ini_path) if ini_path is not None else CONFIG_INI_PATH
        self.env_path = Path(env_path) if env_path is not None else ENV_PATH
        self._env_vars: Dict[str, Any] = {}
        self._config_data: Dict[str, Dict[str, Any]] = {}
        self._load_ini_config()
        self._load_environment()

    def _load_ini_config(self) -> None:
        """Load configuration from config.ini."""
        if not self.ini_path.exists():
            logging.debug("No config file at %s, using defaults", self.ini_path)
            return

        parser = configparser.ConfigParser()
        try:
            parser.read(self.ini_path, encoding='utf-8')
        except configparser.Error as e:
            raise ConfigError(f"Error loading configuration file {self.ini_path}: {e}") from e

        for section_name in parser.sections():
            self._config_data[section_name] = {
                key: self._convert_value(value) for key, value in parser.items(section_name)
            }

    def _load_environment(self) -> None:
        """Load ``CHARTSCAN_`` overrides from scanner.env using python-dotenv."""
        if not self.env_path.exists():
            return

        for key, value in dotenv_values(self.env_path).items():
            if value is None:
                continue
            self._env_vars[key] = self._convert_value(value)
            if not key.startswith(ENV_PREFIX) or "__" not in key:
                continue
            section, option = key[len(ENV_PREFIX):].lower().split("__", 1)
            self._config_data.setdefault(section, {})[option] = self._env_vars[key]

    @staticmethod
    def _convert_value(value: str) -> Any:
        """Convert string values to appropriate Python types."""
        stripped = value.strip()
        lowered = stripped.lower()
        if lowered in ('true', 'yes', 'on'):
            return True
        if lowered in ('false', 'no', 'off'):
            return False
        try:
            return int(stripped)
        except ValueError:
            pass
        try:
            return float(stripped)
        except ValueError:
            pass
        if ',' in stripped:
            return [item.strip() for item in stripped.split(',')]
        return stripped

    def get_env(self, key: str, default: Any = None) -> Any:
        """Get a raw value from scanner.env."""
        return self._env_vars.get(key, default)

    def get_config(self, section: str, key: str, default: Any = None) -> Any:
        """Get configuration value from the INI data."""
        return self._config_data.get(section, {}).get(key, default)

    def get_section(self, section: str) -> Dict[str, Any]:
        """Get entire configuration section."""
        return dict(self._config_data.get(section, {}))

    def reload(self) -> None:
        """Re-read both files, replacing the current values."""
        logging.info("Reloading configuration files...")
        self._env_vars = {}
        self._config_data = {}
        self._load_ini_config()
        self._load_environment()

    # Logging
    @property
    def LOGGER_DEBUG(self) -> bool:
        return bool(self.get_config('debug', 'logger_debug', False))

    @property
    def LOG_DIR(self) -> str:
        return str(self.get_config('directories', 'log_dir', 'logs'))

    @property
    def LOG_TO_FILE(self) -> bool:
        return bool(self.get_config('logging', 'log_to_file', False))

    # Scanner
    @property
    def BENCHMARK_RETURN_65D(self) -> float:
        """65-bar benchmark return in percent used for relative strength (0 when unknown)."""
        return float(self.get_config('scanner', 'benchmark_return_65d', 0.0))

    @property
    def BENCHMARK_RETURN_20D(self) -> float:
        """20-bar benchmark return in percent used by the relative-strength leaders scan."""
        return float(self.get_config('scanner', 'benchmark_return_20d', 0.0))

    @property
    def SWING_BREAKOUT(self) -> Dict[str, Any]:
        return self.get_section('swing_breakout')

    @property
    def POSITIONAL_BREAKOUT(self) -> Dict[str, Any]:
        return self.get_section('positional_breakout')

    @property
    def CUP_AND_HANDLE(self) -> Dict[str, Any]:
        return self.get_section('cup_and_handle')


def load_config(ini_path: Optional[Union[str, Path]] = None,
                env_path: Optional[Union[str, Path]] = None) -> Config:
    return Config(ini_path=ini_path, env_path=env_path)


# Global config instance
config = Config()
