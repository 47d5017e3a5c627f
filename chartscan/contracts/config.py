"""
Config Protocol - Interface for configuration access.

Lets classifiers and the scanner accept any config object without importing
the concrete loader.
"""

from typing import Any, Dict, Protocol


class ConfigProtocol(Protocol):
    """Protocol defining the configuration members the scanner reads."""

    @property
    def LOGGER_DEBUG(self) -> bool: ...

    @property
    def LOG_DIR(self) -> str: ...

    @property
    def LOG_TO_FILE(self) -> bool: ...

    @property
    def BENCHMARK_RETURN_65D(self) -> float: ...

    @property
    def BENCHMARK_RETURN_20D(self) -> float: ...

    @property
    def SWING_BREAKOUT(self) -> Dict[str, Any]: ...

    @property
    def POSITIONAL_BREAKOUT(self) -> Dict[str, Any]: ...

    @property
    def CUP_AND_HANDLE(self) -> Dict[str, Any]: ...

    def get_config(self, section: str, key: str, default: Any = None) -> Any: ...

    def get_section(self, section: str) -> Dict[str, Any]: ...
