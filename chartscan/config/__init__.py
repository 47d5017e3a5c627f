from .loader import Config, ConfigError, config, load_config

__all__ = ['Config', 'ConfigError', 'config', 'load_config']
