from .loader import DEFAULT_CONFIG_PATH, load_config
from .types import (
    DEFAULT_LOG_FILE,
    DEFAULT_LOG_LEVEL,
    Config,
    ConfigError,
    UnsupportedConfigFormatError,
)

__all__ = [
    "load_config",
    "DEFAULT_CONFIG_PATH",
    "DEFAULT_LOG_FILE",
    "DEFAULT_LOG_LEVEL",
    "Config",
    "ConfigError",
    "UnsupportedConfigFormatError",
]
