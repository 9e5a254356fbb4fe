"""Logging, configuration and caching helpers"""

from .cache import RegionCache
from .config import ConfigManager, deep_merge, get_default_config
from .logging_config import StructuredFormatter, log_execution_time, setup_logging

__all__ = [
    'RegionCache',
    'ConfigManager',
    'deep_merge',
    'get_default_config',
    'StructuredFormatter',
    'log_execution_time',
    'setup_logging',
]
