"""
Configuration management - YAML config files merged over built-in defaults
"""
import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = '.cloud-cost-optimizer.yaml'


def get_default_config() -> Dict[str, Any]:
    """Get default configuration"""
    return {
        'scan': {
            'default_provider': 'aws',
            'default_top': 5,
            'min_savings': 0.0,
            'batch_size': 5,
            'analyzer_timeout': None,
        },
        'aws': {
            'profile': None,
            'region': None,
        },
        'azure': {
            'subscription_id': None,
            'location': None,
        },
        'gcp': {
            'project_id': None,
            'region': None,
        },
        'reports': {
            'directory': None,
        },
        'logging': {
            'level': 'INFO',
        },
    }


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge `override` into a copy of `base`"""
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def candidate_paths() -> List[Path]:
    """Config files searched when no explicit path is given, highest priority first"""
    paths = [Path.cwd() / CONFIG_FILENAME, Path.home() / CONFIG_FILENAME]
    xdg_home = os.environ.get('XDG_CONFIG_HOME')
    if xdg_home:
        paths.append(Path(xdg_home) / 'cloud-cost-optimizer' / 'config.yaml')
    return paths


class ConfigManager:
    """Configuration management utilities"""

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = Path(config_path).expanduser() if config_path else None
        self.loaded_from: Optional[Path] = None
        self.config = self.load()

    def find_config_file(self) -> Optional[Path]:
        if self.config_path:
            if not self.config_path.is_file():
                raise ConfigurationError(f"Config file not found: {self.config_path}")
            return self.config_path
        for path in candidate_paths():
            if path.is_file():
                return path
        return None

    def load(self) -> Dict[str, Any]:
        """Load the first config file found and merge it over the defaults"""
        path = self.find_config_file()
        if path is None:
            logger.debug("No config file found, using defaults")
            return get_default_config()

        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Error loading config {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Config {path} must be a YAML mapping")

        self.loaded_from = path
        logger.debug(f"Loaded configuration from {path}")
        return deep_merge(get_default_config(), data)

    def get(self, dotted_key: str, default: Any = None) -> Any:
        """Look up a value by 'section.key'"""
        node: Any = self.config
        for part in dotted_key.split('.'):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return default if node is None else node

    @staticmethod
    def save_config(config: Dict[str, Any], config_path: Optional[str] = None) -> Path:
        """Save configuration to YAML file"""
        path = Path(config_path).expanduser() if config_path else Path.home() / CONFIG_FILENAME
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            yaml.safe_dump(config, f, default_flow_style=False, indent=2)
        logger.info(f"Configuration saved to {path}")
        return path
