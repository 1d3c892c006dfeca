"""Configuration management for anirip."""

import os
import logging

import yaml

logger = logging.getLogger(__name__)


class ConfigManager:
    """Loads the YAML configuration file and answers dotted-path lookups."""

    def __init__(self, config_path=None):
        """Initialize the configuration manager.

        Args:
            config_path: explicit config file; the default lookup order is used when None
        """
        self.config = {}
        self.config_path = config_path or self._find_config_path()
        self.load_config()

    @staticmethod
    def _find_config_path():
        """Pick the first existing file from ANIRIP_CONFIG, the user dir and the package dir."""
        candidates = []
        env_path = os.getenv('ANIRIP_CONFIG')
        if env_path:
            candidates.append(env_path)
        candidates.append(os.path.join(os.path.expanduser('~'), '.config', 'anirip', 'config.yml'))
        candidates.append(os.path.join(os.path.dirname(__file__), 'config.yml'))

        for path in candidates:
            if os.path.exists(path):
                return path
        return candidates[0]

    def load_config(self):
        """Load the YAML file; any problem leaves an empty configuration."""
        self.config = {}
        if not os.path.exists(self.config_path):
            logger.debug(f"No configuration file at {self.config_path}, using defaults")
            return

        if not os.access(self.config_path, os.R_OK):
            logger.error(f"Configuration file is not readable: {self.config_path}")
            return

        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                loaded_config = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load configuration file {self.config_path}: {str(e)}")
            return

        if not loaded_config:
            logger.warning(f"Configuration file is empty: {self.config_path}")
            return
        if not isinstance(loaded_config, dict):
            logger.error(f"Configuration must be a mapping, got {type(loaded_config).__name__}")
            return

        self.config = loaded_config
        logger.info(f"Loaded configuration from {self.config_path}, sections: {list(self.config.keys())}")

    def get_config_value(self, key_path, default=None):
        """Look up a dotted path such as 'download.quality'."""
        value = self.config
        keys = key_path.split('.')
        for i, key in enumerate(keys):
            if not isinstance(value, dict):
                logger.debug(f"Config path {'.'.join(keys[:i])} is not a mapping")
                return default
            if key not in value:
                return default
            value = value[key]

        if value is None:
            return default
        return value

    def get_config(self):
        """Return a copy of the whole configuration dictionary"""
        return self.config.copy()

    def reload_config(self):
        self.load_config()


_config_manager = None


def get_config_manager():
    """Return the process-wide configuration manager"""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager


def set_config_manager(config_manager):
    """Replace the process-wide manager, e.g. with one built from --config."""
    global _config_manager
    _config_manager = config_manager


def get_config_value(key_path, default=None):
    return get_config_manager().get_config_value(key_path, default)


def load_config():
    """Reload the process-wide configuration"""
    return get_config_manager().reload_config()
