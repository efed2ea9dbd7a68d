"""
Configuration management for SecureFab Node.
"""
import json
import os
from pathlib import Path
from typing import Dict, Any, Optional

from utils.constants import CONFIGS_DIR
from utils.failures import ConfigError


# Environment variable -> dotted config key
ENV_OVERRIDES = {
    'SECUREFAB_LOG_LEVEL': 'logging.level',
    'SECUREFAB_STEPS_PATH': 'steps.path',
    'SECUREFAB_MODEL_PATH': 'detection.model_path',
}

TRUE_VALUES = ('true', '1', 'yes', 'on')
FALSE_VALUES = ('false', '0', 'no', 'off')


class Config:
    """Configuration manager that merges multiple domain-specific JSON files."""

    def __init__(self, configs_dir: Optional[str] = None, overrides: Optional[Dict[str, Any]] = None):
        """
        Initialize configuration by loading all JSON files in the configs directory.

        Args:
            configs_dir: Path to directory containing JSON configs (defaults to ./configs)
            overrides: Optional nested dict merged last (used by tests and the CLI)
        """
        self.config: Dict[str, Any] = {}

        configs_dir = Path(configs_dir) if configs_dir else CONFIGS_DIR

        # 1. Load all JSON files if directory exists
        if configs_dir.exists() and configs_dir.is_dir():
            for config_file in sorted(configs_dir.glob("*.json")):
                self.load_from_file(str(config_file))

        # 2. Override from environment variables if present
        self._load_from_env()

        # 3. Explicit overrides
        if overrides:
            self._merge_config(overrides)

    def _load_from_env(self):
        """Load configuration from environment variables."""
        for env_name, key in ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value:
                self.set(key, value)

    def load_from_file(self, path: str):
        """Load configuration from JSON file."""
        try:
            with open(path, 'r') as f:
                user_config = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Failed to load config from {path}: {e}") from e

        if not isinstance(user_config, dict):
            raise ConfigError(f"Config file {path} must contain a JSON object")
        self._merge_config(user_config)

    def _merge_config(self, user_config: Dict[str, Any]):
        """Merge user config with defaults recursively."""
        def update(d, u):
            for k, v in u.items():
                if isinstance(v, dict):
                    d[k] = update(d.get(k, {}), v)
                else:
                    d[k] = v
            return d

        update(self.config, user_config)

    def set(self, key: str, value: Any) -> None:
        """Set a value by dotted key, creating intermediate sections."""
        keys = key.split('.')
        section = self.config
        for k in keys[:-1]:
            section = section.setdefault(k, {})
        section[keys[-1]] = value

    def get_bool(self, key: str, default: bool = False) -> bool:
        """
        Get config value as boolean.

        Accepts JSON booleans and the usual env spellings ("true", "off", "1", ...).
        Anything else raises ConfigError.
        """
        val = self.get(key, default)
        if isinstance(val, bool):
            return val
        text = str(val).strip().lower()
        if text in TRUE_VALUES:
            return True
        if text in FALSE_VALUES:
            return False
        raise ConfigError(f"{key} must be a boolean, got {val!r}")

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value."""
        keys = key.split('.')
        value = self.config

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

