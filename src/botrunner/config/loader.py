"""Configuration loader with multi-source support."""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import platformdirs
import toml
from pydantic import ValidationError

from ..errors import ConfigurationError
from ..logging_config import get_logger
from .schema import Config

logger = get_logger(__name__)

DEFAULTS_PATH = Path(__file__).parent / "defaults.toml"


class ConfigLoader:
    """Loads configuration from multiple sources with priority."""

    def __init__(self, app_name: str = "botrunner") -> None:
        self.app_name = app_name
        self._config: Optional[Config] = None

    def load(self, config_path: Optional[Path] = None) -> Config:
        """Load configuration from all sources.

        Args:
            config_path: Optional TOML file used instead of the packaged defaults

        Returns:
            Validated configuration object
        """
        # 1. Start with defaults (shipped with app) or the explicit file
        config_dict = self._load_defaults(config_path)

        # 2. Merge system config
        system_config = self._load_system_config()
        if system_config:
            config_dict = self._deep_merge(config_dict, system_config)

        # 3. Merge user config
        user_config = self._load_user_config()
        if user_config:
            config_dict = self._deep_merge(config_dict, user_config)

        # 4. Override with environment variables
        config_dict = self._apply_env_overrides(config_dict)

        # 5. Validate and create Config object
        try:
            self._config = Config(**config_dict)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}", errors=e.errors()) from e

        return self._config

    def _load_defaults(self, config_path: Optional[Path] = None) -> Dict[str, Any]:
        """Load default configuration shipped with app."""
        if config_path is not None:
            if not config_path.exists():
                raise ConfigurationError(f"Config file not found: {config_path}", path=str(config_path))
            return toml.load(config_path)

        if DEFAULTS_PATH.exists():
            return toml.load(DEFAULTS_PATH)

        # Every field has a default in the schema
        return {}

    def _load_system_config(self) -> Optional[Dict[str, Any]]:
        """Load system-wide configuration."""
        if os.name == "nt":  # Windows
            system_path = (
                Path(os.environ.get("PROGRAMDATA", "C:\\ProgramData"))
                / self.app_name
                / "config.toml"
            )
        else:  # Linux/Mac
            system_path = Path(f"/etc/{self.app_name}/config.toml")

        if system_path.exists():
            return toml.load(system_path)

        return None

    def _load_user_config(self) -> Optional[Dict[str, Any]]:
        """Load user-specific configuration."""
        user_config_dir = platformdirs.user_config_dir(appname=self.app_name, appauthor=False)
        user_config_path = Path(user_config_dir) / "config.toml"

        if user_config_path.exists():
            logger.debug(f"Loading user config from {user_config_path}")
            return toml.load(user_config_path)

        return None

    def _deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    def _apply_env_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Override config with environment variables."""
        # Environment variables format: BOTRUNNER_SECTION_KEY
        prefix = f"{self.app_name.upper().replace('-', '_')}_"

        for env_key, env_value in os.environ.items():
            if not env_key.startswith(prefix):
                continue

            # BOTRUNNER_POLLING_TIMEOUT_SECONDS -> polling.timeout_seconds
            section, _, key = env_key[len(prefix):].lower().partition("_")
            if not key:
                continue

            current = config.setdefault(section, {})
            if not isinstance(current, dict):
                continue
            current[key] = self._convert_env_value(env_value)

        return config

    def _convert_env_value(self, value: str) -> Any:
        """Convert string environment variable to appropriate type."""
        # Boolean
        if value.lower() in ("true", "yes"):
            return True
        if value.lower() in ("false", "no"):
            return False

        # Number
        try:
            if "." in value:
                return float(value)
            return int(value)
        except ValueError:
            pass

        # List (comma-separated)
        if "," in value:
            return [v.strip() for v in value.split(",")]

        # String
        return value


def reload_config(config_path: Optional[Path] = None) -> Config:
    """Load configuration from all sources."""
    return ConfigLoader().load(config_path)
