"""Configuration loader with YAML support and environment overrides.

This module loads CaptureConfig from a YAML file, applying the
``environments.<name>`` section selected by argument or the CHATSHOT_ENV
variable, then caller overrides, then credentials from the environment.
"""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional, Union
import logging

from pydantic import ValidationError

from .settings import CaptureConfig


logger = logging.getLogger(__name__)

ENV_VAR = "CHATSHOT_ENV"
TOKEN_ENV_VAR = "CHATSHOT_CHAT_TOKEN"
CONFIG_ENV_VAR = "CHATSHOT_CONFIG"


class ConfigLoadError(Exception):
    """Exception raised when configuration loading fails."""
    pass


def load_config(
    config_path: Optional[Union[str, Path]] = None,
    environment: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None
) -> CaptureConfig:
    """Load CaptureConfig from YAML file with environment overrides.

    Args:
        config_path: Path to YAML config file. If None, uses CHATSHOT_CONFIG
            or ``config/config.yaml`` in the working directory.
        environment: Environment name for override selection. If None, uses ENV var.
        overrides: Additional configuration overrides to apply.

    Returns:
        Validated CaptureConfig instance.

    Raises:
        ConfigLoadError: If configuration loading or validation fails.

    Example:
        >>> config = load_config("config/config.yaml", environment="development")
        >>> config.headless
        False
    """
    if config_path is None:
        config_path = os.getenv(CONFIG_ENV_VAR) or Path.cwd() / "config" / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise ConfigLoadError(f"Config file not found: {config_path}")

    try:
        with open(config_path, 'r') as f:
            config_data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigLoadError(f"Failed to parse YAML config: {e}")
    except IOError as e:
        raise ConfigLoadError(f"Failed to read config file: {e}")

    if config_data is None:
        config_data = {}
    if not isinstance(config_data, dict):
        raise ConfigLoadError("Config file must contain a YAML dictionary")

    if environment is None:
        environment = os.getenv(ENV_VAR, "production")

    environments = config_data.pop("environments", None) or {}
    if environment in environments:
        config_data = _deep_merge(config_data, environments[environment])
        logger.info(f"Applied environment overrides for: {environment}")

    if overrides:
        config_data = _deep_merge(config_data, overrides)
        logger.debug("Applied additional configuration overrides")

    token = os.getenv(TOKEN_ENV_VAR)
    if token:
        config_data["chat_token"] = token

    try:
        return CaptureConfig(**config_data)
    except ValidationError as e:
        raise ConfigLoadError(f"Failed to create CaptureConfig: {e}")


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Deep merge two dictionaries, with override taking precedence."""
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def create_default_config() -> Dict[str, Any]:
    """Create a default configuration dictionary.

    Returns:
        Default configuration values suitable for YAML serialization.
    """
    return {
        "headless": True,
        "window": {
            "width": 1920,
            "height": 1080,
            "zoom": 1.0,
        },
        "user_agent": "",
        "timezone": "",
        "chat_token": "",
        "screenshot_dir": "./screenshots",
        "extra_args": ["--disable-gpu"],
        "use_new_nav": False,
        "trim": {
            "threshold": 10,
            "min_width": 500,
        },
        "server": {
            "host": "0.0.0.0",
            "port": 3000,
        },
        "environments": {
            "development": {
                "headless": False,
                "server": {"port": 3001},
            },
            "test": {
                "screenshot_dir": "./screenshots-test",
            },
        },
    }


def save_default_config(output_path: Union[str, Path]) -> None:
    """Save default configuration to YAML file.

    Raises:
        ConfigLoadError: If file writing fails.
    """
    config_data = create_default_config()

    try:
        with open(output_path, 'w') as f:
            yaml.dump(config_data, f, default_flow_style=False, sort_keys=False)
        logger.info(f"Saved default configuration to: {output_path}")
    except IOError as e:
        raise ConfigLoadError(f"Failed to save config file: {e}")
