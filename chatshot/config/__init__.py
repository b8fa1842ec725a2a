"""Configuration loading for the capture service.

This package provides the pydantic configuration models and YAML-based
loading with environment overrides.
"""

from .settings import (
    CaptureConfig,
    ChatSelectors,
    ServerConfig,
    TimeoutConfig,
    TrimConfig,
    WindowConfig,
)
from .loader import (
    load_config,
    create_default_config,
    save_default_config,
    ConfigLoadError
)

__all__ = [
    "CaptureConfig",
    "ChatSelectors",
    "ServerConfig",
    "TimeoutConfig",
    "TrimConfig",
    "WindowConfig",
    "load_config",
    "create_default_config",
    "save_default_config",
    "ConfigLoadError"
]
