"""Configuration management."""

# Local imports
from .base import HttpConfig, InspectorConfig, WorkloadsConfig
from .factory import clear_config, get_config

__all__ = [
    "HttpConfig",
    "InspectorConfig",
    "WorkloadsConfig",
    "clear_config",
    "get_config",
]
