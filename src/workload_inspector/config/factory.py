"""Configuration factory module."""

# Standard library imports
from typing import Optional

# Third-party imports
from dotenv import load_dotenv

# Local imports
from .base import InspectorConfig


class ConfigFactory:
    """Creates and caches the service configuration."""

    _instance: Optional[InspectorConfig] = None
    _require_workloads: Optional[bool] = None

    @classmethod
    def get_config(
        cls, require_workloads: bool = True, force_refresh: bool = False
    ) -> InspectorConfig:
        """
        Get the configuration, loading ``.env`` and the environment on first use.

        Args:
            require_workloads: Whether NATS settings must be present.
            force_refresh: Whether to force creation of a new instance.

        Returns:
            Configuration instance.
        """
        if (
            force_refresh
            or cls._instance is None
            or cls._require_workloads != require_workloads
        ):
            load_dotenv()
            cls._instance = InspectorConfig.from_env(require_workloads=require_workloads)
            cls._require_workloads = require_workloads
        return cls._instance

    @classmethod
    def clear_cache(cls) -> None:
        cls._instance = None
        cls._require_workloads = None


def get_config(
    require_workloads: bool = True, force_refresh: bool = False
) -> InspectorConfig:
    """Get global configuration instance."""
    return ConfigFactory.get_config(
        require_workloads=require_workloads, force_refresh=force_refresh
    )


def clear_config() -> None:
    """Clear global configuration instance."""
    ConfigFactory.clear_cache()
