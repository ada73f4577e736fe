"""Configuration module for the account API.

Handles loading and getting of configuration values from various locations.
"""

from .config import (
    AppConfig,
    configure_logging,
    get_env_str,
    load_config_from_env,
)

__all__ = ["AppConfig", "configure_logging", "get_env_str", "load_config_from_env"]
