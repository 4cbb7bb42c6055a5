"""Configuration models and settings loader."""

from acp_bridge.config.models import DEFAULT_TIMEOUT, AgentConfig, Settings
from acp_bridge.config.parser import ConfigError, load_settings

__all__ = [
    "DEFAULT_TIMEOUT",
    "AgentConfig",
    "ConfigError",
    "Settings",
    "load_settings",
]
