"""Configuration module for Brokerdesk."""

from brokerdesk.config.settings import MatchingConfig, Settings, get_settings

__all__ = ["MatchingConfig", "Settings", "get_settings"]
