"""Utility modules for Brokerdesk."""

from brokerdesk.utils.exceptions import BrokerdeskError, ConfigurationError

__all__ = [
    "BrokerdeskError",
    "ConfigurationError",
]
