"""Custom exceptions for Brokerdesk."""


class BrokerdeskError(Exception):
    """Base exception for all Brokerdesk errors."""

    pass


class ConfigurationError(BrokerdeskError):
    """Error in configuration or settings."""

    pass
