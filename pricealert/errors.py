"""Exceptions raised by PriceAlert."""


class PriceAlertError(Exception):
    """Base class for PriceAlert errors."""


class StoreUnavailableError(PriceAlertError):
    """The alert store could not be read or written."""


class ConfigError(PriceAlertError):
    """The configuration file could not be parsed."""
