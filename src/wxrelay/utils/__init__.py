"""Utility modules for Weather Alert Relay."""

from wxrelay.utils.exceptions import (
    ConfigurationError,
    DeliveryError,
    InputValidationError,
    NetworkError,
    ProviderError,
    RateLimitedError,
    WXRError,
)

__all__ = [
    "ConfigurationError",
    "DeliveryError",
    "InputValidationError",
    "NetworkError",
    "ProviderError",
    "RateLimitedError",
    "WXRError",
]
