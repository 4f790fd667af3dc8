"""Custom exception hierarchy for Weather Alert Relay."""


class WXRError(Exception):
    """Base exception for all Weather Alert Relay errors."""

    pass


class ConfigurationError(WXRError):
    """Missing or invalid configuration (credentials, webhook URL, location)."""

    pass


class InputValidationError(WXRError):
    """Operator input failed validation (location, frequency, time of day)."""

    pass


class ProviderError(WXRError):
    """Error returned by an upstream weather provider."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        """Initialize provider error.

        Args:
            message: Error message, including the upstream description when available.
            status_code: HTTP status code if available.
        """
        super().__init__(message)
        self.status_code = status_code


class RateLimitedError(ProviderError):
    """Upstream provider rate limit exceeded."""

    def __init__(self, message: str = "API rate limit exceeded") -> None:
        super().__init__(message, status_code=429)


class NetworkError(WXRError):
    """Timeout or connection failure talking to a remote endpoint."""

    pass


class DeliveryError(WXRError):
    """Webhook responded with a non-2xx status."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: str | None = None,
    ) -> None:
        """Initialize delivery error.

        Args:
            message: Error message.
            status_code: HTTP status returned by the webhook.
            body: Response body (truncated) if any.
        """
        super().__init__(message)
        self.status_code = status_code
        self.body = body
