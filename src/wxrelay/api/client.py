"""Base async client for weather providers."""

from abc import ABC, abstractmethod
from typing import Any

import httpx
import structlog

from wxrelay.api.models import ConditionReading, RawAlert, RawForecast
from wxrelay.config.runtime import RuntimeSettings
from wxrelay.records import AlertType, Location
from wxrelay.utils.exceptions import (
    ConfigurationError,
    NetworkError,
    ProviderError,
    RateLimitedError,
)

logger = structlog.get_logger(__name__)

DEFAULT_USER_AGENT = "WeatherAlertRelay/1.0 (admin@localhost)"


def _error_description(response: httpx.Response) -> str | None:
    """Pull a human-readable message out of an upstream error body."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:200] or None
    if not isinstance(body, dict):
        return None
    error = body.get("error")
    if isinstance(error, dict) and error.get("description"):
        return str(error["description"])
    for key in ("detail", "message"):
        if body.get(key):
            return str(body[key])
    return None


class ProviderClient(ABC):
    """Async client shared by every provider adapter.

    Use as an async context manager; the underlying ``httpx.AsyncClient`` is
    opened on entry and closed on exit.
    """

    name: str = ""

    def __init__(
        self,
        settings: RuntimeSettings,
        timeout: float = 15.0,
        alert_timeout: float = 30.0,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            settings: Runtime settings carrying provider credentials.
            timeout: Default request timeout in seconds.
            alert_timeout: Timeout for vendor alert requests.
            user_agent: User-Agent header sent on every request.
            transport: Optional transport override (tests use ``httpx.MockTransport``).
        """
        self._settings = settings
        self._timeout = timeout
        self._alert_timeout = alert_timeout
        self._user_agent = user_agent
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "ProviderClient":
        """Context manager entry."""
        self._client = httpx.AsyncClient(
            timeout=self._timeout,
            headers={"User-Agent": self._user_agent, "Accept": "application/json"},
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Context manager exit."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _get(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> Any | None:
        """Make a GET request and decode the JSON body.

        Args:
            url: Absolute URL.
            params: Query parameters.
            headers: Extra headers for this request.
            timeout: Per-request timeout override.

        Returns:
            Decoded JSON, or None when the upstream answers 404.

        Raises:
            RateLimitedError: On HTTP 429.
            ProviderError: On credential failures or any other non-2xx status.
            NetworkError: On timeouts and connection failures.
        """
        if not self._client:
            raise ProviderError("Client not initialized. Use 'async with' context manager.")

        logger.debug("Provider request", provider=self.name, url=url)

        try:
            response = await self._client.get(
                url,
                params=params,
                headers=headers,
                timeout=timeout if timeout is not None else self._timeout,
            )
        except httpx.TimeoutException as e:
            logger.error("Provider request timed out", provider=self.name, url=url)
            raise NetworkError(f"Request to {self.name} timed out") from e
        except httpx.RequestError as e:
            logger.error("Request error", provider=self.name, url=url, error=str(e))
            raise NetworkError(f"Request failed: {e}") from e

        status = response.status_code
        if status == 404:
            return None
        if status == 429:
            raise RateLimitedError()
        if status in (401, 403):
            raise ProviderError("Invalid API credentials", status_code=status)
        if not response.is_success:
            description = _error_description(response) or response.reason_phrase
            logger.error(
                "Provider error",
                provider=self.name,
                status_code=status,
                url=url,
                response=response.text[:500],
            )
            raise ProviderError(f"API error: {description}", status_code=status)

        try:
            return response.json()
        except ValueError as e:
            raise ProviderError("Provider returned a non-JSON response", status_code=status) from e

    @abstractmethod
    async def fetch_alerts(
        self,
        location: Location,
        alert_types: list[AlertType] | None = None,
    ) -> list[RawAlert]:
        """Fetch active alerts for a location, tagged with their shape."""

    @abstractmethod
    async def fetch_conditions(self, location: Location) -> ConditionReading:
        """Fetch the current-conditions reading for a location."""

    @abstractmethod
    async def fetch_forecast(self, location: Location) -> RawForecast | None:
        """Fetch a short-range daily forecast, or None when no data exists."""

    @abstractmethod
    async def test_connection(self) -> dict[str, Any]:
        """Make one cheap authenticated call and report the outcome."""

    def _require_location(self, location: Location) -> None:
        if not location.has_coordinates and not location.zip_code:
            raise ConfigurationError(f"Invalid location: {location.label}")
