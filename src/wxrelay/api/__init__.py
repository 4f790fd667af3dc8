"""Weather provider clients."""

import httpx

from wxrelay.api.client import ProviderClient
from wxrelay.api.openweathermap import OpenWeatherMapClient
from wxrelay.api.throttle import RequestThrottle
from wxrelay.api.xweather import XWeatherClient
from wxrelay.config.runtime import RuntimeSettings
from wxrelay.config.settings import Settings
from wxrelay.utils.exceptions import ConfigurationError

PROVIDERS: dict[str, type[ProviderClient]] = {
    OpenWeatherMapClient.name: OpenWeatherMapClient,
    XWeatherClient.name: XWeatherClient,
}


def create_provider(
    runtime: RuntimeSettings,
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ProviderClient:
    """Build the client for the provider selected in runtime settings.

    Raises:
        ConfigurationError: If the provider name is not recognized.
    """
    client_class = PROVIDERS.get(runtime.api_provider)
    if client_class is None:
        raise ConfigurationError(f"Unknown weather provider: {runtime.api_provider}")
    return client_class(
        runtime,
        timeout=settings.http_timeout,
        alert_timeout=settings.alert_timeout,
        user_agent=settings.user_agent,
        transport=transport,
    )


__all__ = [
    "OpenWeatherMapClient",
    "PROVIDERS",
    "ProviderClient",
    "RequestThrottle",
    "XWeatherClient",
    "create_provider",
]
