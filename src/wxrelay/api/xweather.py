"""XWeather (Aeris) adapter for alerts, observations and forecasts."""

from typing import Any

import structlog

from wxrelay.api.client import ProviderClient
from wxrelay.api.models import ConditionReading, ProviderShape, RawAlert, RawForecast
from wxrelay.records import AlertType, Location
from wxrelay.utils.exceptions import ConfigurationError, ProviderError, WXRError
from wxrelay.utils.timestamps import format_timestamp

logger = structlog.get_logger(__name__)

XWEATHER_SOURCE = "XWeather"

# Vendor error code for "valid request, nothing to report"
NO_DATA_CODE = "warn_no_data"

TEST_ZIP = "10001"


class XWeatherClient(ProviderClient):
    """Client for the XWeather data API."""

    name = "xweather"

    @property
    def _base_url(self) -> str:
        return self._settings.api_base_url.rstrip("/")

    def _credentials(self) -> dict[str, str]:
        if not self._settings.api_client_id or not self._settings.api_client_secret:
            raise ConfigurationError("API credentials not configured")
        return {
            "client_id": self._settings.api_client_id,
            "client_secret": self._settings.api_client_secret,
        }

    def location_query(self, location: Location) -> str:
        """Path segment identifying the place: "lat,lon" preferred, else ZIP."""
        self._require_location(location)
        if location.has_coordinates:
            return f"{location.latitude},{location.longitude}"
        return location.zip_code

    def _unwrap(self, data: Any) -> Any:
        """Return the ``response`` member of a vendor envelope.

        Raises:
            ProviderError: If the envelope reports any error other than no data.
        """
        if data is None:
            return []
        if not isinstance(data, dict):
            raise ProviderError("Unexpected response from XWeather")
        error = data.get("error") or {}
        if error.get("code") == NO_DATA_CODE:
            return []
        if not data.get("success"):
            description = error.get("description") or "Invalid response"
            raise ProviderError(f"API error: {description}")
        return data.get("response") or []

    async def fetch_alerts(
        self,
        location: Location,
        alert_types: list[AlertType] | None = None,
    ) -> list[RawAlert]:
        params: dict[str, Any] = self._credentials()
        query = self.location_query(location)
        if alert_types:
            params["filter"] = "type:" + ",".join(at.code for at in alert_types)

        data = await self._get(
            f"{self._base_url}/alerts/{query}",
            params=params,
            timeout=self._alert_timeout,
        )
        response = self._unwrap(data)
        if isinstance(response, dict):
            response = [response]

        return [
            RawAlert(shape=ProviderShape.VENDOR_CODED, payload=alert, source=XWEATHER_SOURCE)
            for alert in response
        ]

    async def fetch_conditions(self, location: Location) -> ConditionReading:
        params = self._credentials()
        query = self.location_query(location)
        response = self._unwrap(await self._get(f"{self._base_url}/observations/{query}", params=params))

        if isinstance(response, list):
            response = response[0] if response else None
        if not response:
            raise ProviderError("No weather data returned")

        observation = response.get("ob") or ((response.get("periods") or [None])[0])
        if not observation:
            raise ProviderError("No weather data returned")
        return self._to_reading(observation)

    async def fetch_forecast(self, location: Location) -> RawForecast | None:
        params: dict[str, Any] = {**self._credentials(), "limit": 3, "filter": "day"}
        query = self.location_query(location)
        response = self._unwrap(await self._get(f"{self._base_url}/forecasts/{query}", params=params))

        if isinstance(response, list):
            response = response[0] if response else None
        if not response or not response.get("periods"):
            return None
        return RawForecast(periods=response["periods"], place=response.get("place") or {})

    async def test_connection(self) -> dict[str, Any]:
        if not self._settings.api_client_id or not self._settings.api_client_secret:
            return {"success": False, "message": "XWeather API credentials not configured"}
        try:
            data = await self._get(
                f"{self._base_url}/alerts/{TEST_ZIP}",
                params={**self._credentials(), "limit": 1},
            )
            self._unwrap(data)
        except WXRError as e:
            return {"success": False, "message": f"API connection failed: {e}"}
        return {"success": True, "message": "API connection successful", "provider": XWEATHER_SOURCE}

    @staticmethod
    def _to_reading(ob: dict[str, Any]) -> ConditionReading:
        temp = ob.get("tempF")
        if temp is None:
            raise ProviderError("Observation is missing temperature")
        feels_like = ob.get("feelslikeF")

        return ConditionReading(
            temp=round(temp),
            feels_like=round(feels_like if feels_like is not None else temp),
            humidity=round(ob.get("humidity") or 0),
            pressure=ob.get("pressureMB"),
            wind_speed=round(ob.get("windSpeedMPH") or 0),
            wind_direction=ob.get("windDirDEG"),
            visibility=ob.get("visibilityMI"),
            description=ob.get("weather") or ob.get("weatherPrimary") or "",
            main=ob.get("weatherPrimary") or "",
            icon=ob.get("icon") or "",
            rain=ob.get("precipIN") or 0,
            snow=ob.get("snowIN") or 0,
            clouds=ob.get("sky"),
            timestamp=format_timestamp(ob.get("dateTimeISO") or ob.get("timestamp")),
            sunrise=format_timestamp(ob.get("sunriseISO") or ob.get("sunrise")),
            sunset=format_timestamp(ob.get("sunsetISO") or ob.get("sunset")),
        )
