"""OpenWeatherMap adapter, with National Weather Service alerts by default."""

from typing import Any

import structlog

from wxrelay.api.client import ProviderClient
from wxrelay.api.models import ConditionReading, ProviderShape, RawAlert, RawForecast
from wxrelay.records import AlertType, Location
from wxrelay.utils.exceptions import ConfigurationError, ProviderError, WXRError
from wxrelay.utils.timestamps import format_timestamp

logger = structlog.get_logger(__name__)

OWM_BASE_URL = "https://api.openweathermap.org"
NWS_BASE_URL = "https://api.weather.gov"

NWS_SOURCE = "National Weather Service"
OWM_SOURCE = "OpenWeatherMap"

METERS_PER_MILE = 1609
MM_PER_INCH = 25.4

# Fixed point used for credential checks (New York City)
TEST_LATITUDE = 40.7128
TEST_LONGITUDE = -74.0060


class OpenWeatherMapClient(ProviderClient):
    """OWM geocoding and current weather; alerts from NWS or One Call."""

    name = "openweathermap"

    def _api_key(self) -> str:
        if not self._settings.api_key:
            raise ConfigurationError("API key not configured")
        return self._settings.api_key

    async def resolve_coordinates(self, location: Location) -> tuple[float, float, str]:
        """Return (lat, lon, display name), geocoding the ZIP when needed."""
        self._require_location(location)
        if location.has_coordinates:
            name = location.name or f"{location.latitude},{location.longitude}"
            return location.latitude, location.longitude, name

        data = await self._get(
            f"{OWM_BASE_URL}/geo/1.0/zip",
            params={"zip": f"{location.zip_code},US", "appid": self._api_key()},
        )
        if not data or data.get("lat") is None or data.get("lon") is None:
            raise ProviderError(f"Could not geocode ZIP {location.zip_code}")
        return data["lat"], data["lon"], data.get("name") or location.name or location.zip_code

    async def fetch_alerts(
        self,
        location: Location,
        alert_types: list[AlertType] | None = None,
    ) -> list[RawAlert]:
        # Neither NWS nor One Call filter by code server-side
        self._api_key()
        lat, lon, place_name = await self.resolve_coordinates(location)
        if self._settings.owm_alert_source == "onecall":
            return await self._fetch_onecall_alerts(lat, lon)
        return await self._fetch_nws_alerts(lat, lon, place_name)

    async def _fetch_nws_alerts(self, lat: float, lon: float, place_name: str) -> list[RawAlert]:
        headers = {"Accept": "application/geo+json"}
        point = f"{lat:.4f},{lon:.4f}"

        point_data = await self._get(f"{NWS_BASE_URL}/points/{point}", headers=headers)
        properties = (point_data or {}).get("properties") or {}
        zone = properties.get("county") or properties.get("forecastZone")

        if zone:
            zone_code = zone.rstrip("/").split("/")[-1]
            data = await self._get(f"{NWS_BASE_URL}/alerts/active/zone/{zone_code}", headers=headers)
        else:
            data = await self._get(
                f"{NWS_BASE_URL}/alerts/active",
                params={"point": point},
                headers=headers,
            )

        alerts = []
        for feature in (data or {}).get("features") or []:
            props = dict(feature.get("properties") or {})
            props["id"] = props.get("id") or feature.get("id")
            props["locationName"] = place_name
            alerts.append(RawAlert(shape=ProviderShape.GOVERNMENT, payload=props, source=NWS_SOURCE))

        logger.debug("Fetched NWS alerts", zone=zone, count=len(alerts))
        return alerts

    async def _fetch_onecall_alerts(self, lat: float, lon: float) -> list[RawAlert]:
        data = await self._get(
            f"{OWM_BASE_URL}/data/3.0/onecall",
            params={
                "lat": lat,
                "lon": lon,
                "exclude": "current,minutely,hourly,daily",
                "appid": self._api_key(),
            },
        )
        return [
            RawAlert(shape=ProviderShape.COMMERCIAL_TAG, payload=alert, source=OWM_SOURCE)
            for alert in (data or {}).get("alerts") or []
        ]

    async def fetch_conditions(self, location: Location) -> ConditionReading:
        self._api_key()
        lat, lon, _ = await self.resolve_coordinates(location)
        data = await self._get(
            f"{OWM_BASE_URL}/data/2.5/weather",
            params={"lat": lat, "lon": lon, "units": "imperial", "appid": self._api_key()},
        )
        if not data:
            raise ProviderError("No weather data returned")
        return self._to_reading(data)

    async def fetch_forecast(self, location: Location) -> RawForecast | None:
        raise ConfigurationError("Daily forecasts require the xweather provider")

    async def test_connection(self) -> dict[str, Any]:
        if not self._settings.api_key:
            return {"success": False, "message": "OpenWeatherMap API key not configured"}
        try:
            data = await self._get(
                f"{OWM_BASE_URL}/data/2.5/weather",
                params={"lat": TEST_LATITUDE, "lon": TEST_LONGITUDE, "appid": self._settings.api_key},
            )
        except WXRError as e:
            return {"success": False, "message": f"API connection failed: {e}"}
        if not data:
            return {"success": False, "message": "Unexpected API response"}
        return {
            "success": True,
            "message": "API connection successful",
            "provider": OWM_SOURCE,
            "location": data.get("name"),
        }

    @staticmethod
    def _to_reading(data: dict[str, Any]) -> ConditionReading:
        main = data.get("main") or {}
        wind = data.get("wind") or {}
        weather = (data.get("weather") or [{}])[0]
        sys = data.get("sys") or {}
        visibility = data.get("visibility")

        return ConditionReading(
            temp=round(main.get("temp", 0)),
            feels_like=round(main.get("feels_like", main.get("temp", 0))),
            humidity=main.get("humidity") or 0,
            pressure=main.get("pressure"),
            wind_speed=round(wind.get("speed") or 0),
            wind_direction=wind.get("deg"),
            visibility=round(visibility / METERS_PER_MILE) if visibility else None,
            description=weather.get("description") or "",
            main=weather.get("main") or "",
            icon=weather.get("icon") or "",
            rain=((data.get("rain") or {}).get("1h") or 0) / MM_PER_INCH,
            snow=((data.get("snow") or {}).get("1h") or 0) / MM_PER_INCH,
            clouds=(data.get("clouds") or {}).get("all"),
            timestamp=format_timestamp(data.get("dt")),
            sunrise=format_timestamp(sys.get("sunrise")),
            sunset=format_timestamp(sys.get("sunset")),
        )
