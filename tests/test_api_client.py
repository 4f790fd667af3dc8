"""Tests for weather provider clients."""

import asyncio
import time
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from wxrelay.api import (
    OpenWeatherMapClient,
    RequestThrottle,
    XWeatherClient,
    create_provider,
)
from wxrelay.api.models import ProviderShape
from wxrelay.config.runtime import RuntimeSettings
from wxrelay.records import AlertType, Location
from wxrelay.utils.exceptions import (
    ConfigurationError,
    NetworkError,
    ProviderError,
    RateLimitedError,
)

ZIP_LOCATION = Location(id="loc-1", name="Home", zip_code="10001")
COORD_LOCATION = Location(id="loc-2", name="Cabin", latitude=44.5, longitude=-72.6)


@pytest.fixture
def xweather_settings() -> RuntimeSettings:
    return RuntimeSettings(api_provider="xweather", api_client_id="cid", api_client_secret="secret")


@pytest.fixture
def owm_settings() -> RuntimeSettings:
    return RuntimeSettings(api_provider="openweathermap", api_key="owm-key")


def transport_for(routes: dict[str, httpx.Response], requests: list | None = None) -> httpx.MockTransport:
    """Route by URL path; unknown paths answer 404."""

    def handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        return routes.get(request.url.path, httpx.Response(404))

    return httpx.MockTransport(handler)


class TestProviderClient:
    """Test behaviour shared by every provider."""

    @pytest.mark.asyncio
    async def test_request_without_context_manager_raises(self, xweather_settings):
        client = XWeatherClient(xweather_settings)

        with pytest.raises(ProviderError, match="Client not initialized"):
            await client.fetch_alerts(ZIP_LOCATION)

    @pytest.mark.asyncio
    async def test_context_manager(self, xweather_settings):
        client = XWeatherClient(xweather_settings)
        async with client as c:
            assert c._client is not None
        assert c._client is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("status", "error", "match"),
        [
            (429, RateLimitedError, "rate limit"),
            (401, ProviderError, "Invalid API credentials"),
            (403, ProviderError, "Invalid API credentials"),
            (500, ProviderError, "API error: upstream exploded"),
        ],
    )
    async def test_status_mapping(self, xweather_settings, status, error, match):
        transport = transport_for(
            {"/alerts/10001": httpx.Response(status, json={"error": {"description": "upstream exploded"}})}
        )
        async with XWeatherClient(xweather_settings, transport=transport) as client:
            with pytest.raises(error, match=match) as exc_info:
                await client.fetch_alerts(ZIP_LOCATION)

        assert exc_info.value.status_code == status

    @pytest.mark.asyncio
    async def test_timeout_is_network_error(self, xweather_settings):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        async with XWeatherClient(xweather_settings, transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(NetworkError, match="timed out"):
                await client.fetch_alerts(ZIP_LOCATION)

    @pytest.mark.asyncio
    async def test_location_without_zip_or_coordinates(self, xweather_settings):
        async with XWeatherClient(xweather_settings, transport=transport_for({})) as client:
            with pytest.raises(ConfigurationError, match="Invalid location"):
                await client.fetch_alerts(Location(id="bad"))


class TestXWeatherClient:
    """Test XWeatherClient."""

    @pytest.mark.asyncio
    async def test_fetch_alerts_filters_by_code(self, xweather_settings):
        requests: list[httpx.Request] = []
        transport = transport_for(
            {
                "/alerts/44.5,-72.6": httpx.Response(
                    200,
                    json={
                        "success": True,
                        "error": None,
                        "response": [{"id": "x1", "details": {"type": "TO.W"}}],
                    },
                )
            },
            requests,
        )
        alert_types = [
            AlertType(id="1", name="Tornado Warning", code="TO.W"),
            AlertType(id="2", name="Flood Warning", code="FL.W"),
        ]

        async with XWeatherClient(xweather_settings, transport=transport) as client:
            alerts = await client.fetch_alerts(COORD_LOCATION, alert_types)

        assert len(alerts) == 1
        assert alerts[0].shape is ProviderShape.VENDOR_CODED
        params = requests[0].url.params
        assert params["filter"] == "type:TO.W,FL.W"
        assert params["client_id"] == "cid"
        assert params["client_secret"] == "secret"

    @pytest.mark.asyncio
    async def test_no_data_is_empty(self, xweather_settings):
        transport = transport_for(
            {
                "/alerts/10001": httpx.Response(
                    200,
                    json={"success": False, "error": {"code": "warn_no_data", "description": "No data"}},
                )
            }
        )
        async with XWeatherClient(xweather_settings, transport=transport) as client:
            assert await client.fetch_alerts(ZIP_LOCATION) == []

    @pytest.mark.asyncio
    async def test_not_found_is_empty(self, xweather_settings):
        async with XWeatherClient(xweather_settings, transport=transport_for({})) as client:
            assert await client.fetch_alerts(ZIP_LOCATION) == []

    @pytest.mark.asyncio
    async def test_unsuccessful_envelope_raises(self, xweather_settings):
        transport = transport_for(
            {
                "/alerts/10001": httpx.Response(
                    200,
                    json={"success": False, "error": {"code": "invalid_client", "description": "Bad client"}},
                )
            }
        )
        async with XWeatherClient(xweather_settings, transport=transport) as client:
            with pytest.raises(ProviderError, match="Bad client"):
                await client.fetch_alerts(ZIP_LOCATION)

    @pytest.mark.asyncio
    async def test_single_alert_object_is_wrapped(self, xweather_settings):
        async with XWeatherClient(xweather_settings, transport=transport_for({})) as client:
            with patch.object(client, "_get", new_callable=AsyncMock) as mock_get:
                mock_get.return_value = {"success": True, "response": {"id": "x9"}}

                alerts = await client.fetch_alerts(ZIP_LOCATION)

        assert [a.payload["id"] for a in alerts] == ["x9"]
        assert mock_get.await_args.kwargs["timeout"] == 30.0
        assert mock_get.await_args.args[0].endswith("/alerts/10001")

    @pytest.mark.asyncio
    async def test_missing_credentials(self):
        async with XWeatherClient(RuntimeSettings(), transport=transport_for({})) as client:
            with pytest.raises(ConfigurationError, match="API credentials not configured"):
                await client.fetch_alerts(ZIP_LOCATION)

    @pytest.mark.asyncio
    async def test_fetch_conditions(self, xweather_settings):
        transport = transport_for(
            {
                "/observations/10001": httpx.Response(
                    200,
                    json={
                        "success": True,
                        "response": {
                            "ob": {
                                "tempF": 71.6,
                                "feelslikeF": 70.2,
                                "humidity": 55,
                                "windSpeedMPH": 9.4,
                                "weather": "Partly Cloudy",
                                "weatherPrimary": "Partly Cloudy",
                                "visibilityMI": 10,
                                "dateTimeISO": "2024-06-10T08:00:00-04:00",
                            }
                        },
                    },
                )
            }
        )
        async with XWeatherClient(xweather_settings, transport=transport) as client:
            result = await client.fetch_conditions(ZIP_LOCATION)

        assert result.temp == 72
        assert result.feels_like == 70
        assert result.wind_speed == 9
        assert result.visibility == 10
        assert result.description == "Partly Cloudy"
        assert result.timestamp == "2024-06-10T12:00:00.000Z"

    @pytest.mark.asyncio
    async def test_fetch_forecast(self, xweather_settings):
        requests: list[httpx.Request] = []
        transport = transport_for(
            {
                "/forecasts/10001": httpx.Response(
                    200,
                    json={
                        "success": True,
                        "response": [
                            {"periods": [{"maxTempF": 80, "minTempF": 60}], "place": {"name": "new york"}}
                        ],
                    },
                )
            },
            requests,
        )
        async with XWeatherClient(xweather_settings, transport=transport) as client:
            forecast = await client.fetch_forecast(ZIP_LOCATION)

        assert forecast.periods[0].maxTempF == 80
        assert forecast.place["name"] == "new york"
        assert requests[0].url.params["filter"] == "day"

    @pytest.mark.asyncio
    async def test_test_connection(self, xweather_settings):
        transport = transport_for(
            {"/alerts/10001": httpx.Response(200, json={"success": True, "response": []})}
        )
        async with XWeatherClient(xweather_settings, transport=transport) as client:
            result = await client.test_connection()

        assert result["success"] is True

    @pytest.mark.asyncio
    async def test_test_connection_reports_failure(self, xweather_settings):
        transport = transport_for({"/alerts/10001": httpx.Response(401)})
        async with XWeatherClient(xweather_settings, transport=transport) as client:
            result = await client.test_connection()

        assert result["success"] is False
        assert "Invalid API credentials" in result["message"]


class TestOpenWeatherMapClient:
    """Test OpenWeatherMapClient."""

    @pytest.mark.asyncio
    async def test_nws_alert_flow(self, owm_settings):
        requests: list[httpx.Request] = []
        transport = transport_for(
            {
                "/geo/1.0/zip": httpx.Response(200, json={"lat": 40.7484, "lon": -73.9967, "name": "New York"}),
                "/points/40.7484,-73.9967": httpx.Response(
                    200,
                    json={"properties": {"county": "https://api.weather.gov/zones/county/NYC061"}},
                ),
                "/alerts/active/zone/NYC061": httpx.Response(
                    200,
                    json={
                        "features": [
                            {
                                "id": "https://api.weather.gov/alerts/urn:1",
                                "properties": {"event": "Heat Advisory", "severity": "Moderate"},
                            }
                        ]
                    },
                ),
            },
            requests,
        )

        async with OpenWeatherMapClient(owm_settings, transport=transport) as client:
            alerts = await client.fetch_alerts(ZIP_LOCATION)

        assert len(alerts) == 1
        assert alerts[0].shape is ProviderShape.GOVERNMENT
        assert alerts[0].payload["id"] == "https://api.weather.gov/alerts/urn:1"
        assert alerts[0].payload["locationName"] == "New York"
        assert requests[0].url.params["zip"] == "10001,US"
        assert requests[1].headers["accept"] == "application/geo+json"

    @pytest.mark.asyncio
    async def test_nws_point_query_without_zone(self, owm_settings):
        requests: list[httpx.Request] = []
        transport = transport_for(
            {
                "/points/44.5000,-72.6000": httpx.Response(200, json={"properties": {}}),
                "/alerts/active": httpx.Response(200, json={"features": []}),
            },
            requests,
        )

        async with OpenWeatherMapClient(owm_settings, transport=transport) as client:
            alerts = await client.fetch_alerts(COORD_LOCATION)

        assert alerts == []
        assert requests[-1].url.params["point"] == "44.5000,-72.6000"

    @pytest.mark.asyncio
    async def test_onecall_alerts(self):
        settings = RuntimeSettings(api_provider="openweathermap", api_key="k", owm_alert_source="onecall")
        transport = transport_for(
            {
                "/data/3.0/onecall": httpx.Response(
                    200, json={"alerts": [{"event": "Wind Advisory", "start": 1718020800}]}
                )
            }
        )

        async with OpenWeatherMapClient(settings, transport=transport) as client:
            alerts = await client.fetch_alerts(COORD_LOCATION)

        assert [a.shape for a in alerts] == [ProviderShape.COMMERCIAL_TAG]

    @pytest.mark.asyncio
    async def test_fetch_conditions_converts_units(self, owm_settings):
        transport = transport_for(
            {
                "/data/2.5/weather": httpx.Response(
                    200,
                    json={
                        "main": {"temp": 96.8, "feels_like": 99.1, "humidity": 40, "pressure": 1012},
                        "wind": {"speed": 12.3, "deg": 180},
                        "weather": [{"main": "Clear", "description": "clear sky", "icon": "01d"}],
                        "visibility": 16090,
                        "rain": {"1h": 12.7},
                        "dt": 1718020800,
                    },
                )
            }
        )

        async with OpenWeatherMapClient(owm_settings, transport=transport) as client:
            result = await client.fetch_conditions(COORD_LOCATION)

        assert result.temp == 97
        assert result.feels_like == 99
        assert result.wind_speed == 12
        assert result.visibility == 10
        assert result.rain == pytest.approx(0.5)
        assert result.timestamp == "2024-06-10T12:00:00.000Z"

    @pytest.mark.asyncio
    async def test_geocode_failure(self, owm_settings):
        async with OpenWeatherMapClient(owm_settings, transport=transport_for({})) as client:
            with pytest.raises(ProviderError, match="Could not geocode ZIP 10001"):
                await client.fetch_conditions(ZIP_LOCATION)

    @pytest.mark.asyncio
    async def test_forecast_not_supported(self, owm_settings):
        async with OpenWeatherMapClient(owm_settings, transport=transport_for({})) as client:
            with pytest.raises(ConfigurationError, match="xweather"):
                await client.fetch_forecast(ZIP_LOCATION)

    @pytest.mark.asyncio
    async def test_missing_api_key(self):
        settings = RuntimeSettings(api_provider="openweathermap")
        async with OpenWeatherMapClient(settings, transport=transport_for({})) as client:
            with pytest.raises(ConfigurationError, match="API key not configured"):
                await client.fetch_alerts(ZIP_LOCATION)
            result = await client.test_connection()

        assert result["success"] is False


class TestCreateProvider:
    """Test create_provider()."""

    def test_selects_by_name(self, test_settings, owm_settings, xweather_settings):
        assert isinstance(create_provider(owm_settings, test_settings), OpenWeatherMapClient)
        assert isinstance(create_provider(xweather_settings, test_settings), XWeatherClient)

    def test_passes_timeouts(self, test_settings, xweather_settings):
        client = create_provider(xweather_settings, test_settings)

        assert client._timeout == test_settings.http_timeout
        assert client._alert_timeout == test_settings.alert_timeout


class TestRequestThrottle:
    """Test RequestThrottle."""

    @pytest.mark.asyncio
    async def test_first_acquire_does_not_wait(self):
        throttle = RequestThrottle(min_interval=5)

        start = time.monotonic()
        async with throttle:
            pass

        assert time.monotonic() - start < 1

    @pytest.mark.asyncio
    async def test_spaces_consecutive_slots(self):
        throttle = RequestThrottle(min_interval=0.05)

        async with throttle:
            pass
        start = time.monotonic()
        async with throttle:
            pass

        assert time.monotonic() - start >= 0.04
        assert throttle.min_interval == 0.05

    @pytest.mark.asyncio
    async def test_cancelled_wait_frees_the_slot(self):
        throttle = RequestThrottle(min_interval=10)
        async with throttle:
            pass

        waiting = asyncio.create_task(throttle.acquire())
        await asyncio.sleep(0.01)
        waiting.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiting

        throttle._min_interval = 0
        await asyncio.wait_for(throttle.acquire(), timeout=1)
        await throttle.release()
