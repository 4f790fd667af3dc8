"""Shared test fixtures."""

import json
from typing import Any

import httpx
import pytest

from wxrelay.api import ProviderClient
from wxrelay.api.models import ConditionReading, ProviderShape, RawAlert, RawForecast
from wxrelay.config.settings import Settings
from wxrelay.cycles import RelayContext
from wxrelay.records import Location
from wxrelay.store import InMemoryKeyValueStore

WEBHOOK_URL = "https://hooks.example.com/weather"


@pytest.fixture
def test_settings(monkeypatch) -> Settings:
    """Settings with in-memory SQLite and no pacing delays."""
    monkeypatch.delenv("WXR_DATABASE_URL", raising=False)
    monkeypatch.delenv("WXR_DEFAULT_WEBHOOK_URL", raising=False)

    return Settings(
        _env_file=None,
        database_url="sqlite:///:memory:",
        location_delay=0,
        webhook_item_delay=0,
        log_level="DEBUG",
    )


@pytest.fixture
def memory_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


class FakeProvider(ProviderClient):
    """Provider that serves canned data keyed by location id."""

    name = "fake"

    def __init__(self, settings) -> None:
        super().__init__(settings)
        self.alerts: dict[str, list[RawAlert]] = {}
        self.readings: dict[str, ConditionReading] = {}
        self.forecasts: dict[str, RawForecast] = {}
        self.errors: dict[str, Exception] = {}
        self.calls: list[tuple[str, str]] = []

    def _check(self, kind: str, location: Location) -> None:
        self.calls.append((kind, location.id))
        if location.id in self.errors:
            raise self.errors[location.id]

    async def fetch_alerts(self, location, alert_types=None):
        self._check("alerts", location)
        return list(self.alerts.get(location.id, []))

    async def fetch_conditions(self, location):
        self._check("conditions", location)
        return self.readings[location.id]

    async def fetch_forecast(self, location):
        self._check("forecast", location)
        return self.forecasts.get(location.id)

    async def test_connection(self):
        return {"success": True, "message": "API connection successful", "provider": "fake"}


class WebhookRecorder:
    """MockTransport handler that records posted bodies.

    Bodies whose record id is in ``fail_ids`` get a 500 response.
    """

    def __init__(self) -> None:
        self.bodies: list[dict[str, Any]] = []
        self.fail_ids: set[str] = set()
        self.status_code = 200

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.bodies.append(body)
        rid = body.get("alert_id") or body.get("forecast_id") or body.get("id")
        if rid in self.fail_ids:
            return httpx.Response(500, json={"message": "boom"})
        return httpx.Response(self.status_code, json={"ok": True})

    @property
    def ids(self) -> list[str]:
        return [b.get("alert_id") or b.get("forecast_id") or b.get("id") for b in self.bodies]


@pytest.fixture
def webhook() -> WebhookRecorder:
    return WebhookRecorder()


@pytest.fixture
def provider() -> FakeProvider:
    from wxrelay.config.runtime import RuntimeSettings

    return FakeProvider(RuntimeSettings())


@pytest.fixture
def context(test_settings, memory_store, provider, webhook) -> RelayContext:
    """Context with credentials and webhook configured, backed by fakes."""
    ctx = RelayContext(
        test_settings,
        memory_store,
        provider_factory=lambda runtime: provider,
        transport=httpx.MockTransport(webhook),
    )
    ctx.settings_store.merge(
        {
            "api_provider": "xweather",
            "api_client_id": "client-id",
            "api_client_secret": "client-secret",
            "webhook_url": WEBHOOK_URL,
        }
    )
    return ctx


@pytest.fixture
def home(context) -> Location:
    return context.locations.add(name="Home", zip_code="10001")


@pytest.fixture
def cabin(context) -> Location:
    return context.locations.add(name="Cabin", latitude=44.5, longitude=-72.6)


def vendor_alert(alert_id: str, name: str = "Tornado Warning", significance: str = "W") -> RawAlert:
    """Vendor-coded raw alert with an explicit id."""
    return RawAlert(
        shape=ProviderShape.VENDOR_CODED,
        source="XWeather",
        payload={
            "id": alert_id,
            "details": {
                "type": "TO.W",
                "name": name,
                "significance": significance,
                "body": "Take shelter now.",
            },
            "timestamps": {"issued": 1718000000, "begins": 1718000000, "expires": 1718003600},
        },
    )


def reading(**overrides: Any) -> ConditionReading:
    """Pleasant reading unless overridden."""
    values: dict[str, Any] = {
        "temp": 72,
        "feels_like": 72,
        "humidity": 45,
        "wind_speed": 5,
        "description": "clear sky",
    }
    values.update(overrides)
    return ConditionReading(**values)
