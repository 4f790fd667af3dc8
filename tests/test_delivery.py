"""Tests for webhook delivery."""

import json
import logging

import httpx
import pytest
import structlog
from conftest import WEBHOOK_URL, WebhookRecorder

from wxrelay.config.logging import configure_logging
from wxrelay.delivery import WebhookRelay, validate_webhook_url
from wxrelay.records import Alert
from wxrelay.utils.exceptions import ConfigurationError


def make_relay(handler, url: str | None = WEBHOOK_URL) -> WebhookRelay:
    return WebhookRelay(url, item_delay=0, transport=httpx.MockTransport(handler))


class TestValidateWebhookUrl:
    """Test validate_webhook_url()."""

    @pytest.mark.parametrize(
        "url",
        ["https://example.com/hook", "http://localhost:5678/webhook/abc"],
    )
    def test_valid(self, url):
        assert validate_webhook_url(url) == (True, "Valid URL format")

    @pytest.mark.parametrize("url", ["not-a-url", "ftp://example.com/hook", "", None, "https://"])
    def test_invalid(self, url):
        valid, message = validate_webhook_url(url)

        assert valid is False
        assert message


class TestWebhookRelay:
    """Test WebhookRelay."""

    @pytest.mark.asyncio
    async def test_deliver_posts_flat_json(self):
        recorder = WebhookRecorder()
        relay = make_relay(recorder)
        alert = Alert(alert_id="a1", event="Tornado Warning", location_id="loc-1")

        outcome = await relay.deliver(alert)

        assert outcome.success is True
        assert outcome.status_code == 200
        assert outcome.record_id == "a1"
        assert recorder.bodies[0]["event"] == "Tornado Warning"
        assert recorder.bodies[0]["severity"] == "Unknown"

    @pytest.mark.asyncio
    async def test_sends_user_agent_and_json_headers(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen.update(request.headers)
            return httpx.Response(204)

        relay = WebhookRelay(WEBHOOK_URL, user_agent="Relay/Test", transport=httpx.MockTransport(handler))
        outcome = await relay.deliver({"id": "x"})

        assert outcome.success is True
        assert seen["user-agent"] == "Relay/Test"
        assert seen["content-type"] == "application/json"

    @pytest.mark.asyncio
    async def test_batch_continues_past_failure(self):
        recorder = WebhookRecorder()
        recorder.fail_ids = {"a2"}
        relay = make_relay(recorder)

        result = await relay.deliver_batch(
            [Alert(alert_id=i, location_id="loc-1") for i in ("a1", "a2", "a3")]
        )

        assert result.sent == 2
        assert result.failed == 1
        assert [o.success for o in result.outcomes] == [True, False, True]
        assert result.outcomes[1].status_code == 500
        assert "boom" in result.outcomes[1].error
        assert recorder.ids == ["a1", "a2", "a3"]

    @pytest.mark.asyncio
    async def test_network_error_is_an_outcome(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        outcome = await make_relay(handler).deliver({"alert_id": "a1"})

        assert outcome.success is False
        assert outcome.status_code is None
        assert "refused" in outcome.error

    @pytest.mark.asyncio
    async def test_empty_batch_posts_nothing(self):
        recorder = WebhookRecorder()

        result = await make_relay(recorder).deliver_batch([])

        assert result.sent == 0
        assert recorder.bodies == []

    @pytest.mark.asyncio
    async def test_missing_url_raises(self):
        with pytest.raises(ConfigurationError, match="Webhook URL not configured"):
            await make_relay(WebhookRecorder(), url="").deliver({"id": "x"})

    @pytest.mark.asyncio
    async def test_invalid_url_raises(self):
        with pytest.raises(ConfigurationError, match="Invalid webhook URL"):
            await make_relay(WebhookRecorder(), url="not-a-url").deliver_batch([{"id": "x"}])

    @pytest.mark.asyncio
    async def test_connection_success(self):
        recorder = WebhookRecorder()

        result = await make_relay(recorder).test_connection()

        assert result["success"] is True
        assert result["status"] == 200
        assert recorder.bodies[0]["is_test"] is True
        assert recorder.bodies[0]["alert_id"].startswith("TEST-")

    @pytest.mark.asyncio
    async def test_connection_failure(self):
        recorder = WebhookRecorder()
        recorder.status_code = 404

        result = await make_relay(recorder).test_connection()

        assert result["success"] is False
        assert result["status"] == 404

    @pytest.mark.asyncio
    async def test_connection_without_url(self):
        result = await make_relay(WebhookRecorder(), url=None).test_connection()

        assert result == {"success": False, "message": "Webhook URL not configured"}


@pytest.fixture
def production_logging(test_settings):
    """Route structlog through the same configuration the CLI installs."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    configure_logging(test_settings)
    yield
    structlog.reset_defaults()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestDeliveryLogging:
    """Test delivery under the configured structlog pipeline."""

    @pytest.mark.asyncio
    async def test_delivered_record_is_logged(self, production_logging, capsys):
        recorder = WebhookRecorder()
        relay = make_relay(recorder)

        result = await relay.deliver_batch(
            [Alert(alert_id="a1", event="Tornado Warning", location_id="loc-1")]
        )

        assert (result.sent, result.failed) == (1, 0)
        events = [json.loads(line) for line in capsys.readouterr().out.splitlines() if line.startswith("{")]
        delivered = next(e for e in events if e["event"] == "Record delivered")
        assert delivered["record_id"] == "a1"
        assert delivered["record_event"] == "Tornado Warning"
