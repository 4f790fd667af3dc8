"""Webhook delivery of canonical records."""

import asyncio
import time
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Protocol

import httpx
import structlog

from wxrelay.records import utcnow
from wxrelay.utils.exceptions import (
    ConfigurationError,
    DeliveryError,
    NetworkError,
    WXRError,
)
from wxrelay.utils.timestamps import format_timestamp

logger = structlog.get_logger(__name__)


class Deliverable(Protocol):
    """Anything that can be serialized into a webhook body."""

    def to_payload(self) -> dict[str, Any]: ...


def validate_webhook_url(url: str | None) -> tuple[bool, str]:
    """Check that a webhook URL is usable.

    Returns:
        (valid, message).
    """
    if not url:
        return False, "Webhook URL is required"
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, TypeError, ValueError):
        return False, "Invalid URL format"
    if parsed.scheme not in ("http", "https"):
        return False, "Webhook URL must use HTTP or HTTPS protocol"
    if not parsed.host:
        return False, "Invalid URL format"
    return True, "Valid URL format"


def record_id(payload: dict[str, Any]) -> str | None:
    """Identifier of an outbound record, whatever its kind."""
    return payload.get("alert_id") or payload.get("forecast_id") or payload.get("id")


@dataclass
class DeliveryOutcome:
    """Result of posting one record."""

    record_id: str | None
    success: bool
    status_code: int | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "record_id": self.record_id,
            "success": self.success,
            "status_code": self.status_code,
            "error": self.error,
        }


@dataclass
class BatchResult:
    """Per-item outcomes of a sequential batch, in input order."""

    sent: int = 0
    failed: int = 0
    outcomes: list[DeliveryOutcome] = field(default_factory=list)


def _body_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return response.text[:200]


class WebhookRelay:
    """Posts records one at a time to a single webhook URL.

    Nothing is retried. A batch keeps going past failed items and reports
    each outcome.
    """

    def __init__(
        self,
        url: str | None,
        timeout: float = 30.0,
        user_agent: str = "WeatherAlertRelay/1.0",
        item_delay: float = 0.1,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the relay.

        Args:
            url: Webhook URL.
            timeout: POST timeout in seconds.
            user_agent: User-Agent header.
            item_delay: Seconds to wait between posts in a batch.
            transport: Optional transport override for tests.
        """
        self.url = url
        self._timeout = timeout
        self._user_agent = user_agent
        self._item_delay = item_delay
        self._transport = transport

    def _check_url(self) -> str:
        valid, message = validate_webhook_url(self.url)
        if not valid:
            raise ConfigurationError(
                "Webhook URL not configured" if not self.url else f"Invalid webhook URL: {message}"
            )
        return self.url

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self._timeout,
            headers={"Content-Type": "application/json", "User-Agent": self._user_agent},
            transport=self._transport,
        )

    async def _post(self, client: httpx.AsyncClient, url: str, payload: dict[str, Any]) -> int:
        """POST one payload and return the status code.

        Raises:
            DeliveryError: On a non-2xx response.
            NetworkError: On timeouts and connection failures.
        """
        try:
            response = await client.post(url, json=payload)
        except httpx.TimeoutException as e:
            raise NetworkError("Webhook request timed out") from e
        except httpx.RequestError as e:
            raise NetworkError(f"Webhook request failed: {e}") from e

        if not response.is_success:
            message = _body_message(response) or response.reason_phrase
            raise DeliveryError(
                f"Webhook returned {response.status_code}: {message}",
                status_code=response.status_code,
                body=response.text[:500],
            )
        return response.status_code

    async def deliver(self, record: Deliverable | dict[str, Any]) -> DeliveryOutcome:
        """Post a single record.

        Raises:
            ConfigurationError: If the webhook URL is unset or invalid.
        """
        url = self._check_url()
        async with self._client() as client:
            return await self._deliver_one(client, url, record)

    async def _deliver_one(
        self,
        client: httpx.AsyncClient,
        url: str,
        record: Deliverable | dict[str, Any],
    ) -> DeliveryOutcome:
        payload = record if isinstance(record, dict) else record.to_payload()
        rid = record_id(payload)
        try:
            status = await self._post(client, url, payload)
        except (DeliveryError, NetworkError) as e:
            logger.error(
                "Webhook delivery failed",
                record_id=rid,
                status_code=getattr(e, "status_code", None),
                error=str(e),
            )
            return DeliveryOutcome(
                record_id=rid,
                success=False,
                status_code=getattr(e, "status_code", None),
                error=str(e),
            )

        logger.info("Record delivered", record_id=rid, record_event=payload.get("event"), status_code=status)
        return DeliveryOutcome(record_id=rid, success=True, status_code=status)

    async def deliver_batch(self, records: list[Any]) -> BatchResult:
        """Post records sequentially with a short delay between items.

        Raises:
            ConfigurationError: If the webhook URL is unset or invalid.
        """
        result = BatchResult()
        if not records:
            return result

        url = self._check_url()
        async with self._client() as client:
            for index, record in enumerate(records):
                if index and self._item_delay:
                    await asyncio.sleep(self._item_delay)
                outcome = await self._deliver_one(client, url, record)
                result.outcomes.append(outcome)
                if outcome.success:
                    result.sent += 1
                else:
                    result.failed += 1

        logger.info("Webhook batch complete", sent=result.sent, failed=result.failed, total=len(records))
        return result

    async def test_connection(self) -> dict[str, Any]:
        """Post a marked test payload and report the outcome."""
        if not self.url:
            return {"success": False, "message": "Webhook URL not configured"}

        now = utcnow()
        payload = {
            "alert_id": f"TEST-{int(time.time() * 1000)}",
            "event": "Test Weather Alert",
            "severity": "Test",
            "description": (
                "This is a test alert from the Weather Alert Relay. If you receive this, "
                "your webhook connection is working correctly."
            ),
            "headline": "SYSTEM TEST - Not a real alert",
            "area": "Test Area",
            "starts_at": format_timestamp(now),
            "ends_at": format_timestamp(now + timedelta(hours=1)),
            "issued_at": format_timestamp(now),
            "location": "Test Location",
            "location_id": "test",
            "source": "WeatherAlertRelay-Test",
            "is_test": True,
        }

        try:
            url = self._check_url()
            async with self._client() as client:
                status = await self._post(client, url, payload)
        except WXRError as e:
            return {
                "success": False,
                "message": f"Webhook connection failed: {e}",
                "status": getattr(e, "status_code", None),
            }
        return {
            "success": True,
            "message": "Webhook connection successful",
            "status": status,
            "test_payload": payload,
        }
