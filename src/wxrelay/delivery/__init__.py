"""Outbound webhook delivery."""

from wxrelay.delivery.webhook import (
    BatchResult,
    DeliveryOutcome,
    WebhookRelay,
    validate_webhook_url,
)

__all__ = ["BatchResult", "DeliveryOutcome", "WebhookRelay", "validate_webhook_url"]
