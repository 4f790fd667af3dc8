"""Alert relay cycle."""

import structlog

from wxrelay.api import ProviderClient
from wxrelay.config.runtime import RuntimeSettings
from wxrelay.cycles.context import RelayContext
from wxrelay.cycles.strategies.base import BaseCycle
from wxrelay.cycles.summary import CycleState, CycleSummary
from wxrelay.delivery import WebhookRelay
from wxrelay.processing import normalize_all
from wxrelay.records import AlertType, Location

logger = structlog.get_logger(__name__)


class AlertCycle(BaseCycle):
    """Relay new alerts; ids are committed to the ledger only once delivered."""

    kind = "alerts"
    last_run_field = "last_scheduler_run"

    def __init__(self, context: RelayContext) -> None:
        super().__init__(context)
        self._alert_types: list[AlertType] = []

    def prepare(self, runtime: RuntimeSettings) -> None:
        super().prepare(runtime)
        self._alert_types = self.context.alert_types.enabled()

    async def process_location(
        self,
        provider: ProviderClient,
        relay: WebhookRelay,
        runtime: RuntimeSettings,
        location: Location,
        summary: CycleSummary,
    ) -> None:
        ledger = self.context.ledger

        self.state = CycleState.FETCHING
        raw_alerts = await provider.fetch_alerts(location, self._alert_types)

        self.state = CycleState.NORMALIZING
        alerts = normalize_all(raw_alerts, location)
        summary.fetched += len(alerts)

        self.context.activity.add(
            "success",
            "fetch_alerts",
            f"Fetched {len(alerts)} alerts for {location.label}",
            {"location_id": location.id, "alert_count": len(alerts)},
        )
        if not alerts:
            return

        self.state = CycleState.DEDUPING
        new_alerts = ledger.filter_new(location.id, alerts)
        summary.duplicates_skipped += len(alerts) - len(new_alerts)
        summary.new += len(new_alerts)
        if not new_alerts:
            logger.debug("No new alerts", location_id=location.id)
            return

        self.state = CycleState.DELIVERING
        result = await relay.deliver_batch(new_alerts)
        self.record_delivery(summary, location, result)

        self.state = CycleState.COMMITTING
        delivered = [
            alert for alert, outcome in zip(new_alerts, result.outcomes) if outcome.success
        ]
        ledger.mark_sent(location.id, delivered)

        if result.failed:
            self.context.activity.add(
                "warning",
                "webhook_batch",
                f"Sent {result.sent} alerts for {location.label} ({result.failed} failed)",
                {"location_id": location.id, "errors": [o.error for o in result.outcomes if o.error]},
            )
