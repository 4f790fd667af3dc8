"""Relay orchestrator to coordinate cycles and manual operations."""

from typing import Any

import structlog

from wxrelay.cycles.context import RelayContext
from wxrelay.cycles.strategies import AlertCycle, ConditionsCycle, ForecastCycle
from wxrelay.cycles.summary import CycleSummary
from wxrelay.delivery import validate_webhook_url
from wxrelay.processing import create_test_alert
from wxrelay.utils.exceptions import InputValidationError

logger = structlog.get_logger(__name__)


class RelayOrchestrator:
    """Entry point shared by scheduled triggers, manual runs and the CLI."""

    def __init__(self, context: RelayContext) -> None:
        """Initialize the orchestrator.

        Args:
            context: Shared stores and client factories.
        """
        self.context = context
        self.alerts = AlertCycle(context)
        self.conditions = ConditionsCycle(context)
        self.forecasts = ForecastCycle(context)

    async def run_alerts(self) -> CycleSummary:
        return await self.alerts.run()

    async def run_conditions(self) -> CycleSummary:
        return await self.conditions.run()

    async def run_forecasts(self) -> CycleSummary:
        return await self.forecasts.run()

    async def run_scheduled(self) -> list[CycleSummary]:
        """Interval job: alerts, then conditions when they are enabled."""
        summaries = [await self.run_alerts()]
        if self.context.settings_store.get().conditions_enabled:
            summaries.append(await self.run_conditions())
        return summaries

    async def process_location(self, location_id: str) -> CycleSummary:
        """Run the alert cycle for one location without stamping the last run.

        Raises:
            InputValidationError: If the location does not exist.
        """
        location = self.context.locations.get(location_id)
        if location is None:
            raise InputValidationError(f"Location not found: {location_id}")
        return await self.alerts.run(locations=[location], record_run=False)

    async def send_test_alert(self, location_id: str | None = None) -> dict[str, Any]:
        """Deliver a marked test alert, bypassing the dedup ledger.

        Raises:
            InputValidationError: If ``location_id`` is given but unknown.
            ConfigurationError: If the webhook URL is unset or invalid.
        """
        location = None
        if location_id:
            location = self.context.locations.get(location_id)
            if location is None:
                raise InputValidationError(f"Location not found: {location_id}")

        runtime = self.context.settings_store.get()
        alert = create_test_alert(location)
        outcome = await self.context.relay_factory(runtime).deliver(alert)

        if outcome.success:
            self.context.activity.add(
                "success",
                "test_alert",
                "Test alert sent successfully",
                {"alert_id": alert.alert_id, "location_id": alert.location_id},
            )
        else:
            self.context.activity.add(
                "error",
                "test_alert",
                f"Test alert failed: {outcome.error}",
                {"alert_id": alert.alert_id, "status_code": outcome.status_code},
            )
        return {"success": outcome.success, "alert": alert.to_payload(), "outcome": outcome.to_dict()}

    async def check_api(self) -> dict[str, Any]:
        """Test provider credentials with one cheap request."""
        runtime = self.context.settings_store.get()
        async with self.context.provider_factory(runtime) as provider:
            result = await provider.test_connection()
        self.context.activity.add(
            "success" if result["success"] else "error",
            "api_test",
            result["message"],
        )
        return result

    async def test_webhook(self) -> dict[str, Any]:
        """Post a test payload to the configured webhook."""
        runtime = self.context.settings_store.get()
        result = await self.context.relay_factory(runtime).test_connection()
        self.context.activity.add(
            "success" if result["success"] else "error",
            "webhook_test",
            result["message"],
            {"status": result.get("status")},
        )
        return result

    def delete_location(self, location_id: str) -> bool:
        """Delete a location together with its ledger entry and condition snapshot."""
        location = self.context.locations.get(location_id)
        if location is None:
            return False

        self.context.locations.delete(location_id)
        self.context.ledger.clear_for_location(location_id)
        self.context.snapshots.clear_for_location(location_id)
        self.context.activity.add(
            "info",
            "location_deleted",
            f"Deleted location {location.label}",
            {"location_id": location_id},
        )
        return True

    def system_status(self) -> dict[str, Any]:
        """Snapshot of configuration, collections and cycle activity."""
        runtime = self.context.settings_store.get()
        locations = self.context.locations.get_all()
        alert_types = self.context.alert_types.get_all()
        webhook_valid, _ = validate_webhook_url(runtime.webhook_url)

        return {
            "api_provider": runtime.api_provider,
            "api_configured": runtime.api_configured,
            "webhook_configured": webhook_valid,
            "locations": {
                "total": len(locations),
                "enabled": sum(1 for location in locations if location.enabled),
            },
            "alert_types": {
                "total": len(alert_types),
                "enabled": sum(1 for alert_type in alert_types if alert_type.enabled),
            },
            "dedup": self.context.ledger.stats(),
            "last_runs": {
                "alerts": runtime.last_scheduler_run,
                "conditions": runtime.last_condition_run,
                "forecasts": runtime.last_forecast_run,
            },
            "in_flight": {
                cycle.kind: cycle.in_flight for cycle in (self.alerts, self.conditions, self.forecasts)
            },
        }

