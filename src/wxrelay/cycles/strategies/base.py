"""Base relay cycle."""

from abc import ABC, abstractmethod

import structlog

from wxrelay.api import ProviderClient, RequestThrottle
from wxrelay.config.logging import OperationTimer
from wxrelay.config.runtime import RuntimeSettings
from wxrelay.cycles.context import RelayContext
from wxrelay.cycles.summary import SYSTEM_LOCATION, CycleState, CycleSummary
from wxrelay.delivery import BatchResult, WebhookRelay, validate_webhook_url
from wxrelay.records import Location
from wxrelay.utils.exceptions import ConfigurationError

logger = structlog.get_logger(__name__)


class BaseCycle(ABC):
    """Fetch, normalize, dedupe, deliver and commit across locations.

    Subclasses implement :meth:`process_location`. The base class owns the
    in-flight guard, per-location error isolation, throttling between
    locations and summary bookkeeping.
    """

    kind: str
    last_run_field: str

    def __init__(self, context: RelayContext) -> None:
        """Initialize the cycle.

        Args:
            context: Shared stores and client factories.
        """
        self.context = context
        self.state = CycleState.IDLE
        self._in_flight = False

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def prepare(self, runtime: RuntimeSettings) -> None:
        """Check configuration before any location is fetched.

        Raises:
            ConfigurationError: If the provider or webhook is not usable.
        """
        if not runtime.api_configured:
            raise ConfigurationError("API credentials not configured")
        valid, message = validate_webhook_url(runtime.webhook_url)
        if not valid:
            raise ConfigurationError(f"Webhook not configured: {message}")

    @abstractmethod
    async def process_location(
        self,
        provider: ProviderClient,
        relay: WebhookRelay,
        runtime: RuntimeSettings,
        location: Location,
        summary: CycleSummary,
    ) -> None:
        """Run the cycle for one location, updating ``summary`` in place."""

    @staticmethod
    def record_delivery(summary: CycleSummary, location: Location, result: BatchResult) -> None:
        """Fold a batch result into the summary; each failed record is an error."""
        summary.sent += result.sent
        summary.failed += result.failed
        for outcome in result.outcomes:
            if not outcome.success:
                summary.add_error(location.label, outcome.error or "Webhook delivery failed")

    def complete_message(self, summary: CycleSummary) -> str:
        return (
            f"{self.kind.capitalize()} cycle complete: {summary.new} new, "
            f"{summary.sent} sent, {summary.duplicates_skipped} duplicates skipped"
        )

    async def run(
        self,
        locations: list[Location] | None = None,
        record_run: bool = True,
    ) -> CycleSummary:
        """Run one cycle.

        Args:
            locations: Locations to process; defaults to every enabled location.
            record_run: Whether to stamp the last-run time in settings.

        Returns:
            The finalized summary. If a cycle of this kind is already running
            the summary is returned immediately with ``skipped`` set.
        """
        if self._in_flight:
            logger.warning("Cycle already running, skipping", kind=self.kind)
            return CycleSummary(kind=self.kind, skipped=True).finish()

        self._in_flight = True
        summary = CycleSummary(kind=self.kind)
        try:
            with OperationTimer(f"{self.kind} cycle", logger, kind=self.kind):
                await self._run_locations(locations, summary)
        finally:
            self.state = CycleState.IDLE
            summary.finish()
            self._in_flight = False
            self._record(summary, record_run)
        return summary

    async def _run_locations(self, locations: list[Location] | None, summary: CycleSummary) -> None:
        try:
            self.context.activity.add("info", f"{self.kind}_cycle_start", f"Starting {self.kind} cycle")
            runtime = self.context.settings_store.get()
            if locations is None:
                locations = self.context.locations.enabled()
            self.prepare(runtime)
        except Exception as e:
            logger.error("Cycle aborted", kind=self.kind, error=str(e))
            summary.add_error(SYSTEM_LOCATION, str(e))
            return

        if not locations:
            self.context.activity.add(
                "warning", f"{self.kind}_cycle", "No enabled locations configured"
            )
            return

        relay = self.context.relay_factory(runtime)
        throttle = RequestThrottle(self.context.settings.location_delay)
        try:
            async with self.context.provider_factory(runtime) as provider:
                for location in locations:
                    async with throttle:
                        await self._run_one(provider, relay, runtime, location, summary)
        except Exception as e:
            logger.error("Cycle aborted", kind=self.kind, error=str(e))
            summary.add_error(SYSTEM_LOCATION, str(e))

    async def _run_one(
        self,
        provider: ProviderClient,
        relay: WebhookRelay,
        runtime: RuntimeSettings,
        location: Location,
        summary: CycleSummary,
    ) -> None:
        summary.locations_processed += 1
        try:
            await self.process_location(provider, relay, runtime, location, summary)
        except Exception as e:
            logger.error(
                "Location failed",
                kind=self.kind,
                location_id=location.id,
                state=self.state.value,
                error=str(e),
            )
            summary.add_error(location.label, str(e))
            self.context.activity.add(
                "error",
                f"{self.kind}_location_error",
                f"Error processing {location.label}: {e}",
                {"location_id": location.id, "error": str(e)},
            )

    def _record(self, summary: CycleSummary, record_run: bool) -> None:
        try:
            if record_run:
                self.context.settings_store.merge({self.last_run_field: summary.finished_at})
            self.context.activity.add(
                "warning" if summary.errors else "success",
                f"{self.kind}_cycle_complete",
                self.complete_message(summary),
                summary.to_dict(),
            )
        except Exception as e:
            logger.error("Failed to record cycle outcome", kind=self.kind, error=str(e))
