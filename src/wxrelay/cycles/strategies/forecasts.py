"""Daily forecast relay cycle."""

from wxrelay.api import ProviderClient
from wxrelay.config.runtime import RuntimeSettings
from wxrelay.cycles.strategies.base import BaseCycle
from wxrelay.cycles.summary import CycleState, CycleSummary
from wxrelay.delivery import WebhookRelay
from wxrelay.processing import build_forecast_record
from wxrelay.records import Location
from wxrelay.utils.exceptions import ConfigurationError


class ForecastCycle(BaseCycle):
    """Relay one daily forecast per location. Forecasts are not deduplicated."""

    kind = "forecasts"
    last_run_field = "last_forecast_run"

    def prepare(self, runtime: RuntimeSettings) -> None:
        if runtime.api_provider != "xweather":
            raise ConfigurationError("Daily forecasts require the xweather provider")
        super().prepare(runtime)

    def complete_message(self, summary: CycleSummary) -> str:
        return f"Forecast cycle complete: {summary.sent} sent, {summary.failed} failed"

    async def process_location(
        self,
        provider: ProviderClient,
        relay: WebhookRelay,
        runtime: RuntimeSettings,
        location: Location,
        summary: CycleSummary,
    ) -> None:
        self.state = CycleState.FETCHING
        forecast = await provider.fetch_forecast(location)

        self.state = CycleState.NORMALIZING
        record = build_forecast_record(forecast, location) if forecast else None
        if record is None:
            self.context.activity.add(
                "warning",
                "forecast_fetch",
                f"No forecast data for {location.label}",
                {"location_id": location.id},
            )
            return
        summary.fetched += 1

        self.state = CycleState.DEDUPING
        summary.new += 1

        self.state = CycleState.DELIVERING
        result = await relay.deliver_batch([record])
        self.record_delivery(summary, location, result)
