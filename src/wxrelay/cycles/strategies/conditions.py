"""Current-conditions relay cycle."""

from datetime import datetime, timedelta
from typing import Any

import structlog

from wxrelay.api import ProviderClient
from wxrelay.config.runtime import RuntimeSettings
from wxrelay.cycles.strategies.base import BaseCycle
from wxrelay.cycles.summary import CycleState, CycleSummary
from wxrelay.delivery import WebhookRelay
from wxrelay.processing import build_condition_record, classify
from wxrelay.records import ConditionRecord, Location, utcnow
from wxrelay.utils.timestamps import to_utc_datetime

logger = structlog.get_logger(__name__)

TEMPERATURE_CHANGE_THRESHOLD = 5


def should_send_condition(
    record: ConditionRecord,
    last: dict[str, Any] | None,
    runtime: RuntimeSettings,
    now: datetime | None = None,
) -> bool:
    """Decide whether a condition report differs enough from the last one sent."""
    if runtime.condition_always_send or not last:
        return True
    if last.get("classification") != record.classification:
        return True
    if record.is_bad_weather:
        return True

    now = now or utcnow()
    last_sent = to_utc_datetime(last.get("timestamp"))
    interval = timedelta(minutes=runtime.condition_good_weather_interval)
    if last_sent is None or now - last_sent >= interval:
        return True

    last_temp = (last.get("weather") or {}).get("temperature")
    if last_temp is None:
        return True
    return abs(record.weather["temperature"] - last_temp) >= TEMPERATURE_CHANGE_THRESHOLD


class ConditionsCycle(BaseCycle):
    """Classify current weather and relay reports that changed meaningfully."""

    kind = "conditions"
    last_run_field = "last_condition_run"

    def complete_message(self, summary: CycleSummary) -> str:
        return (
            f"Weather check complete: {summary.good_weather} good, "
            f"{summary.bad_weather} bad, {summary.sent} notifications sent"
        )

    async def process_location(
        self,
        provider: ProviderClient,
        relay: WebhookRelay,
        runtime: RuntimeSettings,
        location: Location,
        summary: CycleSummary,
    ) -> None:
        activity = self.context.activity

        self.state = CycleState.FETCHING
        reading = await provider.fetch_conditions(location)
        summary.fetched += 1

        self.state = CycleState.NORMALIZING
        classification = classify(reading)
        if classification.is_good:
            summary.good_weather += 1
        elif classification.is_bad:
            summary.bad_weather += 1

        if runtime.condition_send_only_bad and classification.is_good:
            activity.add(
                "info",
                "condition_skip",
                f"Skipped good weather for {location.label} (only bad weather mode)",
                {"location_id": location.id, "classification": classification.level},
            )
            return

        record = build_condition_record(reading, classification, location)

        self.state = CycleState.DEDUPING
        if not should_send_condition(record, self.context.snapshots.get(location.id), runtime):
            summary.duplicates_skipped += 1
            activity.add(
                "info",
                "condition_duplicate",
                f"Weather conditions unchanged for {location.label}",
                {"location_id": location.id, "classification": classification.level},
            )
            return
        summary.new += 1

        self.state = CycleState.DELIVERING
        result = await relay.deliver_batch([record])
        self.record_delivery(summary, location, result)
        if not result.sent:
            return

        self.state = CycleState.COMMITTING
        self.context.snapshots.put(location.id, record.to_payload())
        activity.add(
            "success",
            "condition_sent",
            f"Weather condition sent for {location.label}: {classification.summary}",
            {"location_id": location.id, "classification": classification.level, "temp": reading.temp},
        )
