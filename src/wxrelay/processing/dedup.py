"""Per-location ledger of alert ids already delivered to the webhook."""

from typing import Any

import structlog

from wxrelay.records import Alert, utcnow
from wxrelay.store.base import LAST_ALERTS_KEY, LAST_CONDITIONS_KEY, KeyValueStore

logger = structlog.get_logger(__name__)

MAX_IDS_PER_LOCATION = 100


class DedupLedger:
    """Bounded, ordered history of delivered alert ids per location.

    The ledger is stored as one mapping of
    ``{location_id: {"alert_ids": [...], "updated_at": iso}}`` and each
    location entry is replaced wholesale on update. Ids are committed only
    after delivery succeeds, so a crash in between can re-deliver.
    """

    def __init__(self, store: KeyValueStore, max_ids: int = MAX_IDS_PER_LOCATION) -> None:
        self.store = store
        self.max_ids = max_ids

    def _ledger(self) -> dict[str, Any]:
        return self.store.get(LAST_ALERTS_KEY, {}) or {}

    def sent_ids(self, location_id: str) -> list[str]:
        """Delivered ids for a location, oldest first."""
        entry = self._ledger().get(location_id) or {}
        return list(entry.get("alert_ids") or [])

    def filter_new(self, location_id: str, alerts: list[Alert]) -> list[Alert]:
        """Return the alerts whose ids are not in the ledger, in input order."""
        if not alerts:
            return []
        seen = set(self.sent_ids(location_id))
        return [alert for alert in alerts if alert.alert_id not in seen]

    def is_new(self, location_id: str, alert_id: str) -> bool:
        return alert_id not in self.sent_ids(location_id)

    def mark_sent(self, location_id: str, alerts: list[Alert]) -> None:
        """Record delivered alerts, keeping only the most recent ``max_ids``.

        Ids already present are not appended again, so repeating a call
        leaves the ledger unchanged.
        """
        if not alerts:
            return

        ids = self.sent_ids(location_id)
        known = set(ids)
        added = []
        for alert in alerts:
            if alert.alert_id not in known:
                known.add(alert.alert_id)
                added.append(alert.alert_id)

        if not added:
            return

        ledger = self._ledger()
        ledger[location_id] = {
            "alert_ids": (ids + added)[-self.max_ids:],
            "updated_at": utcnow().isoformat(),
        }
        self.store.set(LAST_ALERTS_KEY, ledger)
        logger.info("Marked alerts as sent", location_id=location_id, alert_ids=added)

    def clear_for_location(self, location_id: str) -> bool:
        """Drop a location's history; returns True if it had one."""
        ledger = self._ledger()
        if location_id not in ledger:
            return False
        del ledger[location_id]
        self.store.set(LAST_ALERTS_KEY, ledger)
        logger.info("Cleared stored alert ids", location_id=location_id)
        return True

    def clear_all(self) -> None:
        self.store.set(LAST_ALERTS_KEY, {})
        logger.warning("All stored alert ids cleared")

    def stats(self) -> dict[str, Any]:
        """Counts of stored ids, overall and per location."""
        ledger = self._ledger()
        per_location = {
            location_id: len((entry or {}).get("alert_ids") or [])
            for location_id, entry in ledger.items()
        }
        return {
            "locations_tracked": len(ledger),
            "total_stored_ids": sum(per_location.values()),
            "per_location": per_location,
        }


class ConditionSnapshots:
    """Last delivered condition record per location."""

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    def get(self, location_id: str) -> dict[str, Any] | None:
        return (self.store.get(LAST_CONDITIONS_KEY, {}) or {}).get(location_id)

    def put(self, location_id: str, payload: dict[str, Any]) -> None:
        snapshots = self.store.get(LAST_CONDITIONS_KEY, {}) or {}
        snapshots[location_id] = payload
        self.store.set(LAST_CONDITIONS_KEY, snapshots)

    def clear_for_location(self, location_id: str) -> bool:
        snapshots = self.store.get(LAST_CONDITIONS_KEY, {}) or {}
        if location_id not in snapshots:
            return False
        del snapshots[location_id]
        self.store.set(LAST_CONDITIONS_KEY, snapshots)
        return True
