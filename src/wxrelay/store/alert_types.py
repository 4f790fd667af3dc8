"""Alert type collection, seeded with common NWS VTEC codes."""

import uuid
from typing import Any

from wxrelay.records import AlertType, utcnow
from wxrelay.store.base import ALERT_TYPES_KEY, KeyValueStore

DEFAULT_ALERT_TYPES: list[tuple[str, str, bool]] = [
    ("Tornado Warning", "TO.W", True),
    ("Tornado Watch", "TO.A", True),
    ("Severe Thunderstorm Warning", "SV.W", True),
    ("Severe Thunderstorm Watch", "SV.A", True),
    ("Flash Flood Warning", "FF.W", True),
    ("Flash Flood Watch", "FF.A", True),
    ("Flood Warning", "FL.W", True),
    ("Winter Storm Warning", "WS.W", True),
    ("Winter Storm Watch", "WS.A", True),
    ("Blizzard Warning", "BZ.W", True),
    ("Ice Storm Warning", "IS.W", True),
    ("High Wind Warning", "HW.W", True),
    ("Hurricane Warning", "HU.W", True),
    ("Hurricane Watch", "HU.A", True),
    ("Tropical Storm Warning", "TR.W", True),
    ("Heat Advisory", "HT.Y", False),
    ("Excessive Heat Warning", "EH.W", True),
    ("Freeze Warning", "FZ.W", False),
    ("Dense Fog Advisory", "FG.Y", False),
    ("Dust Storm Warning", "DS.W", False),
]


class AlertTypeStore:
    """List/add/update/delete over the ``alert_types`` collection."""

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    def get_all(self) -> list[AlertType]:
        stored = self.store.get(ALERT_TYPES_KEY, []) or []
        if not stored:
            seeded = self._defaults()
            self._save(seeded)
            return seeded
        return [AlertType.model_validate(item) for item in stored]

    def enabled(self) -> list[AlertType]:
        return [alert_type for alert_type in self.get_all() if alert_type.enabled]

    def get(self, alert_type_id: str) -> AlertType | None:
        return next((at for at in self.get_all() if at.id == alert_type_id), None)

    def find_by_code(self, code: str) -> AlertType | None:
        code = code.upper()
        return next((at for at in self.get_all() if at.code.upper() == code), None)

    def add(self, name: str, code: str, enabled: bool = True) -> AlertType:
        now = utcnow()
        alert_type = AlertType(
            id=str(uuid.uuid4()),
            name=name,
            code=code,
            enabled=enabled,
            created_at=now,
            updated_at=now,
        )
        alert_types = self.get_all()
        alert_types.append(alert_type)
        self._save(alert_types)
        return alert_type

    def update(self, alert_type_id: str, **fields: Any) -> AlertType | None:
        alert_types = self.get_all()
        for index, alert_type in enumerate(alert_types):
            if alert_type.id == alert_type_id:
                changes = {k: v for k, v in fields.items() if k in ("name", "code", "enabled")}
                alert_types[index] = alert_type.model_copy(update={**changes, "updated_at": utcnow()})
                self._save(alert_types)
                return alert_types[index]
        return None

    def delete(self, alert_type_id: str) -> bool:
        alert_types = self.get_all()
        remaining = [at for at in alert_types if at.id != alert_type_id]
        if len(remaining) == len(alert_types):
            return False
        self._save(remaining)
        return True

    def _defaults(self) -> list[AlertType]:
        now = utcnow()
        return [
            AlertType(id=str(uuid.uuid4()), name=name, code=code, enabled=enabled, created_at=now, updated_at=now)
            for name, code, enabled in DEFAULT_ALERT_TYPES
        ]

    def _save(self, alert_types: list[AlertType]) -> None:
        self.store.set(ALERT_TYPES_KEY, [at.model_dump(mode="json") for at in alert_types])
