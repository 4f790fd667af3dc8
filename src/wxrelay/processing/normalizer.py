"""Convert provider-specific raw alerts into canonical :class:`Alert` records."""

import hashlib
import time
from datetime import timedelta
from typing import Any

import structlog

from wxrelay.api.models import ProviderShape, RawAlert
from wxrelay.records import Alert, Location, Severity, utcnow
from wxrelay.utils.timestamps import format_timestamp

logger = structlog.get_logger(__name__)

# Substring in event name -> severity, checked in order
_EVENT_KEYWORDS = [
    ("warning", Severity.WARNING),
    ("watch", Severity.WATCH),
    ("advisory", Severity.ADVISORY),
    ("statement", Severity.STATEMENT),
    ("emergency", Severity.EXTREME),
]

# Substring in joined tags -> severity, highest priority first
_TAG_KEYWORDS = [
    ("extreme", Severity.EXTREME),
    ("severe", Severity.SEVERE),
    ("warning", Severity.WARNING),
    ("watch", Severity.WATCH),
    ("advisory", Severity.ADVISORY),
    ("moderate", Severity.MODERATE),
]

# VTEC significance letters
_SIGNIFICANCE = {
    "w": Severity.WARNING,
    "a": Severity.WATCH,
    "y": Severity.ADVISORY,
    "s": Severity.STATEMENT,
    "f": Severity.FORECAST,
    "o": Severity.OUTLOOK,
    "n": Severity.SYNOPSIS,
}

ALERT_ID_LENGTH = 24


def _parse_severity(value: Any) -> Severity:
    """Case-insensitive match against the severity vocabulary."""
    text = str(value).strip().lower()
    for severity in Severity:
        if severity.value.lower() == text:
            return severity
    return Severity.UNKNOWN


def government_severity(severity: Any, event: str | None) -> Severity:
    """Use the supplied level when known, else infer from the event name."""
    if severity:
        parsed = _parse_severity(severity)
        if parsed is not Severity.UNKNOWN:
            return parsed
    if not event:
        return Severity.UNKNOWN
    event_lower = event.lower()
    for keyword, mapped in _EVENT_KEYWORDS:
        if keyword in event_lower:
            return mapped
    return Severity.UNKNOWN


def tag_severity(tags: Any) -> Severity:
    """Highest-priority keyword found in a list of category tags."""
    if not isinstance(tags, list):
        return Severity.UNKNOWN
    joined = " ".join(str(tag) for tag in tags).lower()
    for keyword, mapped in _TAG_KEYWORDS:
        if keyword in joined:
            return mapped
    return Severity.UNKNOWN


def vendor_severity(value: Any) -> Severity:
    """Map a significance letter, numeric priority or severity word.

    Priority bands: 1-2 Extreme, 3-4 Severe, 5-6 Moderate, 7-8 Minor.
    """
    if value is None or value == "":
        return Severity.UNKNOWN

    text = str(value).strip().lower()
    if text in _SIGNIFICANCE:
        return _SIGNIFICANCE[text]

    try:
        priority = int(float(text))
    except (ValueError, OverflowError):
        return _parse_severity(text)

    if priority <= 2:
        return Severity.EXTREME
    if priority <= 4:
        return Severity.SEVERE
    if priority <= 6:
        return Severity.MODERATE
    if priority <= 8:
        return Severity.MINOR
    return Severity.UNKNOWN


def generate_alert_id(alert_type: Any, timestamp: Any, zone: Any) -> str:
    """Deterministic identifier for alerts that arrive without one."""
    if isinstance(zone, (list, tuple)):
        zone = ",".join(str(part) for part in zone)
    key = "|".join(str(part) if part is not None else "" for part in (alert_type or "unknown", timestamp, zone))
    return hashlib.sha256(key.encode("utf-8")).hexdigest()[:ALERT_ID_LENGTH]


def format_location_name(location: Location | None) -> str:
    """Display name such as ``Home ZIP: 10001 (40.7, -74.0)``."""
    if location is None:
        return "Unknown Location"
    parts = []
    if location.name:
        parts.append(location.name)
    if location.zip_code:
        parts.append(f"ZIP: {location.zip_code}")
    if location.has_coordinates:
        parts.append(f"({location.latitude}, {location.longitude})")
    return " ".join(parts) or "Unknown Location"


def format_area(zones: Any, location: Location) -> str:
    """Join a zone list into text, falling back to the location."""
    if isinstance(zones, list) and zones:
        names = []
        for zone in zones:
            if isinstance(zone, dict):
                zone = zone.get("name") or zone.get("county") or zone.get("zone") or ""
            names.append(str(zone))
        return ", ".join(name for name in names if name)
    if isinstance(zones, str) and zones:
        return zones
    return location.name or location.zip_code or "Unknown Area"


def _from_government(payload: dict[str, Any], location: Location, source: str) -> Alert:
    event = payload.get("event") or ""
    issued = payload.get("sent") or payload.get("effective")
    return Alert(
        alert_id=payload.get("id") or generate_alert_id(event, issued, payload.get("areaDesc")),
        event=event or "Weather Alert",
        severity=government_severity(payload.get("severity"), event),
        description=payload.get("description") or "",
        headline=payload.get("headline") or event,
        area=payload.get("areaDesc") or format_location_name(location),
        starts_at=format_timestamp(payload.get("onset") or payload.get("effective")),
        ends_at=format_timestamp(payload.get("expires") or payload.get("ends")),
        issued_at=format_timestamp(issued),
        location=payload.get("locationName") or format_location_name(location),
        location_id=location.id,
        source=source or "National Weather Service",
        raw_type=event,
        certainty=payload.get("certainty") or "",
        urgency=payload.get("urgency") or "",
        instruction=payload.get("instruction") or "",
        sender=payload.get("senderName") or "NWS",
    )


def _from_commercial_tag(payload: dict[str, Any], location: Location, source: str) -> Alert:
    event = payload.get("event") or ""
    starts_at = format_timestamp(payload.get("start"))
    tags = payload.get("tags") if isinstance(payload.get("tags"), list) else []
    return Alert(
        alert_id=generate_alert_id(event, payload.get("start"), payload.get("sender_name")),
        event=event or "Weather Alert",
        severity=tag_severity(tags),
        description=payload.get("description") or "",
        headline=event,
        area=payload.get("sender_name") or format_location_name(location),
        starts_at=starts_at,
        ends_at=format_timestamp(payload.get("end")),
        issued_at=starts_at,
        location=format_location_name(location),
        location_id=location.id,
        source=source or "OpenWeatherMap",
        raw_type=event,
        sender=payload.get("sender_name") or "",
        tags=[str(tag) for tag in tags],
    )


def _from_vendor_coded(payload: dict[str, Any], location: Location, source: str) -> Alert:
    details = payload.get("details") or payload
    timestamps = payload.get("timestamps") or {}
    zone = details.get("zone") or details.get("areas") or []
    alert_type = details.get("type") or ""
    return Alert(
        alert_id=(
            details.get("id")
            or payload.get("id")
            or generate_alert_id(alert_type, details.get("timestamp") or timestamps.get("issued"), zone)
        ),
        event=details.get("name") or alert_type or "Weather Alert",
        severity=vendor_severity(details.get("significance") or details.get("priority")),
        description=details.get("body") or details.get("desc") or "",
        headline=details.get("name") or "",
        area=format_area(zone, location),
        starts_at=format_timestamp(
            timestamps.get("begins") or details.get("timestamp") or details.get("issued")
        ),
        ends_at=format_timestamp(timestamps.get("expires") or details.get("expires")),
        issued_at=format_timestamp(timestamps.get("issued") or details.get("issued")),
        location=format_location_name(location),
        location_id=location.id,
        source=source or "XWeather",
        raw_type=alert_type,
        certainty=details.get("certainty") or "",
        urgency=details.get("urgency") or "",
    )


_DISPATCH = {
    ProviderShape.GOVERNMENT: _from_government,
    ProviderShape.COMMERCIAL_TAG: _from_commercial_tag,
    ProviderShape.VENDOR_CODED: _from_vendor_coded,
}


def normalize(raw: RawAlert | Alert | dict[str, Any], location: Location) -> Alert:
    """Convert one raw alert to the canonical record.

    Canonical input (an :class:`Alert`, or a dict already carrying
    ``alert_id``) passes through with its identifier unchanged.

    Args:
        raw: Shape-tagged provider payload or an existing canonical alert.
        location: Location the alert was fetched for.

    Returns:
        The canonical alert.
    """
    if isinstance(raw, Alert):
        return raw.model_copy(deep=True)
    if isinstance(raw, dict):
        if "alert_id" in raw:
            return Alert.model_validate({"location_id": location.id, **raw})
        raise ValueError("Raw alert dict must be shape-tagged; wrap it in RawAlert")
    return _DISPATCH[raw.shape](raw.payload, location, raw.source)


def normalize_all(raw_alerts: list[RawAlert], location: Location) -> list[Alert]:
    """Normalize a batch, dropping entries that cannot be converted."""
    alerts = []
    for raw in raw_alerts:
        try:
            alerts.append(normalize(raw, location))
        except (ValueError, TypeError, AttributeError, OverflowError) as e:
            logger.warning(
                "Skipping malformed alert",
                location_id=location.id,
                shape=raw.shape.value,
                error=str(e),
            )
    return alerts


def create_test_alert(location: Location | None = None) -> Alert:
    """Build a clearly marked test alert for verifying webhook delivery."""
    now = utcnow()
    place = format_location_name(location) if location else "Test Location"
    return Alert(
        alert_id=f"TEST-{int(time.time() * 1000)}",
        event="Test Weather Alert",
        severity=Severity.ADVISORY,
        description=(
            "This is a test alert sent from the Weather Alert Relay to verify that the "
            "webhook connection is working correctly. This is NOT a real weather alert."
        ),
        headline="TEST ALERT - System Verification",
        area=place,
        starts_at=format_timestamp(now),
        ends_at=format_timestamp(now + timedelta(hours=2)),
        issued_at=format_timestamp(now),
        location=place,
        location_id=location.id if location else "test-location",
        source="WeatherAlertRelay-TestMode",
        raw_type="TEST",
        certainty="Test",
        urgency="Test",
        is_test=True,
    )
