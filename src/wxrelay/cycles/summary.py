"""Cycle state and summary records."""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from wxrelay.records import utcnow

SYSTEM_LOCATION = "System"


class CycleState(str, Enum):
    """Stage a cycle is currently in."""

    IDLE = "idle"
    FETCHING = "fetching"
    NORMALIZING = "normalizing"
    DEDUPING = "deduping"
    DELIVERING = "delivering"
    COMMITTING = "committing"


@dataclass
class CycleError:
    """Failure attributed to a location, or to ``System``."""

    location: str
    error: str


@dataclass
class CycleSummary:
    """Counters accumulated over one cycle."""

    kind: str
    started_at: datetime = field(default_factory=utcnow)
    finished_at: datetime | None = None
    duration_seconds: float = 0.0
    locations_processed: int = 0
    fetched: int = 0
    new: int = 0
    duplicates_skipped: int = 0
    sent: int = 0
    failed: int = 0
    good_weather: int = 0
    bad_weather: int = 0
    errors: list[CycleError] = field(default_factory=list)
    skipped: bool = False

    def add_error(self, location: str, error: str) -> None:
        self.errors.append(CycleError(location=location, error=error))

    def finish(self) -> "CycleSummary":
        self.finished_at = utcnow()
        self.duration_seconds = (self.finished_at - self.started_at).total_seconds()
        return self

    @property
    def success(self) -> bool:
        return not self.errors and not self.skipped

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly representation for logs and the CLI."""
        data = asdict(self)
        data["started_at"] = self.started_at.isoformat()
        data["finished_at"] = self.finished_at.isoformat() if self.finished_at else None
        return data
