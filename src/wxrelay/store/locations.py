"""Location collection."""

import re
import uuid
from typing import Any

from wxrelay.records import Location, utcnow
from wxrelay.store.base import LOCATIONS_KEY, KeyValueStore
from wxrelay.utils.exceptions import InputValidationError

ZIP_PATTERN = re.compile(r"^\d{5}(-\d{4})?$")

EDITABLE_FIELDS = ("name", "zip_code", "latitude", "longitude", "enabled")


def validate_location_fields(data: dict[str, Any]) -> None:
    """Check that a location can be resolved by the providers.

    Raises:
        InputValidationError: If neither a ZIP nor a full coordinate pair is
            present, or a value is out of range.
    """
    zip_code = data.get("zip_code") or ""
    latitude = data.get("latitude")
    longitude = data.get("longitude")

    if not zip_code and (latitude is None or longitude is None):
        raise InputValidationError("Either ZIP code or latitude/longitude is required")

    if zip_code and not ZIP_PATTERN.match(zip_code):
        raise InputValidationError("Invalid ZIP code format (use 5 digits or 5+4 format)")

    if latitude is not None and not -90 <= float(latitude) <= 90:
        raise InputValidationError("Latitude must be between -90 and 90")
    if longitude is not None and not -180 <= float(longitude) <= 180:
        raise InputValidationError("Longitude must be between -180 and 180")


class LocationStore:
    """List/add/update/delete over the ``locations`` collection."""

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    def get_all(self) -> list[Location]:
        return [Location.model_validate(item) for item in self.store.get(LOCATIONS_KEY, []) or []]

    def enabled(self) -> list[Location]:
        return [location for location in self.get_all() if location.enabled]

    def get(self, location_id: str) -> Location | None:
        for location in self.get_all():
            if location.id == location_id:
                return location
        return None

    def add(self, **fields: Any) -> Location:
        """Create a location.

        Args:
            **fields: Any of name, zip_code, latitude, longitude, enabled.

        Returns:
            The stored location.
        """
        data = {key: fields[key] for key in EDITABLE_FIELDS if key in fields}
        validate_location_fields(data)

        now = utcnow()
        location = Location(id=str(uuid.uuid4()), created_at=now, updated_at=now, **data)
        locations = self.get_all()
        locations.append(location)
        self._save(locations)
        return location

    def update(self, location_id: str, **fields: Any) -> Location | None:
        """Apply a partial update; the id is never changed.

        Returns:
            The updated location, or None if it does not exist.
        """
        locations = self.get_all()
        for index, location in enumerate(locations):
            if location.id != location_id:
                continue
            changes = {key: fields[key] for key in EDITABLE_FIELDS if key in fields}
            merged = {**location.model_dump(), **changes}
            validate_location_fields(merged)
            locations[index] = Location.model_validate({**merged, "updated_at": utcnow()})
            self._save(locations)
            return locations[index]
        return None

    def delete(self, location_id: str) -> bool:
        """Remove a location. Callers clear dependent state (ledger entries)."""
        locations = self.get_all()
        remaining = [location for location in locations if location.id != location_id]
        if len(remaining) == len(locations):
            return False
        self._save(remaining)
        return True

    def _save(self, locations: list[Location]) -> None:
        self.store.set(LOCATIONS_KEY, [location.model_dump(mode="json") for location in locations])
