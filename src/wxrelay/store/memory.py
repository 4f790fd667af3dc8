"""In-process key-value store."""

import copy
import json
from typing import Any

from wxrelay.store.base import KeyValueStore


class InMemoryKeyValueStore(KeyValueStore):
    """Dictionary-backed store with the same copy semantics as the SQL store."""

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}

    def get(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        return copy.deepcopy(self._data[key])

    def set(self, key: str, value: Any) -> None:
        # Round-trip through JSON so callers hit serialization errors here too
        self._data[key] = json.loads(json.dumps(value))

    def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None
