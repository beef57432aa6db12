"""In-memory key-value storage, used by tests and throwaway sessions."""

from typing import Optional

from pawnbook.services.storage.interface import KeyValueStorage


class InMemoryStorage(KeyValueStorage):
    """Dictionary-backed storage. Contents vanish with the process."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})

    def read(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def write(self, key: str, payload: str) -> None:
        self._data[key] = payload

    def keys(self) -> list[str]:
        return sorted(self._data)
