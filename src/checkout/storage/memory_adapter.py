"""In-memory client storage for development and testing."""

from checkout.storage.port import ClientStorage


class MemoryStorage(ClientStorage):
    def __init__(self, capacity_bytes: int = 5 * 1024 * 1024) -> None:
        super().__init__(capacity_bytes)
        self._data: dict[str, str] = {}
        self.writes: list[str] = []

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def _write(self, key: str, value: str) -> None:
        self._data[key] = value
        self.writes.append(key)

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)
