"""JSON-file client storage.

Keeps the whole store in one JSON document so it survives a process restart
the way browser storage survives a page reload. Writes go to a temporary file
that replaces the document atomically.
"""

import json
import os
import tempfile
from pathlib import Path

from checkout.storage.port import ClientStorage


class JsonFileStorage(ClientStorage):
    def __init__(self, path: str | Path, capacity_bytes: int = 5 * 1024 * 1024) -> None:
        super().__init__(capacity_bytes)
        self.path = Path(path)

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        with self.path.open(encoding="utf-8") as fh:
            try:
                data = json.load(fh)
            except json.JSONDecodeError:
                return {}
        return {str(k): str(v) for k, v in data.items()} if isinstance(data, dict) else {}

    def _dump(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".storage-", suffix=".json")
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(data, fh)
        os.replace(tmp, self.path)

    def get(self, key: str) -> str | None:
        return self._load().get(key)

    def _write(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._dump(data)

    def remove(self, key: str) -> None:
        data = self._load()
        if data.pop(key, None) is not None:
            self._dump(data)

    def keys(self) -> list[str]:
        return list(self._load())
