"""Key-value storage backends for the session token."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Protocol

from serenia_client.config import StorageSettings
from serenia_client.logging import logger


class TokenStorage(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryStorage:
    """Session-scoped storage: lives exactly as long as the process."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStorage:
    """Persistent storage backed by a small JSON document on disk."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def get(self, key: str) -> str | None:
        value = self._read().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)

    def _read(self) -> dict[str, object]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as fp:
                payload = json.load(fp)
        except (OSError, json.JSONDecodeError):
            logger.warning("token_storage_unreadable", path=str(self.path))
            return {}
        return payload if isinstance(payload, dict) else {}

    def _write(self, data: dict[str, object]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as fp:
            json.dump(data, fp)


def build_storage(settings: StorageSettings) -> TokenStorage:
    if settings.backend == "file":
        return JsonFileStorage(settings.file_path)
    return MemoryStorage()


__all__ = ["JsonFileStorage", "MemoryStorage", "TokenStorage", "build_storage"]
