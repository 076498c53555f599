"""Key-value persistence backends for locally saved data."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, Optional, Protocol, Union


DEFAULT_STORAGE_PATH = Path(
    os.getenv("MUSIC_CONNECT_STORAGE_PATH", str(Path.home() / ".music_connect" / "storage.json"))
)

_LOGGER = logging.getLogger(__name__)


class StorageError(RuntimeError):
    """Raised when a value cannot be read from or written to storage."""


class KeyValueStorage(Protocol):
    """Synchronous string blob storage addressed by key."""

    def read(self, key: str) -> Optional[str]:
        ...

    def write(self, key: str, value: str) -> None:
        ...


class InMemoryStorage:
    """Fallback storage that lives for the lifetime of the process."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._values: Dict[str, str] = dict(initial or {})

    def read(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def write(self, key: str, value: str) -> None:
        self._values[key] = value


class JsonFileStorage:
    """Stores every key inside a single JSON object on disk."""

    def __init__(self, path: Union[str, Path, None] = None) -> None:
        self.path = Path(path) if path is not None else DEFAULT_STORAGE_PATH

    def _read_all(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            raw = self.path.read_text(encoding="utf-8")
        except UnicodeDecodeError:
            _LOGGER.warning("Storage file %s is not valid UTF-8; ignoring its contents", self.path)
            return {}
        except OSError as exc:
            raise StorageError(f"Unable to read {self.path}: {exc}") from exc
        if not raw.strip():
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            _LOGGER.warning("Storage file %s is not valid JSON; ignoring its contents", self.path)
            return {}
        if not isinstance(data, dict):
            _LOGGER.warning("Storage file %s does not hold a JSON object; ignoring it", self.path)
            return {}
        return {str(key): value for key, value in data.items() if isinstance(value, str)}

    def read(self, key: str) -> Optional[str]:
        return self._read_all().get(key)

    def write(self, key: str, value: str) -> None:
        values = self._read_all()
        values[key] = value
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".storage-", suffix=".json")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(values, handle, ensure_ascii=False)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise StorageError(f"Unable to write {self.path}: {exc}") from exc


__all__ = [
    "DEFAULT_STORAGE_PATH",
    "InMemoryStorage",
    "JsonFileStorage",
    "KeyValueStorage",
    "StorageError",
]
