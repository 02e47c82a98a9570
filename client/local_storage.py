"""File-backed key/value store used when the API is unreachable.

Values are strings, like browser localStorage. The whole map is kept in one
JSON document that is rewritten atomically on every change.
"""
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import structlog

logger = structlog.get_logger("agrichat.client.storage")


class LocalStorageError(Exception):
    """Raised when the local store cannot be read or written."""


class StorageQuotaExceededError(LocalStorageError):
    """Raised when a write would grow the store past its byte quota."""

    def __init__(self, size: int, quota: int):
        self.size = size
        self.quota = quota
        super().__init__(f"Local storage quota exceeded ({size} > {quota} bytes)")


class LocalStorage:
    """String key/value map persisted to a single JSON file.

    With `path=None` the map lives in memory only.
    """

    def __init__(
        self,
        path: Optional[Union[str, Path]] = None,
        quota_bytes: int = 5 * 1024 * 1024,
    ):
        self.path = Path(path) if path is not None else None
        self.quota_bytes = quota_bytes
        self._items: Optional[Dict[str, str]] = None

    def _load(self) -> Dict[str, str]:
        if self._items is not None:
            return self._items
        if self.path is None or not self.path.exists():
            self._items = {}
            return self._items
        try:
            raw = self.path.read_text(encoding="utf-8")
            items = json.loads(raw) if raw.strip() else {}
        except (OSError, ValueError) as e:
            raise LocalStorageError(f"Cannot read local storage at {self.path}: {e}") from e
        if not isinstance(items, dict):
            raise LocalStorageError(f"Local storage at {self.path} is not a JSON object")
        self._items = {str(k): str(v) for k, v in items.items()}
        return self._items

    def _persist(self, items: Dict[str, str]) -> None:
        document = json.dumps(items, ensure_ascii=False)
        size = len(document.encode("utf-8"))
        if size > self.quota_bytes:
            raise StorageQuotaExceededError(size, self.quota_bytes)

        if self.path is not None:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                fd, tmp_path = tempfile.mkstemp(
                    dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
                )
                try:
                    with os.fdopen(fd, "w", encoding="utf-8") as fh:
                        fh.write(document)
                    os.replace(tmp_path, self.path)
                except BaseException:
                    if os.path.exists(tmp_path):
                        os.unlink(tmp_path)
                    raise
            except OSError as e:
                raise LocalStorageError(f"Cannot write local storage at {self.path}: {e}") from e

        self._items = items

    def get_item(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set_item(self, key: str, value: str) -> None:
        """Store `value` under `key`; the store is unchanged if the write fails."""
        items = dict(self._load())
        items[key] = value
        self._persist(items)

    def remove_item(self, key: str) -> None:
        items = self._load()
        if key not in items:
            return
        items = dict(items)
        del items[key]
        self._persist(items)

    def keys(self) -> List[str]:
        return list(self._load())

    def clear(self) -> None:
        self._persist({})

    def get_json(self, key: str, default: Any = None) -> Any:
        raw = self.get_item(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except ValueError as e:
            logger.warning("storage.value.corrupt", key=key, error=str(e))
            return default

    def set_json(self, key: str, value: Any) -> None:
        self.set_item(key, json.dumps(value, ensure_ascii=False))

    def used_bytes(self) -> int:
        return len(json.dumps(self._load(), ensure_ascii=False).encode("utf-8"))
