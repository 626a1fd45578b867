"""JSON-file store - a single document on disk.

The whole key space lives in one JSON object. It is loaded on
initialize() and rewritten atomically (temp file + rename) after each
mutation or batch, so a crash leaves either the old or the new document.

Example:
    >>> import asyncio
    >>> import tempfile
    >>> from pathlib import Path
    >>> from rssdeck.storage.file import JsonFileStore
    >>> async def example():
    ...     with tempfile.TemporaryDirectory() as tmpdir:
    ...         store = JsonFileStore(Path(tmpdir) / "store.json")
    ...         await store.initialize()
    ...         await store.set("k", {"v": 1})
    ...         reopened = JsonFileStore(Path(tmpdir) / "store.json")
    ...         await reopened.initialize()
    ...         return await reopened.get("k")
    >>> asyncio.run(example())
    {'v': 1}
"""

from __future__ import annotations

import copy
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from rssdeck.core.exceptions import StoreError

logger = logging.getLogger(__name__)


class JsonFileStore:
    """File-backed store using one JSON document.

    Args:
        path: Location of the JSON file. Parent directories are created.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path).expanduser()
        self._data: dict[str, dict[str, Any]] = {}
        self._initialized = False

    @property
    def path(self) -> Path:
        return self._path

    async def initialize(self) -> None:
        """Load the document from disk (missing file means empty store)."""
        if self._initialized:
            return
        if self._path.exists():
            try:
                data = json.loads(self._path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as e:
                raise StoreError(f"Cannot read store {self._path}: {e}", cause=e) from e
            if not isinstance(data, dict):
                raise StoreError(f"Store {self._path} is not a JSON object")
            self._data = data
        logger.debug("Opened %s with %d keys", self._path, len(self._data))
        self._initialized = True

    async def close(self) -> None:
        self._initialized = False

    async def get(self, key: str) -> dict[str, Any] | None:
        self._require_initialized()
        value = self._data.get(key)
        return copy.deepcopy(value) if value is not None else None

    async def set(self, key: str, value: dict[str, Any]) -> None:
        self._require_initialized()
        previous = self._data.get(key)
        self._data[key] = copy.deepcopy(value)
        try:
            self._flush()
        except StoreError:
            # Keep memory consistent with disk.
            self._restore({key: previous})
            raise

    async def delete(self, key: str) -> bool:
        self._require_initialized()
        if key not in self._data:
            return False
        previous = self._data.pop(key)
        try:
            self._flush()
        except StoreError:
            self._data[key] = previous
            raise
        return True

    async def keys(self, prefix: str = "") -> list[str]:
        self._require_initialized()
        return [k for k in self._data if k.startswith(prefix)]

    async def set_batch(self, items: dict[str, dict[str, Any]]) -> int:
        """Store all items with a single rewrite of the document."""
        self._require_initialized()
        if not items:
            return 0
        previous = {key: self._data.get(key) for key in items}
        for key, value in items.items():
            self._data[key] = copy.deepcopy(value)
        try:
            self._flush()
        except StoreError:
            self._restore(previous)
            raise
        return len(items)

    async def delete_batch(self, keys: list[str]) -> int:
        """Delete keys with a single rewrite of the document."""
        self._require_initialized()
        previous = {key: self._data.pop(key) for key in dict.fromkeys(keys) if key in self._data}
        if not previous:
            return 0
        try:
            self._flush()
        except StoreError:
            self._restore(previous)
            raise
        return len(previous)

    def _restore(self, previous: dict[str, dict[str, Any] | None]) -> None:
        for key, value in previous.items():
            if value is None:
                self._data.pop(key, None)
            else:
                self._data[key] = value

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise StoreError("Store not initialized. Call initialize() first.")

    def _flush(self) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self._path.parent, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(self._data, f, ensure_ascii=False)
                os.replace(tmp, self._path)
            except BaseException:
                Path(tmp).unlink(missing_ok=True)
                raise
        except (OSError, TypeError, ValueError) as e:
            raise StoreError(f"Cannot write store {self._path}: {e}", cause=e) from e
