"""In-memory store for testing.

Example:
    >>> import asyncio
    >>> from rssdeck.storage.memory import MemoryStore
    >>> store = MemoryStore()
    >>> asyncio.run(store.set("k", {"v": 1}))
    >>> asyncio.run(store.get("k"))
    {'v': 1}
    >>> asyncio.run(store.delete("missing"))
    False

Note:
    All methods are async. Use within async context or with asyncio.run().
"""

from __future__ import annotations

import copy
from typing import Any


class MemoryStore:
    """In-memory store using a dictionary.

    Values are deep-copied in and out so callers cannot mutate stored
    state by accident. Data is lost when the process exits.

    Best for: Testing, development.
    """

    def __init__(self, data: dict[str, dict[str, Any]] | None = None) -> None:
        self._data: dict[str, dict[str, Any]] = copy.deepcopy(data) if data else {}
        self._initialized = False

    async def initialize(self) -> None:
        """No-op for memory storage."""
        self._initialized = True

    async def close(self) -> None:
        """Keep data; memory stores live as long as the object."""
        self._initialized = False

    async def get(self, key: str) -> dict[str, Any] | None:
        value = self._data.get(key)
        return copy.deepcopy(value) if value is not None else None

    async def set(self, key: str, value: dict[str, Any]) -> None:
        self._data[key] = copy.deepcopy(value)

    async def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    async def keys(self, prefix: str = "") -> list[str]:
        return [k for k in self._data if k.startswith(prefix)]

    async def set_batch(self, items: dict[str, dict[str, Any]]) -> int:
        for key, value in items.items():
            self._data[key] = copy.deepcopy(value)
        return len(items)

    async def delete_batch(self, keys: list[str]) -> int:
        return sum(1 for key in keys if self._data.pop(key, None) is not None)

    def snapshot(self) -> dict[str, dict[str, Any]]:
        """Copy of everything stored, for assertions in tests."""
        return copy.deepcopy(self._data)

    def __len__(self) -> int:
        return len(self._data)
