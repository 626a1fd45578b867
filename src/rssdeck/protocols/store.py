"""Key-value store protocol.

Defines the narrow interface every persistence backend implements. Values
are JSON-serializable dictionaries; the backend knows nothing about feeds
or entries.

Example:
    >>> from rssdeck.protocols.store import KeyValueStore
    >>> hasattr(KeyValueStore, "get")
    True
    >>> hasattr(KeyValueStore, "delete")
    True
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class KeyValueStore(Protocol):
    """Key-value store protocol.

    See Also:
        rssdeck.storage.memory.MemoryStore: In-memory implementation
    """

    async def get(self, key: str) -> dict[str, Any] | None:
        """Get the record stored under key, or None."""
        ...

    async def set(self, key: str, value: dict[str, Any]) -> None:
        """Store a record under key, replacing any previous one."""
        ...

    async def delete(self, key: str) -> bool:
        """Delete key. Returns True if it existed; a missing key is not an error."""
        ...

    async def keys(self, prefix: str = "") -> list[str]:
        """List keys starting with prefix."""
        ...

    # --- Bulk Operations ---

    async def set_batch(self, items: dict[str, dict[str, Any]]) -> int:
        """Store several records in one write.

        Returns:
            Number of records written.

        Note:
            File-backed implementations must persist the whole batch with a
            single rewrite, not one per record.
        """
        ...

    async def delete_batch(self, keys: list[str]) -> int:
        """Delete several keys in one write. Missing keys are skipped.

        Returns:
            Number of keys that existed.
        """
        ...

    async def initialize(self) -> None:
        """Open files/connections."""
        ...

    async def close(self) -> None:
        """Release resources."""
        ...
