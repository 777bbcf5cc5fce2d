"""Abstract base class for key-value store backends.

The assistant persists whole serialized blobs (history, settings,
favorites) under fixed keys. The abstraction hides:
- Storage format and persistence mechanism (memory, SQLite file)
- Connection management
"""

from abc import ABC, abstractmethod


class KeyValueStore(ABC):
    """Abstract key-value store of string blobs."""

    @abstractmethod
    async def connect(self) -> None:
        """Initialize the backend."""

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the backend gracefully."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the blob stored under key, or None."""

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store a blob under key, replacing any previous value."""

    @abstractmethod
    async def remove(self, key: str) -> None:
        """Delete key if present."""

    @property
    @abstractmethod
    def backend_type(self) -> str:
        """Get the backend type identifier."""
