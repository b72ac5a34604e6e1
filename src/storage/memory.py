"""
In-memory storage backend.

This backend keeps catalog records in memory only, useful for:
- Unit testing
- Development
- Ephemeral catalogs
"""

import copy
import threading
from typing import Any

from storage.base import StorageBackend


class MemoryStorage(StorageBackend):
    """
    In-memory storage backend.

    All data is lost when the process exits. Thread-safe operations.
    """

    def __init__(self):
        """Initialize empty memory storage."""
        self._records: dict[str, dict[str, Any]] = {}
        # Use RLock to allow reentrant locking (get_info calls record_count)
        self._lock = threading.RLock()

    def load_record(self, address: str) -> dict[str, Any] | None:
        """
        Load a record from memory.

        Returns:
            Copy of the stored record, or None if absent
        """
        with self._lock:
            record = self._records.get(address)
            if record is None:
                return None
            # Return a deep copy to prevent external modification
            return copy.deepcopy(record)

    def commit(self, writes: dict[str, dict[str, Any] | None]) -> None:
        """
        Apply writes to memory.

        Args:
            writes: Mapping of address to record, or None to delete
        """
        # Copy everything before touching the live dict
        staged = {address: copy.deepcopy(record) for address, record in writes.items()}
        with self._lock:
            for address, record in staged.items():
                if record is None:
                    self._records.pop(address, None)
                else:
                    self._records[address] = record

    def is_available(self) -> bool:
        """Memory storage is always available."""
        return True

    def record_count(self) -> int:
        with self._lock:
            return len(self._records)

    def get_info(self) -> dict[str, Any]:
        """Get storage backend information."""
        info = super().get_info()
        with self._lock:
            info.update(
                {
                    "has_data": bool(self._records),
                    "record_count": self.record_count(),
                }
            )
        return info

    def clear(self) -> None:
        """Clear all stored records."""
        with self._lock:
            self._records = {}
