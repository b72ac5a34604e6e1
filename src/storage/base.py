"""
Abstract base class for storage backends.

This module defines the interface that all storage backends must implement,
and the deterministic address derivation shared by all of them.

Every persisted record lives at an address derived from a fixed namespace
tag plus its identifying key. There is no index or registry: existence of
a record at an address is the only uniqueness check.
"""

import hashlib
from abc import ABC, abstractmethod
from typing import Any

# Namespace tags
CATALOG_STATE_TAG = b"catalog_state"
ACCESS_CREDENTIAL_TAG = b"access_credential"
CATALOG_ENTRY_TAG = b"catalog_entry"


def derive_address(tag: bytes, key: bytes = b"") -> str:
    """Deterministic record address: sha256(tag + b":" + key) as hex."""
    return hashlib.sha256(tag + b":" + key).hexdigest()


def state_address() -> str:
    return derive_address(CATALOG_STATE_TAG)


def credential_address(owner: bytes) -> str:
    return derive_address(ACCESS_CREDENTIAL_TAG, owner)


def entry_address(entry_id: bytes) -> str:
    return derive_address(CATALOG_ENTRY_TAG, entry_id)


class StorageError(Exception):
    """Base exception for storage-related errors."""
    pass


class StorageReadError(StorageError):
    """Raised when reading from storage fails."""
    pass


class StorageWriteError(StorageError):
    """Raised when writing to storage fails."""
    pass


class StorageBackend(ABC):
    """
    Abstract base class for catalog storage backends.

    All storage backends must implement these methods to provide
    a consistent interface for record persistence.
    """

    @abstractmethod
    def load_record(self, address: str) -> dict[str, Any] | None:
        """
        Load the record stored at an address.

        Returns:
            Copy of the record, or None if no record exists there.

        Raises:
            StorageReadError: If reading fails
        """
        pass

    @abstractmethod
    def commit(self, writes: dict[str, dict[str, Any] | None]) -> None:
        """
        Apply a set of record writes atomically.

        Either every write becomes visible or none does.

        Args:
            writes: Mapping of address to record, or to None to delete

        Raises:
            StorageWriteError: If writing fails
        """
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """
        Check if the storage backend is available and ready.

        Returns:
            True if storage is accessible, False otherwise
        """
        pass

    @abstractmethod
    def record_count(self) -> int:
        """Number of records currently stored."""
        pass

    def exists(self, address: str) -> bool:
        return self.load_record(address) is not None

    def get_info(self) -> dict[str, Any]:
        """
        Get information about the storage backend.

        Returns:
            Dictionary with backend type, status, and configuration
        """
        return {
            "backend_type": self.__class__.__name__,
            "available": self.is_available(),
        }

    def close(self) -> None:
        """
        Close the storage connection and release resources.

        Default implementation does nothing - backends with connections
        should override this.
        """
        pass

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - closes connection."""
        self.close()
        return False
