"""
Storage abstraction layer for OpenShelf.

This package provides a pluggable storage backend system for the catalog's
three record kinds (the GlobalState singleton, one AccessCredential per
principal, one CatalogEntry per identifier):

- JSON file (default)
- Memory (for testing)

Usage:
    from storage import get_storage_backend, state_address

    storage = get_storage_backend()
    record = storage.load_record(state_address())
    storage.commit({state_address(): state.to_dict()})
"""

import os

from storage.base import (
    ACCESS_CREDENTIAL_TAG,
    CATALOG_ENTRY_TAG,
    CATALOG_STATE_TAG,
    StorageBackend,
    StorageError,
    StorageReadError,
    StorageWriteError,
    credential_address,
    derive_address,
    entry_address,
    state_address,
)
from storage.json_file import JSONFileStorage
from storage.memory import MemoryStorage

__all__ = [
    "ACCESS_CREDENTIAL_TAG",
    "CATALOG_ENTRY_TAG",
    "CATALOG_STATE_TAG",
    "JSONFileStorage",
    "MemoryStorage",
    "StorageBackend",
    "StorageError",
    "StorageReadError",
    "StorageWriteError",
    "credential_address",
    "derive_address",
    "entry_address",
    "get_storage_backend",
    "state_address",
]


def get_storage_backend(backend_type: str | None = None, data_file: str | None = None) -> StorageBackend:
    """
    Get the configured storage backend based on environment variables.

    Environment variables:
        STORAGE_BACKEND: Backend type ("json", "memory")
        CATALOG_DATA_FILE: Path for JSON file storage (default: catalog_data.json)

    Returns:
        Configured StorageBackend instance
    """
    backend_type = (backend_type or os.getenv("STORAGE_BACKEND", "json")).lower()

    if backend_type == "json":
        data_file = data_file or os.getenv("CATALOG_DATA_FILE", "catalog_data.json")
        return JSONFileStorage(data_file)

    elif backend_type == "memory":
        return MemoryStorage()

    else:
        raise StorageError(f"Unknown storage backend: {backend_type}")
