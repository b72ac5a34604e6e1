"""
JSON file storage backend.

This is the default storage backend. It persists every catalog record in
one JSON document:

    {"format_version": 1, "records": {"<address>": {...}, ...}}

Each commit rewrites the whole document through a temporary file and an
atomic rename, so a crash never leaves a half-applied commit on disk.
"""

import json
import os
import shutil
import threading
from datetime import datetime
from typing import Any

from storage.base import (
    StorageBackend,
    StorageError,
    StorageReadError,
    StorageWriteError,
)

FORMAT_VERSION = 1


class JSONFileStorage(StorageBackend):
    """
    JSON file storage backend.

    Thread-safe operations using a file lock.
    """

    def __init__(self, file_path: str = "catalog_data.json"):
        """
        Initialize JSON file storage.

        Args:
            file_path: Path to the JSON file
        """
        self.file_path = file_path
        self._lock = threading.Lock()

    def _read_records(self) -> dict[str, dict[str, Any]]:
        # Caller holds self._lock
        try:
            if not os.path.exists(self.file_path):
                return {}

            with open(self.file_path, 'r', encoding='utf-8') as f:
                raw_data = f.read()

            if not raw_data.strip():
                return {}

            document = json.loads(raw_data)

        except FileNotFoundError:
            return {}
        except PermissionError as e:
            raise StorageReadError(f"Permission denied: {self.file_path}") from e
        except json.JSONDecodeError as e:
            raise StorageReadError(f"Invalid JSON format: {e}") from e
        except OSError as e:
            raise StorageReadError(f"Failed to load records: {e}") from e

        records = document.get("records") if isinstance(document, dict) else None
        if not isinstance(records, dict):
            raise StorageReadError(f"Missing records table in {self.file_path}")
        return records

    def load_record(self, address: str) -> dict[str, Any] | None:
        """
        Load a record from the JSON file.

        Returns:
            The record, or None if absent or the file doesn't exist.

        Raises:
            StorageReadError: If reading fails
        """
        with self._lock:
            return self._read_records().get(address)

    def commit(self, writes: dict[str, dict[str, Any] | None]) -> None:
        """
        Apply writes and rewrite the JSON file.

        Args:
            writes: Mapping of address to record, or None to delete

        Raises:
            StorageReadError: If the current file cannot be read
            StorageWriteError: If writing fails
        """
        with self._lock:
            records = self._read_records()
            for address, record in writes.items():
                if record is None:
                    records.pop(address, None)
                else:
                    records[address] = record

            try:
                # Serialize to JSON
                data = json.dumps(
                    {"format_version": FORMAT_VERSION, "records": records},
                    indent=2,
                    ensure_ascii=False,
                )

                # Write to file atomically (write to temp, then rename)
                temp_path = f"{self.file_path}.tmp"
                with open(temp_path, 'w', encoding='utf-8') as f:
                    f.write(data)

                # Atomic rename
                os.replace(temp_path, self.file_path)

            except PermissionError as e:
                raise StorageWriteError(
                    f"Permission denied: {self.file_path}"
                ) from e
            except (OSError, TypeError, ValueError) as e:
                raise StorageWriteError(f"Failed to save records: {e}") from e

    def is_available(self) -> bool:
        """
        Check if file storage is available.

        Returns:
            True if the file path is writable
        """
        directory = os.path.dirname(self.file_path) or "."
        if not os.path.exists(directory):
            return False
        return os.access(directory, os.W_OK)

    def record_count(self) -> int:
        with self._lock:
            return len(self._read_records())

    def get_info(self) -> dict[str, Any]:
        """Get storage backend information."""
        info = super().get_info()
        info.update({
            "file_path": self.file_path,
            "file_exists": os.path.exists(self.file_path),
        })

        if os.path.exists(self.file_path):
            try:
                stat = os.stat(self.file_path)
                info["file_size_bytes"] = stat.st_size
                info["last_modified"] = stat.st_mtime
            except OSError:
                pass

        return info

    def backup(self, backup_path: str | None = None) -> str:
        """
        Create a backup of the storage file.

        Args:
            backup_path: Path for backup file (default: adds .backup suffix)

        Returns:
            Path to the backup file

        Raises:
            StorageError: If backup fails
        """
        if backup_path is None:
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            backup_path = f"{self.file_path}.{timestamp}.backup"

        try:
            with self._lock:
                if not os.path.exists(self.file_path):
                    raise StorageError("No file to backup")
                shutil.copy2(self.file_path, backup_path)
                return backup_path
        except OSError as e:
            raise StorageError(f"Backup failed: {e}") from e
