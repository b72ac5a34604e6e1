"""
Tests for the OpenShelf storage abstraction layer.

Tests:
- Deterministic record addresses
- MemoryStorage commit semantics
- JSONFileStorage persistence, atomic rewrite and error handling
- Backend factory
"""

import hashlib
import json
import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from storage import (
    JSONFileStorage,
    MemoryStorage,
    StorageError,
    StorageReadError,
    credential_address,
    derive_address,
    entry_address,
    get_storage_backend,
    state_address,
)


class TestAddresses:
    """Tests for address derivation."""

    def test_state_address(self):
        assert state_address() == hashlib.sha256(b"catalog_state:").hexdigest()

    def test_addresses_are_deterministic(self):
        key = bytes(range(16))
        assert entry_address(key) == entry_address(key)
        assert entry_address(key) == derive_address(b"catalog_entry", key)

    def test_tags_separate_namespaces(self):
        key = bytes(32)
        assert credential_address(key) != entry_address(key)
        assert len(credential_address(key)) == 64


class TestMemoryStorage:
    """Tests for MemoryStorage."""

    def test_load_missing(self):
        assert MemoryStorage().load_record("nope") is None

    def test_commit_writes_and_deletes(self):
        storage = MemoryStorage()
        storage.commit({"a": {"v": 1}, "b": {"v": 2}})
        assert storage.record_count() == 2

        storage.commit({"a": None, "b": {"v": 3}})
        assert storage.load_record("a") is None
        assert storage.load_record("b") == {"v": 3}

    def test_returns_copies(self):
        storage = MemoryStorage()
        record = {"items": [1]}
        storage.commit({"a": record})
        record["items"].append(2)
        loaded = storage.load_record("a")
        loaded["items"].append(3)
        assert storage.load_record("a") == {"items": [1]}

    def test_info_and_clear(self):
        storage = MemoryStorage()
        storage.commit({"a": {}})
        info = storage.get_info()
        assert info["backend_type"] == "MemoryStorage"
        assert info["record_count"] == 1
        storage.clear()
        assert storage.record_count() == 0

    def test_context_manager(self):
        with MemoryStorage() as storage:
            assert storage.is_available()


class TestJSONFileStorage:
    """Tests for JSONFileStorage."""

    def test_missing_file_is_empty(self, tmp_path):
        storage = JSONFileStorage(str(tmp_path / "data.json"))
        assert storage.load_record(state_address()) is None
        assert storage.record_count() == 0

    def test_persists_across_instances(self, tmp_path):
        path = str(tmp_path / "data.json")
        JSONFileStorage(path).commit({"a": {"title": "Beloved"}})
        assert JSONFileStorage(path).load_record("a") == {"title": "Beloved"}

    def test_document_format(self, tmp_path):
        path = tmp_path / "data.json"
        JSONFileStorage(str(path)).commit({"a": {"v": 1}})
        document = json.loads(path.read_text())
        assert document == {"format_version": 1, "records": {"a": {"v": 1}}}
        assert not os.path.exists(f"{path}.tmp")

    def test_commit_deletes(self, tmp_path):
        storage = JSONFileStorage(str(tmp_path / "data.json"))
        storage.commit({"a": {"v": 1}, "b": {"v": 2}})
        storage.commit({"a": None})
        assert storage.load_record("a") is None
        assert storage.record_count() == 1

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / "data.json"
        path.write_text("{not json")
        with pytest.raises(StorageReadError):
            JSONFileStorage(str(path)).load_record("a")

    def test_missing_records_table(self, tmp_path):
        path = tmp_path / "data.json"
        path.write_text('{"format_version": 1}')
        with pytest.raises(StorageReadError):
            JSONFileStorage(str(path)).load_record("a")

    def test_corrupt_file_blocks_commit(self, tmp_path):
        path = tmp_path / "data.json"
        path.write_text("{not json")
        with pytest.raises(StorageReadError):
            JSONFileStorage(str(path)).commit({"a": {}})
        assert path.read_text() == "{not json"

    def test_unavailable_directory(self, tmp_path):
        storage = JSONFileStorage(str(tmp_path / "missing" / "data.json"))
        assert storage.is_available() is False

    def test_backup(self, tmp_path):
        storage = JSONFileStorage(str(tmp_path / "data.json"))
        with pytest.raises(StorageError):
            storage.backup()
        storage.commit({"a": {"v": 1}})
        backup = storage.backup(str(tmp_path / "copy.json"))
        assert JSONFileStorage(backup).load_record("a") == {"v": 1}

    def test_info(self, tmp_path):
        storage = JSONFileStorage(str(tmp_path / "data.json"))
        storage.commit({"a": {}})
        info = storage.get_info()
        assert info["backend_type"] == "JSONFileStorage"
        assert info["file_exists"] is True
        assert info["file_size_bytes"] > 0


class TestStorageFactory:
    """Tests for get_storage_backend."""

    def test_memory(self):
        assert isinstance(get_storage_backend("memory"), MemoryStorage)

    def test_json(self, tmp_path):
        backend = get_storage_backend("json", str(tmp_path / "x.json"))
        assert isinstance(backend, JSONFileStorage)
        assert backend.file_path.endswith("x.json")

    def test_environment(self, monkeypatch, tmp_path):
        monkeypatch.setenv("STORAGE_BACKEND", "JSON")
        monkeypatch.setenv("CATALOG_DATA_FILE", str(tmp_path / "env.json"))
        backend = get_storage_backend()
        assert isinstance(backend, JSONFileStorage)
        assert backend.file_path == str(tmp_path / "env.json")

    def test_unknown(self):
        with pytest.raises(StorageError):
            get_storage_backend("postgresql")
