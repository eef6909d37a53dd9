"""
Tests for the key-value backends.

Run with: pytest tests/test_kv_backends.py -v
"""

import os
import shutil
import sys
import tempfile

import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from facerec.kv_backends import (
    JsonFileKeyValueStore,
    MemoryKeyValueStore,
    SQLiteKeyValueStore,
    create_backend,
)


@pytest.fixture
def temp_dir():
    path = tempfile.mkdtemp()
    yield path
    shutil.rmtree(path, ignore_errors=True)


@pytest.fixture(params=["memory", "json", "sqlite"])
def backend(request, temp_dir):
    """Each backend implementation, freshly created."""
    if request.param == "memory":
        kv = MemoryKeyValueStore()
    elif request.param == "json":
        kv = JsonFileKeyValueStore(os.path.join(temp_dir, "kv.json"))
    else:
        kv = SQLiteKeyValueStore(os.path.join(temp_dir, "kv.sqlite"))
    yield kv
    kv.close()


class TestKeyValueContract:
    """Behavior shared by every backend."""

    def test_get_missing_returns_none(self, backend):
        assert backend.get("missing") is None

    def test_set_then_get(self, backend):
        backend.set("enrolledFaces", '{"a": 1}')
        assert backend.get("enrolledFaces") == '{"a": 1}'

    def test_set_replaces_value(self, backend):
        backend.set("k", "one")
        backend.set("k", "two")
        assert backend.get("k") == "two"

    def test_keys_are_independent(self, backend):
        backend.set("a", "1")
        backend.set("b", "2")
        assert backend.get("a") == "1"
        assert backend.get("b") == "2"

    def test_delete(self, backend):
        backend.set("k", "v")
        backend.delete("k")
        assert backend.get("k") is None

    def test_delete_missing_is_noop(self, backend):
        backend.delete("never-set")
        assert backend.get("never-set") is None


class TestFileBackends:
    """Persistence across instances."""

    def test_sqlite_survives_reopen(self, temp_dir):
        path = os.path.join(temp_dir, "nested", "kv.sqlite")
        kv = SQLiteKeyValueStore(path)
        kv.set("k", "v")
        kv.close()

        reopened = SQLiteKeyValueStore(path)
        assert reopened.get("k") == "v"
        reopened.close()

    def test_sqlite_close_is_idempotent(self, temp_dir):
        kv = SQLiteKeyValueStore(os.path.join(temp_dir, "kv.sqlite"))
        kv.close()
        kv.close()

    def test_json_survives_reopen(self, temp_dir):
        path = os.path.join(temp_dir, "nested", "kv.json")
        JsonFileKeyValueStore(path).set("k", "v")
        assert JsonFileKeyValueStore(path).get("k") == "v"

    def test_json_leaves_no_temp_files(self, temp_dir):
        path = os.path.join(temp_dir, "kv.json")
        kv = JsonFileKeyValueStore(path)
        kv.set("a", "1")
        kv.set("b", "2")
        assert os.listdir(temp_dir) == ["kv.json"]

    def test_json_unreadable_file_is_replaced_on_write(self, temp_dir):
        path = os.path.join(temp_dir, "kv.json")
        with open(path, "w", encoding="utf-8") as f:
            f.write("{garbage")

        kv = JsonFileKeyValueStore(path)
        with pytest.raises(ValueError):
            kv.get("k")

        kv.set("k", "v")
        assert kv.get("k") == "v"

    def test_json_empty_file_reads_as_empty(self, temp_dir):
        path = os.path.join(temp_dir, "kv.json")
        open(path, "w").close()
        assert JsonFileKeyValueStore(path).get("k") is None


class TestCreateBackend:
    """Tests for building a backend from the storage config section."""

    def test_memory(self):
        assert isinstance(create_backend({"backend": "memory"}), MemoryKeyValueStore)

    def test_sqlite_absolute_path(self, temp_dir):
        path = os.path.join(temp_dir, "faces.sqlite")
        kv = create_backend({"backend": "sqlite", "path": path})
        assert isinstance(kv, SQLiteKeyValueStore)
        assert os.path.exists(path)
        kv.close()

    def test_json_absolute_path(self, temp_dir):
        path = os.path.join(temp_dir, "faces.json")
        kv = create_backend({"backend": "json", "path": path})
        assert isinstance(kv, JsonFileKeyValueStore)

    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="Unknown storage backend"):
            create_backend({"backend": "redis"})
