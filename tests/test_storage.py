import errno
import os

import pytest

from lmsportal.core.exceptions import ConfigurationError, StorageError, StorageFullError
from lmsportal.persistence import storage as storage_module
from lmsportal.persistence.storage import FileStorage, MemoryStorage, SQLiteStorage, StorageFactory


def _make(kind, tmp_path, **kwargs):
    if kind == "memory":
        return MemoryStorage(**kwargs)
    if kind == "file":
        return FileStorage(str(tmp_path / "data"), **kwargs)
    return SQLiteStorage(str(tmp_path / "lms.db"), **kwargs)


@pytest.fixture(params=["memory", "file", "sqlite"])
def backend(request, tmp_path):
    backend = _make(request.param, tmp_path)
    yield backend
    if isinstance(backend, SQLiteStorage):
        backend.close()


class TestKeyValueContract:

    def test_absent_key_is_none(self, backend):
        assert backend.get("missing") is None

    def test_set_then_get(self, backend):
        backend.set("lms_demo_data_v1", '{"users": []}')
        assert backend.get("lms_demo_data_v1") == '{"users": []}'

    def test_set_replaces(self, backend):
        backend.set("k", "first")
        backend.set("k", "second")
        assert backend.get("k") == "second"

    def test_delete_reports_existence(self, backend):
        backend.set("k", "value")
        assert backend.delete("k") is True
        assert backend.delete("k") is False
        assert backend.get("k") is None

    def test_usage_counts_utf8_bytes(self, backend):
        backend.set("a", "12345")
        backend.set("b", "é")
        assert backend.usage_bytes() == 7
        assert backend.usage_bytes(exclude_key="a") == 2


@pytest.mark.parametrize("kind", ["memory", "file", "sqlite"])
def test_quota_rejects_oversized_writes(kind, tmp_path):
    backend = _make(kind, tmp_path, quota_bytes=10)

    backend.set("k", "12345")
    backend.set("k", "1234567890")  # replacing a value does not count it twice
    with pytest.raises(StorageFullError) as exc_info:
        backend.set("other", "x")

    assert exc_info.value.details["quota"] == 10
    assert backend.get("other") is None
    if isinstance(backend, SQLiteStorage):
        backend.close()


def test_quota_must_be_positive():
    with pytest.raises(ConfigurationError):
        MemoryStorage(quota_bytes=0)


class TestFileStorage:

    def test_one_json_file_per_key(self, tmp_path):
        backend = FileStorage(str(tmp_path))
        backend.set("lms_current_user", "{}")
        assert os.path.exists(tmp_path / "lms_current_user.json")

    def test_rejects_path_like_keys(self, tmp_path):
        backend = FileStorage(str(tmp_path))
        with pytest.raises(StorageError):
            backend.set("../escape", "x")

    def test_out_of_space_is_storage_full(self, tmp_path, monkeypatch):
        backend = FileStorage(str(tmp_path))

        def no_space(src, dst):
            raise OSError(errno.ENOSPC, "No space left on device")

        monkeypatch.setattr(storage_module.os, "replace", no_space)
        with pytest.raises(StorageFullError):
            backend.set("k", "value")
        assert [name for name in os.listdir(tmp_path) if name.endswith(".tmp")] == []

    def test_other_write_errors_are_storage_errors(self, tmp_path, monkeypatch):
        backend = FileStorage(str(tmp_path))

        def denied(src, dst):
            raise OSError(errno.EACCES, "Permission denied")

        monkeypatch.setattr(storage_module.os, "replace", denied)
        with pytest.raises(StorageError) as exc_info:
            backend.set("k", "value")
        assert not isinstance(exc_info.value, StorageFullError)


class TestStorageFactory:

    def test_creates_each_backend(self, tmp_path):
        assert isinstance(StorageFactory.create_storage("memory"), MemoryStorage)
        assert isinstance(StorageFactory.create_storage("FILE", base_path=str(tmp_path)), FileStorage)
        sqlite = StorageFactory.create_storage("sqlite", database_path=str(tmp_path / "x.db"))
        assert isinstance(sqlite, SQLiteStorage)
        sqlite.close()

    def test_unknown_type(self):
        with pytest.raises(ConfigurationError):
            StorageFactory.create_storage("redis")

    def test_unknown_option(self):
        with pytest.raises(ConfigurationError):
            StorageFactory.create_storage("memory", base_path="somewhere")
