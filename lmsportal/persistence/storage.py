"""
Durable key/value storage backends.

The portal keeps two independent records (the main state and the remembered
session) under string keys, so every backend only has to store text values.
"""

import errno
import logging
import os
import re
import sqlite3
import tempfile
import threading
from abc import ABC, abstractmethod
from typing import Dict, Optional

from ..core.exceptions import ConfigurationError, StorageError, StorageFullError

logger = logging.getLogger("lmsportal.persistence.storage")

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")
_FULL_ERRNOS = {errno.ENOSPC, getattr(errno, "EDQUOT", errno.ENOSPC)}


def _value_size(value: str) -> int:
    return len(value.encode("utf-8"))


class KeyValueStorage(ABC):
    """Abstract base class for durable key/value storage."""

    def __init__(self, quota_bytes: Optional[int] = None):
        if quota_bytes is not None and quota_bytes <= 0:
            raise ConfigurationError("quota_bytes must be a positive integer")
        self._quota_bytes = quota_bytes
        self._lock = threading.RLock()

    @property
    def quota_bytes(self) -> Optional[int]:
        return self._quota_bytes

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None when the key is absent."""
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store a value, replacing any previous one."""
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove a key; returns whether it existed."""
        pass

    @abstractmethod
    def usage_bytes(self, exclude_key: Optional[str] = None) -> int:
        """Total bytes of stored values, optionally ignoring one key."""
        pass

    def _check_quota(self, key: str, value: str) -> None:
        """Reject a write that would push usage over the quota."""
        if self._quota_bytes is None:
            return
        projected = self.usage_bytes(exclude_key=key) + _value_size(value)
        if projected > self._quota_bytes:
            raise StorageFullError(
                f"Writing '{key}' needs {projected} bytes, quota is {self._quota_bytes}",
                details={"key": key, "projected": projected, "quota": self._quota_bytes},
            )


class MemoryStorage(KeyValueStorage):
    """In-process storage, useful for tests and throwaway sessions."""

    def __init__(self, quota_bytes: Optional[int] = None, initial: Optional[Dict[str, str]] = None):
        super().__init__(quota_bytes)
        self._values: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._check_quota(key, value)
            self._values[key] = value

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._values.pop(key, None) is not None

    def usage_bytes(self, exclude_key: Optional[str] = None) -> int:
        with self._lock:
            return sum(_value_size(value) for key, value in self._values.items() if key != exclude_key)


class FileStorage(KeyValueStorage):
    """One JSON document per key inside a directory."""

    def __init__(self, base_path: str = "lms_data", quota_bytes: Optional[int] = None):
        super().__init__(quota_bytes)
        self._base_path = base_path
        self._ensure_directory_exists()

    @property
    def base_path(self) -> str:
        return self._base_path

    def _ensure_directory_exists(self) -> None:
        """Ensure the storage directory exists."""
        try:
            os.makedirs(self._base_path, exist_ok=True)
        except OSError as e:
            raise ConfigurationError(f"Cannot create storage directory {self._base_path}: {e}")

    def _get_key_path(self, key: str) -> str:
        """Get file path for a key."""
        if not _KEY_PATTERN.match(key):
            raise StorageError(f"Invalid storage key: {key!r}")
        return os.path.join(self._base_path, f"{key}.json")

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            path = self._get_key_path(key)
            if not os.path.exists(path):
                return None
            try:
                with open(path, "r", encoding="utf-8") as f:
                    return f.read()
            except (OSError, UnicodeDecodeError) as e:
                raise StorageError(f"Failed to read '{key}': {e}")

    def set(self, key: str, value: str) -> None:
        with self._lock:
            path = self._get_key_path(key)
            self._check_quota(key, value)
            fd, tmp_path = tempfile.mkstemp(dir=self._base_path, prefix=f".{key}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(value)
                os.replace(tmp_path, path)
            except OSError as e:
                if os.path.exists(tmp_path):
                    os.remove(tmp_path)
                if e.errno in _FULL_ERRNOS:
                    raise StorageFullError(f"No space left to write '{key}'")
                raise StorageError(f"Failed to write '{key}': {e}")

    def delete(self, key: str) -> bool:
        with self._lock:
            path = self._get_key_path(key)
            if not os.path.exists(path):
                return False
            try:
                os.remove(path)
            except OSError as e:
                raise StorageError(f"Failed to delete '{key}': {e}")
            return True

    def usage_bytes(self, exclude_key: Optional[str] = None) -> int:
        with self._lock:
            total = 0
            for filename in os.listdir(self._base_path):
                if not filename.endswith(".json"):
                    continue
                if exclude_key is not None and filename == f"{exclude_key}.json":
                    continue
                total += os.path.getsize(os.path.join(self._base_path, filename))
            return total


class SQLiteStorage(KeyValueStorage):
    """Key/value records in a single SQLite table."""

    def __init__(self, database_path: str = "lms_portal.db", quota_bytes: Optional[int] = None):
        super().__init__(quota_bytes)
        self._database_path = database_path
        try:
            self._conn = sqlite3.connect(database_path, check_same_thread=False)
        except sqlite3.Error as e:
            raise ConfigurationError(f"Cannot open database {database_path}: {e}")
        self._initialize_database()

    def _initialize_database(self) -> None:
        """Create the key/value table."""
        with self._lock, self._conn:
            self._conn.execute("""
                CREATE TABLE IF NOT EXISTS key_value (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            try:
                row = self._conn.execute("SELECT value FROM key_value WHERE key = ?", (key,)).fetchone()
            except sqlite3.Error as e:
                raise StorageError(f"Failed to read '{key}': {e}")
            return None if row is None else str(row[0])

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._check_quota(key, value)
            try:
                with self._conn:
                    self._conn.execute(
                        """
                        INSERT INTO key_value (key, value, updated_at) VALUES (?, ?, CURRENT_TIMESTAMP)
                        ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                        """,
                        (key, value),
                    )
            except sqlite3.Error as e:
                if "full" in str(e).lower():
                    raise StorageFullError(f"Database is full, cannot write '{key}'")
                raise StorageError(f"Failed to write '{key}': {e}")

    def delete(self, key: str) -> bool:
        with self._lock:
            try:
                with self._conn:
                    cursor = self._conn.execute("DELETE FROM key_value WHERE key = ?", (key,))
            except sqlite3.Error as e:
                raise StorageError(f"Failed to delete '{key}': {e}")
            return cursor.rowcount > 0

    def usage_bytes(self, exclude_key: Optional[str] = None) -> int:
        with self._lock:
            row = self._conn.execute(
                "SELECT COALESCE(SUM(LENGTH(CAST(value AS BLOB))), 0) FROM key_value WHERE key != ?",
                (exclude_key or "",),
            ).fetchone()
            return int(row[0])

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            self._conn.close()


class StorageFactory:
    """Factory for creating storage instances."""

    @staticmethod
    def create_storage(storage_type: str, **kwargs) -> KeyValueStorage:
        """Create a storage backend based on type."""
        kind = storage_type.lower()
        backends = {"memory": MemoryStorage, "file": FileStorage, "sqlite": SQLiteStorage}
        if kind not in backends:
            raise ConfigurationError(f"Unsupported storage type: {storage_type}")
        logger.debug("Creating %s storage with %s", kind, kwargs)
        try:
            return backends[kind](**kwargs)
        except TypeError as e:
            raise ConfigurationError(f"Invalid options for {kind} storage: {e}")
