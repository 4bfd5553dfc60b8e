"""
Persistence module: key/value storage, the state store and the session.
"""

from .storage import KeyValueStorage, MemoryStorage, FileStorage, SQLiteStorage, StorageFactory
from .state_store import StateStore
from .session_store import SessionManager

__all__ = [
    "KeyValueStorage",
    "MemoryStorage",
    "FileStorage",
    "SQLiteStorage",
    "StorageFactory",
    "StateStore",
    "SessionManager",
]
