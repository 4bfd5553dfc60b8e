"""
Per-resource locking for read-check-append sequences.
"""

import logging
import threading
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional

from ..core.exceptions import ConcurrencyError

logger = logging.getLogger("lmsportal.services.concurrency")


@dataclass
class LockInfo:
    """Information about a held lock."""
    lock_id: str
    resource_id: str
    holder_id: str
    acquired_at: float


class ConcurrencyManager:
    """Hands out one re-entrant lock per resource id.

    Enrollment locks ``course:<id>`` and submission/grading lock
    ``assignment:<id>`` so the at-most-once checks and the append they guard
    cannot interleave with another request for the same entity.
    """

    def __init__(self, default_timeout: Optional[float] = 5.0):
        self._default_timeout = default_timeout
        self._resource_locks: Dict[str, threading.RLock] = {}
        # Holders plus waiters per resource; an entry is dropped at zero
        self._lock_users: Dict[str, int] = {}
        self._lock_holders: Dict[str, LockInfo] = {}
        self._lock = threading.RLock()

    def _reference(self, resource_id: str) -> threading.RLock:
        with self._lock:
            if resource_id not in self._resource_locks:
                self._resource_locks[resource_id] = threading.RLock()
                self._lock_users[resource_id] = 0
            self._lock_users[resource_id] += 1
            return self._resource_locks[resource_id]

    def _unreference(self, resource_id: str) -> None:
        with self._lock:
            self._lock_users[resource_id] -= 1
            if self._lock_users[resource_id] == 0:
                del self._lock_users[resource_id]
                del self._resource_locks[resource_id]

    @property
    def tracked_resources(self) -> int:
        """Number of resources with a live lock entry."""
        with self._lock:
            return len(self._resource_locks)

    def acquire_lock(self, resource_id: str, holder_id: Optional[str] = None,
                     timeout: Optional[float] = None) -> str:
        """Block until the resource lock is free or the timeout elapses."""
        holder_id = holder_id or f"thread_{threading.get_ident()}"
        wait = self._default_timeout if timeout is None else timeout
        resource_lock = self._reference(resource_id)

        if not resource_lock.acquire(timeout=-1 if wait is None else wait):
            self._unreference(resource_id)
            raise ConcurrencyError(
                f"Cannot acquire lock on {resource_id} within {wait}s",
                details={"resource_id": resource_id, "holder_id": holder_id},
            )

        lock_id = str(uuid.uuid4())
        with self._lock:
            self._lock_holders[lock_id] = LockInfo(
                lock_id=lock_id,
                resource_id=resource_id,
                holder_id=holder_id,
                acquired_at=time.time(),
            )
        logger.debug("Lock %s on %s acquired by %s", lock_id, resource_id, holder_id)
        return lock_id

    def release_lock(self, lock_id: str) -> bool:
        """Release a lock previously returned by ``acquire_lock``."""
        with self._lock:
            lock_info = self._lock_holders.pop(lock_id, None)
            if lock_info is None:
                return False
            self._resource_locks[lock_info.resource_id].release()
            self._unreference(lock_info.resource_id)
        logger.debug("Lock %s on %s released", lock_id, lock_info.resource_id)
        return True

    @contextmanager
    def lock(self, resource_id: str, holder_id: Optional[str] = None,
             timeout: Optional[float] = None) -> Iterator[str]:
        """Context manager for acquiring and releasing locks."""
        lock_id = self.acquire_lock(resource_id, holder_id, timeout)
        try:
            yield lock_id
        finally:
            self.release_lock(lock_id)

    def get_lock_info(self, resource_id: str) -> List[LockInfo]:
        """Get information about all locks held on a resource."""
        with self._lock:
            return [info for info in self._lock_holders.values() if info.resource_id == resource_id]

    def get_holder_locks(self, holder_id: str) -> List[LockInfo]:
        """Get all locks held by a specific holder."""
        with self._lock:
            return [info for info in self._lock_holders.values() if info.holder_id == holder_id]
