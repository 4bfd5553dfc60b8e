"""
Session manager: remembers which user is logged in across restarts.
"""

import json
import logging
import threading
from typing import Optional

from ..core.entities import User
from ..core.enums import SessionState, USER_KEY
from ..core.exceptions import StorageError
from .state_store import StateStore
from .storage import KeyValueStorage

logger = logging.getLogger("lmsportal.persistence.session")


class SessionManager:
    """Tracks the active user, persisted apart from the main state record."""

    def __init__(self, storage: KeyValueStorage, key: str = USER_KEY):
        self._storage = storage
        self._key = key
        self._current_user: Optional[User] = None
        self._lock = threading.RLock()

    @property
    def current_user(self) -> Optional[User]:
        return self._current_user

    @property
    def state(self) -> SessionState:
        if self._current_user is None:
            return SessionState.LOGGED_OUT
        return SessionState.LOGGED_IN

    @property
    def is_logged_in(self) -> bool:
        return self.state is SessionState.LOGGED_IN

    def restore(self, store: StateStore) -> Optional[User]:
        """Reload the remembered user if it still exists in the store.

        A record naming an unknown user, or one that cannot be decoded, is
        discarded. Absence is a normal outcome and never raises.
        """
        with self._lock:
            try:
                raw = self._storage.get(self._key)
            except StorageError as e:
                logger.warning("Could not read session record: %s", e.message)
                return None
            if raw is None:
                return None
            try:
                remembered = User.from_dict(json.loads(raw))
            except (ValueError, KeyError, TypeError, AttributeError, RecursionError) as e:
                logger.warning("Discarding unreadable session record: %s", e)
                self._discard()
                return None
            user = store.find_user(remembered.id)
            if user is None:
                logger.info("Remembered user %s no longer exists, clearing session", remembered.id)
                self._discard()
                return None
            self._current_user = user
            return user

    def begin(self, user: User) -> None:
        """Make ``user`` the active session and remember it."""
        with self._lock:
            self._current_user = user
            try:
                self._storage.set(self._key, json.dumps(user.to_dict()))
            except StorageError as e:
                logger.error("Session for %s could not be persisted: %s", user.id, e.message)

    def end(self) -> None:
        """Forget the active user. Safe to call when already logged out."""
        with self._lock:
            self._current_user = None
            self._discard()

    def _discard(self) -> None:
        try:
            self._storage.delete(self._key)
        except StorageError as e:
            logger.warning("Could not clear session record: %s", e.message)
