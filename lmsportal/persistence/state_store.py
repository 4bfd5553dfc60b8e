"""
State store: owner of the users, courses and assignments collections.
"""

import json
import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from ..core.entities import Assignment, Course, State, User
from ..core.enums import STORAGE_KEY
from ..core.exceptions import StorageCorruptError, StorageError
from .storage import KeyValueStorage

logger = logging.getLogger("lmsportal.persistence.state_store")


class StateStore:
    """Loads, holds and persists the portal state.

    Persistence is best-effort: ``save`` reports a failed write as a returned
    error value and never rolls back memory, so the caller can warn the user
    that a completed action may not survive a restart.
    """

    def __init__(self, storage: KeyValueStorage, key: str = STORAGE_KEY):
        self._storage = storage
        self._key = key
        self._state: Optional[State] = None
        self._load_warning: Optional[StorageCorruptError] = None
        self._lock = threading.RLock()

    @property
    def storage(self) -> KeyValueStorage:
        return self._storage

    @property
    def state(self) -> State:
        """The in-memory state, loaded on first access."""
        with self._lock:
            if self._state is None:
                self.load()
            return self._state

    @property
    def load_warning(self) -> Optional[StorageCorruptError]:
        """Set when the last load found corrupt data and reset to the seed."""
        return self._load_warning

    @contextmanager
    def locked(self) -> Iterator[State]:
        """Hold the store lock while reading or mutating collections."""
        with self._lock:
            yield self.state

    def load(self) -> State:
        """Read the state record, falling back to the seed.

        An absent record is replaced by a fresh seed. A record that cannot be
        parsed or decoded is also replaced, and the problem is recorded in
        ``load_warning`` rather than raised.
        """
        with self._lock:
            self._load_warning = None
            try:
                raw = self._storage.get(self._key)
            except StorageError as e:
                logger.error("Could not read state record: %s", e.message)
                raw = None
                self._load_warning = StorageCorruptError(
                    "Error loading data. Resetting to defaults.",
                    details={"reason": e.message},
                )
            if raw is None:
                return self._reset_to_seed()
            try:
                state = State.from_dict(json.loads(raw))
            except (ValueError, KeyError, TypeError, AttributeError, RecursionError) as e:
                logger.warning("State record is corrupt, resetting to seed: %s", e)
                self._load_warning = StorageCorruptError(
                    "Error loading data. Resetting to defaults.",
                    details={"reason": str(e)},
                )
                return self._reset_to_seed()
            self._state = state
            return state

    def _reset_to_seed(self) -> State:
        self._state = State.seed()
        error = self.save(self._state)
        if error is not None:
            logger.error("Seed state could not be persisted: %s", error.message)
        return self._state

    def save(self, state: Optional[State] = None) -> Optional[StorageError]:
        """Serialize and write the state; returns the error on failure."""
        with self._lock:
            if state is not None:
                self._state = state
            target = self._state if self._state is not None else State.seed()
            try:
                payload = json.dumps(target.to_dict())
            except (TypeError, ValueError) as e:
                logger.error("State could not be serialized: %s", e)
                return StorageError(f"Could not serialize state: {e}")
            try:
                self._storage.set(self._key, payload)
            except StorageError as e:
                logger.error("State write failed: %s", e.message)
                return e
            return None

    def snapshot(self) -> Dict[str, Any]:
        """Serializable copy of the current state."""
        with self._lock:
            return self.state.to_dict()

    # Lookups

    @property
    def users(self) -> List[User]:
        return list(self.state.users)

    @property
    def courses(self) -> List[Course]:
        return list(self.state.courses)

    @property
    def assignments(self) -> List[Assignment]:
        return list(self.state.assignments)

    def find_user(self, user_id: Optional[str]) -> Optional[User]:
        """Find a user by id."""
        for user in self.users:
            if user.id == user_id:
                return user
        return None

    def find_course(self, course_id: Optional[str]) -> Optional[Course]:
        """Find a course by id."""
        for course in self.courses:
            if course.id == course_id:
                return course
        return None

    def find_assignment(self, assignment_id: Optional[str]) -> Optional[Assignment]:
        """Find an assignment by id."""
        for assignment in self.assignments:
            if assignment.id == assignment_id:
                return assignment
        return None

    def all_ids(self) -> set:
        with self._lock:
            return self.state.all_ids()

    # Appends

    def add_user(self, user: User) -> User:
        with self._lock:
            self.state.users.append(user)
            return user

    def add_course(self, course: Course) -> Course:
        with self._lock:
            self.state.courses.append(course)
            return course

    def add_assignment(self, assignment: Assignment) -> Assignment:
        with self._lock:
            self.state.assignments.append(assignment)
            return assignment
