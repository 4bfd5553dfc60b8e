"""
Account service: mock login (which registers a new user) and logout.
"""

from typing import Any, Optional

from ..core.entities import User, generate_id
from ..core.enums import MIN_NAME_LENGTH, OperationStatus, Role
from ..core.exceptions import TooShortError, ValidationError
from ..core.text import sanitize_input
from .base import BaseService, OperationResult


def parse_role(role: Any) -> Role:
    """Accept a Role or its exact string value."""
    if isinstance(role, Role):
        return role
    if not role:
        raise ValidationError("Please select a role")
    try:
        return Role(role)
    except ValueError:
        raise ValidationError("Please select a role", details={"role": role})


class AccountService(BaseService):
    """Creates users on login and manages the session around them."""

    def login(self, name: Any, role: Any) -> OperationResult:
        """Register a new user with ``name`` and ``role`` and log them in."""
        return self._execute("login", lambda: self._login(name, role))

    def _login(self, name: Any, role: Any) -> OperationResult:
        trimmed = name.strip() if isinstance(name, str) else ""
        if not trimmed:
            raise ValidationError("Please enter your name", details={"field": "name"})
        parsed_role = parse_role(role)

        sanitized = sanitize_input(trimmed)
        if len(sanitized) < MIN_NAME_LENGTH:
            raise TooShortError(
                f"Name must be at least {MIN_NAME_LENGTH} characters",
                details={"field": "name"},
            )

        with self._store.locked() as state:
            user = User(id=generate_id("u", state.all_ids()), name=sanitized, role=parsed_role)
            self._store.add_user(user)
            storage_error = self._store.save()
        self._session.begin(user)
        return OperationResult.ok(
            f"Welcome, {user.name}",
            data=user,
            status=OperationStatus.CREATED,
            storage_error=storage_error,
        )

    def logout(self) -> OperationResult:
        """End the current session; harmless when nobody is logged in."""
        self._session.end()
        return OperationResult.ok("Logged out")

    def restore_session(self) -> Optional[User]:
        """Bring back the remembered user after a restart."""
        return self._session.restore(self._store)

    def current_user(self) -> Optional[User]:
        return self._session.current_user

    def storage_warning(self) -> Optional[str]:
        """Message of the reset performed when stored data was corrupt, if any."""
        warning = self._store.load_warning
        return warning.message if warning is not None else None
