"""
HTTP client for the LMS portal REST API.

Usage:
    client = PortalClient("http://127.0.0.1:8000")
    client.login("Ada", "instructor")
    course = client.create_course("Intro to Python", "Loops and functions")["data"]
"""

import logging
from typing import Any, Dict, List, Optional

import requests

from .core.exceptions import LMSException

logger = logging.getLogger("lmsportal.client")

DEFAULT_BASE_URL = "http://127.0.0.1:8000"


class PortalClientError(LMSException):
    """Raised when the portal answers with an error or cannot be reached."""
    error_code = "client_error"

    def __init__(self, message: str, status_code: Optional[int] = None, detail: Any = None):
        super().__init__(message, details={"status_code": status_code, "detail": detail})
        self.status_code = status_code
        self.detail = detail


def _error_message(detail: Any, fallback: str) -> str:
    if isinstance(detail, dict) and detail.get("message"):
        return str(detail["message"])
    if isinstance(detail, str) and detail:
        return detail
    if isinstance(detail, list) and detail:
        # Request validation errors: report the first one
        first = detail[0]
        if isinstance(first, dict) and first.get("msg"):
            return str(first["msg"])
    return fallback


class PortalClient:
    """Thin wrapper over ``requests.Session`` for the portal endpoints."""

    def __init__(self, base_url: str = DEFAULT_BASE_URL, session: Optional[requests.Session] = None,
                 timeout: float = 5.0):
        self._base_url = base_url.rstrip("/")
        self._session = session or requests.Session()
        self._timeout = timeout

    @property
    def base_url(self) -> str:
        return self._base_url

    def _request(self, method: str, path: str, json: Optional[Dict[str, Any]] = None,
                 params: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self._base_url}{path}"
        try:
            response = self._session.request(method, url, json=json, params=params, timeout=self._timeout)
        except requests.exceptions.RequestException as e:
            raise PortalClientError(f"Cannot reach {url}: {e}")

        if not response.ok:
            try:
                detail = response.json().get("detail")
            except ValueError:
                detail = response.text
            message = _error_message(detail, f"{method} {path} failed with {response.status_code}")
            logger.debug("%s %s -> %s: %s", method, path, response.status_code, message)
            raise PortalClientError(message, status_code=response.status_code, detail=detail)
        return response.json()

    # Session

    def health(self) -> Dict[str, str]:
        return self._request("GET", "/health")

    def login(self, name: str, role: str) -> Dict[str, Any]:
        """Log in as a new user; ``data`` holds the created user."""
        return self._request("POST", "/session", json={"name": name, "role": role})

    def logout(self) -> Dict[str, Any]:
        return self._request("DELETE", "/session")

    def current_user(self) -> Dict[str, Any]:
        return self._request("GET", "/session")

    # Courses

    def list_courses(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/courses")

    def create_course(self, title: str, description: str = "") -> Dict[str, Any]:
        return self._request("POST", "/courses", json={"title": title, "description": description})

    def enroll(self, course_id: str) -> Dict[str, Any]:
        """Enroll the logged-in student; a repeat enroll reports ``already_enrolled``."""
        return self._request("POST", f"/courses/{course_id}/enroll")

    def roster(self, course_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/courses/{course_id}/roster")

    # Assignments

    def list_assignments(self, course_id: Optional[str] = None) -> List[Dict[str, Any]]:
        params = {"course_id": course_id} if course_id else None
        return self._request("GET", "/assignments", params=params)

    def create_assignment(self, course_id: str, title: str, description: str = "",
                          due_date: Optional[str] = None) -> Dict[str, Any]:
        payload = {"course_id": course_id, "title": title, "description": description, "due_date": due_date}
        return self._request("POST", "/assignments", json=payload)

    def submit(self, assignment_id: str, text: str) -> Dict[str, Any]:
        return self._request("POST", f"/assignments/{assignment_id}/submissions", json={"text": text})

    def list_submissions(self, assignment_id: str) -> List[Dict[str, Any]]:
        return self._request("GET", f"/assignments/{assignment_id}/submissions")

    def grade(self, assignment_id: str, index: int, grade: str) -> Dict[str, Any]:
        return self._request(
            "PUT",
            f"/assignments/{assignment_id}/submissions/{index}/grade",
            json={"grade": grade},
        )
