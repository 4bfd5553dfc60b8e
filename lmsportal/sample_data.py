"""
Script to add sample data to a running LMS portal via the REST API.
Make sure the server is running before executing this script.

Usage:
    lmsportal-sample-data --base-url http://127.0.0.1:8000
"""

import argparse
import logging
import os
import sys
from typing import Any, Dict, List, Optional

from .client import DEFAULT_BASE_URL, PortalClient, PortalClientError

logger = logging.getLogger("lmsportal.sample_data")


def _console_supports_utf8() -> bool:
    enc = getattr(sys.stdout, "encoding", None)
    return enc is not None and "utf" in enc.lower()


_OK_CHAR = "✓" if _console_supports_utf8() else "[OK]"
_FAIL_CHAR = "✗" if _console_supports_utf8() else "[FAIL]"


def populate(client: PortalClient) -> Dict[str, Any]:
    """Create an instructor's course and assignment, then a student's enrollment and submission.

    The server keeps a single session, so each login replaces the previous
    user. Returns the created records keyed by kind.
    """
    created: Dict[str, Any] = {}

    created["instructor"] = client.login("Ada Lovelace", "instructor")["data"]
    created["course"] = client.create_course(
        "Intro to Python", "Variables, loops and functions"
    )["data"]
    course_id = created["course"]["id"]
    created["assignment"] = client.create_assignment(
        course_id, "Hello World", "Print a greeting to the console", "2030-09-01"
    )["data"]
    logger.info("Instructor %s created course %s", created["instructor"]["id"], course_id)
    client.logout()

    created["student"] = client.login("Grace Hopper", "student")["data"]
    client.enroll(course_id)
    client.enroll("c1")
    created["submission"] = client.submit(
        created["assignment"]["id"], "print('Hello, world!')"
    )["data"]
    logger.info("Student %s enrolled and submitted", created["student"]["id"])
    client.logout()

    return created


def _print_courses(courses: List[Dict[str, Any]]) -> None:
    print(f"\n{'='*60}")
    print(f"Courses ({len(courses)})")
    print(f"{'='*60}")
    for course in courses:
        print(f"  {course['id']:10} | {course['title']:30} | {course['student_count']} student(s)"
              f" | {course['instructor_name']}")


def main(argv: Optional[List[str]] = None) -> int:
    """Main execution."""
    parser = argparse.ArgumentParser(description="Add sample data to an LMS portal")
    parser.add_argument(
        "--base-url",
        default=os.environ.get("LMS_BASE_URL", DEFAULT_BASE_URL),
        help="Portal base URL (default: $LMS_BASE_URL or %(default)s)",
    )
    args = parser.parse_args(argv)

    client = PortalClient(args.base_url)
    try:
        client.health()
    except PortalClientError as e:
        print(f"{_FAIL_CHAR} Server is not running at {args.base_url}: {e.message}")
        print("\nPlease start the server first:")
        print("  lmsportal --port 8000")
        return 1
    print(f"{_OK_CHAR} Server is running")

    try:
        created = populate(client)
        # Listing needs a session; the student login ends in populate
        client.login("Sample Viewer", "student")
        courses = client.list_courses()
        client.logout()
    except PortalClientError as e:
        print(f"{_FAIL_CHAR} Failed to add sample data: {e.message}")
        return 1

    print(f"{_OK_CHAR} Created course: {created['course']['title']}")
    print(f"{_OK_CHAR} Created assignment: {created['assignment']['title']}")
    print(f"{_OK_CHAR} Student {created['student']['name']} enrolled and submitted")
    _print_courses(courses)
    print(f"\nView API docs: {args.base_url}/docs")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
