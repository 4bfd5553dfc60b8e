"""
Main entry point for the LMS portal.
"""

import argparse
import logging
from typing import Any, Dict, List, Optional

from .api.rest_api import LMSRestAPI
from .config import load_config, storage_options
from .core.entities import User
from .core.exceptions import ConfigurationError
from .persistence import SessionManager, StateStore, StorageFactory
from .services import (
    AccountService, AssignmentService, ConcurrencyManager, CourseService, OperationResult,
)

logger = logging.getLogger("lmsportal")


class LMSPortal:
    """Wires storage, store, session, services and the REST API together."""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self._config = load_config(overrides=config, environ={}) if config is not None else load_config()
        self._storage = None
        self._store = None
        self._session = None
        self._concurrency_manager = None
        self._account_service = None
        self._course_service = None
        self._assignment_service = None
        self._rest_api = None

        # Initialize platform
        self._initialize_platform()

    def _initialize_platform(self):
        """Initialize the portal with all services."""
        logger.info("Initializing LMS portal...")

        storage_type = self._config["storage_type"]
        self._storage = StorageFactory.create_storage(storage_type, **storage_options(self._config))
        logger.info("Storage initialized: %s", storage_type)

        self._store = StateStore(self._storage)
        self._store.load()
        if self._store.load_warning is not None:
            logger.warning("%s", self._store.load_warning.message)
        logger.info(
            "State loaded: %d users, %d courses, %d assignments",
            len(self._store.users), len(self._store.courses), len(self._store.assignments),
        )

        self._session = SessionManager(self._storage)
        self._concurrency_manager = ConcurrencyManager(default_timeout=self._config.get("lock_timeout"))

        shared = (self._store, self._session, self._concurrency_manager)
        self._account_service = AccountService(*shared)
        self._course_service = CourseService(*shared)
        self._assignment_service = AssignmentService(*shared)

        restored = self._account_service.restore_session()
        if restored is not None:
            logger.info("Restored session for %s (%s)", restored.name, restored.role.value)

        self._rest_api = LMSRestAPI(
            self._session,
            self._account_service,
            self._course_service,
            self._assignment_service,
        )
        logger.info("LMS portal initialized successfully")

    @property
    def config(self) -> Dict[str, Any]:
        return self._config

    @property
    def store(self) -> StateStore:
        return self._store

    @property
    def session(self) -> SessionManager:
        return self._session

    @property
    def accounts(self) -> AccountService:
        return self._account_service

    @property
    def courses(self) -> CourseService:
        return self._course_service

    @property
    def assignments(self) -> AssignmentService:
        return self._assignment_service

    @property
    def app(self):
        """The FastAPI application."""
        return self._rest_api.app

    def start_rest_server(self, host: Optional[str] = None, port: Optional[int] = None):
        """Serve the REST API until interrupted."""
        import uvicorn

        host = host or self._config["host"]
        port = port or self._config["port"]
        logger.info("REST server starting on http://%s:%s (docs at /docs)", host, port)
        uvicorn.run(self.app, host=host, port=port, log_level=self._config["log_level"].lower())

    def run_demo(self) -> List[OperationResult]:
        """Walk through an instructor and a student session."""
        logger.info("Running LMS portal demonstration...")
        results: List[OperationResult] = []

        def record(result: OperationResult) -> OperationResult:
            results.append(result)
            logger.info("  [%s] %s", result.status.value, result.message)
            return result

        instructor: User = record(self._account_service.login("Alice", "instructor")).data
        course = record(self._course_service.create_course("CS101", "Demo course", instructor.id)).data
        record(self._assignment_service.create_assignment(course.id, "HW1", "", "2030-01-15", instructor.id))
        assignment = results[-1].data
        record(self._assignment_service.create_assignment(course.id, "HW2", "", "2030-13-01", instructor.id))
        record(self._account_service.logout())

        student: User = record(self._account_service.login("Bob", "student")).data
        record(self._course_service.enroll_in_course("missing-course", student.id))
        record(self._course_service.enroll_in_course(course.id, student.id))
        record(self._course_service.enroll_in_course(course.id, student.id))
        record(self._assignment_service.submit_assignment(assignment.id, student.id, "My first answer"))
        record(self._assignment_service.submit_assignment(assignment.id, student.id, "A second try"))
        record(self._account_service.logout())

        record(self._assignment_service.grade_submission(assignment.id, 0, "90/100", instructor.id))
        record(self._assignment_service.grade_submission(assignment.id, 0, "95/100", instructor.id))
        record(self._account_service.logout())

        logger.info("Demo completed")
        return results


def main(argv: Optional[List[str]] = None):
    """Main entry point."""
    parser = argparse.ArgumentParser(description="LMS Portal")
    parser.add_argument("--host", type=str, help="REST server host")
    parser.add_argument("--port", type=int, help="REST server port")
    parser.add_argument("--config", type=str, help="Configuration file path")
    parser.add_argument("--data-dir", type=str, help="Directory for file storage")
    parser.add_argument("--storage-type", choices=["memory", "file", "sqlite"], help="Storage backend")
    parser.add_argument("--demo", action="store_true", help="Run demo mode")

    args = parser.parse_args(argv)

    overrides: Dict[str, Any] = {}
    if args.host:
        overrides["host"] = args.host
    if args.port:
        overrides["port"] = args.port
    if args.storage_type:
        overrides["storage_type"] = args.storage_type
    if args.data_dir:
        overrides["storage_config"] = {"base_path": args.data_dir}

    try:
        config = load_config(args.config, overrides)
    except ConfigurationError as e:
        parser.error(e.message)

    logging.basicConfig(
        level=config["log_level"].upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    portal = LMSPortal(config)
    if args.demo:
        portal.run_demo()
        return 0

    try:
        portal.start_rest_server()
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
