"""
Background job tracking for long-running operations.

Provides the job store, the coordinator that launches detached work, and the
extraction operation it runs.
"""

from .errors import (
    JobError,
    ValidationError,
    NotFoundError,
    DuplicateIdError,
    InvalidTransitionError,
)
from .jobs import Job, JobStore, JobCoordinator, describe_error
from .extract_worker import REQUIRED_FIELDS, POLL_INTERVAL, build_extract_operation, extract_once

__all__ = [
    "JobError",
    "ValidationError",
    "NotFoundError",
    "DuplicateIdError",
    "InvalidTransitionError",
    "Job",
    "JobStore",
    "JobCoordinator",
    "describe_error",
    "REQUIRED_FIELDS",
    "POLL_INTERVAL",
    "build_extract_operation",
    "extract_once",
]
