"""
Error taxonomy for the job-tracking layer.

Client-facing errors (validation, not found) carry a message that is safe to
return in an HTTP response. The remaining errors indicate a broken internal
invariant and are only logged.
"""

from typing import Sequence


class JobError(Exception):
    """Base class for job store and coordinator errors."""


class ValidationError(JobError):
    """Submission payload is missing required fields."""

    def __init__(self, missing: Sequence[str]):
        self.missing = list(missing)
        super().__init__(f"Missing required fields: {', '.join(self.missing)}")


class NotFoundError(JobError):
    """No job exists with the requested identifier."""

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Job not found: {job_id}")


class DuplicateIdError(JobError):
    """A job with this identifier already exists."""

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Job already exists: {job_id}")


class InvalidTransitionError(JobError):
    """Attempted to move a job out of a terminal state."""

    def __init__(self, job_id: str, current: str, target: str):
        self.job_id = job_id
        self.current = current
        self.target = target
        super().__init__(f"Job {job_id} cannot move from {current} to {target}")
