"""
Job tracking for long-running background operations.

A JobStore holds one record per job. A JobCoordinator launches the external
operation as a detached asyncio task and records its outcome in the store;
clients poll the coordinator by job id until the status is terminal.
"""

import asyncio
import inspect
import threading
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Dict, List, Literal, Mapping, Optional, Sequence, Union

from ..telemetry import get_logger
from .errors import (
    DuplicateIdError,
    InvalidTransitionError,
    JobError,
    NotFoundError,
    ValidationError,
)

logger = get_logger(__name__)

JobState = Literal["processing", "completed", "failed"]

PROCESSING = "processing"
COMPLETED = "completed"
FAILED = "failed"
TERMINAL_STATES = frozenset({COMPLETED, FAILED})

CANCELLED_MESSAGE = "cancelled: coordinator shut down"

# Receives the submitted payload; returns the result or raises.
Operation = Callable[[Mapping[str, Any]], Union[Awaitable[Any], Any]]


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


def describe_error(exc: BaseException) -> str:
    """Human-readable failure text for a job record."""
    return str(exc) or type(exc).__name__


@dataclass(frozen=True)
class Job:
    """Point-in-time snapshot of a background job."""

    id: str
    status: JobState = PROCESSING
    result: Any = None              # set only when completed
    error: Optional[str] = None     # set only when failed
    created_at: str = field(default_factory=_utcnow)
    finished_at: Optional[str] = None
    payload: dict = field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATES

    def to_dict(self, include_meta: bool = False) -> dict:
        """
        Convert to the polling response shape.

        ``result`` appears only for completed jobs and ``error`` only for
        failed ones.
        """
        data: Dict[str, Any] = {"status": self.status}
        if self.status == COMPLETED:
            data["result"] = self.result
        elif self.status == FAILED:
            data["error"] = self.error

        if include_meta:
            data["id"] = self.id
            data["created_at"] = self.created_at
            data["finished_at"] = self.finished_at

        return data


class JobStore:
    """
    In-memory job registry.

    Every public method holds the lock for its whole read or write, so
    snapshots are never torn and inserts never race lookups. Records are
    immutable; a transition swaps in a new snapshot.
    """

    def __init__(self):
        self._jobs: Dict[str, Job] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def __contains__(self, job_id: object) -> bool:
        with self._lock:
            return job_id in self._jobs

    def create(self, job_id: str, payload: Optional[Mapping[str, Any]] = None) -> Job:
        """
        Insert a new job in the processing state.

        Raises:
            DuplicateIdError: if ``job_id`` is already registered
        """
        job = Job(id=job_id, payload=dict(payload or {}))

        with self._lock:
            if job_id in self._jobs:
                raise DuplicateIdError(job_id)
            self._jobs[job_id] = job

        return job

    def get(self, job_id: str) -> Job:
        """
        Get the current snapshot of a job.

        Raises:
            NotFoundError: if no job has this id
        """
        with self._lock:
            job = self._jobs.get(job_id)

        if job is None:
            raise NotFoundError(job_id)
        return job

    def mark_completed(self, job_id: str, result: Any) -> Job:
        """Move a processing job to completed with ``result``."""
        return self._finish(job_id, COMPLETED, result=result)

    def mark_failed(self, job_id: str, error: str) -> Job:
        """Move a processing job to failed with ``error``."""
        return self._finish(job_id, FAILED, error=str(error))

    def _finish(self, job_id: str, status: str, result: Any = None, error: Optional[str] = None) -> Job:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise NotFoundError(job_id)
            if job.status != PROCESSING:
                raise InvalidTransitionError(job_id, job.status, status)

            job = replace(
                job,
                status=status,
                result=result,
                error=error,
                finished_at=_utcnow(),
            )
            self._jobs[job_id] = job

        return job

    def list(self, status: Optional[str] = None) -> List[Job]:
        """
        List jobs, optionally filtered by status.

        Args:
            status: Filter by status (processing, completed, failed)

        Returns:
            Jobs sorted newest first
        """
        with self._lock:
            jobs = list(self._jobs.values())

        if status:
            jobs = [j for j in jobs if j.status == status]

        jobs.sort(key=lambda j: j.created_at, reverse=True)
        return jobs

    def counts(self) -> Dict[str, int]:
        """Number of jobs per status."""
        counts = {PROCESSING: 0, COMPLETED: 0, FAILED: 0}
        with self._lock:
            for job in self._jobs.values():
                counts[job.status] += 1
        return counts

    def purge_finished(self, max_age_hours: float, now: Optional[datetime] = None) -> int:
        """
        Remove terminal jobs that finished more than ``max_age_hours`` ago.

        Never called automatically. Processing jobs are always kept.

        Returns:
            Number of jobs removed
        """
        now = now or datetime.now(timezone.utc)
        cutoff = now - timedelta(hours=max_age_hours)
        removed = 0

        with self._lock:
            for job_id, job in list(self._jobs.items()):
                if not job.is_terminal or not job.finished_at:
                    continue
                if datetime.fromisoformat(job.finished_at) < cutoff:
                    del self._jobs[job_id]
                    removed += 1

        return removed


class JobCoordinator:
    """
    Bridges synchronous submissions to detached background execution.

    ``submit`` registers the job and schedules the operation on the running
    event loop, then returns without waiting for it. The task that runs the
    operation is the only writer of its job's record.
    """

    def __init__(
        self,
        store: JobStore,
        operation: Operation,
        required_fields: Sequence[str] = (),
    ):
        """
        Initialize coordinator.

        Args:
            store: Job registry to record state in
            operation: External operation run once per job
            required_fields: Payload keys that must be present and non-blank
        """
        self.store = store
        self.operation = operation
        self.required_fields = tuple(required_fields)

        # Held only so in-flight tasks are not garbage collected
        self._tasks: Dict[str, asyncio.Task] = {}

    @property
    def pending(self) -> int:
        """Number of operations still running."""
        return len(self._tasks)

    def validate(self, payload: Any) -> None:
        """
        Check the payload against the required-fields contract.

        Raises:
            ValidationError: listing every missing field
        """
        if not isinstance(payload, Mapping):
            raise ValidationError(self.required_fields)

        missing = [name for name in self.required_fields if _is_blank(payload.get(name))]
        if missing:
            raise ValidationError(missing)

    def submit(self, payload: Mapping[str, Any]) -> str:
        """
        Register a job and launch its operation in the background.

        Must be called from a running event loop.

        Returns:
            Job ID, already visible to ``status`` as processing
        """
        self.validate(payload)
        loop = asyncio.get_running_loop()

        job_id = str(uuid.uuid4())
        self.store.create(job_id, payload)

        task = loop.create_task(self._run(job_id, dict(payload)), name=f"job-{job_id}")
        self._tasks[job_id] = task
        task.add_done_callback(lambda _t, jid=job_id: self._tasks.pop(jid, None))

        logger.info("job_submitted", job_id=job_id)
        return job_id

    def status(self, job_id: str) -> Job:
        """Current snapshot of a job; raises NotFoundError if unknown."""
        return self.store.get(job_id)

    def list(self, status: Optional[str] = None) -> List[Job]:
        return self.store.list(status=status)

    async def wait(self, job_id: str, timeout: Optional[float] = None) -> Job:
        """
        Wait for a job to reach a terminal state.

        Used by the command line runner and tests; request handlers poll
        ``status`` instead.

        Raises:
            NotFoundError: if the job is unknown
            asyncio.TimeoutError: if ``timeout`` elapses first
        """
        job = self.status(job_id)
        task = self._tasks.get(job_id)
        if task is not None and not job.is_terminal:
            await asyncio.wait_for(asyncio.shield(task), timeout)
        return self.status(job_id)

    async def shutdown(self) -> None:
        """Cancel in-flight operations and wait for them to record failure."""
        in_flight = dict(self._tasks)
        for task in in_flight.values():
            task.cancel()
        if in_flight:
            await asyncio.gather(*in_flight.values(), return_exceptions=True)

        # A task cancelled before its first step never reaches _run's handler
        for job_id in in_flight:
            if not self.store.get(job_id).is_terminal:
                self._record(self.store.mark_failed, job_id, CANCELLED_MESSAGE)

    async def _invoke(self, payload: dict) -> Any:
        if inspect.iscoroutinefunction(self.operation):
            return await self.operation(payload)

        # Plain callables run in a worker thread so they cannot stall the loop
        outcome = await asyncio.to_thread(self.operation, payload)
        if inspect.isawaitable(outcome):
            outcome = await outcome
        return outcome

    async def _run(self, job_id: str, payload: dict) -> None:
        try:
            result = await self._invoke(payload)
        except asyncio.CancelledError:
            self._record(self.store.mark_failed, job_id, CANCELLED_MESSAGE)
            raise
        except Exception as e:
            logger.warning("job_failed", job_id=job_id, error=describe_error(e), exc_info=True)
            self._record(self.store.mark_failed, job_id, describe_error(e))
        else:
            if self._record(self.store.mark_completed, job_id, result):
                logger.info("job_completed", job_id=job_id)

    def _record(self, transition: Callable[[str, Any], Job], job_id: str, value: Any) -> bool:
        try:
            transition(job_id, value)
        except JobError as e:
            logger.error("job_state_error", job_id=job_id, error=str(e))
            return False
        return True


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False
