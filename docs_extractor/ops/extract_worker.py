"""
Background operation for extraction jobs.

Builds the callable the coordinator runs for each submitted job.
"""

import asyncio
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Mapping, Optional

if TYPE_CHECKING:
    from ..config.settings import Settings
    from ..persist.artifacts import ArtifactStore
    from .jobs import Job, JobCoordinator

# Payload keys a submission must carry
REQUIRED_FIELDS = ("docsUrl", "extractionType")

# Seconds between status checks, matching the web UI
POLL_INTERVAL = 2.0


def build_extract_operation(
    settings: "Settings",
    artifacts: Optional["ArtifactStore"] = None,
) -> Callable[[Mapping[str, Any]], Awaitable[Dict[str, Any]]]:
    """
    Create the per-job extraction operation.

    A fresh extractor is built inside each job, so missing API keys fail
    that job with a readable error instead of stopping the server.

    Args:
        settings: Application settings (API keys, model, limits)
        artifacts: Where generated documents are saved

    Returns:
        Async function taking the submitted payload and returning the result
    """
    from ..generation.extractor import DocsExtractor

    async def run_extract(payload: Mapping[str, Any]) -> Dict[str, Any]:
        extractor = DocsExtractor.from_settings(settings, artifacts=artifacts)
        try:
            return await extractor.extract(payload)
        finally:
            await extractor.aclose()

    return run_extract


async def extract_once(
    coordinator: "JobCoordinator",
    payload: Mapping[str, Any],
    poll_interval: float = POLL_INTERVAL,
    timeout: Optional[float] = None,
) -> "Job":
    """
    Submit one job and poll until it reaches a terminal state.

    Polls ``status`` the same way the browser UI does, rather than awaiting
    the background task.

    Raises:
        ValidationError: if the payload is missing required fields
        asyncio.TimeoutError: if ``timeout`` seconds pass first
    """
    loop = asyncio.get_running_loop()
    deadline = None if timeout is None else loop.time() + timeout

    job_id = coordinator.submit(payload)
    while True:
        job = coordinator.status(job_id)
        if job.is_terminal:
            return job
        if deadline is not None and loop.time() >= deadline:
            raise asyncio.TimeoutError(f"Job {job_id} still processing after {timeout}s")
        await asyncio.sleep(poll_interval)
