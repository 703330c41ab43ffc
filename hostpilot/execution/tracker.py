"""
Completion tracking for submitted jobs.
"""

import time
from concurrent.futures import CancelledError
from typing import List, Optional, Sequence

from loguru import logger

from ..core.domain.execution import ExecutionJob, ExecutionResult, ExecutionStatus
from ..core.exceptions import ExecutionTimeoutError

log = logger.bind(component="CompletionTracker")

DEFAULT_TIMEOUT = 1800.0
DEFAULT_POLL_INTERVAL = 0.5


class CompletionTracker:
    """
    Polls jobs on the caller's thread until all finish or the timeout passes.

    Every job is disposed exactly once, whichever path finishes it.
    """

    def __init__(self, session_id: Optional[str] = None) -> None:
        self.session_id = session_id

    def collect(self, jobs: Sequence[ExecutionJob], timeout: float = DEFAULT_TIMEOUT,
                poll_interval: float = DEFAULT_POLL_INTERVAL) -> List[ExecutionResult]:
        """
        Collect the results of ``jobs``.

        Returns:
            One result per job, in completion order
        """
        results: List[ExecutionResult] = []
        deadline = time.monotonic() + timeout

        while True:
            for job in jobs:
                if not job.processed and job.future.done():
                    results.append(self._finish(job))

            if all(job.processed for job in jobs):
                break
            if time.monotonic() >= deadline:
                results.extend(self._time_out(jobs, timeout))
                break

            time.sleep(min(poll_interval, max(0.0, deadline - time.monotonic())))

        return results

    def _finish(self, job: ExecutionJob) -> ExecutionResult:
        result = self._retrieve(job)
        if result.succeeded:
            log.info(f"Module {job.module_name} completed in {result.duration_seconds:.2f}s")
        else:
            log.error(f"Module {job.module_name} failed: {result.error}")

        job.dispose()
        job.processed = True
        return result

    def _retrieve(self, job: ExecutionJob) -> ExecutionResult:
        try:
            result = job.future.result(timeout=0)
        except CancelledError:
            return self._failed(job, "Execution cancelled before a result was returned")
        except Exception as e:
            return self._failed(job, f"{type(e).__name__}: {e}")

        if result is None:
            return self._failed(job, "No result returned")
        if self.session_id and not result.session_id:
            result.session_id = self.session_id
        return result

    def _time_out(self, jobs: Sequence[ExecutionJob], timeout: float) -> List[ExecutionResult]:
        results = []
        now = time.time()
        for job in jobs:
            if job.processed:
                continue

            error = ExecutionTimeoutError(job.module_name, timeout)
            log.error(error.message)
            job.dispose()
            job.processed = True
            results.append(ExecutionResult(
                module_name=job.module_name,
                status=ExecutionStatus.TIMEOUT,
                session_id=self.session_id,
                duration_seconds=now - job.start_time,
                start_time=job.start_time,
                end_time=now,
                error=error.message,
            ))
        return results

    def _failed(self, job: ExecutionJob, error: str) -> ExecutionResult:
        now = time.time()
        return ExecutionResult(
            module_name=job.module_name,
            status=ExecutionStatus.FAILED,
            session_id=self.session_id,
            duration_seconds=now - job.start_time,
            start_time=job.start_time,
            end_time=now,
            error=error,
        )
