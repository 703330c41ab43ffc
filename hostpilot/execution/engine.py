"""
Parallel execution engine.

Runs a batch of named modules through a bounded worker pool and gathers one
result per submitted module.
"""

import time
import uuid
from typing import Any, List, Mapping, Optional, Sequence

from loguru import logger

from ..core.domain.execution import ExecutionJob, ParallelExecutionSummary
from ..infrastructure.config.models import ExecutionConfig
from .discovery import ModuleCatalog
from .pool import WorkerPool, clamp_concurrency, snapshot_context
from .tracker import CompletionTracker

log = logger.bind(component="ExecutionEngine")


class ParallelExecutionEngine:
    """Discovers modules and runs batches of them concurrently."""

    def __init__(self, config: Optional[ExecutionConfig] = None) -> None:
        self._config = config or ExecutionConfig()

    @property
    def config(self) -> ExecutionConfig:
        return self._config

    def discover_modules(self) -> ModuleCatalog:
        return ModuleCatalog.scan(self._config.module_directory)

    def run_batch(self, module_names: Sequence[str], max_concurrency: Optional[int] = None,
                  dry_run: bool = False, session_id: Optional[str] = None,
                  shared_context: Optional[Mapping[str, Any]] = None,
                  timeout: Optional[float] = None) -> ParallelExecutionSummary:
        """
        Run modules concurrently.

        Unknown module names are logged and skipped. Module failures and
        timeouts are reported in the returned summary, never raised.

        Args:
            module_names: Modules to run, matched case-insensitively
            max_concurrency: Live worker bound, clamped to 1..10
            dry_run: Passed to entry points that accept it
            session_id: Session identifier (generated when omitted)
            shared_context: Values every module receives as a read-only mapping
            timeout: Global timeout in seconds (defaults to config)
        """
        session_id = session_id or uuid.uuid4().hex[:12]
        concurrency = clamp_concurrency(
            self._config.max_concurrency if max_concurrency is None else max_concurrency)
        batch_timeout = self._config.timeout if timeout is None else timeout

        catalog = self.discover_modules()
        selected: List[str] = []
        skipped: List[str] = []
        for name in module_names:
            resolved = catalog.resolve(name)
            if resolved is None:
                log.warning(f"Unknown module '{name}' skipped")
                skipped.append(name)
            elif resolved in selected:
                log.warning(f"Module '{resolved}' requested more than once, running it once")
            else:
                selected.append(resolved)

        log.info(f"Session {session_id}: running {len(selected)} modules "
                 f"with concurrency {concurrency}" + (" (dry run)" if dry_run else ""))

        context = snapshot_context(shared_context)
        started = time.perf_counter()
        pool = WorkerPool(concurrency)
        try:
            jobs: List[ExecutionJob] = [
                pool.submit(name, catalog.path_of(name), context, dry_run, session_id)
                for name in selected
            ]
            results = CompletionTracker(session_id).collect(
                jobs, timeout=batch_timeout, poll_interval=self._config.poll_interval)
        finally:
            pool.shutdown(wait=False)

        summary = ParallelExecutionSummary(
            session_id=session_id,
            max_concurrency=concurrency,
            results=results,
            total_duration_seconds=time.perf_counter() - started,
            skipped_modules=skipped,
        )
        log.info(f"Session {session_id} finished: {summary.success_count} succeeded, "
                 f"{summary.failed_count} failed in {summary.total_duration_seconds:.2f}s")
        return summary
