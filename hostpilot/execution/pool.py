"""
Bounded worker pool running modules on threads.

Each submitted module is an isolated unit: its file is executed into a fresh
module object, its ``invoke_<name>`` entry point is called with the
parameters it accepts, and the outcome is returned as an ``ExecutionResult``.
Nothing is shared between units except the read-only context snapshot.
"""

import concurrent.futures
import copy
import importlib.util
import inspect
import threading
import time
import traceback
import types
import uuid
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Optional

from loguru import logger

from ..core.domain.execution import ExecutionJob, ExecutionResult, ExecutionStatus
from ..core.exceptions import ModuleEntryPointError, PluginLoadError
from .discovery import entry_point_name

log = logger.bind(component="WorkerPool")

MIN_WORKERS = 1
MAX_WORKERS = 10
ENTRY_POINT_PARAMETERS = ("context", "dry_run", "cancel_event")


def clamp_concurrency(max_concurrency: int) -> int:
    return max(MIN_WORKERS, min(MAX_WORKERS, int(max_concurrency)))


def freeze_value(value: Any) -> Any:
    """Recursively copy ``value`` with containers replaced by read-only counterparts."""
    if isinstance(value, Mapping):
        return MappingProxyType({key: freeze_value(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze_value(item) for item in value)
    if isinstance(value, (set, frozenset)):
        return frozenset(freeze_value(item) for item in value)
    return copy.deepcopy(value)


def snapshot_context(shared_context: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    """
    Read-only deep copy of the shared context taken at submission time.

    Nested dicts become mappingproxies, lists and tuples become tuples and
    sets become frozensets, so no unit can write into a value another unit
    or the caller still holds.
    """
    return freeze_value(dict(shared_context or {}))


def load_module_file(module_name: str, file_path: Path) -> types.ModuleType:
    """Execute a module file into a new module object outside ``sys.modules``."""
    unique_name = f"hostpilot_module_{module_name.replace('-', '_')}_{uuid.uuid4().hex[:8]}"
    spec = importlib.util.spec_from_file_location(unique_name, str(file_path))
    if not spec or not spec.loader:
        raise PluginLoadError(f"Cannot load module from {file_path}")

    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def entry_point_kwargs(func: Any, context: Mapping[str, Any], dry_run: bool,
                       cancel_event: threading.Event) -> dict:
    available = {"context": context, "dry_run": dry_run, "cancel_event": cancel_event}
    try:
        parameters = inspect.signature(func).parameters
    except (TypeError, ValueError):
        return {}

    if any(p.kind == inspect.Parameter.VAR_KEYWORD for p in parameters.values()):
        return available
    return {name: available[name] for name in ENTRY_POINT_PARAMETERS if name in parameters}


def run_module(module_name: str, file_path: Path, context: Mapping[str, Any], dry_run: bool,
               session_id: str, cancel_event: threading.Event) -> ExecutionResult:
    """Body of one isolated unit. Never raises."""
    unit_log = logger.bind(component=f"module.{module_name}", session_id=session_id)
    start_time = time.time()
    started = time.perf_counter()

    def finish(status: ExecutionStatus, result: Any = None,
               error: Optional[str] = None) -> ExecutionResult:
        return ExecutionResult(
            module_name=module_name,
            status=status,
            session_id=session_id,
            result=result,
            duration_seconds=time.perf_counter() - started,
            start_time=start_time,
            end_time=time.time(),
            error=error,
        )

    unit_log.info(f"Starting module {module_name}" + (" (dry run)" if dry_run else ""))
    try:
        module = load_module_file(module_name, file_path)
        entry_name = entry_point_name(module_name)
        entry = getattr(module, entry_name, None)
        if not callable(entry):
            raise ModuleEntryPointError(module_name, entry_name)

        result = entry(**entry_point_kwargs(entry, context, dry_run, cancel_event))
    except ModuleEntryPointError as e:
        unit_log.error(e.message)
        return finish(ExecutionStatus.FAILED, error=e.message)
    except Exception as e:
        unit_log.error(f"Module {module_name} failed: {e}")
        unit_log.debug(traceback.format_exc())
        return finish(ExecutionStatus.FAILED, error=f"{type(e).__name__}: {e}")

    outcome = finish(ExecutionStatus.SUCCESS, result=result)
    unit_log.info(f"Module {module_name} finished in {outcome.duration_seconds:.2f}s")
    return outcome


class WorkerPool:
    """
    Thread pool enforcing the live-concurrency bound.

    Submission never blocks; the executor queues units beyond
    ``max_concurrency``.
    """

    def __init__(self, max_concurrency: int = 3) -> None:
        self.max_concurrency = clamp_concurrency(max_concurrency)
        if self.max_concurrency != max_concurrency:
            log.warning(f"max_concurrency {max_concurrency} clamped to {self.max_concurrency}")
        self._executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=self.max_concurrency,
            thread_name_prefix="hostpilot-worker",
        )
        self._active_lock = threading.Lock()
        self._active = 0

    @property
    def active_jobs(self) -> int:
        return self._active

    def submit(self, module_name: str, file_path: Path, context: Optional[Mapping[str, Any]] = None,
               dry_run: bool = False, session_id: Optional[str] = None) -> ExecutionJob:
        """Submit one module and return its job without waiting for it."""
        snapshot = snapshot_context(context)
        cancel_event = threading.Event()

        with self._active_lock:
            self._active += 1
        future = self._executor.submit(
            run_module, module_name, Path(file_path), snapshot, dry_run,
            session_id or "", cancel_event)

        log.debug(f"Submitted module {module_name}")
        return ExecutionJob(
            module_name=module_name,
            future=future,
            cancel_event=cancel_event,
            on_dispose=self._release,
        )

    def _release(self, job: ExecutionJob) -> None:
        with self._active_lock:
            self._active -= 1
        log.debug(f"Disposed job for module {job.module_name}")

    def shutdown(self, wait: bool = False) -> None:
        """Stop accepting work; queued units that never started are cancelled."""
        self._executor.shutdown(wait=wait, cancel_futures=True)

    def __enter__(self) -> 'WorkerPool':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.shutdown(wait=False)
