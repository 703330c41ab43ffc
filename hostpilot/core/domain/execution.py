"""
Batch execution domain models.

``ExecutionJob`` tracks one submitted module, ``ExecutionResult`` is its
terminal outcome, and the two summary types describe a whole batch run.
"""

import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, Field


class ExecutionStatus(str, Enum):
    """Terminal status of a submitted module."""
    SUCCESS = "Success"
    FAILED = "Failed"
    TIMEOUT = "Timeout"


@dataclass
class ExecutionResult:
    """Outcome of one module run. Exactly one per submitted module."""

    module_name: str
    status: ExecutionStatus
    session_id: Optional[str] = None
    result: Any = None
    duration_seconds: float = 0.0
    start_time: float = field(default_factory=time.time)
    end_time: float = field(default_factory=time.time)
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == ExecutionStatus.SUCCESS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "module_name": self.module_name,
            "status": self.status.value,
            "result": self.result,
            "duration_seconds": round(self.duration_seconds, 3),
            "start_time": self.start_time,
            "end_time": self.end_time,
            "session_id": self.session_id,
            "error": self.error,
        }


@dataclass
class ExecutionJob:
    """A submitted module and the future running it."""

    module_name: str
    future: Future
    start_time: float = field(default_factory=time.time)
    cancel_event: threading.Event = field(default_factory=threading.Event)
    processed: bool = False
    on_dispose: Optional[Callable[["ExecutionJob"], None]] = None
    _disposed: bool = field(default=False, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    @property
    def disposed(self) -> bool:
        return self._disposed

    def dispose(self) -> bool:
        """
        Release the unit. Only the first call has any effect.

        Returns:
            True if this call performed the disposal
        """
        with self._lock:
            if self._disposed:
                return False
            self._disposed = True

        self.cancel_event.set()
        if not self.future.done():
            self.future.cancel()
        if self.on_dispose:
            self.on_dispose(self)
        return True


@dataclass
class ParallelExecutionSummary:
    """Per-run summary derived from the collected results."""

    session_id: str
    max_concurrency: int
    results: List[ExecutionResult] = field(default_factory=list)
    total_duration_seconds: float = 0.0
    skipped_modules: List[str] = field(default_factory=list)

    @property
    def total_modules(self) -> int:
        return len(self.results)

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.results if r.status == ExecutionStatus.SUCCESS)

    @property
    def failed_count(self) -> int:
        return self.total_modules - self.success_count

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "total_modules": self.total_modules,
            "success_count": self.success_count,
            "failed_count": self.failed_count,
            "max_concurrency": self.max_concurrency,
            "total_duration_seconds": round(self.total_duration_seconds, 3),
            "skipped_modules": list(self.skipped_modules),
            "results": [r.to_dict() for r in self.results],
        }


class ModuleError(BaseModel):
    """Failure entry of an aggregated summary."""
    module: str
    error: str


class AggregatedSummary(BaseModel):
    """Summary handed to the reporting layer."""
    session_id: str
    total_modules: int = Field(ge=0)
    successful_modules: int = Field(ge=0)
    failed_modules: int = Field(ge=0)
    success_rate: float = Field(ge=0.0, le=100.0)
    total_duration_seconds: float = 0.0
    average_duration_per_module: float = 0.0
    successful_module_names: List[str] = Field(default_factory=list)
    failed_module_names: List[str] = Field(default_factory=list)
    errors: List[ModuleError] = Field(default_factory=list)
    operation_totals: Dict[str, int] = Field(default_factory=dict)
