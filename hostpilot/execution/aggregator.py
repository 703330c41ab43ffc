"""
Merges a batch summary into the report-facing aggregated summary.
"""

from typing import Any, Dict, Mapping

from loguru import logger

from ..core.domain.execution import (
    AggregatedSummary, ExecutionStatus, ModuleError, ParallelExecutionSummary
)

log = logger.bind(component="ResultAggregator")

OPERATION_COUNTERS = (
    "total_operations",
    "successful_operations",
    "failed_operations",
    "skipped_operations",
)


def operation_counters(payload: Any) -> Dict[str, int]:
    """Integer operation counters carried by a module's result payload."""
    counters: Dict[str, int] = {}
    if payload is None:
        return counters

    for name in OPERATION_COUNTERS:
        if isinstance(payload, Mapping):
            value = payload.get(name)
        else:
            value = getattr(payload, name, None)
        if isinstance(value, int) and not isinstance(value, bool):
            counters[name] = value
    return counters


class ResultAggregator:
    """Partitions results by status and sums nested counters."""

    def merge(self, summary: ParallelExecutionSummary) -> AggregatedSummary:
        successful = [r for r in summary.results if r.status == ExecutionStatus.SUCCESS]
        failed = [r for r in summary.results if r.status != ExecutionStatus.SUCCESS]
        total = len(summary.results)

        totals: Dict[str, int] = {}
        for result in summary.results:
            for name, value in operation_counters(result.result).items():
                totals[name] = totals.get(name, 0) + value

        aggregated = AggregatedSummary(
            session_id=summary.session_id,
            total_modules=total,
            successful_modules=len(successful),
            failed_modules=len(failed),
            success_rate=(len(successful) / total * 100.0) if total else 0.0,
            total_duration_seconds=summary.total_duration_seconds,
            average_duration_per_module=(summary.total_duration_seconds / total) if total else 0.0,
            successful_module_names=[r.module_name for r in successful],
            failed_module_names=[r.module_name for r in failed],
            errors=[
                ModuleError(module=r.module_name, error=r.error or r.status.value)
                for r in failed
            ],
            operation_totals=totals,
        )
        log.info(
            f"Session {summary.session_id}: {aggregated.successful_modules}/{total} modules "
            f"succeeded ({aggregated.success_rate:.1f}%)")
        return aggregated
