"""
Tests for domain models and the exception taxonomy.
"""

import pytest
from concurrent.futures import Future

from hostpilot.core.domain.execution import (
    ExecutionJob, ExecutionResult, ExecutionStatus, ParallelExecutionSummary
)
from hostpilot.core.domain.plugins import RiskLevel, ValidationResult
from hostpilot.core.exceptions import (
    DependencyCycleError, DependencyUnresolvedError, ErrorLevel, ExecutionTimeoutError,
    HostPilotException, PluginNotFoundError
)


class TestRiskLevel:
    """Monotonic risk escalation"""

    @pytest.mark.parametrize("current,other,expected", [
        (RiskLevel.LOW, RiskLevel.MEDIUM, RiskLevel.MEDIUM),
        (RiskLevel.HIGH, RiskLevel.MEDIUM, RiskLevel.HIGH),
        (RiskLevel.MEDIUM, RiskLevel.LOW, RiskLevel.MEDIUM),
        (RiskLevel.HIGH, RiskLevel.UNKNOWN, RiskLevel.UNKNOWN),
    ])
    def test_escalate(self, current, other, expected) -> None:
        assert current.escalate(other) == expected


class TestExecutionModels:
    """Execution result and job models"""

    def test_validation_result(self) -> None:
        assert ValidationResult(warnings=["w"]).is_valid
        assert not ValidationResult(issues=["i"]).is_valid

    def test_summary_counts(self) -> None:
        summary = ParallelExecutionSummary(
            session_id="s1",
            max_concurrency=2,
            results=[
                ExecutionResult("A", ExecutionStatus.SUCCESS),
                ExecutionResult("B", ExecutionStatus.TIMEOUT, error="timed out"),
            ],
        )

        assert summary.total_modules == 2
        assert summary.success_count == 1
        assert summary.failed_count == 1
        assert summary.to_dict()["results"][1]["status"] == "Timeout"

    def test_job_dispose_runs_callback_once(self) -> None:
        calls = []
        future: Future = Future()
        job = ExecutionJob("A", future, on_dispose=calls.append)

        assert job.dispose() is True
        assert job.dispose() is False

        assert calls == [job]
        assert future.cancelled()
        assert job.disposed


class TestExceptions:
    """Exception messages and codes"""

    def test_base_exception(self) -> None:
        error = HostPilotException("failed", "CODE", ErrorLevel.WARNING)

        assert str(error) == "failed"
        assert error.error_code == "CODE"
        assert error.level == ErrorLevel.WARNING

    def test_messages(self) -> None:
        assert DependencyCycleError(["A", "B", "A"]).message == "Circular dependency detected: A -> B -> A"
        assert "tried: import" in DependencyUnresolvedError("x", ["import"]).message
        assert "missing" in PluginNotFoundError("missing").message
        assert ExecutionTimeoutError("A", 2).message == "Module 'A' timed out after 2.0s"
