"""
Domain models for plugins and batch execution.
"""

from .plugins import (
    PluginStatus, HealthStatus, RiskLevel, PluginDescriptor, ValidationResult,
    SecurityResult, RegistryEntry, LoadedPluginHandle
)
from .execution import (
    ExecutionStatus, ExecutionResult, ExecutionJob, ParallelExecutionSummary,
    AggregatedSummary, ModuleError
)

__all__ = [
    "PluginStatus",
    "HealthStatus",
    "RiskLevel",
    "PluginDescriptor",
    "ValidationResult",
    "SecurityResult",
    "RegistryEntry",
    "LoadedPluginHandle",
    "ExecutionStatus",
    "ExecutionResult",
    "ExecutionJob",
    "ParallelExecutionSummary",
    "AggregatedSummary",
    "ModuleError",
]
