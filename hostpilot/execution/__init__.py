"""
Batch execution of modules on a bounded worker pool.
"""

from .aggregator import ResultAggregator
from .discovery import ModuleCatalog, entry_point_name
from .engine import ParallelExecutionEngine
from .pool import WorkerPool
from .tracker import CompletionTracker

__all__ = [
    'ResultAggregator',
    'ModuleCatalog',
    'entry_point_name',
    'ParallelExecutionEngine',
    'WorkerPool',
    'CompletionTracker',
]
