"""
HostPilot - host-local automation runner.

This package discovers, validates and manages the lifecycle of pluggable
units of work (plugins) and executes batches of named modules concurrently
through a bounded worker pool with timeout-safe result collection.
"""

__version__ = "0.1.0"

# Public API exports
from .core.interfaces.lifecycle import ComponentState, IComponent
from .core.interfaces.plugins import IPlugin, IPluginContext
from .core.interfaces.contracts import InterfaceContract, ContractRegistry
from .application.orchestrator import Orchestrator

__all__ = [
    "ComponentState",
    "IComponent",
    "IPlugin",
    "IPluginContext",
    "InterfaceContract",
    "ContractRegistry",
    "Orchestrator",
]
