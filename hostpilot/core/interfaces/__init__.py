"""
Core interfaces defining the contracts for the plugin and execution subsystems.
"""

from .lifecycle import ComponentState, IComponent, health_report
from .plugins import IPlugin, IPluginContext
from .contracts import InterfaceContract, ContractRegistry, default_contracts

__all__ = [
    "ComponentState",
    "IComponent",
    "health_report",
    "IPlugin",
    "IPluginContext",
    "InterfaceContract",
    "ContractRegistry",
    "default_contracts",
]
