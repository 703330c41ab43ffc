"""
Interface contract registry.

Each contract names the methods a plugin declaring it must expose. The
table is seeded once at import time and never mutated afterwards.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional


@dataclass(frozen=True)
class InterfaceContract:
    """Named capability contract plugins declare conformance to."""

    name: str
    required_methods: FrozenSet[str] = field(default_factory=frozenset)
    optional_methods: FrozenSet[str] = field(default_factory=frozenset)
    properties: FrozenSet[str] = field(default_factory=frozenset)
    events: FrozenSet[str] = field(default_factory=frozenset)

    def missing_methods(self, obj: Any) -> List[str]:
        """Required method names that are absent or not callable on ``obj``."""
        missing = []
        for method_name in sorted(self.required_methods):
            method = getattr(obj, method_name, None)
            if method is None or not callable(method):
                missing.append(method_name)
            elif getattr(method, '__isabstractmethod__', False):
                missing.append(method_name)
        return missing

    def is_satisfied_by(self, obj: Any) -> bool:
        return not self.missing_methods(obj)


_LIFECYCLE_OPTIONAL = frozenset({"shutdown", "health_check", "configure"})

_DEFAULT_CONTRACTS = (
    InterfaceContract(
        name="IMaintenancePlugin",
        required_methods=frozenset({"initialize", "execute", "get_info"}),
        optional_methods=_LIFECYCLE_OPTIONAL,
        properties=frozenset({"name", "version", "category"}),
        events=frozenset({"execution_started", "execution_completed"}),
    ),
    InterfaceContract(
        name="ISecurityPlugin",
        required_methods=frozenset({"initialize", "execute", "get_info", "scan"}),
        optional_methods=_LIFECYCLE_OPTIONAL,
        properties=frozenset({"name", "version", "risk_profile"}),
        events=frozenset({"threat_detected", "scan_completed"}),
    ),
    InterfaceContract(
        name="IReportPlugin",
        required_methods=frozenset({"initialize", "get_info", "generate_report"}),
        optional_methods=frozenset({"shutdown", "health_check"}),
        properties=frozenset({"name", "version", "output_format"}),
        events=frozenset({"report_generated"}),
    ),
    InterfaceContract(
        name="IUtilityPlugin",
        required_methods=frozenset({"initialize", "get_info"}),
        optional_methods=_LIFECYCLE_OPTIONAL | {"execute"},
        properties=frozenset({"name", "version"}),
        events=frozenset(),
    ),
)


class ContractRegistry:
    """Read-only lookup table of interface contracts."""

    def __init__(self, contracts: Optional[List[InterfaceContract]] = None) -> None:
        seed = contracts if contracts is not None else _DEFAULT_CONTRACTS
        self._contracts: Dict[str, InterfaceContract] = {c.name: c for c in seed}

    def get_contract(self, name: Optional[str]) -> Optional[InterfaceContract]:
        if not name:
            return None
        return self._contracts.get(name)

    def has_contract(self, name: Optional[str]) -> bool:
        return self.get_contract(name) is not None

    def list_contracts(self) -> List[InterfaceContract]:
        return [self._contracts[name] for name in sorted(self._contracts)]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name in self._contracts

    def __len__(self) -> int:
        return len(self._contracts)


default_contracts = ContractRegistry()
