"""
Plugin domain models.

Descriptors are immutable snapshots of a discovered plugin file; registry
entries carry the mutable lifecycle state owned by the plugin registry.
"""

import datetime
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple


class PluginStatus(str, Enum):
    """Lifecycle state of a registry entry."""
    REGISTERED = "Registered"
    LOADED = "Loaded"
    UNLOADED = "Unloaded"


class HealthStatus(str, Enum):
    """Health of a registered or loaded plugin."""
    UNKNOWN = "Unknown"
    HEALTHY = "Healthy"
    UNHEALTHY = "Unhealthy"


class RiskLevel(str, Enum):
    """Security risk classification."""
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    UNKNOWN = "Unknown"

    @property
    def rank(self) -> int:
        return _RISK_RANK[self]

    def escalate(self, other: "RiskLevel") -> "RiskLevel":
        """Return the higher of the two levels; never downgrades."""
        return other if other.rank > self.rank else self


_RISK_RANK = {
    RiskLevel.LOW: 0,
    RiskLevel.MEDIUM: 1,
    RiskLevel.HIGH: 2,
    RiskLevel.UNKNOWN: 3,
}


@dataclass(frozen=True)
class PluginDescriptor:
    """
    Structured descriptor parsed from a plugin file's header block.

    Created once per discovered file. Re-discovery produces a new
    descriptor instead of mutating an existing one.
    """

    name: str
    version: str
    author: str
    description: str
    interface_name: str
    file_path: str
    category: Optional[str] = None
    website: Optional[str] = None
    license_uri: Optional[str] = None
    min_api_version: Optional[str] = None
    dependencies: Tuple[str, ...] = ()
    tags: FrozenSet[str] = frozenset()
    required_permissions: FrozenSet[str] = frozenset()
    file_size: int = 0
    last_modified: Optional[datetime.datetime] = None
    discovery_time: datetime.datetime = field(default_factory=datetime.datetime.now)
    interface_valid: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "author": self.author,
            "description": self.description,
            "interface": self.interface_name,
            "category": self.category,
            "website": self.website,
            "license_uri": self.license_uri,
            "min_api_version": self.min_api_version,
            "dependencies": list(self.dependencies),
            "tags": sorted(self.tags),
            "required_permissions": sorted(self.required_permissions),
            "file_path": self.file_path,
            "file_size": self.file_size,
            "last_modified": self.last_modified.isoformat() if self.last_modified else None,
            "discovery_time": self.discovery_time.isoformat(),
            "interface_valid": self.interface_valid,
        }


@dataclass
class ValidationResult:
    """Blocking issues and non-blocking warnings for a plugin."""

    issues: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    validation_time: datetime.datetime = field(default_factory=datetime.datetime.now)

    @property
    def is_valid(self) -> bool:
        return len(self.issues) == 0


@dataclass
class SecurityResult:
    """Outcome of the security classifier."""

    risk_level: RiskLevel = RiskLevel.LOW
    security_issues: List[str] = field(default_factory=list)
    should_quarantine: bool = False
    analysis_time: datetime.datetime = field(default_factory=datetime.datetime.now)


@dataclass
class RegistryEntry:
    """Registry record for one discovered plugin. Mutated only by the lifecycle manager."""

    id: str
    descriptor: PluginDescriptor
    validation: ValidationResult
    security: SecurityResult
    status: PluginStatus = PluginStatus.REGISTERED
    load_time: Optional[datetime.datetime] = None
    execution_count: int = 0
    last_error: Optional[str] = None
    health_status: HealthStatus = HealthStatus.UNKNOWN
    configuration: Dict[str, Any] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.descriptor.name

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "descriptor": self.descriptor.to_dict(),
            "is_valid": self.validation.is_valid,
            "issues": list(self.validation.issues),
            "warnings": list(self.validation.warnings),
            "risk_level": self.security.risk_level.value,
            "security_issues": list(self.security.security_issues),
            "should_quarantine": self.security.should_quarantine,
            "status": self.status.value,
            "load_time": self.load_time.isoformat() if self.load_time else None,
            "execution_count": self.execution_count,
            "last_error": self.last_error,
            "health_status": self.health_status.value,
        }


@dataclass
class LoadedPluginHandle:
    """Runtime handle of a loaded plugin; exists only while the entry is Loaded."""

    entry: RegistryEntry
    plugin: Any
    module: Any
    load_time: datetime.datetime = field(default_factory=datetime.datetime.now)
    last_health_check: Optional[datetime.datetime] = None
    health_status: HealthStatus = HealthStatus.HEALTHY
    execution_count: int = 0
    total_execution_time: float = 0.0
