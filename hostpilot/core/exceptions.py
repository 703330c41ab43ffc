"""
Exception taxonomy for plugin management and batch execution.

Plugin-level and module-level failures are isolated: the lifecycle manager
converts these exceptions into a ``False`` result plus a recorded error at
its public boundary, and the execution engine captures them into
``ExecutionResult.error``.
"""

from enum import Enum
from typing import Optional


class ErrorLevel(Enum):
    """Error level definitions"""
    CRITICAL = "CRITICAL"
    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"


class HostPilotException(Exception):
    """Base class for all hostpilot exceptions"""

    def __init__(self, message: str, error_code: Optional[str] = "", level: ErrorLevel = ErrorLevel.ERROR):
        self.message = message
        self.error_code = error_code
        self.level = level
        super().__init__(self.message)


class ConfigurationError(HostPilotException):
    """Invalid or unreadable configuration"""

    def __init__(self, message: str):
        super().__init__(message, "CONFIG_ERROR", ErrorLevel.CRITICAL)


class DiscoveryError(HostPilotException):
    """Malformed or incomplete plugin header (skipped, never surfaced)"""

    def __init__(self, message: str, missing_fields: Optional[list] = None):
        super().__init__(message, "DISCOVERY_ERROR", ErrorLevel.INFO)
        self.missing_fields = missing_fields or []


class PluginNotFoundError(HostPilotException):
    """Plugin id is not present in the registry"""

    def __init__(self, plugin_id: str):
        super().__init__(f"Plugin not found: {plugin_id}", "PLUGIN_NOT_FOUND")
        self.plugin_id = plugin_id


class PluginValidationError(HostPilotException):
    """Plugin has blocking validation issues"""

    def __init__(self, message: str, issues: Optional[list] = None):
        super().__init__(message, "VALIDATION_ERROR")
        self.issues = issues or []


class SecurityQuarantineError(HostPilotException):
    """Plugin is quarantined by the security classifier"""

    def __init__(self, message: str, risk_level: str = "Unknown"):
        super().__init__(message, "SECURITY_QUARANTINE", ErrorLevel.WARNING)
        self.risk_level = risk_level


class DependencyError(HostPilotException):
    """Base class for dependency resolution failures"""
    pass


class DependencyCycleError(DependencyError):
    """Circular plugin dependency"""

    def __init__(self, chain: list):
        super().__init__(
            f"Circular dependency detected: {' -> '.join(chain)}", "DEPENDENCY_CYCLE")
        self.chain = chain


class DependencyUnresolvedError(DependencyError):
    """Dependency is neither a plugin, a loaded unit nor an installable package"""

    def __init__(self, dependency: str, attempted: Optional[list] = None):
        self.attempted = attempted or []
        chain = f" (tried: {', '.join(self.attempted)})" if self.attempted else ""
        super().__init__(
            f"Dependency unresolved: {dependency}{chain}", "DEPENDENCY_UNRESOLVED")
        self.dependency = dependency


class PluginLoadError(HostPilotException):
    """Plugin runtime unit could not be loaded or does not satisfy its contract"""

    def __init__(self, message: str):
        super().__init__(message, "PLUGIN_LOAD_ERROR")


class PluginInitializationError(HostPilotException):
    """Plugin initialization hook missing, returned False or raised"""

    def __init__(self, message: str):
        super().__init__(message, "PLUGIN_INIT_ERROR")


class PluginShutdownError(HostPilotException):
    """Plugin shutdown hook failed"""

    def __init__(self, message: str):
        super().__init__(message, "PLUGIN_SHUTDOWN_ERROR", ErrorLevel.WARNING)


class PluginExecutionError(HostPilotException):
    """Plugin execute hook failed"""

    def __init__(self, message: str):
        super().__init__(message, "PLUGIN_EXECUTION_ERROR")


class ExecutionTimeoutError(HostPilotException):
    """Module did not finish before the global batch timeout"""

    def __init__(self, module_name: str, timeout: float):
        super().__init__(
            f"Module '{module_name}' timed out after {timeout:.1f}s", "EXECUTION_TIMEOUT")
        self.module_name = module_name
        self.timeout = timeout


class ModuleEntryPointError(HostPilotException):
    """Module file does not expose its canonical entry point"""

    def __init__(self, module_name: str, entry_point: str):
        super().__init__(
            f"Module '{module_name}' has no entry point '{entry_point}'", "MODULE_ENTRY_POINT")
        self.module_name = module_name
        self.entry_point = entry_point
