"""
Plugin validator.

Checks a descriptor and its source text against structural, interface and
size rules. Validation is a pure function of its inputs: it reads nothing
from the registry and mutates nothing.
"""

import ast
import importlib.util
import re
from typing import Iterable, List, Optional, Set

import semver

from ..core.domain.plugins import PluginDescriptor, ValidationResult
from ..core.interfaces.contracts import ContractRegistry, default_contracts
from ..infrastructure.config.models import PluginConfig
from .base import BasePlugin

BASE_PLUGIN_METHODS: Set[str] = {
    name for name in dir(BasePlugin)
    if not name.startswith("_") and callable(getattr(BasePlugin, name))
}


def is_installable_package(name: str) -> bool:
    """Check whether a dependency name resolves to an importable package."""
    module_name = name.replace('-', '_')
    try:
        return importlib.util.find_spec(module_name) is not None
    except (ImportError, ValueError):
        return False


def defined_function_names(source: str) -> Set[str]:
    """Names of every function and method defined in the source."""
    try:
        tree = ast.parse(source)
    except (SyntaxError, ValueError):
        pattern = re.compile(r"^[ \t]*(?:async[ \t]+)?def[ \t]+([A-Za-z_][A-Za-z0-9_]*)[ \t]*\(", re.MULTILINE)
        return set(pattern.findall(source))

    return {
        node.name for node in ast.walk(tree)
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef))
    }


def inherited_method_names(source: str) -> Set[str]:
    """Public methods a plugin class gets from subclassing ``BasePlugin``."""
    try:
        tree = ast.parse(source)
    except (SyntaxError, ValueError):
        return set()

    for node in ast.walk(tree):
        if not isinstance(node, ast.ClassDef):
            continue
        for base in node.bases:
            base_name = base.id if isinstance(base, ast.Name) else getattr(base, "attr", None)
            if base_name == BasePlugin.__name__:
                return BASE_PLUGIN_METHODS
    return set()


def syntax_errors(source: str, filename: str = "<plugin>") -> List[str]:
    """Compile the source and report parse errors."""
    try:
        ast.parse(source, filename=filename)
    except SyntaxError as e:
        return [f"Syntax error at line {e.lineno}, column {e.offset}: {e.msg}"]
    except ValueError as e:
        return [f"Source cannot be parsed: {e}"]
    return []


class PluginValidator:
    """Validates plugin descriptors and source text."""

    def __init__(self, config: Optional[PluginConfig] = None,
                 contracts: Optional[ContractRegistry] = None) -> None:
        self._config = config or PluginConfig()
        self._contracts = contracts or default_contracts
        self._dangerous_permissions = set(self._config.dangerous_permissions)

    def validate(self, descriptor: PluginDescriptor, source: str,
                 known_plugin_names: Iterable[str] = ()) -> ValidationResult:
        """
        Validate a plugin.

        Args:
            descriptor: Parsed plugin descriptor
            source: Plugin source text
            known_plugin_names: Names of the other registered plugins

        Returns:
            ValidationResult with blocking issues and warnings
        """
        result = ValidationResult()
        known_names = set(known_plugin_names)

        self._check_required_fields(descriptor, result)
        self._check_version(descriptor, result)
        self._check_interface(descriptor, source, result)
        self._check_size(descriptor, result)
        result.issues.extend(syntax_errors(source, descriptor.file_path))
        self._check_dependencies(descriptor, known_names, result)
        self._check_permissions(descriptor, result)

        return result

    def _check_required_fields(self, descriptor: PluginDescriptor, result: ValidationResult) -> None:
        required = {
            "Name": descriptor.name,
            "Version": descriptor.version,
            "Author": descriptor.author,
            "Description": descriptor.description,
            "Interface": descriptor.interface_name,
        }
        for field_name, value in required.items():
            if not value or not str(value).strip():
                result.issues.append(f"Missing required field: {field_name}")

    def _check_version(self, descriptor: PluginDescriptor, result: ValidationResult) -> None:
        if descriptor.version and not semver.Version.is_valid(descriptor.version):
            result.warnings.append(
                f"Version '{descriptor.version}' is not a semantic version (major.minor.patch)")

    def _check_interface(self, descriptor: PluginDescriptor, source: str, result: ValidationResult) -> None:
        contract = self._contracts.get_contract(descriptor.interface_name)
        if contract is None:
            result.issues.append(f"Unknown interface '{descriptor.interface_name}'")
            return

        defined = defined_function_names(source) | inherited_method_names(source)
        for method_name in sorted(contract.required_methods):
            if method_name not in defined:
                result.issues.append(
                    f"Missing required method '{method_name}' for interface '{contract.name}'")

    def _check_size(self, descriptor: PluginDescriptor, result: ValidationResult) -> None:
        if descriptor.file_size > self._config.max_plugin_size:
            result.issues.append(
                f"Plugin file size {descriptor.file_size} bytes exceeds maximum "
                f"of {self._config.max_plugin_size} bytes")

    def _check_dependencies(self, descriptor: PluginDescriptor, known_names: Set[str],
                            result: ValidationResult) -> None:
        for dependency in descriptor.dependencies:
            if dependency == descriptor.name:
                result.warnings.append(f"Plugin depends on itself: {dependency}")
            elif dependency not in known_names and not is_installable_package(dependency):
                result.warnings.append(
                    f"Dependency '{dependency}' is neither a registered plugin nor an installable package")

    def _check_permissions(self, descriptor: PluginDescriptor, result: ValidationResult) -> None:
        for permission in sorted(descriptor.required_permissions):
            if permission in self._dangerous_permissions:
                result.warnings.append(f"Plugin requests dangerous permission: {permission}")
