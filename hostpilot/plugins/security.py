"""
Security classifier for plugin source text.

Pattern scanning is a heuristic pre-filter, not a security boundary. Risk
only ever escalates during one analysis, and any unexpected failure yields
``RiskLevel.UNKNOWN`` with quarantine enabled.
"""

import ast
import re
from dataclasses import dataclass
from typing import List, Optional, Pattern, Sequence, Tuple

from loguru import logger

from ..core.domain.plugins import RiskLevel, SecurityResult
from ..infrastructure.config.models import PluginConfig

log = logger.bind(component="SecurityClassifier")

NETWORK_PATTERNS: Tuple[str, ...] = (
    r"\bimport\s+socket\b",
    r"\bfrom\s+socket\s+import\b",
    r"\burllib(\.request)?\b",
    r"\bimport\s+requests\b",
    r"\brequests\.(get|post|put|delete|patch|request)\s*\(",
    r"\bhttp\.client\b",
    r"\baiohttp\b",
)

REGISTRY_PATTERNS: Tuple[str, ...] = (
    r"\bwinreg\.(SetValue|SetValueEx|DeleteKey|DeleteKeyEx|DeleteValue|CreateKey|CreateKeyEx)\s*\(",
)

FILESYSTEM_PATTERNS: Tuple[str, ...] = (
    r"\bshutil\.(rmtree|move)\s*\(",
    r"\bos\.(remove|unlink|rmdir|removedirs|rename|replace)\s*\(",
    r"\.unlink\s*\(",
    r"\.rmdir\s*\(",
)


@dataclass
class AnalyzerFinding:
    """A single finding of the static analysis pass."""
    severity: str
    message: str
    line: int = 0


class StaticAnalyzer(ast.NodeVisitor):
    """
    Small AST-based analyzer run after pattern scanning.

    Error findings: dynamic code execution and star imports of process or
    os modules. Warning findings: bare ``except``, ``global`` statements
    and files opened for writing.
    """

    DYNAMIC_CALLS = {"eval", "exec", "compile"}
    STAR_IMPORT_MODULES = {"os", "subprocess", "shutil", "ctypes"}
    WRITE_MODES = ("w", "a", "x", "+")

    def __init__(self) -> None:
        self.findings: List[AnalyzerFinding] = []

    def analyze(self, source: str) -> List[AnalyzerFinding]:
        self.findings = []
        self.visit(ast.parse(source))
        return self.findings

    def visit_Call(self, node: ast.Call) -> None:
        if isinstance(node.func, ast.Name):
            if node.func.id in self.DYNAMIC_CALLS:
                self._add("Error", f"Dynamic code execution via {node.func.id}()", node)
            elif node.func.id == "open" and self._opens_for_write(node):
                self._add("Warning", "File opened for writing", node)
        self.generic_visit(node)

    def visit_ImportFrom(self, node: ast.ImportFrom) -> None:
        if node.module in self.STAR_IMPORT_MODULES and any(alias.name == "*" for alias in node.names):
            self._add("Error", f"Star import from {node.module}", node)
        self.generic_visit(node)

    def visit_ExceptHandler(self, node: ast.ExceptHandler) -> None:
        if node.type is None:
            self._add("Warning", "Bare except clause", node)
        self.generic_visit(node)

    def visit_Global(self, node: ast.Global) -> None:
        self._add("Warning", f"Global statement for {', '.join(node.names)}", node)
        self.generic_visit(node)

    def _opens_for_write(self, node: ast.Call) -> bool:
        mode_node = None
        if len(node.args) >= 2:
            mode_node = node.args[1]
        for keyword in node.keywords:
            if keyword.arg == "mode":
                mode_node = keyword.value
        if isinstance(mode_node, ast.Constant) and isinstance(mode_node.value, str):
            return any(flag in mode_node.value for flag in self.WRITE_MODES)
        return False

    def _add(self, severity: str, message: str, node: ast.AST) -> None:
        self.findings.append(AnalyzerFinding(severity, message, getattr(node, "lineno", 0)))


class SecurityClassifier:
    """Scans plugin source text for risky patterns and decides on quarantine."""

    def __init__(self, config: Optional[PluginConfig] = None,
                 analyzer: Optional[StaticAnalyzer] = None) -> None:
        self._config = config or PluginConfig()
        self._analyzer = analyzer if analyzer is not None else StaticAnalyzer()
        self._compiled: Optional[List[Tuple[str, RiskLevel, List[Pattern[str]]]]] = None

    def classify(self, source: str) -> SecurityResult:
        """
        Classify plugin source text.

        Returns:
            SecurityResult with monotonic risk level and quarantine decision
        """
        try:
            risk = RiskLevel.LOW
            issues: List[str] = []

            for label, level, patterns in self._categories():
                matches = self._find(patterns, source)
                if matches:
                    issues.append(f"{label}: {', '.join(matches)}")
                    risk = risk.escalate(level)

            if self._config.static_analysis_enabled:
                risk = self._run_static_analysis(source, risk, issues)

            should_quarantine = risk == RiskLevel.HIGH or (
                self._config.quarantine_untrusted and len(issues) > 0)

            return SecurityResult(
                risk_level=risk,
                security_issues=issues,
                should_quarantine=should_quarantine,
            )
        except Exception as e:
            log.error(f"Security analysis failed: {e}")
            return SecurityResult(
                risk_level=RiskLevel.UNKNOWN,
                security_issues=[f"Security analysis failed: {e}"],
                should_quarantine=True,
            )

    def _categories(self) -> List[Tuple[str, RiskLevel, List[Pattern[str]]]]:
        if self._compiled is None:
            self._compiled = [
                ("Dangerous call", RiskLevel.HIGH, self._compile(self._config.dangerous_calls)),
                ("Network access", RiskLevel.MEDIUM, self._compile(NETWORK_PATTERNS)),
                ("Registry modification", RiskLevel.MEDIUM, self._compile(REGISTRY_PATTERNS)),
                ("File system modification", RiskLevel.MEDIUM, self._compile(FILESYSTEM_PATTERNS)),
            ]
        return self._compiled

    @staticmethod
    def _compile(patterns: Sequence[str]) -> List[Pattern[str]]:
        return [re.compile(pattern) for pattern in patterns]

    @staticmethod
    def _find(patterns: List[Pattern[str]], source: str) -> List[str]:
        found: List[str] = []
        for pattern in patterns:
            match = pattern.search(source)
            if match:
                text = match.group(0).strip()
                if text not in found:
                    found.append(text)
        return found

    def _run_static_analysis(self, source: str, risk: RiskLevel, issues: List[str]) -> RiskLevel:
        try:
            findings = self._analyzer.analyze(source)
        except Exception as e:
            log.warning(f"Static analysis skipped: {e}")
            return risk

        for finding in findings:
            if finding.severity == "Error":
                risk = risk.escalate(RiskLevel.HIGH)
            elif finding.severity == "Warning":
                risk = risk.escalate(RiskLevel.MEDIUM)
            else:
                continue
            issues.append(f"Static analysis {finding.severity.lower()} (line {finding.line}): {finding.message}")

        return risk
