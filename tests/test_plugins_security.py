"""
Tests for the security classifier.
"""

from unittest.mock import Mock

from hostpilot.core.domain.plugins import RiskLevel
from hostpilot.infrastructure.config.models import PluginConfig
from hostpilot.plugins.security import SecurityClassifier, StaticAnalyzer


class TestSecurityClassifier:
    """SecurityClassifier risk and quarantine decisions"""

    def setup_method(self) -> None:
        self.classifier = SecurityClassifier(PluginConfig())

    def test_clean_source_is_low_risk(self) -> None:
        result = self.classifier.classify("def initialize(context):\n    return True\n")

        assert result.risk_level == RiskLevel.LOW
        assert result.security_issues == []
        assert result.should_quarantine is False

    def test_dangerous_call_is_high_and_quarantined(self) -> None:
        result = self.classifier.classify("import os\n\ndef run():\n    os.system('reboot')\n")

        assert result.risk_level == RiskLevel.HIGH
        assert result.should_quarantine is True
        assert any(issue.startswith("Dangerous call") for issue in result.security_issues)

    def test_network_access_is_medium(self) -> None:
        result = self.classifier.classify("import socket\n")

        assert result.risk_level == RiskLevel.MEDIUM
        assert result.should_quarantine is False
        assert any(issue.startswith("Network access") for issue in result.security_issues)

    def test_registry_and_filesystem_are_medium(self) -> None:
        source = (
            "import winreg\n"
            "import shutil\n"
            "\n"
            "def run(key, path):\n"
            "    winreg.SetValueEx(key, 'x', 0, 1, 'y')\n"
            "    shutil.rmtree(path)\n"
        )

        result = self.classifier.classify(source)

        assert result.risk_level == RiskLevel.MEDIUM
        assert len(result.security_issues) == 2

    def test_risk_never_downgrades(self) -> None:
        source = "import socket\n\ndef run(expr):\n    return eval(expr)\n"

        result = self.classifier.classify(source)

        assert result.risk_level == RiskLevel.HIGH

    def test_quarantine_untrusted_policy(self) -> None:
        classifier = SecurityClassifier(PluginConfig(quarantine_untrusted=True))

        result = classifier.classify("import socket\n")

        assert result.risk_level == RiskLevel.MEDIUM
        assert result.should_quarantine is True

    def test_static_analysis_warning_escalates_to_medium(self) -> None:
        source = "def run():\n    try:\n        pass\n    except:\n        pass\n"

        result = self.classifier.classify(source)

        assert result.risk_level == RiskLevel.MEDIUM
        assert any("Bare except" in issue for issue in result.security_issues)

    def test_static_analysis_failure_is_not_propagated(self, log_records) -> None:
        analyzer = Mock(spec=StaticAnalyzer)
        analyzer.analyze.side_effect = RuntimeError("analyzer crashed")
        classifier = SecurityClassifier(PluginConfig(), analyzer=analyzer)

        result = classifier.classify("x = 1\n")

        assert result.risk_level == RiskLevel.LOW
        assert any("analyzer crashed" in r["message"] for r in log_records)

    def test_static_analysis_can_be_disabled(self) -> None:
        classifier = SecurityClassifier(PluginConfig(static_analysis_enabled=False))

        result = classifier.classify("global counter\n")

        assert result.risk_level == RiskLevel.LOW

    def test_unhandled_failure_fails_safe(self) -> None:
        classifier = SecurityClassifier(PluginConfig(dangerous_calls=["(unclosed"]))

        result = classifier.classify("x = 1\n")

        assert result.risk_level == RiskLevel.UNKNOWN
        assert result.should_quarantine is True


class TestStaticAnalyzer:
    """AST findings"""

    def test_findings(self) -> None:
        source = (
            "from os import *\n"
            "\n"
            "def run(path):\n"
            "    global state\n"
            "    with open(path, 'w') as f:\n"
            "        f.write(exec('1'))\n"
        )

        findings = StaticAnalyzer().analyze(source)
        severities = sorted(f.severity for f in findings)

        assert severities == ["Error", "Error", "Warning", "Warning"]
