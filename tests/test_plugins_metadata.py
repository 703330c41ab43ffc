"""
Tests for the plugin metadata parser.
"""

import pytest
from pathlib import Path

from hostpilot.core.exceptions import DiscoveryError
from hostpilot.plugins.metadata import PluginMetadataParser, missing_required_fields, parse_header

from conftest import plugin_source


class TestParseHeader:
    """Header block extraction"""

    def test_parses_scalar_and_list_fields(self) -> None:
        source = plugin_source(
            "disk-cleanup", interface="IMaintenancePlugin", category="system",
            dependencies=["core-utils", "pyyaml"], permissions=["FileSystemWrite"])

        fields = parse_header(source)

        assert fields is not None
        assert fields["Name"] == "disk-cleanup"
        assert fields["Interface"] == "IMaintenancePlugin"
        assert fields["Category"] == "system"
        assert fields["Dependencies"] == ["core-utils", "pyyaml"]
        assert fields["RequiredPermissions"] == ["FileSystemWrite"]

    def test_no_header_returns_none(self) -> None:
        assert parse_header("def initialize(context):\n    return True\n") is None

    def test_keys_are_case_insensitive_and_unknown_keys_ignored(self) -> None:
        source = (
            "# <plugin>\n"
            "# name = 'lower'\n"
            "# VERSION = 2.0.0\n"
            "# Flavour = \"vanilla\"\n"
            "# </plugin>\n"
        )

        fields = parse_header(source)

        assert fields == {"Name": "lower", "Version": "2.0.0"}

    def test_missing_required_fields(self) -> None:
        fields = parse_header(plugin_source("x", omit=["Version", "Author"]))

        assert missing_required_fields(fields) == ["Version", "Author"]


class TestPluginMetadataParser:
    """PluginMetadataParser behaviour"""

    def setup_method(self) -> None:
        self.parser = PluginMetadataParser()

    def test_parse_file_builds_descriptor(self, make_plugin) -> None:
        path = make_plugin("cleanup.py", "cleanup", interface="IMaintenancePlugin",
                           dependencies=["helper"])

        descriptor = self.parser.parse_file(path)

        assert descriptor is not None
        assert descriptor.name == "cleanup"
        assert descriptor.version == "1.0.0"
        assert descriptor.interface_name == "IMaintenancePlugin"
        assert descriptor.interface_valid is True
        assert descriptor.dependencies == ("helper",)
        assert descriptor.file_path == str(path)
        assert descriptor.file_size == path.stat().st_size
        assert descriptor.last_modified is not None

    def test_unknown_interface_still_parses(self, make_plugin) -> None:
        descriptor = self.parser.parse_file(make_plugin("odd.py", "odd", interface="IOddPlugin"))

        assert descriptor is not None
        assert descriptor.interface_valid is False

    def test_missing_version_returns_none_and_warns(self, make_plugin, log_records) -> None:
        path = make_plugin("noversion.py", "noversion", omit=["Version"])

        assert self.parser.parse_file(path) is None

        warnings = [r for r in log_records if r["level"] == "WARNING"]
        assert any("Version" in r["message"] for r in warnings)

    def test_file_without_header_returns_none_quietly(self, tmp_path: Path, log_records) -> None:
        path = tmp_path / "helper.py"
        path.write_text("VALUE = 1\n", encoding="utf-8")

        assert self.parser.parse_file(path) is None
        assert not [r for r in log_records if r["level"] == "WARNING"]

    def test_unreadable_file_returns_none(self, tmp_path: Path) -> None:
        assert self.parser.parse_file(tmp_path / "missing.py") is None

    def test_parse_source_raises_with_missing_fields(self) -> None:
        with pytest.raises(DiscoveryError) as exc_info:
            self.parser.parse_source(plugin_source("x", omit=["Interface"]), "x.py")

        assert exc_info.value.missing_fields == ["Interface"]
