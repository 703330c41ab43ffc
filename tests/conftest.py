"""
Shared fixtures for the hostpilot test suite.
"""

from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

import pytest
from loguru import logger


def plugin_source(name: str, interface: str = "IUtilityPlugin", version: str = "1.0.0",
                  category: Optional[str] = None, dependencies: Iterable[str] = (),
                  permissions: Iterable[str] = (), body: Optional[str] = None,
                  omit: Iterable[str] = ()) -> str:
    """Build plugin source text with a header block."""
    fields: Dict[str, str] = {
        "Name": f'"{name}"',
        "Version": f'"{version}"',
        "Author": '"Test Suite"',
        "Description": f'"Test plugin {name}"',
        "Interface": f'"{interface}"',
    }
    if category:
        fields["Category"] = f'"{category}"'
    if dependencies:
        fields["Dependencies"] = "[" + ", ".join(f'"{d}"' for d in dependencies) + "]"
    if permissions:
        fields["RequiredPermissions"] = "[" + ", ".join(f'"{p}"' for p in permissions) + "]"
    for key in omit:
        fields.pop(key, None)

    header = ["# <plugin>"] + [f"# {key} = {value}" for key, value in fields.items()] + ["# </plugin>"]

    if body is None:
        body = (
            "def initialize(context):\n"
            "    return True\n"
            "\n"
            "\n"
            "def execute(**kwargs):\n"
            "    return kwargs\n"
            "\n"
            "\n"
            "def get_info():\n"
            f"    return {{'name': '{name}'}}\n"
        )
    return "\n".join(header) + "\n\n" + body


@pytest.fixture
def make_plugin(tmp_path: Path) -> Callable[..., Path]:
    """Write a plugin file into ``tmp_path/plugins`` and return its path."""
    plugin_dir = tmp_path / "plugins"
    plugin_dir.mkdir(exist_ok=True)

    def _make(filename: str, name: str, directory: Optional[Path] = None, **kwargs: Any) -> Path:
        target_dir = directory or plugin_dir
        target_dir.mkdir(parents=True, exist_ok=True)
        path = target_dir / filename
        path.write_text(plugin_source(name, **kwargs), encoding="utf-8")
        return path

    return _make


@pytest.fixture
def make_module(tmp_path: Path) -> Callable[[str, str], Path]:
    """Write a batch module file into ``tmp_path/modules`` and return its path."""
    module_dir = tmp_path / "modules"
    module_dir.mkdir(exist_ok=True)

    def _make(name: str, source: str) -> Path:
        path = module_dir / f"{name}.py"
        path.write_text(source, encoding="utf-8")
        return path

    return _make


@pytest.fixture
def log_records() -> Iterable[List[Dict[str, Any]]]:
    """Capture loguru records emitted during a test."""
    records: List[Dict[str, Any]] = []

    def sink(message: Any) -> None:
        record = message.record
        records.append({
            "level": record["level"].name,
            "message": record["message"],
            "component": record["extra"].get("component"),
        })

    handler_id = logger.add(sink, level="DEBUG", format="{message}")
    yield records
    logger.remove(handler_id)
