# <plugin>
# Name = "temp_cleanup"
# Version = "1.0.0"
# Author = "HostPilot Team"
# Description = "Remove stale files from the configured temporary directories"
# Interface = "IMaintenancePlugin"
# Category = "system"
# Tags = ["cleanup", "disk"]
# RequiredPermissions = ["FileSystem"]
# </plugin>
"""
Temporary file cleanup plugin.

Deletes regular files older than ``max_age_days`` under each directory in
the ``directories`` configuration key. Pass ``dry_run=True`` to execute()
to only report what would be removed.
"""

import tempfile
import time
from pathlib import Path
from typing import Any, Dict, List

from hostpilot.plugins.base import BasePlugin


class TempCleanupPlugin(BasePlugin):
    name = "temp_cleanup"
    version = "1.0.0"
    category = "system"

    async def on_initialize(self) -> bool:
        self.directories: List[Path] = [
            Path(d) for d in self.get_config("directories", [tempfile.gettempdir()])
        ]
        self.max_age_days = float(self.get_config("max_age_days", 7))
        self.removed_total = 0
        return True

    def _stale_files(self, directory: Path) -> List[Path]:
        cutoff = time.time() - self.max_age_days * 86400
        stale = []
        for path in directory.rglob("*"):
            try:
                if path.is_file() and path.stat().st_mtime < cutoff:
                    stale.append(path)
            except OSError:
                continue
        return stale

    async def execute(self, dry_run: bool = False, **kwargs: Any) -> Dict[str, Any]:
        total = removed = failed = 0
        for directory in self.directories:
            if not directory.is_dir():
                self.logger.warning(f"Cleanup directory missing: {directory}")
                continue
            for path in self._stale_files(directory):
                total += 1
                if dry_run:
                    continue
                try:
                    path.unlink()
                    removed += 1
                except OSError as e:
                    failed += 1
                    self.logger.warning(f"Could not remove {path}: {e}")

        self.removed_total += removed
        self.logger.info(f"Cleanup finished: {removed}/{total} stale files removed")
        return {
            "total_operations": total,
            "successful_operations": removed if not dry_run else total,
            "failed_operations": failed,
            "removed_files": removed,
        }

    async def on_health_check(self) -> Dict[str, Any]:
        return {
            'healthy': all(d.is_dir() for d in self.directories),
            'details': {'removed_total': self.removed_total},
        }
