"""
In-memory plugin registry.

The registry is the single source of truth for discovery and lifecycle
state. It is owned by the orchestrator and written only by the lifecycle
manager; reads are safe from any thread.
"""

import datetime
import secrets
import threading
from typing import Dict, Iterator, List, Optional, Set

from loguru import logger

from ..core.domain.plugins import (
    PluginDescriptor, PluginStatus, RegistryEntry, SecurityResult, ValidationResult
)

log = logger.bind(component="PluginRegistry")


class PluginRegistry:
    """Map of plugin id to registry entry."""

    def __init__(self) -> None:
        self._entries: Dict[str, RegistryEntry] = {}
        self._issued_ids: Set[str] = set()
        self._lock = threading.RLock()

    def register(self, descriptor: PluginDescriptor, validation: ValidationResult,
                 security: SecurityResult) -> Optional[str]:
        """
        Register a discovered plugin.

        Returns:
            The generated plugin id, or None if registration failed
        """
        try:
            with self._lock:
                plugin_id = self._generate_id(descriptor.name)
                self._entries[plugin_id] = RegistryEntry(
                    id=plugin_id,
                    descriptor=descriptor,
                    validation=validation,
                    security=security,
                )
                self._issued_ids.add(plugin_id)

            log.info(
                f"Registered plugin {descriptor.name} v{descriptor.version} as {plugin_id} "
                f"(valid={validation.is_valid}, risk={security.risk_level.value})")
            return plugin_id
        except Exception as e:
            log.error(f"Failed to register plugin {getattr(descriptor, 'name', '?')}: {e}")
            return None

    def _generate_id(self, name: str) -> str:
        stamp = datetime.datetime.now().strftime("%Y%m%d%H%M%S%f")
        safe_name = "".join(c if c.isalnum() or c in "-_" else "_" for c in name) or "plugin"
        while True:
            candidate = f"{safe_name}_{stamp}_{secrets.token_hex(4)}"
            if candidate not in self._issued_ids:
                return candidate

    def get(self, plugin_id: str) -> Optional[RegistryEntry]:
        return self._entries.get(plugin_id)

    def find_by_name(self, name: str) -> Optional[RegistryEntry]:
        """
        Find the entry for a plugin name.

        A Loaded entry wins over a Registered one; among equals the most
        recently discovered wins. Unloaded entries are only returned when
        no other entry carries the name.
        """
        with self._lock:
            candidates = [e for e in self._entries.values() if e.descriptor.name == name]

        if not candidates:
            return None

        rank = {PluginStatus.LOADED: 2, PluginStatus.REGISTERED: 1, PluginStatus.UNLOADED: 0}
        return max(candidates, key=lambda e: (rank[e.status], e.descriptor.discovery_time))

    def find_by_path(self, file_path: str) -> List[RegistryEntry]:
        with self._lock:
            return [e for e in self._entries.values() if e.descriptor.file_path == file_path]

    def entries(self) -> List[RegistryEntry]:
        with self._lock:
            return list(self._entries.values())

    def names(self) -> Set[str]:
        with self._lock:
            return {e.descriptor.name for e in self._entries.values()}

    def loaded(self) -> List[RegistryEntry]:
        return [e for e in self.entries() if e.status == PluginStatus.LOADED]

    def __contains__(self, plugin_id: object) -> bool:
        return plugin_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[RegistryEntry]:
        return iter(self.entries())
