"""
Lifecycle contract for long-lived hostpilot components.

The plugin lifecycle manager implements it so the orchestrator can start,
stop and health-check it. ``start`` and ``stop`` are idempotent: the base
class tracks the running state and only calls the ``_on_*`` hooks on an
actual transition.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict


class ComponentState(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"


def health_report(healthy: bool, state: ComponentState, **details: Any) -> Dict[str, Any]:
    """Health dictionary shared by every component."""
    return {
        'healthy': healthy,
        'status': state.value,
        'details': details,
    }


class IComponent(ABC):
    """Service with an idempotent start/stop lifecycle and a health report."""

    _state: ComponentState = ComponentState.STOPPED

    @property
    @abstractmethod
    def name(self) -> str:
        """Component name used in logs and health reports."""

    @property
    def state(self) -> ComponentState:
        return self._state

    @property
    def running(self) -> bool:
        return self._state == ComponentState.RUNNING

    async def start(self) -> None:
        """
        Start the component. Starting a running component is a no-op.

        Raises:
            Exception: Whatever ``_on_start`` raises; the component stays stopped.
        """
        if self.running:
            return
        await self._on_start()
        self._state = ComponentState.RUNNING

    async def stop(self) -> None:
        """
        Stop the component and release what it holds.

        A component that is stopped and holds nothing is left alone, so
        repeated calls are no-ops.
        """
        if not self.running and not self.holds_resources():
            return
        try:
            await self._on_stop()
        finally:
            self._state = ComponentState.STOPPED

    def holds_resources(self) -> bool:
        """Whether ``stop`` has work to do even though the component never started."""
        return False

    @abstractmethod
    async def _on_start(self) -> None:
        ...

    @abstractmethod
    async def _on_stop(self) -> None:
        ...

    @abstractmethod
    async def check_health(self) -> Dict[str, Any]:
        """
        Report component health.

        Returns:
            Dict built by ``health_report``: 'healthy', 'status' and 'details'
        """
