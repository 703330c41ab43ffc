"""
Tests for the component lifecycle contract.
"""

import pytest
from typing import Any, Dict

from hostpilot.core.interfaces.lifecycle import ComponentState, IComponent, health_report


class RecordingComponent(IComponent):
    """Component counting its lifecycle hook calls."""

    def __init__(self, fail_start: bool = False) -> None:
        self.fail_start = fail_start
        self.starts = 0
        self.stops = 0
        self.resources = 0

    @property
    def name(self) -> str:
        return "Recording"

    def holds_resources(self) -> bool:
        return self.resources > 0

    async def _on_start(self) -> None:
        if self.fail_start:
            raise RuntimeError("cannot start")
        self.starts += 1

    async def _on_stop(self) -> None:
        self.stops += 1
        self.resources = 0

    async def check_health(self) -> Dict[str, Any]:
        return health_report(self.running, self.state, starts=self.starts)


@pytest.mark.asyncio
class TestComponentLifecycle:
    """IComponent start and stop transitions"""

    def setup_method(self) -> None:
        self.component = RecordingComponent()

    async def test_start_is_idempotent(self) -> None:
        await self.component.start()
        await self.component.start()

        assert self.component.starts == 1
        assert self.component.state == ComponentState.RUNNING

    async def test_stop_is_idempotent(self) -> None:
        await self.component.start()

        await self.component.stop()
        await self.component.stop()

        assert self.component.stops == 1
        assert self.component.running is False

    async def test_stop_without_start_is_noop(self) -> None:
        await self.component.stop()

        assert self.component.stops == 0

    async def test_stop_releases_resources_held_while_stopped(self) -> None:
        self.component.resources = 2

        await self.component.stop()

        assert self.component.stops == 1
        assert self.component.holds_resources() is False

    async def test_failed_start_stays_stopped(self) -> None:
        component = RecordingComponent(fail_start=True)

        with pytest.raises(RuntimeError):
            await component.start()

        assert component.state == ComponentState.STOPPED

    async def test_health_report_shape(self) -> None:
        await self.component.start()

        health = await self.component.check_health()

        assert health == {'healthy': True, 'status': 'running', 'details': {'starts': 1}}

    async def test_abstract_component_cannot_be_instantiated(self) -> None:
        class Partial(IComponent):
            @property
            def name(self) -> str:
                return "partial"

        with pytest.raises(TypeError):
            Partial()
