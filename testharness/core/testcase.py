"""A single test: its state, result, timer and step execution."""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Mapping, Optional

from testharness.logging.logger import get_logger

from .asserts import assert_unreached
from .models import TestProperties, TestResult
from .scheduler import run_step
from .state_machine import TestState, TestStateMachine, TestStatus
from .timers import HarnessTimer

if TYPE_CHECKING:
    from .harness import Harness

logger = get_logger(__name__)

TIMEOUT_MESSAGE = "Test timed out"


@dataclass(frozen=True)
class StepCallback:
    """Callable handle running *func* as a step of *test* when invoked."""

    test: "Test"
    func: Optional[Callable[..., Any]]
    done_after: bool = False

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        result = None
        if self.func is not None:
            result = self.test.step(self.func, *args, **kwargs)
        if self.done_after:
            self.test.done()
        return result


class Test:
    def __init__(
        self,
        harness: "Harness",
        name: str,
        properties: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.name = name
        self.properties = TestProperties()
        self.status = TestStatus.NOTRUN
        self.message: Optional[str] = None
        self.is_done = False
        self.timeout_ms = harness.settings.test_timeout_ms
        self._harness = harness
        self._loop = harness.loop
        self._machine = TestStateMachine(self._on_state_change)
        self._timer = HarnessTimer(
            name=f"test:{name}",
            timeout=harness.settings.scaled_seconds(self.timeout_ms),
            callback=self.force_timeout,
            loop=harness.loop,
        )
        self._timer_armed = False
        self._task: Optional[asyncio.Task] = None
        # Registration precedes every step so early failures have an owner.
        harness.register(self)
        self._machine.start()
        self._apply_properties(properties)

    def __repr__(self) -> str:
        return f"<Test {self.name!r} {self.state.name} {self.status.value}>"

    def _apply_properties(self, properties: Optional[Mapping[str, Any]]) -> None:
        try:
            self.properties = TestProperties.model_validate(dict(properties or {}))
        except (TypeError, ValueError) as exc:
            self.fail(f"Invalid properties for {self.name}: {exc}")
            return
        if self.properties.timeout_ms:
            self.timeout_ms = self.properties.timeout_ms
            self._timer.timeout = self._harness.settings.scaled_seconds(self.timeout_ms)

    @property
    def state(self) -> TestState:
        return self._machine.state

    def _on_state_change(self, state: TestState) -> None:
        logger.debug("Test %r -> %s", self.name, state.name)

    def step(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        if self.is_done:
            return None
        if not self._timer_armed:
            self._timer_armed = True
            self._timer.start()
        return run_step(self, func, args, kwargs)

    def step_func(self, func: Callable[..., Any]) -> StepCallback:
        return StepCallback(self, func)

    def step_func_done(self, func: Optional[Callable[..., Any]] = None) -> StepCallback:
        return StepCallback(self, func, done_after=True)

    def unreached_func(self, description: Optional[str] = None) -> StepCallback:
        def _unreached(*args: Any, **kwargs: Any) -> None:
            assert_unreached(description)

        return self.step_func(_unreached)

    def step_timeout(self, func: Callable[..., Any], timeout_ms: float, *args: Any) -> asyncio.TimerHandle:
        delay = self._harness.settings.scaled_seconds(timeout_ms)
        return self._loop.call_later(delay, self.step_func(func), *args)

    def attach_task(self, task: asyncio.Task) -> None:
        self._task = task

    def done(self) -> None:
        if self.is_done:
            return
        self.is_done = True
        if self.status is TestStatus.NOTRUN:
            self.status = TestStatus.PASS
        self._finish()
        self._harness.report(self)

    def fail(self, message: str) -> None:
        if self.is_done:
            return
        self.status = TestStatus.FAIL
        self.message = message
        self.done()

    def force_timeout(self) -> None:
        if self.is_done:
            return
        self.status = TestStatus.TIMEOUT
        self.message = TIMEOUT_MESSAGE
        self.done()

    def mark_notrun(self) -> None:
        """Close the test without a verdict; the harness reports it itself."""
        if self.is_done:
            return
        self.is_done = True
        self.status = TestStatus.NOTRUN
        self._finish()

    def _finish(self) -> None:
        self.cancel_timer()
        self._machine.complete()

    def cancel_timer(self) -> None:
        self._timer.cancel()
        task = self._task
        self._task = None
        if task is not None and not task.done() and task is not asyncio.current_task(self._loop):
            task.cancel()

    def snapshot(self) -> TestResult:
        return TestResult(name=self.name, status=self.status, message=self.message)
