"""Registry of the tests in one document run and its completion rule."""
from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Mapping, Optional, Sequence, Union

from testharness.config import HarnessSettings
from testharness.logging.logger import get_logger

from .dispatcher import CallbackDispatcher, CompletionCallback, HarnessSink, ResultCallback, StartCallback
from .models import HarnessReport, HarnessStatusSnapshot
from .scheduler import describe_failure, run_coroutine
from .state_machine import HarnessStatusCode, TestStatus
from .testcase import Test
from .timers import HarnessTimer

logger = get_logger(__name__)

HARNESS_TIMEOUT_MESSAGE = "Harness timed out"

Properties = Optional[Mapping[str, Any]]


@dataclass
class HarnessStatus:
    status: Optional[HarnessStatusCode] = None
    message: Optional[str] = None

    def snapshot(self) -> HarnessStatusSnapshot:
        return HarnessStatusSnapshot(status=self.status, message=self.message)


class Harness:
    """Owns every test of a run and decides when the run is complete.

    Completion requires no pending tests, the load signal and, when
    ``explicit_done`` is configured, an explicit :meth:`done` call. It happens
    at most once, either naturally or through the harness-wide timeout.
    """

    def __init__(
        self,
        settings: Optional[HarnessSettings] = None,
        *,
        sinks: Iterable[HarnessSink] = (),
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        self.loop = loop or asyncio.get_running_loop()
        self.settings = settings or HarnessSettings()
        self.status = HarnessStatus()
        self.tests: List[Test] = []
        self.pending_count = 0
        self.started = False
        self.load_fired = False
        self.explicit_done_received = False
        self.setup_locked = False
        self.completed = False
        self.timing_out = False
        self.dispatcher = CallbackDispatcher(sinks)
        self._completion: asyncio.Future[HarnessReport] = self.loop.create_future()
        self._timer = HarnessTimer(
            name="harness",
            timeout=self.settings.scaled_seconds(self.settings.timeout_ms),
            callback=self.timeout,
            loop=self.loop,
        )
        self._arm_timer()

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------
    def setup(self, func: Optional[Callable[[], Any]] = None, properties: Properties = None) -> None:
        if self.setup_locked:
            logger.debug("setup() ignored, results have already been recorded")
            return
        if properties:
            self.settings = self.settings.merged(properties)
            self._arm_timer()
        if func is not None:
            try:
                func()
            except Exception as exc:
                self.fail_setup(exc)

    def _arm_timer(self) -> None:
        self._timer.cancel()
        if self.completed or self.settings.explicit_timeout:
            return
        self._timer.timeout = self.settings.scaled_seconds(self.settings.timeout_ms)
        self._timer.start()

    def fail_setup(self, error: BaseException) -> None:
        if self.completed:
            return
        logger.warning("Harness setup failed: %s", error)
        self.status.status = HarnessStatusCode.ERROR
        self.status.message = describe_failure(error)

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------
    def register(self, test: Test) -> None:
        if not self.started:
            self.started = True
            self.dispatcher.start()
        self.tests.append(test)
        self.pending_count += 1

    def report(self, test: Test) -> None:
        self.setup_locked = True
        self.pending_count -= 1
        if self.completed:
            logger.debug("Result for %r arrived after completion", test.name)
            return
        self.dispatcher.result(test)
        self.evaluate_completion()

    def evaluate_completion(self) -> None:
        if self.completed or self.timing_out:
            return
        if self.pending_count > 0 or not self.load_fired:
            return
        if self.settings.explicit_done and not self.explicit_done_received:
            return
        self._complete()

    def signal_load(self) -> None:
        if self.load_fired:
            return
        self.load_fired = True
        self.evaluate_completion()

    def signal_explicit_done(self) -> None:
        self.explicit_done_received = True
        self.evaluate_completion()

    done = signal_explicit_done

    def timeout(self) -> None:
        """Give up on the run: pending tests end as NOTRUN, status TIMEOUT.

        Every pending test is closed before any result goes out, so observers
        calling back into the harness cannot complete it early. Tests they
        create meanwhile are closed as NOTRUN too.
        """
        if self.completed or self.timing_out:
            return
        self.timing_out = True
        logger.warning("Harness timed out with %d pending test(s)", self.pending_count)
        self._timer.cancel()
        self.status.status = HarnessStatusCode.TIMEOUT
        self.status.message = HARNESS_TIMEOUT_MESSAGE
        pending = self._close_pending()
        while pending:
            for test in pending:
                self.dispatcher.result(test)
            pending = self._close_pending()
        self._complete()

    def _close_pending(self) -> List[Test]:
        closed = []
        for test in self.tests:
            if test.is_done:
                continue
            test.mark_notrun()
            self.pending_count -= 1
            closed.append(test)
        return closed

    def _complete(self) -> None:
        if self.completed:
            return
        self.completed = True
        self.setup_locked = True
        self._timer.cancel()
        if self.status.status is None:
            self.status.status = HarnessStatusCode.OK
        tests = list(self.tests)
        logger.debug("Harness complete: %s, %d test(s)", self.status.status.value, len(tests))
        self.dispatcher.complete(tests, self.status)
        if not self._completion.done():
            self._completion.set_result(self.report_snapshot())
        self.teardown()

    def teardown(self) -> None:
        """Cancel every outstanding timer and drop all observers."""
        self._timer.cancel()
        for test in self.tests:
            test.cancel_timer()
        self.dispatcher.clear()

    def report_snapshot(self) -> HarnessReport:
        return HarnessReport(
            status=self.status.snapshot(),
            tests=[test.snapshot() for test in self.tests],
        )

    async def wait(self) -> HarnessReport:
        return await asyncio.shield(self._completion)

    # ------------------------------------------------------------------
    # Test creation
    # ------------------------------------------------------------------
    def test(
        self,
        func: Callable[[Test], Any],
        name: Optional[str] = None,
        properties: Properties = None,
    ) -> Test:
        """Run *func* synchronously as a test; it receives the Test."""
        test = Test(self, name or _default_name(func), properties)
        test.step(func, test)
        if test.status is TestStatus.NOTRUN:
            test.done()
        return test

    def async_test(
        self,
        func: Union[Callable[[Test], Any], str, None] = None,
        name: Optional[str] = None,
        properties: Properties = None,
    ) -> Test:
        """Create a test finished later by ``done()`` or a failing step.

        ``async_test("name")`` is accepted as shorthand for a test without
        an initial step.
        """
        if isinstance(func, str):
            func, name = None, func
        test = Test(self, name or (_default_name(func) if func else "async test"), properties)
        if func is not None:
            test.step(func, test)
        return test

    def promise_test(
        self,
        func: Callable[[Test], Any],
        name: Optional[str] = None,
        properties: Properties = None,
    ) -> Test:
        """Run the coroutine returned by *func* as a test."""
        test = self.async_test(name=name or _default_name(func), properties=properties)
        awaitable = test.step(func, test)
        if test.is_done:
            return test
        if not inspect.isawaitable(awaitable):
            test.fail(f"promise_test: {test.name} did not return an awaitable")
            return test
        task = self.loop.create_task(run_coroutine(test, awaitable), name=f"test:{test.name}")
        test.attach_task(task)
        return test

    def generate_tests(
        self,
        func: Callable[..., Any],
        parameter_lists: Iterable[Sequence[Any]],
        properties: Union[Properties, Sequence[Properties]] = None,
    ) -> List[Test]:
        created: List[Test] = []
        for index, params in enumerate(parameter_lists):
            name, *args = params
            created.append(self.test(_bind(func, args), name, _properties_at(properties, index)))
        return created

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------
    def add_start_callback(self, callback: StartCallback) -> None:
        self.dispatcher.add_start_callback(callback)

    def add_result_callback(self, callback: ResultCallback) -> None:
        self.dispatcher.add_result_callback(callback)

    def add_completion_callback(self, callback: CompletionCallback) -> None:
        self.dispatcher.add_completion_callback(callback)


def _default_name(func: Callable[..., Any]) -> str:
    return getattr(func, "__name__", None) or repr(func)


def _bind(func: Callable[..., Any], args: Sequence[Any]) -> Callable[[Test], Any]:
    def _body(test: Test) -> Any:
        return func(*args)

    return _body


def _properties_at(properties: Union[Properties, Sequence[Properties]], index: int) -> Properties:
    if properties is None or isinstance(properties, Mapping):
        return properties
    return properties[index] if index < len(properties) else None
