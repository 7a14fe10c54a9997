"""Start/result/complete observers and forwarding to external sinks."""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Iterable, List, Protocol, Sequence

from testharness.logging.logger import get_logger

from .models import HarnessStatusSnapshot, TestResult

if TYPE_CHECKING:
    from .harness import HarnessStatus
    from .testcase import Test

logger = get_logger(__name__)

StartCallback = Callable[[], Any]
ResultCallback = Callable[["Test"], Any]
CompletionCallback = Callable[[Sequence["Test"], "HarnessStatus"], Any]


class HarnessSink(Protocol):
    """Receiver of harness events outside this run, e.g. an embedding process."""

    def start(self) -> None: ...

    def result(self, result: TestResult) -> None: ...

    def complete(self, results: List[TestResult], status: HarnessStatusSnapshot) -> None: ...


class CallbackDispatcher:
    def __init__(self, sinks: Iterable[HarnessSink] = ()) -> None:
        self._start_callbacks: List[StartCallback] = []
        self._result_callbacks: List[ResultCallback] = []
        self._completion_callbacks: List[CompletionCallback] = []
        self._sinks: List[HarnessSink] = list(sinks)

    def add_start_callback(self, callback: StartCallback) -> None:
        self._start_callbacks.append(callback)

    def add_result_callback(self, callback: ResultCallback) -> None:
        self._result_callbacks.append(callback)

    def add_completion_callback(self, callback: CompletionCallback) -> None:
        self._completion_callbacks.append(callback)

    def add_sink(self, sink: HarnessSink) -> None:
        self._sinks.append(sink)

    def start(self) -> None:
        self._notify(self._start_callbacks)
        self._forward("start")

    def result(self, test: "Test") -> None:
        self._notify(self._result_callbacks, test)
        self._forward("result", test.snapshot())

    def complete(self, tests: Sequence["Test"], status: "HarnessStatus") -> None:
        self._notify(self._completion_callbacks, tests, status)
        self._forward("complete", [test.snapshot() for test in tests], status.snapshot())

    def clear(self) -> None:
        self._start_callbacks.clear()
        self._result_callbacks.clear()
        self._completion_callbacks.clear()

    def _notify(self, callbacks: List[Callable[..., Any]], *args: Any) -> None:
        # Copy: an observer may register further observers while we iterate.
        for callback in list(callbacks):
            try:
                callback(*args)
            except Exception:
                logger.exception("Harness observer %r failed", callback)

    def _forward(self, event: str, *payload: Any) -> None:
        for sink in list(self._sinks):
            try:
                getattr(sink, event)(*payload)
            except Exception:
                logger.debug("Forwarding %s to %r failed", event, sink, exc_info=True)
