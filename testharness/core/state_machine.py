"""Test lifecycle states and the forward-only state machine."""
from __future__ import annotations

from enum import Enum, auto
from typing import Callable


class TestState(Enum):
    NOT_STARTED = auto()
    RUNNING = auto()
    COMPLETE = auto()


class TestStatus(str, Enum):
    PASS = "PASS"
    FAIL = "FAIL"
    TIMEOUT = "TIMEOUT"
    NOTRUN = "NOTRUN"


class HarnessStatusCode(str, Enum):
    OK = "OK"
    ERROR = "ERROR"
    TIMEOUT = "TIMEOUT"


class TestStateMachine:
    """Moves a test from NOT_STARTED through RUNNING to COMPLETE, never back."""

    def __init__(self, on_state_change: Callable[[TestState], None]) -> None:
        self.state = TestState.NOT_STARTED
        self._callback = on_state_change

    def start(self) -> None:
        self._advance(TestState.RUNNING)

    def complete(self) -> None:
        self._advance(TestState.COMPLETE)

    def _advance(self, target: TestState) -> None:
        if target.value <= self.state.value:
            return
        self.state = target
        self._callback(self.state)
