"""Harness sink republishing start/result/complete onto the event bus."""
from __future__ import annotations

from typing import List, Optional

from testharness.core.models import HarnessStatusSnapshot, TestResult
from testharness.services.event_bus import EventBus

TESTS_CHANNEL = "tests"


class EventBusSink:
    def __init__(self, event_bus: EventBus, run_id: Optional[str] = None, channel: str = TESTS_CHANNEL) -> None:
        self.event_bus = event_bus
        self.run_id = run_id
        self.channel = channel

    def start(self) -> None:
        self._publish({"type": "start"})

    def result(self, result: TestResult) -> None:
        self._publish({"type": "result", "test": result.model_dump(mode="json")})

    def complete(self, results: List[TestResult], status: HarnessStatusSnapshot) -> None:
        self._publish(
            {
                "type": "complete",
                "tests": [result.model_dump(mode="json") for result in results],
                "status": status.model_dump(mode="json"),
            }
        )

    def _publish(self, message: dict) -> None:
        self.event_bus.publish_nowait(self.channel, {**message, "run_id": self.run_id})
