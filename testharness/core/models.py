"""Snapshot models handed to observers, sinks and persisted reports."""
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .state_machine import HarnessStatusCode, TestStatus


class TestProperties(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    timeout_ms: Optional[float] = Field(default=None, alias="timeout", gt=0)


class TestResult(BaseModel):
    name: str
    status: TestStatus
    message: Optional[str] = None


class HarnessStatusSnapshot(BaseModel):
    status: Optional[HarnessStatusCode] = None
    message: Optional[str] = None


class HarnessReport(BaseModel):
    status: HarnessStatusSnapshot
    tests: List[TestResult] = Field(default_factory=list)

    @property
    def passed(self) -> bool:
        return self.status.status == HarnessStatusCode.OK and all(
            result.status == TestStatus.PASS for result in self.tests
        )
