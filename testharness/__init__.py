"""Test registration and result reporting for single-document test files."""

from .config import HarnessSettings, load_harness_settings
from .core.asserts import AssertionFailure
from .core.harness import Harness, HarnessStatus
from .core.models import HarnessReport, HarnessStatusSnapshot, TestResult
from .core.state_machine import HarnessStatusCode, TestState, TestStatus
from .core.testcase import Test
from .runner import run_document

__version__ = "0.1.0"

__all__ = [
    "AssertionFailure",
    "Harness",
    "HarnessReport",
    "HarnessSettings",
    "HarnessStatus",
    "HarnessStatusCode",
    "HarnessStatusSnapshot",
    "Test",
    "TestResult",
    "TestState",
    "TestStatus",
    "load_harness_settings",
    "run_document",
]
