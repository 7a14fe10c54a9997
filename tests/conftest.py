from __future__ import annotations

import textwrap
from pathlib import Path

import pytest
import pytest_asyncio

from testharness.config import HarnessSettings
from testharness.core.harness import Harness


@pytest_asyncio.fixture
async def make_harness():
    """Factory for harnesses with short timeouts; torn down after the test."""
    created = []

    def _make(sinks=(), **settings) -> Harness:
        values = {"timeout_ms": 1000, "test_timeout_ms": 500}
        values.update(settings)
        harness = Harness(HarnessSettings(**values), sinks=sinks)
        created.append(harness)
        return harness

    yield _make
    for harness in created:
        harness.teardown()


@pytest.fixture
def write_document(tmp_path: Path):
    def _write(source: str, name: str = "document.py") -> Path:
        path = tmp_path / name
        path.write_text(textwrap.dedent(source), encoding="utf-8")
        return path

    return _write
