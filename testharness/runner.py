"""Run a single test document to completion."""
from __future__ import annotations

from pathlib import Path
from typing import Callable, Iterable, Optional

from testharness.config import HarnessSettings
from testharness.core.dispatcher import HarnessSink
from testharness.core.harness import Harness
from testharness.core.models import HarnessReport
from testharness.document import load_document
from testharness.logging.logger import get_logger

logger = get_logger(__name__)


async def run_document(
    path: Path,
    settings: Optional[HarnessSettings] = None,
    sinks: Iterable[HarnessSink] = (),
    prepare: Optional[Callable[[Harness], None]] = None,
) -> HarnessReport:
    """Execute the document at *path* and wait until its harness completes.

    *prepare* receives the fresh harness before the document runs, which is
    where observers are registered.
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Test document {path} not found")
    harness = Harness(settings, sinks=sinks)
    if prepare is not None:
        prepare(harness)
    load_document(path, harness)
    report = await harness.wait()
    logger.info(
        "Document %s finished: %s, %d test(s)",
        path.name,
        report.status.status.value if report.status.status else "-",
        len(report.tests),
    )
    return report
