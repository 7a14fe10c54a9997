"""Executing a test document against a harness."""
from __future__ import annotations

import runpy
from pathlib import Path
from typing import Any, Dict

from testharness.core import asserts
from testharness.core.harness import Harness
from testharness.logging.logger import get_logger

logger = get_logger(__name__)

DOCUMENT_RUN_NAME = "__document__"


def document_globals(harness: Harness) -> Dict[str, Any]:
    """Names a document sees at top level, bound to *harness*."""
    names: Dict[str, Any] = {name: getattr(asserts, name) for name in asserts.__all__}
    names.update(
        harness=harness,
        test=harness.test,
        async_test=harness.async_test,
        promise_test=harness.promise_test,
        generate_tests=harness.generate_tests,
        setup=harness.setup,
        done=harness.signal_explicit_done,
        timeout=harness.timeout,
        add_start_callback=harness.add_start_callback,
        add_result_callback=harness.add_result_callback,
        add_completion_callback=harness.add_completion_callback,
    )
    return names


def load_document(path: Path, harness: Harness) -> None:
    """Execute the document at *path*, then deliver the load signal.

    Anything escaping the document's top-level code marks the harness as
    errored; tests already created keep running.
    """
    logger.debug("Loading document %s", path)
    try:
        runpy.run_path(str(path), init_globals=document_globals(harness), run_name=DOCUMENT_RUN_NAME)
    except Exception as exc:
        harness.fail_setup(exc)
    harness.signal_load()
