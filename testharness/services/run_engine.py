from __future__ import annotations

import asyncio
import time
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional

from testharness.config import HarnessSettings
from testharness.core.models import HarnessReport
from testharness.logging.log_formatter import write_result_lines
from testharness.logging.logger import get_logger
from testharness.runner import run_document
from testharness.services.bridge import TESTS_CHANNEL, EventBusSink
from testharness.services.event_bus import EventBus
from testharness.utils.json_io import load_json, save_json
from testharness.utils.paths import DOCUMENTS_DIR, TEST_LOG_DIR

logger = get_logger(__name__)


class RunEngine:
    """Runs test documents one at a time and keeps their summaries."""

    def __init__(
        self,
        event_bus: EventBus,
        documents_dir: Path = DOCUMENTS_DIR,
        log_dir: Path = TEST_LOG_DIR,
        settings: Optional[HarnessSettings] = None,
    ) -> None:
        self.event_bus = event_bus
        self.documents_dir = Path(documents_dir)
        self.log_dir = Path(log_dir)
        self.settings = settings
        self._current_task: Optional[asyncio.Task] = None
        self._status: Dict[str, Any] = {
            "state": "idle",
            "current_run_id": None,
            "document": None,
            "details": None,
        }
        self._lock = asyncio.Lock()

    def list_documents(self) -> List[str]:
        if not self.documents_dir.is_dir():
            return []
        return sorted(f.name for f in self.documents_dir.glob("*.py"))

    def _resolve(self, document: str) -> Path:
        path = self.documents_dir / document
        if Path(document).name != document or not path.is_file():
            raise FileNotFoundError(f"Test document {document} not found")
        return path

    async def start_run(self, document: str) -> Dict[str, Any]:
        await self._launch(document)
        return dict(self._status)

    async def run(self, document: str) -> HarnessReport:
        """Start a run of *document* and wait for its report."""
        task = await self._launch(document)
        return await task

    async def _launch(self, document: str) -> asyncio.Task:
        async with self._lock:
            if self._current_task and not self._current_task.done():
                raise RuntimeError("Another test run is currently active")
            path = self._resolve(document)
            run_id = uuid.uuid4().hex
            self._status.update(
                {
                    "state": "running",
                    "current_run_id": run_id,
                    "document": document,
                    "details": None,
                }
            )
            task = asyncio.create_task(self._run(run_id, path), name=f"run:{run_id}")
            task.add_done_callback(_collect_result)
            self._current_task = task
            return task

    async def _run(self, run_id: str, path: Path) -> HarnessReport:
        run_dir = self.log_dir / run_id
        run_dir.mkdir(parents=True, exist_ok=True)
        logger.info("Run %s started for %s", run_id, path.name)
        started_at = time.time()
        sink = EventBusSink(self.event_bus, run_id=run_id)
        try:
            report = await run_document(path, self.settings, sinks=[sink])
        except Exception as exc:
            logger.error("Run %s failed: %s", run_id, exc)
            self._status.update({"state": "idle", "details": {"run_id": run_id, "error": str(exc)}})
            await self.event_bus.publish(TESTS_CHANNEL, {"type": "error", "run_id": run_id, "message": str(exc)})
            raise
        self._finalize(run_id, path, report, run_dir, started_at)
        return report

    def _finalize(
        self, run_id: str, path: Path, report: HarnessReport, run_dir: Path, started_at: float
    ) -> None:
        summary = {
            "run_id": run_id,
            "document": path.name,
            "started_at": started_at,
            "completed_at": time.time(),
            "report": report,
        }
        save_json(run_dir / "summary.json", summary)
        write_result_lines(run_dir / "summary.txt", report)
        self._status.update({"state": "idle", "details": {**summary, "report": report.model_dump(mode="json")}})
        status = report.status.status.value if report.status.status else "-"
        logger.info("Run %s finished with status %s", run_id, status)

    def status(self) -> Dict[str, Any]:
        return self._status

    def list_logs(self) -> List[str]:
        if not self.log_dir.is_dir():
            return []
        return sorted(p.name for p in self.log_dir.iterdir() if p.is_dir())

    def load_log(self, run_id: str) -> Dict[str, Any]:
        run_dir = self.log_dir / run_id
        if Path(run_id).name != run_id or not run_dir.is_dir():
            raise FileNotFoundError(f"Test log {run_id} not found")
        return load_json(run_dir / "summary.json") or {}


def _collect_result(task: asyncio.Task) -> None:
    # _run has logged the failure already.
    if not task.cancelled():
        task.exception()
