from __future__ import annotations

from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from testharness.config import HarnessSettings, load_harness_settings
from testharness.logging.logger import configure_logging
from testharness.routes import get_routers
from testharness.services.event_bus import EventBus
from testharness.services.run_engine import RunEngine
from testharness.utils.paths import DOCUMENTS_DIR, LOG_DIR, TEST_LOG_DIR


def create_app(
    documents_dir: Path = DOCUMENTS_DIR,
    log_dir: Path = TEST_LOG_DIR,
    settings: Optional[HarnessSettings] = None,
    event_bus: Optional[EventBus] = None,
) -> FastAPI:
    app = FastAPI(title="Test Harness")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    bus = event_bus or EventBus()
    app.state.event_bus = bus
    app.state.run_engine = RunEngine(
        bus,
        documents_dir=documents_dir,
        log_dir=log_dir,
        settings=settings or load_harness_settings(),
    )
    for router in get_routers():
        app.include_router(router)
    return app


def build_default_app() -> FastAPI:
    """App factory for ``uvicorn --factory testharness.app:build_default_app``."""
    configure_logging(log_file=LOG_DIR / "harness.log")
    return create_app()
