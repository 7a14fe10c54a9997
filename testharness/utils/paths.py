from __future__ import annotations

from pathlib import Path


DATA_DIR = Path("data")
SETTINGS_FILE = DATA_DIR / "settings" / "harness.json"
DOCUMENTS_DIR = DATA_DIR / "documents"
LOG_DIR = DATA_DIR / "logs"
TEST_LOG_DIR = LOG_DIR / "tests"
