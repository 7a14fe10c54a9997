"""Harness settings and the JSON settings file they are loaded from."""
from __future__ import annotations

from copy import deepcopy
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from testharness.logging.logger import get_logger
from testharness.utils.json_io import load_json
from testharness.utils.paths import SETTINGS_FILE

logger = get_logger(__name__)

DEFAULT_SETTINGS: Dict[str, Any] = {
    "timeout_ms": 5000,
    "test_timeout_ms": 2000,
    "explicit_done": False,
    "explicit_timeout": False,
    "timeout_multiplier": 1.0,
    "output_target": None,
}


class HarnessSettings(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    timeout_ms: float = Field(default=DEFAULT_SETTINGS["timeout_ms"], alias="timeout", gt=0)
    test_timeout_ms: float = Field(default=DEFAULT_SETTINGS["test_timeout_ms"], gt=0)
    explicit_done: bool = DEFAULT_SETTINGS["explicit_done"]
    explicit_timeout: bool = DEFAULT_SETTINGS["explicit_timeout"]
    timeout_multiplier: float = Field(default=DEFAULT_SETTINGS["timeout_multiplier"], gt=0)
    # Handed through untouched for whatever renders the results.
    output_target: Any = None

    def merged(self, properties: Mapping[str, Any]) -> "HarnessSettings":
        """Return a validated copy with *properties* applied on top."""
        current = self.model_dump()
        return HarnessSettings.model_validate({**current, **_canonical(properties)})

    def scaled_seconds(self, timeout_ms: float) -> float:
        return timeout_ms * self.timeout_multiplier / 1000.0


def _canonical(properties: Mapping[str, Any]) -> Dict[str, Any]:
    values = dict(properties)
    if "timeout" in values:
        values["timeout_ms"] = values.pop("timeout")
    return values


def _deep_update(target: Dict[str, Any], updates: Mapping[str, Any]) -> Dict[str, Any]:
    for key, value in updates.items():
        if isinstance(value, Mapping) and isinstance(target.get(key), dict):
            _deep_update(target[key], value)
        else:
            target[key] = value
    return target


def load_harness_settings(
    path: Optional[Path] = None, overrides: Optional[Mapping[str, Any]] = None
) -> HarnessSettings:
    """Load settings from *path* merged over the defaults.

    A missing file yields the defaults. *overrides* are applied last, so
    command line values win over the file.
    """
    settings_path = path or SETTINGS_FILE
    merged = deepcopy(DEFAULT_SETTINGS)
    raw = load_json(settings_path)
    if raw is None:
        logger.debug("No settings file at %s, using defaults", settings_path)
    elif not isinstance(raw, dict):
        raise ValueError(f"Settings file {settings_path} must contain a JSON object")
    else:
        _deep_update(merged, _canonical(raw))
    if overrides:
        _deep_update(merged, _canonical({k: v for k, v in overrides.items() if v is not None}))
    return HarnessSettings.model_validate(merged)
