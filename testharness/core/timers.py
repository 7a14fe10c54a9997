"""One-shot asyncio timers used for per-test and harness-wide timeouts."""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Callable, Optional

TimerCallback = Callable[[], None]


@dataclass
class HarnessTimer:
    name: str
    timeout: float
    callback: TimerCallback
    loop: asyncio.AbstractEventLoop
    _task: Optional[asyncio.Task] = field(default=None, init=False, repr=False)

    def start(self) -> None:
        self.cancel()
        self._task = self.loop.create_task(self._run(), name=f"timer:{self.name}")

    async def _run(self) -> None:
        try:
            await asyncio.sleep(self.timeout)
        except asyncio.CancelledError:
            return
        # Detach first so a cancel() issued from inside the callback is a no-op.
        self._task = None
        self.callback()

    def cancel(self) -> None:
        if self._task and not self._task.done():
            self._task.cancel()
        self._task = None
