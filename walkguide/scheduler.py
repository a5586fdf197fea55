"""Fixed-delay periodic capture timer."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

LOGGER = logging.getLogger("walkguide.scheduler")


class CaptureScheduler:
    """Cancellable repeating timer owned by the orchestrator.

    ``on_fire`` is called synchronously on every tick and must not block; it is
    expected to spawn any real work as its own task so that :meth:`stop` only
    cancels the pending timer and never an in-flight narration.
    """

    def __init__(self, interval_s: float, on_fire: Callable[[], None]) -> None:
        if interval_s <= 0:
            raise ValueError("interval_s must be > 0")
        self.interval_s = interval_s
        self._on_fire = on_fire
        self._task: asyncio.Task[None] | None = None
        self.fire_count = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> bool:
        if self.is_running:
            return False
        self._task = asyncio.get_running_loop().create_task(self._run(), name="CaptureScheduler")
        LOGGER.info("Capture timer started (%.1fs interval)", self.interval_s)
        return True

    def stop(self) -> bool:
        if not self.is_running:
            self._task = None
            return False
        assert self._task is not None
        self._task.cancel()
        self._task = None
        LOGGER.info("Capture timer stopped")
        return True

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_s)
            self.fire_count += 1
            try:
                self._on_fire()
            except Exception:
                LOGGER.exception("Capture timer callback failed")


__all__ = ["CaptureScheduler"]
