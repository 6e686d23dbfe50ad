from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)


class PeriodicTask:
    """Runs a blocking callable on a worker thread every `interval_sec` seconds."""

    def __init__(
        self,
        name: str,
        work: Callable[[], Any],
        interval_sec: float,
        *,
        run_immediately: bool = False,
    ):
        self.name = name
        self.work = work
        self.interval_sec = interval_sec
        self.run_immediately = run_immediately
        self.runs = 0
        self._running = False
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._loop(), name=self.name)
        logger.info("%s scheduled every %ss", self.name, self.interval_sec)

    async def stop(self) -> None:
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("%s stopped", self.name)

    async def run_once(self) -> Any:
        try:
            return await asyncio.to_thread(self.work)
        except Exception:
            logger.exception("%s run failed", self.name)
            return None
        finally:
            self.runs += 1

    async def _loop(self) -> None:
        if not self.run_immediately:
            await asyncio.sleep(self.interval_sec)
        while self._running:
            await self.run_once()
            await asyncio.sleep(self.interval_sec)
