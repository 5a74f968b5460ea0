"""
Auto-Refresh Scheduler - Periodic coin list and global snapshot refresh.
"""

import asyncio
from typing import Awaitable, Callable

from cryptosage.application.use_cases.market_engine import MarketEngine
from cryptosage.infrastructure.logging import get_logger

logger = get_logger(__name__)


class AutoRefreshScheduler:
    """
    Drives two independent fixed-rate refresh loops.

    Ticks are spawned as tasks so a slow refresh never delays the next
    tick; the engine's in-flight guard turns overlapping ticks into
    no-ops. The first tick fires one interval after start().
    """

    def __init__(
        self,
        engine: MarketEngine,
        coin_interval: float = 30.0,
        global_interval: float = 90.0,
    ):
        if coin_interval <= 0 or global_interval <= 0:
            raise ValueError("Refresh intervals must be positive")

        self.engine = engine
        self.coin_interval = coin_interval
        self.global_interval = global_interval

        self._loops: list[asyncio.Task] = []
        self._ticks: set[asyncio.Task] = set()

    @property
    def is_running(self) -> bool:
        return bool(self._loops)

    def start(self) -> None:
        """Start both loops. No-op if already running."""
        if self.is_running:
            return

        self._loops = [
            asyncio.create_task(
                self._run("coins", self.coin_interval, self.engine.refresh),
                name="refresh-coins",
            ),
            asyncio.create_task(
                self._run("global", self.global_interval, self.engine.refresh_global),
                name="refresh-global",
            ),
        ]
        logger.info(
            "Auto-refresh started",
            coin_interval=self.coin_interval,
            global_interval=self.global_interval,
        )

    async def stop(self) -> None:
        """Cancel both loops and any in-flight ticks, and wait for them."""
        if not self.is_running:
            return

        tasks = self._loops + list(self._ticks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        self._loops = []
        self._ticks.clear()
        logger.info("Auto-refresh stopped")

    async def _run(
        self,
        name: str,
        interval: float,
        refresh: Callable[[], Awaitable[bool]],
    ) -> None:
        loop = asyncio.get_running_loop()
        next_tick = loop.time() + interval

        while True:
            await asyncio.sleep(max(0.0, next_tick - loop.time()))
            next_tick += interval

            # Skip ticks missed while the loop was blocked
            now = loop.time()
            if next_tick <= now:
                next_tick = now + interval

            self._spawn_tick(name, refresh)

    def _spawn_tick(self, name: str, refresh: Callable[[], Awaitable[bool]]) -> None:
        task = asyncio.create_task(self._tick(name, refresh))
        self._ticks.add(task)
        task.add_done_callback(self._ticks.discard)

    async def _tick(self, name: str, refresh: Callable[[], Awaitable[bool]]) -> bool:
        logger.debug("Auto-refresh tick", loop=name)
        try:
            ran = await refresh()
        except Exception:
            logger.exception("Auto-refresh tick failed", loop=name)
            return False
        if not ran:
            logger.debug("Auto-refresh tick skipped, refresh in flight", loop=name)
        return ran
