"""
Update Scheduler.

Background task that periodically runs the feed updater.
"""

import asyncio
import logging
from typing import Callable

from .settings import MIN_UPDATE_INTERVAL_MS, PluginSettings, update_interval_ms
from .updater import FeedUpdater

logger = logging.getLogger(__name__)


class UpdateScheduler:
    """
    Recurring timer for feed updates.

    The interval is read from settings on start; call restart() after
    the interval settings change. Intervals under a minute disable the
    timer.
    """

    def __init__(
        self,
        updater: FeedUpdater,
        get_settings: Callable[[], PluginSettings],
    ):
        self.updater = updater
        self.get_settings = get_settings
        self._task: asyncio.Task | None = None
        self._interval_ms = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def interval_ms(self) -> int:
        return self._interval_ms

    async def start(self):
        """Start the timer if the configured interval allows it."""
        if self.running:
            return

        interval = update_interval_ms(self.get_settings())
        if interval < MIN_UPDATE_INTERVAL_MS:
            logger.info(f"Update interval {interval}ms is below one minute, scheduler not started")
            self._interval_ms = 0
            return

        self._interval_ms = interval
        self._task = asyncio.create_task(self._loop())
        logger.info(f"Update scheduler started (interval: {interval // 60000} minutes)")

    async def stop(self):
        """Cancel the timer. Safe to call when not running."""
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
            logger.info("Update scheduler stopped")

    async def restart(self):
        """Restart with the current interval settings."""
        await self.stop()
        await self.start()

    async def _loop(self):
        while True:
            await asyncio.sleep(self._interval_ms / 1000)
            try:
                await self.updater.run(scheduled=True)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Scheduled update failed")
