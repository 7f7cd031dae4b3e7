"""
Feed Update Orchestrator.

One run: for every active feed, fetch -> normalize -> save -> per-feed
cleanup, then one global cleanup of the output root. Feeds and items are
processed strictly one after another. A feed that fails is logged and
skipped; the run carries on with the next one.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Callable

from .cleanup import cleanup_folder
from .dates import now_ms
from .feeds import FeedParser
from .images import ImageResolver
from .models import RawEntry
from .normalizer import normalize
from .notifications import LogNotifier, Notifier
from .paths import sanitize_folder_path
from .saver import FeedSaver
from .settings import (
    FeedConfig,
    PluginSettings,
    global_retention,
    is_feed_due,
    purge_deleted_feeds,
    resolve_feed_context,
)
from .storage import Storage

logger = logging.getLogger(__name__)


class RunState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


@dataclass
class FeedResult:
    """Outcome of one feed within a run."""
    url: str
    name: str
    saved: int = 0
    cleaned: int = 0
    error: str | None = None


@dataclass
class UpdateSummary:
    """Outcome of a whole run."""
    started_at: datetime = field(default_factory=datetime.now)
    finished_at: datetime | None = None
    feeds: list[FeedResult] = field(default_factory=list)
    cleaned: int = 0

    @property
    def saved(self) -> int:
        return sum(f.saved for f in self.feeds)

    @property
    def failed(self) -> int:
        return sum(1 for f in self.feeds if f.error)


class FeedUpdater:
    """
    Runs feed updates, at most one at a time.

    Triggers that arrive while a run is in progress (timer tick, manual
    refresh) are ignored rather than queued.
    """

    def __init__(
        self,
        get_settings: Callable[[], PluginSettings],
        save_settings: Callable[[PluginSettings], None],
        storage: Storage,
        parser: FeedParser | None = None,
        images: ImageResolver | None = None,
        notifier: Notifier | None = None,
    ):
        self.get_settings = get_settings
        self.save_settings = save_settings
        self.storage = storage
        self.parser = parser or FeedParser()
        self.images = images or ImageResolver()
        self.notifier = notifier or LogNotifier()
        self._state = RunState.IDLE
        self.last_summary: UpdateSummary | None = None

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def running(self) -> bool:
        return self._state is RunState.RUNNING

    async def run(self, scheduled: bool = False) -> UpdateSummary | None:
        """
        Update all active feeds.

        Returns None without doing anything if a run is already active.
        Scheduled runs skip feeds whose own interval has not elapsed.
        """
        # No await between the check and the set, so this is atomic on the loop
        if self._state is RunState.RUNNING:
            logger.info("Update already in progress, ignoring trigger")
            return None
        self._state = RunState.RUNNING
        try:
            summary = await self._run(scheduled)
            self.last_summary = summary
            return summary
        finally:
            self._state = RunState.IDLE

    async def _run(self, scheduled: bool) -> UpdateSummary:
        summary = UpdateSummary()
        settings = self.get_settings()

        if purge_deleted_feeds(settings):
            self.save_settings(settings)

        feeds = settings.active_feeds()
        if not feeds:
            self.notifier.notify("No active feeds to update.")
            summary.finished_at = datetime.now()
            return summary

        self.notifier.notify("Updating RSS feeds...")

        now = now_ms()
        for feed in feeds:
            if scheduled and not is_feed_due(feed, now):
                logger.debug(f"Skipping {feed.display_name}, not due yet")
                continue
            summary.feeds.append(await self.update_feed(feed, settings))

        retention = global_retention(settings)
        if retention.enabled:
            try:
                summary.cleaned = await cleanup_folder(
                    self.storage,
                    sanitize_folder_path(settings.folder_path),
                    retention,
                )
            except Exception:
                logger.exception("Global cleanup failed")

        summary.finished_at = datetime.now()
        self.notifier.notify(f"RSS update complete! {summary.saved} new item(s) saved.")
        return summary

    async def update_feed(self, feed: FeedConfig, settings: PluginSettings) -> FeedResult:
        """Fetch and save one feed, then run its cleanup."""
        result = FeedResult(url=feed.url, name=feed.display_name)
        context = resolve_feed_context(settings, feed)

        try:
            raw_feed = await self.parser.fetch(feed.url)
            saver = await FeedSaver.open(self.storage, context, self.images)

            for entry in raw_feed.items:
                try:
                    if await self.save_entry(saver, entry):
                        result.saved += 1
                except Exception:
                    logger.exception(f"Failed to save an item of {feed.display_name}")

            if result.saved > 0:
                feed.last_updated = now_ms()
                self.save_settings(settings)
                logger.info(f"Saved {result.saved} new items for {feed.display_name}")
        except Exception as e:
            logger.exception(f"RSS Error [{feed.display_name}]")
            result.error = str(e)
            return result

        if context.retention.enabled:
            try:
                result.cleaned = await cleanup_folder(self.storage, context.folder, context.retention)
            except Exception:
                logger.exception(f"Cleanup failed for {feed.display_name}")

        return result

    async def save_entry(self, saver: FeedSaver, entry: RawEntry) -> bool:
        item = normalize(entry)
        if not await saver.is_new(item):
            return False
        image_url = await self.images.resolve(entry.raw, item.link)
        return await saver.save(replace(item, image_url=image_url))
