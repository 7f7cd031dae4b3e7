"""
Saver - write one note per new feed item.

Per item:
1. ledger has seen the link (saved or deleted) -> skip
2. already past the retention cutoff -> record as deleted, skip
3. note file already exists -> skip
4. otherwise download the image (optional), render, write, record
"""

import logging
from dataclasses import replace
from datetime import datetime

from .dates import now_ms, parse_feed_date, to_epoch_ms
from .exceptions import StorageError
from .images import ImageResolver, resolve_image_folder
from .ledger import Ledger
from .models import FeedItem
from .paths import join_path, sanitize_file_name
from .settings import FeedContext
from .storage import Storage
from .templates import RenderMode, render

logger = logging.getLogger(__name__)

NOTE_EXTENSION = ".md"


def compose_note(frontmatter: str, body: str) -> str:
    return f"---\n{frontmatter}\n---\n\n{body}"


class FeedSaver:
    """Saves items for one feed folder; owns that folder's ledger."""

    def __init__(
        self,
        storage: Storage,
        context: FeedContext,
        ledger: Ledger,
        images: ImageResolver | None = None,
    ):
        self.storage = storage
        self.context = context
        self.ledger = ledger
        self.images = images

    @classmethod
    async def open(
        cls,
        storage: Storage,
        context: FeedContext,
        images: ImageResolver | None = None,
    ) -> "FeedSaver":
        ledger = await Ledger.load(storage, context.folder)
        return cls(storage, context, ledger, images)

    def note_name(self, item: FeedItem, now: datetime | None = None) -> str:
        raw_name = render(
            self.context.file_name_template,
            item,
            RenderMode.FILENAME,
            feed_name=self.context.feed_name,
            now=now,
        )
        return sanitize_file_name(raw_name) or "Untitled"

    def expired_before_save(self, item: FeedItem, now: int) -> bool:
        """
        Whether cleanup would delete this item as soon as it was written.

        Only applies to publish-date retention without the property gate;
        an unparseable date never counts as expired.
        """
        policy = self.context.retention
        if not policy.enabled or policy.check_property or policy.date_field != "datepub":
            return False
        published = parse_feed_date(item.pub_date)
        if published is None:
            return False
        return to_epoch_ms(published) < policy.cutoff(now)

    def note_path(self, item: FeedItem) -> str:
        return join_path(self.context.folder, self.note_name(item) + NOTE_EXTENSION)

    async def is_new(self, item: FeedItem) -> bool:
        """
        Cheap pre-check so known or expired items don't trigger image lookups.

        Expired items are recorded in the ledger here, as `save` would.
        """
        if item.link and self.ledger.has_seen(item.link):
            return False
        if await self._skip_expired(item, now_ms()):
            return False
        try:
            return not await self.storage.exists(self.note_path(item))
        except StorageError:
            return True

    async def save(self, item: FeedItem) -> bool:
        """Save an item if it is new. Returns True when a note was written."""
        link = item.link
        if link and self.ledger.has_seen(link):
            return False

        now = now_ms()
        if await self._skip_expired(item, now):
            return False

        folder = self.context.folder
        name = self.note_name(item)
        path = join_path(folder, name + NOTE_EXTENSION)

        try:
            if await self.storage.exists(path):
                return False

            await self.storage.create_folder(folder)

            if self.context.images.download and self.images and item.image_url.startswith("http"):
                image_folder = resolve_image_folder(self.context.images, folder, self.storage)
                stored = await self.images.download(item.image_url, self.storage, image_folder, name)
                item = replace(item, image_url=stored)

            saved_at = datetime.now()
            frontmatter = render(
                self.context.frontmatter_template,
                item,
                RenderMode.YAML,
                feed_name=self.context.feed_name,
                now=saved_at,
            )
            body = render(
                self.context.body_template,
                item,
                RenderMode.BODY,
                feed_name=self.context.feed_name,
                now=saved_at,
            )
            await self.storage.write_text(path, compose_note(frontmatter, body))
        except StorageError as e:
            logger.error(f"Could not save {path}: {e}")
            return False

        if link:
            self.ledger.mark_saved(link, now)
            await self._save_ledger(now)
        return True

    async def _skip_expired(self, item: FeedItem, now: int) -> bool:
        if not self.expired_before_save(item, now):
            return False
        if item.link:
            self.ledger.mark_deleted(item.link, now)
            await self._save_ledger(now)
        logger.debug(f"Skipped expired item {item.title!r}")
        return True

    async def _save_ledger(self, now: int) -> None:
        try:
            await self.ledger.save(now)
        except StorageError as e:
            logger.error(f"Could not write ledger for {self.context.folder}: {e}")
