"""
Feed routes: subscription management and lifecycle.

Feeds are addressed by their position in the settings feed list.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from ..config import get_settings, get_storage, get_store, get_updater
from ..exceptions import FeedNotesError, StorageError, require_feed, require_group
from ..paths import sanitize_folder_path
from ..schemas import AddFeedRequest, FeedResponse, UpdateFeedRequest
from ..settings import (
    FeedConfig,
    PluginSettings,
    SettingsStore,
    archive_feed,
    resolve_feed_folder,
    restore_feed,
    soft_delete_feed,
)
from ..storage import Storage
from ..updater import FeedUpdater

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/feeds", tags=["feeds"])

# Fields that cannot be cleared with null
REQUIRED_FEED_FIELDS = ("name", "url", "folder", "enabled")


def _feed_at(settings: PluginSettings, index: int) -> FeedConfig:
    feed = settings.feeds[index] if 0 <= index < len(settings.feeds) else None
    return require_feed(feed)


def _validate_url(url: str) -> str:
    url = url.strip()
    if not url.startswith(("http://", "https://")):
        raise HTTPException(status_code=400, detail="Feed URL must start with http:// or https://")
    return url


# ─────────────────────────────────────────────────────────────
# Feed Management
# ─────────────────────────────────────────────────────────────

@router.get("")
async def list_feeds(
    settings: Annotated[PluginSettings, Depends(get_settings)],
    include_deleted: bool = True,
) -> list[FeedResponse]:
    """List all subscribed feeds."""
    return [
        FeedResponse.from_settings(i, f, settings)
        for i, f in enumerate(settings.feeds)
        if include_deleted or not f.deleted
    ]


@router.post("")
async def add_feed(
    request: AddFeedRequest,
    settings: Annotated[PluginSettings, Depends(get_settings)],
    store: Annotated[SettingsStore, Depends(get_store)],
    updater: Annotated[FeedUpdater, Depends(get_updater)],
) -> FeedResponse:
    """Subscribe to a new feed."""
    url = _validate_url(request.url)
    if settings.find_feed(url):
        raise HTTPException(status_code=400, detail="Feed already exists")
    if request.group_id:
        require_group(settings.find_group(request.group_id))

    # Validate feed URL by fetching it
    try:
        feed = await updater.parser.fetch(url)
    except FeedNotesError as e:
        raise HTTPException(status_code=400, detail=f"Invalid feed URL: {e}")

    settings.feeds.append(FeedConfig(
        name=request.name or feed.title,
        url=url,
        folder=request.folder,
        group_id=request.group_id,
    ))
    store.save(settings)
    logger.info(f"Added feed {url}")

    return FeedResponse.from_settings(len(settings.feeds) - 1, settings.feeds[-1], settings)


@router.put("/{index}")
async def update_feed(
    index: int,
    request: UpdateFeedRequest,
    settings: Annotated[PluginSettings, Depends(get_settings)],
    store: Annotated[SettingsStore, Depends(get_store)],
) -> FeedResponse:
    """Update a feed's name, location or overrides."""
    feed = _feed_at(settings, index)
    changes = request.model_dump(exclude_unset=True)
    for key in REQUIRED_FEED_FIELDS:
        if changes.get(key) is None:
            changes.pop(key, None)

    if "url" in changes:
        url = _validate_url(changes["url"])
        existing = settings.find_feed(url)
        if existing is not None and existing is not feed:
            raise HTTPException(status_code=400, detail="Feed already exists")
        changes["url"] = url
    if changes.get("group_id"):
        require_group(settings.find_group(changes["group_id"]))

    for key, value in changes.items():
        setattr(feed, key, value)

    store.save(settings)
    return FeedResponse.from_settings(index, feed, settings)


@router.post("/{index}/archive")
async def archive(
    index: int,
    settings: Annotated[PluginSettings, Depends(get_settings)],
    store: Annotated[SettingsStore, Depends(get_store)],
) -> FeedResponse:
    """Archive a feed: keep it, but stop updating and exporting it."""
    feed = _feed_at(settings, index)
    archive_feed(feed)
    store.save(settings)
    return FeedResponse.from_settings(index, feed, settings)


@router.post("/{index}/restore")
async def restore(
    index: int,
    settings: Annotated[PluginSettings, Depends(get_settings)],
    store: Annotated[SettingsStore, Depends(get_store)],
) -> FeedResponse:
    """Undo a soft delete or an archive."""
    feed = _feed_at(settings, index)
    restore_feed(feed)
    store.save(settings)
    return FeedResponse.from_settings(index, feed, settings)


@router.delete("/{index}")
async def remove_feed(
    index: int,
    settings: Annotated[PluginSettings, Depends(get_settings)],
    store: Annotated[SettingsStore, Depends(get_store)],
    storage: Annotated[Storage, Depends(get_storage)],
    permanent: bool = False,
    delete_content: bool = False,
) -> dict:
    """
    Delete a feed.

    Without `permanent` the feed is soft-deleted and purged automatically
    after 15 days. A permanent delete only applies to a soft-deleted feed
    and can also remove the feed's output folder.
    """
    feed = _feed_at(settings, index)

    if not permanent:
        soft_delete_feed(feed)
        store.save(settings)
        return {"success": True, "deleted": True, "permanent": False}

    if not feed.deleted:
        raise HTTPException(status_code=400, detail="Feed must be deleted before it can be removed permanently")

    content_deleted = False
    if delete_content:
        folder = resolve_feed_folder(feed, settings)
        if folder and folder != sanitize_folder_path(settings.folder_path):
            try:
                await storage.delete_folder(folder)
                content_deleted = True
                logger.info(f"Deleted folder {folder}")
            except StorageError as e:
                logger.error(f"Could not delete folder {folder}: {e}")

    del settings.feeds[index]
    store.save(settings)
    return {"success": True, "deleted": True, "permanent": True, "content_deleted": content_deleted}
