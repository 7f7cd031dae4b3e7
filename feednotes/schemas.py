"""
Pydantic models for API request/response validation.
"""

from typing import Literal

from pydantic import BaseModel

from .settings import DateField, FeedConfig, FeedGroup, ImageLocation, PluginSettings, TimeUnit, resolve_feed_folder
from .updater import UpdateSummary


# ─────────────────────────────────────────────────────────────
# Feed Schemas
# ─────────────────────────────────────────────────────────────

class FeedResponse(BaseModel):
    """Feed for list view."""
    index: int
    url: str
    name: str
    folder: str
    output_folder: str
    enabled: bool
    archived: bool
    deleted: bool
    deleted_at: int | None = None
    group_id: str | None = None
    group_name: str | None = None
    last_updated: int | None = None

    @classmethod
    def from_settings(cls, index: int, feed: FeedConfig, settings: PluginSettings) -> "FeedResponse":
        group = settings.find_group(feed.group_id)
        return cls(
            index=index,
            url=feed.url,
            name=feed.name,
            folder=feed.folder,
            output_folder=resolve_feed_folder(feed, settings),
            enabled=feed.enabled,
            archived=feed.archived,
            deleted=feed.deleted,
            deleted_at=feed.deleted_at,
            group_id=feed.group_id,
            group_name=group.name if group else None,
            last_updated=feed.last_updated,
        )


class AddFeedRequest(BaseModel):
    """Request to add a new feed."""
    url: str
    name: str | None = None
    folder: str = ""
    group_id: str | None = None


class UpdateFeedRequest(BaseModel):
    """Request to update a feed. Only fields that are sent are changed."""
    name: str | None = None
    url: str | None = None
    folder: str | None = None
    enabled: bool | None = None
    group_id: str | None = None

    title_template: str | None = None
    frontmatter_template: str | None = None
    content_template: str | None = None

    update_interval_value: int | None = None
    update_interval_unit: TimeUnit | None = None
    auto_cleanup_value: int | None = None
    auto_cleanup_unit: TimeUnit | None = None
    auto_cleanup_date_field: Literal["global", "datepub", "datesaved"] | None = None


# ─────────────────────────────────────────────────────────────
# Group Schemas
# ─────────────────────────────────────────────────────────────

class GroupResponse(BaseModel):
    """Feed group with its feed count."""
    id: str
    name: str
    collapsed: bool
    feed_count: int

    @classmethod
    def from_settings(cls, group: FeedGroup, settings: PluginSettings) -> "GroupResponse":
        return cls(
            id=group.id,
            name=group.name,
            collapsed=group.collapsed,
            feed_count=sum(1 for f in settings.feeds if f.group_id == group.id and not f.deleted),
        )


class AddGroupRequest(BaseModel):
    """Request to create a group."""
    name: str


class UpdateGroupRequest(BaseModel):
    """Request to rename or collapse a group."""
    name: str | None = None
    collapsed: bool | None = None


# ─────────────────────────────────────────────────────────────
# Settings Schemas
# ─────────────────────────────────────────────────────────────

class SettingsResponse(BaseModel):
    """Global settings (feeds and groups have their own endpoints)."""
    folder_path: str
    file_name_template: str
    frontmatter_template: str
    template: str
    update_interval_value: int
    update_interval_unit: TimeUnit
    auto_cleanup_value: int
    auto_cleanup_unit: TimeUnit
    auto_cleanup_date_field: DateField
    auto_cleanup_check_property: bool
    auto_cleanup_check_property_name: str
    download_images: bool
    image_location: ImageLocation
    images_folder: str
    use_feed_folder: bool

    @classmethod
    def from_settings(cls, settings: PluginSettings) -> "SettingsResponse":
        return cls(**settings.model_dump(exclude={"feeds", "groups"}))


class SettingsUpdateRequest(BaseModel):
    """Request to update settings."""
    folder_path: str | None = None
    file_name_template: str | None = None
    frontmatter_template: str | None = None
    template: str | None = None
    update_interval_value: int | None = None
    update_interval_unit: TimeUnit | None = None
    auto_cleanup_value: int | None = None
    auto_cleanup_unit: TimeUnit | None = None
    auto_cleanup_date_field: DateField | None = None
    auto_cleanup_check_property: bool | None = None
    auto_cleanup_check_property_name: str | None = None
    download_images: bool | None = None
    image_location: ImageLocation | None = None
    images_folder: str | None = None
    use_feed_folder: bool | None = None


# ─────────────────────────────────────────────────────────────
# Status Schemas
# ─────────────────────────────────────────────────────────────

class FeedRunResponse(BaseModel):
    """One feed's outcome in the last run."""
    url: str
    name: str
    saved: int
    cleaned: int
    error: str | None = None


class RunSummaryResponse(BaseModel):
    """Outcome of the last update run."""
    started_at: str
    finished_at: str | None
    saved: int
    failed: int
    cleaned: int
    feeds: list[FeedRunResponse]

    @classmethod
    def from_summary(cls, summary: UpdateSummary) -> "RunSummaryResponse":
        return cls(
            started_at=summary.started_at.isoformat(),
            finished_at=summary.finished_at.isoformat() if summary.finished_at else None,
            saved=summary.saved,
            failed=summary.failed,
            cleaned=summary.cleaned,
            feeds=[
                FeedRunResponse(url=f.url, name=f.name, saved=f.saved, cleaned=f.cleaned, error=f.error)
                for f in summary.feeds
            ],
        )


class StatusResponse(BaseModel):
    """Service status."""
    status: str
    version: str
    state: str
    scheduler_running: bool
    update_interval_ms: int
    active_feeds: int
    last_run: RunSummaryResponse | None = None
    notices: list[str] = []


# ─────────────────────────────────────────────────────────────
# OPML Schemas
# ─────────────────────────────────────────────────────────────

class OPMLImportRequest(BaseModel):
    """Request to import feeds from OPML."""
    opml_content: str


class OPMLImportResponse(BaseModel):
    """Response from OPML import."""
    total: int
    imported: int
    skipped: int
