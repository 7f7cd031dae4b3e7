"""
Settings model, persistence, and per-feed resolution.

The persisted blob is camelCase JSON merged over defaults on load.
Pipeline components never read the settings object directly: they get
an immutable FeedContext / RetentionPolicy with per-feed overrides
already applied.
"""

import json
import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from .dates import DAY_MS, now_ms, to_milliseconds
from .paths import DEFAULT_ROOT_FOLDER, resolve_feed_path, sanitize_folder_path

logger = logging.getLogger(__name__)

TimeUnit = Literal["minutes", "hours", "days", "months"]
DateField = Literal["datepub", "datesaved"]
ImageLocation = Literal["obsidian", "vault", "current", "subfolder", "specified"]

DELETED_FEED_PURGE_DAYS = 15
MIN_UPDATE_INTERVAL_MS = 60 * 1000

DEFAULT_FRONTMATTER_TEMPLATE = "\n".join([
    'Title: "{{title}}"',
    "Created Date: {{datesaved}}",
    "Upload Date: {{datepub}}",
    "Image: {{image}}",
    'Link: "{{link}}"',
    'Author: "{{author}}"',
])

DEFAULT_BODY_TEMPLATE = """# {{title}}

{{content}}"""


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FeedGroup(CamelModel):
    """A folder grouping feeds; affects output paths only."""
    id: str
    name: str
    collapsed: bool = False


class FeedConfig(CamelModel):
    """One subscribed feed with its optional overrides."""
    name: str = ""
    url: str
    folder: str = ""
    enabled: bool = True
    last_updated: int | None = None
    archived: bool = False
    deleted: bool = False
    deleted_at: int | None = None
    group_id: str | None = None

    title_template: str | None = None
    frontmatter_template: str | None = None
    content_template: str | None = None

    update_interval_value: int | None = None
    update_interval_unit: TimeUnit | None = None
    auto_cleanup_value: int | None = None
    auto_cleanup_unit: TimeUnit | None = None
    auto_cleanup_date_field: Literal["global", "datepub", "datesaved"] | None = None

    @property
    def display_name(self) -> str:
        return self.name or self.url


class PluginSettings(CamelModel):
    """Global settings plus the feed and group lists."""
    folder_path: str = DEFAULT_ROOT_FOLDER
    file_name_template: str = "{{title}}"
    frontmatter_template: str = DEFAULT_FRONTMATTER_TEMPLATE
    template: str = DEFAULT_BODY_TEMPLATE

    update_interval_value: int = 30
    update_interval_unit: TimeUnit = "minutes"

    auto_cleanup_value: int = 0
    auto_cleanup_unit: TimeUnit = "days"
    auto_cleanup_date_field: DateField = "datesaved"
    auto_cleanup_check_property: bool = False
    auto_cleanup_check_property_name: str = "Mark as Read"

    feeds: list[FeedConfig] = []
    groups: list[FeedGroup] = []

    download_images: bool = False
    image_location: ImageLocation = "obsidian"
    images_folder: str = "attachments"
    use_feed_folder: bool = True

    def find_group(self, group_id: str | None) -> FeedGroup | None:
        if not group_id:
            return None
        return next((g for g in self.groups if g.id == group_id), None)

    def find_feed(self, url: str) -> FeedConfig | None:
        return next((f for f in self.feeds if f.url == url), None)

    def active_feeds(self) -> list[FeedConfig]:
        """Feeds an update run should process."""
        return [f for f in self.feeds if f.enabled and f.url and not f.deleted]


# ─────────────────────────────────────────────────────────────
# Resolved, immutable views
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class RetentionPolicy:
    """When notes expire and whether a frontmatter flag guards them."""
    value: int = 0
    unit: str = "days"
    date_field: str = "datesaved"
    check_property: bool = False
    property_name: str = "Mark as Read"

    @property
    def enabled(self) -> bool:
        return self.value > 0

    def cutoff(self, now: int) -> int:
        return now - to_milliseconds(self.value, self.unit)


@dataclass(frozen=True)
class ImagePolicy:
    download: bool = False
    location: str = "obsidian"
    images_folder: str = "attachments"
    use_feed_folder: bool = True
    root_folder: str = DEFAULT_ROOT_FOLDER


@dataclass(frozen=True)
class FeedContext:
    """Everything the saver needs for one feed."""
    feed_name: str
    folder: str
    file_name_template: str
    frontmatter_template: str
    body_template: str
    retention: RetentionPolicy
    images: ImagePolicy


def resolve_feed_folder(feed: FeedConfig, settings: PluginSettings) -> str:
    group = settings.find_group(feed.group_id)
    return resolve_feed_path(
        settings.folder_path,
        feed.folder,
        feed.name,
        group.name if group else None,
    )


def global_retention(settings: PluginSettings) -> RetentionPolicy:
    return RetentionPolicy(
        value=settings.auto_cleanup_value,
        unit=settings.auto_cleanup_unit,
        date_field=settings.auto_cleanup_date_field,
        check_property=settings.auto_cleanup_check_property,
        property_name=settings.auto_cleanup_check_property_name,
    )


def resolve_retention(settings: PluginSettings, feed: FeedConfig) -> RetentionPolicy:
    """Per-feed cleanup overrides take precedence over the globals."""
    date_field = feed.auto_cleanup_date_field
    if not date_field or date_field == "global":
        date_field = settings.auto_cleanup_date_field
    return RetentionPolicy(
        value=feed.auto_cleanup_value if feed.auto_cleanup_value is not None else settings.auto_cleanup_value,
        unit=feed.auto_cleanup_unit or settings.auto_cleanup_unit,
        date_field=date_field,
        check_property=settings.auto_cleanup_check_property,
        property_name=settings.auto_cleanup_check_property_name,
    )


def resolve_feed_context(settings: PluginSettings, feed: FeedConfig) -> FeedContext:
    return FeedContext(
        feed_name=feed.name,
        folder=resolve_feed_folder(feed, settings),
        file_name_template=feed.title_template or settings.file_name_template or "{{title}}",
        frontmatter_template=feed.frontmatter_template or settings.frontmatter_template,
        body_template=feed.content_template or settings.template,
        retention=resolve_retention(settings, feed),
        images=ImagePolicy(
            download=settings.download_images,
            location=settings.image_location,
            images_folder=settings.images_folder,
            use_feed_folder=settings.use_feed_folder,
            root_folder=sanitize_folder_path(settings.folder_path),
        ),
    )


def update_interval_ms(settings: PluginSettings) -> int:
    return to_milliseconds(settings.update_interval_value, settings.update_interval_unit)


def is_feed_due(feed: FeedConfig, now: int) -> bool:
    """
    Whether a scheduled run should fetch this feed.

    Only feeds with their own interval are throttled, measured from the
    last run that saved something.
    """
    if not feed.update_interval_value or not feed.last_updated:
        return True
    interval = to_milliseconds(feed.update_interval_value, feed.update_interval_unit or "minutes")
    return now - feed.last_updated >= interval


# ─────────────────────────────────────────────────────────────
# Lifecycle
# ─────────────────────────────────────────────────────────────

def new_group_id() -> str:
    return uuid.uuid4().hex[:12]


def soft_delete_feed(feed: FeedConfig, now: int | None = None) -> None:
    feed.deleted = True
    feed.deleted_at = now if now is not None else now_ms()
    feed.enabled = False


def archive_feed(feed: FeedConfig) -> None:
    feed.archived = True
    feed.enabled = False


def restore_feed(feed: FeedConfig) -> None:
    feed.deleted = False
    feed.deleted_at = None
    feed.archived = False


def purge_deleted_feeds(
    settings: PluginSettings,
    now: int | None = None,
    max_age_days: int = DELETED_FEED_PURGE_DAYS,
) -> list[FeedConfig]:
    """Drop feeds soft-deleted more than `max_age_days` ago. Returns them."""
    cutoff = (now if now is not None else now_ms()) - max_age_days * DAY_MS
    purged = [f for f in settings.feeds if f.deleted and f.deleted_at and f.deleted_at < cutoff]
    if purged:
        purged_ids = {id(f) for f in purged}
        settings.feeds = [f for f in settings.feeds if id(f) not in purged_ids]
        for feed in purged:
            logger.info(f"Purged deleted feed {feed.display_name}")
    return purged


def remove_group(settings: PluginSettings, group_id: str) -> bool:
    """Delete a group; its feeds become loose feeds."""
    group = settings.find_group(group_id)
    if not group:
        return False
    settings.groups = [g for g in settings.groups if g.id != group_id]
    for feed in settings.feeds:
        if feed.group_id == group_id:
            feed.group_id = None
    return True


# ─────────────────────────────────────────────────────────────
# Persistence
# ─────────────────────────────────────────────────────────────

class SettingsStore:
    """Loads and saves the settings blob as JSON."""

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def load(self) -> PluginSettings:
        """Read settings merged over defaults; a bad file yields defaults."""
        data: dict = {}
        if self.path.exists():
            try:
                loaded = json.loads(self.path.read_text(encoding="utf-8"))
                if isinstance(loaded, dict):
                    data = loaded
            except (OSError, ValueError) as e:
                logger.warning(f"Could not read settings from {self.path}: {e}")

        try:
            settings = PluginSettings.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Invalid settings in {self.path}, using defaults: {e}")
            settings = PluginSettings()

        settings.folder_path = sanitize_folder_path(settings.folder_path)
        if purge_deleted_feeds(settings):
            self.save(settings)
        return settings

    def save(self, settings: PluginSettings) -> None:
        settings.folder_path = sanitize_folder_path(settings.folder_path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            json.dumps(settings.model_dump(by_alias=True), indent=2),
            encoding="utf-8",
        )
