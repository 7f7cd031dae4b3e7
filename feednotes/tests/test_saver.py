"""
Tests for note persistence.
"""

from datetime import datetime, timedelta, timezone
from email.utils import format_datetime

import pytest

from feednotes.frontmatter import parse_frontmatter
from feednotes.images import ImageResolver
from feednotes.ledger import Ledger
from feednotes.models import FeedItem
from feednotes.saver import FeedSaver
from feednotes.settings import FeedContext, ImagePolicy, RetentionPolicy

FOLDER = "RSS/Test Feed"


def make_context(**overrides) -> FeedContext:
    values = {
        "feed_name": "Test Feed",
        "folder": FOLDER,
        "file_name_template": "{{title}}",
        "frontmatter_template": 'Title: "{{title}}"\nImage: {{image}}\nLink: "{{link}}"\nUpload Date: {{datepub}}',
        "body_template": "# {{title}}\n\n{{content}}",
        "retention": RetentionPolicy(),
        "images": ImagePolicy(),
    }
    values.update(overrides)
    return FeedContext(**values)


def make_item(**overrides) -> FeedItem:
    values = {
        "title": "Hello: World",
        "link": "https://example.com/post",
        "content": "<p>Body</p>",
        "pub_date": format_datetime(datetime.now(timezone.utc) - timedelta(days=1)),
    }
    values.update(overrides)
    return FeedItem(**values)


async def open_saver(storage, context=None, images=None) -> FeedSaver:
    return await FeedSaver.open(storage, context or make_context(), images)


class TestSave:
    """Tests for writing a new note."""

    @pytest.mark.asyncio
    async def test_writes_note(self, storage):
        saver = await open_saver(storage)
        assert await saver.save(make_item())

        text = await storage.read_text(f"{FOLDER}/Hello - World.md")
        assert text.startswith('---\nTitle: "Hello: World"\nLink: "https://example.com/post"\n')
        assert "\n---\n\n# Hello: World\n\n<p>Body</p>" in text

    @pytest.mark.asyncio
    async def test_image_line_removed_without_image(self, storage):
        saver = await open_saver(storage)
        await saver.save(make_item())
        data = parse_frontmatter(await storage.read_text(f"{FOLDER}/Hello - World.md"))
        assert "Image" not in data

    @pytest.mark.asyncio
    async def test_records_link_in_ledger(self, storage):
        saver = await open_saver(storage)
        await saver.save(make_item())
        ledger = await Ledger.load(storage, FOLDER)
        assert ledger.get("https://example.com/post").saved_at is not None

    @pytest.mark.asyncio
    async def test_second_save_is_noop(self, storage):
        saver = await open_saver(storage)
        assert await saver.save(make_item())
        await storage.write_text(f"{FOLDER}/Hello - World.md", "edited by user")

        assert not await saver.save(make_item(content="<p>Changed</p>"))
        assert await storage.read_text(f"{FOLDER}/Hello - World.md") == "edited by user"

    @pytest.mark.asyncio
    async def test_deleted_link_not_recreated(self, storage):
        saver = await open_saver(storage)
        saver.ledger.mark_deleted("https://example.com/post")

        assert not await saver.save(make_item())
        assert not await storage.exists(f"{FOLDER}/Hello - World.md")

    @pytest.mark.asyncio
    async def test_note_deleted_by_hand_not_recreated(self, storage):
        assert await (await open_saver(storage)).save(make_item())
        await storage.delete(f"{FOLDER}/Hello - World.md")

        saver = await open_saver(storage)
        assert not await saver.is_new(make_item())
        assert not await saver.save(make_item())
        assert not await storage.exists(f"{FOLDER}/Hello - World.md")

    @pytest.mark.asyncio
    async def test_empty_title_uses_untitled(self, storage):
        saver = await open_saver(storage)
        assert await saver.save(make_item(title="???"))
        assert await storage.exists(f"{FOLDER}/Untitled.md")

    @pytest.mark.asyncio
    async def test_is_new(self, storage):
        saver = await open_saver(storage)
        item = make_item()
        assert await saver.is_new(item)
        await saver.save(item)
        assert not await saver.is_new(item)


class TestExpiredBeforeSave:
    """Items already past the retention window are never written."""

    @pytest.mark.asyncio
    async def test_expired_item_recorded_as_deleted(self, storage):
        context = make_context(retention=RetentionPolicy(value=7, unit="days", date_field="datepub"))
        saver = await open_saver(storage, context)
        old = make_item(pub_date=format_datetime(datetime.now(timezone.utc) - timedelta(days=30)))

        assert not await saver.save(old)
        assert not await storage.exists(f"{FOLDER}/Hello - World.md")

        ledger = await Ledger.load(storage, FOLDER)
        assert ledger.is_deleted("https://example.com/post")

    @pytest.mark.asyncio
    async def test_is_new_rejects_and_records_expired_item(self, storage):
        context = make_context(retention=RetentionPolicy(value=7, unit="days", date_field="datepub"))
        saver = await open_saver(storage, context)
        old = make_item(pub_date=format_datetime(datetime.now(timezone.utc) - timedelta(days=30)))

        assert not await saver.is_new(old)

        ledger = await Ledger.load(storage, FOLDER)
        assert ledger.is_deleted("https://example.com/post")

    @pytest.mark.asyncio
    async def test_recent_item_saved(self, storage):
        context = make_context(retention=RetentionPolicy(value=7, unit="days", date_field="datepub"))
        saver = await open_saver(storage, context)
        assert await saver.save(make_item())

    @pytest.mark.asyncio
    async def test_unparseable_date_is_saved(self, storage):
        context = make_context(retention=RetentionPolicy(value=7, unit="days", date_field="datepub"))
        saver = await open_saver(storage, context)
        assert await saver.save(make_item(pub_date="sometime"))

    @pytest.mark.asyncio
    async def test_saved_date_field_does_not_filter(self, storage):
        context = make_context(retention=RetentionPolicy(value=7, unit="days", date_field="datesaved"))
        saver = await open_saver(storage, context)
        old = make_item(pub_date=format_datetime(datetime.now(timezone.utc) - timedelta(days=30)))
        assert await saver.save(old)

    @pytest.mark.asyncio
    async def test_property_gate_does_not_filter(self, storage):
        context = make_context(retention=RetentionPolicy(
            value=7, unit="days", date_field="datepub", check_property=True,
        ))
        saver = await open_saver(storage, context)
        old = make_item(pub_date=format_datetime(datetime.now(timezone.utc) - timedelta(days=30)))
        assert await saver.save(old)


class TestImageDownload:
    """Tests for downloading images while saving."""

    @pytest.mark.asyncio
    async def test_downloaded_image_referenced(self, storage, fetcher):
        fetcher.add("https://example.com/pic.png", b"\x89PNG", headers={"content-type": "image/png"})
        context = make_context(images=ImagePolicy(download=True, location="subfolder", images_folder="img"))
        saver = await open_saver(storage, context, ImageResolver(fetcher))

        assert await saver.save(make_item(image_url="https://example.com/pic.png"))

        assert await storage.exists(f"{FOLDER}/img/Hello - World.png")
        data = parse_frontmatter(await storage.read_text(f"{FOLDER}/Hello - World.md"))
        assert data["Image"] == f"[[{FOLDER}/img/Hello - World.png]]"

    @pytest.mark.asyncio
    async def test_remote_image_kept_when_download_disabled(self, storage, fetcher):
        saver = await open_saver(storage, images=ImageResolver(fetcher))
        await saver.save(make_item(image_url="https://example.com/pic.png"))

        data = parse_frontmatter(await storage.read_text(f"{FOLDER}/Hello - World.md"))
        assert data["Image"] == "https://example.com/pic.png"
        assert fetcher.calls == []
