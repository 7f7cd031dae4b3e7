"""
Tests for retention cleanup.
"""

import pytest

from feednotes.cleanup import cleanup_folder, is_unprotected
from feednotes.dates import DAY_MS, now_ms
from feednotes.ledger import Ledger, ledger_path
from feednotes.settings import RetentionPolicy

FOLDER = "RSS/Feed"


def note(link: str = "https://example.com/a", upload_date: str | None = None, extra: str = "") -> str:
    lines = ["---", 'Title: "A"', f'Link: "{link}"']
    if upload_date:
        lines.append(f"Upload Date: {upload_date}")
    if extra:
        lines.append(extra)
    lines += ["---", "", "# A"]
    return "\n".join(lines)


class TestSavedDate:
    """Cleanup by file modification time."""

    @pytest.mark.asyncio
    async def test_old_notes_deleted_and_ledger_marked(self, storage):
        await storage.write_text(f"{FOLDER}/A.md", note())
        later = now_ms() + 8 * DAY_MS

        deleted = await cleanup_folder(storage, FOLDER, RetentionPolicy(value=7, unit="days"), now=later)

        assert deleted == 1
        assert not await storage.exists(f"{FOLDER}/A.md")
        ledger = await Ledger.load(storage, FOLDER)
        assert ledger.is_deleted("https://example.com/a")

    @pytest.mark.asyncio
    async def test_recent_notes_kept(self, storage):
        await storage.write_text(f"{FOLDER}/A.md", note())
        assert await cleanup_folder(storage, FOLDER, RetentionPolicy(value=7, unit="days")) == 0
        assert await storage.exists(f"{FOLDER}/A.md")

    @pytest.mark.asyncio
    async def test_disabled_policy(self, storage):
        await storage.write_text(f"{FOLDER}/A.md", note())
        later = now_ms() + 100 * DAY_MS
        assert await cleanup_folder(storage, FOLDER, RetentionPolicy(value=0), now=later) == 0

    @pytest.mark.asyncio
    async def test_ledger_file_never_deleted(self, storage):
        ledger = Ledger(storage, FOLDER)
        ledger.mark_saved("https://example.com/a")
        await ledger.save()
        later = now_ms() + 8 * DAY_MS

        assert await cleanup_folder(storage, FOLDER, RetentionPolicy(value=7, unit="days"), now=later) == 0
        assert await storage.exists(ledger_path(FOLDER))

    @pytest.mark.asyncio
    async def test_subfolders_included(self, storage):
        await storage.write_text(f"{FOLDER}/img/pic.png", "png")
        later = now_ms() + 8 * DAY_MS
        assert await cleanup_folder(storage, "RSS", RetentionPolicy(value=7, unit="days"), now=later) == 1

    @pytest.mark.asyncio
    async def test_note_without_link_not_recorded(self, storage):
        await storage.write_text(f"{FOLDER}/B.md", "# No frontmatter")
        later = now_ms() + 8 * DAY_MS

        assert await cleanup_folder(storage, FOLDER, RetentionPolicy(value=7, unit="days"), now=later) == 1
        assert not await storage.exists(ledger_path(FOLDER))


class TestPublishDate:
    """Cleanup by the publish date in frontmatter."""

    @pytest.mark.asyncio
    async def test_old_publish_date_deleted(self, storage):
        await storage.write_text(f"{FOLDER}/Old.md", note("https://example.com/old", "2020-01-01T10:00:00"))
        await storage.write_text(f"{FOLDER}/New.md", note("https://example.com/new", "2999-01-01T10:00:00"))

        policy = RetentionPolicy(value=7, unit="days", date_field="datepub")
        assert await cleanup_folder(storage, FOLDER, policy) == 1

        assert not await storage.exists(f"{FOLDER}/Old.md")
        assert await storage.exists(f"{FOLDER}/New.md")

    @pytest.mark.asyncio
    async def test_missing_publish_date_uses_creation_time(self, storage):
        await storage.write_text(f"{FOLDER}/A.md", note())
        policy = RetentionPolicy(value=7, unit="days", date_field="datepub")
        assert await cleanup_folder(storage, FOLDER, policy) == 0


class TestPropertyGate:
    """Only notes flagged in frontmatter may be deleted."""

    @pytest.mark.asyncio
    async def test_only_flagged_notes_deleted(self, storage):
        await storage.write_text(f"{FOLDER}/Read.md", note("https://example.com/1", extra="Mark as Read: true"))
        await storage.write_text(f"{FOLDER}/Unread.md", note("https://example.com/2", extra="Mark as Read: false"))
        await storage.write_text(f"{FOLDER}/Plain.md", note("https://example.com/3"))
        later = now_ms() + 8 * DAY_MS

        policy = RetentionPolicy(value=7, unit="days", check_property=True, property_name="Mark as Read")
        assert await cleanup_folder(storage, FOLDER, policy, now=later) == 1

        assert not await storage.exists(f"{FOLDER}/Read.md")
        assert await storage.exists(f"{FOLDER}/Unread.md")
        assert await storage.exists(f"{FOLDER}/Plain.md")

    @pytest.mark.asyncio
    async def test_quoted_true_string_does_not_release(self, storage):
        await storage.write_text(f"{FOLDER}/Quoted.md", note("https://example.com/1", extra='Mark as Read: "true"'))
        later = now_ms() + 8 * DAY_MS

        policy = RetentionPolicy(value=7, unit="days", check_property=True, property_name="Mark as Read")
        assert await cleanup_folder(storage, FOLDER, policy, now=later) == 0
        assert await storage.exists(f"{FOLDER}/Quoted.md")

    def test_is_unprotected(self):
        assert is_unprotected({"Mark as Read": "true"}, "mark as read")
        assert not is_unprotected({"Mark as Read": "True"}, "Mark as Read")
        assert not is_unprotected({"Mark as Read": '"true"'}, "Mark as Read")
        assert not is_unprotected({}, "Mark as Read")
        assert not is_unprotected(None, "Mark as Read")
