"""
Cleanup - delete notes older than the retention window.

Deleted notes are marked in their folder's ledger so the next fetch does
not recreate them.
"""

import logging

from .dates import now_ms, parse_feed_date, to_epoch_ms
from .exceptions import StorageError
from .frontmatter import LINK_KEYS, PUB_DATE_KEYS, get_value, parse_frontmatter, unquote
from .ledger import Ledger, is_ledger_file
from .paths import parent_folder
from .settings import RetentionPolicy
from .storage import Storage

logger = logging.getLogger(__name__)

NOTE_SUFFIXES = (".md", ".markdown", ".txt")


def _is_note(path: str) -> bool:
    return path.lower().endswith(NOTE_SUFFIXES)


async def _read_frontmatter(storage: Storage, path: str) -> dict[str, str] | None:
    """Frontmatter values as written, quotes included."""
    if not _is_note(path):
        return None
    try:
        return parse_frontmatter(await storage.read_text(path), raw=True)
    except StorageError as e:
        logger.warning(f"Could not read {path}: {e}")
        return None


def is_unprotected(frontmatter: dict[str, str] | None, property_name: str) -> bool:
    """
    Only a literal `true` in the named field releases a note for deletion.

    `frontmatter` holds raw values, so a quoted "true" string does not count.
    """
    if frontmatter is None:
        return False
    return get_value(frontmatter, property_name) == "true"


async def cleanup_folder(
    storage: Storage,
    folder: str,
    policy: RetentionPolicy,
    now: int | None = None,
) -> int:
    """
    Delete expired files under `folder`. Returns how many were deleted.

    Per-file failures are logged and skipped.
    """
    if not policy.enabled:
        return 0

    now = now if now is not None else now_ms()
    cutoff = policy.cutoff(now)
    ledgers: dict[str, Ledger] = {}
    deleted = 0

    for path in await storage.list_files(folder):
        if is_ledger_file(path):
            continue

        try:
            stat = await storage.stat(path)
            frontmatter = None

            if policy.date_field == "datepub":
                frontmatter = await _read_frontmatter(storage, path)
                published = None
                if frontmatter:
                    published = parse_feed_date(unquote(get_value(frontmatter, *PUB_DATE_KEYS) or ""))
                timestamp = to_epoch_ms(published) if published else stat.ctime
            else:
                timestamp = stat.mtime

            if timestamp >= cutoff:
                continue

            if frontmatter is None:
                frontmatter = await _read_frontmatter(storage, path)
            if policy.check_property and not is_unprotected(frontmatter, policy.property_name):
                continue

            await storage.delete(path)
            deleted += 1
            logger.info(f"Cleanup deleted {path}")
        except StorageError as e:
            logger.warning(f"Cleanup failed for {path}: {e}")
            continue

        link = unquote(get_value(frontmatter, *LINK_KEYS) or "") if frontmatter else None
        if link:
            note_folder = parent_folder(path)
            if note_folder not in ledgers:
                ledgers[note_folder] = await Ledger.load(storage, note_folder)
            ledgers[note_folder].mark_deleted(link, now)

    for ledger in ledgers.values():
        try:
            await ledger.save(now)
        except StorageError as e:
            logger.error(f"Could not write ledger {ledger.path}: {e}")

    return deleted
