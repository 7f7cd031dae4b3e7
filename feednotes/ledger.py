"""
Dedup Ledger - per-folder record of every item link ever saved or deleted.

The ledger, not the presence of a file, decides whether an item is new:
users may delete notes by hand, and cleanup deletes expired ones, and
neither should bring the item back on the next fetch.

File format (JSON object):
    {"<link>": {"savedAt": 1700000000000, "deleted": false, "deletedAt": null}}
"""

import json
import logging
from dataclasses import dataclass

from .dates import DAY_MS, now_ms
from .exceptions import StorageError
from .paths import join_path
from .storage import Storage

logger = logging.getLogger(__name__)

LEDGER_FILE_NAME = ".feednotes-ledger.json"
LEDGER_RETENTION_DAYS = 90


@dataclass
class LedgerEntry:
    saved_at: int | None = None
    deleted: bool = False
    deleted_at: int | None = None

    def to_json(self) -> dict:
        return {"savedAt": self.saved_at, "deleted": self.deleted, "deletedAt": self.deleted_at}

    @classmethod
    def from_json(cls, data: dict) -> "LedgerEntry":
        return cls(
            saved_at=data.get("savedAt"),
            deleted=bool(data.get("deleted", False)),
            deleted_at=data.get("deletedAt"),
        )


def ledger_path(folder: str) -> str:
    return join_path(folder, LEDGER_FILE_NAME)


def is_ledger_file(path: str) -> bool:
    return path.rsplit("/", 1)[-1] == LEDGER_FILE_NAME


class Ledger:
    """Ledger for one output folder."""

    def __init__(
        self,
        storage: Storage,
        folder: str,
        entries: dict[str, LedgerEntry] | None = None,
        retention_days: int = LEDGER_RETENTION_DAYS,
    ):
        self.storage = storage
        self.folder = folder
        self.entries = entries or {}
        self.retention_days = retention_days

    @property
    def path(self) -> str:
        return ledger_path(self.folder)

    @classmethod
    async def load(cls, storage: Storage, folder: str, retention_days: int = LEDGER_RETENTION_DAYS) -> "Ledger":
        """
        Load a folder's ledger.

        A missing file is an empty ledger. So is an unreadable one: the
        worst case is that a previously deleted item gets saved once more.
        """
        path = ledger_path(folder)
        entries: dict[str, LedgerEntry] = {}
        try:
            if await storage.exists(path):
                data = json.loads(await storage.read_text(path))
                if not isinstance(data, dict):
                    raise ValueError("ledger is not a JSON object")
                entries = {
                    link: LedgerEntry.from_json(value)
                    for link, value in data.items()
                    if isinstance(value, dict)
                }
        except (StorageError, ValueError) as e:
            logger.warning(f"Ignoring unreadable ledger {path}: {e}")
            entries = {}
        return cls(storage, folder, entries, retention_days)

    def get(self, link: str) -> LedgerEntry | None:
        return self.entries.get(link)

    def has_seen(self, link: str) -> bool:
        """True once the link has been saved or deleted in this folder."""
        entry = self.entries.get(link)
        return bool(entry and (entry.saved_at is not None or entry.deleted))

    def is_deleted(self, link: str) -> bool:
        entry = self.entries.get(link)
        return bool(entry and entry.deleted)

    def mark_saved(self, link: str, at: int | None = None) -> None:
        entry = self.entries.setdefault(link, LedgerEntry())
        entry.saved_at = at if at is not None else now_ms()

    def mark_deleted(self, link: str, at: int | None = None) -> None:
        entry = self.entries.setdefault(link, LedgerEntry())
        entry.deleted = True
        entry.deleted_at = at if at is not None else now_ms()

    def prune(self, now: int | None = None) -> int:
        """Forget entries deleted longer ago than the retention window."""
        cutoff = (now if now is not None else now_ms()) - self.retention_days * DAY_MS
        stale = [
            link for link, entry in self.entries.items()
            if entry.deleted and entry.deleted_at is not None and entry.deleted_at < cutoff
        ]
        for link in stale:
            del self.entries[link]
        return len(stale)

    async def save(self, now: int | None = None) -> None:
        """Prune, then write the ledger file."""
        self.prune(now)
        await self.storage.create_folder(self.folder)
        data = {link: entry.to_json() for link, entry in self.entries.items()}
        await self.storage.write_text(self.path, json.dumps(data, indent=2))
