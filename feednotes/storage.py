"""
Storage - the vault the pipeline writes notes into.

Provides:
- Storage: abstract interface over vault-relative "/" paths
- LocalStorage: a directory on the local filesystem

All methods are coroutines so the pipeline's I/O points stay explicit,
even though local file operations complete immediately.
"""

import shutil
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from .exceptions import StorageError
from .paths import join_path


@dataclass
class FileStat:
    """Timestamps in epoch milliseconds."""
    mtime: int
    ctime: int
    size: int


class Storage(ABC):
    """Abstract base class for vault storage backends."""

    @abstractmethod
    async def exists(self, path: str) -> bool:
        """Check whether a file or folder exists."""
        pass

    @abstractmethod
    async def create_folder(self, path: str) -> None:
        """Create a folder and any missing parents."""
        pass

    @abstractmethod
    async def write_text(self, path: str, content: str) -> None:
        """Create or overwrite a text file."""
        pass

    @abstractmethod
    async def write_bytes(self, path: str, data: bytes) -> None:
        """Create or overwrite a binary file."""
        pass

    @abstractmethod
    async def read_text(self, path: str) -> str:
        """Read a text file."""
        pass

    @abstractmethod
    async def list_files(self, prefix: str) -> list[str]:
        """All files under a folder, recursively."""
        pass

    @abstractmethod
    async def delete(self, path: str) -> None:
        """Delete a file."""
        pass

    @abstractmethod
    async def delete_folder(self, path: str) -> None:
        """Delete a folder and everything in it."""
        pass

    @abstractmethod
    async def stat(self, path: str) -> FileStat:
        """Modification/creation times of a file."""
        pass

    def attachment_folder_for(self, note_folder: str) -> str:
        """Default attachment location for a note in `note_folder`."""
        return ""


class LocalStorage(Storage):
    """Vault rooted at a local directory."""

    def __init__(self, root: Path | str, attachment_folder: str = ""):
        self.root = Path(root)
        self.attachment_folder = attachment_folder
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, path: str) -> Path:
        resolved = (self.root / path.strip("/")).resolve()
        if resolved != self.root.resolve() and self.root.resolve() not in resolved.parents:
            raise StorageError(f"Path escapes the vault: {path}")
        return resolved

    async def exists(self, path: str) -> bool:
        return self._path(path).exists()

    async def create_folder(self, path: str) -> None:
        if not path.strip("/"):
            return
        try:
            self._path(path).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create folder {path}: {e}") from e

    async def write_text(self, path: str, content: str) -> None:
        try:
            target = self._path(path)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Cannot write {path}: {e}") from e

    async def write_bytes(self, path: str, data: bytes) -> None:
        try:
            target = self._path(path)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            raise StorageError(f"Cannot write {path}: {e}") from e

    async def read_text(self, path: str) -> str:
        try:
            return self._path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(f"Cannot read {path}: {e}") from e

    async def list_files(self, prefix: str) -> list[str]:
        folder = self._path(prefix)
        if not folder.is_dir():
            return []
        root = self.root.resolve()
        return sorted(
            p.relative_to(root).as_posix()
            for p in folder.rglob("*")
            if p.is_file()
        )

    async def delete(self, path: str) -> None:
        try:
            self._path(path).unlink()
        except OSError as e:
            raise StorageError(f"Cannot delete {path}: {e}") from e

    async def delete_folder(self, path: str) -> None:
        target = self._path(path)
        if target == self.root.resolve():
            raise StorageError("Refusing to delete the vault root")
        try:
            shutil.rmtree(target)
        except OSError as e:
            raise StorageError(f"Cannot delete folder {path}: {e}") from e

    async def stat(self, path: str) -> FileStat:
        try:
            st = self._path(path).stat()
        except OSError as e:
            raise StorageError(f"Cannot stat {path}: {e}") from e
        created = getattr(st, "st_birthtime", st.st_ctime)
        return FileStat(
            mtime=int(st.st_mtime * 1000),
            ctime=int(created * 1000),
            size=st.st_size,
        )

    def attachment_folder_for(self, note_folder: str) -> str:
        """
        Resolve the configured attachment folder setting.

        ""/"/" is the vault root, "./" the note's folder, "./sub" a
        subfolder next to the note, anything else a fixed vault path.
        """
        raw = (self.attachment_folder or "").strip()
        if not raw or raw == "/":
            return ""
        if raw == "./":
            return note_folder
        if raw.startswith("./"):
            return join_path(note_folder, raw[2:])
        return raw.strip("/")
