"""
Path helpers shared by the saver, image downloader and cleanup.

Storage paths are vault-relative strings using "/" separators.
"""

import re

from .normalizer import decode_entities

DEFAULT_ROOT_FOLDER = "RSS"
MAX_FILE_NAME_LENGTH = 200

INVALID_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|#\[\]^]')
_WHITESPACE = re.compile(r"\s+")
_EDGE_SEPARATORS = re.compile(r"^[\s-]+|[\s-]+$")


def sanitize_file_name(name: str) -> str:
    """Make a string safe to use as a single path component."""
    name = INVALID_FILENAME_CHARS.sub(" - ", decode_entities(name))
    name = _WHITESPACE.sub(" ", name)
    name = _EDGE_SEPARATORS.sub("", name)
    return name[:MAX_FILE_NAME_LENGTH]


def sanitize_folder_path(path: str | None, default: str = DEFAULT_ROOT_FOLDER) -> str:
    """Collapse duplicate slashes and drop leading/trailing ones."""
    cleaned = re.sub(r"/+", "/", (path or "").strip().replace("\\", "/")).strip("/")
    return cleaned or default


def _segment(name: str) -> str:
    """A folder name coming from user config, with path separators removed."""
    return sanitize_file_name(name.replace("/", " ").replace("\\", " "))


def join_path(*parts: str) -> str:
    """Join vault-relative path parts, skipping empty ones."""
    return "/".join(p.strip("/") for p in parts if p and p.strip("/"))


def parent_folder(path: str) -> str:
    return path.rsplit("/", 1)[0] if "/" in path else ""


def resolve_feed_path(root: str, feed_folder: str, feed_name: str, group_name: str | None = None) -> str:
    """
    Output folder for a feed.

    - feed in a group:  root/Group/FeedFolder
    - loose feed:       root/FeedFolder
    FeedFolder is the feed's folder override, else its name, else "Untitled".
    """
    root = sanitize_folder_path(root)
    feed_sub = _segment((feed_folder or feed_name or "").strip()) or "Untitled"
    if group_name and group_name.strip():
        return join_path(root, _segment(group_name.strip()) or "Untitled", feed_sub)
    return join_path(root, feed_sub)
