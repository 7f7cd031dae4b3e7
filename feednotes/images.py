"""
Image Resolver - find an illustrative image for a feed item.

Priority chain (first hit wins):
1. media:thumbnail (including those inside a media:group), YouTube
   thumbnails upgraded to a larger size
2. media:content with an image file extension
3. enclosure with an image/* type
4. first <img> inside the item's HTML fields
5. og:image / twitter:image of the item's page (network)

Every network step is best-effort: a failure falls through to the next
tier and nothing here raises to the caller.
"""

import logging
import re
from urllib.parse import urljoin

import aiohttp
from bs4 import BeautifulSoup

from .fetcher import Fetcher
from .models import RawElement, RawValue
from .paths import join_path, sanitize_file_name
from .settings import ImagePolicy
from .storage import Storage

logger = logging.getLogger(__name__)

# YouTube serves a ~1KB grey placeholder for sizes a video doesn't have
PLACEHOLDER_MAX_BYTES = 5000
YOUTUBE_THUMBNAIL = re.compile(
    r"^(https?://(?:img\.youtube\.com|i\d?\.ytimg\.com)/vi(?:_webp)?/[^/]+/)([a-z0-9_]+)\.(jpg|webp)(\?.*)?$",
    re.IGNORECASE,
)
YOUTUBE_TIERS = ("maxresdefault", "sddefault")

IMAGE_EXTENSION = re.compile(r"\.(jpe?g|png|gif|webp|svg|avif|bmp)($|[?#])", re.IGNORECASE)
HTML_IMAGE_FIELDS = ("content", "summary")
IMG_SOURCE_ATTRS = ("src", "data-src", "original-src")
META_IMAGE_KEYS = ("og:image", "twitter:image")

CONTENT_TYPE_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
    "image/svg": "svg",
    "image/avif": "avif",
}
DEFAULT_IMAGE_EXTENSION = "png"


def _first(value: RawValue | None) -> RawValue | None:
    if isinstance(value, list):
        return value[0] if value else None
    return value


def _elements(value: RawValue | None) -> list[RawElement]:
    values = value if isinstance(value, list) else [value]
    return [v for v in values if isinstance(v, RawElement)]


def _media_url(value: RawValue | None) -> str:
    """The `url` attribute of a media element (or the text, if a bare string)."""
    node = _first(value)
    if isinstance(node, RawElement):
        return node.attr("url")
    if isinstance(node, str):
        return node
    return ""


def _html_of(value: RawValue | None) -> str:
    node = _first(value)
    if isinstance(node, RawElement):
        return node.text
    return node if isinstance(node, str) else ""


def find_img_in_html(markup: str) -> str:
    """First <img> source attribute in an HTML fragment."""
    if not markup or "<img" not in markup.lower():
        return ""
    soup = BeautifulSoup(markup, "html.parser")
    for img in soup.find_all("img"):
        for attr in IMG_SOURCE_ATTRS:
            if src := img.get(attr):
                return str(src).strip()
    return ""


def find_meta_image(html: str) -> str:
    """og:image or twitter:image from a page's <meta> tags."""
    soup = BeautifulSoup(html, "html.parser")
    for key in META_IMAGE_KEYS:
        tag = soup.find("meta", property=key) or soup.find("meta", attrs={"name": key})
        if tag and tag.get("content"):
            return str(tag["content"]).strip()
    return ""


def clean_image_url(url: str, page_url: str) -> str:
    """Unescape ampersands and make the URL absolute."""
    url = url.replace("&amp;", "&").replace("&#038;", "&").strip()
    if not url:
        return ""
    if url.startswith("//"):
        return "https:" + url
    if not url.startswith(("http://", "https://")) and page_url:
        return urljoin(page_url, url)
    return url


def image_extension(content_type: str, url: str) -> str:
    """Extension from the content type, then the URL, else png."""
    content_type = content_type.split(";")[0].strip().lower()
    for prefix, ext in CONTENT_TYPE_EXTENSIONS.items():
        if content_type.startswith(prefix):
            return ext
    if match := IMAGE_EXTENSION.search(url):
        ext = match.group(1).lower()
        return "jpg" if ext == "jpeg" else ext
    return DEFAULT_IMAGE_EXTENSION


def resolve_image_folder(
    policy: ImagePolicy,
    note_folder: str,
    storage: Storage,
) -> str:
    """Where downloaded images go, per the image location setting."""
    match policy.location:
        case "vault":
            return ""
        case "current":
            return note_folder
        case "subfolder":
            base = note_folder if policy.use_feed_folder else policy.root_folder
            return join_path(base, policy.images_folder)
        case "specified":
            return policy.images_folder.strip("/")
        case _:
            return storage.attachment_folder_for(note_folder)


class ImageResolver:
    """Finds and downloads item images."""

    def __init__(self, fetcher: Fetcher | None = None, fetch_pages: bool = True):
        self.fetcher = fetcher or Fetcher()
        self.fetch_pages = fetch_pages

    async def resolve(self, raw: RawElement, page_url: str) -> str:
        """Best image URL for a raw entry, or "" when none is found."""
        url = await self._find(raw, page_url)
        return clean_image_url(url, page_url) if url else ""

    async def _find(self, raw: RawElement, page_url: str) -> str:
        if url := _media_url(raw.child("media:thumbnail")):
            return await self.upgrade_youtube_thumbnail(url)

        for media in _elements(raw.child("media:content")):
            if IMAGE_EXTENSION.search(media.attr("url")):
                return media.attr("url")

        for enclosure in _elements(raw.child("enclosure")):
            if enclosure.attr("type").lower().startswith("image/") and enclosure.attr("url"):
                return enclosure.attr("url")

        for name in HTML_IMAGE_FIELDS:
            if url := find_img_in_html(_html_of(raw.child(name))):
                return url

        if self.fetch_pages and page_url.startswith("http"):
            return await self._page_image(page_url)

        return ""

    async def _page_image(self, page_url: str) -> str:
        try:
            result = await self.fetcher.get(page_url)
            if not result.ok:
                return ""
            return find_meta_image(result.text)
        except (aiohttp.ClientError, TimeoutError, ValueError) as e:
            logger.debug(f"Page image lookup failed for {page_url}: {e}")
            return ""

    async def _is_real_image(self, url: str) -> bool:
        """True when the URL serves a real image rather than a placeholder."""
        try:
            result = await self.fetcher.get(url)
        except (aiohttp.ClientError, TimeoutError, ValueError) as e:
            logger.debug(f"Thumbnail check failed for {url}: {e}")
            return False
        return result.ok and result.size >= PLACEHOLDER_MAX_BYTES

    async def upgrade_youtube_thumbnail(self, url: str) -> str:
        """
        Try larger variants of a YouTube thumbnail.

        Walks maxresdefault then sddefault; if neither is a real image the
        original URL is kept.
        """
        match = YOUTUBE_THUMBNAIL.match(url)
        if not match:
            return url
        base, current, ext, query = match.group(1), match.group(2), match.group(3), match.group(4) or ""
        for tier in YOUTUBE_TIERS:
            if tier == current:
                return url
            candidate = f"{base}{tier}.{ext}{query}"
            if await self._is_real_image(candidate):
                return candidate
        return url

    async def download(self, url: str, storage: Storage, folder: str, base_name: str) -> str:
        """
        Save an image into the vault.

        Returns a `[[path]]` storage reference, or the original URL when
        anything goes wrong so the note still links the remote image.
        """
        if not url or not url.startswith("http"):
            return url

        folder = folder.strip("/")
        file_stem = sanitize_file_name(base_name) or "image"

        # The extension is known before the request only if the URL has one
        guessed = IMAGE_EXTENSION.search(url)
        if guessed:
            path = join_path(folder, f"{file_stem}.{image_extension('', url)}")
            try:
                if await storage.exists(path):
                    return f"[[{path}]]"
            except Exception as e:
                logger.warning(f"Could not check {path}: {e}")
                return url

        try:
            result = await self.fetcher.get(url)
            if not result.ok:
                logger.warning(f"Image download failed for {url} with status {result.status}")
                return url

            path = join_path(folder, f"{file_stem}.{image_extension(result.content_type, url)}")
            if await storage.exists(path):
                return f"[[{path}]]"

            await storage.create_folder(folder)
            await storage.write_bytes(path, result.body)
            return f"[[{path}]]"
        except Exception as e:
            logger.warning(f"Error downloading image {url}: {e}")
            return url
