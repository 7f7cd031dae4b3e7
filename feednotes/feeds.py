"""
Feed Parser - Fetch RSS/Atom feeds and flatten them into raw entries.

Handles:
- RSS 0.9x/1.0/2.0 and Atom feeds, via feedparser's loose parser
- Singular-or-repeated values, kept as the RawValue tagged union
- Media RSS thumbnails/content and enclosures for the image resolver

Nothing here interprets field values; that is the normalizer's job.
"""

import logging

import aiohttp
import feedparser

from .exceptions import FeedFetchError, FeedFormatError
from .fetcher import Fetcher
from .models import RawElement, RawEntry, RawFeed, RawValue

logger = logging.getLogger(__name__)

FEED_ACCEPT = "application/rss+xml, application/atom+xml, application/rdf+xml, text/xml, application/xml"

# Attributes carried over from feedparser's detail dicts
LINK_KEYS = ("rel", "type", "href", "title")
AUTHOR_KEYS = ("name", "email", "href")
TAG_KEYS = ("term", "scheme", "label")


def _element(data: dict, keys: tuple[str, ...] | None = None, text: str = "") -> RawElement:
    """A feedparser dict (link, tag, media attrs) as a RawElement."""
    keys = keys or tuple(data.keys())
    attrs = {k: str(data[k]) for k in keys if data.get(k) is not None}
    return RawElement(text=text, attrs=attrs)


def _one_or_many(values: list[RawValue]) -> RawValue | None:
    """Collapse a list the way repeated XML elements read: none, one, or a list."""
    if not values:
        return None
    return values[0] if len(values) == 1 else values


def _links(entry: dict) -> RawValue | None:
    links = [_element(link, LINK_KEYS) for link in entry.get("links", [])]
    links = [link for link in links if link.attr("rel") != "enclosure"]
    return _one_or_many(links) or entry.get("link")


def _content(entry: dict) -> RawValue | None:
    parts = [
        RawElement(text=part.get("value", ""), attrs={"type": part.get("type", "")})
        for part in entry.get("content", [])
    ]
    return _one_or_many(parts)


def _authors(entry: dict) -> RawValue | None:
    authors = [
        RawElement(children={k: author[k] for k in AUTHOR_KEYS if author.get(k)})
        for author in entry.get("authors", [])
        if author
    ]
    return _one_or_many(authors) or entry.get("author")


def _tags(entry: dict) -> RawValue | None:
    return _one_or_many([_element(tag, TAG_KEYS) for tag in entry.get("tags", [])])


def _enclosures(entry: dict) -> RawValue | None:
    """Enclosures keep the RSS attribute name `url` for their target."""
    return _one_or_many([
        RawElement(attrs={
            "url": enclosure.get("href", ""),
            "type": enclosure.get("type", ""),
            "length": str(enclosure.get("length", "")),
        })
        for enclosure in entry.get("enclosures", [])
    ])


def _media(entry: dict, key: str) -> RawValue | None:
    return _one_or_many([_element(attrs) for attrs in entry.get(key, [])])


def to_raw(entry: dict) -> RawEntry:
    """Convert one feedparser entry into a RawEntry."""
    content = _content(entry)
    summary = entry.get("summary")

    children: dict[str, RawValue] = {}
    for name, value in (
        ("media:thumbnail", _media(entry, "media_thumbnail")),
        ("media:content", _media(entry, "media_content")),
        ("enclosure", _enclosures(entry)),
        ("content", content),
        ("summary", summary),
    ):
        if value not in (None, ""):
            children[name] = value

    return RawEntry(
        title=entry.get("title"),
        link=_links(entry),
        content=content if content is not None else summary,
        description=summary,
        author=_authors(entry),
        pub_date=entry.get("published") or entry.get("updated"),
        categories=_tags(entry),
        raw=RawElement(children=children),
    )


class FeedParser:
    """Fetches feeds and parses them into RawFeed objects."""

    def __init__(self, fetcher: Fetcher | None = None):
        self.fetcher = fetcher or Fetcher()

    async def fetch(self, url: str) -> RawFeed:
        """
        Fetch and parse a feed URL.

        Raises:
            FeedFetchError: network failure or non-200 response
            FeedFormatError: unparseable document or not a feed
        """
        try:
            result = await self.fetcher.get(url, headers={"Accept": FEED_ACCEPT})
        except (aiohttp.ClientError, TimeoutError) as e:
            raise FeedFetchError(f"Failed to fetch feed {url}: {e}") from e

        if not result.ok:
            raise FeedFetchError(f"Failed to fetch feed {url}: HTTP {result.status}")

        return self._parse(url, result.body)

    def _parse(self, url: str, content: bytes | str) -> RawFeed:
        """Parse feed content using feedparser."""
        # A str would be tried as a URL or file name first
        if isinstance(content, str):
            content = content.encode("utf-8")

        # Markup is stored verbatim in notes
        parsed = feedparser.parse(content, sanitize_html=False, resolve_relative_uris=False)

        # Check for parse errors
        if parsed.bozo and not parsed.entries:
            raise FeedFormatError(f"Failed to parse feed {url}: {parsed.bozo_exception}")
        if not parsed.version and not parsed.entries:
            raise FeedFormatError(f"Unsupported feed format: {url or 'document'} is not RSS or Atom")

        items = [to_raw(entry) for entry in parsed.entries]
        logger.debug(f"Parsed {len(items)} entries from {url}")

        return RawFeed(url=url, title=parsed.feed.get("title", ""), items=items)


def parse_feed_sync(content: bytes | str, url: str = "") -> RawFeed:
    """
    Synchronous feed parsing (for use when content is already fetched).

    Useful for testing or when you already have the feed content.
    """
    parser = FeedParser()
    return parser._parse(url, content)
