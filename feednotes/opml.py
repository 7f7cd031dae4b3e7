"""OPML parser for importing and exporting feed subscriptions."""

import xml.etree.ElementTree as ET
from dataclasses import dataclass
from email.utils import formatdate

from .dates import now_ms
from .settings import FeedConfig, FeedGroup, PluginSettings, new_group_id

OPML_TITLE = "RSS Reader Feeds"


@dataclass
class OPMLFeed:
    """A feed entry from an OPML file."""
    url: str
    title: str | None
    category: str | None


@dataclass
class OPMLDocument:
    """Parsed OPML document."""
    title: str | None
    feeds: list[OPMLFeed]


def parse_opml(xml_content: str | bytes) -> OPMLDocument:
    """
    Parse OPML XML content and extract feed subscriptions.

    Handles both flat and nested (categorized) OPML structures. A feed's
    category is the name of the folder outline closest to it.

    Raises:
        ValueError: If XML is invalid or not OPML format
    """
    try:
        root = ET.fromstring(xml_content)
    except ET.ParseError as e:
        raise ValueError(f"Invalid XML: {e}")

    if root.tag.lower() != "opml":
        raise ValueError(f"Not an OPML document (root element: {root.tag})")

    doc_title = None
    head = root.find("head")
    if head is not None:
        title_elem = head.find("title")
        if title_elem is not None and title_elem.text:
            doc_title = title_elem.text.strip()

    body = root.find("body")
    if body is None:
        raise ValueError("OPML document missing <body> element")

    feeds: list[OPMLFeed] = []
    _parse_outlines(body, feeds, category=None)

    return OPMLDocument(title=doc_title, feeds=feeds)


def _parse_outlines(
    element: ET.Element,
    feeds: list[OPMLFeed],
    category: str | None
) -> None:
    """
    Recursively parse outline elements.

    OPML outlines can be:
    1. Feed entries (have xmlUrl attribute)
    2. Category folders (have children but no xmlUrl)
    """
    for outline in element.findall("outline"):
        xml_url = outline.get("xmlUrl") or outline.get("xmlurl")

        if xml_url:
            title = outline.get("text") or outline.get("title")
            feeds.append(OPMLFeed(
                url=xml_url.strip(),
                title=title.strip() if title else None,
                category=category
            ))
        else:
            folder_name = outline.get("text") or outline.get("title")
            _parse_outlines(
                outline,
                feeds,
                category=folder_name.strip() if folder_name else category
            )


def generate_opml(settings: PluginSettings, title: str = OPML_TITLE) -> str:
    """
    Export subscriptions as OPML.

    Archived and deleted feeds are left out. Feeds in a group go into a
    folder outline per group; everything else sits at the body root,
    including feeds whose group no longer exists.
    """
    feeds = [f for f in settings.feeds if not f.deleted and not f.archived]
    group_ids = {g.id for g in settings.groups}

    root = ET.Element("opml", version="2.0")

    head = ET.SubElement(root, "head")
    ET.SubElement(head, "title").text = title
    ET.SubElement(head, "dateCreated").text = formatdate(usegmt=True)

    body = ET.SubElement(root, "body")

    for group in settings.groups:
        group_feeds = [f for f in feeds if f.group_id == group.id]
        if not group_feeds:
            continue
        folder = ET.SubElement(body, "outline", text=group.name)
        for feed in group_feeds:
            _add_feed_outline(folder, feed)

    for feed in feeds:
        if not feed.group_id or feed.group_id not in group_ids:
            _add_feed_outline(body, feed)

    ET.indent(root, space="  ")
    return '<?xml version="1.0" encoding="UTF-8"?>\n' + ET.tostring(
        root, encoding="unicode"
    )


def _add_feed_outline(parent: ET.Element, feed: FeedConfig) -> None:
    """Add a feed outline element to parent."""
    ET.SubElement(
        parent,
        "outline",
        type="rss",
        text=feed.name,
        title=feed.name,
        xmlUrl=feed.url,
    )


def import_opml(settings: PluginSettings, doc: OPMLDocument) -> tuple[int, int]:
    """
    Add the document's feeds to settings.

    Categories map to groups by name, case-insensitively; missing groups
    are created. Feeds whose URL is already subscribed are skipped.

    Returns:
        (imported, skipped)
    """
    groups = {g.name.lower(): g.id for g in settings.groups}
    imported = 0
    skipped = 0

    for entry in doc.feeds:
        if settings.find_feed(entry.url):
            skipped += 1
            continue

        group_id = None
        if entry.category:
            key = entry.category.lower()
            if key not in groups:
                group = FeedGroup(id=new_group_id(), name=entry.category)
                settings.groups.append(group)
                groups[key] = group.id
            group_id = groups[key]

        settings.feeds.append(FeedConfig(
            name=entry.title or "",
            url=entry.url,
            last_updated=now_ms(),
            group_id=group_id,
        ))
        imported += 1

    return imported, skipped
