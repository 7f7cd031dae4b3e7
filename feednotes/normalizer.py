"""
Item Normalizer - turn raw feed entries into canonical FeedItems.

Each field kind has its own extraction function that matches on the
RawValue shape (plain text, element, or list of either). Every textual
result is entity-decoded and trimmed.
"""

import html
import re

from bs4 import BeautifulSoup

from .models import FeedItem, RawElement, RawEntry, RawValue

SHORT_DESCRIPTION_LIMIT = 280
_WHITESPACE = re.compile(r"\s+")


def decode_entities(text: str) -> str:
    """Decode named, decimal and hex character references."""
    return html.unescape(text) if "&" in text else text


def text_of(value: RawValue | None) -> str:
    """Text node of a raw value; lists yield their first non-empty text."""
    match value:
        case None:
            return ""
        case str():
            return value
        case RawElement(text=text):
            return text
        case list():
            for part in value:
                if text := text_of(part):
                    return text
            return ""
        case _:
            return str(value)


def _clean(text: str) -> str:
    return decode_entities(text).strip()


def extract_title(value: RawValue | None) -> str:
    return _clean(text_of(value))


def extract_link(value: RawValue | None) -> str:
    """
    Pick the item's page URL.

    Atom entries can carry several <link> elements; prefer rel="alternate"
    (or no rel, which means alternate), else the first one.
    """
    match value:
        case None:
            return ""
        case str():
            return _clean(value)
        case RawElement():
            return _clean(value.attr("href") or value.text)
        case list() if value:
            for candidate in value:
                if isinstance(candidate, RawElement) and candidate.attr("rel") == "alternate":
                    return extract_link(candidate)
            for candidate in value:
                if isinstance(candidate, RawElement) and not candidate.attr("rel"):
                    return extract_link(candidate)
            return extract_link(value[0])
        case _:
            return ""


def extract_markup(value: RawValue | None) -> str:
    """HTML/markdown body fields (content, description)."""
    return _clean(text_of(value))


def extract_author(value: RawValue | None) -> str:
    match value:
        case None:
            return ""
        case str():
            return _clean(value)
        case RawElement():
            name = value.child("name")
            if name is not None:
                return _clean(text_of(name))
            return _clean(value.text)
        case list():
            names = [extract_author(v) for v in value]
            return ", ".join(n for n in names if n)
        case _:
            return _clean(str(value))


def extract_date(value: RawValue | None) -> str:
    return _clean(text_of(value))


def _category_text(value: RawValue) -> str:
    match value:
        case str():
            return value
        case RawElement() if value.attr("term"):
            return value.attr("term")
        case RawElement():
            return value.text
        case _:
            return str(value)


def extract_categories(value: RawValue | None) -> tuple[str, ...]:
    """Categories as a flat tuple of non-empty strings, source order kept."""
    if value is None:
        return ()
    values = value if isinstance(value, list) else [value]
    cleaned = (_clean(_category_text(v)) for v in values)
    return tuple(c for c in cleaned if c)


def strip_html(text: str) -> str:
    """Drop tags and collapse whitespace."""
    if "<" in text:
        text = BeautifulSoup(text, "html.parser").get_text()
    return _WHITESPACE.sub(" ", text).strip()


def short_description(description: str) -> str:
    """Plain-text teaser, at most 280 characters including the ellipsis."""
    stripped = strip_html(description)
    if len(stripped) > SHORT_DESCRIPTION_LIMIT:
        return stripped[:SHORT_DESCRIPTION_LIMIT - 3] + "..."
    return stripped


def normalize(entry: RawEntry, image_url: str = "") -> FeedItem:
    """Convert one raw entry to a FeedItem."""
    description = extract_markup(entry.description)
    return FeedItem(
        title=extract_title(entry.title),
        link=extract_link(entry.link),
        content=extract_markup(entry.content),
        description=description,
        description_short=short_description(description),
        author=extract_author(entry.author),
        pub_date=extract_date(entry.pub_date),
        image_url=image_url.strip(),
        categories=extract_categories(entry.categories),
    )
