"""
Feed data models.

Raw side: the loosely-typed shapes rebuilt from feedparser's entries. Any
field can be absent, a plain string, an element with attributes, text
and/or children, or a list of those, so the raw value is a tagged union:

    RawValue = str | RawElement | list[RawValue]

Canonical side: FeedItem, the format-agnostic item handed to templates
and persistence.
"""

from dataclasses import dataclass, field
from typing import Union


@dataclass(frozen=True)
class RawElement:
    """A feed element that carries attributes or child values."""
    text: str = ""
    attrs: dict[str, str] = field(default_factory=dict)
    children: dict[str, "RawValue"] = field(default_factory=dict)

    def attr(self, name: str) -> str:
        return self.attrs.get(name, "")

    def child(self, name: str) -> "RawValue | None":
        return self.children.get(name)


RawValue = Union[str, RawElement, list]


@dataclass
class RawEntry:
    """
    One feed entry as picked out by the parser.

    The per-field values are still raw; `raw` is the whole entry element,
    kept for the image resolver which looks at fields not listed here.
    """
    title: RawValue | None = None
    link: RawValue | None = None
    content: RawValue | None = None
    description: RawValue | None = None
    author: RawValue | None = None
    pub_date: RawValue | None = None
    categories: RawValue | None = None
    raw: RawElement = field(default_factory=RawElement)


@dataclass
class RawFeed:
    """A fetched feed before normalization."""
    url: str
    title: str
    items: list[RawEntry]


@dataclass(frozen=True)
class FeedItem:
    """
    Canonical feed item.

    String fields are entity-decoded and trimmed. `pub_date` keeps the
    original string; templates reformat it. `image_url` is either an
    absolute URL or a storage reference such as ``[[RSS/img.png]]``.
    """
    title: str = ""
    link: str = ""
    content: str = ""
    description: str = ""
    description_short: str = ""
    author: str = ""
    pub_date: str = ""
    image_url: str = ""
    categories: tuple[str, ...] = ()
