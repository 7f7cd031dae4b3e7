"""
Template Engine - render `{{token}}` templates against a FeedItem.

Three contexts:
- FILENAME: values inserted as-is (the saver sanitizes the result)
- YAML: frontmatter, double quotes escaped, storage refs quoted
- BODY: markdown/HTML passed through untouched

Known tokens: title, author, link, image, datepub, datesaved, content,
snippet, #tags, feedname. Any other `{{key}}` is looked up on the FeedItem
by field name, so new item fields are usable without touching this module.
"""

import re
from datetime import datetime
from enum import Enum
from typing import Any

from .dates import format_local, format_pub_date
from .models import FeedItem


class RenderMode(str, Enum):
    FILENAME = "filename"
    YAML = "yaml"
    BODY = "body"


KNOWN_TOKENS = frozenset({
    "title", "author", "link", "image", "datepub", "datesaved",
    "content", "snippet", "#tags", "feedname",
})

# camelCase names used by existing templates
FIELD_ALIASES = {
    "descriptionShort": "description_short",
    "pubDate": "pub_date",
    "imageUrl": "image_url",
}

STORAGE_REF_PREFIX = "[["

_IMAGE_LINE = re.compile(r"^.*\{\{image\}\}.*\n?", re.MULTILINE)
_QUOTED_IMAGE = re.compile(r'"\{\{image\}\}"')
_LINKED_TOKEN = re.compile(
    r'"\[\[\{\{(author|feedname)\}\}\]\]"|\[\[\{\{(author|feedname)\}\}\]\]'
)
_TOKEN = re.compile(r"\{\{\s*(#?[A-Za-z0-9_]+)\s*\}\}")
_WHITESPACE = re.compile(r"\s+")


def escape_yaml(value: Any) -> str:
    """Backslash-escape double quotes; booleans and numbers pass through."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return str(value).replace('"', '\\"')


def render_value(value: Any, mode: RenderMode) -> str:
    """Type-aware rendering of a single value."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (list, tuple)):
        if mode is RenderMode.YAML:
            return ", ".join(escape_yaml(v) for v in value)
        return ", ".join(render_value(v, mode) for v in value)
    if mode is RenderMode.YAML:
        return escape_yaml(value)
    return str(value)


def render_tags(categories: tuple[str, ...] | list[str]) -> str:
    return " ".join(f"#{_WHITESPACE.sub('-', str(c))}" for c in categories)


def render_image(image_url: str, mode: RenderMode) -> str:
    if not image_url:
        return ""
    is_ref = image_url.startswith(STORAGE_REF_PREFIX)
    if mode is RenderMode.FILENAME:
        return image_url
    if mode is RenderMode.YAML:
        return f'"{escape_yaml(image_url)}"' if is_ref else image_url
    return f"!{image_url}" if is_ref else f"![]({image_url})"


def _field_value(item: FeedItem, key: str) -> Any:
    name = FIELD_ALIASES.get(key, key)
    if name.startswith("_") or name not in item.__dataclass_fields__:
        return None
    return getattr(item, name)


def render(
    template: str | None,
    item: FeedItem,
    mode: RenderMode = RenderMode.BODY,
    *,
    feed_name: str = "",
    now: datetime | None = None,
) -> str:
    """Render a template for one item in the given context."""
    if not template:
        return ""

    result = template if item.image_url else _IMAGE_LINE.sub("", template)

    linked = {"author": item.author, "feedname": feed_name}

    def replace_linked(match: re.Match) -> str:
        inner = linked[match.group(1) or match.group(2)]
        if mode is RenderMode.YAML:
            return f'"[[{escape_yaml(inner)}]]"'
        return f"[[{inner}]]"

    result = _LINKED_TOKEN.sub(replace_linked, result)

    if mode is RenderMode.YAML and item.image_url:
        quoted = escape_yaml(item.image_url)
        result = _QUOTED_IMAGE.sub(lambda _: f'"{quoted}"', result)

    known = {
        "title": lambda: render_value(item.title, mode),
        "author": lambda: render_value(item.author, mode),
        "link": lambda: render_value(item.link, mode),
        "snippet": lambda: render_value(item.description_short or item.description, mode),
        "feedname": lambda: render_value(feed_name, mode),
        "image": lambda: render_image(item.image_url, mode),
        "datepub": lambda: format_pub_date(item.pub_date),
        "datesaved": lambda: format_local(now or datetime.now()),
        "content": lambda: render_value(item.content, mode),
        "#tags": lambda: render_tags(item.categories),
    }

    # Known tokens first, then FeedItem fields. One scan, so inserted
    # values are never expanded again.
    def replace_token(match: re.Match) -> str:
        key = match.group(1)
        if key in KNOWN_TOKENS:
            return known[key]()
        return render_value(_field_value(item, key), mode)

    return _TOKEN.sub(replace_token, result)
