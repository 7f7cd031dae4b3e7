"""
Minimal frontmatter reader for notes written by the saver.

Only flat `key: value` lines are understood, which is all the saver
produces. Used for ledger link recovery, publish-date cleanup and the
protected-property check.
"""

import re

_KEY_VALUE = re.compile(r"^([^:#][^:]*?)\s*:\s?(.*)$")

LINK_KEYS = ("link", "url")
PUB_DATE_KEYS = ("upload date", "datepub", "published", "pubdate", "date published", "date")


def unquote(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
        inner = value[1:-1]
        return inner.replace('\\"', '"') if value[0] == '"' else inner.replace("''", "'")
    return value


def split_frontmatter(text: str) -> tuple[str, str] | None:
    """Return (frontmatter block, body), or None when the note has none."""
    if not text.startswith("---"):
        return None
    lines = text.split("\n")
    if lines[0].strip() != "---":
        return None
    for index in range(1, len(lines)):
        if lines[index].strip() == "---":
            return "\n".join(lines[1:index]), "\n".join(lines[index + 1:])
    return None


def parse_frontmatter(text: str, raw: bool = False) -> dict[str, str] | None:
    """
    Parse the frontmatter block of a note into a mapping.

    Keys keep their original spelling; values are unquoted strings, or the
    value exactly as written when `raw` is set.
    Returns None when there is no frontmatter block at all.
    """
    parts = split_frontmatter(text)
    if parts is None:
        return None

    data: dict[str, str] = {}
    for line in parts[0].split("\n"):
        if not line.strip() or line.startswith((" ", "\t", "-")):
            continue
        if match := _KEY_VALUE.match(line):
            value = match.group(2).strip()
            data[match.group(1).strip()] = value if raw else unquote(value)
    return data


def get_value(data: dict[str, str], *keys: str) -> str | None:
    """Case-insensitive lookup of the first key present."""
    lowered = {k.lower(): v for k, v in data.items()}
    for key in keys:
        if key.lower() in lowered:
            return lowered[key.lower()]
    return None
