"""
Tests for reading note frontmatter.
"""

from feednotes.frontmatter import LINK_KEYS, PUB_DATE_KEYS, get_value, parse_frontmatter, split_frontmatter

NOTE = """---
Title: "Say \\"hi\\""
Created Date: 2024-05-06T07:08:09
Upload Date: 2024-05-01T10:00:00
Link: "https://example.com/post"
Mark as Read: true
tags:
  - news
---

# Body

Link: not frontmatter
"""


class TestFrontmatter:

    def test_split(self):
        block, body = split_frontmatter(NOTE)
        assert block.startswith("Title:")
        assert body.strip().startswith("# Body")

    def test_no_frontmatter(self):
        assert split_frontmatter("# Just a note") is None
        assert parse_frontmatter("# Just a note") is None

    def test_unterminated_frontmatter(self):
        assert parse_frontmatter("---\nTitle: x\n") is None

    def test_parse_values(self):
        data = parse_frontmatter(NOTE)
        assert data["Title"] == 'Say "hi"'
        assert data["Link"] == "https://example.com/post"
        assert data["Mark as Read"] == "true"
        assert data["Upload Date"] == "2024-05-01T10:00:00"

    def test_list_items_and_body_ignored(self):
        data = parse_frontmatter(NOTE)
        assert data["tags"] == ""
        assert "  - news" not in data

    def test_case_insensitive_lookup(self):
        data = parse_frontmatter(NOTE)
        assert get_value(data, *LINK_KEYS) == "https://example.com/post"
        assert get_value(data, *PUB_DATE_KEYS) == "2024-05-01T10:00:00"
        assert get_value(data, "mark as read") == "true"
        assert get_value(data, "missing") is None

    def test_empty_frontmatter(self):
        assert parse_frontmatter("---\n---\nbody") == {}

    def test_raw_values_keep_quotes(self):
        data = parse_frontmatter(NOTE, raw=True)
        assert data["Link"] == '"https://example.com/post"'
        assert data["Mark as Read"] == "true"
