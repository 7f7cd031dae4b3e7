"""
Feed Notes

Turns RSS and Atom feeds into Markdown notes with YAML frontmatter.
Provides feed fetching, templated note writing, image handling and
retention cleanup, driven by a scheduler and a small FastAPI service.
"""

__version__ = "1.0.0"
