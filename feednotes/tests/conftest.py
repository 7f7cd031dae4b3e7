"""
Pytest fixtures for feednotes tests.

The network is never touched: every component that fetches gets a
FakeFetcher that serves canned responses by URL.
"""

from unittest.mock import MagicMock
from xml.sax.saxutils import escape

import pytest
from fastapi.testclient import TestClient

from feednotes.config import config, state
from feednotes.feeds import FeedParser
from feednotes.fetcher import FetchResult
from feednotes.images import ImageResolver
from feednotes.notifications import MemoryNotifier
from feednotes.server import app
from feednotes.settings import FeedConfig, PluginSettings, SettingsStore
from feednotes.storage import LocalStorage
from feednotes.updater import FeedUpdater


class FakeFetcher:
    """Serves registered responses; unknown URLs get a 404."""

    def __init__(self):
        self.responses: dict[str, FetchResult | Exception] = {}
        self.calls: list[str] = []

    def add(self, url: str, body: bytes | str = b"", status: int = 200, headers: dict | None = None):
        if isinstance(body, str):
            body = body.encode("utf-8")
        self.responses[url] = FetchResult(url=url, status=status, body=body, headers=headers or {})

    def fail(self, url: str, error: Exception):
        self.responses[url] = error

    async def get(self, url: str, headers: dict | None = None) -> FetchResult:
        self.calls.append(url)
        response = self.responses.get(url)
        if isinstance(response, Exception):
            raise response
        if response is None:
            return FetchResult(url=url, status=404)
        return response


def build_rss(items: list[dict], title: str = "Test Feed") -> str:
    """
    Build an RSS 2.0 document.

    Item keys: title, link, description, content, pub_date, author,
    categories (list), extra (raw XML appended to the item).
    """
    parts = []
    for item in items:
        fields = []
        if "title" in item:
            fields.append(f"<title>{escape(item['title'])}</title>")
        if "link" in item:
            fields.append(f"<link>{escape(item['link'])}</link>")
        if "description" in item:
            fields.append(f"<description>{escape(item['description'])}</description>")
        if "content" in item:
            fields.append(f"<content:encoded><![CDATA[{item['content']}]]></content:encoded>")
        if "pub_date" in item:
            fields.append(f"<pubDate>{item['pub_date']}</pubDate>")
        if "author" in item:
            fields.append(f"<dc:creator>{escape(item['author'])}</dc:creator>")
        for category in item.get("categories", []):
            fields.append(f"<category>{escape(category)}</category>")
        fields.append(item.get("extra", ""))
        parts.append("<item>" + "".join(fields) + "</item>")

    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<rss version="2.0"'
        ' xmlns:content="http://purl.org/rss/1.0/modules/content/"'
        ' xmlns:dc="http://purl.org/dc/elements/1.1/"'
        ' xmlns:media="http://search.yahoo.com/mrss/">'
        f"<channel><title>{escape(title)}</title>"
        + "".join(parts)
        + "</channel></rss>"
    )


@pytest.fixture
def make_rss():
    """Factory for RSS 2.0 documents."""
    return build_rss


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def storage(tmp_path):
    """Local vault in a temporary directory."""
    return LocalStorage(tmp_path / "vault")


@pytest.fixture
def notifier():
    return MemoryNotifier()


@pytest.fixture
def settings():
    """Default settings with one feed."""
    return PluginSettings(feeds=[FeedConfig(name="Test Feed", url="https://example.com/feed.xml")])


@pytest.fixture
def updater(settings, storage, fetcher, notifier):
    """Updater wired to in-memory settings; save_settings is a mock."""
    return FeedUpdater(
        get_settings=lambda: settings,
        save_settings=MagicMock(),
        storage=storage,
        parser=FeedParser(fetcher),
        images=ImageResolver(fetcher, fetch_pages=False),
        notifier=notifier,
    )


@pytest.fixture
def client(tmp_path, fetcher, monkeypatch):
    """Test client with an isolated settings file and vault."""
    original = (state.store, state.settings, state.storage, state.updater, state.scheduler, state.notifier)
    monkeypatch.setattr(config, "ENABLE_SCHEDULER", False)

    state.store = SettingsStore(tmp_path / "settings.json")
    state.settings = None
    state.storage = LocalStorage(tmp_path / "vault")
    state.notifier = MemoryNotifier()
    state.updater = FeedUpdater(
        get_settings=state.get_settings,
        save_settings=state.save_settings,
        storage=state.storage,
        parser=FeedParser(fetcher),
        images=ImageResolver(fetcher, fetch_pages=False),
        notifier=state.notifier,
    )
    state.scheduler = None

    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client

    (state.store, state.settings, state.storage, state.updater, state.scheduler, state.notifier) = original
