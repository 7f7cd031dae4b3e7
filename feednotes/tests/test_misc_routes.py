"""
Tests for misc routes: status, refresh, settings, OPML.
"""

from feednotes.config import state

FEED_URL = "https://example.com/feed.xml"

OPML = """<?xml version="1.0"?>
<opml version="2.0"><head><title>x</title></head><body>
  <outline text="Tech"><outline type="rss" text="A" xmlUrl="https://a.com/feed"/></outline>
  <outline type="rss" text="B" xmlUrl="https://b.com/feed"/>
</body></opml>
"""


class TestStatus:
    """Tests for /status endpoint."""

    def test_status_returns_ok(self, client):
        response = client.get("/status")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["state"] == "idle"
        assert data["scheduler_running"] is False
        assert data["last_run"] is None
        assert "version" in data


class TestRefresh:
    """Tests for POST /refresh endpoint."""

    def test_refresh_runs_update(self, client, fetcher, make_rss, tmp_path):
        fetcher.add(FEED_URL, make_rss([], title="Example"))
        client.post("/feeds", json={"url": FEED_URL})
        fetcher.add(FEED_URL, make_rss([{"title": "Post", "link": "https://example.com/p"}], title="Example"))

        response = client.post("/refresh")
        assert response.json()["message"] == "Refresh started"

        # Background tasks finish before TestClient returns
        assert (tmp_path / "vault" / "RSS" / "Example" / "Post.md").exists()

        data = client.get("/status").json()
        assert data["last_run"]["saved"] == 1
        assert "Updating RSS feeds..." in data["notices"]

    def test_refresh_without_feeds(self, client):
        client.post("/refresh")
        assert client.get("/status").json()["notices"] == ["No active feeds to update."]


class TestSettings:
    """Tests for /settings endpoints."""

    def test_get_settings_defaults(self, client):
        data = client.get("/settings").json()
        assert data["folder_path"] == "RSS"
        assert data["file_name_template"] == "{{title}}"
        assert data["update_interval_value"] == 30

    def test_update_settings(self, client, tmp_path):
        response = client.put("/settings", json={"folder_path": "/News/", "download_images": True})
        assert response.status_code == 200
        data = response.json()
        assert data["folder_path"] == "News"
        assert data["download_images"] is True
        assert '"folderPath": "News"' in (tmp_path / "settings.json").read_text()

    def test_invalid_unit_rejected(self, client):
        assert client.put("/settings", json={"update_interval_unit": "weeks"}).status_code == 422

    def test_interval_change_restarts_scheduler(self, client):
        from unittest.mock import AsyncMock, MagicMock

        state.scheduler = MagicMock()
        state.scheduler.restart = AsyncMock()
        try:
            client.put("/settings", json={"update_interval_value": 5})
            state.scheduler.restart.assert_awaited_once()

            state.scheduler.restart.reset_mock()
            client.put("/settings", json={"template": "{{content}}"})
            state.scheduler.restart.assert_not_awaited()
        finally:
            state.scheduler = None


class TestOPML:
    """Tests for /opml endpoints."""

    def test_import_then_export(self, client):
        response = client.post("/opml", json={"opml_content": OPML})
        assert response.status_code == 200
        assert response.json() == {"total": 2, "imported": 2, "skipped": 0}

        groups = client.get("/groups").json()
        assert [g["name"] for g in groups] == ["Tech"]

        export = client.get("/opml")
        assert export.status_code == 200
        assert "https://a.com/feed" in export.text
        assert 'text="Tech"' in export.text

    def test_import_invalid(self, client):
        response = client.post("/opml", json={"opml_content": "<nope"})
        assert response.status_code == 400

    def test_import_empty(self, client):
        response = client.post("/opml", json={"opml_content": "<opml><body/></opml>"})
        assert response.status_code == 400
