"""
HTTP Fetcher - the single network transport used by the pipeline.

Handles:
- GET requests with browser-like headers
- Returning status, content type and body without raising on HTTP errors
- One shared place for tests to swap in a fake transport
"""

import aiohttp
from dataclasses import dataclass, field


@dataclass
class FetchResult:
    """Result of a single HTTP GET."""
    url: str
    status: int
    body: bytes = b""
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == 200

    @property
    def content_type(self) -> str:
        return self.headers.get("content-type", "").lower()

    @property
    def size(self) -> int:
        """Declared content length, or the body size when not declared."""
        declared = self.headers.get("content-length")
        if declared and declared.isdigit():
            return int(declared)
        return len(self.body)

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


class Fetcher:
    """Fetches raw bytes from URLs."""

    def __init__(self, timeout: int | None = None, user_agent: str | None = None):
        # None keeps aiohttp's own default timeout
        self.timeout = timeout
        self.user_agent = user_agent or (
            "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
            "AppleWebKit/537.36 (KHTML, like Gecko) "
            "Chrome/120.0.0.0 Safari/537.36"
        )
        self.headers = {
            "User-Agent": self.user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,image/apng,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
        }

    async def get(self, url: str, headers: dict[str, str] | None = None) -> FetchResult:
        """
        GET a URL and return the response.

        Raises aiohttp.ClientError on transport failures; HTTP error
        statuses are returned, not raised.
        """
        request_headers = dict(self.headers)
        if headers:
            request_headers.update(headers)

        kwargs = {}
        if self.timeout is not None:
            kwargs["timeout"] = aiohttp.ClientTimeout(total=self.timeout)

        async with aiohttp.ClientSession(headers=request_headers) as session:
            async with session.get(url, allow_redirects=True, **kwargs) as resp:
                body = await resp.read()
                return FetchResult(
                    url=str(resp.url),
                    status=resp.status,
                    body=body,
                    headers={k.lower(): v for k, v in resp.headers.items()},
                )
