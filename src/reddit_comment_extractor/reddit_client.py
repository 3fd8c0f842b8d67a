import asyncio
import re
import time
from typing import Any, List, Optional

import httpx

from .comment_tree import comment_listing
from .config import (
    FETCH_RETRIES,
    MIN_REQUEST_INTERVAL,
    REDDIT_BASE_URL,
    REDDIT_FALLBACK_URL,
    REQUEST_TIMEOUT,
)


USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/131.0.0.0 Safari/537.36"
)

_HOST_RE = re.compile(r"^https?://[^/]+")


class RedditFetchError(RuntimeError):
    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


def _swap_host(url: str, base_url: str) -> str:
    return _HOST_RE.sub(base_url.rstrip("/"), url, count=1)


def to_json_url(url: str, base_url: str = REDDIT_BASE_URL) -> str:
    """Point a thread URL at ``base_url`` and its ``.json`` representation."""
    url = (url or "").strip()
    if not _HOST_RE.match(url):
        raise ValueError(f"not an absolute reddit URL: {url!r}")
    url = url.split("?", 1)[0].split("#", 1)[0]
    url = _swap_host(url, base_url)
    if not url.endswith(".json"):
        url = url.rstrip("/") + ".json"
    return url


class RedditClient:
    """
    Fetch a thread via the public JSON endpoint:
    - Thread: /r/<sub>/comments/<post_id>/<slug>.json

    Tries ``base_url`` first and falls back to ``fallback_url`` when blocked.
    """

    def __init__(
        self,
        log_callback=None,
        *,
        base_url: str = REDDIT_BASE_URL,
        fallback_url: Optional[str] = REDDIT_FALLBACK_URL,
        retries: int = FETCH_RETRIES,
        min_interval: float = MIN_REQUEST_INTERVAL,
        timeout: float = REQUEST_TIMEOUT,
        retry_wait: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._log = log_callback or (lambda msg, lvl="info": None)
        self._base_url = base_url
        self._fallback_url = fallback_url
        self._retries = max(1, int(retries))
        self._retry_wait = float(retry_wait)
        headers = {
            "User-Agent": USER_AGENT,
            "Accept": "application/json,text/html;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
            "Connection": "keep-alive",
            "DNT": "1",
        }
        self.client = httpx.AsyncClient(
            headers=headers,
            timeout=timeout,
            follow_redirects=True,
            limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
            transport=transport,
        )

        self._rate_lock = asyncio.Lock()
        self._last_request_time = 0.0
        self._min_interval = float(min_interval)

    async def _backoff(self, attempt: int):
        if attempt < self._retries - 1:
            await asyncio.sleep(self._retry_wait * (attempt + 1))

    async def close(self):
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    async def _rate_limit(self):
        async with self._rate_lock:
            now = time.time()
            elapsed = now - self._last_request_time
            if elapsed < self._min_interval:
                await asyncio.sleep(self._min_interval - elapsed)
            self._last_request_time = time.time()

    async def _fetch_json(self, url: str, params: Optional[dict] = None) -> Any:
        last_error: Optional[RedditFetchError] = None
        for attempt in range(self._retries):
            await self._rate_limit()
            try:
                resp = await self.client.get(url, params=params)
            except httpx.TimeoutException as e:
                self._log(f"timeout on attempt {attempt + 1}: {url[:120]}", "warning")
                last_error = RedditFetchError(f"request timed out: {e}")
                await self._backoff(attempt)
                continue
            except httpx.HTTPError as e:
                self._log(f"request error: {e}", "error")
                last_error = RedditFetchError(f"request failed: {e}")
                await self._backoff(attempt)
                continue

            if resp.status_code == 429:
                self._log(f"http 429 on attempt {attempt + 1}: {url[:120]}", "warning")
                last_error = RedditFetchError(
                    "too many requests (429): please retry later", status=429
                )
                await self._backoff(attempt)
                continue
            if resp.status_code == 403:
                self._log(f"http 403: {url[:120]}", "warning")
                raise RedditFetchError(
                    "access denied (403): reddit may have flagged the request as automated",
                    status=403,
                )
            if resp.status_code >= 400:
                raise RedditFetchError(
                    f"http error {resp.status_code} {resp.reason_phrase}", status=resp.status_code
                )
            try:
                return resp.json()
            except ValueError as e:
                raise RedditFetchError(f"response is not JSON: {url[:120]}") from e

        raise last_error or RedditFetchError("all retry attempts failed")

    async def fetch_thread(self, url: str) -> Any:
        """Return the raw ``[post_listing, comment_listing]`` payload for a thread URL."""
        json_url = to_json_url(url, self._base_url)
        params = {"raw_json": 1}
        self._log(f"fetch {json_url}")
        try:
            return await self._fetch_json(json_url, params=params)
        except RedditFetchError as e:
            if not self._fallback_url or e.status not in (403, 429):
                raise
            fallback = _swap_host(json_url, self._fallback_url)
            self._log(f"{e.status} from {self._base_url}, trying {self._fallback_url}", "warning")
            return await self._fetch_json(fallback, params=params)

    async def fetch_comments(self, url: str) -> List[Any]:
        """Raw comment children of a thread, ready for ``normalize``."""
        payload = await self.fetch_thread(url)
        children = comment_listing(payload)
        self._log(f"top-level entries = {len(children)}", "success")
        return children
