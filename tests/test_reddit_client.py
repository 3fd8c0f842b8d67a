import asyncio

import httpx
import pytest

from reddit_comment_extractor.reddit_client import RedditClient, RedditFetchError, to_json_url


THREAD_URL = "https://www.reddit.com/r/python/comments/abc123/some_title/"

PAYLOAD = [
    {"kind": "Listing", "data": {"children": [{"kind": "t3", "data": {"id": "abc123"}}]}},
    {
        "kind": "Listing",
        "data": {
            "children": [
                {"kind": "t1", "data": {"id": "c1", "author": "u", "body": "hi", "score": 1, "created_utc": 1}},
                {"kind": "more", "data": {"children": ["c2"]}},
            ]
        },
    },
]


def _client(handler, **kwargs):
    kwargs.setdefault("min_interval", 0)
    kwargs.setdefault("retry_wait", 0)
    return RedditClient(transport=httpx.MockTransport(handler), **kwargs)


def _run(client, coro_fn):
    async def runner():
        async with client:
            return await coro_fn(client)

    return asyncio.run(runner())


def test_to_json_url_appends_suffix_and_rewrites_host():
    assert (
        to_json_url(THREAD_URL, "https://www.reddit.com")
        == "https://www.reddit.com/r/python/comments/abc123/some_title.json"
    )
    assert (
        to_json_url("https://old.reddit.com/r/x/comments/1/t?utm_source=share", "https://www.reddit.com/")
        == "https://www.reddit.com/r/x/comments/1/t.json"
    )
    assert (
        to_json_url("https://www.reddit.com/r/x/comments/1/t.json", "https://www.reddit.com")
        == "https://www.reddit.com/r/x/comments/1/t.json"
    )


def test_to_json_url_rejects_relative_urls():
    with pytest.raises(ValueError):
        to_json_url("/r/x/comments/1/t")


def test_fetch_comments_returns_comment_children():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=PAYLOAD)

    children = _run(_client(handler), lambda c: c.fetch_comments(THREAD_URL))

    assert [c["kind"] for c in children] == ["t1", "more"]
    assert seen[0].url.path == "/r/python/comments/abc123/some_title.json"
    assert seen[0].url.params["raw_json"] == "1"
    assert "Mozilla" in seen[0].headers["User-Agent"]


def test_retries_after_rate_limit():
    calls = {"count": 0}

    def handler(request):
        calls["count"] += 1
        if calls["count"] == 1:
            return httpx.Response(429)
        return httpx.Response(200, json=PAYLOAD)

    payload = _run(_client(handler, retries=3), lambda c: c.fetch_thread(THREAD_URL))
    assert payload == PAYLOAD
    assert calls["count"] == 2


def test_falls_back_to_second_host_when_blocked():
    hosts = []

    def handler(request):
        hosts.append(request.url.host)
        if request.url.host == "www.reddit.com":
            return httpx.Response(403)
        return httpx.Response(200, json=PAYLOAD)

    client = _client(handler, base_url="https://www.reddit.com", fallback_url="https://old.reddit.com")
    payload = _run(client, lambda c: c.fetch_thread(THREAD_URL))
    assert payload == PAYLOAD
    assert hosts == ["www.reddit.com", "old.reddit.com"]


def test_blocked_without_fallback_raises():
    def handler(request):
        return httpx.Response(403)

    client = _client(handler, fallback_url=None)
    with pytest.raises(RedditFetchError) as exc:
        _run(client, lambda c: c.fetch_thread(THREAD_URL))
    assert exc.value.status == 403


def test_not_found_is_not_retried():
    calls = {"count": 0}

    def handler(request):
        calls["count"] += 1
        return httpx.Response(404)

    with pytest.raises(RedditFetchError) as exc:
        _run(_client(handler, retries=3), lambda c: c.fetch_thread(THREAD_URL))
    assert exc.value.status == 404
    assert calls["count"] == 1


def test_transport_errors_exhaust_retries():
    calls = {"count": 0}

    def handler(request):
        calls["count"] += 1
        raise httpx.ConnectError("boom", request=request)

    with pytest.raises(RedditFetchError, match="request failed"):
        _run(_client(handler, retries=2), lambda c: c.fetch_thread(THREAD_URL))
    assert calls["count"] == 2


def test_non_json_body_raises():
    def handler(request):
        return httpx.Response(200, text="<html>blocked</html>")

    with pytest.raises(RedditFetchError, match="not JSON"):
        _run(_client(handler), lambda c: c.fetch_thread(THREAD_URL))
