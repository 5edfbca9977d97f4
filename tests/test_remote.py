"""Tests for doclinks.remote module."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from doclinks.document import FetchError
from doclinks.remote import RemoteContentCache, load_cache_file, save_cache_file


class TestFetch:
    @pytest.mark.asyncio
    async def test_same_url_fetched_once(self, fake_web):
        fake_web.pages["https://x.org/a"] = "<p>a</p>"
        async with fake_web.client() as client:
            cache = RemoteContentCache(client)
            bodies = await asyncio.gather(
                *(cache.fetch("https://x.org/a") for _ in range(10))
            )
            again = await cache.fetch("https://x.org/a")

        assert bodies == ["<p>a</p>"] * 10
        assert again == "<p>a</p>"
        assert fake_web.requests == ["https://x.org/a"]
        assert cache.requests_issued == 1

    @pytest.mark.asyncio
    async def test_seeded_entries_skip_network(self, fake_web):
        async with fake_web.client() as client:
            cache = RemoteContentCache(client, seed={"https://x/y": "<html></html>"})
            assert await cache.fetch("https://x/y") == "<html></html>"

        assert fake_web.requests == []
        assert cache.requests_issued == 0

    @pytest.mark.asyncio
    async def test_http_error_status(self, fake_web):
        fake_web.statuses["https://x.org/gone"] = 410
        async with fake_web.client() as client:
            cache = RemoteContentCache(client)
            with pytest.raises(FetchError, match="HTTP 410"):
                await cache.fetch("https://x.org/gone")

    @pytest.mark.asyncio
    async def test_failure_is_cached_for_the_run(self, fake_web):
        async with fake_web.client() as client:
            cache = RemoteContentCache(client)
            for _ in range(3):
                with pytest.raises(FetchError):
                    await cache.fetch("https://x.org/missing")

        assert fake_web.requests == ["https://x.org/missing"]

    @pytest.mark.asyncio
    async def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("Connection refused", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            cache = RemoteContentCache(client)
            with pytest.raises(FetchError, match="Request failed"):
                await cache.fetch("https://down.example/")

    @pytest.mark.asyncio
    async def test_malformed_url_is_a_fetch_failure(self):
        async with httpx.AsyncClient() as client:
            cache = RemoteContentCache(client)
            with pytest.raises(FetchError, match="Request failed for https://a.org:x/"):
                await cache.fetch("https://a.org:x/")

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self):
        in_flight = 0
        peak = 0

        async def handler(request):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return httpx.Response(200, text="ok")

        urls = [f"https://x.org/{i}" for i in range(12)]
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            cache = RemoteContentCache(client, max_concurrency=5)
            await asyncio.gather(*(cache.fetch(url) for url in urls))

        assert peak == 5


class TestSnapshot:
    @pytest.mark.asyncio
    async def test_failed_fetches_are_not_persisted(self, fake_web):
        fake_web.pages["https://x.org/ok"] = "body"
        async with fake_web.client() as client:
            cache = RemoteContentCache(client, seed={"https://old/": "old"})
            await cache.fetch("https://x.org/ok")
            with pytest.raises(FetchError):
                await cache.fetch("https://x.org/bad")
            snapshot = await cache.snapshot()

        assert snapshot == {"https://old/": "old", "https://x.org/ok": "body"}


class TestCacheFile:
    def test_missing_file(self, tmp_path):
        assert load_cache_file(str(tmp_path / "nope")) == {}

    def test_no_path(self):
        assert load_cache_file(None) == {}

    def test_corrupt_file(self, tmp_path, caplog):
        path = tmp_path / "cache"
        path.write_text("{not json", encoding="utf-8")
        assert load_cache_file(str(path)) == {}
        assert "Failed to load cache" in caplog.text

    def test_wrong_shape(self, tmp_path):
        path = tmp_path / "cache"
        path.write_text("[1, 2]", encoding="utf-8")
        assert load_cache_file(str(path)) == {}

    def test_non_string_bodies_dropped(self, tmp_path):
        path = tmp_path / "cache"
        path.write_text(json.dumps({"https://a/": "x", "https://b/": 3}), encoding="utf-8")
        assert load_cache_file(str(path)) == {"https://a/": "x"}

    def test_save_then_load(self, tmp_path):
        path = tmp_path / "nested" / "cache"
        save_cache_file(str(path), {"https://a/": "<p>é</p>"})
        assert json.loads(path.read_text(encoding="utf-8")) == {"https://a/": "<p>é</p>"}
        assert load_cache_file(str(path)) == {"https://a/": "<p>é</p>"}
