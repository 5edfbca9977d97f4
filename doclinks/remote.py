"""Remote content cache with bounded, deduplicated fetches.

Every URL is fetched at most once per run. The future for a URL is
installed in the cache before the request starts, so concurrent
references to the same URL share one request, and a failed request stays
failed for the rest of the run. Outbound requests are limited by a single
semaphore shared by all files and references.

Resolved bodies are persisted between runs as a JSON object mapping URL
to body text::

    bodies = load_cache_file(".doclinks-cache")
    async with httpx.AsyncClient(follow_redirects=True) as client:
        cache = RemoteContentCache(client, seed=bodies)
        html = await cache.fetch("https://example.com/docs")
        save_cache_file(".doclinks-cache", await cache.snapshot())
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Dict, Mapping, Optional

import httpx

from .config import DEFAULT_MAX_CONCURRENT_FETCHES
from .document import FetchError

LOGGER = logging.getLogger(__name__)


class RemoteContentCache:
    """URL -> body cache holding one future per URL."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        max_concurrency: int = DEFAULT_MAX_CONCURRENT_FETCHES,
        seed: Optional[Mapping[str, str]] = None,
    ):
        self._client = client
        self._semaphore = asyncio.Semaphore(max(1, max_concurrency))
        self._entries: Dict[str, asyncio.Future] = {}
        self.requests_issued = 0
        for url, body in (seed or {}).items():
            self.seed(url, body)

    def seed(self, url: str, body: str) -> None:
        """Install an already known body for *url*."""
        future = asyncio.get_running_loop().create_future()
        future.set_result(body)
        self._entries[url] = future

    def __contains__(self, url: str) -> bool:
        return url in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    async def fetch(self, url: str) -> str:
        """Return the body of *url*, issuing at most one request for it.

        Raises:
            FetchError: If the request failed (now or earlier in the run).
        """
        future = self._entries.get(url)
        if future is None:
            # No await between the lookup and the insert.
            future = asyncio.ensure_future(self._download(url))
            self._entries[url] = future
            self.requests_issued += 1
        return await asyncio.shield(future)

    async def _download(self, url: str) -> str:
        async with self._semaphore:
            LOGGER.debug("Fetching %s", url)
            try:
                response = await self._client.get(url)
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                raise FetchError(
                    f"HTTP {exc.response.status_code} fetching {url}", target=url
                ) from exc
            except (httpx.RequestError, httpx.InvalidURL) as exc:
                raise FetchError(
                    f"Request failed for {url}: {exc!s}", target=url
                ) from exc
            return response.text

    async def snapshot(self) -> Dict[str, str]:
        """Wait for every entry and return the successfully fetched bodies.

        Failed fetches are left out so they are retried on the next run.
        """
        urls = list(self._entries)
        results = await asyncio.gather(
            *(self._entries[url] for url in urls), return_exceptions=True
        )
        bodies: Dict[str, str] = {}
        for url, result in zip(urls, results):
            if isinstance(result, BaseException):
                LOGGER.debug("Not caching failed fetch of %s: %s", url, result)
                continue
            bodies[url] = result
        return bodies


def load_cache_file(path: Optional[str]) -> Dict[str, str]:
    """Read persisted bodies; a missing or corrupt file yields ``{}``."""
    if not path:
        return {}
    cache_path = Path(path)
    if not cache_path.is_file():
        LOGGER.info("No remote cache at %s; starting empty", cache_path)
        return {}
    try:
        data = json.loads(cache_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        LOGGER.warning("Failed to load cache %s: %s", cache_path, exc)
        return {}
    if not isinstance(data, dict):
        LOGGER.warning("Failed to load cache %s: expected a JSON object", cache_path)
        return {}
    return {
        str(url): body for url, body in data.items() if isinstance(body, str)
    }


def save_cache_file(path: Optional[str], bodies: Mapping[str, str]) -> None:
    """Rewrite the persisted cache with *bodies*."""
    if not path:
        return
    cache_path = Path(path)
    cache_path.parent.mkdir(parents=True, exist_ok=True)
    cache_path.write_text(json.dumps(dict(bodies), ensure_ascii=False), encoding="utf-8")
    LOGGER.debug("Wrote %d cached bodies to %s", len(bodies), cache_path)
