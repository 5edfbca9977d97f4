"""Run orchestration: load state, drain the file queue, persist state."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, Iterable, List, Optional

import httpx

from .config import CheckerConfig
from .document import ErrorRecord, LinkCheckError, LinkResult
from .dom import DocumentStore
from .ledger import KnownErrorLedger
from .remote import RemoteContentCache, load_cache_file, save_cache_file
from .resolver import LinkResolver

LOGGER = logging.getLogger(__name__)

Reporter = Callable[[ErrorRecord], None]


@dataclass
class CheckRunResult:
    """Aggregate outcome of one run."""

    failed: bool = False
    reported: List[ErrorRecord] = field(default_factory=list)
    suppressed: List[ErrorRecord] = field(default_factory=list)
    stats: Dict[str, Any] = field(default_factory=dict)


def _build_client(config: CheckerConfig) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        follow_redirects=True,
        headers={"User-Agent": config.user_agent},
        timeout=config.request_timeout,
    )


async def check_files_async(
    paths: Iterable[str],
    *,
    config: Optional[CheckerConfig] = None,
    reporter: Optional[Reporter] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> CheckRunResult:
    """
    Check every link in *paths*, one file at a time.

    Args:
        paths: HTML files to check, in order.
        config: Optional CheckerConfig (defaults are used otherwise).
        reporter: Called once per newly broken link, in report order.
        client: Optional httpx client for remote fetches; one is created
            (and closed) when omitted.

    Returns:
        CheckRunResult; ``failed`` is True if any broken link was not
        already in the known-error ledger or an input file was unreadable.
    """
    config = config or CheckerConfig()
    ledger = KnownErrorLedger.load(
        config.known_errors_file, write_mode=config.write_known_errors
    )
    bodies = load_cache_file(config.cache_file)
    queue: Deque[str] = deque(paths)
    result = CheckRunResult()
    stats = {
        "files_checked": 0,
        "links_checked": 0,
        "broken_links": 0,
        "known_broken_links": 0,
        "unreadable_files": 0,
        "remote_fetches": 0,
    }

    owns_client = client is None
    http = client or _build_client(config)
    try:
        remote = RemoteContentCache(
            http, max_concurrency=config.max_concurrent_fetches, seed=bodies
        )
        resolver = LinkResolver(DocumentStore(config.html_parser), remote, config)

        while queue:
            path = queue.popleft()
            LOGGER.debug("Checking %s", path)
            try:
                link_results = await resolver.check_file(path)
            except LinkCheckError as exc:
                LOGGER.error("Skipping %s: %s", path, exc)
                stats["unreadable_files"] += 1
                result.failed = True
                continue

            stats["files_checked"] += 1
            stats["links_checked"] += len(link_results)
            _collect_failures(link_results, ledger, result, reporter)

        save_cache_file(config.cache_file, await remote.snapshot())
        stats["remote_fetches"] = remote.requests_issued
    finally:
        if owns_client:
            await http.aclose()

    ledger.persist()

    stats["broken_links"] = len(result.reported)
    stats["known_broken_links"] = len(result.suppressed)
    result.stats = stats
    LOGGER.info(
        "Checked %d links in %d files: %d broken, %d known",
        stats["links_checked"],
        stats["files_checked"],
        stats["broken_links"],
        stats["known_broken_links"],
    )
    return result


def _collect_failures(
    link_results: List[LinkResult],
    ledger: KnownErrorLedger,
    result: CheckRunResult,
    reporter: Optional[Reporter],
) -> None:
    for link in link_results:
        if link.ok:
            continue
        record = ErrorRecord.from_result(link)
        if ledger.is_known(record):
            result.suppressed.append(record)
            continue
        result.reported.append(record)
        if reporter is not None:
            reporter(record)
        ledger.record(record)
        result.failed = True


def check_files(
    paths: Iterable[str],
    *,
    config: Optional[CheckerConfig] = None,
    reporter: Optional[Reporter] = None,
) -> CheckRunResult:
    """Synchronous wrapper for check_files_async."""
    return asyncio.run(check_files_async(paths, config=config, reporter=reporter))
