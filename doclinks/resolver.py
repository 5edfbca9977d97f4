"""Classify and resolve the links of one HTML document.

Each ``<a href>`` goes through three stages:

1. Exemption: anchors inside a source listing are always valid.
2. Skip predicates: empty hrefs, ``#line-N`` fragments, pseudo schemes
   such as ``about:``, "Defined in" labels and "Source" links.
3. Resolution: the href is split into a locator and an anchor. The
   locator is read from disk or fetched through the remote cache, and the
   anchor (if any) must match an element id in the target document.

Failures are caught per reference and returned as ``Invalid`` outcomes.
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
from functools import lru_cache
from typing import List, Optional, Tuple
from urllib.parse import urlparse

import tldextract
from bs4 import BeautifulSoup, Tag

from .config import CheckerConfig
from .document import (
    AnchorNotFoundError,
    Invalid,
    LinkReference,
    LinkResult,
    Outcome,
    ReadError,
    Valid,
)
from .dom import DocumentStore, find_anchor, has_ancestor_class, iter_anchors
from .remote import RemoteContentCache

LOGGER = logging.getLogger(__name__)

LINE_FRAGMENT = re.compile(r"#line-[0-9]+$")
REMOTE_URL = re.compile(r"^https?://", re.IGNORECASE)
FILE_SCHEME = "file://"

# Bundled public suffix list only; never hits the network.
_EXTRACT = tldextract.TLDExtract(suffix_list_urls=())


def is_remote(locator: str) -> bool:
    return REMOTE_URL.match(locator) is not None


@lru_cache(maxsize=256)
def _registrable_domain(host: str) -> str:
    extracted = _EXTRACT(host)
    if not extracted.domain or not extracted.suffix:
        return host
    return f"{extracted.domain}.{extracted.suffix}"


def host_matches(url: str, hosts: Tuple[str, ...]) -> bool:
    """True if the registrable domain of *url* is one of *hosts*."""
    host = (urlparse(url).hostname or "").lower()
    if not host:
        return False
    candidates = {host, _registrable_domain(host)}
    return any(h.lower() in candidates for h in hosts)


def classify_href(href: str) -> Tuple[Optional[str], str]:
    """Split *href* into ``(locator, anchor)``.

    Fragment-only hrefs have no locator: they point at the current
    document. Otherwise the href is split on its first ``#``; the anchor
    may be empty.
    """
    if href.startswith("#"):
        return None, href[1:]
    locator, _, anchor = href.partition("#")
    return locator, anchor


def resolve_local_path(directory: str, locator: str) -> str:
    """Resolve *locator* relative to *directory* unless it is absolute."""
    if locator.startswith(FILE_SCHEME):
        locator = locator[len(FILE_SCHEME):]
    if os.path.isabs(locator):
        return os.path.normpath(locator)
    return os.path.normpath(os.path.join(directory, locator))


def is_exempt(element: Tag, config: CheckerConfig) -> bool:
    """Anchors inside a source listing are never checked."""
    return has_ancestor_class(element, config.source_marker_class)


def skip_reason(element: Tag, href: Optional[str], config: CheckerConfig) -> Optional[str]:
    """Return why *element* needs no resolution, or None if it does."""
    if not href:
        return "empty href"
    if LINE_FRAGMENT.search(href):
        return "line fragment"
    if href.startswith(config.skipped_schemes):
        return "pseudo scheme"
    container = element.parent
    if container is not None and container.get_text().lstrip().startswith(
        config.defined_in_prefix
    ):
        return "defined-in label"
    if element.get_text() == config.source_label:
        return "source link"
    return None


async def read_local_file(path: str, locator: str) -> str:
    try:
        return await asyncio.to_thread(_read_text, path)
    except OSError as exc:
        reason = exc.strerror or exc.__class__.__name__
        raise ReadError(f"Cannot read {locator}: {reason}", target=path) from exc


def _read_text(path: str) -> str:
    with open(path, encoding="utf-8", errors="replace") as handle:
        return handle.read()


class LinkResolver:
    """Checks the anchors of documents against local files and remote URLs."""

    def __init__(
        self,
        documents: DocumentStore,
        remote: RemoteContentCache,
        config: Optional[CheckerConfig] = None,
    ):
        self.documents = documents
        self.remote = remote
        self.config = config or CheckerConfig()

    async def check_file(self, path: str) -> List[LinkResult]:
        """Resolve every anchor of *path* concurrently.

        Results keep document order. Raises ReadError if *path* itself
        cannot be read.
        """
        key = os.path.normpath(path)
        content = await read_local_file(key, path)
        document = self.documents.get(key, content)
        return await self.check_document(key, document)

    async def check_document(self, path: str, document: BeautifulSoup) -> List[LinkResult]:
        pending = []
        for element in iter_anchors(document):
            reference = LinkReference(
                source_file=path,
                href=element.get("href"),
                text=element.get_text(),
            )
            pending.append(self._check_element(element, reference, document))
        return list(await asyncio.gather(*pending))

    async def _check_element(
        self, element: Tag, reference: LinkReference, document: BeautifulSoup
    ) -> LinkResult:
        if is_exempt(element, self.config):
            return LinkResult(reference, Valid(skipped="source listing"))
        reason = skip_reason(element, reference.href, self.config)
        if reason is not None:
            return LinkResult(reference, Valid(skipped=reason))
        return LinkResult(reference, await self.check_reference(reference, document))

    async def check_reference(
        self, reference: LinkReference, document: BeautifulSoup
    ) -> Outcome:
        """Resolve one reference found in *document*; never raises."""
        try:
            locator, anchor = classify_href(reference.href or "")
            if locator is None:
                self._check_anchor(
                    document, anchor, os.path.basename(reference.source_file)
                )
            else:
                await self._check_target(reference.source_file, locator, anchor)
        except Exception as exc:
            LOGGER.debug(
                "%s: %s failed: %s", reference.source_file, reference.href, exc
            )
            return Invalid.from_exception(exc)
        return Valid()

    async def _check_target(self, source_file: str, locator: str, anchor: str) -> None:
        if is_remote(locator):
            key = locator
            content = await self.remote.fetch(locator)
            if anchor and host_matches(locator, self.config.unverifiable_fragment_hosts):
                return
        else:
            key = resolve_local_path(os.path.dirname(source_file), locator)
            content = await read_local_file(key, locator)

        if anchor:
            self._check_anchor(self.documents.get(key, content), anchor, locator)

    @staticmethod
    def _check_anchor(document: BeautifulSoup, anchor: str, label: str) -> None:
        if not anchor:
            return
        if find_anchor(document, anchor) is None:
            raise AnchorNotFoundError(
                f"Anchor {anchor} not found in {label}",
                target=label,
            )
