"""Parsed-document store backed by BeautifulSoup."""

from __future__ import annotations

import logging
from typing import Dict, Iterator, Optional

import soupsieve
from bs4 import BeautifulSoup, Tag

LOGGER = logging.getLogger(__name__)

DEFAULT_PARSER = "html.parser"


class DocumentStore:
    """Memoizes one parsed tree per source key (file path or URL).

    The first call for a key parses ``content``; later calls return the
    same tree and ignore ``content``. Entries are never evicted.
    """

    def __init__(self, parser: str = DEFAULT_PARSER):
        self.parser = parser
        self._documents: Dict[str, BeautifulSoup] = {}

    def get(self, key: str, content: str) -> BeautifulSoup:
        document = self._documents.get(key)
        if document is None:
            LOGGER.debug("Parsing %s", key)
            document = BeautifulSoup(content, self.parser)
            self._documents[key] = document
        return document

    def __contains__(self, key: str) -> bool:
        return key in self._documents

    def __len__(self) -> int:
        return len(self._documents)


def iter_anchors(document: BeautifulSoup) -> Iterator[Tag]:
    """Yield every ``<a>`` element carrying an ``href``, in document order."""
    yield from document.find_all("a", href=True)


def escape_anchor(anchor: str) -> str:
    """Escape *anchor* so it can be used literally in an ``#id`` selector."""
    return soupsieve.escape(anchor)


def find_anchor(document: BeautifulSoup, anchor: str) -> Optional[Tag]:
    """Return the first element whose id equals *anchor*, if any."""
    return document.select_one(f"#{escape_anchor(anchor)}")


def has_ancestor_class(element: Tag, class_name: str) -> bool:
    """True if *element* or any of its ancestors has *class_name*."""
    node: Optional[Tag] = element
    while node is not None:
        classes = node.get("class") or []
        if class_name in classes:
            return True
        node = node.parent
    return False
