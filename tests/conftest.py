"""Shared fixtures and the no-skip accounting guard for doclinks tests."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List

import httpx
import pytest

from doclinks.config import CheckerConfig


@dataclass
class FakeWeb:
    """Serves canned pages through an httpx.MockTransport and records requests."""

    pages: Dict[str, str] = field(default_factory=dict)
    statuses: Dict[str, int] = field(default_factory=dict)
    requests: List[str] = field(default_factory=list)

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(url)
        if url in self.statuses:
            return httpx.Response(self.statuses[url], text="")
        if url in self.pages:
            return httpx.Response(200, text=self.pages[url])
        return httpx.Response(404, text="not found")

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def fake_web() -> FakeWeb:
    return FakeWeb()


@pytest.fixture
def write_html(tmp_path: Path) -> Callable[[str, str], Path]:
    """Write an HTML file below tmp_path and return its path."""

    def _write(relative: str, body: str) -> Path:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(f"<html><body>{body}</body></html>", encoding="utf-8")
        return path

    return _write


@pytest.fixture
def config(tmp_path: Path) -> CheckerConfig:
    """Config whose cache and ledger live in tmp_path."""
    (tmp_path / "state").mkdir(exist_ok=True)
    return CheckerConfig(
        cache_file=str(tmp_path / "state" / "cache.json"),
        known_errors_file=str(tmp_path / "state" / "known.json"),
    )


# Every collected test must run and pass; skips, xfails and deselection
# fail the session.
_UNRUN: Counter = Counter()


def pytest_deselected(items):  # pragma: no cover - pytest hook
    _UNRUN["deselected"] += len(items)


def pytest_runtest_logreport(report):  # pragma: no cover - pytest hook
    if report.when == "teardown":
        return
    if getattr(report, "wasxfail", False):
        _UNRUN["xfailed" if report.outcome == "skipped" else "xpassed"] += 1
    elif report.outcome == "skipped":
        _UNRUN["skipped"] += 1


def pytest_sessionfinish(session, exitstatus):  # pragma: no cover - pytest hook
    if not +_UNRUN:
        return
    summary = ", ".join(f"{kind}={count}" for kind, count in sorted(_UNRUN.items()))
    reporter = session.config.pluginmanager.get_plugin("terminalreporter")
    if reporter:
        reporter.write_sep("=", f"doclinks tests did not all run ({summary})")
    session.exitstatus = 1
