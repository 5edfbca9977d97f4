"""Link and anchor checker for generated HTML documentation.

Given a list of HTML files, every ``<a href>`` is classified and resolved:
fragment-only links against the page itself, relative and absolute paths
against the file system, and ``http(s)`` URLs through a persisted,
concurrency-bounded remote cache. Fragment links must name an element id
that exists in the target document. Broken links already recorded in the
known-errors file are not reported again.

Example usage:

    from doclinks import CheckerConfig, check_files, check_files_async

    # Synchronous
    result = check_files(["build/doc/index.html", "build/doc/Init.html"])
    for record in result.reported:
        print(record.partial_path, record.reference, record.error_text)

    # Async, accepting current failures as the known baseline
    config = CheckerConfig(write_known_errors=True)
    result = await check_files_async(paths, config=config)
    if result.failed:
        ...
"""

from __future__ import annotations

from .config import CheckerConfig, config_from_env
from .document import (
    AnchorNotFoundError,
    ErrorKind,
    ErrorRecord,
    FetchError,
    Invalid,
    LinkCheckError,
    LinkReference,
    LinkResult,
    ReadError,
    Valid,
)
from .dom import DocumentStore
from .ledger import KnownErrorLedger
from .remote import RemoteContentCache, load_cache_file, save_cache_file
from .resolver import LinkResolver
from .runner import CheckRunResult, check_files, check_files_async

__all__ = [
    # Value types
    "LinkReference",
    "LinkResult",
    "Valid",
    "Invalid",
    "ErrorKind",
    "ErrorRecord",
    # Errors
    "LinkCheckError",
    "ReadError",
    "FetchError",
    "AnchorNotFoundError",
    # Components
    "DocumentStore",
    "RemoteContentCache",
    "load_cache_file",
    "save_cache_file",
    "LinkResolver",
    "KnownErrorLedger",
    # Runs
    "CheckerConfig",
    "config_from_env",
    "CheckRunResult",
    "check_files",
    "check_files_async",
]
