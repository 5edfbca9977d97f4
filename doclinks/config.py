"""Run configuration for the link checker."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Callable, Optional, Tuple, TypeVar

from .dom import DEFAULT_PARSER

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_CACHE_FILE = ".doclinks-cache"
DEFAULT_KNOWN_ERRORS_FILE = ".doclinks-known-errors.json"
DEFAULT_MAX_CONCURRENT_FETCHES = 5
DEFAULT_REQUEST_TIMEOUT = 30.0
DEFAULT_USER_AGENT = "doclinks/0.1"

# Hosts whose fragments are rendered client-side and cannot be verified
# from the served HTML.
UNVERIFIABLE_FRAGMENT_HOSTS: Tuple[str, ...] = ("github.com",)


@dataclass
class CheckerConfig:
    """Settings shared by the resolver and the run orchestrator."""

    cache_file: Optional[str] = DEFAULT_CACHE_FILE
    known_errors_file: Optional[str] = DEFAULT_KNOWN_ERRORS_FILE
    write_known_errors: bool = False
    max_concurrent_fetches: int = DEFAULT_MAX_CONCURRENT_FETCHES
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    user_agent: str = DEFAULT_USER_AGENT
    html_parser: str = DEFAULT_PARSER
    # Generated-docs markup that marks anchors we never check
    source_marker_class: str = "src"
    defined_in_prefix: str = "Defined in"
    source_label: str = "Source"
    skipped_schemes: Tuple[str, ...] = ("about:", "mailto:", "javascript:", "data:")
    unverifiable_fragment_hosts: Tuple[str, ...] = field(
        default_factory=lambda: UNVERIFIABLE_FRAGMENT_HOSTS
    )


def _env_value(name: str, convert: Callable[[str], T], default: T) -> T:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return convert(raw.strip())
    except ValueError:
        LOGGER.warning("Invalid %s=%r; falling back to %s.", name, raw, default)
        return default


def config_from_env(**overrides) -> CheckerConfig:
    """Build a CheckerConfig from ``DOCLINKS_*`` environment variables.

    Environment variables are read at call time. Keyword arguments that
    are not None take precedence over the environment.
    """
    config = CheckerConfig(
        cache_file=_env_value("DOCLINKS_CACHE_FILE", str, DEFAULT_CACHE_FILE),
        known_errors_file=_env_value(
            "DOCLINKS_KNOWN_ERRORS_FILE", str, DEFAULT_KNOWN_ERRORS_FILE
        ),
        max_concurrent_fetches=_env_value(
            "DOCLINKS_MAX_FETCHES", int, DEFAULT_MAX_CONCURRENT_FETCHES
        ),
        request_timeout=_env_value(
            "DOCLINKS_TIMEOUT", float, DEFAULT_REQUEST_TIMEOUT
        ),
        user_agent=_env_value("DOCLINKS_USER_AGENT", str, DEFAULT_USER_AGENT),
    )
    for name, value in overrides.items():
        if not hasattr(config, name):
            raise TypeError(f"Unknown config option: {name}")
        if value is not None:
            setattr(config, name, value)
    if config.max_concurrent_fetches < 1:
        LOGGER.warning(
            "max_concurrent_fetches must be at least 1; using %d.",
            DEFAULT_MAX_CONCURRENT_FETCHES,
        )
        config.max_concurrent_fetches = DEFAULT_MAX_CONCURRENT_FETCHES
    return config
