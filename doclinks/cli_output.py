"""Output and formatting helpers for CLI commands."""

from __future__ import annotations

import json
from typing import List

from .document import ErrorRecord


def format_broken_link(record: ErrorRecord) -> str:
    """One console line for a newly broken link."""
    return (
        f"{record.partial_path} referencing {record.reference_text} "
        f"({record.reference}) broken with {record.error_text}"
    )


def print_broken_link(record: ErrorRecord) -> None:
    print(format_broken_link(record), flush=True)


def records_to_json(records: List[ErrorRecord]) -> str:
    """Format records the same way the known-errors file stores them."""
    return json.dumps([r.to_dict() for r in records], indent=2, ensure_ascii=False)
