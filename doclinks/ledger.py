"""Known-error ledger: accepted broken links that are not reported again."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from .document import ErrorRecord

LOGGER = logging.getLogger(__name__)


class KnownErrorLedger:
    """Set of accepted ErrorRecords backed by a pretty-printed JSON array.

    Records keep the order they were loaded or added in, so rewriting an
    unchanged ledger produces an identical file.
    """

    def __init__(
        self,
        path: Optional[str] = None,
        *,
        write_mode: bool = False,
        records: Iterable[ErrorRecord] = (),
    ):
        self.path = path
        self.write_mode = write_mode
        self._records: Dict[ErrorRecord, None] = dict.fromkeys(records)
        self._added = 0

    @classmethod
    def load(cls, path: Optional[str], *, write_mode: bool = False) -> "KnownErrorLedger":
        """Load the ledger at *path*; a missing or corrupt file yields an empty one."""
        return cls(path, write_mode=write_mode, records=_read_records(path))

    def __contains__(self, record: ErrorRecord) -> bool:
        return record in self._records

    def __len__(self) -> int:
        return len(self._records)

    @property
    def records(self) -> List[ErrorRecord]:
        return list(self._records)

    @property
    def added(self) -> int:
        """Number of records added during this run."""
        return self._added

    def is_known(self, record: ErrorRecord) -> bool:
        return record in self._records

    def record(self, record: ErrorRecord) -> bool:
        """Add *record* in write mode. Returns True if it was new."""
        if not self.write_mode or record in self._records:
            return False
        self._records[record] = None
        self._added += 1
        return True

    def persist(self) -> bool:
        """Write the ledger if in write mode and records were added."""
        # Only new records trigger a rewrite; an all-known run leaves the file as is.
        if not self.write_mode or not self._added or not self.path:
            return False
        ledger_path = Path(self.path)
        ledger_path.parent.mkdir(parents=True, exist_ok=True)
        payload = [record.to_dict() for record in self._records]
        ledger_path.write_text(
            json.dumps(payload, indent=2, ensure_ascii=False) + "\n", encoding="utf-8"
        )
        LOGGER.info(
            "Wrote %d known errors (%d new) to %s",
            len(payload),
            self._added,
            ledger_path,
        )
        return True


def _read_records(path: Optional[str]) -> List[ErrorRecord]:
    if not path:
        return []
    ledger_path = Path(path)
    if not ledger_path.is_file():
        LOGGER.info("No known-errors file at %s; starting empty", ledger_path)
        return []
    try:
        data = json.loads(ledger_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        LOGGER.warning("Failed to load known errors %s: %s", ledger_path, exc)
        return []
    if not isinstance(data, list):
        LOGGER.warning(
            "Failed to load known errors %s: expected a JSON array", ledger_path
        )
        return []

    records: List[ErrorRecord] = []
    for entry in data:
        try:
            records.append(ErrorRecord.from_dict(entry))
        except (KeyError, TypeError) as exc:
            LOGGER.warning("Ignoring malformed known-error entry %r: %s", entry, exc)
    return records
