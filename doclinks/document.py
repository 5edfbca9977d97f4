"""Data structures describing checked links and their outcomes."""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union


class ErrorKind(str, Enum):
    """Why a reference could not be resolved."""

    READ_FAILURE = "READ_FAILURE"
    FETCH_FAILURE = "FETCH_FAILURE"
    NOANCHOR = "NOANCHOR"
    ERROR = "ERROR"


class LinkCheckError(Exception):
    """Raised while resolving a single reference."""

    kind = ErrorKind.ERROR

    def __init__(self, message: str, target: str = ""):
        self.target = target
        super().__init__(message)


class ReadError(LinkCheckError):
    """A local target file could not be read."""

    kind = ErrorKind.READ_FAILURE


class FetchError(LinkCheckError):
    """A remote target could not be fetched."""

    kind = ErrorKind.FETCH_FAILURE


class AnchorNotFoundError(LinkCheckError):
    """The target document has no element with the requested id."""

    kind = ErrorKind.NOANCHOR


@dataclass(frozen=True, slots=True)
class LinkReference:
    """One ``<a href>`` element found in a checked document."""

    source_file: str
    href: Optional[str]
    text: str


@dataclass(frozen=True, slots=True)
class Valid:
    """Outcome of a reference that resolved (or was skipped)."""

    skipped: Optional[str] = None

    def __str__(self) -> str:
        return "ok"


@dataclass(frozen=True, slots=True)
class Invalid:
    """Outcome of a reference that failed to resolve."""

    kind: ErrorKind
    message: str

    @classmethod
    def from_exception(cls, exc: BaseException) -> "Invalid":
        kind = getattr(exc, "kind", ErrorKind.ERROR)
        return cls(kind=ErrorKind(kind), message=str(exc) or exc.__class__.__name__)

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"


Outcome = Union[Valid, Invalid]


@dataclass(frozen=True, slots=True)
class LinkResult:
    """A reference paired with its resolution outcome."""

    reference: LinkReference
    outcome: Outcome

    @property
    def ok(self) -> bool:
        return isinstance(self.outcome, Valid)


def partial_path(path: str) -> str:
    """Return ``<parent dir>/<file name>`` for *path*.

    Only the last directory is kept so records stay comparable when the
    documentation tree is moved somewhere else.
    """
    normalized = os.path.normpath(path)
    parent = os.path.basename(os.path.dirname(normalized))
    name = os.path.basename(normalized)
    return f"{parent}/{name}" if parent else name


@dataclass(frozen=True, slots=True)
class ErrorRecord:
    """Serializable projection of a broken link.

    Equality and hashing cover all four fields, which is what the
    known-error ledger compares on.
    """

    partial_path: str
    reference: str
    reference_text: str
    error_text: str

    @classmethod
    def from_result(cls, result: LinkResult) -> "ErrorRecord":
        ref = result.reference
        return cls(
            partial_path=partial_path(ref.source_file),
            reference=ref.href or "",
            reference_text=ref.text,
            error_text=str(result.outcome),
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ErrorRecord":
        """Build a record from its JSON form; raises on missing fields."""
        return cls(
            partial_path=str(data["partialPath"]),
            reference=str(data["reference"]),
            reference_text=str(data["referenceText"]),
            error_text=str(data["errorText"]),
        )

    def to_dict(self) -> Dict[str, str]:
        return {
            "partialPath": self.partial_path,
            "reference": self.reference,
            "referenceText": self.reference_text,
            "errorText": self.error_text,
        }
