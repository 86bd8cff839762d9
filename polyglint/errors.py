# polyglint/errors.py
"""
Error taxonomy and exception types for polyglint.

Two families live here:

* ``ErrorKind``: the diagnostic taxonomy.  Every diagnostic the analyzer
  emits carries exactly one kind.  Kinds carry a default severity and a
  *rule rank* that fixes the reporting order of several violations found
  at the same source location.

* ``PolyglintError`` and subclasses: real Python exceptions.  They are
  raised inside the pipeline and caught at the unit boundary by the
  analyzer engine, which converts them into a single fatal-class
  diagnostic for the offending unit.

Error Hierarchy
───────────────
::

    PolyglintError (base)
    ├── SourceUnitError     - the unit cannot be analysed at all
    │   └── UnitParseError  - not recognisable as a compilation unit
    ├── ConfigError         - invalid analyzer configuration
    └── InvalidLanguageError - unknown polyglot language string

Recoverable kinds (``ParseSkipped``, ``UseAfterRelease``, ``UnusedHandle``,
``RedundantResource``, ``ImportShadowing``) never abort a run.  Fatal-class
kinds (``UnreadableUnit``, ``UnsupportedUnit``, ``AnalysisTimeout``) are
reported once per unit; that unit is skipped and the others continue.
"""

from __future__ import annotations

from enum import Enum, unique
from typing import Optional


# ═══════════════════════════════════════════════════════════════════════════
#  DIAGNOSTIC TAXONOMY
# ═══════════════════════════════════════════════════════════════════════════

@unique
class ErrorKind(Enum):
    """
    Diagnostic kinds.

    The value is the public error id (``errorId`` in JSON output).  The
    declaration order of the lifecycle rules is significant: it is the
    tie-break order for violations reported at the same location.
    """

    USE_AFTER_RELEASE = "UseAfterRelease"
    UNUSED_HANDLE = "UnusedHandle"
    REDUNDANT_RESOURCE = "RedundantResource"
    IMPORT_SHADOWING = "ImportShadowing"
    PARSE_SKIPPED = "ParseSkipped"
    UNREADABLE_UNIT = "UnreadableUnit"
    UNSUPPORTED_UNIT = "UnsupportedUnit"
    ANALYSIS_TIMEOUT = "AnalysisTimeout"
    CHECKER_INTERNAL_ERROR = "CheckerInternalError"

    @property
    def default_severity(self) -> str:
        return _DEFAULT_SEVERITY[self]

    @property
    def rank(self) -> int:
        """Position in the fixed rule order (lower reports first)."""
        return _RANK[self]

    @property
    def is_fatal(self) -> bool:
        """True for kinds that cause the whole unit to be skipped."""
        return self in _FATAL_KINDS

    @classmethod
    def from_id(cls, error_id: str) -> "ErrorKind":
        """Look a kind up by its public id (case-insensitive)."""
        wanted = error_id.strip().lower()
        for kind in cls:
            if kind.value.lower() == wanted or kind.name.lower() == wanted:
                return kind
        raise ValueError(f"Unknown error kind: {error_id!r}")


_DEFAULT_SEVERITY = {
    ErrorKind.USE_AFTER_RELEASE: "error",
    ErrorKind.UNUSED_HANDLE: "information",
    ErrorKind.REDUNDANT_RESOURCE: "information",
    ErrorKind.IMPORT_SHADOWING: "style",
    ErrorKind.PARSE_SKIPPED: "warning",
    ErrorKind.UNREADABLE_UNIT: "error",
    ErrorKind.UNSUPPORTED_UNIT: "error",
    ErrorKind.ANALYSIS_TIMEOUT: "error",
    ErrorKind.CHECKER_INTERNAL_ERROR: "information",
}

_RANK = {kind: index for index, kind in enumerate(ErrorKind)}

_FATAL_KINDS = frozenset({
    ErrorKind.UNREADABLE_UNIT,
    ErrorKind.UNSUPPORTED_UNIT,
    ErrorKind.ANALYSIS_TIMEOUT,
})


# ═══════════════════════════════════════════════════════════════════════════
#  EXCEPTIONS
# ═══════════════════════════════════════════════════════════════════════════

class PolyglintError(Exception):
    """Base exception for all polyglint errors."""

    kind: Optional[ErrorKind] = None

    def __init__(
        self,
        message: str,
        path: str = "",
        line: int = 0,
        column: int = 0,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.path = path
        self.line = line
        self.column = column
        self.cause = cause

    def __str__(self) -> str:
        if self.path and self.line:
            return f"{self.path}:{self.line}:{self.column}: {self.message}"
        if self.path:
            return f"{self.path}: {self.message}"
        return self.message


class SourceUnitError(PolyglintError):
    """A source unit cannot be analysed; the unit is skipped."""

    kind = ErrorKind.UNSUPPORTED_UNIT


class UnitParseError(SourceUnitError):
    """The unit text is not a recognisable compilation unit."""

    kind = ErrorKind.UNSUPPORTED_UNIT


class ConfigError(PolyglintError):
    """Invalid analyzer configuration."""


class InvalidLanguageError(PolyglintError):
    """A polyglot language string does not name a supported language."""

    def __init__(self, language: str) -> None:
        super().__init__(f"Unsupported polyglot language: {language!r}")
        self.language = language


__all__ = [
    "ErrorKind",
    "PolyglintError",
    "SourceUnitError",
    "UnitParseError",
    "ConfigError",
    "InvalidLanguageError",
]
