"""Pydantic models for reviewed-patch."""

from .diff import DiffFile, Hunk, HunkLine, LineKind
from .ledger import (
    SCHEMA_VERSION,
    LedgerStatistics,
    LedgerStats,
    ReviewData,
    ReviewRecord,
    ReviewSession,
)
from .projection import ProcessedDiff, ProcessedFile, ProcessedHunk

__all__ = [
    # Diff
    "LineKind",
    "HunkLine",
    "Hunk",
    "DiffFile",
    # Ledger
    "SCHEMA_VERSION",
    "ReviewRecord",
    "ReviewSession",
    "LedgerStatistics",
    "ReviewData",
    "LedgerStats",
    # Projection
    "ProcessedHunk",
    "ProcessedFile",
    "ProcessedDiff",
]
