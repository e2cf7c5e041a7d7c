"""Content fingerprinting for diff hunks.

A hunk's fingerprint depends only on the text of its added and removed lines,
so the same change keeps its identity when it moves to another file, another
line offset, or gains different surrounding context.
"""

import hashlib
import logging
import re
from typing import Iterable

from rich.text import Text

from .models.diff import Hunk, HunkLine

logger = logging.getLogger(__name__)

DIFF_MARKER_RE = re.compile(r"^[+\- ]")
WHITESPACE_RUN_RE = re.compile(r"\s+")

EMPTY_FINGERPRINT = hashlib.sha256(b"").hexdigest()


def strip_ansi(text: str) -> str:
    """Remove terminal escape sequences from a single line of text."""
    if "\x1b" not in text:
        return text
    return Text.from_ansi(text).plain


def normalize_line(text: str, normalize_whitespace: bool = False) -> str:
    """Normalize one changed line before hashing.

    Args:
        text: Raw diff line, marker included
        normalize_whitespace: Trim and collapse internal whitespace runs

    Returns:
        Line content with marker and escape sequences removed
    """
    normalized = DIFF_MARKER_RE.sub("", text, count=1)
    normalized = strip_ansi(normalized)

    if normalize_whitespace:
        normalized = WHITESPACE_RUN_RE.sub(" ", normalized.strip())

    return normalized


def fingerprint_lines(lines: Iterable[HunkLine], normalize_whitespace: bool = False) -> str:
    """Compute the fingerprint of an ordered sequence of hunk lines.

    Context lines are ignored. The remaining lines are normalized, joined with
    newlines and hashed with SHA-256.

    Args:
        lines: Hunk lines in diff order
        normalize_whitespace: Whether to collapse whitespace before hashing

    Returns:
        Lowercase hex digest (64 characters)
    """
    content = "\n".join(
        normalize_line(line.text, normalize_whitespace)
        for line in lines
        if line.is_change
    )
    if not content:
        logger.debug("Hunk has no changed content; fingerprint is the empty digest")
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


class HunkFingerprinter:
    """Fingerprints hunks with a fixed normalization setting."""

    def __init__(self, normalize_whitespace: bool = False):
        """Initialize fingerprinter.

        Args:
            normalize_whitespace: Trim and collapse whitespace in changed lines
        """
        self.normalize_whitespace = normalize_whitespace

    def fingerprint(self, hunk: Hunk) -> str:
        """Return the fingerprint of a hunk."""
        return fingerprint_lines(hunk.lines, self.normalize_whitespace)

    @staticmethod
    def hunk_context(hunk: Hunk) -> str:
        """Human-readable context snippet stored alongside a record."""
        if hunk.header:
            return hunk.header
        return f"@@ -{hunk.old_start},{hunk.old_lines} +{hunk.new_start},{hunk.new_lines} @@"
