"""Unified diff parsing.

Turns `git diff` style text into DiffFile/Hunk/HunkLine models on top of
unidiff's PatchSet. Colourised output (`git diff --color`) is accepted:
escape sequences are stripped before the text reaches unidiff, so coloured
and plain diffs of the same change produce identical hunks.
"""

import logging

from unidiff import Hunk as PatchHunk
from unidiff.patch import Line as PatchLine
from unidiff import PatchedFile, PatchSet, UnidiffParseError

from .hashing import strip_ansi
from .models.diff import DiffFile, Hunk, HunkLine, LineKind

logger = logging.getLogger(__name__)

DEV_NULL = "/dev/null"


class DiffParseError(ValueError):
    """Raised when diff text cannot be turned into at least one file."""


def _file_path(value: str | None) -> str | None:
    """Path from a source/target header, None for /dev/null."""
    if not value or value == DEV_NULL:
        return None
    if value.startswith(("a/", "b/")):
        return value[2:]
    return value


def _hunk_header(hunk: PatchHunk) -> str:
    header = (
        f"@@ -{hunk.source_start},{hunk.source_length} "
        f"+{hunk.target_start},{hunk.target_length} @@"
    )
    if hunk.section_header:
        header = f"{header} {hunk.section_header}"
    return header


def _convert_line(line: PatchLine) -> HunkLine | None:
    if line.is_added:
        kind = LineKind.ADDED
    elif line.is_removed:
        kind = LineKind.REMOVED
    elif line.is_context:
        kind = LineKind.CONTEXT
    else:
        # "\ No newline at end of file"
        return None
    return HunkLine(kind=kind, text=line.line_type + line.value.rstrip("\r\n"))


def _convert_hunk(hunk: PatchHunk) -> Hunk:
    lines = [converted for converted in map(_convert_line, hunk) if converted is not None]
    return Hunk(
        header=_hunk_header(hunk),
        old_start=hunk.source_start,
        old_lines=hunk.source_length,
        new_start=hunk.target_start,
        new_lines=hunk.target_length,
        lines=lines,
    )


def _convert_file(patched_file: PatchedFile) -> DiffFile:
    old_path = None if patched_file.is_added_file else _file_path(patched_file.source_file)
    new_path = None if patched_file.is_removed_file else _file_path(patched_file.target_file)
    return DiffFile(
        old_path=old_path,
        new_path=new_path,
        hunks=[_convert_hunk(hunk) for hunk in patched_file],
    )


def parse_diff(diff_text: str) -> list[DiffFile]:
    """Parse unified diff text.

    Args:
        diff_text: Output of `git diff` (or any unified diff)

    Returns:
        Parsed files in order of appearance

    Raises:
        DiffParseError: If the text is empty, malformed or contains no
            file sections
    """
    if not diff_text or not diff_text.strip():
        raise DiffParseError("Empty diff provided")

    plain = "\n".join(strip_ansi(line) for line in diff_text.splitlines()) + "\n"

    try:
        patch = PatchSet.from_string(plain)
    except UnidiffParseError as e:
        raise DiffParseError(f"Malformed diff: {e}") from e

    files = [_convert_file(patched_file) for patched_file in patch]
    if not files:
        raise DiffParseError("No files found in diff")

    logger.debug(f"Parsed {len(files)} file(s) with {count_hunks(files)} hunk(s)")
    return files


def count_hunks(files: list[DiffFile]) -> int:
    """Count total hunks across all files."""
    return sum(len(f.hunks) for f in files)
