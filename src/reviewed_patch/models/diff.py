"""Pydantic models for parsed unified diffs."""

from enum import Enum

from pydantic import BaseModel, Field


class LineKind(str, Enum):
    """Kind of a line inside a hunk."""

    CONTEXT = "context"
    ADDED = "added"
    REMOVED = "removed"


class HunkLine(BaseModel):
    """A single line of a hunk.

    `text` is the raw diff line, marker included (e.g. "+foo", "-bar", " baz").
    """

    kind: LineKind = Field(description="context, added or removed")
    text: str = Field(description="Raw diff line including its leading marker")

    model_config = {"frozen": True}

    @property
    def is_change(self) -> bool:
        return self.kind in (LineKind.ADDED, LineKind.REMOVED)


class Hunk(BaseModel):
    """A contiguous region of change within one file."""

    header: str = Field(default="", description="Raw '@@ ... @@' header line")
    old_start: int = Field(default=0, ge=0)
    old_lines: int = Field(default=0, ge=0)
    new_start: int = Field(default=0, ge=0)
    new_lines: int = Field(default=0, ge=0)
    lines: list[HunkLine] = Field(default_factory=list)

    model_config = {"frozen": True}

    @property
    def added_count(self) -> int:
        return sum(1 for line in self.lines if line.kind == LineKind.ADDED)

    @property
    def removed_count(self) -> int:
        return sum(1 for line in self.lines if line.kind == LineKind.REMOVED)


class DiffFile(BaseModel):
    """One file section of a unified diff."""

    old_path: str | None = Field(default=None, description="Source path, None for new files")
    new_path: str | None = Field(default=None, description="Target path, None for deleted files")
    hunks: list[Hunk] = Field(default_factory=list)

    model_config = {"frozen": True}

    @property
    def display_path(self) -> str:
        """Path to show the user: the new path, or the old one for deletions."""
        return self.new_path or self.old_path or "(unknown)"
