"""Pydantic models for a diff annotated with review state."""

from pydantic import BaseModel, Field

from .diff import DiffFile, Hunk


class ProcessedHunk(BaseModel):
    """A hunk joined with its fingerprint and review status."""

    hunk: Hunk
    fingerprint: str = Field(description="SHA-256 hex digest of the hunk's changed lines")
    reviewed: bool
    file_index: int = Field(ge=0, description="Index of the owning file in the original diff")

    model_config = {"frozen": True}


class ProcessedFile(BaseModel):
    """A diff file with its processed hunks."""

    file: DiffFile
    hunks: list[ProcessedHunk] = Field(default_factory=list)
    file_index: int = Field(ge=0)

    model_config = {"frozen": True}

    @property
    def reviewed_count(self) -> int:
        return sum(1 for h in self.hunks if h.reviewed)


class ProcessedDiff(BaseModel):
    """Annotated view of a whole diff plus aggregate counts.

    Counts always describe the diff as processed; filtering a view keeps the
    original counts so callers can report "N of M reviewed" next to it.
    """

    files: list[ProcessedFile] = Field(default_factory=list)
    total_hunks: int = Field(default=0, ge=0)
    reviewed_hunks: int = Field(default=0, ge=0)
    unreviewed_hunks: int = Field(default=0, ge=0)

    model_config = {"frozen": True}

    def iter_hunks(self):
        """Yield (ProcessedFile, ProcessedHunk) pairs in display order."""
        for processed_file in self.files:
            for processed_hunk in processed_file.hunks:
                yield processed_file, processed_hunk
