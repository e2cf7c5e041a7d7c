"""Pydantic models for the persisted review ledger.

The on-disk snapshot uses camelCase keys; models are populated and dumped
through field aliases so Python code keeps snake_case attribute names.
"""

from datetime import datetime, timezone

from pydantic import BaseModel, Field

SCHEMA_VERSION = "1.0.0"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ReviewRecord(BaseModel):
    """Global metadata for one reviewed fingerprint."""

    first_seen_at: datetime = Field(alias="firstSeenAt", description="First time the hunk was marked")
    last_reviewed_at: datetime = Field(alias="lastReviewedAt", description="Most recent mark")
    review_count: int = Field(default=1, ge=0, alias="reviewCount")
    context: str | None = Field(default=None, description="Hunk header captured for debugging")
    sessions: list[str] = Field(
        default_factory=list,
        description="Session IDs that currently consider this hunk reviewed",
    )

    model_config = {"populate_by_name": True}


class ReviewSession(BaseModel):
    """Per-session membership: which fingerprints a repo/branch has reviewed."""

    session_id: str = Field(alias="sessionId")
    repo_name: str = Field(alias="repoName")
    branch_name: str = Field(alias="branchName")
    reviewed_hashes: list[str] = Field(default_factory=list, alias="reviewedHashes")
    last_updated: datetime = Field(default_factory=utc_now, alias="lastUpdated")

    model_config = {"populate_by_name": True}


class LedgerStatistics(BaseModel):
    """Top-level statistics block of the snapshot."""

    total_reviewed_hunks: int = Field(default=0, ge=0, alias="totalReviewedHunks")
    last_updated: datetime | None = Field(default=None, alias="lastUpdated")

    model_config = {"populate_by_name": True}


class ReviewData(BaseModel):
    """Full persisted snapshot of the review ledger."""

    version: str = Field(default=SCHEMA_VERSION)
    reviewed_hunks: dict[str, ReviewRecord] = Field(default_factory=dict, alias="reviewedHunks")
    sessions: dict[str, ReviewSession] = Field(default_factory=dict)
    statistics: LedgerStatistics = Field(default_factory=LedgerStatistics)

    model_config = {"populate_by_name": True}


class LedgerStats(BaseModel):
    """Summary returned to callers by ReviewLedger.get_stats()."""

    total_reviewed_hunks: int
    last_updated: datetime | None = None

    model_config = {"frozen": True}
