"""Session-scoped review ledger.

Keeps two views of the same facts in sync: per-fingerprint records (which
sessions reviewed a hunk) and per-session membership (which hunks a session
reviewed). Every mutation goes through ReviewLedger so that

    fp in sessions[s].reviewed_hashes  <=>  s in records[fp].sessions

holds after each call, and the snapshot is saved once at the end of it.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Literal, Optional

from pydantic import ValidationError

from .models.ledger import (
    SCHEMA_VERSION,
    LedgerStats,
    ReviewData,
    ReviewRecord,
    ReviewSession,
    utc_now,
)

logger = logging.getLogger(__name__)

LoadStatus = Literal["missing", "loaded", "version_mismatch", "corrupt"]


@dataclass(frozen=True)
class LoadResult:
    """Outcome of ReviewLedger.load()."""

    status: LoadStatus
    message: Optional[str] = None

    @property
    def degraded(self) -> bool:
        """True if stored history was discarded."""
        return self.status in ("version_mismatch", "corrupt")


@dataclass(frozen=True)
class SessionResetResult:
    """Outcome of ReviewLedger.reset_session()."""

    session_found: bool
    session_id: Optional[str] = None
    records_removed: int = 0
    records_kept: int = 0


class ReviewLedger:
    """Persistent record of reviewed hunk fingerprints.

    Loaded once per process, mutated in place, saved after every mutation.
    With an active session, review status is scoped to that session; without
    one (e.g. outside a git repository) it falls back to global records.
    """

    def __init__(self, ledger_path: Path):
        """Initialize ledger.

        Args:
            ledger_path: Path to the reviewed.json snapshot
        """
        self.ledger_path = ledger_path
        self._data = ReviewData()
        # (session_id, repo_name, branch_name) of the active session
        self._active: Optional[tuple[str, str, str]] = None

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> LoadResult:
        """Load the snapshot from disk.

        A missing file starts an empty ledger. Unreadable, malformed or
        unknown-version files are discarded with a warning; the ledger stays
        usable but prior history is lost.

        Returns:
            LoadResult describing what happened
        """
        self._data = ReviewData()

        try:
            if not self.ledger_path.exists():
                self.ledger_path.parent.mkdir(parents=True, exist_ok=True)
                logger.debug(f"Ledger {self.ledger_path} does not exist, starting empty")
                return LoadResult(status="missing")

            with open(self.ledger_path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            message = f"Failed to load review data from {self.ledger_path}: {e}. Using empty data."
            logger.warning(message)
            return LoadResult(status="corrupt", message=message)

        if not isinstance(raw, dict):
            message = f"Review data in {self.ledger_path} is not a JSON object. Using empty data."
            logger.warning(message)
            return LoadResult(status="corrupt", message=message)

        version = raw.get("version")
        if version != SCHEMA_VERSION:
            message = f"Unknown storage version: {version}. Using empty data."
            logger.warning(message)
            return LoadResult(status="version_mismatch", message=message)

        # Older snapshots may lack optional sections
        if raw.get("sessions") is None:
            raw["sessions"] = {}
        if raw.get("reviewedHunks") is None:
            raw["reviewedHunks"] = {}
        if raw.get("statistics") is None:
            raw["statistics"] = {}

        try:
            data = ReviewData.model_validate(raw)
        except ValidationError as e:
            message = f"Review data in {self.ledger_path} is malformed: {e}. Using empty data."
            logger.warning(message)
            return LoadResult(status="corrupt", message=message)

        self._data = data
        self._reconcile()

        logger.debug(
            f"Loaded {len(self._data.reviewed_hunks)} record(s) and "
            f"{len(self._data.sessions)} session(s) from {self.ledger_path}"
        )
        return LoadResult(status="loaded")

    def save(self) -> None:
        """Write the snapshot atomically.

        Raises:
            OSError: If the snapshot could not be written. The in-memory
                ledger keeps the mutation but it is not durable.
        """
        self.ledger_path.parent.mkdir(parents=True, exist_ok=True)

        self._data.statistics.last_updated = utc_now()
        payload = self._data.model_dump(mode="json", by_alias=True, exclude_none=True)

        # Write atomically using temporary file
        temp_file = self.ledger_path.with_suffix(".tmp")
        try:
            with open(temp_file, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)

            temp_file.replace(self.ledger_path)
            logger.debug(f"Saved review data to {self.ledger_path}")

        except OSError as e:
            logger.error(f"Failed to save review data to {self.ledger_path}: {e}")
            temp_file.unlink(missing_ok=True)
            raise

    def _reconcile(self) -> None:
        """Restore the record/session invariant on freshly loaded data."""
        records = self._data.reviewed_hunks
        sessions = self._data.sessions
        repaired = 0

        for session_id, session in sessions.items():
            kept = []
            for fp in session.reviewed_hashes:
                if fp in kept:
                    continue
                record = records.get(fp)
                if record is None:
                    repaired += 1
                    continue
                if session_id not in record.sessions:
                    record.sessions.append(session_id)
                    repaired += 1
                kept.append(fp)
            session.reviewed_hashes = kept

        for fp, record in records.items():
            members = []
            for session_id in record.sessions:
                if session_id in members:
                    continue
                session = sessions.get(session_id)
                if session is None:
                    repaired += 1
                    continue
                if fp not in session.reviewed_hashes:
                    session.reviewed_hashes.append(fp)
                    repaired += 1
                members.append(session_id)
            record.sessions = members

        if self._data.statistics.total_reviewed_hunks != len(records):
            repaired += 1
            self._data.statistics.total_reviewed_hunks = len(records)

        if repaired:
            logger.info(f"Repaired {repaired} inconsistent reference(s) in {self.ledger_path}")

    # ------------------------------------------------------------------
    # Session context
    # ------------------------------------------------------------------

    @property
    def active_session_id(self) -> Optional[str]:
        """Session that scopes review status, or None in sessionless mode."""
        return self._active[0] if self._active is not None else None

    def select_session(self, session_id: str, repo_name: str, branch_name: str) -> None:
        """Set the active session, creating its entry on first use.

        The selection outlives reset() and reset_session(); the entry is
        recreated on the next mark.

        Args:
            session_id: Opaque stable identifier (e.g. "<repo>:<branch>")
            repo_name: Repository name, for display
            branch_name: Branch name, for display
        """
        self._active = (session_id, repo_name, branch_name)
        self._active_entry()

    def _active_entry(self) -> ReviewSession:
        session_id, repo_name, branch_name = self._active
        session = self._data.sessions.get(session_id)
        if session is None:
            session = ReviewSession(
                session_id=session_id,
                repo_name=repo_name,
                branch_name=branch_name,
            )
            self._data.sessions[session_id] = session
            logger.debug(f"Created session {session_id}")
        return session

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def is_reviewed(self, fingerprint: str) -> bool:
        """Whether a hunk counts as reviewed in the current mode.

        With an active session this is a session-scoped check only; the
        global record map is consulted only in sessionless mode.
        """
        if self.active_session_id is not None:
            return self.is_reviewed_in_session(fingerprint, self.active_session_id)

        return fingerprint in self._data.reviewed_hunks

    def is_reviewed_in_session(self, fingerprint: str, session_id: str) -> bool:
        session = self._data.sessions.get(session_id)
        return session is not None and fingerprint in session.reviewed_hashes

    def get_record(self, fingerprint: str) -> Optional[ReviewRecord]:
        """Return a copy of the record for a fingerprint, if any."""
        record = self._data.reviewed_hunks.get(fingerprint)
        return record.model_copy(deep=True) if record is not None else None

    def get_session(self, session_id: str) -> Optional[ReviewSession]:
        """Return a copy of a session entry, if any."""
        session = self._data.sessions.get(session_id)
        return session.model_copy(deep=True) if session is not None else None

    def session_ids(self) -> list[str]:
        return list(self._data.sessions)

    @property
    def record_count(self) -> int:
        return len(self._data.reviewed_hunks)

    def get_stats(self) -> LedgerStats:
        """Return aggregate statistics from the snapshot."""
        return LedgerStats(
            total_reviewed_hunks=self._data.statistics.total_reviewed_hunks,
            last_updated=self._data.statistics.last_updated,
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def mark(self, fingerprint: str, context: Optional[str] = None) -> ReviewRecord:
        """Mark a hunk as reviewed in the active session (or globally).

        Args:
            fingerprint: Hunk fingerprint
            context: Optional hunk header stored on first sight

        Returns:
            Copy of the updated record

        Raises:
            OSError: If the ledger could not be saved
        """
        now = utc_now()
        session_id = self.active_session_id
        record = self._data.reviewed_hunks.get(fingerprint)

        if record is not None:
            record.last_reviewed_at = now
            record.review_count += 1
            if session_id is not None and session_id not in record.sessions:
                record.sessions.append(session_id)
        else:
            record = ReviewRecord(
                first_seen_at=now,
                last_reviewed_at=now,
                review_count=1,
                context=context,
                sessions=[session_id] if session_id is not None else [],
            )
            self._data.reviewed_hunks[fingerprint] = record
            self._data.statistics.total_reviewed_hunks += 1

        if session_id is not None:
            session = self._active_entry()
            if fingerprint not in session.reviewed_hashes:
                session.reviewed_hashes.append(fingerprint)
            session.last_updated = now

        logger.debug(f"Marked {fingerprint[:12]} reviewed (session={session_id})")
        self.save()
        return record.model_copy(deep=True)

    def unmark(self, fingerprint: str) -> bool:
        """Remove a hunk's reviewed status.

        With an active session only that session's membership is removed;
        the record survives while other sessions still reference it.
        Without a session the record is deleted outright, together with every
        session's reference to it.

        Returns:
            True if anything changed (and was saved)

        Raises:
            OSError: If the ledger could not be saved
        """
        session_id = self.active_session_id

        if session_id is None:
            record = self._data.reviewed_hunks.get(fingerprint)
            if record is None:
                return False
            for member_id in record.sessions:
                session = self._data.sessions.get(member_id)
                if session is not None and fingerprint in session.reviewed_hashes:
                    session.reviewed_hashes.remove(fingerprint)
                    session.last_updated = utc_now()
            self._delete_record(fingerprint)
        else:
            session = self._data.sessions.get(session_id)
            if session is None or fingerprint not in session.reviewed_hashes:
                return False
            session.reviewed_hashes.remove(fingerprint)
            session.last_updated = utc_now()
            self._release(fingerprint, session_id)

        logger.debug(f"Unmarked {fingerprint[:12]} (session={session_id})")
        self.save()
        return True

    def reset(self) -> None:
        """Discard every record and session.

        Raises:
            OSError: If the ledger could not be saved
        """
        self._data = ReviewData()
        logger.info("Reset all review data")
        self.save()

    def reset_session(self) -> SessionResetResult:
        """Clear the active session's reviews.

        Records reviewed only by this session are deleted; records shared with
        other sessions lose this session's membership and are otherwise left
        untouched. The session entry itself is removed.

        Returns:
            SessionResetResult; session_found is False when no session is
            active, in which case nothing is changed.

        Raises:
            OSError: If the ledger could not be saved
        """
        session_id = self.active_session_id
        if session_id is None:
            logger.info("No session detected; nothing to reset")
            return SessionResetResult(session_found=False)

        session = self._data.sessions.pop(session_id, None)
        removed = 0
        kept = 0
        for fp in session.reviewed_hashes if session is not None else []:
            if self._release(fp, session_id):
                removed += 1
            else:
                kept += 1

        logger.info(f"Reset session {session_id}: {removed} record(s) removed, {kept} kept")
        self.save()
        return SessionResetResult(
            session_found=True,
            session_id=session_id,
            records_removed=removed,
            records_kept=kept,
        )

    def _release(self, fingerprint: str, session_id: str) -> bool:
        """Drop a session from a record; delete the record if orphaned.

        Returns:
            True if the record was deleted
        """
        record = self._data.reviewed_hunks.get(fingerprint)
        if record is None:
            return False
        if session_id in record.sessions:
            record.sessions.remove(session_id)
        if not record.sessions:
            self._delete_record(fingerprint)
            return True
        return False

    def _delete_record(self, fingerprint: str) -> None:
        del self._data.reviewed_hunks[fingerprint]
        self._data.statistics.total_reviewed_hunks = max(
            0, self._data.statistics.total_reviewed_hunks - 1
        )


def last_updated_display(value: Optional[datetime]) -> str:
    """Format a statistics timestamp for display."""
    if value is None:
        return "Never"
    return value.strftime("%Y-%m-%d %H:%M:%S UTC")
