"""Join a parsed diff against the review ledger."""

from .hashing import HunkFingerprinter
from .ledger import ReviewLedger
from .models.diff import DiffFile
from .models.projection import ProcessedDiff, ProcessedFile, ProcessedHunk


class DiffProcessor:
    """Annotates diff hunks with fingerprints and review status.

    Reads the ledger but never writes to it.
    """

    def __init__(self, ledger: ReviewLedger, fingerprinter: HunkFingerprinter):
        self.ledger = ledger
        self.fingerprinter = fingerprinter

    def process(self, files: list[DiffFile]) -> ProcessedDiff:
        """Build the annotated view of a diff.

        Args:
            files: Parsed diff files in order

        Returns:
            ProcessedDiff with per-hunk status and aggregate counts
        """
        processed_files: list[ProcessedFile] = []
        total_hunks = 0
        reviewed_hunks = 0

        for file_index, diff_file in enumerate(files):
            hunks: list[ProcessedHunk] = []

            for hunk in diff_file.hunks:
                fingerprint = self.fingerprinter.fingerprint(hunk)
                reviewed = self.ledger.is_reviewed(fingerprint)

                hunks.append(
                    ProcessedHunk(
                        hunk=hunk,
                        fingerprint=fingerprint,
                        reviewed=reviewed,
                        file_index=file_index,
                    )
                )

                total_hunks += 1
                if reviewed:
                    reviewed_hunks += 1

            processed_files.append(
                ProcessedFile(file=diff_file, hunks=hunks, file_index=file_index)
            )

        return ProcessedDiff(
            files=processed_files,
            total_hunks=total_hunks,
            reviewed_hunks=reviewed_hunks,
            unreviewed_hunks=total_hunks - reviewed_hunks,
        )

    @staticmethod
    def filter_unreviewed(diff: ProcessedDiff) -> ProcessedDiff:
        """Return a new view holding only unreviewed hunks.

        Files left without hunks are dropped. Counts are carried over from
        the input so callers can still report progress against the full diff.
        """
        filtered_files: list[ProcessedFile] = []

        for processed_file in diff.files:
            unreviewed = [h for h in processed_file.hunks if not h.reviewed]
            if unreviewed:
                filtered_files.append(processed_file.model_copy(update={"hunks": unreviewed}))

        return diff.model_copy(update={"files": filtered_files})
