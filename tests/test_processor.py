"""Tests for joining parsed diffs against the ledger."""

from reviewed_patch.diff_parser import parse_diff
from reviewed_patch.hashing import HunkFingerprinter
from reviewed_patch.processor import DiffProcessor

from conftest import make_file, make_hunk


def _processor(ledger, normalize_whitespace=False):
    return DiffProcessor(ledger, HunkFingerprinter(normalize_whitespace))


class TestProcess:
    """Tests for DiffProcessor.process."""

    def test_fresh_ledger_has_nothing_reviewed(self, ledger, sample_diff_text):
        processed = _processor(ledger).process(parse_diff(sample_diff_text))

        assert processed.total_hunks == 3
        assert processed.reviewed_hunks == 0
        assert processed.unreviewed_hunks == 3
        assert [f.file.display_path for f in processed.files] == ["src/app.py", "README.md"]
        assert [f.file_index for f in processed.files] == [0, 1]
        assert all(h.file_index == 1 for h in processed.files[1].hunks)

    def test_counts_reflect_ledger(self, ledger):
        """One of two hunks reviewed in the active session."""
        hunk_a = make_hunk(("+", "a"))
        hunk_b = make_hunk(("+", "b"))
        files = [make_file("f.py", hunk_a, hunk_b)]
        ledger.select_session("repo:main", "repo", "main")
        ledger.mark(HunkFingerprinter().fingerprint(hunk_a))

        processed = _processor(ledger).process(files)

        assert processed.total_hunks == 2
        assert processed.reviewed_hunks == 1
        assert processed.unreviewed_hunks == 1
        assert [h.reviewed for h in processed.files[0].hunks] == [True, False]
        assert processed.files[0].reviewed_count == 1

    def test_review_in_other_session_does_not_count(self, ledger):
        hunk = make_hunk(("+", "a"))
        ledger.select_session("repo:main", "repo", "main")
        ledger.mark(HunkFingerprinter().fingerprint(hunk))
        ledger.select_session("repo:feature", "repo", "feature")

        processed = _processor(ledger).process([make_file("f.py", hunk)])

        assert processed.reviewed_hunks == 0

    def test_moved_hunk_stays_reviewed(self, ledger):
        """A reviewed change at a new offset is still recognized."""
        original = make_hunk((" ", "ctx"), ("+", "value = 1"), header="@@ -1,1 +1,2 @@")
        moved = make_hunk((" ", "other"), ("+", "value = 1"), header="@@ -40,1 +52,2 @@", old_start=40)
        ledger.mark(HunkFingerprinter().fingerprint(original))

        processed = _processor(ledger).process([make_file("f.py", moved)])

        assert processed.reviewed_hunks == 1

    def test_whitespace_normalization_setting_is_used(self, ledger):
        reviewed = make_hunk(("+", "foo(a, b)"))
        reformatted = make_hunk(("+", "foo(a,   b)"))
        ledger.mark(HunkFingerprinter(normalize_whitespace=True).fingerprint(reviewed))

        exact = _processor(ledger).process([make_file("f.py", reformatted)])
        loose = _processor(ledger, normalize_whitespace=True).process([make_file("f.py", reformatted)])

        assert exact.reviewed_hunks == 0
        assert loose.reviewed_hunks == 1

    def test_process_does_not_write(self, ledger, sample_diff_text):
        _processor(ledger).process(parse_diff(sample_diff_text))

        assert not ledger.ledger_path.exists()

    def test_empty_input(self, ledger):
        processed = _processor(ledger).process([])

        assert processed.files == []
        assert processed.total_hunks == 0
        assert processed.unreviewed_hunks == 0


class TestFilterUnreviewed:
    """Tests for DiffProcessor.filter_unreviewed."""

    def _two_files_one_reviewed(self, ledger):
        hunk_a = make_hunk(("+", "a"))
        hunk_b = make_hunk(("+", "b"))
        hunk_c = make_hunk(("-", "c"))
        ledger.mark(HunkFingerprinter().fingerprint(hunk_a))
        files = [make_file("one.py", hunk_a), make_file("two.py", hunk_b, hunk_c)]
        return _processor(ledger).process(files)

    def test_drops_reviewed_hunks_and_empty_files(self, ledger):
        processed = self._two_files_one_reviewed(ledger)

        filtered = DiffProcessor.filter_unreviewed(processed)

        assert [f.file.display_path for f in filtered.files] == ["two.py"]
        assert len(filtered.files[0].hunks) == 2
        assert all(not h.reviewed for _, h in filtered.iter_hunks())

    def test_keeps_original_counts(self, ledger):
        processed = self._two_files_one_reviewed(ledger)

        filtered = DiffProcessor.filter_unreviewed(processed)

        assert filtered.total_hunks == 3
        assert filtered.reviewed_hunks == 1
        assert filtered.unreviewed_hunks == 2
        assert filtered.files[0].file_index == 1

    def test_is_idempotent(self, ledger):
        processed = self._two_files_one_reviewed(ledger)

        once = DiffProcessor.filter_unreviewed(processed)
        twice = DiffProcessor.filter_unreviewed(once)

        assert once == twice

    def test_does_not_modify_input(self, ledger):
        processed = self._two_files_one_reviewed(ledger)
        before = processed.model_copy(deep=True)

        DiffProcessor.filter_unreviewed(processed)

        assert processed == before
        assert len(processed.files) == 2
        assert len(processed.files[0].hunks) == 1

    def test_all_reviewed_gives_empty_view(self, ledger):
        hunk = make_hunk(("+", "a"))
        ledger.mark(HunkFingerprinter().fingerprint(hunk))
        processed = _processor(ledger).process([make_file("f.py", hunk)])

        filtered = DiffProcessor.filter_unreviewed(processed)

        assert filtered.files == []
        assert list(filtered.iter_hunks()) == []
