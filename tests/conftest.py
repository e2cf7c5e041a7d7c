"""Pytest fixtures for reviewed-patch tests."""

import pytest

from reviewed_patch.ledger import ReviewLedger
from reviewed_patch.models.diff import DiffFile, Hunk, HunkLine, LineKind

SAMPLE_DIFF = """\
diff --git a/src/app.py b/src/app.py
index 1234567..abcdefg 100644
--- a/src/app.py
+++ b/src/app.py
@@ -1,3 +1,4 @@
 import os
+import sys

 def main():
@@ -10,3 +11,3 @@ def main():
     config = load()
-    run(config)
+    run(config, verbose=True)
     return 0

diff --git a/README.md b/README.md
index 1111111..2222222 100644
--- a/README.md
+++ b/README.md
@@ -1,2 +1,2 @@
 # Project
-Old description
+New description
"""


def make_hunk(*changes: tuple[str, str], header: str = "", old_start: int = 1) -> Hunk:
    """Build a hunk from (kind, raw text) pairs, kind being ' ', '+' or '-'."""
    kinds = {" ": LineKind.CONTEXT, "+": LineKind.ADDED, "-": LineKind.REMOVED}
    lines = [HunkLine(kind=kinds[kind], text=f"{kind}{text}") for kind, text in changes]
    return Hunk(
        header=header,
        old_start=old_start,
        old_lines=sum(1 for k, _ in changes if k != "+"),
        new_start=old_start,
        new_lines=sum(1 for k, _ in changes if k != "-"),
        lines=lines,
    )


def make_file(path: str, *hunks: Hunk) -> DiffFile:
    return DiffFile(old_path=path, new_path=path, hunks=list(hunks))


@pytest.fixture
def storage_dir(tmp_path):
    """Create a temporary storage directory for ledger snapshots.

    Args:
        tmp_path: pytest's built-in temporary directory fixture

    Returns:
        Path to storage directory
    """
    path = tmp_path / "storage"
    path.mkdir()
    return path


@pytest.fixture
def ledger_path(storage_dir):
    return storage_dir / "reviewed.json"


@pytest.fixture
def ledger(ledger_path):
    """Loaded, empty ReviewLedger backed by a temporary file."""
    store = ReviewLedger(ledger_path)
    store.load()
    return store


@pytest.fixture
def sample_diff_text():
    return SAMPLE_DIFF
