"""Single-keystroke hunk review loop.

Walks the unreviewed hunks of a projected diff. The user marks, unmarks or
skips each one; every mark/unmark is written through to the ledger at once.
"""

import os
from typing import Callable

from .hashing import HunkFingerprinter
from .ledger import ReviewLedger
from .models.diff import LineKind
from .models.projection import ProcessedDiff, ProcessedFile, ProcessedHunk

ESC = "\x1b"
KEY_UP = "\x1b[A"
KEY_DOWN = "\x1b[B"

# Seconds to wait after ESC for the rest of an escape sequence
ESCAPE_TIMEOUT = 0.05

HELP_TEXT = """Keys:
  space / r    Mark current hunk reviewed and move on
  u            Unmark current hunk
  j / n / ↓    Next hunk
  k / p / ↑    Previous hunk
  ?            Show this help
  q / esc      Quit"""


# ============================================================================
# Terminal Keystroke Capture
# ============================================================================


def _is_final_byte(ch: str) -> bool:
    return "@" <= ch <= "~"


def _read_tty_key(fd: int) -> str:
    """Read one key from a raw-mode terminal, escape sequences included."""
    import select

    key = os.read(fd, 1).decode("utf-8", errors="replace")
    if key != ESC:
        return key

    # A lone ESC has nothing queued behind it
    while select.select([fd], [], [], ESCAPE_TIMEOUT)[0]:
        ch = os.read(fd, 1).decode("utf-8", errors="replace")
        key += ch
        if len(key) == 2 and ch != "[":
            break
        if len(key) > 2 and _is_final_byte(ch):
            break
    return key


def get_single_keypress() -> str:
    """Read a single keypress from the terminal.

    Uses msvcrt on Windows, termios on Unix. On Unix the controlling terminal
    is opened directly, so keys can be read even when the diff itself was
    piped in on stdin. Arrow keys come back as KEY_UP / KEY_DOWN.

    Returns:
        The key: one character, or a whole escape sequence
    """
    try:
        import msvcrt
    except ImportError:
        import termios
        import tty

        with open("/dev/tty", "rb", buffering=0) as tty_file:
            fd = tty_file.fileno()
            old_settings = termios.tcgetattr(fd)
            try:
                tty.setraw(fd)
                key = _read_tty_key(fd)
            finally:
                termios.tcsetattr(fd, termios.TCSADRAIN, old_settings)
        # Ctrl-C in raw mode arrives as a character
        if key == "\x03":
            raise KeyboardInterrupt
        return key

    ch = msvcrt.getch()
    if ch in (b"\x00", b"\xe0"):
        return {b"H": KEY_UP, b"P": KEY_DOWN}.get(msvcrt.getch(), "")
    if ch == b"\x03":
        raise KeyboardInterrupt
    return ch.decode("utf-8", errors="replace")


class KeyInputSource:
    """Where the review loop gets its keys from.

    Reads the terminal by default. Given a list of keys (tests), replays them
    instead, joining "\\x1b", "[", "B" style fragments into one escape
    sequence the way a terminal delivers them, and answers "q" once the list
    runs out.
    """

    def __init__(self, key_sequence: list[str] | None = None):
        self._pending = list(key_sequence) if key_sequence is not None else None

    def get_key(self) -> str:
        if self._pending is None:
            return get_single_keypress()
        if not self._pending:
            return "q"

        key = self._pending.pop(0)
        if key == ESC and self._pending and self._pending[0] == "[":
            key += self._pending.pop(0)
            while self._pending:
                ch = self._pending.pop(0)
                key += ch
                if _is_final_byte(ch):
                    break
        return key


# ============================================================================
# Display Helpers
# ============================================================================


def format_hunk_display(
    processed_file: ProcessedFile,
    processed_hunk: ProcessedHunk,
    position: int,
    total: int,
    reviewed: bool,
) -> str:
    """Format a hunk for display in the review loop."""
    hunk = processed_hunk.hunk
    status = "reviewed" if reviewed else "unreviewed"

    lines = [
        "",
        "=" * 60,
        f"{processed_file.file.display_path}  [{position}/{total}]  ({status})",
        "=" * 60,
        HunkFingerprinter.hunk_context(hunk),
    ]
    for line in hunk.lines:
        if line.kind == LineKind.CONTEXT and not line.text.startswith(" "):
            lines.append(f" {line.text}")
        else:
            lines.append(line.text)
    lines.append("-" * 60)
    lines.append("[space] mark  [u] unmark  [j/k] next/prev  [?] help  [q] quit")
    return "\n".join(lines)


# ============================================================================
# Review Loop
# ============================================================================


class HunkReviewLoop:
    """Interactive review over the hunks of a projected diff.

    The view is normally the output of DiffProcessor.filter_unreviewed();
    review state shown for each hunk is read live from the ledger.
    """

    def __init__(
        self,
        ledger: ReviewLedger,
        view: ProcessedDiff,
        key_source: KeyInputSource | None = None,
        output_fn: Callable[[str], None] | None = None,
    ):
        """Initialize review loop.

        Args:
            ledger: Ledger receiving mark/unmark calls
            view: Hunks to walk, in display order
            key_source: Optional KeyInputSource for testing
            output_fn: Optional output function (default: print)
        """
        self.ledger = ledger
        self.entries = list(view.iter_hunks())
        self.key_source = key_source or KeyInputSource()
        self.output = output_fn or print

        self.marked_count = 0
        self.unmarked_count = 0
        self.visited: set[int] = set()

    def run(self) -> dict:
        """Run the review loop until the user quits or passes the last hunk.

        Returns:
            Summary dict with counts
        """
        if not self.entries:
            self.output("No hunks to review.")
            return self._get_summary()

        cursor = 0
        show = True
        while 0 <= cursor < len(self.entries):
            processed_file, processed_hunk = self.entries[cursor]
            if show:
                self.visited.add(cursor)
                self.output(
                    format_hunk_display(
                        processed_file,
                        processed_hunk,
                        cursor + 1,
                        len(self.entries),
                        self.ledger.is_reviewed(processed_hunk.fingerprint),
                    )
                )
            show = True

            key = self.key_source.get_key()

            if key in (" ", "r"):
                self._mark(processed_hunk)
                cursor += 1
            elif key == "u":
                self._unmark(processed_hunk)
            elif key in ("j", "n", KEY_DOWN):
                cursor += 1
            elif key in ("k", "p", KEY_UP):
                cursor = max(0, cursor - 1)
            elif key == "?":
                self.output(HELP_TEXT)
                show = False
            elif key in ("q", ESC):
                self.output("\nReview session ended.")
                break
            else:
                show = False

        if cursor >= len(self.entries):
            self.output("\nReached the last hunk.")

        return self._get_summary()

    def _mark(self, processed_hunk: ProcessedHunk) -> None:
        if self.ledger.is_reviewed(processed_hunk.fingerprint):
            self.output("  -> already reviewed")
            return
        self.ledger.mark(
            processed_hunk.fingerprint,
            HunkFingerprinter.hunk_context(processed_hunk.hunk),
        )
        self.marked_count += 1
        self.output("  -> MARKED reviewed")

    def _unmark(self, processed_hunk: ProcessedHunk) -> None:
        if self.ledger.unmark(processed_hunk.fingerprint):
            self.unmarked_count += 1
            self.output("  -> UNMARKED")
        else:
            self.output("  -> not marked; nothing to undo")

    def _get_summary(self) -> dict:
        """Get loop summary."""
        reviewed_now = sum(
            1 for _, h in self.entries if self.ledger.is_reviewed(h.fingerprint)
        )
        return {
            "marked": self.marked_count,
            "unmarked": self.unmarked_count,
            "visited": len(self.visited),
            "reviewed": reviewed_now,
            "total": len(self.entries),
        }
