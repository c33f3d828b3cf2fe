"""Input history for the interactive REPL.

History is owned by an explicit ReplSession rather than module-level
readline state; the protocol client never sees it. When the readline
module is available the session mirrors its entries into it so arrow-key
recall works.
"""

import logging
from pathlib import Path
from types import ModuleType

logger = logging.getLogger(__name__)


def _load_readline() -> ModuleType | None:
    try:
        import readline
    except ImportError:
        # Not shipped on Windows builds of CPython.
        return None
    return readline


class ReplSession:
    """One interactive session with its persisted input history.

    Example:
        >>> session = ReplSession(".bc_cli_history")
        >>> session.load()
        >>> session.record("hello")
        >>> session.save()
    """

    def __init__(self, history_file: str | Path, max_entries: int = 1000) -> None:
        """Initialize the session.

        Args:
            history_file: File holding one entry per line.
            max_entries: Oldest entries beyond this are dropped on save.
        """
        self._path = Path(history_file)
        self._max_entries = max_entries
        self._entries: list[str] = []
        self._readline = _load_readline()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def entries(self) -> list[str]:
        return self._entries.copy()

    def load(self) -> bool:
        """Load previous history. Returns False if there was none."""
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.debug("No previous history loaded.")
            return False
        except OSError as e:
            logger.warning("Could not read history %s: %s", self._path, e)
            return False

        lines = text.splitlines()
        # rustyline writes a version header on the first line
        if lines and lines[0] == "#V2":
            lines = lines[1:]
        self._entries = [line for line in lines if line]
        if self._readline is not None:
            for entry in self._entries:
                self._readline.add_history(entry)
        return True

    def record(self, line: str) -> None:
        """Add one submitted line; blank lines and repeats are skipped."""
        line = line.strip()
        if not line or (self._entries and self._entries[-1] == line):
            return
        self._entries.append(line)
        # input() already added it to readline's buffer

    def save(self) -> bool:
        """Persist history. Returns False (and logs) on failure."""
        entries = self._entries[-self._max_entries:]
        try:
            self._path.write_text("".join(f"{e}\n" for e in entries), encoding="utf-8")
        except OSError as e:
            logger.error("Could not save history: %s", e)
            return False
        return True
