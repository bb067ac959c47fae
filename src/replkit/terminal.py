"""Terminal abstraction for line editing.

Provides a ``Terminal`` protocol and a concrete ``ProcessTerminal`` that puts
the tty in raw mode, decodes key presses, and keeps track of where the
physical cursor is so the line editor can address cells by (column, row).

ANSI terminals cannot be asked for the cursor position cheaply, so
``ProcessTerminal`` simulates the effect of everything it writes, including
soft wrap at the right margin. Rows are relative to the row the cursor was on
when tracking started.
"""

from __future__ import annotations

import codecs
import logging
import os
import select
import sys
import termios
import tty
from typing import IO, Protocol

from replkit.exceptions import InputClosedError
from replkit.input_decoder import InputDecoder, PastedText
from replkit.keys import KeyEvent, key_event_from_data
from replkit.utils import iter_graphemes

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# ANSI escape constants
# ---------------------------------------------------------------------------

_BRACKETED_PASTE_ENABLE = "\x1b[?2004h"
_BRACKETED_PASTE_DISABLE = "\x1b[?2004l"
_CURSOR_UP_FMT = "\x1b[{}A"
_CURSOR_DOWN_FMT = "\x1b[{}B"
_CURSOR_COLUMN_FMT = "\x1b[{}G"

# Seconds to wait for the rest of an escape sequence before treating a lone
# ESC as the escape key.
_ESCAPE_TIMEOUT = 0.05


# ---------------------------------------------------------------------------
# Terminal protocol
# ---------------------------------------------------------------------------


class Terminal(Protocol):
    """Interface the line editor needs from a terminal."""

    @property
    def current_column(self) -> int: ...

    @property
    def current_row(self) -> int: ...

    @property
    def buffer_width(self) -> int: ...

    def set_cursor_position(self, column: int, row: int) -> None: ...

    def write_text(self, text: str) -> None: ...

    def read_key_event(self) -> KeyEvent: ...


# ---------------------------------------------------------------------------
# Cursor tracking
# ---------------------------------------------------------------------------


class CursorTracker:
    """Simulates cursor movement caused by written text.

    Writing into the last column wraps to column 0 of the next row.
    ``filled_row`` is set when that wrap was the last thing that happened:
    a real terminal defers it until the next glyph, so the caller has to
    force it.
    """

    def __init__(self, column: int = 0, row: int = 0) -> None:
        self.column = column
        self.row = row
        self.filled_row = False

    def advance(self, text: str, width: int) -> None:
        for cluster, cells in iter_graphemes(text):
            if "\n" in cluster or cluster == "\r":
                if self.filled_row:
                    # A line break cancels the deferred wrap
                    self.row -= 1
                self.column = 0
                if "\n" in cluster:
                    self.row += 1
                self.filled_row = False
            elif cells:
                if self.column + cells > width:
                    # A wide glyph that does not fit moves to the next row
                    self.column = 0
                    self.row += 1
                self.column += cells
                self.filled_row = self.column >= width
                if self.filled_row:
                    self.column = 0
                    self.row += 1


# ---------------------------------------------------------------------------
# ProcessTerminal implementation
# ---------------------------------------------------------------------------


class ProcessTerminal:
    """Concrete terminal backed by ``sys.stdin``/``sys.stdout``.

    Use as a context manager: raw mode and bracketed paste are enabled on
    entry and the previous tty attributes restored on exit.
    """

    def __init__(
        self,
        stdin: IO[str] | None = None,
        stdout: IO[str] | None = None,
    ) -> None:
        self._stdin = stdin or sys.stdin
        self._stdout = stdout or sys.stdout
        self._tracker = CursorTracker()
        self._decoder = InputDecoder()
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._pending: list[KeyEvent] = []
        self._original_termios: list | None = None

    # -- properties ---------------------------------------------------------

    @property
    def current_column(self) -> int:
        return self._tracker.column

    @property
    def current_row(self) -> int:
        return self._tracker.row

    @property
    def buffer_width(self) -> int:
        try:
            return os.get_terminal_size(self._stdout.fileno()).columns
        except (ValueError, OSError):
            return 80

    # -- start / stop -------------------------------------------------------

    def start(self) -> None:
        """Enable raw mode and bracketed paste."""
        fd = self._stdin.fileno()
        self._original_termios = termios.tcgetattr(fd)
        tty.setraw(fd)
        self._raw_write(_BRACKETED_PASTE_ENABLE)
        logger.debug("terminal started (width=%d)", self.buffer_width)

    def stop(self) -> None:
        """Restore the terminal attributes saved by :meth:`start`."""
        self._raw_write(_BRACKETED_PASTE_DISABLE)
        if self._original_termios is not None:
            termios.tcsetattr(
                self._stdin.fileno(), termios.TCSADRAIN, self._original_termios
            )
            self._original_termios = None
        self._decoder.clear()
        self._pending.clear()

    def __enter__(self) -> "ProcessTerminal":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    # -- output -------------------------------------------------------------

    def write_text(self, text: str) -> None:
        """Write *text* and advance the tracked cursor accordingly."""
        if not text:
            return
        width = self.buffer_width
        self._raw_write(text.replace("\r\n", "\n").replace("\n", "\r\n"))
        self._tracker.advance(text, width)
        if self._tracker.filled_row:
            self._raw_write("\r\n")
            self._tracker.filled_row = False

    def set_cursor_position(self, column: int, row: int) -> None:
        delta = row - self._tracker.row
        if delta < 0:
            self._raw_write(_CURSOR_UP_FMT.format(-delta))
        elif delta > 0:
            self._raw_write(_CURSOR_DOWN_FMT.format(delta))
        self._raw_write(_CURSOR_COLUMN_FMT.format(column + 1))
        self._tracker.column = column
        self._tracker.row = row
        self._tracker.filled_row = False

    # -- input --------------------------------------------------------------

    def read_key_event(self) -> KeyEvent:
        """Block until a complete key press is available."""
        while not self._pending:
            for item in self._read_sequences():
                if isinstance(item, PastedText):
                    self._pending.extend(
                        KeyEvent.from_char(ch, pasted=True) for ch in item.text
                    )
                    continue
                event = key_event_from_data(item)
                if event is not None:
                    self._pending.append(event)
        return self._pending.pop(0)

    def _read_sequences(self) -> list[str | PastedText]:
        fd = self._stdin.fileno()
        if self._decoder.pending and not _wait_readable(fd, _ESCAPE_TIMEOUT):
            return self._decoder.flush()

        try:
            raw = os.read(fd, 4096)
        except OSError as exc:
            raise InputClosedError(str(exc)) from exc
        if not raw:
            raise InputClosedError("end of input")

        return self._decoder.feed(self._utf8.decode(raw))

    # -- private: raw write -------------------------------------------------

    def _raw_write(self, data: str) -> None:
        """Write directly to stdout, bypassing buffering."""
        try:
            self._stdout.write(data)
            self._stdout.flush()
        except OSError:
            logger.debug("write to terminal failed", exc_info=True)


# ---------------------------------------------------------------------------
# StreamLineReader
# ---------------------------------------------------------------------------


class StreamLineReader:
    """Reads whole lines from a text stream without any editing support.

    Used when stdin is not a tty or advanced input is switched off.
    """

    def __init__(self, stream: IO[str] | None = None) -> None:
        self._stream = stream or sys.stdin

    def read_line(self) -> str:
        line = self._stream.readline()
        if not line:
            raise InputClosedError("end of input")
        return line.rstrip("\r\n")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _wait_readable(fd: int, timeout: float) -> bool:
    readable, _, _ = select.select([fd], [], [], timeout)
    return bool(readable)
