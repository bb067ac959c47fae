"""Line buffer and cursor model kept in step with a terminal.

``LineBuffer`` owns the text of the line being edited and the logical cursor
offset into it. The terminal cell of any offset is a pure function of the
line's origin (where the first character is drawn), the text before the
offset and the terminal width, see :func:`position_for_offset`. Every
mutating operation redraws what changed and then moves the terminal cursor
back to the cell derived from the new logical cursor, so the physical cursor
never drifts.

Text is measured per grapheme cluster: wide glyphs take two columns, and a
glyph that does not fit in the rest of a row is drawn at the start of the
next one, the same way :class:`~replkit.terminal.CursorTracker` simulates
it. The cursor only ever rests on a cluster boundary. A tab is drawn as a
single blank.
"""

from __future__ import annotations

from dataclasses import dataclass

import grapheme

from replkit.terminal import Terminal
from replkit.utils import is_whitespace_char, iter_graphemes


@dataclass(frozen=True)
class ScreenPosition:
    """A terminal cell, zero based."""

    column: int
    row: int


def display_text(text: str) -> str:
    """Text as it is drawn for the line being edited."""
    return text.replace("\t", " ")


def position_for_offset(
    origin: ScreenPosition,
    offset: int,
    width: int,
    text: str | None = None,
) -> ScreenPosition:
    """Return the cell of *offset* for a line drawn from *origin*.

    Lines soft-wrap: after column ``width - 1`` drawing continues at column 0
    of the next row. Without *text* every offset is one column wide; with it,
    ``text[:offset]`` is measured cell by cell.
    """
    if width <= 0:
        raise ValueError("terminal width must be positive")
    if text is None:
        linear = origin.column + offset
        return ScreenPosition(linear % width, origin.row + linear // width)

    column, row = origin.column, origin.row
    for _cluster, cells in iter_graphemes(display_text(text[:offset])):
        if not cells:
            continue
        if column + cells > width:
            column = 0
            row += 1
        column += cells
        if column >= width:
            column = 0
            row += 1
    return ScreenPosition(column, row)


def render_text(text: str, column: int, width: int) -> str:
    """Text to write from *column* so it lands where :func:`position_for_offset` says.

    A wide glyph that does not fit in the rest of a row is preceded by blanks
    up to the margin, so no stale cell is left behind it.
    """
    parts: list[str] = []
    for cluster, cells in iter_graphemes(display_text(text)):
        if cells and column and column + cells > width:
            parts.append(" " * (width - column))
            column = 0
        parts.append(cluster)
        column += cells
        if column >= width:
            column = 0
    return "".join(parts)


def cluster_boundaries(text: str) -> list[int]:
    """Offsets of every grapheme cluster boundary in *text*, 0 and len included."""
    bounds = [0]
    for cluster in grapheme.graphemes(text):
        bounds.append(bounds[-1] + len(cluster))
    return bounds


def word_left_offset(text: str, cursor: int) -> int:
    """Offset reached by moving one word left from *cursor*.

    A whitespace run directly before the cursor is skipped first, then the
    word before it.
    """
    pos = max(0, min(cursor, len(text)))
    while pos > 0 and is_whitespace_char(text[pos - 1]):
        pos -= 1
    while pos > 0 and not is_whitespace_char(text[pos - 1]):
        pos -= 1
    return pos


def word_right_offset(text: str, cursor: int) -> int:
    """Offset reached by moving one word right from *cursor*."""
    pos = max(0, min(cursor, len(text)))
    while pos < len(text) and is_whitespace_char(text[pos]):
        pos += 1
    while pos < len(text) and not is_whitespace_char(text[pos]):
        pos += 1
    return pos


class LineBuffer:
    """Text of the current line plus its cursor, mirrored on a terminal."""

    def __init__(self, terminal: Terminal) -> None:
        self._terminal = terminal
        self._text = ""
        self._cursor = 0
        self._bounds = [0]
        self._origin = ScreenPosition(terminal.current_column, terminal.current_row)

    # -- state --------------------------------------------------------------

    @property
    def text(self) -> str:
        return self._text

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def origin(self) -> ScreenPosition:
        return self._origin

    def __len__(self) -> int:
        return len(self._text)

    @property
    def is_start_of_line(self) -> bool:
        return self._cursor == 0

    @property
    def is_end_of_line(self) -> bool:
        return self._cursor == len(self._text)

    @property
    def is_end_of_visible_row(self) -> bool:
        return self._terminal.current_column == self._terminal.buffer_width - 1

    def char_before_cursor(self) -> str | None:
        """The grapheme cluster left of the cursor."""
        index = self._bounds.index(self._cursor)
        return self._text[self._bounds[index - 1]:self._cursor] if index > 0 else None

    def char_at_cursor(self) -> str | None:
        """The grapheme cluster under the cursor."""
        index = self._bounds.index(self._cursor)
        if index + 1 >= len(self._bounds):
            return None
        return self._text[self._cursor:self._bounds[index + 1]]

    def position_of(self, offset: int) -> ScreenPosition:
        return position_for_offset(
            self._origin, offset, self._terminal.buffer_width, self._text
        )

    def expected_position(self) -> ScreenPosition:
        """Cell the terminal cursor must be on for the current logical cursor."""
        return self.position_of(self._cursor)

    # -- lifecycle ----------------------------------------------------------

    def reset(self) -> None:
        """Start an empty line at the terminal's current position.

        Nothing is written; the caller has already positioned the terminal
        where the line begins.
        """
        self._text = ""
        self._cursor = 0
        self._bounds = [0]
        self._origin = ScreenPosition(
            self._terminal.current_column, self._terminal.current_row
        )

    # -- mutations ----------------------------------------------------------

    def insert(self, text: str, at: int | None = None) -> None:
        """Insert *text* at *at* (default: the cursor) and redraw the tail."""
        if not text:
            return
        at = self._cursor if at is None else max(0, min(at, len(self._text)))

        old_end = self.position_of(len(self._text))
        first = self._cluster_start(at)
        cursor = self._cursor + len(text) if at <= self._cursor else self._cursor
        self._set_text(self._text[:at] + text + self._text[at:], cursor)
        self._redraw_from(first, old_end)

    def remove_range(self, start: int, count: int) -> int:
        """Remove up to *count* characters from *start*; return how many went.

        Both arguments are clamped to the buffer, so asking for more than is
        there removes what is available and a negative count removes nothing.
        """
        length = len(self._text)
        start = max(0, min(start, length))
        count = max(0, min(count, length - start))
        assert 0 <= count <= length - start
        if count == 0:
            return 0

        old_end = self.position_of(length)
        first = self._cluster_start(start)
        cursor = self._cursor
        if cursor > start:
            cursor = max(start, cursor - count)
        self._set_text(self._text[:start] + self._text[start + count:], cursor)
        self._redraw_from(first, old_end)
        return count

    def backspace(self, count: int = 1) -> int:
        """Remove up to *count* grapheme clusters before the cursor."""
        index = self._bounds.index(self._cursor)
        count = max(0, min(count, index))
        start = self._bounds[index - count]
        self.remove_range(start, self._cursor - start)
        return count

    def delete(self, count: int = 1) -> int:
        """Remove up to *count* grapheme clusters at and after the cursor."""
        index = self._bounds.index(self._cursor)
        count = max(0, min(count, len(self._bounds) - 1 - index))
        self.remove_range(self._cursor, self._bounds[index + count] - self._cursor)
        return count

    def clear(self) -> None:
        """Erase the whole line from the screen and the buffer."""
        self.remove_range(0, len(self._text))

    def replace(self, text: str) -> None:
        """Replace the whole line with *text*, cursor at the end."""
        self.clear()
        self.insert(text)

    # -- movement -----------------------------------------------------------

    def move_cursor(self, delta: int) -> int:
        """Move the cursor by *delta* clusters, clamped; return the move made."""
        index = self._bounds.index(self._cursor)
        target = max(0, min(index + delta, len(self._bounds) - 1))
        self._cursor = self._bounds[target]
        self._restore_cursor()
        return target - index

    def move_to(self, offset: int) -> int:
        """Move to the cluster boundary at or after *offset*; return the move."""
        before = self._cursor
        self._cursor = self._snap(max(0, min(offset, len(self._text))))
        self._restore_cursor()
        return self._cursor - before

    def move_to_start(self) -> int:
        return self.move_to(0)

    def move_to_end(self) -> int:
        return self.move_to(len(self._text))

    # -- terminal synchronisation ------------------------------------------

    def _set_text(self, text: str, cursor: int) -> None:
        self._text = text
        # Boundaries follow the drawn text: a mark after a tab joins its blank
        self._bounds = cluster_boundaries(display_text(text))
        self._cursor = self._snap(cursor)

    def _snap(self, offset: int) -> int:
        for bound in self._bounds:
            if bound >= offset:
                return bound
        return len(self._text)

    def _cluster_start(self, offset: int) -> int:
        return max(bound for bound in self._bounds if bound <= offset)

    def _redraw_from(self, start: int, old_end: ScreenPosition) -> None:
        # An edit inside a cluster changes how the whole cluster is drawn
        start = self._cluster_start(start)
        position = self.position_of(start)
        self._move_terminal_to(position)
        self._terminal.write_text(
            render_text(self._text[start:], position.column, self._terminal.buffer_width)
        )

        new_end = self.position_of(len(self._text))
        width = self._terminal.buffer_width
        stale = (old_end.row - new_end.row) * width + old_end.column - new_end.column
        if stale > 0:
            self._terminal.write_text(" " * stale)
        self._restore_cursor()

    def _restore_cursor(self) -> None:
        self._move_terminal_to(self.expected_position())

    def _move_terminal_to(self, position: ScreenPosition) -> None:
        if (
            self._terminal.current_column != position.column
            or self._terminal.current_row != position.row
        ):
            self._terminal.set_cursor_position(position.column, position.row)
