"""Tests for replkit.terminal: cursor tracking and the process terminal."""

from __future__ import annotations

import io
import os

import pytest

from replkit.exceptions import InputClosedError
from replkit.terminal import CursorTracker, ProcessTerminal, StreamLineReader


# ---------------------------------------------------------------------------
# CursorTracker
# ---------------------------------------------------------------------------


class TestCursorTracker:
    def test_plain_text(self):
        tracker = CursorTracker()
        tracker.advance("abc", 10)
        assert (tracker.column, tracker.row) == (3, 0)

    def test_filling_the_row_wraps(self):
        tracker = CursorTracker()
        tracker.advance("0123456789", 10)
        assert (tracker.column, tracker.row) == (0, 1)
        assert tracker.filled_row

    def test_line_break_after_full_row_does_not_skip_a_row(self):
        tracker = CursorTracker()
        tracker.advance("0123456789\n", 10)
        assert (tracker.column, tracker.row) == (0, 1)
        assert not tracker.filled_row

    def test_newline_and_carriage_return(self):
        tracker = CursorTracker(column=4)
        tracker.advance("a\nbc\r", 10)
        assert (tracker.column, tracker.row) == (0, 1)

    def test_escape_sequences_have_no_width(self):
        tracker = CursorTracker()
        tracker.advance("\x1b[31mab\x1b[0m", 10)
        assert (tracker.column, tracker.row) == (2, 0)

    def test_wide_glyph_moves_to_next_row(self):
        tracker = CursorTracker(column=9)
        tracker.advance("中", 10)
        assert (tracker.column, tracker.row) == (2, 1)

    def test_combining_mark_has_no_width(self):
        tracker = CursorTracker()
        tracker.advance("é", 10)
        assert (tracker.column, tracker.row) == (1, 0)


# ---------------------------------------------------------------------------
# ProcessTerminal output
# ---------------------------------------------------------------------------


def make_output_terminal() -> tuple[ProcessTerminal, io.StringIO]:
    stdout = io.StringIO()
    return ProcessTerminal(stdin=io.StringIO(), stdout=stdout), stdout


class TestProcessTerminalOutput:
    def test_width_falls_back_without_a_tty(self):
        terminal, _ = make_output_terminal()
        assert terminal.buffer_width == 80

    def test_newlines_become_crlf(self):
        terminal, stdout = make_output_terminal()
        terminal.write_text("a\nb")
        assert stdout.getvalue() == "a\r\nb"
        assert (terminal.current_column, terminal.current_row) == (1, 1)

    def test_full_row_forces_the_wrap(self):
        terminal, stdout = make_output_terminal()
        terminal.write_text("x" * 80)
        assert stdout.getvalue().endswith("\r\n")
        assert (terminal.current_column, terminal.current_row) == (0, 1)
        terminal.write_text("\n")
        assert terminal.current_row == 2

    def test_cursor_moves_are_relative(self):
        terminal, stdout = make_output_terminal()
        terminal.write_text("abc\ndef")
        stdout.truncate(0)
        stdout.seek(0)
        terminal.set_cursor_position(1, 0)
        assert stdout.getvalue() == "\x1b[1A\x1b[2G"
        stdout.truncate(0)
        stdout.seek(0)
        terminal.set_cursor_position(5, 2)
        assert stdout.getvalue() == "\x1b[2B\x1b[6G"
        assert (terminal.current_column, terminal.current_row) == (5, 2)

    def test_same_row_move_uses_column_only(self):
        terminal, stdout = make_output_terminal()
        terminal.write_text("abc")
        stdout.truncate(0)
        stdout.seek(0)
        terminal.set_cursor_position(0, 0)
        assert stdout.getvalue() == "\x1b[1G"


# ---------------------------------------------------------------------------
# ProcessTerminal input
# ---------------------------------------------------------------------------


@pytest.fixture
def pipe_terminal():
    read_fd, write_fd = os.pipe()
    stdin = os.fdopen(read_fd, "r")
    terminal = ProcessTerminal(stdin=stdin, stdout=io.StringIO())
    yield terminal, write_fd
    stdin.close()
    try:
        os.close(write_fd)
    except OSError:
        pass


class TestProcessTerminalInput:
    def test_reads_characters_and_sequences(self, pipe_terminal):
        terminal, write_fd = pipe_terminal
        os.write(write_fd, b"ab\x1b[1;5D")
        assert terminal.read_key_event().char == "a"
        assert terminal.read_key_event().char == "b"
        assert terminal.read_key_event().chord == "ctrl+left"

    def test_lone_escape_after_timeout(self, pipe_terminal):
        terminal, write_fd = pipe_terminal
        os.write(write_fd, b"\x1b")
        assert terminal.read_key_event().chord == "escape"

    def test_utf8_split_across_reads(self, pipe_terminal):
        terminal, write_fd = pipe_terminal
        data = "é".encode("utf-8")
        os.write(write_fd, data[:1])
        os.write(write_fd, data[1:])
        assert terminal.read_key_event().char == "é"

    def test_unknown_sequences_are_skipped(self, pipe_terminal):
        terminal, write_fd = pipe_terminal
        os.write(write_fd, b"\x1b[201~x")
        assert terminal.read_key_event().char == "x"

    def test_bracketed_paste_is_marked_pasted(self, pipe_terminal):
        terminal, write_fd = pipe_terminal
        os.write(write_fd, b"\x1b[200~a\tb\x1b[201~")
        events = [terminal.read_key_event() for _ in range(3)]
        assert [event.char for event in events] == ["a", "\t", "b"]
        assert all(event.pasted for event in events)

    def test_closed_input(self, pipe_terminal):
        terminal, write_fd = pipe_terminal
        os.close(write_fd)
        with pytest.raises(InputClosedError):
            terminal.read_key_event()


class TestStreamLineReader:
    def test_reads_lines(self):
        reader = StreamLineReader(io.StringIO("ls -l\r\npwd\n"))
        assert reader.read_line() == "ls -l"
        assert reader.read_line() == "pwd"

    def test_end_of_stream(self):
        reader = StreamLineReader(io.StringIO(""))
        with pytest.raises(InputClosedError):
            reader.read_line()
