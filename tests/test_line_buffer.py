"""Tests for replkit.line_buffer: text buffer and cursor model."""

from __future__ import annotations

import random

import pytest

from replkit.line_buffer import (
    LineBuffer,
    ScreenPosition,
    cluster_boundaries,
    position_for_offset,
    word_left_offset,
    word_right_offset,
)

from .virtual_terminal import VirtualTerminal


def make_buffer(columns: int = 80, column: int = 0, row: int = 0) -> tuple[LineBuffer, VirtualTerminal]:
    terminal = VirtualTerminal(columns=columns, column=column, row=row)
    buffer = LineBuffer(terminal)
    buffer.reset()
    return buffer, terminal


def assert_in_sync(buffer: LineBuffer, terminal: VirtualTerminal) -> None:
    expected = buffer.expected_position()
    assert (terminal.current_column, terminal.current_row) == (expected.column, expected.row)


# ---------------------------------------------------------------------------
# Position arithmetic
# ---------------------------------------------------------------------------


class TestPositionForOffset:
    def test_same_row(self):
        assert position_for_offset(ScreenPosition(2, 0), 3, 80) == ScreenPosition(5, 0)

    def test_wraps_to_next_row(self):
        assert position_for_offset(ScreenPosition(0, 0), 10, 10) == ScreenPosition(0, 1)
        assert position_for_offset(ScreenPosition(7, 3), 5, 10) == ScreenPosition(2, 4)

    def test_multiple_rows(self):
        assert position_for_offset(ScreenPosition(4, 1), 25, 10) == ScreenPosition(9, 3)

    def test_invalid_width(self):
        with pytest.raises(ValueError):
            position_for_offset(ScreenPosition(0, 0), 1, 0)

    def test_wide_glyph_takes_two_columns(self):
        assert position_for_offset(ScreenPosition(0, 0), 1, 80, "中a") == ScreenPosition(2, 0)
        assert position_for_offset(ScreenPosition(0, 0), 2, 80, "中a") == ScreenPosition(3, 0)

    def test_wide_glyph_that_does_not_fit_moves_to_next_row(self):
        assert position_for_offset(ScreenPosition(0, 0), 5, 5, "abcd中") == ScreenPosition(2, 1)

    def test_combining_mark_has_no_width(self):
        assert position_for_offset(ScreenPosition(0, 0), 2, 80, "e\u0301x") == ScreenPosition(1, 0)

    def test_tab_is_one_column(self):
        assert position_for_offset(ScreenPosition(0, 0), 2, 80, "a\tb") == ScreenPosition(2, 0)


class TestWordOffsets:
    def test_word_left_skips_whitespace_then_word(self):
        text = "foo  bar"
        first = word_left_offset(text, len(text))
        assert first == 5
        assert word_left_offset(text, first) == 0

    def test_word_left_at_start(self):
        assert word_left_offset("foo", 0) == 0

    def test_word_right(self):
        text = "foo  bar baz"
        assert word_right_offset(text, 0) == 3
        assert word_right_offset(text, 3) == 8
        assert word_right_offset(text, len(text)) == len(text)

    def test_tabs_count_as_whitespace(self):
        assert word_left_offset("a\tb", 3) == 2
        assert word_left_offset("a\tb", 2) == 0


# ---------------------------------------------------------------------------
# LineBuffer
# ---------------------------------------------------------------------------


class TestLineBufferInsert:
    def test_insert_at_end(self):
        buffer, terminal = make_buffer()
        buffer.insert("hello")
        assert buffer.text == "hello"
        assert buffer.cursor == 5
        assert terminal.screen_line(0) == "hello"
        assert_in_sync(buffer, terminal)

    def test_insert_in_middle_redraws_tail(self):
        buffer, terminal = make_buffer()
        buffer.insert("hllo world")
        buffer.move_to(1)
        buffer.insert("e")
        assert buffer.text == "hello world"
        assert buffer.cursor == 2
        assert terminal.screen_line(0) == "hello world"
        assert_in_sync(buffer, terminal)

    def test_insert_at_explicit_offset_after_cursor(self):
        buffer, terminal = make_buffer()
        buffer.insert("ac")
        buffer.move_to(1)
        buffer.insert("!", at=2)
        assert buffer.text == "ac!"
        assert buffer.cursor == 1
        assert_in_sync(buffer, terminal)

    def test_insert_after_prompt(self):
        buffer, terminal = make_buffer(column=7)
        buffer.insert("ls")
        assert buffer.origin == ScreenPosition(7, 0)
        assert (terminal.current_column, terminal.current_row) == (9, 0)

    def test_empty_insert_writes_nothing(self):
        buffer, terminal = make_buffer()
        buffer.insert("")
        assert terminal.output == ""


class TestLineBufferWrap:
    def test_text_wraps_at_width(self):
        buffer, terminal = make_buffer(columns=10, column=6)
        buffer.insert("abcdefgh")
        assert terminal.screen_line(0) == "      abcd"
        assert terminal.screen_line(1) == "efgh"
        assert buffer.expected_position() == ScreenPosition(4, 1)
        assert_in_sync(buffer, terminal)

    def test_exact_fill_puts_cursor_on_next_row(self):
        buffer, terminal = make_buffer(columns=5)
        buffer.insert("abcde")
        assert buffer.expected_position() == ScreenPosition(0, 1)
        assert_in_sync(buffer, terminal)

    def test_moving_across_the_wrap(self):
        buffer, terminal = make_buffer(columns=5)
        buffer.insert("abcdefg")
        buffer.move_to(3)
        assert (terminal.current_column, terminal.current_row) == (3, 0)
        buffer.move_to(6)
        assert (terminal.current_column, terminal.current_row) == (1, 1)

    def test_backspace_across_the_wrap(self):
        buffer, terminal = make_buffer(columns=5)
        buffer.insert("abcdef")
        buffer.backspace(2)
        assert buffer.text == "abcd"
        assert terminal.screen_line(0) == "abcd"
        assert terminal.screen_line(1) == ""
        assert_in_sync(buffer, terminal)

    def test_end_of_visible_row(self):
        buffer, terminal = make_buffer(columns=5)
        buffer.insert("abcd")
        assert buffer.is_end_of_visible_row
        buffer.insert("e")
        assert not buffer.is_end_of_visible_row


class TestLineBufferRemove:
    def test_backspace(self):
        buffer, terminal = make_buffer()
        buffer.insert("abc")
        assert buffer.backspace() == 1
        assert buffer.text == "ab"
        assert terminal.screen_line(0) == "ab"
        assert_in_sync(buffer, terminal)

    def test_backspace_in_middle(self):
        buffer, terminal = make_buffer()
        buffer.insert("abcd")
        buffer.move_to(2)
        buffer.backspace()
        assert buffer.text == "acd"
        assert buffer.cursor == 1
        assert terminal.screen_line(0) == "acd"
        assert_in_sync(buffer, terminal)

    def test_delete_forward(self):
        buffer, terminal = make_buffer()
        buffer.insert("abcd")
        buffer.move_to(1)
        assert buffer.delete(2) == 2
        assert buffer.text == "ad"
        assert buffer.cursor == 1
        assert terminal.screen_line(0) == "ad"

    def test_backspace_more_than_available_is_clamped(self):
        buffer, terminal = make_buffer()
        buffer.insert("abc")
        buffer.move_to(2)
        assert buffer.backspace(10) == 2
        assert buffer.text == "c"
        assert buffer.cursor == 0
        assert_in_sync(buffer, terminal)

    def test_delete_more_than_available_is_clamped(self):
        buffer, _ = make_buffer()
        buffer.insert("abc")
        buffer.move_to(1)
        assert buffer.delete(10) == 2
        assert buffer.text == "a"

    def test_remove_range_out_of_bounds(self):
        buffer, terminal = make_buffer()
        buffer.insert("abc")
        terminal.clear_output()
        assert buffer.remove_range(5, 2) == 0
        assert buffer.remove_range(1, -3) == 0
        assert buffer.remove_range(-4, 2) == 2
        assert buffer.text == "c"

    def test_noop_removal_writes_nothing(self):
        buffer, terminal = make_buffer()
        buffer.insert("abc")
        buffer.move_to_start()
        terminal.clear_output()
        assert buffer.backspace() == 0
        assert terminal.output == ""

    def test_clear(self):
        buffer, terminal = make_buffer(column=2)
        buffer.insert("hello")
        buffer.clear()
        assert buffer.text == ""
        assert buffer.cursor == 0
        assert terminal.screen_line(0) == ""
        assert (terminal.current_column, terminal.current_row) == (2, 0)

    def test_replace(self):
        buffer, terminal = make_buffer()
        buffer.insert("a long line")
        buffer.replace("short")
        assert buffer.text == "short"
        assert buffer.cursor == 5
        assert terminal.screen_line(0) == "short"
        assert_in_sync(buffer, terminal)


class TestLineBufferMovement:
    def test_move_is_clamped(self):
        buffer, terminal = make_buffer()
        buffer.insert("abc")
        assert buffer.move_cursor(5) == 0
        assert buffer.move_cursor(-10) == -3
        assert buffer.cursor == 0
        assert buffer.is_start_of_line
        assert_in_sync(buffer, terminal)

    def test_move_to_start_and_end(self):
        buffer, terminal = make_buffer(column=4)
        buffer.insert("abc")
        buffer.move_to_start()
        assert (terminal.current_column, terminal.current_row) == (4, 0)
        buffer.move_to_end()
        assert buffer.is_end_of_line
        assert (terminal.current_column, terminal.current_row) == (7, 0)

    def test_no_terminal_move_when_already_there(self):
        buffer, terminal = make_buffer()
        buffer.insert("abc")
        terminal.clear_output()
        buffer.move_to_end()
        assert terminal.cursor_moves == []

    def test_char_queries(self):
        buffer, _ = make_buffer()
        buffer.insert("ab")
        buffer.move_to(1)
        assert buffer.char_before_cursor() == "a"
        assert buffer.char_at_cursor() == "b"
        buffer.move_to_end()
        assert buffer.char_at_cursor() is None


class TestLineBufferGraphemes:
    def test_wide_glyph_then_ascii(self):
        buffer, terminal = make_buffer()
        buffer.insert("中")
        buffer.insert("a")
        assert terminal.screen_line(0) == "中a"
        assert (terminal.current_column, terminal.current_row) == (3, 0)
        assert_in_sync(buffer, terminal)

    def test_backspace_removes_a_wide_glyph(self):
        buffer, terminal = make_buffer()
        buffer.insert("a中")
        assert buffer.backspace() == 1
        assert buffer.text == "a"
        assert terminal.screen_line(0) == "a"
        assert (terminal.current_column, terminal.current_row) == (1, 0)

    def test_wide_glyph_wrap_and_backspace(self):
        buffer, terminal = make_buffer(columns=5)
        buffer.insert("abcd中")
        assert terminal.screen_line(0) == "abcd"
        assert terminal.screen_line(1) == "中"
        assert buffer.expected_position() == ScreenPosition(2, 1)
        assert_in_sync(buffer, terminal)
        buffer.backspace()
        assert buffer.text == "abcd"
        assert terminal.screen_line(1) == ""
        assert (terminal.current_column, terminal.current_row) == (4, 0)

    def test_combining_mark_joins_previous_cluster(self):
        buffer, terminal = make_buffer()
        buffer.insert("e")
        buffer.insert("\u0301")
        assert buffer.cursor == 2
        assert terminal.screen_line(0) == "e\u0301"
        assert (terminal.current_column, terminal.current_row) == (1, 0)
        assert buffer.move_cursor(-1) == -1
        assert buffer.cursor == 0
        assert buffer.char_at_cursor() == "e\u0301"

    def test_delete_removes_whole_cluster(self):
        buffer, terminal = make_buffer()
        buffer.insert("e\u0301x")
        buffer.move_to_start()
        assert buffer.delete() == 1
        assert buffer.text == "x"
        assert terminal.screen_line(0) == "x"
        assert_in_sync(buffer, terminal)

    def test_move_to_inside_a_cluster_snaps_forward(self):
        buffer, _ = make_buffer()
        buffer.insert("e\u0301x")
        assert buffer.move_to(1) == -1
        assert buffer.cursor == 2

    def test_tab_is_drawn_as_a_blank(self):
        buffer, terminal = make_buffer()
        buffer.insert("a\tb")
        assert buffer.text == "a\tb"
        assert terminal.screen_line(0) == "a b"
        assert (terminal.current_column, terminal.current_row) == (3, 0)


EDIT_ALPHABET = ["a", "b", "x", " ", "\t", "中", "文", "e\u0301", "\u0301"]


class TestLineBufferRandomEdits:
    @pytest.mark.parametrize("seed", range(25))
    def test_random_edits_stay_in_sync(self, seed):
        rng = random.Random(seed)
        buffer, terminal = make_buffer(columns=7, column=3)
        for _ in range(60):
            operation = rng.choice(["insert", "remove_range", "move_cursor", "move_to"])
            if operation == "insert":
                text = "".join(rng.choice(EDIT_ALPHABET) for _ in range(rng.randint(1, 3)))
                at = rng.choice([None, rng.randint(0, len(buffer))])
                buffer.insert(text, at)
            elif operation == "remove_range":
                buffer.remove_range(rng.randint(-2, len(buffer) + 1), rng.randint(-1, 4))
            elif operation == "move_cursor":
                buffer.move_cursor(rng.randint(-4, 4))
            else:
                buffer.move_to(rng.randint(-1, len(buffer) + 1))

            assert 0 <= buffer.cursor <= len(buffer.text)
            assert buffer.cursor in cluster_boundaries(buffer.text.replace("\t", " "))
            assert_in_sync(buffer, terminal)

            fresh, fresh_terminal = make_buffer(columns=7, column=3)
            fresh.insert(buffer.text)
            assert terminal.screen_text().rstrip("\n") == fresh_terminal.screen_text().rstrip("\n")


class TestLineBufferReset:
    def test_reset_records_new_origin(self):
        buffer, terminal = make_buffer()
        buffer.insert("abc")
        terminal.write_text("\n> ")
        buffer.reset()
        assert buffer.text == ""
        assert buffer.origin == ScreenPosition(2, 1)

    def test_reset_writes_nothing(self):
        buffer, terminal = make_buffer()
        terminal.clear_output()
        buffer.reset()
        assert terminal.output == ""
