"""Key bindings and the key dispatcher.

Bindings map a normalized chord (``"ctrl+left"``) to an :class:`EditorAction`.
The dispatcher performs buffer-level actions itself and hands editor-level
actions (history, completion, submit...) back to the line editor.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Iterator, Mapping

from replkit.exceptions import UnknownActionError
from replkit.keys import KeyEvent, KeyId, control_echo, normalize_key_id
from replkit.line_buffer import LineBuffer, word_left_offset, word_right_offset

logger = logging.getLogger(__name__)


class EditorAction(str, Enum):
    # Cursor movement
    CURSOR_LEFT = "cursorLeft"
    CURSOR_RIGHT = "cursorRight"
    CURSOR_WORD_LEFT = "cursorWordLeft"
    CURSOR_WORD_RIGHT = "cursorWordRight"
    CURSOR_LINE_START = "cursorLineStart"
    CURSOR_LINE_END = "cursorLineEnd"
    # Deletion
    DELETE_CHAR_BACKWARD = "deleteCharBackward"
    DELETE_CHAR_FORWARD = "deleteCharForward"
    DELETE_WORD_BACKWARD = "deleteWordBackward"
    DELETE_WORD_FORWARD = "deleteWordForward"
    DELETE_TO_LINE_START = "deleteToLineStart"
    DELETE_TO_LINE_END = "deleteToLineEnd"
    CLEAR_LINE = "clearLine"
    # History
    HISTORY_PREVIOUS = "historyPrevious"
    HISTORY_NEXT = "historyNext"
    # Completion
    COMPLETE_NEXT = "completeNext"
    COMPLETE_PREVIOUS = "completePrevious"
    # Line control
    SUBMIT = "submit"
    INTERRUPT = "interrupt"
    END_OF_INPUT = "endOfInput"
    NOOP = "noop"
    # Reported for unbound chords, never bound
    INSERT_TEXT = "insertText"
    CONTROL_ECHO = "controlEcho"

    @classmethod
    def from_name(cls, name: str) -> "EditorAction":
        if isinstance(name, EditorAction):
            return name
        try:
            return cls(name)
        except ValueError:
            raise UnknownActionError(name) from None


BUFFER_ACTIONS: frozenset[EditorAction] = frozenset({
    EditorAction.CURSOR_LEFT,
    EditorAction.CURSOR_RIGHT,
    EditorAction.CURSOR_WORD_LEFT,
    EditorAction.CURSOR_WORD_RIGHT,
    EditorAction.CURSOR_LINE_START,
    EditorAction.CURSOR_LINE_END,
    EditorAction.DELETE_CHAR_BACKWARD,
    EditorAction.DELETE_CHAR_FORWARD,
    EditorAction.DELETE_WORD_BACKWARD,
    EditorAction.DELETE_WORD_FORWARD,
    EditorAction.DELETE_TO_LINE_START,
    EditorAction.DELETE_TO_LINE_END,
    EditorAction.CLEAR_LINE,
    EditorAction.NOOP,
})

DEFAULT_KEYBINDINGS: dict[EditorAction, list[KeyId]] = {
    # Cursor movement
    EditorAction.CURSOR_LEFT: ["left"],
    EditorAction.CURSOR_RIGHT: ["right"],
    EditorAction.CURSOR_WORD_LEFT: ["ctrl+left", "alt+left", "alt+b"],
    EditorAction.CURSOR_WORD_RIGHT: ["ctrl+right", "alt+right", "alt+f"],
    EditorAction.CURSOR_LINE_START: ["home", "ctrl+a"],
    EditorAction.CURSOR_LINE_END: ["end", "ctrl+e"],
    # Deletion
    EditorAction.DELETE_CHAR_BACKWARD: ["backspace"],
    EditorAction.DELETE_CHAR_FORWARD: ["delete"],
    EditorAction.DELETE_WORD_BACKWARD: ["ctrl+backspace", "ctrl+w", "alt+backspace"],
    EditorAction.DELETE_WORD_FORWARD: ["ctrl+delete", "alt+d"],
    EditorAction.DELETE_TO_LINE_START: ["ctrl+u"],
    EditorAction.DELETE_TO_LINE_END: ["ctrl+k"],
    EditorAction.CLEAR_LINE: ["escape"],
    # History
    EditorAction.HISTORY_PREVIOUS: ["up"],
    EditorAction.HISTORY_NEXT: ["down"],
    # Completion
    EditorAction.COMPLETE_NEXT: ["tab"],
    EditorAction.COMPLETE_PREVIOUS: ["shift+tab"],
    # Line control
    EditorAction.SUBMIT: ["enter"],
    EditorAction.INTERRUPT: ["ctrl+c"],
    EditorAction.END_OF_INPUT: ["ctrl+d"],
    EditorAction.NOOP: ["insert"],
}

KeyBindingOverrides = Mapping[KeyId, str]


class KeyBindingTable:
    """Mapping from chord to action, seeded with :data:`DEFAULT_KEYBINDINGS`.

    Overrides are merged after the defaults, so an override for a chord that
    already has a default binding replaces it.
    """

    def __init__(self, overrides: KeyBindingOverrides | None = None) -> None:
        self._bindings: dict[KeyId, EditorAction] = {}
        for action, chords in DEFAULT_KEYBINDINGS.items():
            for chord in chords:
                self.bind(chord, action)
        for chord, action in (overrides or {}).items():
            self.bind(chord, action)

    def bind(self, chord: KeyId, action: EditorAction | str) -> None:
        resolved = EditorAction.from_name(action)
        if resolved in (EditorAction.INSERT_TEXT, EditorAction.CONTROL_ECHO):
            raise UnknownActionError(resolved.value)
        self._bindings[normalize_key_id(chord)] = resolved

    def unbind(self, chord: KeyId) -> EditorAction | None:
        return self._bindings.pop(normalize_key_id(chord), None)

    def lookup(self, event: KeyEvent) -> EditorAction | None:
        return self._bindings.get(event.chord)

    def chords_for(self, action: EditorAction) -> list[KeyId]:
        return [chord for chord, bound in self._bindings.items() if bound is action]

    def as_dict(self) -> dict[KeyId, EditorAction]:
        return dict(self._bindings)

    def __contains__(self, chord: object) -> bool:
        return isinstance(chord, str) and normalize_key_id(chord) in self._bindings

    def __iter__(self) -> Iterator[KeyId]:
        return iter(self._bindings)

    def __len__(self) -> int:
        return len(self._bindings)


class KeyDispatcher:
    """Routes key events to buffer operations.

    ``dispatch`` returns the action the event resolved to. Actions in
    :data:`BUFFER_ACTIONS` have already been applied when it returns; the
    rest are for the caller to carry out. Pasted characters bypass the
    binding table and are always inserted.
    """

    def __init__(self, buffer: LineBuffer, table: KeyBindingTable | None = None) -> None:
        self.buffer = buffer
        self.table = table if table is not None else KeyBindingTable()
        self._handlers = {
            EditorAction.CURSOR_LEFT: lambda: self.buffer.move_cursor(-1),
            EditorAction.CURSOR_RIGHT: lambda: self.buffer.move_cursor(1),
            EditorAction.CURSOR_WORD_LEFT: self.word_left,
            EditorAction.CURSOR_WORD_RIGHT: self.word_right,
            EditorAction.CURSOR_LINE_START: self.buffer.move_to_start,
            EditorAction.CURSOR_LINE_END: self.buffer.move_to_end,
            EditorAction.DELETE_CHAR_BACKWARD: self.buffer.backspace,
            EditorAction.DELETE_CHAR_FORWARD: self.buffer.delete,
            EditorAction.DELETE_WORD_BACKWARD: self.delete_word_back,
            EditorAction.DELETE_WORD_FORWARD: self.delete_word_forward,
            EditorAction.DELETE_TO_LINE_START: lambda: self.buffer.remove_range(0, self.buffer.cursor),
            EditorAction.DELETE_TO_LINE_END: lambda: self.buffer.remove_range(self.buffer.cursor, len(self.buffer)),
            EditorAction.CLEAR_LINE: self.buffer.clear,
            EditorAction.NOOP: lambda: None,
        }

    def dispatch(self, event: KeyEvent) -> EditorAction:
        if event.pasted:
            self.buffer.insert(event.char)
            return EditorAction.INSERT_TEXT

        action = self.table.lookup(event)
        if action is not None:
            if action in BUFFER_ACTIONS:
                self.perform(action)
            return action

        if event.ctrl and not event.alt:
            self.buffer.insert(control_echo(event))
            return EditorAction.CONTROL_ECHO

        if event.char and event.char.isprintable():
            self.buffer.insert(event.char)
        else:
            logger.debug("ignoring key without text: %s", event.chord)
        return EditorAction.INSERT_TEXT

    def perform(self, action: EditorAction) -> None:
        handler = self._handlers.get(action)
        if handler is None:
            raise ValueError(f"{action.value} is not a buffer action")
        handler()

    # -- word-boundary actions ---------------------------------------------

    def word_left(self) -> None:
        self.buffer.move_to(word_left_offset(self.buffer.text, self.buffer.cursor))

    def word_right(self) -> None:
        self.buffer.move_to(word_right_offset(self.buffer.text, self.buffer.cursor))

    def delete_word_back(self) -> None:
        target = word_left_offset(self.buffer.text, self.buffer.cursor)
        self.buffer.remove_range(target, self.buffer.cursor - target)

    def delete_word_forward(self) -> None:
        target = word_right_offset(self.buffer.text, self.buffer.cursor)
        self.buffer.remove_range(self.buffer.cursor, target - self.buffer.cursor)
