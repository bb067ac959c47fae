"""Line editor: one line-read session at a time over a terminal.

The editor is either ``IDLE`` (between lines) or ``READING``. A read resets
the buffer at the terminal's current position, feeds key events to the
dispatcher until the submit key, and returns the text. Components such as
completion and history plug in through action handlers and listeners rather
than by reaching into the buffer on their own.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Iterable

from replkit.exceptions import EditorBusyError, InputClosedError
from replkit.keybindings import (
    EditorAction,
    KeyBindingOverrides,
    KeyBindingTable,
    KeyDispatcher,
)
from replkit.keys import KeyEvent
from replkit.line_buffer import LineBuffer
from replkit.terminal import Terminal

logger = logging.getLogger(__name__)

ActionHandler = Callable[[], object]
ModifiedListener = Callable[[EditorAction], None]
CommitListener = Callable[[str], None]
SessionListener = Callable[[], None]


class EditorState(Enum):
    IDLE = "idle"
    READING = "reading"


class LineEditor:
    """Reads one line at a time, with editing keys, from a :class:`Terminal`."""

    def __init__(
        self,
        terminal: Terminal,
        *,
        keybindings: KeyBindingTable | KeyBindingOverrides | None = None,
    ) -> None:
        self.terminal = terminal
        self.buffer = LineBuffer(terminal)
        table = (
            keybindings
            if isinstance(keybindings, KeyBindingTable)
            else KeyBindingTable(keybindings)
        )
        self.dispatcher = KeyDispatcher(self.buffer, table)

        self._state = EditorState.IDLE
        self._handlers: dict[EditorAction, ActionHandler] = {}
        self._modified_listeners: list[ModifiedListener] = []
        self._commit_listeners: list[CommitListener] = []
        self._session_listeners: list[SessionListener] = []

    # -- state --------------------------------------------------------------

    @property
    def state(self) -> EditorState:
        return self._state

    @property
    def is_reading(self) -> bool:
        return self._state is EditorState.READING

    @property
    def text(self) -> str:
        return self.buffer.text

    @property
    def is_end_of_line(self) -> bool:
        return self.buffer.is_end_of_line

    # -- extension points ---------------------------------------------------

    def set_action_handler(self, action: EditorAction, handler: ActionHandler) -> None:
        """Run *handler* when a key bound to *action* is pressed."""
        self._handlers[action] = handler

    def add_modified_listener(self, listener: ModifiedListener) -> None:
        """Call *listener* with the action after any action that changed the text."""
        self._modified_listeners.append(listener)

    def add_commit_listener(self, listener: CommitListener) -> None:
        """Call *listener* with the text of every committed line."""
        self._commit_listeners.append(listener)

    def add_session_listener(self, listener: SessionListener) -> None:
        """Call *listener* whenever a new read session starts."""
        self._session_listeners.append(listener)

    # -- sessions -----------------------------------------------------------

    def begin(self) -> None:
        """Enter the reading state with an empty line at the cursor."""
        if self._state is EditorState.READING:
            raise EditorBusyError("a line is already being read")
        self._state = EditorState.READING
        self.buffer.reset()
        for listener in self._session_listeners:
            listener()

    def read_line(self) -> str:
        """Read key events from the terminal until the line is submitted."""
        self.begin()
        try:
            while True:
                event = self.terminal.read_key_event()
                if self.feed(event):
                    return self.buffer.text
        finally:
            self._state = EditorState.IDLE

    def read_keys(self, events: Iterable[KeyEvent]) -> str:
        """Run a session over *events*; the line is committed when they run out."""
        self.begin()
        try:
            for event in events:
                if self.feed(event):
                    return self.buffer.text
            self._commit()
            return self.buffer.text
        finally:
            self._state = EditorState.IDLE

    def feed(self, event: KeyEvent) -> bool:
        """Process one key event; return True when it committed the line."""
        if self._state is not EditorState.READING:
            raise RuntimeError("feed() called outside of a read session")

        before = self.buffer.text
        action = self.dispatcher.dispatch(event)
        logger.debug("key %s -> %s", event.chord, action.value)

        if action is EditorAction.SUBMIT:
            self._commit()
            return True

        if action is EditorAction.INTERRUPT:
            self._state = EditorState.IDLE
            raise KeyboardInterrupt

        if action is EditorAction.END_OF_INPUT:
            if not self.buffer.text:
                self._state = EditorState.IDLE
                raise InputClosedError("end of input requested")
            self.buffer.delete()
        else:
            handler = self._handlers.get(action)
            if handler is not None:
                handler()

        if self.buffer.text != before:
            for listener in self._modified_listeners:
                listener(action)
        return False

    def finish_line(self) -> None:
        """Leave the committed line: cursor to its end, then a new row."""
        self.buffer.move_to_end()
        self.terminal.write_text("\n")

    def _commit(self) -> None:
        self._state = EditorState.IDLE
        text = self.buffer.text
        for listener in self._commit_listeners:
            listener(text)
