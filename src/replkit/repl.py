"""The read-eval loop: prompt, read one line, dispatch it, repeat."""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, Protocol, Sequence

from replkit.exceptions import InputClosedError
from replkit.line_editor import LineEditor
from replkit.utils import is_directive

if TYPE_CHECKING:
    from replkit.history import InputHistory

logger = logging.getLogger(__name__)


class ReplSignal(Enum):
    CONTINUE = "continue"
    STOP = "stop"


class ReplState(Enum):
    RUNNING = "running"
    STOPPED = "stopped"


class Output(Protocol):
    def write_text(self, text: str) -> None: ...


class LineReader(Protocol):
    def read_line(self) -> str: ...


class CommandDispatcher(Protocol):
    """Turns an argument vector into a command run."""

    @property
    def command_names(self) -> Sequence[str]: ...

    def dispatch(self, tokens: list[str]) -> ReplSignal: ...


class EditorLineReader:
    """Reads lines through a :class:`LineEditor` and leaves the row after each."""

    def __init__(self, editor: LineEditor) -> None:
        self.editor = editor

    def read_line(self) -> str:
        try:
            return self.editor.read_line()
        finally:
            self.editor.finish_line()


def inject_scope(tokens: list[str], scope: str) -> list[str]:
    """Insert the words of *scope* after the last directive token.

    With no directive the scope goes in front. An empty scope leaves the
    tokens unchanged.
    """
    scope_words = scope.split()
    if not scope_words:
        return list(tokens)
    last_directive = -1
    for i, token in enumerate(tokens):
        if is_directive(token):
            last_directive = i
    return tokens[: last_directive + 1] + scope_words + tokens[last_directive + 1:]


class Repl:
    """Interactive shell loop.

    Each step renders the prompt, reads a line through *reader*, splits it on
    whitespace and hands the tokens to *dispatcher*. Blank lines are read
    again without dispatching. The loop ends when a command answers
    :attr:`ReplSignal.STOP` or the input is closed.
    """

    def __init__(
        self,
        terminal: Output,
        reader: LineReader,
        dispatcher: CommandDispatcher,
        *,
        executable_name: str = "replkit",
        prompt: str = "> ",
        history: InputHistory | None = None,
    ) -> None:
        self.terminal = terminal
        self.reader = reader
        self.dispatcher = dispatcher
        self.executable_name = executable_name
        self.prompt = prompt
        self.history = history
        self.scope = ""
        self.state = ReplState.STOPPED

    def render_prompt(self) -> None:
        text = self.executable_name
        if self.scope.strip():
            text += " " + self.scope
        self.terminal.write_text(text + self.prompt)

    def read_arguments(self) -> list[str]:
        """Prompt until a non-blank line is read; return its tokens."""
        while True:
            self.render_prompt()
            line = self.reader.read_line()
            if line.strip():
                return inject_scope(line.split(), self.scope)

    def step(self) -> ReplState:
        """Run one prompt/read/dispatch cycle."""
        try:
            arguments = self.read_arguments()
        except KeyboardInterrupt:
            logger.debug("line abandoned by interrupt")
            return self.state
        except InputClosedError:
            logger.info("input closed, leaving the shell")
            self.state = ReplState.STOPPED
            return self.state

        logger.debug("dispatching %r", arguments)
        try:
            signal = self.dispatcher.dispatch(arguments)
        except Exception as exc:
            # The traceback stays at debug level: the tty may be in raw mode
            logger.debug("command %r failed", arguments, exc_info=True)
            self.terminal.write_text(f"Error: {exc}\n")
            return self.state

        if signal is ReplSignal.STOP:
            self.state = ReplState.STOPPED
        return self.state

    def run(self) -> None:
        self.state = ReplState.RUNNING
        try:
            while self.state is ReplState.RUNNING:
                self.step()
        finally:
            self.state = ReplState.STOPPED
            if self.history is not None:
                self.history.save()

    def stop(self) -> None:
        self.state = ReplState.STOPPED
