"""Wiring of a complete shell from a :class:`ReplConfig`."""

from __future__ import annotations

import logging
import os

from replkit.commands import CommandContext, CommandRegistry, create_default_registry
from replkit.completion import CommandCompletionSource, CompletionEngine
from replkit.config import ReplConfig, default_history_path
from replkit.history import HistoryNavigator, InputHistory
from replkit.line_editor import LineEditor
from replkit.repl import EditorLineReader, LineReader, Repl
from replkit.terminal import StreamLineReader, Terminal

logger = logging.getLogger(__name__)


class RecordingLineReader:
    """Stores every line read from *reader* in *history*.

    The line editor records committed lines itself; plain readers need this.
    """

    def __init__(self, reader: LineReader, history: InputHistory) -> None:
        self.reader = reader
        self.history = history

    def read_line(self) -> str:
        line = self.reader.read_line()
        self.history.try_add_entry(line)
        return line


def create_history(config: ReplConfig) -> InputHistory:
    path = config.history_file if config.history_file is not None else default_history_path()
    history = InputHistory(
        enabled=config.history_enabled,
        max_entries=config.history_size,
        allow_duplicates=config.history_allow_duplicates,
        path=path if config.history_enabled else None,
    )
    history.load()
    return history


def build_repl(
    config: ReplConfig,
    terminal: Terminal,
    *,
    registry: CommandRegistry | None = None,
    history: InputHistory | None = None,
    line_reader: LineReader | None = None,
    base_path: str | None = None,
) -> Repl:
    """Assemble the editor, history, completion and commands of a shell.

    With ``config.advanced_input`` lines are read through a :class:`LineEditor`
    on *terminal*; otherwise through *line_reader* (stdin by default).
    """
    if registry is None:
        registry = create_default_registry()
    if history is None:
        history = create_history(config)

    repl: Repl | None = None

    def current_scope() -> str:
        return repl.scope if repl is not None else ""

    reader: LineReader
    if config.advanced_input:
        editor = LineEditor(terminal, keybindings=config.keybindings)
        HistoryNavigator(editor, history)
        source = CommandCompletionSource(
            lambda: registry.command_names,
            scope=current_scope,
            base_path=base_path if base_path is not None else os.getcwd(),
            complete_paths=config.complete_paths,
        )
        CompletionEngine(editor, source)
        reader = EditorLineReader(editor)
    else:
        reader = RecordingLineReader(line_reader or StreamLineReader(), history)

    repl = Repl(
        terminal,
        reader,
        registry,
        executable_name=config.executable_name,
        prompt=config.prompt,
        history=history,
    )
    registry.context = CommandContext(terminal, repl, history)
    logger.debug(
        "shell ready (advanced_input=%s, commands=%d)",
        config.advanced_input,
        len(registry.command_names),
    )
    return repl
