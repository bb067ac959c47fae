"""Command registry used by the shell to run parsed lines.

A line is tokenized by the REPL and parsed here: leading bracketed
directives, then the longest known command name (names may span several
words, e.g. ``"history clear"``), then the command's arguments.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Iterable

from replkit.repl import Output, ReplSignal
from replkit.utils import is_directive, visible_width

if TYPE_CHECKING:
    from replkit.history import InputHistory
    from replkit.repl import Repl

logger = logging.getLogger(__name__)

INTERACTIVE_DIRECTIVE = "[interactive]"
SCOPE_UP_DIRECTIVE = "[>]"
SCOPE_DOWN_DIRECTIVE = "[.]"
SCOPE_RESET_DIRECTIVE = "[..]"
SCOPE_DIRECTIVES = (SCOPE_UP_DIRECTIVE, SCOPE_DOWN_DIRECTIVE, SCOPE_RESET_DIRECTIVE)


@dataclass
class CommandInput:
    """A tokenized line split into directives, command name and arguments."""

    directives: list[str] = field(default_factory=list)
    command_name: str | None = None
    arguments: list[str] = field(default_factory=list)

    @property
    def is_interactive_directive_specified(self) -> bool:
        return INTERACTIVE_DIRECTIVE in self.directives

    @property
    def is_empty(self) -> bool:
        return self.command_name is None and not self.arguments

    def has_directive(self, directive: str) -> bool:
        return directive in self.directives

    @classmethod
    def parse(cls, tokens: Iterable[str], command_names: Iterable[str]) -> "CommandInput":
        tokens = list(tokens)
        names = set(command_names)

        index = 0
        while index < len(tokens) and is_directive(tokens[index]):
            index += 1
        directives = tokens[:index]

        # Longest matching command name wins
        for end in range(len(tokens), index, -1):
            candidate = " ".join(tokens[index:end])
            if candidate in names:
                return cls(directives, candidate, tokens[end:])
        return cls(directives, None, tokens[index:])


@dataclass
class CommandContext:
    """What a running command can reach."""

    terminal: Output
    repl: Repl | None = None
    history: InputHistory | None = None
    registry: CommandRegistry | None = None

    def write(self, text: str) -> None:
        self.terminal.write_text(text)

    def write_line(self, text: str = "") -> None:
        self.terminal.write_text(text + "\n")


CommandHandler = Callable[[CommandContext, list[str]], "ReplSignal | None"]


@dataclass
class Command:
    name: str
    description: str
    handler: CommandHandler

    def __post_init__(self) -> None:
        self.name = " ".join(self.name.split())
        if not self.name or any(is_directive(word) for word in self.name.split()):
            raise ValueError(f"invalid command name: {self.name!r}")


class CommandRegistry:
    """Named commands plus the scope directives of the interactive shell."""

    def __init__(self, context: CommandContext | None = None) -> None:
        self._commands: dict[str, Command] = {}
        self._context: CommandContext | None = None
        self.context = context

    @property
    def context(self) -> CommandContext | None:
        return self._context

    @context.setter
    def context(self, context: CommandContext | None) -> None:
        if context is not None:
            context.registry = self
        self._context = context

    def add(self, command: Command) -> Command:
        if command.name in self._commands:
            raise ValueError(f"command {command.name!r} is already registered")
        self._commands[command.name] = command
        return command

    def command(self, name: str, description: str = "") -> Callable[[CommandHandler], CommandHandler]:
        """Decorator registering a handler as command *name*."""

        def decorator(handler: CommandHandler) -> CommandHandler:
            self.add(Command(name, description, handler))
            return handler

        return decorator

    def get(self, name: str) -> Command | None:
        return self._commands.get(name)

    @property
    def command_names(self) -> list[str]:
        return sorted(self._commands)

    @property
    def commands(self) -> list[Command]:
        return [self._commands[name] for name in self.command_names]

    def is_namespace(self, words: list[str]) -> bool:
        """True when *words* start at least one command name."""
        if not words:
            return False
        for name in self._commands:
            parts = name.split()
            if parts[: len(words)] == words:
                return True
        return False

    def dispatch(self, tokens: list[str]) -> ReplSignal:
        if self.context is None:
            raise RuntimeError("command registry has no context")

        parsed = CommandInput.parse(tokens, self._commands)
        if any(parsed.has_directive(d) for d in SCOPE_DIRECTIVES):
            self._change_scope(parsed, tokens)
            return ReplSignal.CONTINUE

        if parsed.command_name is None:
            if parsed.arguments:
                logger.debug("unknown command: %r", parsed.arguments)
                self.context.write_line(f"Unknown command: {' '.join(parsed.arguments)}")
            return ReplSignal.CONTINUE

        command = self._commands[parsed.command_name]
        signal = command.handler(self.context, parsed.arguments)
        return signal if signal is not None else ReplSignal.CONTINUE

    def _change_scope(self, parsed: CommandInput, tokens: list[str]) -> None:
        context = self.context
        assert context is not None
        repl = context.repl
        if repl is None:
            context.write_line("Scope directives are only available in interactive mode")
            return

        if parsed.has_directive(SCOPE_RESET_DIRECTIVE):
            repl.scope = ""
        elif parsed.has_directive(SCOPE_DOWN_DIRECTIVE):
            repl.scope = " ".join(repl.scope.split()[:-1])
        else:
            words = tokens[len(parsed.directives):]
            if not self.is_namespace(words):
                context.write_line(f"Unknown command or namespace: {' '.join(words)}")
                return
            repl.scope = " ".join(words)
        logger.debug("scope is now %r", repl.scope)


# ---------------------------------------------------------------------------
# Built-in commands
# ---------------------------------------------------------------------------


def _help(context: CommandContext, args: list[str]) -> None:
    commands = context.registry.commands if context.registry is not None else []
    if not commands:
        context.write_line("No commands available")
        return
    width = max(visible_width(command.name) for command in commands)
    for command in commands:
        padding = " " * (width - visible_width(command.name))
        context.write_line(f"  {command.name}{padding}  {command.description}".rstrip())


def _echo(context: CommandContext, args: list[str]) -> None:
    context.write_line(" ".join(args))


def _history(context: CommandContext, args: list[str]) -> None:
    if context.history is None or not context.history.is_enabled():
        context.write_line("History is disabled")
        return
    for number, entry in enumerate(context.history.entries, start=1):
        context.write_line(f"{number:>4}  {entry}")


def _history_clear(context: CommandContext, args: list[str]) -> None:
    if context.history is not None:
        context.history.clear()


def _exit(context: CommandContext, args: list[str]) -> ReplSignal:
    return ReplSignal.STOP


def register_builtins(registry: CommandRegistry) -> CommandRegistry:
    registry.add(Command("help", "List available commands", _help))
    registry.add(Command("echo", "Print the arguments", _echo))
    registry.add(Command("history", "Show the input history", _history))
    registry.add(Command("history clear", "Forget the input history", _history_clear))
    registry.add(Command("exit", "Leave the shell", _exit))
    return registry


def create_default_registry() -> CommandRegistry:
    return register_builtins(CommandRegistry())
