"""replkit: interactive line editing, history and tab completion for REPL shells."""

# Application wiring
from replkit.app import build_repl

# Commands
from replkit.commands import (
    Command,
    CommandContext,
    CommandInput,
    CommandRegistry,
    create_default_registry,
    register_builtins,
)

# Completion
from replkit.completion import (
    CommandCompletionSource,
    CompletionEngine,
    CompletionSource,
    CompletionState,
    StaticCompletionSource,
    complete_path,
)

# Configuration
from replkit.config import ReplConfig, load_config, save_config

# Errors
from replkit.exceptions import (
    ConfigError,
    EditorBusyError,
    InputClosedError,
    ReplkitError,
    UnknownActionError,
)

# History
from replkit.history import HistoryNavigator, InputHistory

# Keybindings
from replkit.keybindings import (
    DEFAULT_KEYBINDINGS,
    EditorAction,
    KeyBindingTable,
    KeyDispatcher,
)

# Keyboard input handling
from replkit.keys import KeyEvent, KeyId, parse_key

# Line editing
from replkit.line_buffer import LineBuffer, ScreenPosition, position_for_offset
from replkit.line_editor import EditorState, LineEditor

# REPL loop
from replkit.repl import EditorLineReader, Repl, ReplSignal, ReplState

# Terminal
from replkit.terminal import ProcessTerminal, StreamLineReader, Terminal

__all__ = [
    # Application wiring
    "build_repl",
    # Commands
    "Command",
    "CommandContext",
    "CommandInput",
    "CommandRegistry",
    "create_default_registry",
    "register_builtins",
    # Completion
    "CommandCompletionSource",
    "CompletionEngine",
    "CompletionSource",
    "CompletionState",
    "StaticCompletionSource",
    "complete_path",
    # Configuration
    "ReplConfig",
    "load_config",
    "save_config",
    # Errors
    "ConfigError",
    "EditorBusyError",
    "InputClosedError",
    "ReplkitError",
    "UnknownActionError",
    # History
    "HistoryNavigator",
    "InputHistory",
    # Keybindings
    "DEFAULT_KEYBINDINGS",
    "EditorAction",
    "KeyBindingTable",
    "KeyDispatcher",
    # Keyboard input handling
    "KeyEvent",
    "KeyId",
    "parse_key",
    # Line editing
    "EditorState",
    "LineBuffer",
    "LineEditor",
    "ScreenPosition",
    "position_for_offset",
    # REPL loop
    "EditorLineReader",
    "Repl",
    "ReplSignal",
    "ReplState",
    # Terminal
    "ProcessTerminal",
    "StreamLineReader",
    "Terminal",
]
