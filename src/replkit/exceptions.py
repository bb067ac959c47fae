"""Exception hierarchy for replkit."""

from __future__ import annotations


class ReplkitError(Exception):
    """Base class for all replkit errors."""


class InputClosedError(ReplkitError, EOFError):
    """The key or line source was closed while a line was being read."""


class EditorBusyError(ReplkitError, RuntimeError):
    """A line read was started while another one is still active."""


class UnknownActionError(ReplkitError, ValueError):
    """A key binding refers to an action that does not exist."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown editor action: {name!r}")
        self.name = name


class ConfigError(ReplkitError):
    """The configuration file contains an invalid value."""
