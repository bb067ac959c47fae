"""Tab completion: candidate sources and the cycling engine.

The engine only ever rewrites the token being completed, which starts one
past the last separator before the end of the line. Cycling erases what the
previous candidate wrote and writes the next one.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Callable, Collection, Iterable, Protocol, Sequence

from replkit.keybindings import EditorAction
from replkit.line_editor import LineEditor
from replkit.utils import is_directive

logger = logging.getLogger(__name__)

PATH_DELIMITERS = frozenset({" ", "\t", '"', "'", "="})


# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------


class CompletionSource(Protocol):
    """Supplies completion candidates for the token starting at *start*."""

    @property
    def separators(self) -> Collection[str]: ...

    def get_suggestions(self, text: str, start: int) -> Sequence[str]:
        """Return candidates replacing ``text[start:]``; may be empty."""
        ...


def find_last_separator(text: str, separators: Collection[str]) -> int:
    """Index of the last separator character in *text*, or -1."""
    for i in range(len(text) - 1, -1, -1):
        if text[i] in separators:
            return i
    return -1


class StaticCompletionSource:
    """Completes from a fixed word list by prefix."""

    def __init__(self, words: Iterable[str], separators: Collection[str] = " ") -> None:
        self._words = list(dict.fromkeys(words))
        self._separators = frozenset(separators)

    @property
    def separators(self) -> frozenset[str]:
        return self._separators

    def get_suggestions(self, text: str, start: int) -> list[str]:
        prefix = text[start:]
        return [word for word in self._words if word.startswith(prefix)]


def _expand_home_path(path: str) -> str:
    if path == "~" or path.startswith("~/"):
        return os.path.expanduser("~") + path[1:]
    return path


def complete_path(prefix: str, base_path: str) -> list[str]:
    """File system completions for *prefix*, relative to *base_path*.

    Directories come first and carry a trailing ``/``.
    """
    expanded = _expand_home_path(prefix)
    if prefix.endswith("/") or prefix in ("", "~"):
        dir_part, file_part = expanded, ""
    else:
        dir_part, file_part = os.path.dirname(expanded), os.path.basename(expanded)

    search_dir = dir_part if os.path.isabs(dir_part) else os.path.join(base_path, dir_part)
    display_dir = prefix[: len(prefix) - len(file_part)]
    if prefix == "~":
        display_dir = "~/"

    try:
        entries = list(os.scandir(search_dir))
    except OSError:
        return []

    suggestions: list[tuple[int, str]] = []
    for entry in entries:
        if not entry.name.startswith(file_part):
            continue
        if entry.name.startswith(".") and not file_part.startswith("."):
            continue
        try:
            is_directory = entry.is_dir()
        except OSError:
            # Broken symlink or permission error - treat as file
            is_directory = False
        value = display_dir + entry.name + ("/" if is_directory else "")
        suggestions.append((0 if is_directory else 1, value))

    suggestions.sort()
    return [value for _, value in suggestions]


class CommandCompletionSource:
    """Completes known command names word by word, then file paths.

    Command names may contain spaces (``"user add"``). The words already
    typed, prefixed by the current scope, select which names are still
    possible; the next word of each is a candidate. Tokens past a complete
    command name fall back to path completion when enabled.
    """

    def __init__(
        self,
        command_names: Callable[[], Iterable[str]] | Iterable[str],
        *,
        scope: Callable[[], str] | None = None,
        base_path: str | None = None,
        complete_paths: bool = True,
    ) -> None:
        self._command_names = command_names
        self._scope = scope
        self._base_path = base_path if base_path is not None else os.getcwd()
        self._complete_paths = complete_paths

    @property
    def separators(self) -> frozenset[str]:
        return PATH_DELIMITERS

    def _names(self) -> list[str]:
        names = self._command_names() if callable(self._command_names) else self._command_names
        return sorted(names)

    def get_suggestions(self, text: str, start: int) -> list[str]:
        prefix = text[start:]
        words = [w for w in text[:start].split() if not is_directive(w)]
        scope = self._scope() if self._scope else ""
        typed = scope.split() + words

        candidates: list[str] = []
        for name in self._names():
            parts = name.split()
            if len(parts) <= len(typed) or parts[: len(typed)] != typed:
                continue
            word = parts[len(typed)]
            if word.startswith(prefix) and word not in candidates:
                candidates.append(word)

        if candidates or not self._complete_paths or not words:
            return candidates
        return complete_path(prefix, self._base_path)


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


@dataclass
class CompletionState:
    """Candidates for the token starting at ``start``; ``index`` is current."""

    candidates: list[str] = field(default_factory=list)
    start: int = 0
    index: int = 0


class CompletionEngine:
    """Cycles completion candidates through the line editor's buffer.

    Attaches itself to the editor's ``completeNext``/``completePrevious``
    actions. Any other change to the line, a commit, or a new session drops
    the candidate list, so the next trigger computes a fresh one.
    """

    def __init__(self, editor: LineEditor, source: CompletionSource | None = None) -> None:
        self._editor = editor
        self.source = source
        self._state = CompletionState()

        editor.set_action_handler(EditorAction.COMPLETE_NEXT, self.trigger)
        editor.set_action_handler(
            EditorAction.COMPLETE_PREVIOUS, lambda: self.trigger(reverse=True)
        )
        editor.add_modified_listener(self._on_modified)
        editor.add_commit_listener(lambda _text: self.reset())
        editor.add_session_listener(self.reset)

    @property
    def state(self) -> CompletionState:
        return self._state

    @property
    def in_completion_mode(self) -> bool:
        return self.source is not None and bool(self._state.candidates)

    def trigger(self, reverse: bool = False) -> bool:
        if self.in_completion_mode:
            return self.previous() if reverse else self.next()
        return self.init(from_end=reverse)

    def init(self, from_end: bool = False) -> bool:
        """Compute candidates for the token at the end of the line."""
        buffer = self._editor.buffer
        if self.source is None or not buffer.is_end_of_line:
            return False

        text = buffer.text
        start = find_last_separator(text, self.source.separators) + 1
        candidates = list(self.source.get_suggestions(text, start))
        logger.debug("completion of %r: %d candidates", text[start:], len(candidates))
        if not candidates:
            return False

        index = len(candidates) - 1 if from_end else 0
        self._state = CompletionState(candidates=candidates, start=start, index=index)
        buffer.remove_range(start, buffer.cursor - start)
        buffer.insert(candidates[index])
        return True

    def next(self) -> bool:
        return self._cycle(1)

    def previous(self) -> bool:
        return self._cycle(-1)

    def reset(self) -> None:
        self._state = CompletionState()

    def _cycle(self, step: int) -> bool:
        buffer = self._editor.buffer
        if not self.in_completion_mode or not buffer.is_end_of_line:
            return False

        state = self._state
        buffer.remove_range(state.start, buffer.cursor - state.start)
        state.index = (state.index + step) % len(state.candidates)
        buffer.insert(state.candidates[state.index])
        return True

    def _on_modified(self, action: EditorAction) -> None:
        if action not in (EditorAction.COMPLETE_NEXT, EditorAction.COMPLETE_PREVIOUS):
            self.reset()
