"""Input history and the navigator that browses it from the line editor."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from replkit.keybindings import EditorAction
from replkit.line_editor import LineEditor

logger = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 500


class InputHistory:
    """Committed lines, oldest first, with a browsing selection.

    The selection index runs from 0 (oldest) to ``len(entries)``, which means
    nothing is selected.
    """

    def __init__(
        self,
        *,
        enabled: bool = True,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        allow_duplicates: bool = False,
        path: str | Path | None = None,
    ) -> None:
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self.enabled = enabled
        self.max_entries = max_entries
        self.allow_duplicates = allow_duplicates
        self.path = Path(path) if path is not None else None
        self._entries: list[str] = []
        self._index = 0

    @property
    def entries(self) -> list[str]:
        return list(self._entries)

    def is_enabled(self) -> bool:
        return self.enabled

    def __len__(self) -> int:
        return len(self._entries)

    def try_add_entry(self, text: str) -> bool:
        """Store *text*; return False when it was rejected."""
        if not self.enabled:
            return False
        trimmed = text.strip()
        if not trimmed:
            return False
        # Don't add consecutive duplicates
        if not self.allow_duplicates and self._entries and self._entries[-1] == trimmed:
            self.reset_selection()
            return False

        self._entries.append(trimmed)
        if len(self._entries) > self.max_entries:
            del self._entries[: len(self._entries) - self.max_entries]
        self.reset_selection()
        return True

    def clear(self) -> None:
        self._entries.clear()
        self.reset_selection()

    # -- selection ----------------------------------------------------------

    @property
    def has_selection(self) -> bool:
        return self._index < len(self._entries)

    def selection_up(self) -> bool:
        """Select the next older entry; False at the oldest or when empty."""
        if not self._entries or self._index == 0:
            return False
        self._index -= 1
        return True

    def selection_down(self) -> bool:
        """Select the next newer entry, or leave the selection past the newest."""
        if not self.has_selection:
            return False
        self._index += 1
        return True

    def current_selection(self) -> str:
        return self._entries[self._index] if self.has_selection else ""

    def reset_selection(self) -> None:
        self._index = len(self._entries)

    # -- persistence --------------------------------------------------------

    def load(self) -> int:
        """Append entries stored at ``path``; return how many were read."""
        if self.path is None or not self.path.exists():
            return 0
        try:
            content = self.path.read_text(encoding="utf-8")
        except OSError as exc:
            logger.warning("could not read history file %s: %s", self.path, exc)
            return 0

        loaded = 0
        for line in content.splitlines():
            line = line.strip()
            if not line:
                continue
            try:
                entry = json.loads(line)
            except json.JSONDecodeError:
                logger.debug("skipping malformed history line in %s", self.path)
                continue
            if isinstance(entry, str) and self.try_add_entry(entry):
                loaded += 1
        return loaded

    def save(self) -> bool:
        """Write all entries to ``path``; False when there is nowhere to write."""
        if self.path is None:
            return False
        lines = [json.dumps(entry, ensure_ascii=False) for entry in self._entries]
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text("\n".join(lines) + ("\n" if lines else ""), encoding="utf-8")
        except OSError as exc:
            logger.warning("could not write history file %s: %s", self.path, exc)
            return False
        return True


class HistoryNavigator:
    """Binds ``historyPrevious``/``historyNext`` of a line editor to a history.

    The line typed before browsing started is kept as a draft and comes back
    when browsing moves past the newest entry.
    """

    def __init__(self, editor: LineEditor, history: InputHistory) -> None:
        self._editor = editor
        self.history = history
        self._draft = ""

        editor.set_action_handler(EditorAction.HISTORY_PREVIOUS, self.previous)
        editor.set_action_handler(EditorAction.HISTORY_NEXT, self.next)
        editor.add_modified_listener(self._on_modified)
        editor.add_commit_listener(self.commit)
        editor.add_session_listener(self.reset)

    def previous(self) -> bool:
        if not self.history.is_enabled():
            return False
        browsing = self.history.has_selection
        if not self.history.selection_up():
            return False
        if not browsing:
            self._draft = self._editor.buffer.text
        self._editor.buffer.replace(self.history.current_selection())
        return True

    def next(self) -> bool:
        if not self.history.is_enabled() or not self.history.selection_down():
            return False
        if self.history.has_selection:
            self._editor.buffer.replace(self.history.current_selection())
        else:
            self._editor.buffer.replace(self._draft)
        return True

    def commit(self, text: str) -> None:
        if self.history.is_enabled():
            self.history.try_add_entry(text)
        self.reset()

    def reset(self) -> None:
        self.history.reset_selection()
        self._draft = ""

    def _on_modified(self, action: EditorAction) -> None:
        if action not in (EditorAction.HISTORY_PREVIOUS, EditorAction.HISTORY_NEXT):
            self.history.reset_selection()
