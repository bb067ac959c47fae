"""InputDecoder buffers raw terminal input and emits complete key sequences.

Reads from a tty can end in the middle of an escape sequence. Without
buffering, a partial sequence such as ``"\\x1b["`` would be misread as an
escape key press followed by literal characters.
"""

from __future__ import annotations

from dataclasses import dataclass

ESC = "\x1b"
BRACKETED_PASTE_START = "\x1b[200~"
BRACKETED_PASTE_END = "\x1b[201~"


def _is_complete_sequence(data: str) -> str:
    """Check if a string is a complete escape sequence or needs more data.

    Returns 'complete', 'incomplete', or 'not-escape'.
    """
    if not data.startswith(ESC):
        return "not-escape"

    if len(data) == 1:
        return "incomplete"

    after_esc = data[1:]

    # CSI sequences: ESC [
    if after_esc.startswith("["):
        return _is_complete_csi_sequence(data)

    # OSC sequences: ESC ]
    if after_esc.startswith("]"):
        if data.endswith(f"{ESC}\\") or data.endswith("\x07"):
            return "complete"
        return "incomplete"

    # SS3 sequences: ESC O
    if after_esc.startswith("O"):
        return "complete" if len(after_esc) >= 2 else "incomplete"

    # Alt + escape sequence: ESC ESC [ ...
    if after_esc.startswith(ESC) and len(after_esc) > 1:
        return _is_complete_sequence(after_esc)
    if after_esc == ESC:
        return "incomplete"

    # Meta key sequences: ESC followed by a single character
    return "complete"


def _is_complete_csi_sequence(data: str) -> str:
    if len(data) < 3:
        return "incomplete"

    last_char_code = ord(data[-1])
    if 0x40 <= last_char_code <= 0x7E:
        return "complete"
    return "incomplete"


def _extract_complete_sequences(buffer: str) -> tuple[list[str], str]:
    """Split accumulated buffer into complete sequences.

    Returns (sequences, remainder).
    """
    sequences: list[str] = []
    pos = 0

    while pos < len(buffer):
        remaining = buffer[pos:]

        if not remaining.startswith(ESC):
            sequences.append(remaining[0])
            pos += 1
            continue

        seq_end = 1
        while seq_end <= len(remaining):
            if _is_complete_sequence(remaining[:seq_end]) == "complete":
                break
            seq_end += 1
        else:
            return sequences, remaining

        sequences.append(remaining[:seq_end])
        pos += seq_end

    return sequences, ""


@dataclass(frozen=True)
class PastedText:
    """Content of one bracketed paste, to be inserted without key lookup."""

    text: str


def _paste_sequences(content: str) -> list[str | PastedText]:
    clean = content.replace("\r\n", "").replace("\r", "").replace("\n", "")
    # Tabs survive; other control characters would desynchronise the cursor
    clean = "".join(ch for ch in clean if ch == "\t" or ch.isprintable())
    return [PastedText(clean)] if clean else []


class InputDecoder:
    """Accumulates raw input and splits it into complete key sequences.

    Bracketed paste content is returned as a single :class:`PastedText` with
    line breaks removed, so a paste is inserted literally instead of
    submitting the line or running the bindings of its characters.
    """

    def __init__(self) -> None:
        self._buffer: str = ""
        self._paste_mode: bool = False
        self._paste_buffer: str = ""

    @property
    def pending(self) -> bool:
        """True when an incomplete sequence is held back."""
        return bool(self._buffer) or self._paste_mode

    def feed(self, data: str) -> list[str | PastedText]:
        """Feed raw input and return the sequences completed by it."""
        self._buffer += data

        if self._paste_mode:
            self._paste_buffer += self._buffer
            self._buffer = ""
            return self._finish_paste()

        start_index = self._buffer.find(BRACKETED_PASTE_START)
        if start_index != -1:
            sequences, _ = _extract_complete_sequences(self._buffer[:start_index])
            self._paste_buffer = self._buffer[start_index + len(BRACKETED_PASTE_START):]
            self._buffer = ""
            self._paste_mode = True
            return [*sequences, *self._finish_paste()]

        sequences, self._buffer = _extract_complete_sequences(self._buffer)
        return sequences

    def _finish_paste(self) -> list[str | PastedText]:
        end_index = self._paste_buffer.find(BRACKETED_PASTE_END)
        if end_index == -1:
            return []

        pasted_content = self._paste_buffer[:end_index]
        remaining = self._paste_buffer[end_index + len(BRACKETED_PASTE_END):]
        self._paste_mode = False
        self._paste_buffer = ""

        sequences = _paste_sequences(pasted_content)
        if remaining:
            sequences.extend(self.feed(remaining))
        return sequences

    def flush(self) -> list[str | PastedText]:
        """Release whatever is held back once no more input is coming."""
        if self._paste_mode:
            sequences = _paste_sequences(self._paste_buffer + self._buffer)
            self._paste_mode = False
            self._paste_buffer = ""
            self._buffer = ""
            return sequences

        if not self._buffer:
            return []

        sequences: list[str | PastedText] = [self._buffer]
        self._buffer = ""
        return sequences

    def clear(self) -> None:
        self._buffer = ""
        self._paste_mode = False
        self._paste_buffer = ""
