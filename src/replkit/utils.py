"""Terminal text utilities: ANSI stripping, width measurement, character classes.

The cursor tracker in :mod:`replkit.terminal` needs to know how many columns
each piece of written text occupies, so measurement works on grapheme
clusters rather than code points.
"""

from __future__ import annotations

import re
import unicodedata
from typing import Iterator

import grapheme
import wcwidth as _wcwidth

# ---------------------------------------------------------------------------
# Regex patterns for ANSI / OSC sequences
# ---------------------------------------------------------------------------

_STRIP_RE = re.compile(
    r"\x1b\[[0-9;?]*[A-Za-z]"       # CSI
    r"|\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)"  # OSC
)


def strip_ansi(text: str) -> str:
    """Remove CSI and OSC escape sequences from *text*."""
    return _STRIP_RE.sub("", text)


def grapheme_width(g: str) -> int:
    """Return the terminal display width of a single grapheme cluster.

    Control characters and combining marks are zero width, emoji sequences
    are two columns, everything else is delegated to ``wcwidth``.
    """
    if not g:
        return 0

    if len(g) == 1:
        cp = ord(g)
        if cp < 0x20 or (0x7F <= cp <= 0x9F):
            return 0
        return max(_wcwidth.wcwidth(g), 0)

    for ch in g:
        cp = ord(ch)
        if cp in (0xFE0F, 0x200D):  # VS16, ZWJ
            return 2
        if 0x1F3FB <= cp <= 0x1F3FF or 0x1F1E6 <= cp <= 0x1F1FF:
            return 2

    first = g[0]
    if ord(first) >= 0x1F000:
        return 2

    if unicodedata.category(first)[0] == "M" or unicodedata.category(first) == "Cf":
        return 0

    return max(_wcwidth.wcwidth(first), 0)


def iter_graphemes(text: str) -> Iterator[tuple[str, int]]:
    """Yield ``(cluster, width)`` pairs for the visible part of *text*.

    Escape sequences are skipped; control characters such as ``\\n`` are
    yielded with width 0 so callers can interpret them.
    """
    for g in grapheme.graphemes(strip_ansi(text)):
        yield g, grapheme_width(g)


def visible_width(text: str) -> int:
    """Calculate the visible terminal width of *text*."""
    if not text:
        return 0

    stripped = strip_ansi(text)
    if not stripped:
        return 0

    if all(0x20 <= ord(ch) <= 0x7E for ch in stripped):
        return len(stripped)

    return sum(grapheme_width(g) for g in grapheme.graphemes(stripped))


# ---------------------------------------------------------------------------
# Character classification
# ---------------------------------------------------------------------------


def is_whitespace_char(char: str) -> bool:
    """Return ``True`` if *char* is a whitespace character."""
    return char in (" ", "\t", "\n", "\r", "\f", "\v")


def is_directive(token: str) -> bool:
    """True for bracketed directive tokens such as ``[interactive]``."""
    return len(token) >= 2 and token.startswith("[") and token.endswith("]")
