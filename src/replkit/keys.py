"""Keyboard input parsing for terminal line editing.

Turns raw terminal input (legacy CSI/SS3 escape sequences, C0 control bytes
and plain characters) into :class:`KeyEvent` objects whose ``chord`` is a
normalized key identifier such as ``"ctrl+left"`` or ``"shift+tab"``.
"""

from __future__ import annotations

from dataclasses import dataclass

# ---------------------------------------------------------------------------
# Type alias
# ---------------------------------------------------------------------------

KeyId = str

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

MODIFIER_ORDER: tuple[str, ...] = ("ctrl", "shift", "alt")

_MODIFIER_ALIASES: dict[str, str] = {
    "ctrl": "ctrl",
    "control": "ctrl",
    "shift": "shift",
    "alt": "alt",
    "meta": "alt",
    "option": "alt",
}

_KEY_ALIASES: dict[str, str] = {
    "esc": "escape",
    "return": "enter",
    "del": "delete",
    "ins": "insert",
    "bs": "backspace",
    "pageup": "pageUp",
    "pgup": "pageUp",
    "pagedown": "pageDown",
    "pgdn": "pageDown",
    "leftarrow": "left",
    "rightarrow": "right",
    "uparrow": "up",
    "downarrow": "down",
}

# Legacy escape sequences -> key names
LEGACY_KEY_SEQUENCES: dict[str, str] = {
    "\x1b[A": "up",
    "\x1b[B": "down",
    "\x1b[C": "right",
    "\x1b[D": "left",
    "\x1b[H": "home",
    "\x1b[F": "end",
    "\x1bOA": "up",
    "\x1bOB": "down",
    "\x1bOC": "right",
    "\x1bOD": "left",
    "\x1bOH": "home",
    "\x1bOF": "end",
    "\x1b[1~": "home",
    "\x1b[2~": "insert",
    "\x1b[3~": "delete",
    "\x1b[4~": "end",
    "\x1b[5~": "pageUp",
    "\x1b[6~": "pageDown",
    "\x1b[7~": "home",
    "\x1b[8~": "end",
    "\x1b[Z": "shift+tab",
}

# xterm modifier parameter -> chord prefix
_MODIFIER_PARAMS: dict[int, str] = {
    2: "shift+",
    3: "alt+",
    4: "shift+alt+",
    5: "ctrl+",
    6: "ctrl+shift+",
    7: "ctrl+alt+",
    8: "ctrl+shift+alt+",
}

_CSI_LETTER_KEYS: dict[str, str] = {
    "A": "up",
    "B": "down",
    "C": "right",
    "D": "left",
    "H": "home",
    "F": "end",
}

_CSI_TILDE_KEYS: dict[str, str] = {
    "2": "insert",
    "3": "delete",
    "5": "pageUp",
    "6": "pageDown",
}

# Modified sequences, e.g. "\x1b[1;5D" -> "ctrl+left", "\x1b[3;5~" -> "ctrl+delete"
LEGACY_MODIFIED_SEQUENCES: dict[str, str] = {}
for _param, _prefix in _MODIFIER_PARAMS.items():
    for _final, _name in _CSI_LETTER_KEYS.items():
        LEGACY_MODIFIED_SEQUENCES[f"\x1b[1;{_param}{_final}"] = _prefix + _name
    for _code, _name in _CSI_TILDE_KEYS.items():
        LEGACY_MODIFIED_SEQUENCES[f"\x1b[{_code};{_param}~"] = _prefix + _name

# rxvt sends lowercase finals for ctrl+arrow
LEGACY_MODIFIED_SEQUENCES.update({
    "\x1bOa": "ctrl+up",
    "\x1bOb": "ctrl+down",
    "\x1bOc": "ctrl+right",
    "\x1bOd": "ctrl+left",
})


# ---------------------------------------------------------------------------
# Key id normalization
# ---------------------------------------------------------------------------


def normalize_key_id(key_id: str) -> KeyId:
    """Return the canonical form of *key_id*.

    Modifiers are lower-cased, de-duplicated and ordered ``ctrl``, ``shift``,
    ``alt``; named keys are lower-cased with aliases resolved
    (``"Ctrl+PgUp"`` -> ``"ctrl+pageUp"``).
    """
    text = key_id if key_id == " " else key_id.strip()
    if not text:
        raise ValueError("key id cannot be empty")

    modifiers: set[str] = set()
    while True:
        head, sep, rest = text.partition("+")
        modifier = _MODIFIER_ALIASES.get(head.strip().lower())
        if not sep or not rest or modifier is None:
            break
        modifiers.add(modifier)
        text = rest

    key = text if text == " " else text.strip()
    lowered = key.lower()
    if key == " ":
        key = "space"
    elif len(key) > 1:
        key = _KEY_ALIASES.get(lowered, lowered)
    elif modifiers & {"ctrl", "alt"}:
        key = lowered

    prefix = "".join(f"{m}+" for m in MODIFIER_ORDER if m in modifiers)
    return prefix + key


# ---------------------------------------------------------------------------
# parse_key: determine what key was pressed from raw input
# ---------------------------------------------------------------------------


def parse_key(data: str) -> KeyId | None:  # noqa: C901
    """Parse one complete raw input sequence and return its key id, or ``None``.

    The returned string uses the chord format of the binding table:
    e.g. ``"a"``, ``"ctrl+a"``, ``"shift+tab"``, ``"ctrl+left"``.
    """
    if not data:
        return None

    if data in LEGACY_MODIFIED_SEQUENCES:
        return LEGACY_MODIFIED_SEQUENCES[data]
    if data in LEGACY_KEY_SEQUENCES:
        return LEGACY_KEY_SEQUENCES[data]

    # --- Simple single-byte keys ---
    if data == "\x1b":
        return "escape"
    if data == "\r" or data == "\n":
        return "enter"
    if data == "\t":
        return "tab"
    if data == " ":
        return "space"
    if data == "\x7f":
        return "backspace"
    if data == "\x08":
        # Most terminals send ^H for ctrl+backspace
        return "ctrl+backspace"
    if data == "\x00":
        return "ctrl+space"

    # --- Ctrl + letter (0x01 - 0x1a) ---
    if len(data) == 1 and 1 <= ord(data) <= 26:
        return "ctrl+" + chr(ord(data) + ord("a") - 1)

    # --- Alt + escape sequence (ESC ESC [ D) ---
    if data.startswith("\x1b\x1b") and len(data) > 2:
        inner = parse_key(data[1:])
        if inner is not None and "alt+" not in inner:
            return _add_modifier(inner, "alt")
        return None

    # --- Alt + key (ESC prefix) ---
    if len(data) == 2 and data[0] == "\x1b":
        ch = data[1]
        if ch == "\x1b":
            return "alt+escape"
        if ch == "\r" or ch == "\n":
            return "alt+enter"
        if ch == "\t":
            return "alt+tab"
        if ch == " ":
            return "alt+space"
        if ch == "\x7f" or ch == "\x08":
            return "alt+backspace"
        if 1 <= ord(ch) <= 26:
            return "ctrl+alt+" + chr(ord(ch) + ord("a") - 1)
        if ch.isupper():
            return "shift+alt+" + ch.lower()
        if ch.isprintable():
            return "alt+" + ch.lower()

    # --- Plain printable character ---
    if len(data) == 1 and data.isprintable():
        return data

    return None


def _add_modifier(key_id: KeyId, modifier: str) -> KeyId:
    *modifiers, key = _split_key_id(key_id)
    return normalize_key_id("+".join([*modifiers, modifier, key]))


def _split_key_id(key_id: KeyId) -> list[str]:
    parts: list[str] = []
    text = key_id
    while True:
        head, sep, rest = text.partition("+")
        if sep and rest and head in MODIFIER_ORDER:
            parts.append(head)
            text = rest
        else:
            break
    parts.append(text)
    return parts


# ---------------------------------------------------------------------------
# KeyEvent
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class KeyEvent:
    """A single decoded key press.

    ``key`` is the key identity without modifiers (``"a"``, ``"left"``,
    ``"backspace"``); ``char`` is the literal text the key produces, empty for
    keys that do not produce text. ``pasted`` marks characters that arrived
    inside a bracketed paste; they are inserted as text whatever their key.
    """

    key: str
    char: str = ""
    ctrl: bool = False
    shift: bool = False
    alt: bool = False
    pasted: bool = False

    @property
    def chord(self) -> KeyId:
        prefix = ""
        if self.ctrl:
            prefix += "ctrl+"
        if self.shift:
            prefix += "shift+"
        if self.alt:
            prefix += "alt+"
        return prefix + self.key

    @classmethod
    def from_key_id(cls, key_id: KeyId, char: str | None = None) -> "KeyEvent":
        """Build an event from a chord string such as ``"ctrl+w"``."""
        *modifiers, key = _split_key_id(normalize_key_id(key_id))
        ctrl = "ctrl" in modifiers
        alt = "alt" in modifiers
        if char is None:
            if key == "space" and not (ctrl or alt):
                char = " "
            elif len(key) == 1 and not (ctrl or alt):
                char = key
            else:
                char = ""
        return cls(key=key, char=char, ctrl=ctrl, shift="shift" in modifiers, alt=alt)

    @classmethod
    def from_char(cls, char: str, *, pasted: bool = False) -> "KeyEvent":
        """Build the event of typing a literal character."""
        if char == " ":
            key = "space"
        elif char == "\t":
            key = "tab"
        else:
            key = char
        return cls(key=key, char=char, pasted=pasted)


def key_event_from_data(data: str) -> KeyEvent | None:
    """Decode one complete raw input sequence into a :class:`KeyEvent`."""
    key_id = parse_key(data)
    if key_id is None:
        return None
    char = data if len(data) == 1 and data.isprintable() else ""
    return KeyEvent.from_key_id(key_id, char=char)


def control_echo(event: KeyEvent) -> str:
    """Caret representation of an unbound control chord, e.g. ``"^X"``."""
    key = event.key
    name = key.upper() if len(key) == 1 else key[:1].upper() + key[1:]
    return f"^{name}"
