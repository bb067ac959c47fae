"""Shell configuration. Stored as JSON at ~/.replkit/config.json."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

from replkit.exceptions import ConfigError
from replkit.keybindings import KeyBindingTable

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.json"


@dataclass
class ReplConfig:
    """Settings of the interactive shell."""

    executable_name: str = "replkit"
    prompt: str = "> "
    advanced_input: bool = True
    history_enabled: bool = True
    history_file: str | None = None
    history_size: int = 500
    history_allow_duplicates: bool = False
    complete_paths: bool = True
    keybindings: dict[str, str] = field(default_factory=dict)


def get_config_dir() -> Path:
    return Path(os.environ.get("REPLKIT_CONFIG_DIR", Path.home() / ".replkit"))


def get_config_path() -> Path:
    return get_config_dir() / CONFIG_FILENAME


_FIELD_TYPES: dict[str, tuple[type, ...]] = {
    "executable_name": (str,),
    "prompt": (str,),
    "advanced_input": (bool,),
    "history_enabled": (bool,),
    "history_file": (str, type(None)),
    "history_size": (int,),
    "history_allow_duplicates": (bool,),
    "complete_paths": (bool,),
    "keybindings": (dict,),
}


def config_from_dict(data: dict[str, Any]) -> ReplConfig:
    """Build a config from parsed JSON, rejecting values of the wrong type."""
    known = {f.name for f in fields(ReplConfig)}
    values: dict[str, Any] = {}
    for key, value in data.items():
        if key not in known:
            logger.warning("ignoring unknown config key %r", key)
            continue
        expected = _FIELD_TYPES[key]
        # bool is an int subclass
        if not isinstance(value, expected) or (isinstance(value, bool) and bool not in expected):
            raise ConfigError(f"config key {key!r} has invalid value {value!r}")
        values[key] = value

    if values.get("history_size", 1) <= 0:
        raise ConfigError("history_size must be positive")

    bindings = values.get("keybindings", {})
    for chord, action in bindings.items():
        if not isinstance(action, str):
            raise ConfigError(f"key binding for {chord!r} must be an action name")
    try:
        KeyBindingTable(bindings)
    except ValueError as exc:
        raise ConfigError(f"invalid key binding: {exc}") from exc

    return ReplConfig(**values)


def config_to_dict(config: ReplConfig) -> dict[str, Any]:
    return asdict(config)


def load_config(path: str | Path | None = None) -> ReplConfig:
    """Load the config file, falling back to defaults when it is missing."""
    config_path = Path(path) if path is not None else get_config_path()
    if not config_path.exists():
        return ReplConfig()
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("error reading config %s: %s", config_path, exc)
        return ReplConfig()
    if not isinstance(data, dict):
        raise ConfigError(f"{config_path}: expected a JSON object")
    return config_from_dict(data)


def save_config(config: ReplConfig, path: str | Path | None = None) -> None:
    config_path = Path(path) if path is not None else get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(json.dumps(config_to_dict(config), indent=2), encoding="utf-8")


def default_history_path() -> Path:
    return get_config_dir() / "history.jsonl"
