"""Entry point for the replkit shell."""

from __future__ import annotations

import argparse
import logging
import sys

from replkit.app import build_repl
from replkit.commands import CommandContext, CommandInput, create_default_registry
from replkit.config import load_config
from replkit.exceptions import ConfigError
from replkit.terminal import ProcessTerminal

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="replkit",
        description="Interactive command shell with line editing, history and tab completion",
    )
    parser.add_argument(
        "command",
        nargs="*",
        help="Command to run once (omit it, or pass [interactive], to start the shell)",
    )
    parser.add_argument("--config", help="Config file (default: ~/.replkit/config.json)")
    parser.add_argument("--prompt", help="Prompt shown after the executable name")
    parser.add_argument("--no-history", action="store_true", help="Disable input history")
    parser.add_argument("--history-file", help="File the input history is kept in")
    parser.add_argument("--plain", action="store_true", help="Read plain lines without key bindings")
    parser.add_argument("--log-level", default="warning", choices=["debug", "info", "warning", "error"])
    parser.add_argument("--log-file", help="Write log records to this file instead of stderr")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper()),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        filename=args.log_file,
    )

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    if args.prompt is not None:
        config.prompt = args.prompt
    if args.no_history:
        config.history_enabled = False
    if args.history_file:
        config.history_file = args.history_file
    if args.plain or not sys.stdin.isatty():
        config.advanced_input = False

    registry = create_default_registry()
    terminal = ProcessTerminal()
    parsed = CommandInput.parse(args.command, registry.command_names)

    if parsed.is_empty or parsed.is_interactive_directive_specified:
        repl = build_repl(config, terminal, registry=registry)
        # Run the command given next to [interactive] before the shell starts
        if not parsed.is_empty:
            registry.dispatch(args.command)
        if config.advanced_input:
            with terminal:
                repl.run()
        else:
            repl.run()
        return 0

    registry.context = CommandContext(terminal)
    registry.dispatch(args.command)
    return 0


if __name__ == "__main__":
    sys.exit(main())
