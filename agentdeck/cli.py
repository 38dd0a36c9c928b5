#!/usr/bin/env python3
"""agentdeck CLI entrypoint."""

import argparse
import logging
import os
import sys
from pathlib import Path

from agentdeck.commands import tasks as cmd_tasks_module
from agentdeck.commands import watch as cmd_watch_module

DEBUG_ENV = "AGENTDECK_DEBUG"
DEFAULT_DEBUG_LOG = "~/.config/agentdeck/debug.log"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s"


def get_log_file(args) -> Path | None:
    """Log file from --log-file, or the default debug log when AGENTDECK_DEBUG=1."""
    if args.log_file:
        return Path(args.log_file).expanduser()
    if os.environ.get(DEBUG_ENV) == "1":
        return Path(DEFAULT_DEBUG_LOG).expanduser()
    return None


def configure_logging(args, tui: bool = False) -> None:
    """Set up root logging.

    The TUI only ever logs to a file; writing to the terminal would
    corrupt the screen.
    """
    level = logging.DEBUG if args.verbose or os.environ.get(DEBUG_ENV) == "1" else logging.WARNING
    log_file = get_log_file(args)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logging.basicConfig(filename=str(log_file), level=level, format=LOG_FORMAT)
    elif tui:
        logging.getLogger().addHandler(logging.NullHandler())
    else:
        logging.basicConfig(stream=sys.stderr, level=level, format=LOG_FORMAT)


def cmd_tasks(args):
    configure_logging(args)
    return cmd_tasks_module.cmd_tasks(args)


def cmd_watch(args):
    configure_logging(args, tui=True)
    return cmd_watch_module.cmd_watch(args)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='agentdeck', description='Task dashboard for agent projects')
    parser.add_argument('--config', '-c', help='Global config file (default: ~/.agentdeck/config.yaml)')
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug logging')
    parser.add_argument('--log-file', help='Write logs to this file')
    subparsers = parser.add_subparsers(dest='command', required=True)

    # agentdeck tasks
    p_tasks = subparsers.add_parser('tasks', help='Refresh task providers once and print results')
    p_tasks.add_argument('dirs', nargs='*', help='Project directories (default: configured projects or cwd)')
    p_tasks.add_argument('--json', action='store_true', help='Print JSON')
    p_tasks.add_argument('--timeout', type=float, help='Per-provider timeout in seconds')
    p_tasks.add_argument('--max-workers', type=int, help='Max providers running at once')
    p_tasks.set_defaults(func=cmd_tasks)

    # agentdeck watch
    p_watch = subparsers.add_parser('watch', help='Interactive task dashboard')
    p_watch.add_argument('dirs', nargs='*', help='Project directories (default: configured projects or cwd)')
    p_watch.add_argument('--timeout', type=float, help='Per-provider timeout in seconds')
    p_watch.set_defaults(func=cmd_watch)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == '__main__':
    sys.exit(main())
