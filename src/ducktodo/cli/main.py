# src/ducktodo/cli/main.py

"""
CLI entrypoint.

Parses arguments, initializes logging, builds AppState for commands that
need the database, runs exactly one command and maps errors to exit codes:
0 success, 1 reported error, 2 usage error (from argparse).
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence

import argcomplete

from ..cli.bootstrap import create_initial_state
from ..cli.commands import PROG, registry
from ..config import get_settings
from ..errors import StorageError, TodoError
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    return registry.build_parser(prog=PROG)


def main(argv: Sequence[str] | None = None, *, settings=None) -> int:
    parser = build_parser()
    argcomplete.autocomplete(parser)
    args = parser.parse_args(argv)

    if settings is None:
        settings = get_settings()

    level_name = str(getattr(settings, "log_level", "WARNING")).upper()
    console_level = getattr(logging, level_name, logging.WARNING)
    try:
        setup_logging(
            log_dir=settings.data_dir,
            console_level=console_level,
            log_to_file=getattr(settings, "log_to_file", True),
        )
    except OSError as exc:
        print(f"Error: Cannot open log file in {settings.data_dir}: {exc}", file=sys.stderr)
        return 1

    try:
        state = None
        if registry.needs_state(args.command):
            state = create_initial_state(settings=settings, db_path=args.db_path)
        output = registry.handle(state, args)
    except TodoError as exc:
        # Full traceback goes to the log file only; the terminal gets one line.
        logger.debug("Command %s failed", args.command, exc_info=isinstance(exc, StorageError))
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if output:
        print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
