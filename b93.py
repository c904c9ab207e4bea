#!/usr/bin/env python3
"""
b93 - Befunge-93 interpreter CLI

Usage:
    python b93.py [--extensions true|false] [--seed N] [--max-steps N]
                  [--trace] [--dump] [--verbose] [--log-file PATH] FILE [FILE ...]

Each FILE is loaded into a fresh VM and run until '@'. Files run one
after another on a fresh grid and stack, but they share stdin: input one
program leaves unread is seen by the next.

Examples:
    python b93.py hello.bf
    python b93.py --extensions=true hex_digits.bf
    python b93.py --seed 1 --max-steps 100000 maze.bf
    python b93.py --dump program.bf              # show the loaded grid only

Exit status:
    0  all programs stopped normally
    1  a source file could not be opened
    2  runtime error (e.g. division by zero)
"""

import argparse
import logging
import sys
import os

# Allow running from project root without installing
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from b93vm import __version__, Engine, StopReason, Terminal
from b93vm.loader import ProgramLoadError, load_file
from b93vm.logsetup import setup_logging


def parse_bool_arg(value: str) -> bool:
    """Parse 'true' / 'false' (case-insensitive)."""
    v = value.strip().lower()
    if v == "true":
        return True
    if v == "false":
        return False
    raise argparse.ArgumentTypeError(f"expected true or false, got {value!r}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="b93",
        description="Befunge-93 virtual machine",
    )
    parser.add_argument("files", nargs="+", metavar="FILE",
                        help="Befunge-93 source file(s)")
    parser.add_argument("--extensions", type=parse_bool_arg, default=False,
                        metavar="{true,false}",
                        help="Enable hex digits a-f and the ' fetch instruction "
                             "for every FILE given (default: false)")
    parser.add_argument("--seed", type=int, default=None,
                        help="Seed for the ? instruction (default: system entropy)")
    parser.add_argument("--max-steps", type=int, default=None,
                        help="Stop after N instructions (default: run until @)")
    parser.add_argument("--trace", action="store_true",
                        help="Log every executed instruction at DEBUG level")
    parser.add_argument("--dump", action="store_true",
                        help="Print the loaded grid to stdout and skip execution")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Print run details to stderr")
    parser.add_argument("--log-file", default=None,
                        help="Write a DEBUG log to this file")
    parser.add_argument("--version", action="version",
                        version=f"b93 {__version__}")
    return parser


def run_file(path: str, args, log: logging.Logger, terminal: Terminal) -> StopReason:
    """Load and run one file. All files share terminal, so stdin left over by
    one program (e.g. the byte after a number) is seen by the next.
    """
    grid = load_file(path)

    if args.dump:
        print(grid.dump())
        return StopReason.HALT

    vm = Engine(grid, extensions=args.extensions, terminal=terminal,
                seed=args.seed)
    vm.enable_trace(args.trace)
    reason = vm.run(max_steps=args.max_steps)
    log.info("%s: %s after %d steps", path, reason.name, vm.steps)
    if reason is StopReason.TIMEOUT:
        log.warning("%s: step limit %d reached", path, args.max_steps)
    return reason


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    level = logging.DEBUG if args.trace else (logging.INFO if args.verbose else logging.WARNING)
    log = setup_logging(console_level=level, log_file=args.log_file)
    terminal = Terminal()

    for path in args.files:
        try:
            run_file(path, args, log, terminal)
        except ProgramLoadError as e:
            print(f"Error: could not open {e.path}", file=sys.stderr)
            return 1
        except Exception as e:
            terminal.flush()
            log.debug("Runtime error in %s", path)
            print(f"Runtime error: {e}", file=sys.stderr)
            if args.verbose:
                import traceback
                traceback.print_exc()
            return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
