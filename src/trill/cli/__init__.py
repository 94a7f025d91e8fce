"""Trill CLI — ahead-of-time template checks.

Entry point registered as ``trill`` in ``pyproject.toml``::

    [project.scripts]
    trill = "trill.cli:main"
"""

import argparse
import sys


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ``trill`` command."""
    parser = argparse.ArgumentParser(
        prog="trill",
        description="Trill — compiled view templates with layouts and sections.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # -- trill check ------------------------------------------------------
    check_parser = subparsers.add_parser("check", help="Compile every template in a directory")
    check_parser.add_argument("templates", help="Template directory")
    check_parser.add_argument(
        "--module",
        action="append",
        default=[],
        metavar="MODULE",
        help="Application module scanned for model types (repeatable)",
    )
    check_parser.add_argument(
        "--dependency",
        action="append",
        default=[],
        metavar="MODULE",
        help="Extra module every template compiles against (repeatable)",
    )
    check_parser.add_argument(
        "--path",
        action="append",
        default=[],
        metavar="DIR",
        help="Directory prepended to sys.path before importing modules (repeatable)",
    )
    check_parser.add_argument(
        "--color",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Force colored output on or off (default: auto-detect)",
    )

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "check":
        from trill.cli._check import run_check

        run_check(args)
