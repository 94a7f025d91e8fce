"""``trill check`` — compile every template up front.

Builds a file-system locator over the template directory, warms a fresh
view cache with ``ViewCache.compile_all`` and prints one line per template.
Exits with code 1 if any template fails to compile.
"""

import argparse
import sys
from pathlib import Path

from trill.config import ViewConfig
from trill.engine import ViewEngine
from trill.errors import ConfigurationError, UnresolvedModelTypeError
from trill.locator import FileSystemViewLocator
from trill.terminal import format_compile_report


def run_check(args: argparse.Namespace) -> None:
    """Compile the templates under ``args.templates`` and report the results."""
    root = Path(args.templates)
    if not root.is_dir():
        print(f"Error: template directory not found: {root}", file=sys.stderr)
        raise SystemExit(1)

    for entry in reversed(args.path):
        sys.path.insert(0, str(Path(entry).resolve()))

    config = ViewConfig(
        application_modules=tuple(args.module),
        extra_dependencies=tuple(args.dependency),
    )
    locator = FileSystemViewLocator(root)
    engine = ViewEngine(config, locator=locator)

    try:
        results = list(engine.cache.compile_all(locator, [engine]))
    except (UnresolvedModelTypeError, ConfigurationError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    sys.stdout.write(format_compile_report(results, root=str(root), color=args.color))
    if any(not result.succeeded for result in results):
        raise SystemExit(1)
