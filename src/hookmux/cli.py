"""hookmux CLI.

Entry point registered as ``hookmux`` in ``pyproject.toml``::

    [project.scripts]
    hookmux = "hookmux.cli:main"
"""

from __future__ import annotations

import argparse
import importlib
import sys

from hookmux.registry import Registry, format_routes
from hookmux.router import Router


def resolve_registry(import_string: str) -> Registry:
    """Resolve ``"module:attribute"`` to a Registry.

    The attribute defaults to ``router``. It may be a Router, a Registry, or
    a zero-argument factory returning either.
    """
    module_path, _, attr_name = import_string.partition(":")
    attr_name = attr_name or "router"

    module = importlib.import_module(module_path)
    obj = getattr(module, attr_name)

    if callable(obj) and not isinstance(obj, (Router, Registry)):
        try:
            obj = obj()
        except Exception as exc:
            msg = f"factory {import_string!r} raised an error: {exc}"
            raise TypeError(msg) from exc

    if isinstance(obj, Router):
        return obj.registry
    if isinstance(obj, Registry):
        return obj
    msg = f"{import_string!r} resolved to {type(obj).__name__}, not a Router or Registry"
    raise TypeError(msg)


def run_routes(args: argparse.Namespace) -> None:
    try:
        registry = resolve_registry(args.target)
    except (ModuleNotFoundError, AttributeError, TypeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    table = format_routes(registry)
    if not table:
        print("No routes registered.")
        return
    print(table)


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ``hookmux`` command."""
    parser = argparse.ArgumentParser(
        prog="hookmux",
        description="hookmux: template router with hook-based middleware.",
    )
    subparsers = parser.add_subparsers(dest="command")

    routes_parser = subparsers.add_parser("routes", help="List registered routes")
    routes_parser.add_argument("target", help="Import string (e.g. myapp:router)")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "routes":
        run_routes(args)


if __name__ == "__main__":
    main()
