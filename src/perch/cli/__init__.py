"""Perch CLI — static file generation, cleanup, and config scaffolding.

Entry point registered as ``perch`` in ``pyproject.toml``::

    [project.scripts]
    perch = "perch.cli:main"
"""

import argparse
import logging
import sys

from perch.errors import PerchError

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", default=None, help="Config file (default: perch.toml or pyproject.toml)")
    parser.add_argument("--storage-dir", default=None, help="Directory the static files are written to")
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Log progress (-vv for debug output)",
    )


def _add_generation(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "app",
        nargs="?",
        default=None,
        help="Import string (e.g. myapp:app); optional when only http URLs are generated",
    )
    parser.add_argument("--url", dest="urls", action="append", default=[], help="Extra URL to generate")
    parser.add_argument(
        "--app-url", dest="app_urls", action="append", default=[], help="Extra URL fetched in-process"
    )
    parser.add_argument(
        "--http-url", dest="http_urls", action="append", default=[], help="Extra URL fetched over HTTP"
    )
    parser.add_argument("--skip-url", dest="skip_urls", action="append", default=[], help="URL to skip")
    parser.add_argument("--no-auto", action="store_true", help="Do not discover URLs from routes")
    parser.add_argument("--base-url", default=None, help="Site URL for http fetches and the Host header")
    parser.add_argument("--extension", default=None, help="Static file extension ('' for none)")
    parser.add_argument("--method", choices=["app", "http"], default=None, help="Default fetch method")
    parser.add_argument("--no-lifespan", action="store_true", help="Do not run ASGI lifespan events")
    parser.add_argument("-q", "--quiet", action="store_true", help="Do not print the report")


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format=LOG_FORMAT)


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ``perch`` command."""
    parser = argparse.ArgumentParser(
        prog="perch",
        description="Perch — pre-render application routes into static files.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # -- perch make -------------------------------------------------------
    make_parser = subparsers.add_parser("make", help="Generate static files")
    _add_common(make_parser)
    _add_generation(make_parser)

    # -- perch clean ------------------------------------------------------
    clean_parser = subparsers.add_parser("clean", help="Remove generated static files")
    _add_common(clean_parser)
    clean_parser.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")

    # -- perch build ------------------------------------------------------
    build_parser = subparsers.add_parser("build", help="Clean, then generate static files")
    _add_common(build_parser)
    _add_generation(build_parser)
    build_parser.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")

    # -- perch publish ----------------------------------------------------
    publish_parser = subparsers.add_parser("publish", help="Write a config file with all options")
    publish_parser.add_argument("--config", default="perch.toml", help="File to write")
    publish_parser.add_argument(
        "--new",
        action="store_true",
        help="Write defaults only, ignoring values of an existing file",
    )
    publish_parser.add_argument("-v", "--verbose", action="count", default=0, help="Log progress")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    _configure_logging(args.verbose)

    try:
        if args.command == "make":
            from perch.cli._make import run_make

            run_make(args)
        elif args.command == "clean":
            from perch.cli._clean import run_clean
            from perch.cli._make import build_config
            from perch.storage import CacheStorage

            run_clean(args, CacheStorage(build_config(args).storage_path))
        elif args.command == "build":
            from perch.cli._clean import run_clean
            from perch.cli._make import build_config, run_make
            from perch.storage import CacheStorage

            run_clean(args, CacheStorage(build_config(args).storage_path))
            run_make(args)
        elif args.command == "publish":
            from perch.publish import publish_config

            path = publish_config(args.config, new=args.new)
            print(f"Wrote {path}")
    except PerchError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc
