"""``perch make`` — generate static files for an application.

Resolves the app, reads its route registry, runs the generator inside
an ``AsgiHandler`` (lifespan included), and prints the report.
"""

import argparse
import sys

from perch._internal.asgi import AsgiHandler
from perch._internal.types import FetchMethod
from perch.cli._resolve import resolve_app
from perch.config import GeneratorConfig, load_config
from perch.generator import GenerationResult, StaticSiteGenerator
from perch.report import Report
from perch.routing.router import routes_from_app


def build_config(args: argparse.Namespace) -> GeneratorConfig:
    """Load the config file and apply command line overrides."""
    config = load_config(args.config)
    config = config.with_overrides(storage_dir=args.storage_dir)

    if not hasattr(args, "urls"):
        return config

    explicit = [
        *((url, None) for url in args.urls),
        *((url, FetchMethod.APP) for url in args.app_urls),
        *((url, FetchMethod.HTTP) for url in args.http_urls),
    ]
    return config.with_overrides(
        url_list=(*config.url_list, *explicit) if explicit else None,
        skip_url_list=(*config.skip_url_list, *args.skip_urls) if args.skip_urls else None,
        auto=False if args.no_auto else None,
        base_url=args.base_url,
        file_extension=args.extension,
        default_fetch_method=args.method,
    )


def generate(args: argparse.Namespace, config: GeneratorConfig) -> GenerationResult:
    if args.app is None:
        return StaticSiteGenerator(config).run()

    try:
        app = resolve_app(args.app)
    except (ModuleNotFoundError, AttributeError, TypeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    routes = routes_from_app(app)
    with AsgiHandler(app, lifespan=not args.no_lifespan) as handler:
        return StaticSiteGenerator(config, routes=routes, handler=handler).run()


def run_make(args: argparse.Namespace) -> None:
    """Generate static files and print the report.

    Without an app only ``http`` URLs can be fetched; ``app`` URLs are
    reported as not cached.
    """
    config = build_config(args)
    result = generate(args, config)
    if not args.quiet:
        print(Report.from_records(result.records).render())
        print()
        print(f"Fallback module: {result.fallback_path}")
