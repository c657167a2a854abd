"""Command-line entry point for the package-extra refresh job."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from pkg_extra.app import app_context
from pkg_extra.config import Settings, load_settings
from pkg_extra.errors import ConfigError, HealthCheckError
from pkg_extra.healthcheck import ping_health_check
from pkg_extra.refresh import fetch_extra_data

logger = logging.getLogger(__name__)

HEALTH_CHECK_JOB_ID = "fetch_package_extra"

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pkg-extra",
        description="Fetch extra package data: versions, scopes, stars, readmes, images, installs.",
    )
    parser.add_argument("names", nargs="*", metavar="name", help="Package names to refresh.")
    parser.add_argument(
        "--all",
        action="store_true",
        help="Fetch extra package data for all packages, most recently modified first.",
    )
    parser.add_argument(
        "-f",
        "--force",
        action="store_true",
        help="Ignore caches and force fetching.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Settings YAML file. Defaults to $PKG_EXTRA_CONFIG, then built-in defaults.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    return parser


async def run(names: list[str], *, all_packages: bool, force: bool, settings: Settings) -> int:
    """Run one batch. Returns 1 when no package names resolved, else 0."""
    async with app_context(settings) as app:
        if all_packages:
            names = app.catalog.load_package_names(sort_by_mtime=True)
        if not names:
            return 1
        await fetch_extra_data(names, catalog=app.catalog, refresher=app.refresher, force=force)
        check_id = settings.health_check.ids.get(HEALTH_CHECK_JOB_ID, "")
        try:
            await ping_health_check(
                app.http_client,
                settings.health_check.url,
                check_id,
                timeout=settings.request_timeout,
            )
        except HealthCheckError as exc:
            logger.warning("%s", exc)
    return 0


def run_cli(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format=_LOG_FORMAT,
    )

    try:
        settings = load_settings(args.config)
    except ConfigError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    if not args.names and not args.all:
        parser.print_help()
        return 1

    status = asyncio.run(run(args.names, all_packages=args.all, force=args.force, settings=settings))
    if status == 1:
        parser.print_help()
    return status


if __name__ == "__main__":
    raise SystemExit(run_cli())
