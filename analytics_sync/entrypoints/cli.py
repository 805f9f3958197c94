from __future__ import annotations

import argparse
import faulthandler
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Callable

from analytics_sync.application.reporting import EXIT_CONFIG_ERROR, exit_code, summary_lines
from analytics_sync.bootstrap.container import AppContainer, build_container
from analytics_sync.bootstrap.logging import configure_logging, install_exception_hook
from analytics_sync.bootstrap.settings import resolve_log_dir
from analytics_sync.core.errors import ValidationError
from analytics_sync.domain.errors import SyncConfigError
from analytics_sync.domain.models import SyncSettings, WriteWindow
from analytics_sync.infrastructure.config_store import SyncConfigStore

DEFAULT_DAYS_AGO = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="analytics-sync",
        description="Sync Sprout Social analytics into one Google spreadsheet per customer group.",
    )
    window = parser.add_mutually_exclusive_group()
    window.add_argument("--days-ago", type=int, help=f"Sync the single day N days ago (default {DEFAULT_DAYS_AGO})")
    window.add_argument("--start", help="First day of the window, YYYY-MM-DD")
    parser.add_argument("--end", help="Last day of the window, YYYY-MM-DD (defaults to --start)")
    parser.add_argument("--posts", action="store_true", help="Also sync post-level analytics into <network>_post tabs")
    parser.add_argument("--group", action="append", metavar="NAME", help="Only sync this group (repeatable)")
    parser.add_argument("--log-dir", type=Path, help="Directory for log files")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    return parser


def resolve_window(args: argparse.Namespace, today: date) -> WriteWindow:
    if args.end and not args.start:
        raise ValidationError("--end requires --start")
    if args.start:
        return WriteWindow(args.start, args.end or args.start)
    days_ago = DEFAULT_DAYS_AGO if args.days_ago is None else args.days_ago
    if days_ago < 0:
        raise ValidationError("--days-ago must be zero or positive")
    return WriteWindow.days_ago(today, days_ago)


def main(
    argv: list[str] | None = None,
    *,
    today: date | None = None,
    config_store: SyncConfigStore | None = None,
    container_factory: Callable[[SyncSettings], AppContainer] = build_container,
) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        window = resolve_window(args, today or date.today())
    except ValidationError as exc:
        parser.error(str(exc))

    log_dir = resolve_log_dir(args.log_dir)
    configure_logging(log_dir, level=logging.DEBUG if args.verbose else logging.INFO)
    install_exception_hook(log_dir)
    faulthandler.enable()

    logger = logging.getLogger(__name__)
    logger.info("Log dir: %s", log_dir)
    logger.info("Window: %s", window.label())

    store = config_store or SyncConfigStore()
    try:
        settings = store.load()
    except SyncConfigError as exc:
        logger.error("Configuration error: %s", exc)
        sys.stderr.write(f"Configuration error: {exc}\n")
        return EXIT_CONFIG_ERROR

    container = container_factory(settings)
    summary = container.orchestrator.run(window, include_posts=args.posts, group_filter=args.group)
    for line in summary_lines(summary):
        sys.stdout.write(line + "\n")
    return exit_code(summary)
