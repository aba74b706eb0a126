"""Command line entry point.

Usage:
    osmosync [--env-file PATH] sync [--markdown-file FILE] [--mode bar|folder]
    osmosync [--env-file PATH] preview [--markdown-file FILE] [--mode bar|folder]
    osmosync [--env-file PATH] run [--listen-stdin]
"""

from __future__ import annotations

import argparse
import asyncio
import functools
import json
import logging
import signal
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

from osmosync.config import load_config
from osmosync.core.logging_utils import setup_json_logging
from osmosync.domain.models import SyncMode, SyncStatus
from osmosync.services.messages import MessageRouter
from osmosync.services.scheduler import SyncScheduler
from osmosync.sync.session import SyncSessionController

if TYPE_CHECKING:
    from collections.abc import Sequence

    from osmosync.config import AppConfig
    from osmosync.sync.plan import MutationPlan
    from osmosync.sync.protocols import SettingsProvider

logger = logging.getLogger("osmosync")

PLAN_PREVIEW_LIMIT = 20


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="osmosync",
        description="Sync browser bookmarks with a Markdown bookmark list on GitHub",
    )
    parser.add_argument(
        "--env-file",
        default=None,
        help="Path of a .env file (defaults to .env in the working directory)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("sync", "Run one reconciliation and print the outcome"),
        ("preview", "Show what a sync would change without changing anything"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument(
            "--markdown-file",
            type=Path,
            default=None,
            help="Use this file as the document instead of fetching it from GitHub",
        )
        sub.add_argument(
            "--mode",
            choices=[mode.value for mode in SyncMode],
            default=None,
            help="Override the configured sync mode for this run",
        )

    run = subparsers.add_parser("run", help="Keep running and sync on the configured interval")
    run.add_argument(
        "--listen-stdin",
        action="store_true",
        help="Read JSON messages from stdin, one per line, and answer on stdout",
    )
    return parser


def _settings_provider(args: argparse.Namespace) -> SettingsProvider:
    overrides: dict[str, Any] = {}
    if getattr(args, "mode", None):
        overrides["OSMOS_BOOKMARKS_SYNC_MODE"] = args.mode
    return functools.partial(load_config, args.env_file, **overrides)


def _read_markdown(args: argparse.Namespace) -> str | None:
    if args.markdown_file is None:
        return None
    return args.markdown_file.read_text(encoding="utf-8")


def _configure_logging(config: AppConfig) -> None:
    setup_json_logging(
        config.runtime.log_level,
        config.runtime.log_file,
        serialize=config.runtime.log_json,
    )


async def run_sync(args: argparse.Namespace) -> int:
    """Run one sync. Exit code 0 for ok or skipped, 1 for error."""
    controller = SyncSessionController(settings_provider=_settings_provider(args))
    result = await controller.sync(_read_markdown(args), trigger="cli")
    print(result.message)
    return 1 if result.status is SyncStatus.ERROR else 0


async def run_preview(args: argparse.Namespace) -> int:
    controller = SyncSessionController(settings_provider=_settings_provider(args))
    result, plan = await controller.preview(_read_markdown(args))

    print("\n=== Bookmarks Sync Preview (DRY RUN) ===\n")
    print(result.message)
    if plan is not None:
        print(format_plan(plan))
    print("\n=== End of Preview ===")
    return 1 if result.status is SyncStatus.ERROR else 0


def format_plan(plan: MutationPlan) -> str:
    """Render a mutation plan as indented text, truncating long sections."""
    lines = [f"Mode: {plan.mode.value}"]
    if plan.is_empty:
        lines.append("Nothing to do.")
        return "\n".join(lines)

    sections: list[tuple[str, list[str]]] = [
        ("Import into document", [f"[{e.title}]({e.href})" for e in plan.to_import]),
        ("Create in browser", [f"[{e.title}]({e.href})" for e in plan.to_create]),
        (
            "Retitle in browser",
            [f"{u.old_title!r} -> {u.new_title!r} ({u.href})" for u in plan.to_update],
        ),
        ("Remove from browser", [f"[{r.title}]({r.href})" for r in plan.to_remove]),
    ]
    for heading, items in sections:
        if not items:
            continue
        lines.append(f"\n{heading}: {len(items)}")
        lines.extend(f"  - {item}" for item in items[:PLAN_PREVIEW_LIMIT])
        if len(items) > PLAN_PREVIEW_LIMIT:
            lines.append(f"  ... and {len(items) - PLAN_PREVIEW_LIMIT} more")
    return "\n".join(lines)


async def run_forever(args: argparse.Namespace) -> int:
    """Long-running mode: timer, initial sync, optional stdin messages."""
    settings_provider = _settings_provider(args)
    config = settings_provider()
    _configure_logging(config)

    controller = SyncSessionController(settings_provider=settings_provider)
    scheduler = SyncScheduler(controller)
    router = MessageRouter(controller, scheduler, settings_provider=settings_provider)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:  # pragma: no cover
            logger.warning("signal_handlers_unsupported", extra={"signal": str(sig)})

    await scheduler.start(config.bookmarks)
    tasks: list[asyncio.Task[Any]] = []
    try:
        if config.bookmarks.sync_to_bookmarks_bar:
            tasks.append(asyncio.create_task(controller.sync(trigger="startup")))
        if args.listen_stdin:
            tasks.append(asyncio.create_task(serve_stdin(router, stop_event)))
        logger.info(
            "osmosync_running",
            extra={
                "listen_stdin": args.listen_stdin,
                "next_run_time": str(scheduler.get_next_run_time()),
            },
        )
        await stop_event.wait()
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        await scheduler.stop()
        logger.info("osmosync_stopped")
    return 0


async def serve_stdin(router: MessageRouter, stop_event: asyncio.Event) -> None:
    """Answer newline-delimited JSON messages until stdin closes."""
    reader = asyncio.StreamReader()
    protocol = asyncio.StreamReaderProtocol(reader)
    await asyncio.get_running_loop().connect_read_pipe(lambda: protocol, sys.stdin)

    while not stop_event.is_set():
        line = (await reader.readline()).decode("utf-8")
        if not line:
            stop_event.set()
            return
        if not line.strip():
            continue
        try:
            message = json.loads(line)
        except json.JSONDecodeError as exc:
            response: dict[str, Any] = {"success": False, "error": f"Invalid JSON: {exc}"}
        else:
            response = await router.handle(message)
        sys.stdout.write(json.dumps(response) + "\n")
        sys.stdout.flush()


def main(argv: Sequence[str] | None = None) -> None:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    if args.command == "run":
        handler = run_forever
    else:
        try:
            _configure_logging(_settings_provider(args)())
        except RuntimeError as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            sys.exit(1)
        handler = run_sync if args.command == "sync" else run_preview

    try:
        exit_code = asyncio.run(handler(args))
    except (RuntimeError, OSError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        exit_code = 1
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
