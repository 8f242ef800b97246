#!/usr/bin/env python3
"""Command-line front-end for the citation catalog."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Ensure project root is on sys.path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from catalog.api.client import CatalogClient
from catalog.core.config import CatalogConfig, load_config
from catalog.core.controller import CatalogController
from catalog.views.display import (
    FORM_FIELDS,
    render_detail_text,
    render_list_text,
    render_statistics_text,
)
from catalog.views.notifications import Notification, NotificationCenter

logger = logging.getLogger("catalog")

EXPORT_FORMATS = ("json", "bibtex", "csv")


# ── Output ───────────────────────────────────────────────────────────


def _print_notification(note: Notification) -> None:
    stream = sys.stderr if note.kind == "error" else sys.stdout
    print(f"[{note.kind}] {note.message}", file=stream)


def _ask_confirm(message: str) -> bool:
    try:
        answer = input(f"{message} [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


def _print_list(ctrl: CatalogController) -> None:
    print(render_list_text(ctrl.display, ctrl.messages))
    print()
    print(render_statistics_text(ctrl.display.statistics))


# ── Commands ─────────────────────────────────────────────────────────


async def _cmd_list(ctrl: CatalogController, args) -> None:
    await ctrl.load_all()
    _print_list(ctrl)


async def _cmd_search(ctrl: CatalogController, args) -> None:
    await ctrl.search(args.query)
    _print_list(ctrl)


async def _cmd_stats(ctrl: CatalogController, args) -> None:
    await ctrl.load_all()
    print(render_statistics_text(ctrl.display.statistics))


async def _cmd_show(ctrl: CatalogController, args) -> None:
    if await ctrl.view_details(args.id):
        print(render_detail_text(ctrl.display.view_dialog.detail, ctrl.messages))


async def _cmd_add(ctrl: CatalogController, args) -> None:
    ctrl.open_add()
    _fill_form(ctrl, args)
    await ctrl.save()


async def _cmd_edit(ctrl: CatalogController, args) -> None:
    if not await ctrl.view_details(args.id):
        return
    ctrl.edit_from_view()
    _fill_form(ctrl, args)
    await ctrl.save()


async def _cmd_delete(ctrl: CatalogController, args) -> None:
    if args.yes:
        ctrl.confirm = lambda message: True
    await ctrl.delete(args.id)


async def _cmd_export(ctrl: CatalogController, args) -> None:
    path = await ctrl.export(args.format, args.out)
    if path:
        print(path)


def _fill_form(ctrl: CatalogController, args) -> None:
    """Copy every field given on the command line into the open form."""
    for name in FORM_FIELDS:
        value = getattr(args, name, None)
        if value is not None:
            ctrl.display.edit_dialog.set_field(name, value)


COMMANDS = {
    "list": _cmd_list,
    "search": _cmd_search,
    "stats": _cmd_stats,
    "show": _cmd_show,
    "add": _cmd_add,
    "edit": _cmd_edit,
    "delete": _cmd_delete,
    "export": _cmd_export,
}


# ── Runner ───────────────────────────────────────────────────────────


async def run(args, config: CatalogConfig) -> int:
    notifications = NotificationCenter(
        delay=config.notification_delay, listener=_print_notification
    )
    async with CatalogClient(config) as client:
        ctrl = CatalogController(
            client,
            config,
            notifications=notifications,
            confirm=_ask_confirm,
        )
        await COMMANDS[args.command](ctrl, args)
    return 1 if notifications.error_count else 0


def _add_form_options(parser: argparse.ArgumentParser, require_title: bool) -> None:
    parser.add_argument("--title", required=require_title)
    for name in FORM_FIELDS:
        if name != "title":
            parser.add_argument(f"--{name}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Citation catalog client")
    parser.add_argument("--config", help="Path to YAML config")
    parser.add_argument("--base-url", help="Override backend base URL")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("list", help="List all citations")
    p = sub.add_parser("search", help="Search citations")
    p.add_argument("query", nargs="?", default="")
    sub.add_parser("stats", help="Show catalog statistics")
    p = sub.add_parser("show", help="Show one citation in full")
    p.add_argument("id")

    p = sub.add_parser("add", help="Add a citation")
    _add_form_options(p, require_title=True)
    p = sub.add_parser("edit", help="Edit a citation")
    p.add_argument("id")
    _add_form_options(p, require_title=False)

    p = sub.add_parser("delete", help="Delete a citation")
    p.add_argument("id")
    p.add_argument("--yes", "-y", action="store_true", help="Skip confirmation")

    p = sub.add_parser("export", help="Download an export file")
    p.add_argument("format", choices=EXPORT_FORMATS)
    p.add_argument("--out", help="Directory to write into (default: config export_dir)")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    config = load_config(args.config)
    if args.base_url:
        config = CatalogConfig.model_validate(
            {**config.model_dump(), "base_url": args.base_url}
        )
    logger.debug("Backend: %s", config.base_url)

    return asyncio.run(run(args, config))


if __name__ == "__main__":
    sys.exit(main())
