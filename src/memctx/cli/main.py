"""CLI entrypoint for memctx.

Loads the authoritative context settings (from the worker, or from a
settings file), applies edits to a draft, prints the live preview of the
draft and optionally saves it.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from ..config import AppSettings, load_config
from ..errors import MemctxError
from ..logging_config import configure_logging
from ..settings import ContextSettingsEditor, JsonSettingsStore
from ..worker import WorkerClient, WorkerConfig, WorkerError
from .settings_cli import SettingsCLI

logger = logging.getLogger(__name__)


class _AppendOperation(argparse.Action):
    """Collect edit options in command-line order as (operation, value)."""

    def __call__(self, parser, namespace, values, option_string=None):
        operations = list(getattr(namespace, self.dest, None) or [])
        operations.append((self.const, values))
        setattr(namespace, self.dest, operations)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="memctx",
        description="Edit claude-mem context settings with a live preview.",
    )
    parser.add_argument("--config", type=Path, help="Path to memctx YAML config")
    parser.add_argument("--worker-url", help="Override the worker base URL")
    parser.add_argument(
        "--settings-file",
        type=Path,
        help="Load and save settings from this JSON file instead of the worker",
    )
    parser.add_argument(
        "--local",
        action="store_true",
        help="Use the configured settings file (editor.settings_file) instead of the worker",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("show", help="Show the current settings")

    preview = sub.add_parser("preview", help="Show the context preview")
    preview.add_argument("--project", help="Project to preview")

    edit = sub.add_parser(
        "edit",
        help="Edit settings, preview the result and save",
        description="Edits are applied in the order given.",
    )
    edit.add_argument("--project", help="Project to preview")
    edit.add_argument(
        "--set", action=_AppendOperation, const="set", dest="operations",
        metavar="KEY=VALUE", help="Set a value verbatim",
    )
    edit.add_argument(
        "--toggle", action=_AppendOperation, const="toggle", dest="operations",
        metavar="KEY", help="Flip a boolean setting",
    )
    edit.add_argument(
        "--toggle-member", action=_AppendOperation, const="toggle-member",
        dest="operations", metavar="KEY=MEMBER", help="Add or remove a filter member",
    )
    edit.add_argument(
        "--select-all", action=_AppendOperation, const="select-all", dest="operations",
        metavar="KEY", help="Select every option of a filter",
    )
    edit.add_argument(
        "--select-none", action=_AppendOperation, const="select-none", dest="operations",
        metavar="KEY", help="Clear every option of a filter",
    )
    edit.add_argument(
        "--dry-run", action="store_true", help="Preview the edits without saving"
    )
    return parser


async def run(args: argparse.Namespace, settings: AppSettings) -> int:
    """Run one CLI command; returns the process exit code."""
    config = WorkerConfig.from_settings(settings)
    if args.worker_url:
        config = WorkerConfig(
            url=args.worker_url,
            timeout=config.timeout,
            preview_timeout=config.preview_timeout,
        )

    async with WorkerClient(config) as client:
        settings_file = args.settings_file or (settings.editor.settings_file if args.local else None)
        store = JsonSettingsStore(settings_file) if settings_file else None
        try:
            configuration = store.load() if store else await client.get_settings()
        except (MemctxError, WorkerError) as e:
            print(f"✗ {e}", file=sys.stderr)
            return 1

        editor = ContextSettingsEditor(
            save_handler=store or client,
            preview_service=client,
            status_clear_seconds=settings.editor.status_clear_seconds,
        )
        cli = SettingsCLI(editor)
        editor.open(configuration)
        try:
            if args.command == "show":
                cli.show()
                return 0

            if getattr(args, "project", None):
                editor.set_selected_project(args.project)

            for operation, argument in getattr(args, "operations", None) or []:
                error = cli.apply(operation, argument)
                if error:
                    print(f"✗ {error}", file=sys.stderr)
                    return 2

            if args.command == "edit":
                cli.show()
                cli.show_warnings()

            cli.show_preview(await editor.wait_preview())

            if args.command == "edit" and not args.dry_run:
                if not editor.controller.is_dirty:
                    print("No changes to save")
                    return 0
                result = await editor.save()
                print(editor.save_status)
                return 0 if result.success else 1
            return 0
        finally:
            editor.close()


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = load_config(config_path=args.config)
    configure_logging(settings.logging, debug=args.debug)

    try:
        return asyncio.run(run(args, settings))
    except KeyboardInterrupt:
        return 130
