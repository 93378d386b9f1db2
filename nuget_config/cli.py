"""
`nugetcfg` command line interface.

Inspects and edits NuGet.Config files. Every edit goes through the
position-aware editor, so only the bytes of the touched entries change.

Commands
--------
nugetcfg show                              -- summarize the config
nugetcfg positions                         -- list tracked elements and their spans
nugetcfg add-source <key> <url> [--protocol-version V]
nugetcfg remove-source <key>
nugetcfg set-url <key> <url>
nugetcfg set-version <key> <version>
nugetcfg enable <key>
nugetcfg disable <key>
nugetcfg set-option <key> <value>
nugetcfg remove-option <key>
nugetcfg init <path> [--force]             -- write a default config

Global options: --file PATH (otherwise the search locations are used),
--config SETTINGS (a .nugetcfg.yaml), --dry-run, -v.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Callable, Optional

from .config import Config
from .editing import ConfigEditor
from .errors import NuGetConfigError
from .finder import ConfigFinder, default_config_locations
from .manager import ConfigManager

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _manager(settings: Config) -> ConfigManager:
    search_paths = settings.SEARCH_PATHS + default_config_locations()
    finder = ConfigFinder(search_paths=search_paths, env_var=settings.CONFIG_FILE_ENV_VAR)
    return ConfigManager(finder)


def _target_path(args: argparse.Namespace, manager: ConfigManager) -> str:
    if args.file:
        return args.file
    return manager.finder.find_config_file()


def _run_edit(args: argparse.Namespace, mutate: Callable[[ConfigEditor], object]) -> None:
    """Load with positions, queue edits via *mutate*, then write or print."""
    settings: Config = args.settings
    manager = _manager(settings)
    path = _target_path(args, manager)

    editor = ConfigEditor(manager.load_with_positions(path), indent_unit=settings.DEFAULT_INDENT)
    mutate(editor)
    if not editor.is_dirty:
        print(f"No changes to {path}")
        return

    count = len(editor.pending_edits)
    output = editor.apply_edits()
    if args.dry_run:
        sys.stdout.write(output.decode("utf-8"))
        return
    manager.write_bytes(path, output)
    print(f"Updated {path} ({count} edit(s))")


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------

def _cmd_show(args: argparse.Namespace) -> None:
    manager = _manager(args.settings)
    path = _target_path(args, manager)
    config = manager.load_config(path)

    print(f"\n{path}")
    print("-" * 60)
    print("Package sources" + ("  (cleared)" if config.package_sources.clear else ""))
    for source in config.package_sources.sources:
        flags = []
        if source.protocol_version:
            flags.append(f"v{source.protocol_version}")
        if config.is_disabled(source.key):
            flags.append("disabled")
        suffix = f"  [{', '.join(flags)}]" if flags else ""
        print(f"  {source.key:<24} {source.value}{suffix}")

    if config.active_package_source is not None:
        print(f"Active source  : {config.active_package_source.key}")
    if config.package_source_credentials is not None:
        names = ", ".join(config.package_source_credentials.sources) or "(none)"
        print(f"Credentials for: {names}")
    if config.config is not None and config.config.options:
        print("Options")
        for option in config.config.options:
            print(f"  {option.key:<24} {option.value}")


def _cmd_positions(args: argparse.Namespace) -> None:
    manager = _manager(args.settings)
    result = manager.load_with_positions(_target_path(args, manager))
    for path, element in result.positions.items():
        start, end = element.range.start, element.range.end
        print(
            f"  {start.line}:{start.column}-{end.line}:{end.column}"
            f"  [{start.offset}:{end.offset})  {path}"
        )


def _cmd_add_source(args: argparse.Namespace) -> None:
    version = args.protocol_version or args.settings.DEFAULT_PROTOCOL_VERSION
    _run_edit(args, lambda e: e.add_or_update_source(args.key, args.url, version))


def _cmd_remove_source(args: argparse.Namespace) -> None:
    _run_edit(args, lambda e: e.remove_source(args.key))


def _cmd_set_url(args: argparse.Namespace) -> None:
    _run_edit(args, lambda e: e.update_package_source_url(args.key, args.url))


def _cmd_set_version(args: argparse.Namespace) -> None:
    _run_edit(args, lambda e: e.update_package_source_version(args.key, args.version))


def _cmd_enable(args: argparse.Namespace) -> None:
    _run_edit(args, lambda e: e.enable_source(args.key))


def _cmd_disable(args: argparse.Namespace) -> None:
    _run_edit(args, lambda e: e.disable_source(args.key))


def _cmd_set_option(args: argparse.Namespace) -> None:
    _run_edit(args, lambda e: e.set_config_option(args.key, args.value))


def _cmd_remove_option(args: argparse.Namespace) -> None:
    _run_edit(args, lambda e: e.remove_config_option(args.key))


def _cmd_init(args: argparse.Namespace) -> None:
    if os.path.exists(args.path) and not args.force:
        print(f"{args.path} already exists (use --force to overwrite)", file=sys.stderr)
        sys.exit(1)
    ConfigManager().initialize_default_config(args.path)
    print(f"Created {args.path}")


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------

def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nugetcfg",
        description="Inspect and edit NuGet.Config files without reformatting them",
    )
    parser.add_argument("--file", "-f", default=None,
                        help="NuGet.Config to operate on (default: search locations)")
    parser.add_argument("--config", dest="settings_path", default=None,
                        help="Path to a .nugetcfg.yaml settings file")
    parser.add_argument("--dry-run", action="store_true",
                        help="Print the edited document instead of writing it")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    show_p = subparsers.add_parser("show", help="Summarize the config")
    show_p.set_defaults(func=_cmd_show)

    positions_p = subparsers.add_parser("positions", help="List tracked element spans")
    positions_p.set_defaults(func=_cmd_positions)

    add_p = subparsers.add_parser("add-source", help="Add or update a package source")
    add_p.add_argument("key")
    add_p.add_argument("url")
    add_p.add_argument("--protocol-version", dest="protocol_version", default=None)
    add_p.set_defaults(func=_cmd_add_source)

    remove_p = subparsers.add_parser("remove-source", help="Remove a package source")
    remove_p.add_argument("key")
    remove_p.set_defaults(func=_cmd_remove_source)

    url_p = subparsers.add_parser("set-url", help="Change a source URL")
    url_p.add_argument("key")
    url_p.add_argument("url")
    url_p.set_defaults(func=_cmd_set_url)

    version_p = subparsers.add_parser("set-version", help="Change a source protocol version")
    version_p.add_argument("key")
    version_p.add_argument("version")
    version_p.set_defaults(func=_cmd_set_version)

    enable_p = subparsers.add_parser("enable", help="Re-enable a disabled source")
    enable_p.add_argument("key")
    enable_p.set_defaults(func=_cmd_enable)

    disable_p = subparsers.add_parser("disable", help="Disable a source")
    disable_p.add_argument("key")
    disable_p.set_defaults(func=_cmd_disable)

    option_p = subparsers.add_parser("set-option", help="Set a <config> option")
    option_p.add_argument("key")
    option_p.add_argument("value")
    option_p.set_defaults(func=_cmd_set_option)

    unset_p = subparsers.add_parser("remove-option", help="Remove a <config> option")
    unset_p.add_argument("key")
    unset_p.set_defaults(func=_cmd_remove_option)

    init_p = subparsers.add_parser("init", help="Write a default NuGet.Config")
    init_p.add_argument("path")
    init_p.add_argument("--force", action="store_true", help="Overwrite an existing file")
    init_p.set_defaults(func=_cmd_init)

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main(argv: Optional[list[str]] = None) -> None:
    """
    Main entry point for `nugetcfg`.

    Parameters
    ----------
    argv:
        Argument list without the program name. Defaults to sys.argv if None.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)
    args.settings = Config.load(args.settings_path)

    # Configure logging if not already configured
    if not logging.root.handlers:
        level = logging.DEBUG if args.verbose else getattr(
            logging, args.settings.LOG_LEVEL, logging.WARNING)
        logging.basicConfig(
            level=level,
            format="%(levelname)s  %(name)s  %(message)s",
        )

    try:
        args.func(args)
    except (NuGetConfigError, OSError) as exc:
        logger.debug("[CLI] %s failed", args.command, exc_info=True)
        print(f"error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
