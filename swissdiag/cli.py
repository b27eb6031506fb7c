#!/usr/bin/env python3
"""swissdiag: administrative helpers for a Magento 2 shop."""

from __future__ import annotations

import argparse
from typing import Iterable, Optional

from swissdiag.lib import logging_utils as logs
from swissdiag.lib.config_loader import Settings, load_settings
from swissdiag.lib.magento_cli import MagentoError
from swissdiag.lib.module_snapshot import SnapshotError
from swissdiag.magetools import assets, info, module_toggle, virtualfix


def _add_no_interaction(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-n",
        "--no-interaction",
        "-y",
        "--yes",
        dest="no_interaction",
        action="store_true",
        help="Do not ask for confirmation",
    )


def cmd_group(args: argparse.Namespace, settings: Settings) -> int:
    groups = module_toggle.build_groups(settings.groups)
    if args.group not in groups:
        logs.error(f"Unknown module group '{args.group}' (known: {', '.join(sorted(groups))})")
        return 1
    if args.action == "disable":
        return module_toggle.cmd_disable(args, settings)
    return module_toggle.cmd_enable(args, settings)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="swissdiag", description="Magento 2 store diagnostics and maintenance")
    parser.add_argument("--root", help="Magento root directory (default: SWISSDIAG_MAGENTO_ROOT or cwd)")
    parser.add_argument("--config", help="YAML config file (default: SWISSDIAG_CONFIG or /etc/swissdiag/config.yaml)")
    sub = parser.add_subparsers(dest="command", required=True)

    info_parser = sub.add_parser("info", help="Store environment information")
    info_parser.add_argument("--json", action="store_true", help="Output JSON report")
    info_parser.set_defaults(func=info.cmd_info)

    assets_parser = sub.add_parser(
        "info:assets", aliases=["assets"], help="Manage JS/CSS merge and minification settings"
    )
    assets.add_arguments(assets_parser)
    assets_parser.set_defaults(func=assets.cmd_assets)

    fix_parser = sub.add_parser("info:virtualfix", aliases=["virtualfix"], help="Fix Virtual themes")
    fix_parser.add_argument("--dry-run", action="store_true", help="Only list virtual themes")
    fix_parser.set_defaults(func=virtualfix.cmd_virtualfix)

    for group in module_toggle.BUILTIN_GROUPS.values():
        disable = sub.add_parser(
            f"info:disable-{group.name}",
            aliases=[f"disable-{group.name}"],
            help=f"Disable all currently enabled {group.label} modules",
        )
        disable.set_defaults(func=cmd_group, group=group.name, action="disable")

        enable = sub.add_parser(
            f"info:enable-{group.name}",
            aliases=[f"enable-{group.name}"],
            help=f"Enable previously disabled {group.label} modules",
        )
        _add_no_interaction(enable)
        enable.set_defaults(func=cmd_group, group=group.name, action="enable")

    disable_any = sub.add_parser("disable-group", help="Disable a module group defined in the config")
    disable_any.add_argument("group")
    disable_any.set_defaults(func=cmd_group, action="disable")

    enable_any = sub.add_parser("enable-group", help="Restore a module group defined in the config")
    enable_any.add_argument("group")
    _add_no_interaction(enable_any)
    enable_any.set_defaults(func=cmd_group, action="enable")

    return parser


def main(argv: Optional[Iterable[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    settings = load_settings(args.config, args.root)
    try:
        return args.func(args, settings)
    except (MagentoError, SnapshotError) as exc:
        logs.error(str(exc))
        logs.log_to_file("ERROR", f"swissdiag/{args.command}", {"error": str(exc)})
        return 1
    except KeyboardInterrupt:
        logs.warning("Interrupted.")
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
