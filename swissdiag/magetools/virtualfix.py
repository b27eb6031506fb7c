"""Turn virtual themes (type = 1) back into physical ones (type = 0)."""

from __future__ import annotations

import argparse

from swissdiag.lib import console
from swissdiag.lib import logging_utils as logs
from swissdiag.lib.config_loader import Settings
from swissdiag.lib.magento_cli import DbCredentials, MagentoCli, ThemeTable


def fix_virtual_themes(table: ThemeTable, dry_run: bool = False) -> int:
    virtual = table.rows(only_virtual=True)
    if not virtual:
        logs.info("No virtual themes found.")
        return 0
    console.table(
        ["ID", "Parent ID", "Theme Title", "Type"],
        [[row["theme_id"], row["parent_id"], row["theme_title"], row["type"]] for row in virtual],
    )
    if dry_run:
        logs.info(f"{len(virtual)} theme(s) would be switched to type 0 (dry run).")
        return len(virtual)
    fixed = table.fix_virtual()
    logs.log_to_file(
        "THEMES",
        "swissdiag/virtualfix",
        {"fixed": fixed, "themes": [row["theme_title"] for row in virtual]},
    )
    return fixed


def cmd_virtualfix(args: argparse.Namespace, settings: Settings) -> int:
    cli = MagentoCli(settings.magento_root, settings.php_bin)
    table = ThemeTable(DbCredentials.from_env(cli.read_env_php()), settings.mysql_bin)
    logs.info("Executing virtual theme fix...")
    fixed = fix_virtual_themes(table, dry_run=args.dry_run)
    if not args.dry_run:
        logs.success(f"Virtual fix operations completed ({fixed} theme(s) updated).")
    return 0
