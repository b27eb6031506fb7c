"""Store environment report: versions, overrides, database access, themes."""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from swissdiag.lib import console
from swissdiag.lib import logging_utils as logs
from swissdiag.lib.config_loader import Settings
from swissdiag.lib.magento_cli import (
    DbCredentials,
    MagentoCli,
    MagentoConfig,
    MagentoError,
    ThemeTable,
)

BASE_URL_PATHS = ("web/secure/base_url", "web/unsecure/base_url")


def environment_commands(settings: Settings) -> List[Dict[str, str]]:
    php = settings.php_bin
    composer = settings.composer_bin
    return [
        {"key": "php_version", "command": f"{php} -v | head -n 1 && whereis {php}"},
        {"key": "magento_version", "command": f"{php} bin/magento --version"},
        {"key": "composer_version", "command": f"{composer} --version && whereis {composer}"},
        {"key": "nginx_user", "command": "whoami"},
    ]


def label_for(key: str) -> str:
    return key.replace("_", " ").capitalize() + ":"


def is_folder_empty(path: Path) -> bool:
    return not any(path.iterdir())


def non_empty_overrides(root: Path, folders: List[str]) -> List[str]:
    flagged: List[str] = []
    for folder in folders:
        path = root / folder
        try:
            if not is_folder_empty(path):
                flagged.append(folder)
        except OSError:
            # missing or unreadable folders are not overrides
            continue
    return flagged


def admin_url(cli: MagentoCli, env: Dict[str, Any]) -> Optional[str]:
    backend = env.get("backend") if isinstance(env.get("backend"), dict) else {}
    front_name = str(backend.get("frontName") or "").strip("/")
    if not front_name:
        return None
    config = MagentoConfig(cli)
    for path in BASE_URL_PATHS:
        base = config.get(path)
        if base:
            return base.rstrip("/") + "/" + front_name
    return "/" + front_name


def gather(
    settings: Settings,
    cli: MagentoCli,
    theme_factory: Callable[[DbCredentials], ThemeTable],
) -> Dict[str, Any]:
    report: Dict[str, Any] = {"environment": []}
    for entry in environment_commands(settings):
        result = cli.shell(entry["command"])
        report["environment"].append(
            {
                "key": entry["key"],
                "command": entry["command"],
                "ok": result.ok,
                "output": result.stdout.strip() if result.ok else result.message,
            }
        )

    report["overrides"] = non_empty_overrides(settings.magento_root, settings.override_folders)

    try:
        env = cli.read_env_php()
        creds = DbCredentials.from_env(env)
    except MagentoError as exc:
        report["database"] = {"error": str(exc)}
        report["admin_url"] = None
        report["themes"] = {"error": str(exc)}
        return report

    report["database"] = {
        "host": creds.host,
        "dbname": creds.dbname,
        "username": creds.username,
        "password": creds.password,
        "table_prefix": creds.table_prefix,
    }
    report["admin_url"] = admin_url(cli, env)
    try:
        report["themes"] = theme_factory(creds).rows()
    except MagentoError as exc:
        report["themes"] = {"error": str(exc)}
    return report


def print_report(report: Dict[str, Any]) -> None:
    for entry in report["environment"]:
        print(label_for(entry["key"]))
        if entry["ok"]:
            print(entry["output"])
        else:
            logs.error(f'Error running "{entry["command"]}" command: {entry["output"]}')
        print("_____________________________")

    for folder in report["overrides"]:
        logs.warning(f'The folder "{folder}" is not empty.')
    print("_____________________________")

    database = report["database"]
    print("Database credentials:")
    if "error" in database:
        logs.error(database["error"])
    else:
        for key in ("host", "dbname", "username", "password", "table_prefix"):
            print(f"  {key:<13} {database[key]}")
    print("_____________________________")

    print(f"Admin URL: {report['admin_url'] or 'Unknown'}")
    print("_____________________________")

    print("Magento 2 Theme Table Data:")
    themes = report["themes"]
    if isinstance(themes, dict):
        logs.error(themes["error"])
    elif not themes:
        print("No themes found")
    else:
        rows = [
            [row["theme_id"], row["parent_id"], row["theme_title"], row["type"] + (" (virtual)" if row["type"] == "1" else "")]
            for row in themes
        ]
        console.table(["ID", "Parent ID", "Theme Title", "Type"], rows)


def cmd_info(args: argparse.Namespace, settings: Settings) -> int:
    cli = MagentoCli(settings.magento_root, settings.php_bin)
    report = gather(settings, cli, lambda creds: ThemeTable(creds, settings.mysql_bin))
    if args.json:
        print(json.dumps(report, ensure_ascii=False, indent=2))
    else:
        print_report(report)
    return 0
