"""Thin adapters over a Magento install: bin/magento, php, mysql and the shell.

Every call goes through a ``runner`` callable (``run`` by default) so tests
can substitute canned responses.
"""
from __future__ import annotations

import json
import os
import re
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

MODULE_NAME_RE = re.compile(r"^[A-Za-z0-9]+_[A-Za-z0-9_]+$")
ENV_PHP_SNIPPET = "echo json_encode(include 'app/etc/env.php');"


class MagentoError(RuntimeError):
    """Raised when a bin/magento (or helper) command fails."""


class EnablerError(MagentoError):
    """Raised when module:enable / module:disable fails."""


@dataclass
class CommandResult:
    cmd: List[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def message(self) -> str:
        return (self.stderr or self.stdout).strip() or f"exit code {self.returncode}"


Runner = Callable[..., CommandResult]


def run(cmd: Sequence[str], cwd: Optional[Path] = None, env: Optional[Dict[str, str]] = None) -> CommandResult:
    full_env = None
    if env:
        full_env = os.environ.copy()
        full_env.update(env)
    try:
        proc = subprocess.run(
            list(cmd),
            cwd=str(cwd) if cwd else None,
            env=full_env,
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as exc:
        return CommandResult(list(cmd), 127, "", str(exc))
    return CommandResult(list(cmd), proc.returncode, proc.stdout, proc.stderr)


def parse_module_list(text: str) -> List[str]:
    """Pick module names out of ``module:status`` output."""
    names: List[str] = []
    for line in text.splitlines():
        candidate = line.strip()
        if MODULE_NAME_RE.match(candidate):
            names.append(candidate)
    return names


class MagentoCli:
    def __init__(self, root: Path, php_bin: str = "php", runner: Runner = run) -> None:
        self.root = Path(root)
        self.php_bin = php_bin
        self.runner = runner

    def magento(self, *args: str) -> CommandResult:
        return self.runner([self.php_bin, "bin/magento", *args], cwd=self.root)

    def check(self, *args: str) -> str:
        result = self.magento(*args)
        if not result.ok:
            raise MagentoError(f"bin/magento {' '.join(args)} failed: {result.message}")
        return result.stdout

    def shell(self, command: str) -> CommandResult:
        return self.runner(["sh", "-c", command], cwd=self.root)

    def read_env_php(self) -> Dict[str, object]:
        result = self.runner([self.php_bin, "-r", ENV_PHP_SNIPPET], cwd=self.root)
        if not result.ok:
            raise MagentoError(f"Unable to read app/etc/env.php: {result.message}")
        try:
            data = json.loads(result.stdout)
        except ValueError as exc:
            raise MagentoError(f"app/etc/env.php did not produce JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise MagentoError("app/etc/env.php must return an array")
        return data


class MagentoModuleRegistry:
    """Module list and status as reported by ``module:status``."""

    def __init__(self, cli: MagentoCli) -> None:
        self.cli = cli
        self._enabled: Optional[List[str]] = None
        self._disabled: Optional[List[str]] = None

    def refresh(self) -> None:
        self._enabled = parse_module_list(self.cli.check("module:status", "--enabled"))
        self._disabled = parse_module_list(self.cli.check("module:status", "--disabled"))

    def _ensure(self) -> None:
        if self._enabled is None or self._disabled is None:
            self.refresh()

    def list_all(self) -> List[str]:
        self._ensure()
        enabled = self._enabled or []
        return enabled + [name for name in self._disabled or [] if name not in enabled]

    def is_enabled(self, name: str) -> bool:
        self._ensure()
        return name in (self._enabled or [])


class MagentoModuleEnabler:
    def __init__(self, cli: MagentoCli, force: bool = False) -> None:
        self.cli = cli
        self.force = force

    def set_enabled(self, enabled: bool, names: Sequence[str]) -> None:
        if not names:
            return
        args = ["module:enable" if enabled else "module:disable"]
        if self.force:
            args.append("--force")
        args.extend(names)
        result = self.cli.magento(*args)
        if not result.ok:
            action = "enable" if enabled else "disable"
            raise EnablerError(f"Failed to {action} modules: {result.message}")


class MagentoConfig:
    """Read/write ``core_config_data`` through config:show / config:set."""

    def __init__(self, cli: MagentoCli) -> None:
        self.cli = cli

    def get(self, path: str) -> Optional[str]:
        result = self.cli.magento("config:show", path)
        if not result.ok:
            return None
        value = result.stdout.strip()
        return value or None

    def save(self, path: str, value: object) -> None:
        self.cli.check("config:set", path, str(value))

    def clean_cache(self, cache_type: str) -> None:
        self.cli.check("cache:clean", cache_type)


@dataclass
class DbCredentials:
    host: str
    dbname: str
    username: str
    password: str
    table_prefix: str = ""

    @classmethod
    def from_env(cls, env: Dict[str, object]) -> "DbCredentials":
        db = env.get("db") if isinstance(env.get("db"), dict) else {}
        connections = db.get("connection") if isinstance(db.get("connection"), dict) else {}
        default = connections.get("default") if isinstance(connections.get("default"), dict) else {}
        if not default:
            raise MagentoError("env.php has no db/connection/default section")
        return cls(
            host=str(default.get("host") or "localhost"),
            dbname=str(default.get("dbname") or ""),
            username=str(default.get("username") or ""),
            password=str(default.get("password") or ""),
            table_prefix=str(db.get("table_prefix") or ""),
        )


class ThemeTable:
    """Access to the ``theme`` table through the mysql client."""

    COLUMNS = ("theme_id", "parent_id", "theme_title", "type")

    def __init__(self, credentials: DbCredentials, mysql_bin: str = "mysql", runner: Runner = run) -> None:
        self.credentials = credentials
        self.mysql_bin = mysql_bin
        self.runner = runner

    @property
    def table(self) -> str:
        return f"{self.credentials.table_prefix}theme"

    def _query(self, sql: str) -> str:
        creds = self.credentials
        cmd = [self.mysql_bin, "--batch", "--raw", "--skip-column-names"]
        host, _, port = creds.host.partition(":")
        if host:
            cmd.extend(["-h", host])
        if port:
            cmd.extend(["-P", port])
        if creds.username:
            cmd.extend(["-u", creds.username])
        cmd.extend(["-e", sql, creds.dbname])
        result = self.runner(cmd, env={"MYSQL_PWD": creds.password})
        if not result.ok:
            raise MagentoError(f"mysql query failed: {result.message}")
        return result.stdout

    def rows(self, only_virtual: bool = False) -> List[Dict[str, str]]:
        sql = f"SELECT {', '.join(self.COLUMNS)} FROM {self.table}"
        if only_virtual:
            sql += " WHERE type = 1"
        sql += " ORDER BY theme_id"
        rows: List[Dict[str, str]] = []
        for line in self._query(sql).splitlines():
            if not line.strip():
                continue
            parts = line.split("\t")
            parts += [""] * (len(self.COLUMNS) - len(parts))
            rows.append(dict(zip(self.COLUMNS, parts)))
        return rows

    def fix_virtual(self) -> int:
        output = self._query(f"UPDATE {self.table} SET type = 0 WHERE type = 1; SELECT ROW_COUNT();")
        lines = [line.strip() for line in output.splitlines() if line.strip()]
        try:
            return int(lines[-1]) if lines else 0
        except ValueError:
            return 0
