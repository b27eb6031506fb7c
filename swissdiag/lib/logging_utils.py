"""Console and action-log helpers for swissdiag commands."""
from __future__ import annotations

import json
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict

DEFAULT_ACTION_LOG = Path("/var/log/swissdiag/actions.log")


def action_log_path() -> Path:
    """Return the action log path, honoring SWISSDIAG_ACTION_LOG."""
    override = os.environ.get("SWISSDIAG_ACTION_LOG")
    if override:
        return Path(override)
    return DEFAULT_ACTION_LOG


def log(level: str, message: str) -> None:
    stream = sys.stderr if level == "ERROR" else sys.stdout
    print(f"[{level}] {message}", file=stream)


def info(message: str) -> None:
    log("INFO", message)


def success(message: str) -> None:
    log("SUCCESS", message)


def warning(message: str) -> None:
    log("WARNING", message)


def error(message: str) -> None:
    log("ERROR", message)


def log_to_file(label: str, tag: str, payload: Dict[str, Any]) -> None:
    path = action_log_path()
    timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    line = f"{timestamp} [{label}] tag={tag} payload={json.dumps(payload, ensure_ascii=False)}\n"
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a", encoding="utf-8") as fh:
            fh.write(line)
    except OSError:  # pragma: no cover - log dir not writable
        pass
