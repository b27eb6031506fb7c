"""Configuration loading helpers for swissdiag.

Settings come from a YAML file (``--config``, ``SWISSDIAG_CONFIG`` or
``/etc/swissdiag/config.yaml``) with environment overrides on top, so the
tools run unchanged on a bare shop or under CI.
"""
from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

DEFAULT_CONFIG_FILE = Path("/etc/swissdiag/config.yaml")
DEFAULT_OVERRIDE_FOLDERS = [
    "app/code/Swissup/",
    "app/design/frontend/Swissup/",
    "app/code/Magento/",
    "app/design/frontend/Magento/",
]
DEFAULT_CACHE_TYPES = ["config", "full_page", "block_html", "layout"]

_ENV_KEYS = {
    "magento_root": "SWISSDIAG_MAGENTO_ROOT",
    "php_bin": "SWISSDIAG_PHP_BIN",
    "mysql_bin": "SWISSDIAG_MYSQL_BIN",
    "composer_bin": "SWISSDIAG_COMPOSER_BIN",
    "force": "SWISSDIAG_FORCE",
}


def truthy(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def config_file_path(explicit: Optional[str] = None) -> Path:
    if explicit:
        return Path(explicit)
    env_hint = os.environ.get("SWISSDIAG_CONFIG")
    if env_hint:
        return Path(env_hint)
    return DEFAULT_CONFIG_FILE


def load_yaml_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with path.open(encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
    except (OSError, yaml.YAMLError):
        return {}
    return data if isinstance(data, dict) else {}


def load_json_env(name: str) -> Dict[str, Any]:
    raw = os.environ.get(name)
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


@dataclass
class Settings:
    magento_root: Path
    php_bin: str = "php"
    mysql_bin: str = "mysql"
    composer_bin: str = "composer"
    state_dir: str = "var"
    force: bool = False
    override_folders: List[str] = field(default_factory=lambda: list(DEFAULT_OVERRIDE_FOLDERS))
    cache_types: List[str] = field(default_factory=lambda: list(DEFAULT_CACHE_TYPES))
    groups: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    @property
    def state_root(self) -> Path:
        path = Path(self.state_dir)
        if path.is_absolute():
            return path
        return self.magento_root / path


def load_settings(config_file: Optional[str] = None, magento_root: Optional[str] = None) -> Settings:
    """Resolve settings: CLI flag > environment > YAML > defaults."""
    data = load_yaml_file(config_file_path(config_file))
    for key, env_name in _ENV_KEYS.items():
        value = os.environ.get(env_name)
        if value:
            data[key] = value
    if magento_root:
        data["magento_root"] = magento_root

    root = Path(str(data.get("magento_root") or os.getcwd())).expanduser()
    settings = Settings(magento_root=root)
    for key in ("php_bin", "mysql_bin", "composer_bin", "state_dir"):
        if data.get(key):
            setattr(settings, key, str(data[key]))
    if "force" in data:
        settings.force = truthy(data["force"])
    folders = data.get("override_folders")
    if isinstance(folders, list):
        settings.override_folders = [str(item) for item in folders]
    cache_types = data.get("cache_types")
    if isinstance(cache_types, list):
        settings.cache_types = [str(item) for item in cache_types]
    groups = data.get("groups")
    if not isinstance(groups, dict):
        groups = {}
    groups.update(load_json_env("SWISSDIAG_GROUPS"))
    settings.groups = {str(k): v for k, v in groups.items() if isinstance(v, dict)}
    return settings
