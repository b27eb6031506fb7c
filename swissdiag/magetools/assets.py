"""Toggle JS/CSS/HTML merge, minify and bundling settings."""

from __future__ import annotations

import argparse
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from swissdiag.lib import console
from swissdiag.lib import logging_utils as logs
from swissdiag.lib.config_loader import Settings
from swissdiag.lib.magento_cli import MagentoCli, MagentoConfig, MagentoError


@dataclass(frozen=True)
class AssetSetting:
    option: str
    path: str
    label: str

    @property
    def dest(self) -> str:
        return self.option.replace("-", "_")


SETTINGS: List[AssetSetting] = [
    AssetSetting("merge-css", "dev/css/merge_css_files", "CSS Merge"),
    AssetSetting("minify-css", "dev/css/minify_files", "CSS Minification"),
    AssetSetting("merge-js", "dev/js/merge_files", "JS Merge"),
    AssetSetting("minify-js", "dev/js/minify_files", "JS Minification"),
    AssetSetting("bundle-js", "dev/js/enable_js_bundling", "JS Bundling"),
    AssetSetting("minify-html", "dev/template/minify_html", "HTML Minification"),
]

USAGE_EXAMPLES = [
    ("Enable all optimizations:", "swissdiag info:assets --enable-all"),
    ("Disable all optimizations:", "swissdiag info:assets --disable-all"),
    ("Enable CSS merge only:", "swissdiag info:assets --merge-css=1"),
    ("Disable JS minification:", "swissdiag info:assets --minify-js=0"),
    ("Multiple settings at once:", "swissdiag info:assets --merge-css=1 --minify-css=1 --merge-js=0"),
]


def flag_value(raw: str) -> int:
    value = str(raw).strip()
    if value not in {"0", "1"}:
        raise argparse.ArgumentTypeError(f"expected 1 or 0, got {raw!r}")
    return int(value)


def add_arguments(parser: argparse.ArgumentParser) -> None:
    for setting in SETTINGS:
        parser.add_argument(
            f"--{setting.option}",
            type=flag_value,
            metavar="0|1",
            help=f"Enable/Disable {setting.label} (1 or 0)",
        )
    bulk = parser.add_mutually_exclusive_group()
    bulk.add_argument("--enable-all", action="store_true", help="Enable all optimization settings")
    bulk.add_argument("--disable-all", action="store_true", help="Disable all optimization settings")


def requested_changes(args: argparse.Namespace) -> Dict[str, int]:
    if args.enable_all or args.disable_all:
        value = 1 if args.enable_all else 0
        return {setting.path: value for setting in SETTINGS}
    changes: Dict[str, int] = {}
    for setting in SETTINGS:
        value = getattr(args, setting.dest, None)
        if value is not None:
            changes[setting.path] = value
    return changes


def apply_changes(config: MagentoConfig, changes: Dict[str, int], title: str) -> None:
    console.section(f"🔧 {title}")
    for setting in SETTINGS:
        if setting.path not in changes:
            continue
        value = changes[setting.path]
        config.save(setting.path, value)
        console.item(f"{console.status_label(bool(value))} {setting.label}")
    logs.log_to_file("ASSETS", "swissdiag/assets/update", {"changes": changes})
    console.separator()


def current_values(config: MagentoConfig) -> Dict[str, bool]:
    values: Dict[str, bool] = {}
    for setting in SETTINGS:
        raw = config.get(setting.path)
        try:
            values[setting.path] = bool(int(raw or 0))
        except ValueError:
            values[setting.path] = False
    return values


def display_status(values: Dict[str, bool]) -> None:
    console.section("📊 CURRENT CONFIGURATION")
    rows = [
        [setting.label, console.status_label(values[setting.path]), "1" if values[setting.path] else "0"]
        for setting in SETTINGS
    ]
    console.table(["Setting", "Status", "Value"], rows)
    print()
    print("💡 Usage Examples:")
    print()
    for caption, command in USAGE_EXAMPLES:
        console.item(caption)
        console.item(f"  {command}")
        print()
    print(console.RULE)


def clean_cache(config: MagentoConfig, cache_types: Sequence[str]) -> List[str]:
    console.section("🧹 CLEANING CACHE")
    failed: List[str] = []
    for cache_type in cache_types:
        try:
            config.clean_cache(cache_type)
            console.item(f"✅ Cleaned: {cache_type}")
        except MagentoError:
            failed.append(cache_type)
            console.item(f"⚠️  Could not clean: {cache_type}")
    logs.log_to_file("ASSETS", "swissdiag/assets/cache", {"types": list(cache_types), "failed": failed})
    print()
    print(console.RULE)
    return failed


def run_assets(args: argparse.Namespace, config: MagentoConfig, cache_types: Sequence[str]) -> Optional[Dict[str, int]]:
    """Apply requested changes, print status; return the applied changes (or None)."""
    console.banner("⚡ ASSETS OPTIMIZATION MANAGER", "JS/CSS Merge & Minification Control")
    changes = requested_changes(args)
    if changes:
        if args.enable_all:
            title = "ENABLING ALL OPTIMIZATIONS"
        elif args.disable_all:
            title = "DISABLING ALL OPTIMIZATIONS"
        else:
            title = "UPDATING SETTINGS"
        apply_changes(config, changes, title)
    display_status(current_values(config))
    if not changes:
        return None
    clean_cache(config, cache_types)
    console.success_banner("Configuration updated successfully!")
    return changes


def cmd_assets(args: argparse.Namespace, settings: Settings) -> int:
    config = MagentoConfig(MagentoCli(settings.magento_root, settings.php_bin))
    run_assets(args, config, settings.cache_types)
    return 0
