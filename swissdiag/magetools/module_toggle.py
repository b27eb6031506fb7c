"""Bulk disable / restore of Magento module groups.

``disable_group`` records which modules of a group are enabled, then disables
them; ``enable_group`` re-enables exactly that recorded list and drops the
record.  Both flows hold the group's snapshot lock for their whole run.
"""

from __future__ import annotations

import argparse
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol, Sequence, Tuple

from swissdiag.lib import console
from swissdiag.lib import logging_utils as logs
from swissdiag.lib.config_loader import Settings
from swissdiag.lib.magento_cli import (
    EnablerError,
    MagentoCli,
    MagentoModuleEnabler,
    MagentoModuleRegistry,
)
from swissdiag.lib.module_snapshot import (
    CleanupWarning,
    CorruptSnapshotError,
    PersistenceError,
    SnapshotLockedError,
    SnapshotNotFoundError,
    SnapshotStore,
    unique,
)

NOOP = "noop"
SUCCESS = "success"
FAILURE = "failure"

REMINDER = "Remember to run setup:upgrade and cache:flush after this operation!"


class ModuleRegistry(Protocol):
    def list_all(self) -> List[str]: ...

    def is_enabled(self, name: str) -> bool: ...


class ModuleEnabler(Protocol):
    def set_enabled(self, enabled: bool, names: Sequence[str]) -> None: ...


@dataclass(frozen=True)
class ModuleGroup:
    name: str
    label: str
    include_prefixes: Tuple[str, ...] = ()
    exclude_prefixes: Tuple[str, ...] = ()
    state_file: str = ""

    def matches(self, module: str) -> bool:
        if self.include_prefixes and not module.startswith(self.include_prefixes):
            return False
        if self.exclude_prefixes and module.startswith(self.exclude_prefixes):
            return False
        return True

    def select(self, modules: Iterable[str]) -> List[str]:
        return sorted(unique(name for name in modules if self.matches(name)))

    @property
    def file_name(self) -> str:
        return self.state_file or f"{self.name}_modules_state.json"

    @property
    def disable_command(self) -> str:
        return f"swissdiag info:disable-{self.name}"

    @property
    def enable_command(self) -> str:
        return f"swissdiag info:enable-{self.name}"


BUILTIN_GROUPS: Dict[str, ModuleGroup] = {
    "swissup": ModuleGroup(
        name="swissup",
        label="Swissup",
        include_prefixes=("Swissup_",),
        state_file="swissup_modules_state.json",
    ),
    "thirdparty": ModuleGroup(
        name="thirdparty",
        label="3rd-party",
        exclude_prefixes=("Magento_", "Swissup_"),
        state_file="thirdparty_modules_state.json",
    ),
}


def _prefixes(value: Any, fallback: Tuple[str, ...]) -> Tuple[str, ...]:
    if value is None:
        return fallback
    if isinstance(value, str):
        return (value,)
    return tuple(str(item) for item in value)


def build_groups(overrides: Optional[Dict[str, Dict[str, Any]]] = None) -> Dict[str, ModuleGroup]:
    """Merge config-defined groups over the built-in ones."""
    groups = dict(BUILTIN_GROUPS)
    for name, entry in (overrides or {}).items():
        base = groups.get(name) or ModuleGroup(name=name, label=name)
        groups[name] = ModuleGroup(
            name=name,
            label=str(entry.get("label") or base.label),
            include_prefixes=_prefixes(entry.get("include_prefixes"), base.include_prefixes),
            exclude_prefixes=_prefixes(entry.get("exclude_prefixes"), base.exclude_prefixes),
            state_file=str(entry.get("state_file") or base.state_file),
        )
    return groups


@dataclass
class FlowResult:
    status: str
    message: str
    modules: List[str] = field(default_factory=list)
    error_kind: Optional[str] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def exit_code(self) -> int:
        return 1 if self.status == FAILURE else 0


def _failure(kind: str, message: str, modules: Sequence[str] = ()) -> FlowResult:
    logs.error(message)
    return FlowResult(FAILURE, message, list(modules), error_kind=kind)


def disable_group(
    group: ModuleGroup,
    registry: ModuleRegistry,
    enabler: ModuleEnabler,
    store: SnapshotStore,
) -> FlowResult:
    console.banner(f"🔴 DISABLE {group.label.upper()} MODULES", f"Disabling All Active {group.label} Modules")
    try:
        with store.lock(group.name):
            members = group.select(registry.list_all())
            if not members:
                logs.warning(f"No {group.label} modules found in the system.")
                return FlowResult(NOOP, f"No {group.label} modules found")

            enabled = [name for name in members if registry.is_enabled(name)]
            if not enabled:
                logs.warning(f"All {group.label} modules are already disabled.")
                return FlowResult(NOOP, f"All {group.label} modules are already disabled")

            console.section("📋 MODULES TO DISABLE")
            console.table(["Module Name", "Current Status"], console.module_rows(members, registry.is_enabled))
            console.separator()

            console.section("💾 SAVING CURRENT STATE")
            try:
                snapshot = store.capture(group.name, enabled)
            except PersistenceError as exc:
                return _failure("persistence", str(exc))
            path = store.path_for(group.name)
            console.item(f"✅ State saved to: {path}")
            console.item(f"📊 Enabled modules count: {len(enabled)}")
            logs.log_to_file(
                "MODULES",
                f"swissdiag/{group.name}/capture",
                {"path": str(path), "modules": list(snapshot.enabled_modules) if snapshot else []},
            )
            console.separator()

            console.section("🔄 DISABLING MODULES")
            console.item(f"Disabling {len(enabled)} module(s)...")
            try:
                enabler.set_enabled(False, enabled)
            except EnablerError as exc:
                logs.log_to_file("MODULES", f"swissdiag/{group.name}/disable", {"ok": False, "error": str(exc)})
                logs.info(f"Snapshot kept at {path}; run {group.enable_command} to restore.")
                return _failure("enabler", str(exc), enabled)
            for name in enabled:
                console.item(f"❌ {name}")
            console.item("✅ All modules disabled successfully")
            logs.log_to_file("MODULES", f"swissdiag/{group.name}/disable", {"ok": True, "modules": enabled})
            console.separator()
    except SnapshotLockedError as exc:
        return _failure("locked", str(exc))
    except PersistenceError as exc:
        return _failure("persistence", str(exc))

    console.success_banner(f"{group.label} modules disabled successfully!")
    print(f"💡 To enable them back, run: {group.enable_command}")
    print(f"⚠️  {REMINDER}")
    print()
    return FlowResult(SUCCESS, f"Disabled {len(enabled)} {group.label} module(s)", enabled)


def enable_group(
    group: ModuleGroup,
    registry: ModuleRegistry,
    enabler: ModuleEnabler,
    store: SnapshotStore,
    confirm: Callable[[str], bool] = console.confirm,
    assume_yes: bool = False,
) -> FlowResult:
    console.banner(f"🟢 ENABLE {group.label.upper()} MODULES", "Restoring Previously Enabled Modules")
    warnings: List[str] = []
    try:
        with store.lock(group.name):
            path = store.path_for(group.name)
            try:
                snapshot = store.load(group.name)
            except SnapshotNotFoundError:
                logs.error("No state file found!")
                logs.warning(f"The state file is created when you run {group.disable_command}")
                print(f"💡 You need to disable {group.label} modules first before enabling them.")
                print()
                return FlowResult(FAILURE, "Nothing to restore", error_kind="not_found")
            except CorruptSnapshotError as exc:
                return _failure("corrupt", f"{exc}; fix or remove it manually")
            modules = list(snapshot.enabled_modules)
            if not modules:
                logs.warning("No modules to enable. State file is empty.")
                return FlowResult(NOOP, "State file is empty")

            console.section("📂 LOADING SAVED STATE")
            console.item(f"✅ State loaded from: {path}")
            console.item(f"📅 Saved on: {snapshot.taken_at}")
            console.item(f"📊 Modules to enable: {len(modules)}")
            console.separator()

            shown = group.select(registry.list_all())
            shown += [name for name in modules if name not in shown]
            console.section("📋 MODULES TO ENABLE")
            console.table(
                ["Module Name", "Current Status", "Will Enable"],
                console.module_rows(shown, registry.is_enabled, will_enable=modules),
            )
            console.separator()

            if not assume_yes and not confirm(
                f"⚠️  Are you sure you want to enable {len(modules)} {group.label} module(s)?"
            ):
                logs.warning("Operation cancelled by user.")
                return FlowResult(NOOP, "Cancelled by user", modules)

            console.section("🔄 ENABLING MODULES")
            console.item(f"Enabling {len(modules)} module(s)...")
            try:
                enabler.set_enabled(True, modules)
            except EnablerError as exc:
                logs.log_to_file("MODULES", f"swissdiag/{group.name}/enable", {"ok": False, "error": str(exc)})
                logs.info(f"Snapshot kept at {path}; re-run {group.enable_command} after fixing the error.")
                return _failure("enabler", str(exc), modules)
            for name in modules:
                console.item(f"✅ {name}")
            console.item("✅ All modules enabled successfully")
            logs.log_to_file("MODULES", f"swissdiag/{group.name}/enable", {"ok": True, "modules": modules})
            console.separator()

            console.section("🧹 CLEANUP")
            try:
                store.discard(group.name)
                console.item(f"✅ State file removed: {path}")
                logs.log_to_file("MODULES", f"swissdiag/{group.name}/discard", {"path": str(path)})
            except CleanupWarning as exc:
                warnings.append(str(exc))
                logs.warning(str(exc))
            console.separator()
    except SnapshotLockedError as exc:
        return _failure("locked", str(exc))
    except PersistenceError as exc:
        return _failure("persistence", str(exc))

    console.success_banner(f"{group.label} modules enabled successfully!")
    print(f"⚠️  {REMINDER}")
    print()
    return FlowResult(SUCCESS, f"Enabled {len(modules)} {group.label} module(s)", modules, warnings=warnings)


def make_store(settings: Settings, groups: Dict[str, ModuleGroup]) -> SnapshotStore:
    return SnapshotStore(settings.state_root, {name: group.file_name for name, group in groups.items()})


def cmd_disable(args: argparse.Namespace, settings: Settings) -> int:
    groups = build_groups(settings.groups)
    group = groups[args.group]
    cli = MagentoCli(settings.magento_root, settings.php_bin)
    result = disable_group(
        group,
        MagentoModuleRegistry(cli),
        MagentoModuleEnabler(cli, force=settings.force),
        make_store(settings, groups),
    )
    return result.exit_code


def cmd_enable(args: argparse.Namespace, settings: Settings) -> int:
    groups = build_groups(settings.groups)
    group = groups[args.group]
    cli = MagentoCli(settings.magento_root, settings.php_bin)
    result = enable_group(
        group,
        MagentoModuleRegistry(cli),
        MagentoModuleEnabler(cli, force=settings.force),
        make_store(settings, groups),
        assume_yes=args.no_interaction,
    )
    return result.exit_code
