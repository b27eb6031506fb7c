"""Persisted snapshots of which modules of a group were enabled.

A snapshot is written right before a group of modules is bulk-disabled and
consumed when the group is restored, so the restore enables exactly what was
on before.  One JSON file per group lives under the shop's ``var`` directory::

    {
      "timestamp": "2025-01-31 12:00:00",
      "enabled_modules": ["Swissup_Core", "Swissup_Ajaxpro"]
    }

Writes go to a temporary file in the same directory and are renamed over the
target, so a reader never sees a half-written snapshot.  ``lock()`` takes an
exclusive advisory ``flock`` on a sibling ``.lock`` file; callers hold it for
capture+disable and for load+enable+discard so that two concurrent runs
against the same group fail fast instead of interleaving.
"""
from __future__ import annotations

import contextlib
import fcntl
import json
import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class SnapshotError(RuntimeError):
    """Base class for snapshot failures."""


class PersistenceError(SnapshotError):
    """Raised when the snapshot (or its directory) cannot be written."""


class SnapshotNotFoundError(SnapshotError):
    """Raised when a group has no stored snapshot."""


class CorruptSnapshotError(SnapshotError):
    """Raised when a stored snapshot cannot be parsed into the expected shape."""


class SnapshotLockedError(SnapshotError):
    """Raised when another process holds the group's lock."""


class CleanupWarning(UserWarning):
    """Raised when a snapshot could not be removed after a successful restore."""


@dataclass(frozen=True)
class ModuleSnapshot:
    group: str
    taken_at: str
    enabled_modules: Tuple[str, ...]

    def to_dict(self) -> Dict[str, object]:
        return {"timestamp": self.taken_at, "enabled_modules": list(self.enabled_modules)}


def unique(names: Iterable[str]) -> List[str]:
    seen: Dict[str, None] = {}
    result: List[str] = []
    for name in names:
        if name in seen:
            continue
        seen[name] = None
        result.append(name)
    return result


class SnapshotStore:
    def __init__(
        self,
        state_root: Path,
        file_names: Optional[Dict[str, str]] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.state_root = Path(state_root)
        self.file_names = dict(file_names or {})
        self.clock = clock

    def path_for(self, group: str) -> Path:
        name = self.file_names.get(group) or f"{group}_modules_state.json"
        return self.state_root / name

    def exists(self, group: str) -> bool:
        return self.path_for(group).is_file()

    @contextlib.contextmanager
    def lock(self, group: str) -> Iterator[Path]:
        path = self.path_for(group)
        lock_path = path.with_name(path.name + ".lock")
        try:
            lock_path.parent.mkdir(parents=True, exist_ok=True)
            fh = lock_path.open("a+")
        except OSError as exc:
            raise PersistenceError(f"Cannot open lock file {lock_path}: {exc}") from exc
        try:
            try:
                fcntl.flock(fh.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
            except BlockingIOError as exc:
                raise SnapshotLockedError(
                    f"Another swissdiag process is working on the '{group}' group ({lock_path})"
                ) from exc
            try:
                yield lock_path
            finally:
                fcntl.flock(fh.fileno(), fcntl.LOCK_UN)
        finally:
            fh.close()

    def capture(self, group: str, enabled_modules: Iterable[str]) -> Optional[ModuleSnapshot]:
        """Persist ``enabled_modules`` for ``group``; return None when the list is empty."""
        names = unique(str(name) for name in enabled_modules)
        if not names:
            return None
        snapshot = ModuleSnapshot(
            group=group,
            taken_at=self.clock().strftime(TIMESTAMP_FORMAT),
            enabled_modules=tuple(names),
        )
        path = self.path_for(group)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise PersistenceError(f"Cannot create state directory {path.parent}: {exc}") from exc
        body = json.dumps(snapshot.to_dict(), ensure_ascii=False, indent=2) + "\n"
        tmp = path.with_name(path.name + ".tmp")
        try:
            with tmp.open("w", encoding="utf-8") as fh:
                fh.write(body)
                fh.flush()
                os.fsync(fh.fileno())
            tmp.replace(path)
        except OSError as exc:
            with contextlib.suppress(OSError):
                tmp.unlink()
            raise PersistenceError(f"Failed to save state file {path}: {exc}") from exc
        return snapshot

    def load(self, group: str) -> ModuleSnapshot:
        path = self.path_for(group)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise SnapshotNotFoundError(f"No state file found at {path}") from exc
        except OSError as exc:
            raise CorruptSnapshotError(f"Cannot read state file {path}: {exc}") from exc
        try:
            data = json.loads(raw)
        except ValueError as exc:
            raise CorruptSnapshotError(f"State file {path} is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise CorruptSnapshotError(f"State file {path} must contain a JSON object")
        modules = data.get("enabled_modules")
        if not isinstance(modules, list):
            raise CorruptSnapshotError(f"State file {path} has no 'enabled_modules' list")
        if not all(isinstance(name, str) and name for name in modules):
            raise CorruptSnapshotError(f"State file {path} lists non-string module names")
        timestamp = data.get("timestamp")
        return ModuleSnapshot(
            group=group,
            taken_at=str(timestamp) if timestamp else "Unknown",
            enabled_modules=tuple(unique(modules)),
        )

    def discard(self, group: str) -> bool:
        """Remove the group's snapshot; return False when there was none."""
        path = self.path_for(group)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise CleanupWarning(f"Could not remove state file {path}: {exc}") from exc
        return True
