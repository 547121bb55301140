from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, asdict
from pathlib import Path, PurePosixPath
from typing import Dict, Iterable, List

from .changes import ChangeEntry, ChangeStatus
from .exceptions import ReplayError


@dataclass
class ReplayResult:
    path: str
    status: str
    action: str
    message: str = ""

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


def replay_changes(
    changes: Iterable[ChangeEntry],
    source_root: Path,
    target_root: Path,
) -> List[ReplayResult]:
    """Apply each change in order; later entries win on overlapping paths."""
    results: List[ReplayResult] = []
    for entry in changes:
        results.append(replay_change(entry, source_root, target_root))
    return results


def replay_change(entry: ChangeEntry, source_root: Path, target_root: Path) -> ReplayResult:
    logging.debug("Syncing change: %s", entry)
    try:
        return _apply_change(entry, source_root, target_root)
    except OSError as exc:
        raise ReplayError(f"Failed to replay {entry.status.value} {entry.path}: {exc}") from exc


def _apply_change(entry: ChangeEntry, source_root: Path, target_root: Path) -> ReplayResult:
    status = entry.status.value

    if entry.status in (ChangeStatus.ADDED, ChangeStatus.MODIFIED):
        source = translate_path(source_root, entry.path)
        target = translate_path(target_root, entry.path)
        if not _copy_file(source, target):
            return ReplayResult(entry.path, status, "skipped", f"Source file does not exist: {source}")
        return ReplayResult(entry.path, status, "copied")

    if entry.status is ChangeStatus.REMOVED:
        target = translate_path(target_root, entry.path)
        if _remove_file(target):
            return ReplayResult(entry.path, status, "removed")
        return ReplayResult(entry.path, status, "noop", "Target already absent.")

    if entry.status is ChangeStatus.RENAMED:
        previous = entry.previous_path or ""
        previous_target = translate_path(target_root, previous)
        source = translate_path(source_root, entry.path)
        target = translate_path(target_root, entry.path)
        logging.info("Renaming %s to %s", previous_target, target)
        removed = _remove_file(previous_target)
        if _copy_file(source, target):
            return ReplayResult(entry.path, status, "renamed", f"from {previous}")
        message = f"Source file does not exist: {source}"
        return ReplayResult(entry.path, status, "removed" if removed else "noop", message)

    logging.warning("Ignoring change with unrecognized status: %s", entry.path)
    return ReplayResult(entry.path, status, "ignored", "Unrecognized change status.")


def translate_path(root: Path, relative: str) -> Path:
    """Resolve ``relative`` under ``root``, refusing paths that escape it."""
    pure = PurePosixPath(relative)
    if not relative or pure.is_absolute() or ".." in pure.parts:
        raise ReplayError(f"Refusing to replay path outside the package root: {relative!r}")
    return root.joinpath(*pure.parts)


def _copy_file(source: Path, target: Path) -> bool:
    if not source.is_file():
        logging.warning("Source file does not exist: %s", source)
        return False
    logging.info("Copying %s to %s", source, target)
    target.parent.mkdir(parents=True, exist_ok=True)
    if target.is_symlink():
        target.unlink()
    elif target.is_dir():
        logging.info("Replacing directory %s with a file", target)
        shutil.rmtree(target)
    target.write_bytes(source.read_bytes())
    return True


def _remove_file(target: Path) -> bool:
    if not (target.is_file() or target.is_symlink()):
        return False
    logging.info("Removing %s", target)
    target.unlink()
    return True
