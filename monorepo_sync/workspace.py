from __future__ import annotations

import logging
import os
import re
import shutil
import time
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional, Tuple

from .exceptions import GitCommandError, StagingError
from .gitutils import VersionControlClient


@dataclass(frozen=True)
class StagedRepo:
    root: Path
    branch: str
    remote: str


def make_branch_name(pr_number: int, now: Optional[float] = None) -> str:
    millis = int((time.time() if now is None else now) * 1000)
    return f"sync-pr-{pr_number}-{str(millis)[-6:]}"


def parse_remote_slug(url: str) -> Tuple[str, str]:
    cleaned = url.strip().rstrip("/")
    if cleaned.endswith(".git"):
        cleaned = cleaned[: -len(".git")]
    cleaned = cleaned.replace(":", "/")
    parts = [segment for segment in cleaned.split("/") if segment]
    if len(parts) < 2:
        raise StagingError(f"Cannot determine owner/name from remote URL: {url}")
    owner, repo = parts[-2], parts[-1]
    if "@" in owner:
        owner = owner.split("@")[-1]
    return owner, repo


def default_scratch_dir(base: Path, remote_url: str) -> Path:
    _, repo = parse_remote_slug(remote_url)
    return (base.expanduser().resolve().parent / "tmp" / _sanitize(repo)).resolve()


def remove_tree(path: Path) -> None:
    if not path.exists() and not path.is_symlink():
        return
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()
    logging.debug("Removed %s", path)


def stage_monorepo(
    remote_url: str,
    scratch_dir: Path,
    branch: str,
    git: VersionControlClient,
) -> StagedRepo:
    scratch_dir = scratch_dir.expanduser()
    try:
        remove_tree(scratch_dir)
    except OSError as exc:
        raise StagingError(f"Unable to clear scratch directory {scratch_dir}: {exc}") from exc

    scratch_dir.parent.mkdir(parents=True, exist_ok=True)
    try:
        git.clone(remote_url, scratch_dir, depth=1)
    except GitCommandError as exc:
        raise StagingError(f"Error cloning monorepo {remote_url}: {exc}") from exc
    logging.info("Monorepo cloned into %s", scratch_dir)

    logging.info("Creating branch %s", branch)
    try:
        git.create_branch(scratch_dir, branch)
    except GitCommandError as exc:
        raise StagingError(f"Error creating branch {branch}: {exc}") from exc

    return StagedRepo(root=scratch_dir, branch=branch, remote=remote_url)


@contextmanager
def run_lock(scratch_dir: Path) -> Iterator[Path]:
    """Hold ``<scratch_dir>.lock`` for the duration of a run."""
    scratch_dir = scratch_dir.expanduser()
    lock_path = scratch_dir.with_name(scratch_dir.name + ".lock")
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        fd = os.open(str(lock_path), os.O_CREAT | os.O_EXCL | os.O_WRONLY)
    except FileExistsError as exc:
        raise StagingError(
            f"Another sync appears to be using {scratch_dir} (lock file {lock_path}). "
            "Remove the lock file if no other run is active."
        ) from exc
    try:
        os.write(fd, str(os.getpid()).encode("ascii"))
    finally:
        os.close(fd)
    try:
        yield lock_path
    finally:
        try:
            lock_path.unlink()
        except FileNotFoundError:
            logging.warning("Lock file %s disappeared before release", lock_path)


def _sanitize(value: str) -> str:
    sanitized = re.sub(r"[^A-Za-z0-9._-]+", "-", value.strip()).strip("-")
    return sanitized or "monorepo"
