from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import List, Protocol, Sequence, Union

from .exceptions import GitCommandError


class VersionControlClient(Protocol):
    """The git operations the sync flow needs, always against an explicit path."""

    def clone(self, remote: str, destination: Path, *, depth: int | None = 1) -> None: ...

    def create_branch(self, repo: Path, branch: str) -> None: ...

    def has_changes(self, repo: Path) -> bool: ...

    def set_identity(self, repo: Path, name: str, email: str) -> None: ...

    def add_all(self, repo: Path) -> None: ...

    def commit(self, repo: Path, message: str) -> None: ...

    def push(self, repo: Path, branch: str, *, remote: str = "origin") -> None: ...


def run_git(repo: Path, args: Sequence[str]) -> subprocess.CompletedProcess:
    return subprocess.run(
        ["git", "-C", str(repo)] + list(args),
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
    )


def check_git(repo: Path, args: Sequence[str]) -> str:
    result = run_git(repo, args)
    if result.returncode != 0:
        raise GitCommandError(list(args), result.returncode, result.stderr)
    return result.stdout


def clone_repo(
    source: Union[Path, str],
    destination: Path,
    *,
    depth: int | None = None,
) -> None:
    args = ["clone"]
    if depth:
        args += ["--depth", str(depth)]
    args.extend([str(source), str(destination)])
    result = subprocess.run(
        ["git", *args],
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
    )
    if result.returncode != 0:
        raise GitCommandError(args, result.returncode, result.stderr)


def parse_porcelain_status(output: str) -> List[str]:
    """Return the paths reported by ``git status --porcelain``."""
    paths: List[str] = []
    for line in output.splitlines():
        if len(line) < 4:
            continue
        entry = line[3:]
        if " -> " in entry:
            entry = entry.split(" -> ", 1)[1]
        paths.append(entry.strip('"'))
    return paths


class GitClient:
    """VersionControlClient backed by the ``git`` executable."""

    def clone(self, remote: str, destination: Path, *, depth: int | None = 1) -> None:
        logging.info("Cloning %s into %s (depth=%s)", remote, destination, depth or "full")
        clone_repo(remote, destination, depth=depth)

    def create_branch(self, repo: Path, branch: str) -> None:
        check_git(repo, ["checkout", "-b", branch])
        logging.info("Branch %s created in %s", branch, repo)

    def status(self, repo: Path) -> List[str]:
        return parse_porcelain_status(check_git(repo, ["status", "--porcelain"]))

    def has_changes(self, repo: Path) -> bool:
        changed = self.status(repo)
        logging.debug("Working tree changes in %s: %s", repo, changed)
        return bool(changed)

    def set_identity(self, repo: Path, name: str, email: str) -> None:
        check_git(repo, ["config", "user.name", name])
        check_git(repo, ["config", "user.email", email])

    def add_all(self, repo: Path) -> None:
        check_git(repo, ["add", "-A"])

    def commit(self, repo: Path, message: str) -> None:
        check_git(repo, ["commit", "-m", message])

    def push(self, repo: Path, branch: str, *, remote: str = "origin") -> None:
        logging.info("Pushing %s to %s", branch, remote)
        check_git(repo, ["push", "-u", remote, branch])
