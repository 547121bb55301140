from __future__ import annotations

import os
import subprocess
from pathlib import Path
from typing import Callable, Dict, List, Sequence

import pytest

from monorepo_sync.changes import ChangeEntry, PullRequestAuthor, PullRequestRef
from monorepo_sync.exceptions import GitHubAPIError


def run_git(args: List[str], cwd: Path) -> str:
    env = os.environ.copy()
    env.setdefault("GIT_AUTHOR_NAME", "monorepo-sync")
    env.setdefault("GIT_AUTHOR_EMAIL", "monorepo-sync@example.com")
    env.setdefault("GIT_COMMITTER_NAME", env["GIT_AUTHOR_NAME"])
    env.setdefault("GIT_COMMITTER_EMAIL", env["GIT_AUTHOR_EMAIL"])
    result = subprocess.run(
        ["git", *args],
        cwd=str(cwd),
        check=True,
        env=env,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
    )
    return result.stdout


@pytest.fixture
def bare_monorepo(tmp_path: Path) -> Path:
    """A bare repository with one commit, standing in for the remote monorepo."""
    work = tmp_path / "monorepo-src"
    work.mkdir()
    run_git(["init"], work)
    package = work / "apps" / "server"
    package.mkdir(parents=True)
    (package / "index.js").write_text("module.exports = 1;\n")
    (work / "README.md").write_text("monorepo\n")
    run_git(["add", "."], work)
    run_git(["commit", "-m", "init"], work)

    bare = tmp_path / "monorepo.git"
    run_git(["clone", "--bare", str(work), str(bare)], tmp_path)
    return bare


class FakeGitClient:
    def __init__(self, changed: bool = True) -> None:
        self.changed = changed
        self.calls: List[tuple] = []

    def clone(self, remote: str, destination: Path, *, depth: int | None = 1) -> None:
        self.calls.append(("clone", remote, destination, depth))
        destination.mkdir(parents=True)

    def create_branch(self, repo: Path, branch: str) -> None:
        self.calls.append(("create_branch", repo, branch))

    def has_changes(self, repo: Path) -> bool:
        self.calls.append(("has_changes", repo))
        return self.changed

    def set_identity(self, repo: Path, name: str, email: str) -> None:
        self.calls.append(("set_identity", name, email))

    def add_all(self, repo: Path) -> None:
        self.calls.append(("add_all", repo))

    def commit(self, repo: Path, message: str) -> None:
        self.calls.append(("commit", message))

    def push(self, repo: Path, branch: str, *, remote: str = "origin") -> None:
        self.calls.append(("push", branch, remote))

    @property
    def operations(self) -> List[str]:
        return [call[0] for call in self.calls]


class FakeGitHub:
    def __init__(
        self,
        pr: PullRequestRef | None = None,
        changes: Sequence[ChangeEntry] = (),
        fail_create: bool = False,
    ) -> None:
        self.pr = pr
        self.changes = list(changes)
        self.fail_create = fail_create
        self.created: List[Dict[str, str]] = []

    def fetch_pull_request(self, number: int) -> PullRequestRef:
        assert self.pr is not None and self.pr.number == number
        return self.pr

    def fetch_pull_request_changes(self, number: int) -> List[ChangeEntry]:
        return list(self.changes)

    def create_pull_request(self, title: str, body: str, head: str, base: str) -> Dict[str, str]:
        self.created.append({"title": title, "body": body, "head": head, "base": base})
        if self.fail_create:
            raise GitHubAPIError(
                "GitHub API error: 422 Unprocessable Entity",
                status_code=422,
                response_text='{"message": "Validation Failed"}',
            )
        return {"html_url": "https://github.com/formio/formio-monorepo/pull/99", "number": 99}


@pytest.fixture
def fake_git() -> Callable[..., FakeGitClient]:
    return FakeGitClient


@pytest.fixture
def fake_github() -> Callable[..., FakeGitHub]:
    return FakeGitHub


@pytest.fixture
def sample_pr() -> PullRequestRef:
    return PullRequestRef(
        number=42,
        title="Fix submission validation",
        html_url="https://github.com/formio/formio/pull/42",
        author=PullRequestAuthor(login="octocat", name="The Octocat"),
        body="Validates nested forms.",
        merged_at="2026-10-01T12:00:00Z",
    )
