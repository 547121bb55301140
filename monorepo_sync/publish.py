from __future__ import annotations

import logging
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

from .changes import PullRequestRef
from .exceptions import GitHubAPIError
from .gitutils import VersionControlClient

PUBLISHED = "published"
NO_CHANGES = "no-changes"
PR_FAILED = "pr-failed"
DRY_RUN = "dry-run"


class PullRequestCreator(Protocol):
    def create_pull_request(self, title: str, body: str, head: str, base: str) -> Dict[str, Any]: ...


@dataclass
class PublishResult:
    status: str
    branch: str
    pr_url: Optional[str] = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.status != PR_FAILED

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def build_commit_message(pr: PullRequestRef) -> str:
    return f"Sync changes from PR #{pr.number}: {pr.title}\n\nOriginal PR: {pr.html_url}"


def build_pr_title(pr: PullRequestRef) -> str:
    return f"[Sync PR #{pr.number}] {pr.title}"


def build_pr_body(pr: PullRequestRef, source_repo_name: str) -> str:
    body = (
        f"This PR syncs changes from [{source_repo_name} PR #{pr.number}]({pr.html_url}) "
        f"by @{pr.author.login}.\n\n"
    )
    if pr.body:
        body += f"## Original PR Description\n\n{pr.body}\n\n"
    body += "## Note\n\nThis PR was automatically created by the repository sync tool."
    return body


def publish_changes(
    repo_path: Path,
    branch: str,
    pr: PullRequestRef,
    git: VersionControlClient,
    monorepo: PullRequestCreator,
    *,
    source_repo_name: str,
    base_branch: str = "main",
    dry_run: bool = False,
) -> PublishResult:
    """Commit, push and open the monorepo PR for the replayed changes.

    Returns ``no-changes`` without touching git or GitHub when the working tree
    is clean. A failed PR creation is logged and reported as ``pr-failed``; the
    pushed branch is left in place for someone to finish by hand.
    """
    if not git.has_changes(repo_path):
        logging.info("No changes to commit for PR #%s", pr.number)
        return PublishResult(status=NO_CHANGES, branch=branch, message="Working tree clean.")

    if dry_run:
        logging.info("Dry run: would commit, push %s and open a PR for #%s", branch, pr.number)
        return PublishResult(status=DRY_RUN, branch=branch)

    author = pr.author
    logging.info("Committing as %s <%s>", author.display_name, author.commit_email)
    git.set_identity(repo_path, author.display_name, author.commit_email)
    git.add_all(repo_path)
    git.commit(repo_path, build_commit_message(pr))
    git.push(repo_path, branch)

    try:
        created = monorepo.create_pull_request(
            title=build_pr_title(pr),
            body=build_pr_body(pr, source_repo_name),
            head=branch,
            base=base_branch,
        )
    except GitHubAPIError as exc:
        logging.error("Failed to create PR: %s", exc)
        if exc.response_text:
            logging.error("%s", exc.response_text)
        logging.error(
            "Branch %s was pushed but no PR was opened; open it manually or delete the branch.",
            branch,
        )
        return PublishResult(status=PR_FAILED, branch=branch, message=str(exc))

    pr_url = created.get("html_url")
    logging.info("Created monorepo PR: %s", pr_url)
    return PublishResult(status=PUBLISHED, branch=branch, pr_url=pr_url)
