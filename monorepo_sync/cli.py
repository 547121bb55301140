from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional, Sequence

import requests

from .config import SyncConfig, load_config
from .exceptions import RepoSyncError
from .github import GitHubClient
from .gitutils import GitClient, VersionControlClient
from .publish import PublishResult, publish_changes
from .replay import replay_changes, translate_path
from .reporting import SyncOutcome, summarize_replay, write_sync_report
from .workspace import make_branch_name, run_lock, stage_monorepo

EXIT_OK = 0
EXIT_ERROR = 2
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="monorepo-sync",
        description=(
            "Mirror a merged pull request from this repository into its package "
            "directory in the monorepo and open a matching PR there."
        ),
    )
    parser.add_argument(
        "pr_number",
        nargs="?",
        help="Number of the source PR to sync (defaults to $PR_NUMBER).",
    )
    parser.add_argument(
        "--source-root",
        type=Path,
        help="Checkout of the source repository to copy files from (defaults to $SOURCE_REPO_ROOT or cwd).",
    )
    parser.add_argument(
        "--scratch-dir",
        type=Path,
        help="Where to clone the monorepo; wiped on every run (defaults to $SYNC_SCRATCH_DIR or ../tmp/<monorepo>).",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Clone and replay the changes but do not commit, push or open a PR.",
    )
    parser.add_argument(
        "--report",
        type=Path,
        help="Write a JSON report of the replayed changes to this path.",
    )
    parser.add_argument(
        "--list-merged-since",
        metavar="REF",
        help="List merged source PRs after a PR number or since a date, then exit.",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return parser


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def make_clients(config: SyncConfig) -> tuple[GitHubClient, GitHubClient]:
    session = requests.Session()
    source = GitHubClient(
        config.token,
        config.source_repo_owner,
        config.source_repo_name,
        api_url=config.api_url,
        session=session,
    )
    monorepo = GitHubClient(
        config.token,
        config.monorepo_owner,
        config.monorepo_name,
        api_url=config.api_url,
        session=session,
    )
    return source, monorepo


def sync_pull_request(
    config: SyncConfig,
    *,
    git: VersionControlClient,
    source: GitHubClient,
    monorepo: GitHubClient,
) -> SyncOutcome:
    branch = make_branch_name(config.pr_number)
    with run_lock(config.scratch_dir):
        staged = stage_monorepo(config.monorepo_url, config.scratch_dir, branch, git)

        pr = source.fetch_pull_request(config.pr_number)
        logging.info('Syncing PR #%s: "%s" by %s', pr.number, pr.title, pr.author.login)
        changes = source.fetch_pull_request_changes(pr.number)

        target_root = translate_path(staged.root, config.package_location)
        results = replay_changes(changes, config.source_root, target_root)

        publish: PublishResult = publish_changes(
            staged.root,
            staged.branch,
            pr,
            git,
            monorepo,
            source_repo_name=config.source_repo_name,
            base_branch=config.monorepo_base_branch,
            dry_run=config.dry_run,
        )

    outcome = SyncOutcome(pr_number=pr.number, branch=branch, replay=results, publish=publish)
    logging.info("\n%s", summarize_replay(results, publish))
    if config.report_path:
        write_sync_report(config.report_path, outcome)
    return outcome


def list_merged(config: SyncConfig, since: str, source: GitHubClient) -> None:
    for pr in source.list_merged_pull_requests(since, base=config.source_base_branch):
        print(f"#{pr.number}\t{pr.merged_at}\t{pr.title}\t{pr.html_url}")


def run(args: argparse.Namespace) -> int:
    configure_logging(args.verbose)
    logging.debug("Arguments: %s", args)

    config = load_config(
        pr_number=args.pr_number,
        source_root=args.source_root,
        scratch_dir=args.scratch_dir,
        dry_run=args.dry_run,
        report_path=args.report,
        require_pr=not args.list_merged_since,
    )
    logging.debug("Configuration: %s", config.redacted())
    source, monorepo = make_clients(config)

    if args.list_merged_since:
        list_merged(config, args.list_merged_since, source)
        return EXIT_OK

    outcome = sync_pull_request(config, git=GitClient(), source=source, monorepo=monorepo)
    if not outcome.ok:
        logging.error(
            "Sync of PR #%s finished without a monorepo PR; branch %s needs manual follow-up.",
            config.pr_number,
            outcome.branch,
        )
    else:
        logging.info("Sync completed successfully!")
    return EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return run(args)
    except RepoSyncError as exc:
        logging.error("%s", exc)
        return EXIT_ERROR
    except KeyboardInterrupt:
        logging.error("Interrupted")
        return EXIT_INTERRUPTED


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
