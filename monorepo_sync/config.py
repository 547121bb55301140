from __future__ import annotations

import os
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from .exceptions import ConfigurationError, StagingError
from .github import DEFAULT_API_URL
from .workspace import default_scratch_dir, parse_remote_slug

DEFAULT_MONOREPO_URL = "https://github.com/formio/formio-monorepo"
DEFAULT_SOURCE_OWNER = "formio"

# (environment variable, hint shown when it is missing)
REQUIRED_ENV = [
    ("GH_TOKEN", "a GitHub token with access to both repositories"),
    ("SOURCE_REPO_NAME", "the name of the source repository"),
    ("MONOREPO_PACKAGE_LOCATION", "the package path inside the monorepo, e.g. apps/formio-server"),
]


@dataclass(frozen=True)
class SyncConfig:
    pr_number: int
    token: str
    source_repo_name: str
    source_repo_owner: str
    package_location: str
    monorepo_url: str
    monorepo_owner: str
    monorepo_name: str
    monorepo_base_branch: str
    source_base_branch: str
    api_url: str
    source_root: Path
    scratch_dir: Path
    dry_run: bool = False
    report_path: Optional[Path] = None

    @property
    def source_full_name(self) -> str:
        return f"{self.source_repo_owner}/{self.source_repo_name}"

    def redacted(self) -> Dict[str, Any]:
        data = asdict(self)
        data["token"] = "***"
        return data


def load_config(
    *,
    pr_number: Optional[str] = None,
    source_root: Optional[Path] = None,
    scratch_dir: Optional[Path] = None,
    dry_run: bool = False,
    report_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
    require_pr: bool = True,
) -> SyncConfig:
    """Build the run configuration from CLI values and the environment.

    Every missing required value is reported in a single ConfigurationError so
    the operator can fix them all at once; nothing is touched before this passes.
    """
    env = os.environ if environ is None else environ
    problems: List[str] = []

    raw_pr = (pr_number or env.get("PR_NUMBER") or "").strip()
    number = 0
    if raw_pr:
        try:
            number = int(raw_pr.lstrip("#"))
        except ValueError:
            problems.append(f"PR number must be an integer, got {raw_pr!r}")
        else:
            if number <= 0:
                problems.append(f"PR number must be positive, got {number}")
    elif require_pr:
        problems.append("Please provide a PR number as an argument or via PR_NUMBER.")

    values: Dict[str, str] = {}
    for name, hint in REQUIRED_ENV:
        value = (env.get(name) or "").strip()
        if not value:
            problems.append(f"Please set the {name} environment variable with {hint}.")
        values[name] = value

    package_location = values["MONOREPO_PACKAGE_LOCATION"].strip("/")
    if values["MONOREPO_PACKAGE_LOCATION"] and (
        Path(values["MONOREPO_PACKAGE_LOCATION"]).is_absolute() or ".." in Path(package_location).parts
    ):
        problems.append("MONOREPO_PACKAGE_LOCATION must be a relative path inside the monorepo.")

    monorepo_url = (env.get("MONOREPO_URL") or DEFAULT_MONOREPO_URL).strip()
    monorepo_owner = monorepo_name = ""
    try:
        monorepo_owner, monorepo_name = parse_remote_slug(monorepo_url)
    except StagingError as exc:
        problems.append(f"MONOREPO_URL is invalid: {exc}")

    if problems:
        raise ConfigurationError("\n".join(problems))

    root = Path(source_root or env.get("SOURCE_REPO_ROOT") or Path.cwd()).expanduser().resolve()
    scratch = scratch_dir or env.get("SYNC_SCRATCH_DIR")
    scratch_path = (
        Path(scratch).expanduser().resolve() if scratch else default_scratch_dir(root, monorepo_url)
    )

    return SyncConfig(
        pr_number=number,
        token=values["GH_TOKEN"],
        source_repo_name=values["SOURCE_REPO_NAME"],
        source_repo_owner=(env.get("SOURCE_REPO_OWNER") or DEFAULT_SOURCE_OWNER).strip(),
        package_location=package_location,
        monorepo_url=monorepo_url,
        monorepo_owner=monorepo_owner,
        monorepo_name=monorepo_name,
        monorepo_base_branch=(env.get("MONOREPO_BASE_BRANCH") or "main").strip(),
        source_base_branch=(env.get("SOURCE_BASE_BRANCH") or "master").strip(),
        api_url=(env.get("GITHUB_API_URL") or DEFAULT_API_URL).strip(),
        source_root=root,
        scratch_dir=scratch_path,
        dry_run=dry_run,
        report_path=report_path,
    )
