"""Minimal GitHub REST client for reading pull requests and opening new ones."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Union

import requests

from .changes import ChangeEntry, PullRequestRef
from .exceptions import GitHubAPIError

DEFAULT_API_URL = "https://api.github.com"
ACCEPT_HEADER = "application/vnd.github.v3+json"
FILES_PER_PAGE = 100
DEFAULT_LOOKBACK = timedelta(days=7)


class GitHubClient:
    """Talks to one repository (``owner/repo``) on a GitHub-compatible API.

    Requests are made synchronously and never retried; a non-2xx response
    raises :class:`GitHubAPIError` with the status code and response body.
    ``timeout`` defaults to ``None`` so calls block until the server answers.
    """

    def __init__(
        self,
        token: str,
        owner: str,
        repo: str,
        *,
        api_url: str = DEFAULT_API_URL,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.owner = owner
        self.repo = repo
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {token}",
                "Accept": ACCEPT_HEADER,
            }
        )

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    def fetch_pull_request(self, number: int) -> PullRequestRef:
        logging.info("Getting details for %s PR #%s", self.full_name, number)
        payload = self._request("GET", self._repo_url(f"pulls/{number}")).json()
        return PullRequestRef.from_github(payload)

    def fetch_pull_request_changes(self, number: int) -> List[ChangeEntry]:
        logging.info("Getting changes for %s PR #%s", self.full_name, number)
        url: Optional[str] = self._repo_url(f"pulls/{number}/files")
        params: Optional[Dict[str, Any]] = {"per_page": FILES_PER_PAGE}
        changes: List[ChangeEntry] = []
        while url:
            response = self._request("GET", url, params=params)
            for descriptor in response.json():
                logging.debug("GitHub file descriptor: %s", descriptor)
                changes.append(ChangeEntry.from_github(descriptor))
            url = response.links.get("next", {}).get("url")
            params = None  # the next link already carries the query string
        logging.info("PR #%s touches %d file(s)", number, len(changes))
        return changes

    def list_merged_pull_requests(
        self,
        since: Union[int, str, datetime],
        *,
        base: str = "master",
    ) -> List[PullRequestRef]:
        """List merged PRs, most recently updated first.

        ``since`` is either a PR number (keep PRs numbered above it) or a date;
        a string that does not parse as a date falls back to the last week.
        """
        params: Dict[str, Any] = {
            "base": base,
            "state": "closed",
            "sort": "updated",
            "direction": "desc",
        }
        number_floor = _as_pr_number(since)
        if number_floor is None:
            params["since"] = _as_since_date(since).isoformat()
        logging.info("Getting merged PRs for %s since %s", self.full_name, since)

        payload = self._request("GET", self._repo_url("pulls"), params=params).json()
        merged = [PullRequestRef.from_github(item) for item in payload if item.get("merged_at")]
        if number_floor is not None:
            merged = [pr for pr in merged if pr.number > number_floor]
        logging.info("Found %d merged PR(s)", len(merged))
        return merged

    def create_pull_request(self, title: str, body: str, head: str, base: str) -> Dict[str, Any]:
        logging.info("Opening PR on %s: %s -> %s", self.full_name, head, base)
        response = self._request(
            "POST",
            self._repo_url("pulls"),
            json={"title": title, "body": body, "head": head, "base": base},
        )
        return response.json()

    def _repo_url(self, suffix: str) -> str:
        return f"{self.api_url}/repos/{self.owner}/{self.repo}/{suffix}"

    def _request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        logging.debug("GitHub API %s %s %s", method, url, kwargs.get("params") or "")
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            raise GitHubAPIError(f"GitHub API request failed: {method} {url}: {exc}") from exc
        if not response.ok:
            raise GitHubAPIError(
                f"GitHub API error: {response.status_code} {response.reason} ({method} {url})",
                status_code=response.status_code,
                response_text=response.text,
            )
        return response


def _as_pr_number(since: Union[int, str, datetime]) -> Optional[int]:
    if isinstance(since, bool) or isinstance(since, datetime):
        return None
    if isinstance(since, int):
        return since
    text = str(since).strip()
    return int(text) if text.isdigit() else None


def _as_since_date(since: Union[int, str, datetime]) -> datetime:
    if isinstance(since, datetime):
        parsed = since
    else:
        text = str(since).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            logging.warning("Could not parse %r as a date; using the last 7 days", since)
            parsed = datetime.now(timezone.utc) - DEFAULT_LOOKBACK
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)
