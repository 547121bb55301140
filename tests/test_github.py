from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from typing import Any, List

import pytest
import requests
from requests.structures import CaseInsensitiveDict

from monorepo_sync.changes import ChangeStatus
from monorepo_sync.exceptions import GitHubAPIError
from monorepo_sync.github import GitHubClient


def make_response(status: int, payload: Any, *, link: str | None = None, reason: str = "OK") -> requests.Response:
    response = requests.Response()
    response.status_code = status
    response.reason = reason
    response.encoding = "utf-8"
    response._content = json.dumps(payload).encode("utf-8")
    if link:
        response.headers["Link"] = link
    return response


class FakeSession:
    def __init__(self, responses: List[requests.Response]) -> None:
        self.headers: CaseInsensitiveDict = CaseInsensitiveDict()
        self.responses = list(responses)
        self.requests: List[dict] = []

    def request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        self.requests.append({"method": method, "url": url, **kwargs})
        return self.responses.pop(0)


def make_client(*responses: requests.Response) -> tuple[GitHubClient, FakeSession]:
    session = FakeSession(list(responses))
    client = GitHubClient("secret", "formio", "formio", session=session)  # type: ignore[arg-type]
    return client, session


def test_headers_carry_token_and_media_type() -> None:
    _, session = make_client()
    assert session.headers["Authorization"] == "Bearer secret"
    assert session.headers["Accept"] == "application/vnd.github.v3+json"


def test_fetch_pull_request() -> None:
    client, session = make_client(
        make_response(
            200,
            {
                "number": 42,
                "title": "Fix it",
                "html_url": "https://github.com/formio/formio/pull/42",
                "body": "details",
                "user": {"login": "octocat"},
                "merged_at": "2026-10-01T00:00:00Z",
            },
        )
    )

    pr = client.fetch_pull_request(42)

    assert pr.number == 42
    assert pr.author.login == "octocat"
    assert session.requests[0]["method"] == "GET"
    assert session.requests[0]["url"] == "https://api.github.com/repos/formio/formio/pulls/42"


def test_fetch_pull_request_error_is_raised() -> None:
    client, _ = make_client(make_response(404, {"message": "Not Found"}, reason="Not Found"))

    with pytest.raises(GitHubAPIError) as excinfo:
        client.fetch_pull_request(1)

    assert excinfo.value.status_code == 404
    assert "Not Found" in excinfo.value.response_text


def test_fetch_changes_follows_pagination() -> None:
    next_url = "https://api.github.com/repos/formio/formio/pulls/42/files?per_page=100&page=2"
    client, session = make_client(
        make_response(
            200,
            [
                {"filename": "a.js", "status": "added"},
                {"filename": "b.js", "status": "renamed", "previous_filename": "old/b.js"},
            ],
            link=f'<{next_url}>; rel="next"',
        ),
        make_response(200, [{"filename": "c.js", "status": "copied"}]),
    )

    changes = client.fetch_pull_request_changes(42)

    assert [change.status for change in changes] == [
        ChangeStatus.ADDED,
        ChangeStatus.RENAMED,
        ChangeStatus.UNKNOWN,
    ]
    assert changes[1].previous_path == "old/b.js"
    assert session.requests[0]["params"] == {"per_page": 100}
    assert session.requests[1]["url"] == next_url
    assert session.requests[1]["params"] is None


def _listing() -> list:
    return [
        {"number": 12, "title": "new", "html_url": "u12", "user": {"login": "a"}, "merged_at": "2026-10-02T00:00:00Z"},
        {"number": 11, "title": "closed", "html_url": "u11", "user": {"login": "b"}, "merged_at": None},
        {"number": 9, "title": "old", "html_url": "u9", "user": {"login": "c"}, "merged_at": "2026-09-01T00:00:00Z"},
    ]


def test_list_merged_since_pr_number() -> None:
    client, session = make_client(make_response(200, _listing()))

    prs = client.list_merged_pull_requests(10)

    assert [pr.number for pr in prs] == [12]
    params = session.requests[0]["params"]
    assert params == {"base": "master", "state": "closed", "sort": "updated", "direction": "desc"}


def test_list_merged_since_date() -> None:
    client, session = make_client(make_response(200, _listing()))

    prs = client.list_merged_pull_requests("2026-08-01", base="main")

    assert [pr.number for pr in prs] == [12, 9]
    params = session.requests[0]["params"]
    assert params["base"] == "main"
    assert params["since"] == "2026-08-01T00:00:00+00:00"


def test_list_merged_unparseable_date_defaults_to_last_week() -> None:
    client, session = make_client(make_response(200, []))

    client.list_merged_pull_requests("last tuesday")

    since = datetime.fromisoformat(session.requests[0]["params"]["since"])
    expected = datetime.now(timezone.utc) - timedelta(days=7)
    assert abs((since - expected).total_seconds()) < 60


def test_create_pull_request_posts_json() -> None:
    client, session = make_client(make_response(201, {"html_url": "https://github.com/x/y/pull/1"}))

    created = client.create_pull_request("title", "body", "sync-pr-1-000001", "main")

    assert created["html_url"] == "https://github.com/x/y/pull/1"
    request = session.requests[0]
    assert request["method"] == "POST"
    assert request["json"] == {"title": "title", "body": "body", "head": "sync-pr-1-000001", "base": "main"}


def test_transport_failure_is_wrapped() -> None:
    class BrokenSession(FakeSession):
        def request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
            raise requests.ConnectionError("connection refused")

    client = GitHubClient("secret", "formio", "formio", session=BrokenSession([]))  # type: ignore[arg-type]

    with pytest.raises(GitHubAPIError):
        client.fetch_pull_request(1)
