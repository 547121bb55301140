from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class ChangeStatus(str, Enum):
    ADDED = "added"
    MODIFIED = "modified"
    REMOVED = "removed"
    RENAMED = "renamed"
    UNKNOWN = "unknown"

    @classmethod
    def from_github(cls, value: Optional[str]) -> "ChangeStatus":
        """Map a GitHub file status onto the replayable statuses.

        GitHub also reports ``copied``, ``changed`` and ``unchanged``; those
        (and anything unrecognized) become ``UNKNOWN`` and are never applied.
        """
        normalized = (value or "").strip().lower()
        for status in cls:
            if status is not cls.UNKNOWN and status.value == normalized:
                return status
        return cls.UNKNOWN


@dataclass(frozen=True)
class ChangeEntry:
    status: ChangeStatus
    path: str
    previous_path: Optional[str] = None

    def __post_init__(self) -> None:
        if self.status is ChangeStatus.RENAMED and not self.previous_path:
            raise ValueError(f"Renamed entry for {self.path} is missing previous_path")
        if self.status is not ChangeStatus.RENAMED and self.previous_path is not None:
            raise ValueError(
                f"previous_path is only valid for renamed entries ({self.status.value} {self.path})"
            )

    @classmethod
    def from_github(cls, descriptor: Dict[str, Any]) -> "ChangeEntry":
        path = descriptor.get("filename") or ""
        status = ChangeStatus.from_github(descriptor.get("status"))
        previous = descriptor.get("previous_filename")
        if status is ChangeStatus.RENAMED:
            if not previous:
                return cls(status=ChangeStatus.UNKNOWN, path=path)
            return cls(status=status, path=path, previous_path=previous)
        return cls(status=status, path=path)

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "status": self.status.value,
            "path": self.path,
            "previous_path": self.previous_path,
        }


@dataclass(frozen=True)
class PullRequestAuthor:
    login: str
    name: Optional[str] = None
    email: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.name or self.login

    @property
    def commit_email(self) -> str:
        return self.email or f"{self.login}@users.noreply.github.com"


@dataclass(frozen=True)
class PullRequestRef:
    number: int
    title: str
    html_url: str
    author: PullRequestAuthor
    body: Optional[str] = None
    merged_at: Optional[str] = None

    @classmethod
    def from_github(cls, payload: Dict[str, Any]) -> "PullRequestRef":
        user = payload.get("user") or {}
        author = PullRequestAuthor(
            login=user.get("login") or "ghost",
            name=user.get("name") or None,
            email=user.get("email") or None,
        )
        return cls(
            number=int(payload["number"]),
            title=payload.get("title") or "",
            html_url=payload.get("html_url") or "",
            author=author,
            body=payload.get("body") or None,
            merged_at=payload.get("merged_at"),
        )
