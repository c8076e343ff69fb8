"""Normalized event records shared by the API paginator and the git-history miner."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Any, Dict, Optional

from wiwo.errors import ParseFailure

from .config import WEB_HOST

KIND_SUFFIX = "Event"
KIND_RENAMES: Dict[str, str] = {
    "PullRequest": "PR",
    "PullRequestReview": "PR Review",
    "PullRequestReviewComment": "PR Comment",
    "IssueComment": "Issue Cmt",
}
MINED_COMMIT_KIND = "Push"


def parse_timestamp(raw: Optional[str]) -> Optional[dt.datetime]:
    """Parse GitHub (``...Z``) or git (``...+02:00``) timestamps into aware UTC datetimes."""
    if not raw or not isinstance(raw, str):
        return None
    try:
        value = dt.datetime.strptime(raw, "%Y-%m-%dT%H:%M:%SZ").replace(tzinfo=dt.timezone.utc)
    except ValueError:
        try:
            value = dt.datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=dt.timezone.utc)
    return value.astimezone(dt.timezone.utc)


def display_kind(kind: str) -> str:
    """Map a raw event type onto its short table label; unknown kinds pass through."""
    base = kind[: -len(KIND_SUFFIX)] if kind.endswith(KIND_SUFFIX) and kind != KIND_SUFFIX else kind
    return KIND_RENAMES.get(base, base)


@dataclass(frozen=True)
class RepoRef:
    """Repository an event is attributed to."""

    identifier: str
    web_url: Optional[str] = None
    clone_url: Optional[str] = None
    is_fork: bool = False
    private: Optional[bool] = None

    @property
    def html_url(self) -> str:
        return self.web_url or f"https://{WEB_HOST}/{self.identifier}"

    @classmethod
    def from_listing(cls, item: Dict[str, Any], owner: str) -> "RepoRef":
        """Build a RepoRef from a repository-listing entry."""
        name = item.get("full_name") or item.get("name")
        if not name or not isinstance(name, str):
            raise ParseFailure(f"repository entry without a name: {item!r}"[:200])
        identifier = name if "/" in name else f"{owner}/{name}"
        private = item.get("private")
        return cls(
            identifier=identifier,
            web_url=item.get("html_url") or None,
            clone_url=item.get("clone_url") or None,
            is_fork=bool(item.get("fork")),
            private=private if isinstance(private, bool) else None,
        )


@dataclass(frozen=True)
class Event:
    """A single timestamped activity record."""

    kind: str
    occurred_at: dt.datetime
    repository: RepoRef

    @property
    def dedup_key(self):
        return (self.occurred_at, self.kind, self.repository.identifier)

    @classmethod
    def from_api(cls, item: Any) -> "Event":
        """Build an Event from an item shaped ``{type, created_at, repo: {name, ...}}``."""
        if not isinstance(item, dict):
            raise ParseFailure(f"event item is not an object: {type(item).__name__}")
        kind = item.get("type")
        occurred_at = parse_timestamp(item.get("created_at"))
        repo = item.get("repo")
        if not isinstance(kind, str) or not kind:
            raise ParseFailure("event item has no type")
        if occurred_at is None:
            raise ParseFailure(f"event item has an unreadable created_at: {item.get('created_at')!r}")
        if not isinstance(repo, dict) or not isinstance(repo.get("name"), str):
            raise ParseFailure("event item has no repo name")
        private = repo.get("private")
        return cls(
            kind=kind,
            occurred_at=occurred_at,
            repository=RepoRef(
                identifier=repo["name"],
                private=private if isinstance(private, bool) else None,
            ),
        )


__all__ = [
    "KIND_RENAMES",
    "MINED_COMMIT_KIND",
    "parse_timestamp",
    "display_kind",
    "RepoRef",
    "Event",
]
