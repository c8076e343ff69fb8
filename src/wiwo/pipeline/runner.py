"""Entry points for building and printing a user's activity timeline."""

from __future__ import annotations

import datetime as dt
import sys
from typing import List, Optional

from wiwo.errors import InvalidTimeRange
from wiwo.retrieval.collectors import collect_events, get_authenticated_login, list_owned_repositories
from wiwo.retrieval.config import API_HORIZON_DAYS, CLONE_WORKERS
from wiwo.retrieval.git_history import mine_commit_events
from wiwo.retrieval.http_client import has_auth_token, set_auth_token
from wiwo.retrieval.models import Event
from wiwo.retrieval.visibility import VisibilityCache, VisibilityResolver

from .config import RunSettings, parse_args, resolve_settings
from .merge import merge_events
from .render import render_events
from .timerange import cutoff_for, parse_time_range


def fetch_user_events(
    username: str,
    duration: dt.timedelta,
    *,
    token: Optional[str] = None,
    git_history: bool = True,
    clone_workers: int = CLONE_WORKERS,
    authenticated_login: Optional[str] = None,
    now: Optional[dt.datetime] = None,
) -> List[Event]:
    """Collect, merge, and order every event for ``username`` inside ``duration``.

    Windows longer than the API horizon walk the API with the horizon cutoff
    and backfill older activity from cloned git history. API events are held
    to the horizon cutoff, mined commits to the requested one.
    """
    now = now or dt.datetime.now(dt.timezone.utc)
    cutoff = cutoff_for(duration, now)
    authenticated = token is not None or has_auth_token()

    if duration.days <= API_HORIZON_DAYS:
        events = collect_events(username, cutoff, authenticated=authenticated)
        return merge_events(events, cutoff)

    api_cutoff = cutoff_for(dt.timedelta(days=API_HORIZON_DAYS), now)
    api_events = collect_events(username, api_cutoff, authenticated=authenticated, extended_window=True)
    api_events = [event for event in api_events if event.occurred_at >= api_cutoff]
    if not git_history:
        return merge_events(api_events, cutoff)

    print(
        f"[info] range exceeds the {API_HORIZON_DAYS}-day API horizon; mining git history since "
        f"{cutoff.strftime('%Y-%m-%d')}",
        file=sys.stderr,
    )
    repos = list_owned_repositories(username, authenticated_login=authenticated_login)
    mined = mine_commit_events(repos, cutoff, token=token, max_workers=clone_workers)
    return merge_events(api_events + mined, cutoff)


def run(settings: RunSettings) -> int:
    """Execute one timeline run; returns the process exit code."""
    now = dt.datetime.now(dt.timezone.utc)
    try:
        duration = parse_time_range(settings.time_range)
        cutoff = cutoff_for(duration, now)
    except InvalidTimeRange as exc:
        print(f"[error] {exc}", file=sys.stderr)
        return 1

    set_auth_token(settings.token)
    login = get_authenticated_login() if settings.token else None
    username = settings.username or login
    if not username:
        print("[error] no username given and none could be derived from a token", file=sys.stderr)
        return 1

    print(f"\nFetching GitHub events for {username} (since {cutoff.strftime('%Y-%m-%d %H:%M:%S UTC')})\n")
    events = fetch_user_events(
        username,
        duration,
        token=settings.token,
        git_history=settings.git_history,
        clone_workers=settings.clone_workers,
        authenticated_login=login,
        now=now,
    )
    render_events(events, VisibilityResolver(VisibilityCache()))
    return 0


def main(argv: Optional[List[str]] = None) -> None:
    """CLI entry point."""
    args = parse_args(argv)
    settings = resolve_settings(args)
    code = run(settings)
    if code:
        sys.exit(code)


__all__ = ["fetch_user_events", "run", "main"]
