"""Collection helpers for user event streams, owned repositories, and identity."""

from __future__ import annotations

import sys
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional

from wiwo.errors import ParseFailure, WiwoError

from .config import MAX_ENDPOINT_WORKERS, MAX_PAGES_REPOS
from .http_client import (
    PageState,
    StreamResult,
    api_url,
    fetch_event_stream,
    has_auth_token,
    log_http_error,
    paged_get,
    request_with_backoff,
)
from .models import Event, RepoRef


def select_endpoints(username: str, *, authenticated: bool, extended_window: bool = False) -> List[str]:
    """Return the event-stream endpoints worth walking for this user."""
    endpoints = [api_url(f"/users/{username}/events/public")]
    if authenticated:
        endpoints.insert(0, api_url(f"/users/{username}/events"))
        if extended_window:
            endpoints.append(api_url(f"/users/{username}/received_events"))
    return endpoints


def _report(result: StreamResult) -> None:
    if result.state is PageState.EXHAUSTED:
        detail = result.error or result.reason
        print(
            f"[warn] {result.endpoint} stopped early ({result.reason}); "
            f"keeping {len(result.events)} events -> {detail}",
            file=sys.stderr,
        )


def collect_events(
    username: str,
    cutoff,
    *,
    authenticated: Optional[bool] = None,
    extended_window: bool = False,
    max_workers: int = MAX_ENDPOINT_WORKERS,
) -> List[Event]:
    """Walk every selected endpoint and concatenate what they return.

    A failing endpoint is reported and skipped so the others still contribute.
    """
    if authenticated is None:
        authenticated = has_auth_token()
    endpoints = select_endpoints(username, authenticated=authenticated, extended_window=extended_window)

    events: List[Event] = []
    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(endpoints)))) as pool:
        futures = [(endpoint, pool.submit(fetch_event_stream, endpoint, cutoff)) for endpoint in endpoints]
        for endpoint, future in futures:
            try:
                result = future.result()
            except WiwoError as exc:
                print(f"[warn] skipping {endpoint}: {exc}", file=sys.stderr)
                continue
            _report(result)
            events.extend(result.events)
    return events


def get_authenticated_login() -> Optional[str]:
    """Return the login that owns the session token, or None."""
    if not has_auth_token():
        return None
    url = api_url("/user")
    try:
        resp = request_with_backoff("GET", url)
    except WiwoError as exc:
        print(f"[warn] identity lookup failed: {exc}", file=sys.stderr)
        return None
    if resp.status_code != 200:
        log_http_error(resp, url)
        return None
    try:
        login = (resp.json() or {}).get("login")
    except (ValueError, AttributeError):
        return None
    return login if isinstance(login, str) and login else None


def list_owned_repositories(username: str, *, authenticated_login: Optional[str] = None) -> List[RepoRef]:
    """Return the user's own, non-fork repositories.

    When the session token belongs to ``username`` the authenticated listing
    is used so private repositories are included.
    """
    if authenticated_login and authenticated_login.lower() == username.lower():
        url = api_url("/user/repos?affiliation=owner")
    else:
        url = api_url(f"/users/{username}/repos?type=owner")

    repos: List[RepoRef] = []
    for item in paged_get(url, max_pages=MAX_PAGES_REPOS):
        try:
            repo = RepoRef.from_listing(item, username)
        except ParseFailure as exc:
            print(f"[warn] skipping repository entry: {exc}", file=sys.stderr)
            continue
        if repo.is_fork:
            continue
        repos.append(repo)
    return repos


__all__ = [
    "select_endpoints",
    "collect_events",
    "get_authenticated_login",
    "list_owned_repositories",
]
