"""Commit history mined from local clones, for windows the events API cannot reach."""

from __future__ import annotations

import base64
import datetime as dt
import os
import subprocess
import sys
import tempfile
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence

from .config import CLONE_TIMEOUT_SEC, CLONE_WORKERS, GIT_LOG_TIMEOUT_SEC
from .models import MINED_COMMIT_KIND, Event, RepoRef, parse_timestamp

FIELD_SEP = "\x1f"
RECORD_SEP = "\x1e"
# hash, author date (strict ISO-8601), subject, author name
LOG_FORMAT = "%H%x1f%aI%x1f%s%x1f%an%x1e"


def run_git(args: Sequence[str], *, cwd: Optional[str] = None, timeout: Optional[int] = None) -> subprocess.CompletedProcess:
    """Run git with captured text output; raises CalledProcessError on a non-zero exit."""
    env = dict(os.environ)
    env["GIT_TERMINAL_PROMPT"] = "0"
    return subprocess.run(
        ["git", *args],
        cwd=cwd,
        check=True,
        capture_output=True,
        text=True,
        timeout=timeout,
        env=env,
    )


def auth_config_args(token: Optional[str]) -> List[str]:
    """Return ``-c`` options that pass the token as a header instead of inside the URL."""
    if not token:
        return []
    basic = base64.b64encode(f"x-access-token:{token}".encode("utf-8")).decode("ascii")
    return ["-c", f"http.extraHeader=Authorization: Basic {basic}"]


def clone_history(repo: RepoRef, dest: str, *, token: Optional[str] = None) -> None:
    """Clone commit history only: no checkout and no trees."""
    url = repo.clone_url or f"{repo.html_url}.git"
    run_git(
        [*auth_config_args(token), "clone", "--quiet", "--no-checkout", "--filter=tree:0", url, dest],
        timeout=CLONE_TIMEOUT_SEC,
    )


def parse_log_output(output: str, repo: RepoRef, cutoff: dt.datetime) -> List[Event]:
    """Turn ``git log`` records into synthetic Push events authored at or after ``cutoff``."""
    events: List[Event] = []
    for record in output.split(RECORD_SEP):
        record = record.strip("\n")
        if not record.strip():
            continue
        fields = record.split(FIELD_SEP)
        if len(fields) < 2:
            continue
        authored_at = parse_timestamp(fields[1].strip())
        if authored_at is None or authored_at < cutoff:
            continue
        events.append(Event(kind=MINED_COMMIT_KIND, occurred_at=authored_at, repository=repo))
    return events


def read_commit_events(repo_dir: str, repo: RepoRef, cutoff: dt.datetime) -> List[Event]:
    """Read every branch's commits since ``cutoff`` from a local clone."""
    since = cutoff.astimezone(dt.timezone.utc).strftime("%Y-%m-%d %H:%M:%S +0000")
    result = run_git(
        ["log", "--all", f"--since={since}", "--date=iso-strict", f"--pretty=format:{LOG_FORMAT}"],
        cwd=repo_dir,
        timeout=GIT_LOG_TIMEOUT_SEC,
    )
    return parse_log_output(result.stdout, repo, cutoff)


def _workspace_name(repo: RepoRef) -> str:
    return repo.identifier.replace("/", "__")


def mine_repository(repo: RepoRef, workspace: str, cutoff: dt.datetime, *, token: Optional[str] = None) -> List[Event]:
    """Clone one repository into ``workspace`` and mine it; failures yield no events."""
    dest = os.path.join(workspace, _workspace_name(repo))
    try:
        clone_history(repo, dest, token=token)
    except subprocess.CalledProcessError as exc:
        print(f"[warn] clone failed for {repo.identifier}: {(exc.stderr or '').strip()[:200]}", file=sys.stderr)
        return []
    except (subprocess.TimeoutExpired, OSError) as exc:
        print(f"[warn] clone failed for {repo.identifier}: {exc}", file=sys.stderr)
        return []

    try:
        return read_commit_events(dest, repo, cutoff)
    except subprocess.CalledProcessError as exc:
        print(f"[warn] git log failed for {repo.identifier}: {(exc.stderr or '').strip()[:200]}", file=sys.stderr)
    except (subprocess.TimeoutExpired, OSError) as exc:
        print(f"[warn] git log failed for {repo.identifier}: {exc}", file=sys.stderr)
    return []


def mine_commit_events(
    repos: Sequence[RepoRef],
    cutoff: dt.datetime,
    *,
    token: Optional[str] = None,
    max_workers: int = CLONE_WORKERS,
) -> List[Event]:
    """Mine Push events from every repository, cloning a bounded number at a time.

    Clones live in one temporary workspace that is removed before returning,
    whatever happened to the individual repositories.
    """
    if not repos:
        return []

    events: List[Event] = []
    with tempfile.TemporaryDirectory(prefix="wiwo-history-") as workspace:
        with ThreadPoolExecutor(max_workers=max(1, max_workers)) as pool:
            futures = [pool.submit(mine_repository, repo, workspace, cutoff, token=token) for repo in repos]
            for repo, future in zip(repos, futures):
                mined = future.result()
                if mined:
                    print(f"[info] {repo.identifier}: {len(mined)} commits", file=sys.stderr)
                events.extend(mined)
    return events


__all__ = [
    "LOG_FORMAT",
    "run_git",
    "auth_config_args",
    "clone_history",
    "parse_log_output",
    "read_commit_events",
    "mine_repository",
    "mine_commit_events",
]
