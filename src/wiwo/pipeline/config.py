"""Command-line configuration for the activity timeline workflow."""

from __future__ import annotations

import argparse
from dataclasses import dataclass
from typing import List, Optional

from wiwo.retrieval.config import CLONE_WORKERS
from wiwo.secrets import resolve_github_token

DEFAULT_TIME_RANGE = "30d"


@dataclass(frozen=True)
class RunSettings:
    """Resolved runtime settings for one timeline run."""

    username: Optional[str]
    time_range: str
    token: Optional[str]
    git_history: bool
    clone_workers: int


def build_arg_parser() -> argparse.ArgumentParser:
    """Return the CLI parser used by the wiwo entry point."""

    parser = argparse.ArgumentParser(
        prog="wiwo",
        description="Show what a GitHub user has been working on.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    events = commands.add_parser("events", help="List GitHub events for a user")
    events.add_argument("-u", "--user", default=None, help="GitHub username (defaults to the token owner)")
    events.add_argument(
        "-t",
        "--time",
        default=DEFAULT_TIME_RANGE,
        help="Time range, e.g. '30d' for 30 days, '2w', '6m', '1y'",
    )
    events.add_argument(
        "--no-git-history",
        action="store_true",
        help="Do not clone repositories when the range exceeds the API horizon",
    )
    events.add_argument("--clone-workers", type=int, default=CLONE_WORKERS)
    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments; accepts argv overrides for testing."""

    parser = build_arg_parser()
    return parser.parse_args(argv)


def resolve_settings(args: argparse.Namespace, token: Optional[str] = None) -> RunSettings:
    """Combine parsed arguments with the credential found in the environment."""

    return RunSettings(
        username=(args.user or "").strip() or None,
        time_range=args.time,
        token=token if token is not None else resolve_github_token(),
        git_history=not args.no_git_history,
        clone_workers=max(1, int(args.clone_workers)),
    )


__all__ = [
    "DEFAULT_TIME_RANGE",
    "RunSettings",
    "build_arg_parser",
    "parse_args",
    "resolve_settings",
]
