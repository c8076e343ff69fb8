"""Central configuration constants for event retrieval and git-history mining."""

from __future__ import annotations

import os

USER_AGENT = "wiwo-cli/0.3"
BASE_URL = "https://api.github.com"
WEB_HOST = "github.com"
PER_PAGE = 100
REQUEST_TIMEOUT = int(os.getenv("REQUEST_TIMEOUT", "30"))
MAX_RETRIES = int(os.getenv("MAX_RETRIES", "3"))
BACKOFF_BASE_SEC = 2

# The events API only keeps this many days of history.
API_HORIZON_DAYS = 90

MAX_PAGES = int(os.getenv("MAX_PAGES", "30"))
MAX_EMPTY_PAGES = int(os.getenv("MAX_EMPTY_PAGES", "2"))
MAX_RATE_LIMIT_WAIT_SEC = int(os.getenv("MAX_RATE_LIMIT_WAIT_SEC", "3600"))
MAX_RATE_LIMIT_RETRIES = int(os.getenv("MAX_RATE_LIMIT_RETRIES", "3"))
PAGE_DELAY_SEC = float(os.getenv("PAGE_DELAY_SEC", "0.25"))
MAX_ENDPOINT_WORKERS = int(os.getenv("MAX_ENDPOINT_WORKERS", "3"))
MAX_PAGES_REPOS = int(os.getenv("MAX_PAGES_REPOS", "10"))  # 0 = no cap

CLONE_WORKERS = int(os.getenv("CLONE_WORKERS", "4"))
CLONE_TIMEOUT_SEC = int(os.getenv("CLONE_TIMEOUT_SEC", "300"))
GIT_LOG_TIMEOUT_SEC = int(os.getenv("GIT_LOG_TIMEOUT_SEC", "120"))

__all__ = [
    "USER_AGENT",
    "BASE_URL",
    "WEB_HOST",
    "PER_PAGE",
    "REQUEST_TIMEOUT",
    "MAX_RETRIES",
    "BACKOFF_BASE_SEC",
    "API_HORIZON_DAYS",
    "MAX_PAGES",
    "MAX_EMPTY_PAGES",
    "MAX_RATE_LIMIT_WAIT_SEC",
    "MAX_RATE_LIMIT_RETRIES",
    "PAGE_DELAY_SEC",
    "MAX_ENDPOINT_WORKERS",
    "MAX_PAGES_REPOS",
    "CLONE_WORKERS",
    "CLONE_TIMEOUT_SEC",
    "GIT_LOG_TIMEOUT_SEC",
]
