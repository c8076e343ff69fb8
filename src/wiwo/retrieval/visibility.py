"""Memoized repository visibility lookups."""

from __future__ import annotations

import sys
import threading
from typing import Dict, Optional

from wiwo.errors import WiwoError

from .http_client import api_url, request_with_backoff


class VisibilityCache:
    """Identifier -> is-private map with write-once entries and per-key locks."""

    def __init__(self) -> None:
        self._values: Dict[str, bool] = {}
        self._key_locks: Dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def get(self, identifier: str) -> Optional[bool]:
        with self._guard:
            return self._values.get(identifier)

    def put(self, identifier: str, value: bool) -> bool:
        """Store ``value`` unless a value is already cached; return the cached value."""
        with self._guard:
            return self._values.setdefault(identifier, bool(value))

    def lock_for(self, identifier: str) -> threading.Lock:
        with self._guard:
            lock = self._key_locks.get(identifier)
            if lock is None:
                lock = self._key_locks[identifier] = threading.Lock()
            return lock

    def __contains__(self, identifier: object) -> bool:
        with self._guard:
            return identifier in self._values

    def __len__(self) -> int:
        with self._guard:
            return len(self._values)


class VisibilityResolver:
    """Resolve whether a repository is private, degrading to public on any failure."""

    def __init__(self, cache: VisibilityCache) -> None:
        self.cache = cache

    def resolve(self, identifier: str) -> bool:
        cached = self.cache.get(identifier)
        if cached is not None:
            return cached
        with self.cache.lock_for(identifier):
            cached = self.cache.get(identifier)
            if cached is not None:
                return cached
            return self.cache.put(identifier, self._lookup(identifier))

    def _lookup(self, identifier: str) -> bool:
        url = api_url(f"/repos/{identifier}")
        try:
            resp = request_with_backoff("GET", url)
        except WiwoError as exc:
            print(f"[warn] visibility lookup failed for {identifier}: {exc}", file=sys.stderr)
            return False
        if resp.status_code != 200:
            return False
        try:
            details = resp.json()
        except ValueError:
            return False
        if not isinstance(details, dict):
            return False
        private = details.get("private")
        return private if isinstance(private, bool) else False


__all__ = ["VisibilityCache", "VisibilityResolver"]
