"""Activity timeline pipeline: time ranges, merging, rendering, and the CLI runner."""

from .runner import fetch_user_events, main, run

__all__ = ["fetch_user_events", "main", "run"]
