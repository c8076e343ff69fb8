"""Merge events from every source into one deduplicated, newest-first sequence."""

from __future__ import annotations

import datetime as dt
from typing import Iterable, List

from wiwo.retrieval.models import Event


def sort_events(events: Iterable[Event]) -> List[Event]:
    """Sort newest first; equal timestamps are ordered by kind, then repository.

    The repository tiebreak keeps equal keys adjacent for dedupe_adjacent.
    """
    by_kind = sorted(events, key=lambda event: (event.kind, event.repository.identifier))
    return sorted(by_kind, key=lambda event: event.occurred_at, reverse=True)


def dedupe_adjacent(events: List[Event]) -> List[Event]:
    """Drop entries equal to their predecessor on (occurred_at, kind, repository).

    Only neighbours are compared, so the input must already be sorted.
    """
    out: List[Event] = []
    for event in events:
        if out and out[-1].dedup_key == event.dedup_key:
            continue
        out.append(event)
    return out


def merge_events(events: Iterable[Event], cutoff: dt.datetime) -> List[Event]:
    """Sort, dedupe, then drop anything older than ``cutoff``."""
    ordered = dedupe_adjacent(sort_events(events))
    return [event for event in ordered if event.occurred_at >= cutoff]


__all__ = ["sort_events", "dedupe_adjacent", "merge_events"]
