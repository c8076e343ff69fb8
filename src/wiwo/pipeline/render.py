"""Plain-text table output for a merged event sequence."""

from __future__ import annotations

import sys
from typing import List, Optional, Sequence, TextIO

from wiwo.retrieval.models import Event, display_kind
from wiwo.retrieval.visibility import VisibilityResolver

TIMESTAMP_WIDTH = 19
VISIBILITY_WIDTH = 10
MIN_COLUMN_WIDTH = 10
NO_EVENTS_MESSAGE = "No recent events found."


def pad_to_width(text: str, width: int) -> str:
    return text if len(text) >= width else text.ljust(width)


def format_row(columns: Sequence[str], widths: Sequence[int]) -> str:
    cells = [pad_to_width(col, width) for col, width in zip(columns, widths)]
    cells.extend(columns[len(widths):])
    return " | ".join(cells)


def column_widths(events: Sequence[Event]) -> List[int]:
    kind_width = max([len(display_kind(e.kind)) for e in events] + [MIN_COLUMN_WIDTH])
    repo_width = max([len(e.repository.identifier) for e in events] + [MIN_COLUMN_WIDTH])
    return [TIMESTAMP_WIDTH, kind_width, repo_width, VISIBILITY_WIDTH]


def render_events(events: Sequence[Event], resolver: VisibilityResolver, out: Optional[TextIO] = None) -> None:
    """Write the event table to ``out`` (stdout by default)."""
    out = out or sys.stdout
    if not events:
        print(NO_EVENTS_MESSAGE, file=out)
        return

    for event in events:
        if event.repository.private is not None:
            resolver.cache.put(event.repository.identifier, event.repository.private)

    widths = column_widths(events)
    print(format_row(["TIMESTAMP", "EVENT", "REPOSITORY", "VISIBILITY", "URL"], widths), file=out)
    print("-+-".join(["-" * w for w in widths] + ["-" * 20]), file=out)
    for event in events:
        visibility = "Private" if resolver.resolve(event.repository.identifier) else "Public"
        print(
            format_row(
                [
                    event.occurred_at.strftime("%Y-%m-%d %H:%M:%S"),
                    display_kind(event.kind),
                    event.repository.identifier,
                    visibility,
                    event.repository.html_url,
                ],
                widths,
            ),
            file=out,
        )


__all__ = ["NO_EVENTS_MESSAGE", "pad_to_width", "format_row", "column_widths", "render_events"]
