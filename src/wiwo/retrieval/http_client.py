"""HTTP helpers with retry/backoff logic and the paginated event-stream walker."""

from __future__ import annotations

import os
import sys
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

import requests

from wiwo.errors import ParseFailure, RateLimited, TransportFailure, WiwoError

from .config import (
    BACKOFF_BASE_SEC,
    BASE_URL,
    MAX_EMPTY_PAGES,
    MAX_PAGES,
    MAX_RATE_LIMIT_RETRIES,
    MAX_RATE_LIMIT_WAIT_SEC,
    MAX_RETRIES,
    PAGE_DELAY_SEC,
    PER_PAGE,
    REQUEST_TIMEOUT,
    USER_AGENT,
)
from .models import Event

SESSION = requests.Session()
SESSION.headers.update(
    {
        "Accept": "application/vnd.github.v3+json",
        "User-Agent": USER_AGENT,
    }
)


def api_url(path: str) -> str:
    """Join an API path onto BASE_URL."""
    path = path if path.startswith("/") else f"/{path}"
    return f"{BASE_URL}{path}"


def with_page(url: str, page: int, per_page: int = PER_PAGE) -> str:
    sep = "&" if "?" in url else "?"
    return f"{url}{sep}page={page}&per_page={per_page}"


def sleep_with_jitter(base: float) -> None:
    """Pause execution with +/- 25% jitter to avoid synchronized retries."""
    jitter = base * 0.25 * (0.5 - (os.urandom(1)[0] / 255.0))
    time.sleep(max(0.0, base + jitter))


def log_http_error(resp: requests.Response, url: str) -> None:
    """Print a short, human-readable message when GitHub returns an error."""
    try:
        body = resp.json()
    except ValueError:
        body = {"text": (resp.text or "")[:300]}
    if not isinstance(body, dict):
        body = {"text": str(body)[:300]}
    msg = body.get("message") or body.get("error") or body.get("text")
    print(f"[error] HTTP {resp.status_code} for {url}\n  -> {msg}", file=sys.stderr)


def set_auth_token(token: Optional[str]) -> None:
    """Set or clear the SESSION Authorization header."""
    if token:
        SESSION.headers["Authorization"] = f"Bearer {token}"
    else:
        SESSION.headers.pop("Authorization", None)


def has_auth_token() -> bool:
    return "Authorization" in SESSION.headers


def rate_limit_wait(resp: requests.Response, now: Optional[float] = None) -> Optional[int]:
    """Return seconds until the quota resets, or None when the response is not rate limited."""
    headers = resp.headers or {}
    remaining = headers.get("X-RateLimit-Remaining")
    reset = headers.get("X-RateLimit-Reset")
    retry_after = headers.get("Retry-After")
    current = int(now if now is not None else time.time())

    if remaining is not None and str(remaining).strip() == "0":
        if reset and str(reset).isdigit():
            return int(reset) - current
        if retry_after and str(retry_after).isdigit():
            return int(retry_after)
        return BACKOFF_BASE_SEC
    if resp.status_code in (403, 429) and retry_after and str(retry_after).isdigit():
        return int(retry_after)
    return None


def request_with_backoff(method: str, url: str, **kwargs) -> requests.Response:
    """Perform a REST call, retrying transport errors and 5xx responses with backoff.

    Any other response, including 4xx and rate-limit responses, is returned to
    the caller untouched. Raises TransportFailure once every attempt failed
    without a response.
    """
    timeout = kwargs.pop("timeout", REQUEST_TIMEOUT)
    last_exc: Optional[requests.RequestException] = None

    for attempt in range(1, MAX_RETRIES + 1):
        try:
            resp = SESSION.request(method, url, timeout=timeout, **kwargs)
        except requests.RequestException as exc:
            last_exc = exc
            if attempt < MAX_RETRIES:
                delay = BACKOFF_BASE_SEC * (2 ** (attempt - 1))
                print(f"[retry {attempt}/{MAX_RETRIES}] {exc} -> sleep {delay:.1f}s", file=sys.stderr)
                sleep_with_jitter(delay)
            continue

        if resp.status_code >= 500 and attempt < MAX_RETRIES:
            delay = BACKOFF_BASE_SEC * (2 ** (attempt - 1))
            print(f"[retry {attempt}/{MAX_RETRIES}] HTTP {resp.status_code} -> sleep {delay:.1f}s", file=sys.stderr)
            sleep_with_jitter(delay)
            continue
        return resp

    raise TransportFailure(url, last_exc) from last_exc


def paged_get(url: str, *, max_pages: int = 0) -> List[Dict[str, Any]]:
    """Retrieve list pages until the API returns a short or empty page, or max_pages hits."""
    results: List[Dict[str, Any]] = []
    page = 1
    backoffs = 0
    while True:
        if max_pages and page > max_pages:
            break
        page_url = with_page(url, page, PER_PAGE)
        resp = request_with_backoff("GET", page_url)

        wait = rate_limit_wait(resp)
        if wait is not None and resp.status_code != 200:
            backoffs += 1
            if wait >= MAX_RATE_LIMIT_WAIT_SEC or backoffs > MAX_RATE_LIMIT_RETRIES:
                print(f"[warn] rate limit for {page_url} resets in {wait}s; giving up", file=sys.stderr)
                break
            print(f"[rate-limit] waiting {max(0, wait) + 1}s for {page_url}", file=sys.stderr)
            time.sleep(max(0, wait) + 1)
            continue
        if wait is None:
            backoffs = 0

        if resp.status_code != 200:
            log_http_error(resp, page_url)
            break

        try:
            batch = resp.json()
        except ValueError:
            print(f"[warn] {page_url} returned a body that is not JSON", file=sys.stderr)
            break
        if not isinstance(batch, list) or not batch:
            break

        results.extend(entry for entry in batch if isinstance(entry, dict))
        if len(batch) < PER_PAGE:
            break
        page += 1
        if wait is not None:
            backoffs += 1
            if wait >= MAX_RATE_LIMIT_WAIT_SEC or backoffs > MAX_RATE_LIMIT_RETRIES:
                print(f"[warn] rate limit for {url} resets in {wait}s; giving up", file=sys.stderr)
                break
            print(f"[rate-limit] waiting {max(0, wait) + 1}s before page {page} of {url}", file=sys.stderr)
            time.sleep(max(0, wait) + 1)
    return results


def parse_event_page(resp: requests.Response) -> List[Event]:
    """Parse a page body as a list of events, tolerating a lone event object.

    Malformed items in an array are skipped with a warning; a body with no
    usable event at all raises ParseFailure.
    """
    try:
        payload = resp.json()
    except ValueError as exc:
        raise ParseFailure(f"response body is not JSON: {exc}") from exc
    if not isinstance(payload, list):
        return [Event.from_api(payload)]

    events: List[Event] = []
    last_error: Optional[ParseFailure] = None
    for item in payload:
        try:
            events.append(Event.from_api(item))
        except ParseFailure as exc:
            last_error = exc
    if last_error is not None:
        if not events:
            raise ParseFailure(f"no usable events in page: {last_error}") from last_error
        skipped = len(payload) - len(events)
        print(f"[warn] skipped {skipped} malformed event(s): {last_error}", file=sys.stderr)
    return events


class PageState(str, Enum):
    """States of the event-stream paginator."""

    FETCHING = "fetching"
    BACKOFF = "backoff"
    EXHAUSTED = "exhausted"
    DONE = "done"


TERMINAL_STATES = (PageState.EXHAUSTED, PageState.DONE)


@dataclass
class StreamResult:
    """Everything one endpoint produced, plus why its pagination stopped."""

    endpoint: str
    events: List[Event] = field(default_factory=list)
    state: PageState = PageState.FETCHING
    reason: Optional[str] = None
    pages_fetched: int = 0
    error: Optional[WiwoError] = None


class EventStreamPaginator:
    """Walks the pages of one event-stream endpoint.

    The walk is a small state machine. FETCHING requests the current page and
    BACKOFF sleeps out a rate-limit reset before retrying that page. DONE and
    EXHAUSTED are terminal: DONE means the stream ended normally (cutoff,
    ceilings, not-found) while EXHAUSTED means it was abandoned (rate-limit
    ceiling, HTTP error, unparseable body). Transport failures propagate as
    TransportFailure.
    """

    def __init__(
        self,
        endpoint: str,
        cutoff,
        *,
        per_page: int = PER_PAGE,
        max_pages: Optional[int] = None,
        max_empty_pages: Optional[int] = None,
    ) -> None:
        self.endpoint = endpoint
        self.cutoff = cutoff
        self.per_page = per_page
        self.max_pages = max_pages if max_pages is not None else MAX_PAGES
        self.max_empty_pages = max_empty_pages if max_empty_pages is not None else MAX_EMPTY_PAGES
        self.page = 1
        self.empty_pages = 0
        self.backoffs = 0
        self.pending_wait = 0
        self.result = StreamResult(endpoint=endpoint)

    @property
    def state(self) -> PageState:
        return self.result.state

    def run(self) -> StreamResult:
        while self.state not in TERMINAL_STATES:
            if self.state is PageState.BACKOFF:
                self._sleep_out_backoff()
            else:
                self._fetch_page()
        return self.result

    def _transition(self, state: PageState, reason: str, error: Optional[WiwoError] = None) -> None:
        self.result.state = state
        self.result.reason = reason
        if error is not None:
            self.result.error = error

    def _sleep_out_backoff(self) -> None:
        print(
            f"[rate-limit] {self.endpoint}: waiting {self.pending_wait}s before retrying page {self.page}",
            file=sys.stderr,
        )
        time.sleep(self.pending_wait)
        self._transition(PageState.FETCHING, "rate-limited")

    def _on_rate_limited(self, wait: int) -> None:
        self.backoffs += 1
        if wait >= MAX_RATE_LIMIT_WAIT_SEC or self.backoffs > MAX_RATE_LIMIT_RETRIES:
            self._transition(PageState.EXHAUSTED, "rate-limit-ceiling", RateLimited(self.endpoint, wait))
            return
        self.pending_wait = max(0, wait) + 1
        self._transition(PageState.BACKOFF, "rate-limited")

    def _advance(self, reason: str) -> None:
        if self.page >= self.max_pages:
            self._transition(PageState.DONE, "page-ceiling-reached")
            return
        self.page += 1
        self.result.reason = reason
        if PAGE_DELAY_SEC > 0:
            time.sleep(PAGE_DELAY_SEC)

    def _fetch_page(self) -> None:
        url = with_page(self.endpoint, self.page, self.per_page)
        resp = request_with_backoff("GET", url)

        wait = rate_limit_wait(resp)
        if wait is not None and not 200 <= resp.status_code < 300:
            self._on_rate_limited(wait)
            return
        if wait is None:
            self.backoffs = 0

        self._consume_page(resp, url)
        # quota spent on a good page: wait before asking for the next one
        if wait is not None and self.state not in TERMINAL_STATES:
            self._on_rate_limited(wait)

    def _consume_page(self, resp: requests.Response, url: str) -> None:
        if resp.status_code == 404:
            self._transition(PageState.DONE, "not-found")
            return
        if not 200 <= resp.status_code < 300:
            log_http_error(resp, url)
            self._transition(PageState.EXHAUSTED, "http-error")
            return

        try:
            events = parse_event_page(resp)
        except ParseFailure as exc:
            print(f"[warn] failed to parse events from {url}: {exc}", file=sys.stderr)
            self._transition(PageState.EXHAUSTED, "parse-failure", exc)
            return
        self.result.pages_fetched += 1

        if not events:
            self.empty_pages += 1
            if self.empty_pages >= self.max_empty_pages:
                self._transition(PageState.DONE, "empty-ceiling")
                return
            self._advance("empty-page")
            return
        self.empty_pages = 0

        self.result.events.extend(events)
        oldest = min(event.occurred_at for event in events)
        if oldest < self.cutoff:
            self._transition(PageState.DONE, "cutoff-reached")
            return
        self._advance("page-fetched")


def fetch_event_stream(endpoint: str, cutoff, **kwargs) -> StreamResult:
    """Fetch every page of ``endpoint`` that can still hold events at or after ``cutoff``."""
    return EventStreamPaginator(endpoint, cutoff, **kwargs).run()


__all__ = [
    "SESSION",
    "api_url",
    "with_page",
    "sleep_with_jitter",
    "log_http_error",
    "set_auth_token",
    "has_auth_token",
    "rate_limit_wait",
    "request_with_backoff",
    "paged_get",
    "parse_event_page",
    "PageState",
    "StreamResult",
    "EventStreamPaginator",
    "fetch_event_stream",
]
