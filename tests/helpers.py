"""Response and event builders shared across the wiwo tests."""

from typing import Any, Dict, Optional
from unittest.mock import MagicMock


def make_resp(status: int = 200, payload: Any = None, headers: Optional[Dict[str, str]] = None):
    resp = MagicMock()
    resp.status_code = status
    resp.headers = headers or {}
    if payload is None:
        payload = {}
    resp.json.return_value = payload
    resp.text = str(payload)
    return resp


def api_event(kind: str, created_at: str, repo: str, **repo_extra) -> Dict[str, Any]:
    return {"type": kind, "created_at": created_at, "repo": {"name": repo, **repo_extra}}
