"""Utilities for loading local (gitignored) credentials."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

DEFAULT_SECRETS_FILENAME = "local_secrets.json"
TOKEN_ENV_VARS = ("GH_TOKEN", "GITHUB_TOKEN")


def _default_secrets_path() -> Path:
    return Path.cwd() / DEFAULT_SECRETS_FILENAME


def load_local_secrets(path: Optional[str | Path] = None) -> Dict[str, Any]:
    """Load secrets from a JSON file; return {} when unavailable."""

    candidate = path or os.getenv("LOCAL_SECRETS_FILE") or _default_secrets_path()
    secrets_path = Path(candidate).expanduser()
    if not secrets_path.exists():
        return {}
    try:
        with secrets_path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
            return data if isinstance(data, dict) else {}
    except (OSError, ValueError):
        return {}


def resolve_github_token(path: Optional[str | Path] = None) -> Optional[str]:
    """Return the first token found in the environment, then the secrets file."""

    for name in TOKEN_ENV_VARS:
        value = (os.getenv(name) or "").strip()
        if value:
            return value
    token = load_local_secrets(path).get("github_token")
    if isinstance(token, str) and token.strip():
        return token.strip()
    return None


__all__ = ["load_local_secrets", "resolve_github_token", "DEFAULT_SECRETS_FILENAME", "TOKEN_ENV_VARS"]
