"""Tests for wiwo.secrets covering the secrets file and token precedence.

Run with coverage:
    pytest tests/test_secrets.py --maxfail=1 -v --cov=wiwo.secrets --cov-report=term-missing
"""

import json

from wiwo import secrets


def test_load_local_secrets_missing_and_invalid(tmp_path):
    assert secrets.load_local_secrets(tmp_path / "nope.json") == {}
    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    assert secrets.load_local_secrets(broken) == {}
    listed = tmp_path / "list.json"
    listed.write_text("[1, 2]", encoding="utf-8")
    assert secrets.load_local_secrets(listed) == {}


def test_resolve_github_token_precedence(tmp_path, monkeypatch):
    path = tmp_path / "local_secrets.json"
    path.write_text(json.dumps({"github_token": " file-token "}), encoding="utf-8")
    monkeypatch.delenv("GH_TOKEN", raising=False)
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    assert secrets.resolve_github_token(path) == "file-token"

    monkeypatch.setenv("GITHUB_TOKEN", "gh-actions")
    assert secrets.resolve_github_token(path) == "gh-actions"

    monkeypatch.setenv("GH_TOKEN", "cli")
    assert secrets.resolve_github_token(path) == "cli"


def test_resolve_github_token_none(tmp_path, monkeypatch):
    monkeypatch.delenv("GH_TOKEN", raising=False)
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    monkeypatch.setenv("LOCAL_SECRETS_FILE", str(tmp_path / "absent.json"))
    assert secrets.resolve_github_token() is None
