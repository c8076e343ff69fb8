"""Tests for wiwo.pipeline.runner exercising the full aggregation flow against a fake API.

Run with:
    pytest tests/test_runner.py --maxfail=1 -v --cov=wiwo.pipeline.runner --cov-report=term-missing
"""

import datetime as dt
from unittest.mock import MagicMock, patch

import pytest

from wiwo.pipeline import runner
from wiwo.pipeline.config import RunSettings
from wiwo.retrieval.models import Event

from helpers import api_event, make_resp

UTC = dt.timezone.utc
NOW = dt.datetime(2024, 6, 1, 12, tzinfo=UTC)


def _iso(days_ago, hour=0):
    return (NOW - dt.timedelta(days=days_ago, hours=hour)).strftime("%Y-%m-%dT%H:%M:%SZ")


def _fake_session(routes):
    """Build a SESSION double that answers page 1 of each route and 404s anything unknown."""
    session = MagicMock()
    session.headers = {}
    calls = []

    def request(method, url, timeout=None, **kwargs):
        calls.append(url)
        for fragment, payload in routes.items():
            if fragment in url:
                if "page=1&" in url:
                    return make_resp(200, payload, {"X-RateLimit-Remaining": "4999"})
                return make_resp(200, [], {"X-RateLimit-Remaining": "4999"})
        return make_resp(404, {"message": "Not Found"})

    session.request.side_effect = request
    session.calls = calls
    return session


def test_thirty_day_window_dedupes_event_seen_on_two_endpoints():
    shared = api_event("PushEvent", _iso(3), "octo/app")
    routes = {
        "/users/octo/events/public?": [shared, api_event("WatchEvent", _iso(5), "other/lib")],
        "/users/octo/events?": [shared, api_event("PushEvent", _iso(4), "octo/private-app")],
    }
    session = _fake_session(routes)
    with patch("wiwo.retrieval.http_client.SESSION", session):
        events = runner.fetch_user_events("octo", dt.timedelta(days=30), token="tok", now=NOW)

    keys = [(e.kind, e.repository.identifier) for e in events]
    assert keys == [
        ("PushEvent", "octo/app"),
        ("PushEvent", "octo/private-app"),
        ("WatchEvent", "other/lib"),
    ]
    assert not any("received_events" in url for url in session.calls)
    assert not any("/repos" in url for url in session.calls)


def test_short_window_applies_requested_cutoff():
    routes = {
        "/users/octo/events/public?": [
            api_event("PushEvent", _iso(1), "octo/app"),
            api_event("PushEvent", _iso(20), "octo/app"),
        ],
    }
    with patch("wiwo.retrieval.http_client.SESSION", _fake_session(routes)):
        events = runner.fetch_user_events("octo", dt.timedelta(days=7), now=NOW)
    assert len(events) == 1


@patch("wiwo.retrieval.git_history.clone_history")
@patch("wiwo.retrieval.git_history.read_commit_events")
def test_long_window_mines_git_history_and_merges(mock_read, mock_clone):
    api_push = api_event("PushEvent", _iso(10), "octo/app")
    routes = {
        "/users/octo/events/public?": [api_push, api_event("IssuesEvent", _iso(30), "octo/app")],
        "/users/octo/repos?type=owner": [
            {"name": "app", "full_name": "octo/app", "clone_url": "https://github.com/octo/app.git", "fork": False},
            {"name": "fork", "full_name": "octo/fork", "clone_url": "https://github.com/octo/fork.git", "fork": True},
        ],
    }

    def mined(repo_dir, repo, cutoff):
        return [
            Event("Push", NOW - dt.timedelta(days=10), repo),
            Event("Push", NOW - dt.timedelta(days=100), repo),
            Event("Push", NOW - dt.timedelta(days=100), repo),
        ]

    mock_read.side_effect = mined
    session = _fake_session(routes)
    with patch("wiwo.retrieval.http_client.SESSION", session):
        events = runner.fetch_user_events("octo", dt.timedelta(days=120), now=NOW)

    cloned = [call.args[0].identifier for call in mock_clone.call_args_list]
    assert cloned == ["octo/app"]
    cutoff_used = mock_read.call_args.args[2]
    assert cutoff_used == NOW - dt.timedelta(days=120)

    kinds = [(e.kind, (NOW - e.occurred_at).days) for e in events]
    assert kinds == [("Push", 10), ("PushEvent", 10), ("IssuesEvent", 30), ("Push", 100)]


@patch("wiwo.pipeline.runner.mine_commit_events")
@patch("wiwo.pipeline.runner.list_owned_repositories")
def test_long_window_without_git_history_skips_mining(mock_list, mock_mine):
    routes = {"/users/octo/events/public?": [api_event("PushEvent", _iso(2), "octo/app")]}
    with patch("wiwo.retrieval.http_client.SESSION", _fake_session(routes)):
        events = runner.fetch_user_events("octo", dt.timedelta(days=365), git_history=False, now=NOW)
    assert len(events) == 1
    mock_list.assert_not_called()
    mock_mine.assert_not_called()


@patch("wiwo.pipeline.runner.mine_commit_events", return_value=[])
@patch("wiwo.pipeline.runner.list_owned_repositories", return_value=[])
def test_long_window_holds_api_events_to_the_horizon(mock_list, mock_mine):
    routes = {
        "/users/octo/events/public?": [
            api_event("PushEvent", _iso(5), "octo/app"),
            api_event("PushEvent", _iso(95), "octo/app"),
        ],
    }
    with patch("wiwo.retrieval.http_client.SESSION", _fake_session(routes)):
        events = runner.fetch_user_events("octo", dt.timedelta(days=180), now=NOW)
    assert [(NOW - e.occurred_at).days for e in events] == [5]


def _settings(**overrides):
    base = dict(username="octo", time_range="30d", token=None, git_history=True, clone_workers=2)
    base.update(overrides)
    return RunSettings(**base)


@patch("wiwo.pipeline.runner.fetch_user_events")
def test_run_rejects_bad_time_range_before_network(mock_fetch, capsys):
    assert runner.run(_settings(time_range="10x")) == 1
    mock_fetch.assert_not_called()
    assert "[error]" in capsys.readouterr().err


@patch("wiwo.pipeline.runner.get_authenticated_login")
@patch("wiwo.pipeline.runner.fetch_user_events")
def test_run_rejects_range_older_than_year_one(mock_fetch, mock_login, capsys):
    assert runner.run(_settings(time_range="10000y", token="tok", git_history=False)) == 1
    mock_fetch.assert_not_called()
    mock_login.assert_not_called()
    assert "[error]" in capsys.readouterr().err


@patch("wiwo.pipeline.runner.get_authenticated_login", return_value=None)
@patch("wiwo.pipeline.runner.fetch_user_events")
def test_run_without_username_is_fatal(mock_fetch, mock_login, capsys):
    assert runner.run(_settings(username=None)) == 1
    mock_fetch.assert_not_called()
    assert "no username" in capsys.readouterr().err


@patch("wiwo.pipeline.runner.render_events")
@patch("wiwo.pipeline.runner.fetch_user_events", return_value=[])
@patch("wiwo.pipeline.runner.get_authenticated_login", return_value="octo")
def test_run_defaults_username_to_token_owner(mock_login, mock_fetch, mock_render):
    assert runner.run(_settings(username=None, token="tok")) == 0
    assert mock_fetch.call_args.args[0] == "octo"
    assert mock_fetch.call_args.kwargs["authenticated_login"] == "octo"
    mock_render.assert_called_once()


@patch("wiwo.pipeline.runner.fetch_user_events", return_value=[])
def test_run_prints_no_events_message(mock_fetch, capsys):
    assert runner.run(_settings()) == 0
    assert "No recent events found." in capsys.readouterr().out


def test_main_exits_with_code_one_on_bad_range(monkeypatch, tmp_path):
    monkeypatch.delenv("GH_TOKEN", raising=False)
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    monkeypatch.setenv("LOCAL_SECRETS_FILE", str(tmp_path / "none.json"))
    with pytest.raises(SystemExit) as excinfo:
        runner.main(["events", "--user", "octo", "--time", "d"])
    assert excinfo.value.code == 1


def test_main_returns_normally_on_success(monkeypatch, tmp_path):
    monkeypatch.delenv("GH_TOKEN", raising=False)
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    monkeypatch.setenv("LOCAL_SECRETS_FILE", str(tmp_path / "none.json"))
    monkeypatch.setattr(runner, "fetch_user_events", lambda *args, **kwargs: [])
    assert runner.main(["events", "--user", "octo"]) is None
