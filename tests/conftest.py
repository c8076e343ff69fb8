import pytest

from wiwo.retrieval import http_client


@pytest.fixture(autouse=True)
def no_page_delay(monkeypatch):
    monkeypatch.setattr(http_client, "PAGE_DELAY_SEC", 0)


@pytest.fixture(autouse=True)
def clean_auth_header():
    http_client.SESSION.headers.pop("Authorization", None)
    yield
    http_client.SESSION.headers.pop("Authorization", None)
