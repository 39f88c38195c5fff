import time

import pytest
import requests

from comicbox.log import Console, QUIET


class FakeResponse:
    def __init__(self, content=b"", status_code=200, headers=None, url=""):
        if isinstance(content, str):
            content = content.encode("utf-8")
        self.content = content
        self.status_code = status_code
        self.headers = headers or {}
        self.history = []
        self.url = url

    @property
    def text(self):
        return self.content.decode("utf-8", "replace")

    def iter_content(self, chunk_size=1):
        for i in range(0, len(self.content), chunk_size):
            yield self.content[i : i + chunk_size]

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


class FakeSession:
    """
    Maps URLs to responses. A list value is consumed one item per request
    (the last item repeats); exceptions in the list are raised.
    """

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls = []

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if url not in self.routes:
            raise requests.exceptions.ConnectionError(f"no route for {url}")
        value = self.routes[url]
        if isinstance(value, list):
            value = value.pop(0) if len(value) > 1 else value[0]
        if isinstance(value, BaseException):
            raise value
        return value

    def urls(self):
        return [url for url, _ in self.calls]


def html_page(title="", body=""):
    return (
        '<html><head><meta charset="utf-8"><title>'
        + title
        + "</title></head><body>"
        + body
        + "</body></html>"
    )


@pytest.fixture(autouse=True)
def sleeps(monkeypatch):
    """Retry delays are recorded instead of slept."""
    recorded = []
    monkeypatch.setattr(time, "sleep", recorded.append)
    return recorded


@pytest.fixture
def console():
    return Console(QUIET)
