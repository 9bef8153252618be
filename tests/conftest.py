from __future__ import annotations

import pytest
import requests


class FakeResponse:
    def __init__(self, status_code=200, body=b"", headers=None, encoding="utf-8", error=None):
        self.status_code = status_code
        self._body = body.encode("utf-8") if isinstance(body, str) else body
        self.headers = headers or {}
        self.encoding = encoding
        self.error = error
        self.closed = False
        self.raw = None

    def iter_content(self, chunk_size=1):
        if self.error is not None:
            raise self.error
        for i in range(0, len(self._body), chunk_size):
            yield self._body[i:i + chunk_size]

    def close(self):
        self.closed = True


class FakeSession:
    """Maps URL -> FakeResponse, or an exception to raise from ``get``."""

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.headers = {}
        self.calls = []

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        target = self.routes.get(url)
        if target is None:
            raise requests.ConnectionError(f"no route to {url}")
        if isinstance(target, Exception):
            raise target
        return target


class FakeClock:
    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()
