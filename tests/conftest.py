"""Global pytest fixtures & helpers.

Adds project root to path and provides fake HTTP doubles shared by the client
and authenticator tests.
"""
from __future__ import annotations

import io
import json
import os
import sys
import zipfile

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from garmin_export.models import Credentials


class FakeResp:
    """Minimal fake response matching needed parts of requests.Response."""

    def __init__(self, status_code=200, data=None, text=None, content=None, headers=None, url="", history=None):
        self.status_code = status_code
        self._data = data
        self._text = text
        self._content = content
        self.headers = headers or {}
        self.url = url
        self.history = history or []

    def json(self):
        if self._data is None:
            raise ValueError("not json")
        return self._data

    @property
    def text(self):
        if self._text is not None:
            return self._text
        if self._data is not None:
            return json.dumps(self._data)
        return ""

    @property
    def content(self):
        if self._content is not None:
            return self._content
        return self.text.encode()


class FakeSession:
    """Scripted stand-in for requests.Session; records every call."""

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.calls = []
        self.closed = False

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        if not self.responses:
            raise AssertionError(f"unexpected {method} {url}")
        result = self.responses.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    def get(self, url, **kwargs):
        return self.request("GET", url, **kwargs)

    def close(self):
        self.closed = True


class NoopLimiter:
    def __init__(self):
        self.waits = 0

    def wait(self):
        self.waits += 1


def make_zip(members):
    """Return ZIP bytes holding ``members`` (name -> bytes)."""

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for name, content in members.items():
            archive.writestr(name, content)
    return buffer.getvalue()


# --- Fixtures --------------------------------------------------------
@pytest.fixture
def credentials():
    return Credentials(username="runner@example.com", password="s3cret")


@pytest.fixture
def limiter():
    return NoopLimiter()
