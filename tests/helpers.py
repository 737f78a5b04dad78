"""Fake collaborators shared by the auth and CLI tests."""

from __future__ import annotations

from typing import Any, Optional
from urllib.parse import parse_qsl

import httpx

REDIRECT_URI = "http://localhost/callback"
START_MS = 1_700_000_000_000


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, now: int = START_MS) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeEndpoint:
    """Record form POSTs and answer them from a queue of canned responses.

    Each queued item is either an :class:`httpx.Response` or an exception
    instance, which is raised instead of answering.  Pass an instance to
    :class:`httpx.MockTransport`.
    """

    def __init__(self) -> None:
        self.requests: list[tuple[str, dict[str, str]]] = []
        self._queue: list[Any] = []

    def reply(
        self,
        status_code: int = 200,
        json: Optional[Any] = None,
        text: Optional[str] = None,
    ) -> None:
        if json is not None:
            self._queue.append(httpx.Response(status_code, json=json))
        else:
            self._queue.append(httpx.Response(status_code, text=text or ""))

    def fail(self, exc: Exception) -> None:
        self._queue.append(exc)

    def forms(self, url: Optional[str] = None) -> list[dict[str, str]]:
        """Return the decoded forms posted, optionally only those sent to *url*."""
        return [form for sent_to, form in self.requests if url is None or sent_to == url]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append((str(request.url), dict(parse_qsl(request.content.decode()))))
        if not self._queue:
            raise AssertionError(f"Unexpected request to {request.url}")
        item = self._queue.pop(0)
        if isinstance(item, Exception):
            raise item
        return item
