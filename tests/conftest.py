"""Pytest configuration helpers.

This conftest ensures the project root is on `sys.path` so tests can import
the `neoai` package regardless of how pytest is invoked, and provides a fake
HTTP backend built on `httpx.MockTransport`.
"""
import os
import sys
from typing import Any, Callable

import httpx
import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from neoai.config import Settings  # noqa: E402

Responder = Callable[[httpx.Request], httpx.Response]


def reply(status: int = 200, *, json: Any = None, content: bytes | None = None,
          headers: dict[str, str] | None = None, text: str | None = None) -> Responder:
    """Build a responder producing a fresh httpx.Response per request."""
    def _respond(request: httpx.Request) -> httpx.Response:
        if json is not None:
            return httpx.Response(status, json=json, headers=headers)
        if text is not None:
            return httpx.Response(status, text=text, headers=headers)
        return httpx.Response(status, content=content or b"", headers=headers)
    return _respond


def fail_with(exc_type: type[httpx.HTTPError] = httpx.ConnectError) -> Responder:
    def _respond(request: httpx.Request) -> httpx.Response:
        raise exc_type("connection refused", request=request)
    return _respond


class FakeBackend:
    """Routes requests by method + URL prefix to queued responders.

    The last responder of a route repeats once the queue is down to one.
    Unknown requests fail the test.
    """

    def __init__(self) -> None:
        self.routes: list[tuple[str, str, list[Responder]]] = []
        self.requests: list[httpx.Request] = []

    def add(self, method: str, url: str, *responders: Responder) -> "FakeBackend":
        self.routes.append((method, url, list(responders)))
        return self

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for method, url, responders in self.routes:
            if request.method == method and str(request.url).startswith(url):
                responder = responders.pop(0) if len(responders) > 1 else responders[0]
                return responder(request)
        raise AssertionError(f"Unexpected request: {request.method} {request.url}")

    def count(self, method: str, url: str) -> int:
        return sum(1 for r in self.requests if r.method == method and str(r.url).startswith(url))

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


class SleepRecorder:
    """Drop-in for asyncio.sleep that records intervals without waiting."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        FAL_API_KEY="fal-test-key-0123456789",
        IMGBB_API_KEY="imgbb-test-key",
        WEBHOOK_BASE_URL="https://hooks.test/webhook",
        PROMPT_ENHANCE_WEBHOOK_URL="https://hooks.test/webhook/enhance",
        PIKA_BASE_URL="https://queue.test/fal-ai/pika/v2.2/pikascenes",
        PIKA_STATUS_URL="https://queue.test/fal-ai/pika/requests",
        KLING_BASE_URL="https://queue.test/fal-ai/kling-video/v2.5-turbo/pro/image-to-video",
        KLING_STATUS_URL="https://queue.test/fal-ai/kling-video/requests",
        IMGBB_UPLOAD_URL="https://imgbb.test/1/upload",
        HISTORY_DIR=str(tmp_path / "history"),
        MEDIA_VOLUME=str(tmp_path / "media"),
    )


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()
