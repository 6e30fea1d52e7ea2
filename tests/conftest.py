"""Global test fixtures for the searchwire test suite."""

from __future__ import annotations

import json
import os
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from searchwire.core.config import SearchwireSettings, clear_config_cache
from searchwire.pipeline.executor import ToolExecutor
from searchwire.tools import build_tools
from searchwire.upstream.search_client import SearchServiceClient

TEST_ENDPOINT = "https://test.search.windows.net"


# ============================================================================
# Environment Fixtures
# ============================================================================


@pytest.fixture
def clean_env(monkeypatch):
    """Remove all AZURE_SEARCH_, AZURE_OPENAI_ and SEARCHWIRE_ environment variables."""
    env_prefixes = ("AZURE_SEARCH_", "AZURE_OPENAI_", "SEARCHWIRE_")
    for key in list(os.environ.keys()):
        if any(key.startswith(prefix) for prefix in env_prefixes):
            monkeypatch.delenv(key, raising=False)
    clear_config_cache()
    yield
    clear_config_cache()


@pytest.fixture
def env_with_search_vars(monkeypatch, clean_env):
    """Set up search service environment variables."""
    monkeypatch.setenv("AZURE_SEARCH_ENDPOINT", TEST_ENDPOINT)
    monkeypatch.setenv("AZURE_SEARCH_API_KEY", "test-admin-key")


@pytest.fixture
def settings() -> SearchwireSettings:
    """Settings isolated from the environment and any .env file."""
    return SearchwireSettings(
        _env_file=None,
        search_endpoint=TEST_ENDPOINT,
        search_api_key="test-admin-key",
        cursor_secret="test-cursor-secret",
        poll_interval_seconds=0.001,
        poll_max_attempts=5,
        elicitation_timeout_ms=2000,
    )


# ============================================================================
# Fake search service (httpx.MockTransport)
# ============================================================================


class FakeSearchService:
    """Routes MockTransport requests to canned responses by method and path.

    Registering several responses for one route plays them in order; the
    last one repeats. Unrouted requests get the service's 404 shape.
    """

    def __init__(self):
        self.routes: dict[tuple[str, str], list[Callable[[httpx.Request], httpx.Response]]] = {}
        self.requests: list[httpx.Request] = []

    def add(
        self,
        method: str,
        path: str,
        *,
        status: int = 200,
        json_body: Any = None,
        text: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> FakeSearchService:
        def respond(request: httpx.Request) -> httpx.Response:
            if json_body is not None:
                return httpx.Response(status, json=json_body, headers=headers)
            return httpx.Response(status, text=text or "", headers=headers)

        self.routes.setdefault((method, path), []).append(respond)
        return self

    def add_error(self, method: str, path: str, status: int, message: str, **kwargs: Any) -> FakeSearchService:
        return self.add(method, path, status=status, json_body={"error": {"code": "", "message": message}}, **kwargs)

    def add_handler(self, method: str, path: str, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.routes.setdefault((method, path), []).append(handler)

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def body(self, request: httpx.Request) -> Any:
        return json.loads(request.content)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handlers = self.routes.get((request.method, request.url.path))
        if not handlers:
            return httpx.Response(
                404,
                json={"error": {"code": "ResourceNotFound", "message": f"No route for {request.url.path}"}},
            )
        handler = handlers.pop(0) if len(handlers) > 1 else handlers[0]
        return handler(request)


@pytest.fixture
def search_service() -> FakeSearchService:
    return FakeSearchService()


@pytest.fixture
async def search_client(search_service):
    """SearchServiceClient wired to the fake service."""
    client = SearchServiceClient(TEST_ENDPOINT, "test-admin-key", transport=httpx.MockTransport(search_service))
    yield client
    await client.aclose()


@pytest.fixture
def executor(search_client, settings) -> ToolExecutor:
    """Executor with every tool, backed by the fake service."""
    return ToolExecutor(build_tools(), search_client, settings)


# ============================================================================
# Client-side doubles
# ============================================================================


class FakeChannel:
    """Elicitation channel answering from a script.

    Each scripted answer is an ``(action, content)`` tuple or an exception
    to raise.
    """

    def __init__(self, *answers: Any, supported: bool = True):
        self.answers = list(answers)
        self.supported = supported
        self.requests: list[tuple[str, dict[str, Any]]] = []

    def supports_elicitation(self) -> bool:
        return self.supported

    async def elicit(self, message: str, requested_schema: dict[str, Any]) -> tuple[str, dict[str, Any] | None]:
        self.requests.append((message, requested_schema))
        answer = self.answers.pop(0)
        if isinstance(answer, BaseException):
            raise answer
        return answer


class RecordingReporter:
    """Progress reporter that keeps every notification."""

    def __init__(self):
        self.reports: list[tuple[float, float | None, str | None]] = []

    async def report(self, progress: float, total: float | None = None, message: str | None = None) -> None:
        self.reports.append((progress, total, message))


@pytest.fixture
def recording_reporter() -> RecordingReporter:
    return RecordingReporter()


@pytest.fixture
def make_channel() -> Callable[..., FakeChannel]:
    """Factory for scripted elicitation channels."""
    return FakeChannel
