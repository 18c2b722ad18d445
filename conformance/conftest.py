"""Shared fixtures for FileGuard conformance tests.

Provides an upload root, a fake web server whose behaviour can be
switched between "honours the rule file" and "ignores it", and a factory
for protectors wired to both.
"""
from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path

import httpx
import pytest

from fileguard.core.config import ProtectionConfig, RequestContext
from fileguard.core.interfaces import InMemoryCacheStore, StaticUploadLocator
from fileguard.protector import Protector

# ---------------------------------------------------------------------------
# Common values used across tests
# ---------------------------------------------------------------------------
PREFIX = "demo"
BASE_URL = "https://example.com/uploads"
NOW = datetime(2024, 5, 17, 12, 0, tzinfo=UTC)
APACHE = RequestContext(server_software="Apache/2.4.57", http_host="example.com")


class FakeClock:
    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeWebServer:
    """Serves files from the upload root unless told to refuse them.

    ``status`` is returned for every request; when ``None`` the server
    answers 200 for files that exist and 404 otherwise.  ``error`` makes
    every request raise instead.
    """

    def __init__(self, root: Path) -> None:
        self.root = root
        self.status: int | None = None
        self.error: type[httpx.TransportError] | None = None
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error("simulated failure", request=request)
        if self.status is not None:
            return httpx.Response(self.status)
        relative = request.url.path.removeprefix("/uploads/")
        target = self.root / relative
        if target.is_file():
            return httpx.Response(200, content=target.read_bytes())
        return httpx.Response(404)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def upload_root(tmp_path: Path) -> Path:
    root = tmp_path / "uploads"
    root.mkdir()
    return root


@pytest.fixture()
def web_server(upload_root: Path) -> FakeWebServer:
    return FakeWebServer(upload_root)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def cache(clock: FakeClock) -> InMemoryCacheStore:
    return InMemoryCacheStore(clock)


@pytest.fixture()
def make_protector(
    upload_root: Path,
    web_server: FakeWebServer,
    cache: InMemoryCacheStore,
) -> Callable[..., Protector]:
    def factory(
        context: RequestContext = APACHE,
        **config: object,
    ) -> Protector:
        config.setdefault("prefix", PREFIX)
        return Protector(
            ProtectionConfig(**config),
            StaticUploadLocator(upload_root, BASE_URL),
            cache,
            context=context,
            transport=httpx.MockTransport(web_server),
            clock=lambda: NOW,
        )

    return factory
