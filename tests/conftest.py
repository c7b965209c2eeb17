from __future__ import annotations

import json
import sys
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from io import BytesIO
from pathlib import Path
from typing import Any

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer
from PIL import Image


def pytest_configure() -> None:
    """
    Ensure `src/` is on sys.path so tests can import `createosaur`
    without requiring an editable install.
    """
    repo_root = Path(__file__).resolve().parents[1]
    src_root = repo_root / "src"
    sys.path.insert(0, str(src_root))


Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


@dataclass
class RecordedRequest:
    method: str
    path: str
    headers: dict[str, str]
    json: Any


@dataclass
class FakeVendor:
    """A running fake HTTP API plus the requests it received."""
    base_url: str
    calls: list[RecordedRequest] = field(default_factory=list)


@asynccontextmanager
async def fake_vendor(routes: list[tuple[str, str, Handler]]) -> AsyncIterator[FakeVendor]:
    """Serve ``routes`` on a local port for the duration of the block."""
    calls: list[RecordedRequest] = []

    def recording(handler: Handler) -> Handler:
        async def wrapped(request: web.Request) -> web.StreamResponse:
            raw = await request.read()
            calls.append(
                RecordedRequest(
                    method=request.method,
                    path=request.path,
                    headers=dict(request.headers),
                    json=json.loads(raw) if raw else None,
                )
            )
            return await handler(request)
        return wrapped

    app = web.Application()
    for method, path, handler in routes:
        app.router.add_route(method, path, recording(handler))

    server = TestServer(app)
    await server.start_server()
    try:
        yield FakeVendor(base_url=str(server.make_url("")).rstrip("/"), calls=calls)
    finally:
        await server.close()


@pytest.fixture
def vendor_server():
    """Factory for fake vendor servers: ``async with vendor_server(routes) as vendor``."""
    return fake_vendor


def make_png(width: int = 8, height: int = 8, color: str = "red") -> bytes:
    buffer = BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    return make_png()
