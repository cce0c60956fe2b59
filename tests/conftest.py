"""Test fixtures — fake upstream, dispatcher, and an HTTP client on the app.

Learn: The dispatcher only needs an async callable, so tests hand it a
FakeUpstream that records when each call started and can be told to be
slow or to raise. Intervals are tens of milliseconds so pacing is real
but the suite stays fast.

The app is built per test with create_app(dispatcher=...), and driven
through httpx's ASGITransport. ASGITransport skips lifespan events; the
dispatcher starts its worker lazily on the first submit.
"""

import asyncio
import time
from typing import Any, Optional

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from pacequeue.dispatcher import CallOutcome, PacedDispatcher
from pacequeue.main import create_app


class FakeUpstream:
    """Records calls; optionally slow, optionally raising per call index."""

    def __init__(self, latency: float = 0.0, errors: Optional[dict[int, BaseException]] = None):
        self.latency = latency
        self.errors = errors or {}
        self.calls: list[tuple[Any, float]] = []

    @property
    def payloads(self) -> list:
        return [payload for payload, _ in self.calls]

    @property
    def starts(self) -> list[float]:
        return [started for _, started in self.calls]

    async def __call__(self, payload: Any) -> CallOutcome:
        index = len(self.calls)
        self.calls.append((payload, time.monotonic()))
        if self.latency:
            await asyncio.sleep(self.latency)
        if index in self.errors:
            raise self.errors[index]
        return CallOutcome.success(f"+1555000{index:04d}")


async def wait_until(predicate, timeout: float = 2.0) -> None:
    """Poll until predicate() is true (yields to the worker in between)."""
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.001)


@pytest_asyncio.fixture()
async def upstream():
    return FakeUpstream()


@pytest_asyncio.fixture()
async def dispatcher(upstream):
    """Dispatcher with a 50ms interval over the fake upstream."""
    d = PacedDispatcher(upstream, min_interval_ms=50)
    try:
        yield d
    finally:
        await d.stop()


@pytest_asyncio.fixture()
async def app_dispatcher(upstream):
    """Zero-interval dispatcher for HTTP tests."""
    d = PacedDispatcher(upstream, min_interval_ms=0)
    try:
        yield d
    finally:
        await d.stop()


@pytest_asyncio.fixture()
async def client(app_dispatcher):
    """HTTP client against an app wired to the fake upstream."""
    app = create_app(dispatcher=app_dispatcher)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
