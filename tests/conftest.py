"""Shared fixtures: an in-process fake of the remote gateway, plus a fresh store."""

import asyncio
import json
from typing import Any

import pytest
import requests

from src.core.errors import TransportFailure
from src.session.kv_store import InMemoryKeyValueStore
from src.sync.entity_store import EntityStore


def make_response(status: int = 200, body: Any = None, raw: bytes | str | None = None) -> requests.Response:
    """Build a real requests.Response without any network I/O."""
    response = requests.Response()
    response.status_code = status
    response.url = "http://api.test"
    if raw is not None:
        response._content = raw.encode() if isinstance(raw, str) else raw
    elif body is not None:
        response._content = json.dumps(body).encode()
    else:
        response._content = b""
    return response


class FakeGateway:
    """Answers gateway calls from a routing table and records every call.

    Each route holds a sequence of outcomes served in order; once exhausted the
    last one repeats, and outcomes added later are served next. ``hold`` keeps
    matching requests suspended until the returned event is set.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, Any]] = []
        self.entered = asyncio.Event()
        self._routes: dict[tuple[str, str], list[requests.Response | Exception]] = {}
        self._gates: dict[tuple[str, str], asyncio.Event] = {}
        self._hits: dict[tuple[str, str], int] = {}

    def route(
        self,
        method: str,
        path: str,
        status: int = 200,
        body: Any = None,
        *,
        raw: bytes | str | None = None,
    ) -> None:
        self._routes.setdefault((method, path), []).append(make_response(status, body, raw))

    def fail(self, method: str, path: str) -> None:
        self._routes.setdefault((method, path), []).append(
            TransportFailure(f"{method} {path} failed: connection refused"),
        )

    def hold(self, method: str, path: str) -> asyncio.Event:
        gate = asyncio.Event()
        self._gates[(method, path)] = gate
        return gate

    def count(self, method: str, path: str) -> int:
        return sum(1 for m, p, _ in self.calls if (m, p) == (method, path))

    async def get(self, path: str, headers: dict[str, str] | None = None) -> requests.Response:
        return await self._handle("GET", path, None)

    async def post(
        self, path: str, body: Any, headers: dict[str, str] | None = None,
    ) -> requests.Response:
        return await self._handle("POST", path, body)

    async def patch(
        self, path: str, body: Any, headers: dict[str, str] | None = None,
    ) -> requests.Response:
        return await self._handle("PATCH", path, body)

    async def delete(self, path: str, headers: dict[str, str] | None = None) -> requests.Response:
        return await self._handle("DELETE", path, None)

    def close(self) -> None:
        pass

    async def _handle(self, method: str, path: str, body: Any) -> requests.Response:
        self.calls.append((method, path, body))
        # Every request is a suspension point, like a real network call.
        await asyncio.sleep(0)
        gate = self._gates.get((method, path))
        if gate is not None:
            self.entered.set()
            await gate.wait()
        key = (method, path)
        outcomes = self._routes.get(key)
        if not outcomes:
            msg = f"Unexpected request: {method} {path}"
            raise AssertionError(msg)
        hit = self._hits.get(key, 0)
        self._hits[key] = hit + 1
        outcome = outcomes[min(hit, len(outcomes) - 1)]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def store() -> EntityStore:
    return EntityStore()


@pytest.fixture
def kv() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()
