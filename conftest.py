"""Shared test fixtures.

``katana_api`` is a local aiohttp application standing in for the Katana
API. Tests register canned responses per (method, path) and inspect the
requests it recorded.
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple, Union
import time

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from connectors.katana.katana_auth import KatanaAuthConfig, KatanaAuthProvider
from connectors.katana.katana_client import KatanaApiClient, KatanaApiConfig
from connectors.katana.katana_connector import KatanaConnector
from connectors.katana.katana_rate_limit import RateGate

TEST_API_KEY = "test-api-key"

Reply = Tuple[int, Any]
Responder = Union[Reply, Callable[["RecordedRequest"], Reply]]


@dataclass
class RecordedRequest:
    """One request received by the fake Katana API."""
    method: str
    path: str
    query: Dict[str, str]
    json: Optional[Any]
    headers: Dict[str, str]
    received_at: float = field(default_factory=time.monotonic)


class FakeKatanaApi:
    """In-process stand-in for https://api.katanamrp.com/v1."""

    def __init__(self):
        self.requests: List[RecordedRequest] = []
        self._routes: Dict[Tuple[str, str], List[Responder]] = {}

    def add(self, method: str, path: str, *responses: Responder) -> None:
        """Register responses for a route.

        Each response is ``(status, payload)`` or a callable taking the
        RecordedRequest. Several responses are served in order, the last one
        repeating. ``payload=None`` sends an empty body.
        """
        self._routes[(method.upper(), path)] = list(responses) or [(200, {})]

    async def _dispatch(self, request: web.Request) -> web.Response:
        path = request.path
        if path.startswith("/v1"):
            path = path[len("/v1"):]

        body = None
        if request.can_read_body:
            body = await request.json()

        recorded = RecordedRequest(
            method=request.method,
            path=path,
            query=dict(request.query),
            json=body,
            headers=dict(request.headers),
        )
        self.requests.append(recorded)

        responders = self._routes.get((request.method, path))
        if responders is None:
            return web.json_response({"error": {"message": "no route"}}, status=404)

        responder = responders.pop(0) if len(responders) > 1 else responders[0]
        status, payload = responder(recorded) if callable(responder) else responder

        if payload is None:
            return web.Response(status=status)
        if isinstance(payload, str):
            return web.Response(status=status, text=payload)
        return web.json_response(payload, status=status)

    @asynccontextmanager
    async def serve(self):
        """Run the fake API; yields the base URL."""
        app = web.Application()
        app.router.add_route("*", "/{tail:.*}", self._dispatch)
        async with TestServer(app) as server:
            yield str(server.make_url("/v1"))

    @asynccontextmanager
    async def client(self, rate_gate: Optional[RateGate] = None, **config):
        """Yield a connected KatanaApiClient pointed at the fake API."""
        async with self.serve() as base_url:
            client = KatanaApiClient(
                KatanaAuthProvider(KatanaAuthConfig(api_key=TEST_API_KEY)),
                KatanaApiConfig(base_url=base_url, **config),
                rate_gate=rate_gate or RateGate(min_interval=0),
            )
            async with client:
                yield client

    @asynccontextmanager
    async def connector(self, rate_gate: Optional[RateGate] = None):
        """Yield a connected KatanaConnector pointed at the fake API."""
        async with self.serve() as base_url:
            connector = KatanaConnector(
                auth_config=KatanaAuthConfig(api_key=TEST_API_KEY),
                api_config=KatanaApiConfig(base_url=base_url),
                rate_gate=rate_gate or RateGate(min_interval=0),
            )
            async with connector:
                yield connector


@pytest.fixture
def katana_api() -> FakeKatanaApi:
    return FakeKatanaApi()


def _cursor_pages(pages: List[List[Dict[str, Any]]]) -> Callable[[RecordedRequest], Reply]:
    """Responder serving ``pages`` as a cursor chain.

    Page i is returned for cursor ``"c<i>"`` (no cursor for the first page);
    the last page carries no ``cursor_next``.
    """
    def respond(request: RecordedRequest) -> Reply:
        cursor = request.query.get("cursor")
        index = int(cursor[1:]) if cursor else 0
        envelope: Dict[str, Any] = {"data": pages[index], "pagination": {}}
        if index + 1 < len(pages):
            envelope["pagination"]["cursor_next"] = f"c{index + 1}"
        return 200, envelope
    return respond


@pytest.fixture
def cursor_pages():
    return _cursor_pages
