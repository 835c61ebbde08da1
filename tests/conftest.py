import json

import httpx
import pytest

from api_client import MakeClient
from sessions import SessionBridge
from tools import ToolDispatcher


@pytest.fixture
def anyio_backend():
    return "asyncio"


class FakeMake:
    """Records requests sent to the Make API and replays canned answers"""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.routes: dict[tuple[str, str], tuple[int, dict]] = {}

    def add(self, method: str, path: str, payload=None, status_code: int = 200, text: str | None = None):
        if text is not None:
            content = {"text": text}
        else:
            content = {"json": payload if payload is not None else {}}
        self.routes[(method, "/api/v2" + path)] = (status_code, content)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, text="not found")
        status_code, content = route
        return httpx.Response(status_code, **content)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    def last_json(self):
        return json.loads(self.last.content)


@pytest.fixture
def fake_make() -> FakeMake:
    return FakeMake()


@pytest.fixture
def client(fake_make: FakeMake) -> MakeClient:
    return MakeClient("eu1.make.com", "secret-token", transport=httpx.MockTransport(fake_make.handler))


@pytest.fixture
def dispatcher(client: MakeClient) -> ToolDispatcher:
    return ToolDispatcher(client, "42")


@pytest.fixture
def bridge(dispatcher: ToolDispatcher) -> SessionBridge:
    return SessionBridge(dispatcher)


@pytest.fixture
def delivered():
    """Close a session and return the JSON-RPC messages its event stream carried."""

    async def collect(bridge: SessionBridge, session) -> list:
        events = bridge.stream(session)
        handshake = await events.__anext__()
        assert handshake["event"] == "endpoint"
        bridge.close(session.id)
        messages = []
        async for event in events:
            assert event["event"] == "message"
            messages.append(json.loads(event["data"]))
        return messages

    return collect
