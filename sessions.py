"""
Session bridge between the SSE event stream and POSTed JSON-RPC calls.

A client opens GET /sse and receives an ``endpoint`` event naming the URL it
must POST its calls to. That URL carries the session id. Each POST is
acknowledged on its own; the JSON-RPC response, if any, is written to the
session's event stream as a ``message`` event. The two flows meet only
through the session id.
"""
import asyncio
import json
import logging
import threading
import uuid
from typing import Any, AsyncIterator, Optional, Union

from pydantic import BaseModel, ConfigDict, ValidationError

from exceptions import MalformedCallError, UnknownMethodError, UnknownSessionError
from tools import TOOLS, ToolDispatcher

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2024-11-05"
SERVER_NAME = "make-mcp-server"
SERVER_VERSION = "1.0.1"
INTERNAL_ERROR = -32603
KEEPALIVE_INTERVAL = 30
MESSAGES_PATH = "/messages"


class ProtocolCall(BaseModel):
    """Incoming JSON-RPC request or notification"""

    model_config = ConfigDict(extra="allow")

    jsonrpc: str = "2.0"
    id: Optional[Union[int, float, str]] = None
    method: str
    params: Optional[dict[str, Any]] = None

    @property
    def expects_response(self) -> bool:
        # An explicit null id still makes this a request
        return "id" in self.model_fields_set


class Session:
    """One connected SSE client"""

    def __init__(self, session_id: Optional[str] = None):
        self.id = session_id or str(uuid.uuid4())
        self.endpoint = f"{MESSAGES_PATH}?sessionId={self.id}"
        self.closed = False
        self._queue: asyncio.Queue[Optional[dict[str, Any]]] = asyncio.Queue()

    def send(self, message: dict[str, Any]) -> bool:
        """Queue a message for the event stream. Dropped once closed."""
        if self.closed:
            logger.debug("Dropping message for closed session %s", self.id)
            return False
        self._queue.put_nowait(message)
        return True

    def close(self):
        if not self.closed:
            self.closed = True
            # wake a reader blocked on the queue
            self._queue.put_nowait(None)

    async def events(self) -> AsyncIterator[dict[str, str]]:
        """Yield SSE events: the endpoint handshake, then each message."""
        yield {"event": "endpoint", "data": self.endpoint}
        while True:
            message = await self._queue.get()
            if message is None:
                break
            yield {"event": "message", "data": json.dumps(message)}


class SessionRegistry:
    """Session id to Session map guarded by a single lock"""

    def __init__(self):
        self._lock = threading.Lock()
        self._sessions: dict[str, Session] = {}

    def add(self, session: Session):
        with self._lock:
            if session.id in self._sessions:
                raise ValueError(f"Session {session.id} already registered")
            self._sessions[session.id] = session

    def get(self, session_id: Optional[str]) -> Optional[Session]:
        if not session_id:
            return None
        with self._lock:
            return self._sessions.get(session_id)

    def remove(self, session_id: str) -> Optional[Session]:
        with self._lock:
            return self._sessions.pop(session_id, None)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._sessions

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


class SessionBridge:
    """Owns the sessions and answers MCP calls on their behalf"""

    def __init__(self, dispatcher: ToolDispatcher, registry: Optional[SessionRegistry] = None):
        self.dispatcher = dispatcher
        self.registry = registry if registry is not None else SessionRegistry()

    # ------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------

    def establish(self) -> Session:
        session = Session()
        self.registry.add(session)
        logger.info("Session %s opened (%d active)", session.id, len(self.registry))
        return session

    def close(self, session_id: str):
        session = self.registry.remove(session_id)
        if session is not None:
            session.close()
            logger.info("Session %s closed (%d active)", session_id, len(self.registry))

    async def stream(self, session: Session) -> AsyncIterator[dict[str, str]]:
        """Event stream for a session; deregisters it when the stream ends."""
        try:
            async for event in session.events():
                yield event
        finally:
            self.close(session.id)

    # ------------------------------------------------------------
    # Call submission
    # ------------------------------------------------------------

    def accept(self, session_id: Optional[str], body: bytes) -> tuple[Session, ProtocolCall]:
        """
        Validate a POSTed call before it is acknowledged.

        Raises:
            UnknownSessionError: session_id is missing or not registered
            MalformedCallError: body is not a JSON-RPC call
        """
        session = self.registry.get(session_id)
        if session is None:
            raise UnknownSessionError(session_id)
        try:
            payload = json.loads(body)
        except ValueError as e:
            raise MalformedCallError(f"Body is not valid JSON: {e}") from e
        if not isinstance(payload, dict):
            raise MalformedCallError("Body must be a JSON object")
        try:
            call = ProtocolCall.model_validate(payload)
        except ValidationError as e:
            raise MalformedCallError(str(e)) from e
        return session, call

    async def deliver(self, session: Session, call: ProtocolCall) -> bool:
        """Answer a call and write the response, if any, to its session."""
        response = await self.handle(call)
        if response is None:
            return False
        return session.send(response)

    # ------------------------------------------------------------
    # MCP methods
    # ------------------------------------------------------------

    async def handle(self, call: ProtocolCall) -> Optional[dict[str, Any]]:
        """Compute the JSON-RPC response for a call, or None for notifications."""
        logger.debug("Handling %s (id=%r)", call.method, call.id)
        try:
            result = await self._dispatch(call)
        except Exception as e:
            logger.warning("%s failed: %s", call.method, e)
            if not call.expects_response:
                return None
            return {
                "jsonrpc": "2.0",
                "id": call.id,
                "error": {"code": INTERNAL_ERROR, "message": str(e)},
            }
        if result is None or not call.expects_response:
            return None
        return {"jsonrpc": "2.0", "id": call.id, "result": result}

    async def _dispatch(self, call: ProtocolCall) -> Optional[dict[str, Any]]:
        method = call.method
        if method == "initialize":
            return {
                "protocolVersion": PROTOCOL_VERSION,
                "serverInfo": {"name": SERVER_NAME, "version": SERVER_VERSION},
                "capabilities": {"tools": {}},
            }
        if method == "notifications/initialized":
            return None
        if method == "tools/list":
            return {"tools": TOOLS}
        if method == "tools/call":
            params = call.params or {}
            value = await self.dispatcher.execute(params.get("name"), params.get("arguments") or {})
            return {"content": [{"type": "text", "text": json.dumps(value, indent=2)}]}
        if method == "ping":
            return {}
        raise UnknownMethodError(method)
