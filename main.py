"""
Make MCP Server - SSE Transport

Provides 10 tools for listing, inspecting, running and managing Make.com
scenarios. Clients open GET /sse, receive the messages endpoint, and POST
JSON-RPC calls to it; responses arrive on the event stream.
"""
import contextlib
import logging
import os
import sys
from typing import Optional

import uvicorn
from sse_starlette.sse import EventSourceResponse
from starlette.applications import Starlette
from starlette.background import BackgroundTask
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from api_client import MakeClient
from exceptions import MalformedCallError, UnknownSessionError
from sessions import KEEPALIVE_INTERVAL, MESSAGES_PATH, SERVER_VERSION, SessionBridge
from tools import TOOL_NAMES, ToolDispatcher

logger = logging.getLogger(__name__)

# Get configuration from environment variables
MAKE_API_TOKEN = os.getenv("MAKE_API_TOKEN", "")
MAKE_ZONE = os.getenv("MAKE_ZONE", "eu1.make.com")
MAKE_TEAM_ID = os.getenv("MAKE_TEAM_ID", "")
PORT = int(os.getenv("PORT", 3000))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


# ============================================================
# ENDPOINTS
# ============================================================

async def index(request: Request) -> JSONResponse:
    return JSONResponse({
        "name": "Make.com MCP Server",
        "version": SERVER_VERSION,
        "endpoints": {"sse": "/sse", "messages": MESSAGES_PATH, "health": "/health"},
        "tools": list(TOOL_NAMES),
    })


async def health(request: Request) -> JSONResponse:
    bridge: SessionBridge = request.app.state.bridge
    return JSONResponse({"status": "ok", "sessions": len(bridge.registry), "version": SERVER_VERSION})


async def handle_sse(request: Request) -> EventSourceResponse:
    """Open a session and stream its events until the client disconnects"""
    bridge: SessionBridge = request.app.state.bridge
    session = bridge.establish()
    return EventSourceResponse(
        bridge.stream(session),
        ping=KEEPALIVE_INTERVAL,
        headers={"Cache-Control": "no-cache", "Access-Control-Allow-Origin": "*"},
    )


async def handle_messages(request: Request) -> JSONResponse:
    """
    Accept one JSON-RPC call for a session.

    The call is acknowledged with 202 straight away and answered on the
    session's event stream once it has been processed.
    """
    bridge: SessionBridge = request.app.state.bridge
    session_id = request.query_params.get("sessionId")
    try:
        session, call = bridge.accept(session_id, await request.body())
    except UnknownSessionError:
        return JSONResponse({"error": "Invalid or missing sessionId"}, status_code=400)
    except MalformedCallError as e:
        logger.warning("Rejected call for session %s: %s", session_id, e)
        return JSONResponse({"error": "Invalid request"}, status_code=400)

    return JSONResponse(
        {"status": "accepted"},
        status_code=202,
        background=BackgroundTask(bridge.deliver, session, call),
    )


# ============================================================
# APPLICATION
# ============================================================

def create_app(client: Optional[MakeClient] = None, team_id: Optional[str] = None) -> Starlette:
    """Build the Starlette app; defaults come from the environment."""
    if client is None:
        client = MakeClient(MAKE_ZONE, MAKE_API_TOKEN)
    if team_id is None:
        team_id = MAKE_TEAM_ID

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette):
        try:
            yield
        finally:
            await client.close()

    app = Starlette(
        routes=[
            Route("/", endpoint=index, methods=["GET"]),
            Route("/health", endpoint=health, methods=["GET"]),
            Route("/sse", endpoint=handle_sse, methods=["GET"]),
            Route(MESSAGES_PATH, endpoint=handle_messages, methods=["POST"]),
        ],
        lifespan=lifespan,
    )
    app.state.bridge = SessionBridge(ToolDispatcher(client, team_id))
    return app


app = create_app()


# ============================================================
# SERVER STARTUP
# ============================================================

def main():
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    logger.info("Make.com MCP Server v%s running on port %d", SERVER_VERSION, PORT)
    uvicorn.run(app, host="0.0.0.0", port=PORT)


if __name__ == "__main__":
    main()
