"""
Errors raised by the Make MCP server.

Transport-level errors (unknown session, malformed submission) are answered
with an HTTP 400 on the submitting request. Everything else is reported back
to the client as a JSON-RPC error frame on the session's event stream.
"""
from typing import Any


class MakeServerError(Exception):
    """Base class for all server errors"""


class UpstreamError(MakeServerError):
    """The Make API answered with a non-2xx status"""

    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Make API error {status_code}: {body}")


class UnknownToolError(MakeServerError):
    def __init__(self, name: Any):
        self.name = name
        super().__init__(f"Unknown tool: {name}")


class UnknownMethodError(MakeServerError):
    def __init__(self, method: str):
        self.method = method
        super().__init__(f"Unknown method: {method}")


class UnknownSessionError(MakeServerError):
    def __init__(self, session_id: str | None):
        self.session_id = session_id
        super().__init__(f"Invalid or missing sessionId: {session_id}")


class MalformedCallError(MakeServerError):
    """Submission body is not a JSON-RPC call"""


class UnexpectedResponseError(MakeServerError):
    """The Make API answered 2xx with a body that is not a JSON object"""

    def __init__(self, endpoint: str, body: object):
        self.endpoint = endpoint
        self.body = body
        super().__init__(
            f"Unexpected Make API response from {endpoint}: "
            f"expected a JSON object, got {type(body).__name__}"
        )
