"""
Make MCP tools

Static tool catalog advertised through tools/list, plus the dispatcher that
turns a tools/call into exactly one Make API request.
"""
import logging
from typing import Any, Awaitable, Callable, Optional

from api_client import MakeClient
from exceptions import UnexpectedResponseError, UnknownToolError

logger = logging.getLogger(__name__)

DEFAULT_SCENARIO_LIMIT = 50
DEFAULT_LOG_LIMIT = 20
CONNECTIONS_LIMIT = 100


def _limit(value: Any, default: int) -> Any:
    """Page size for pg[limit]; integral floats are sent as ints."""
    value = value or default
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _envelope(endpoint: str, result: Any) -> dict[str, Any]:
    if not isinstance(result, dict):
        raise UnexpectedResponseError(endpoint, result)
    return result


def _scenario_id_schema(description: str = "The scenario ID") -> dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "scenarioId": {"type": "number", "description": description},
        },
        "required": ["scenarioId"],
    }


# ============================================================
# TOOL CATALOG
# ============================================================

TOOLS: list[dict[str, Any]] = [
    {
        "name": "list_scenarios",
        "description": "List all scenarios in the Make.com team. Returns scenario IDs, names, and status.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "limit": {"type": "number", "description": "Maximum number of scenarios to return (default: 50)"},
                "isActive": {"type": "boolean", "description": "Filter by active/inactive status"},
            },
        },
    },
    {
        "name": "get_scenario",
        "description": "Get details of a specific scenario by ID",
        "inputSchema": _scenario_id_schema(),
    },
    {
        "name": "get_scenario_blueprint",
        "description": "Get the blueprint (workflow definition) of a scenario",
        "inputSchema": _scenario_id_schema(),
    },
    {
        "name": "run_scenario",
        "description": "Trigger/run a scenario immediately",
        "inputSchema": {
            "type": "object",
            "properties": {
                "scenarioId": {"type": "number", "description": "The scenario ID to run"},
                "data": {"type": "object", "description": "Optional input data to pass to the scenario"},
            },
            "required": ["scenarioId"],
        },
    },
    {
        "name": "start_scenario",
        "description": "Activate a scenario (turn it ON)",
        "inputSchema": _scenario_id_schema("The scenario ID to activate"),
    },
    {
        "name": "stop_scenario",
        "description": "Deactivate a scenario (turn it OFF)",
        "inputSchema": _scenario_id_schema("The scenario ID to deactivate"),
    },
    {
        "name": "get_scenario_logs",
        "description": "Get execution logs for a scenario",
        "inputSchema": {
            "type": "object",
            "properties": {
                "scenarioId": {"type": "number", "description": "The scenario ID"},
                "limit": {"type": "number", "description": "Maximum number of logs to return (default: 20)"},
            },
            "required": ["scenarioId"],
        },
    },
    {
        "name": "list_connections",
        "description": "List all connections (API credentials) in the team",
        "inputSchema": {"type": "object", "properties": {}},
    },
    {
        "name": "list_data_stores",
        "description": "List all data stores in the team",
        "inputSchema": {"type": "object", "properties": {}},
    },
    {
        "name": "create_scenario",
        "description": "Create a new scenario from a blueprint JSON",
        "inputSchema": {
            "type": "object",
            "properties": {
                "name": {"type": "string", "description": "Name for the new scenario"},
                "blueprint": {"type": "string", "description": "The scenario blueprint as JSON string"},
            },
            "required": ["name", "blueprint"],
        },
    },
]

TOOL_NAMES = tuple(tool["name"] for tool in TOOLS)


# ============================================================
# DISPATCHER
# ============================================================

class ToolDispatcher:
    """Maps a tool name and its arguments onto a single Make API call"""

    def __init__(self, client: MakeClient, team_id: str):
        self.client = client
        self.team_id = team_id
        self._handlers: dict[str, Callable[[dict[str, Any]], Awaitable[Any]]] = {
            "list_scenarios": self.list_scenarios,
            "get_scenario": self.get_scenario,
            "get_scenario_blueprint": self.get_scenario_blueprint,
            "run_scenario": self.run_scenario,
            "start_scenario": self.start_scenario,
            "stop_scenario": self.stop_scenario,
            "get_scenario_logs": self.get_scenario_logs,
            "list_connections": self.list_connections,
            "list_data_stores": self.list_data_stores,
            "create_scenario": self.create_scenario,
        }

    async def execute(self, name: Any, arguments: Optional[dict[str, Any]] = None) -> Any:
        """
        Run a tool and return the relevant part of the Make response.

        Raises:
            UnknownToolError: name is not in the catalog
            UpstreamError: Make rejected the request
            UnexpectedResponseError: Make answered with a non-object body
        """
        handler = self._handlers.get(name) if isinstance(name, str) else None
        if handler is None:
            raise UnknownToolError(name)
        logger.debug("Executing tool %s with %s", name, arguments)
        return await handler(arguments or {})

    async def _fetch(self, method: str, endpoint: str, **kwargs: Any) -> dict[str, Any]:
        result = await self.client.request(method, endpoint, **kwargs)
        return _envelope(endpoint, result)

    # ------------------------------------------------------------
    # Scenarios
    # ------------------------------------------------------------

    async def list_scenarios(self, args: dict[str, Any]) -> Any:
        params: dict[str, Any] = {
            "teamId": self.team_id,
            "pg[limit]": _limit(args.get("limit"), DEFAULT_SCENARIO_LIMIT),
        }
        if args.get("isActive") is not None:
            params["isActive"] = args["isActive"]
        result = await self._fetch("GET", "/scenarios", params=params)
        return result.get("scenarios")

    async def get_scenario(self, args: dict[str, Any]) -> Any:
        result = await self._fetch("GET", f"/scenarios/{args.get('scenarioId')}")
        return result.get("scenario")

    async def get_scenario_blueprint(self, args: dict[str, Any]) -> Any:
        result = await self._fetch("GET", f"/scenarios/{args.get('scenarioId')}/blueprint")
        # Make has returned the blueprint under both envelopes
        response = result.get("response")
        if isinstance(response, dict) and response.get("blueprint"):
            return response["blueprint"]
        return result.get("blueprint")

    async def run_scenario(self, args: dict[str, Any]) -> Any:
        body = {"data": args["data"]} if args.get("data") else {}
        return await self.client.request(
            "POST", f"/scenarios/{args.get('scenarioId')}/run", json_data=body
        )

    async def start_scenario(self, args: dict[str, Any]) -> Any:
        return await self.client.request("POST", f"/scenarios/{args.get('scenarioId')}/start")

    async def stop_scenario(self, args: dict[str, Any]) -> Any:
        return await self.client.request("POST", f"/scenarios/{args.get('scenarioId')}/stop")

    async def get_scenario_logs(self, args: dict[str, Any]) -> Any:
        params = {"pg[limit]": _limit(args.get("limit"), DEFAULT_LOG_LIMIT)}
        result = await self._fetch(
            "GET", f"/scenarios/{args.get('scenarioId')}/logs", params=params
        )
        return result.get("scenarioLogs")

    async def create_scenario(self, args: dict[str, Any]) -> Any:
        data = {
            "teamId": int(self.team_id) if self.team_id else None,
            "name": args.get("name"),
            "blueprint": args.get("blueprint"),
        }
        result = await self._fetch("POST", "/scenarios", json_data=data)
        return result.get("scenario")

    # ------------------------------------------------------------
    # Team resources
    # ------------------------------------------------------------

    async def list_connections(self, args: dict[str, Any]) -> Any:
        params = {"teamId": self.team_id, "pg[limit]": CONNECTIONS_LIMIT}
        result = await self._fetch("GET", "/connections", params=params)
        return result.get("connections")

    async def list_data_stores(self, args: dict[str, Any]) -> Any:
        result = await self._fetch("GET", "/data-stores", params={"teamId": self.team_id})
        return result.get("dataStores")
