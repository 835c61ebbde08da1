import pytest

from exceptions import UnexpectedResponseError, UnknownToolError, UpstreamError
from tools import TOOL_NAMES, TOOLS


def test_catalog_has_ten_described_tools():
    assert len(TOOLS) == 10
    assert len(set(TOOL_NAMES)) == 10
    for tool in TOOLS:
        assert tool["description"]
        assert tool["inputSchema"]["type"] == "object"


@pytest.mark.anyio
async def test_list_scenarios_defaults_limit(dispatcher, fake_make):
    fake_make.add("GET", "/scenarios", {"scenarios": [{"id": 1}]})

    result = await dispatcher.execute("list_scenarios", {})

    assert result == [{"id": 1}]
    params = fake_make.last.url.params
    assert params["pg[limit]"] == "50"
    assert params["teamId"] == "42"
    assert "isActive" not in params


@pytest.mark.anyio
async def test_list_scenarios_with_limit_and_active_filter(dispatcher, fake_make):
    fake_make.add("GET", "/scenarios", {"scenarios": []})

    await dispatcher.execute("list_scenarios", {"limit": 5, "isActive": False})

    params = fake_make.last.url.params
    assert params["pg[limit]"] == "5"
    assert params["isActive"] == "false"


@pytest.mark.anyio
async def test_get_scenario_extracts_scenario(dispatcher, fake_make):
    fake_make.add("GET", "/scenarios/12", {"scenario": {"id": 12, "name": "Sync"}})

    assert await dispatcher.execute("get_scenario", {"scenarioId": 12}) == {"id": 12, "name": "Sync"}


@pytest.mark.anyio
@pytest.mark.parametrize(
    "payload",
    [
        {"response": {"blueprint": {"flow": []}}},
        {"blueprint": {"flow": []}},
    ],
)
async def test_get_scenario_blueprint_envelopes(dispatcher, fake_make, payload):
    fake_make.add("GET", "/scenarios/3/blueprint", payload)

    assert await dispatcher.execute("get_scenario_blueprint", {"scenarioId": 3}) == {"flow": []}


@pytest.mark.anyio
async def test_run_scenario_passes_data(dispatcher, fake_make):
    fake_make.add("POST", "/scenarios/3/run", {"executionId": "abc"})

    result = await dispatcher.execute("run_scenario", {"scenarioId": 3, "data": {"email": "a@b.c"}})

    assert result == {"executionId": "abc"}
    assert fake_make.last_json() == {"data": {"email": "a@b.c"}}


@pytest.mark.anyio
async def test_run_scenario_without_data_sends_empty_body(dispatcher, fake_make):
    fake_make.add("POST", "/scenarios/3/run", {"executionId": "abc"})

    await dispatcher.execute("run_scenario", {"scenarioId": 3})

    assert fake_make.last_json() == {}


@pytest.mark.anyio
@pytest.mark.parametrize("tool, action", [("start_scenario", "start"), ("stop_scenario", "stop")])
async def test_start_and_stop_return_whole_envelope(dispatcher, fake_make, tool, action):
    fake_make.add("POST", f"/scenarios/8/{action}", {"scenario": {"id": 8}})

    assert await dispatcher.execute(tool, {"scenarioId": 8}) == {"scenario": {"id": 8}}
    assert fake_make.last.content == b""


@pytest.mark.anyio
async def test_get_scenario_logs_defaults_limit(dispatcher, fake_make):
    fake_make.add("GET", "/scenarios/8/logs", {"scenarioLogs": [{"status": 1}]})

    assert await dispatcher.execute("get_scenario_logs", {"scenarioId": 8}) == [{"status": 1}]
    assert fake_make.last.url.params["pg[limit]"] == "20"


@pytest.mark.anyio
async def test_team_listings(dispatcher, fake_make):
    fake_make.add("GET", "/connections", {"connections": [{"id": 1}]})
    fake_make.add("GET", "/data-stores", {"dataStores": [{"id": 2}]})

    assert await dispatcher.execute("list_connections", {}) == [{"id": 1}]
    assert fake_make.last.url.params["pg[limit]"] == "100"
    assert await dispatcher.execute("list_data_stores", {}) == [{"id": 2}]
    assert fake_make.last.url.params["teamId"] == "42"


@pytest.mark.anyio
async def test_create_scenario_uses_numeric_team(dispatcher, fake_make):
    fake_make.add("POST", "/scenarios", {"scenario": {"id": 99}})

    result = await dispatcher.execute("create_scenario", {"name": "New", "blueprint": "{}"})

    assert result == {"id": 99}
    assert fake_make.last_json() == {"teamId": 42, "name": "New", "blueprint": "{}"}


@pytest.mark.anyio
async def test_unknown_tool_never_reaches_upstream(dispatcher, fake_make):
    with pytest.raises(UnknownToolError, match="delete_everything"):
        await dispatcher.execute("delete_everything", {})

    assert fake_make.requests == []


@pytest.mark.anyio
async def test_malformed_arguments_surface_as_upstream_error(dispatcher, fake_make):
    # no route for /scenarios/None, the fake answers 404
    with pytest.raises(UpstreamError) as exc_info:
        await dispatcher.execute("get_scenario", {})

    assert exc_info.value.status_code == 404


@pytest.mark.anyio
@pytest.mark.parametrize(
    "tool, path, payload, limit, expected",
    [
        ("list_scenarios", "/scenarios", {"scenarios": []}, 5.0, "5"),
        ("list_scenarios", "/scenarios", {"scenarios": []}, 0, "50"),
        ("get_scenario_logs", "/scenarios/8/logs", {"scenarioLogs": []}, 10.0, "10"),
    ],
)
async def test_integral_float_limits_are_sent_as_ints(dispatcher, fake_make, tool, path, payload, limit, expected):
    fake_make.add("GET", path, payload)

    await dispatcher.execute(tool, {"scenarioId": 8, "limit": limit})

    assert fake_make.last.url.params["pg[limit]"] == expected


@pytest.mark.anyio
@pytest.mark.parametrize(
    "tool, method, path",
    [
        ("list_scenarios", "GET", "/scenarios"),
        ("get_scenario", "GET", "/scenarios/4"),
        ("get_scenario_blueprint", "GET", "/scenarios/4/blueprint"),
        ("get_scenario_logs", "GET", "/scenarios/4/logs"),
        ("create_scenario", "POST", "/scenarios"),
        ("list_connections", "GET", "/connections"),
        ("list_data_stores", "GET", "/data-stores"),
    ],
)
async def test_non_object_envelope_is_reported(dispatcher, fake_make, tool, method, path):
    fake_make.add(method, path, [{"id": 4}])

    with pytest.raises(UnexpectedResponseError, match="expected a JSON object, got list"):
        await dispatcher.execute(tool, {"scenarioId": 4, "name": "x", "blueprint": "{}"})


@pytest.mark.anyio
async def test_blueprint_with_non_object_response_field_falls_back(dispatcher, fake_make):
    fake_make.add("GET", "/scenarios/4/blueprint", {"response": None, "blueprint": {"flow": [1]}})

    assert await dispatcher.execute("get_scenario_blueprint", {"scenarioId": 4}) == {"flow": [1]}
