"""MCP server tests: read-only tools over the live writing session.

Uses the FastMCP in-process test client against a room written with a
StubLLM.
"""

import json
import random

import pytest
from mcp.shared.memory import create_connected_server_and_client_session

import backend.mcp_server as mcp_server
from backend import session
from conftest import Canned, StubLLM
from writers_room.pipeline import WritersRoom

THEME = "A heist at the opera"


@pytest.fixture
async def finished_room(fast_settings) -> WritersRoom:
    llm = StubLLM(
        {"casting": [Canned.cast("Vera", "Luc")],
         "planner": [Canned.plan(1, ["Vera", "Luc"], final=True, heading="INT. OPERA HOUSE - NIGHT")]},
        defaults={
            "dialogue": "The diamond is backstage.",
            "judgment": Canned.judgment(True),
            "summarizer": Canned.summary("The crew cases the opera house."),
        },
    )
    room = WritersRoom(llm, fast_settings, rng=random.Random(5))
    session.set_room(room)
    await room.initialize(THEME)
    await room.start_writing()
    return room


def _text(result) -> str:
    assert not result.isError
    return result.content[0].text


async def test_tools_listed():
    async with create_connected_server_and_client_session(mcp_server.mcp) as client:
        tools = await client.list_tools()
    assert {t.name for t in tools.tools} == {"get_story_state", "export_script", "get_activity_log"}


async def test_get_story_state(finished_room):
    async with create_connected_server_and_client_session(mcp_server.mcp) as client:
        result = await client.call_tool("get_story_state", {})
    state = json.loads(_text(result))
    assert state["theme"] == THEME
    assert state["phase"] == "completed"
    assert state["is_finished"] is True
    assert state["summaries"][0]["summary"] == "The crew cases the opera house."


async def test_export_script_fountain(finished_room):
    async with create_connected_server_and_client_session(mcp_server.mcp) as client:
        result = await client.call_tool("export_script", {})
    script = _text(result)
    assert script.startswith(f"Title: {THEME}\n")
    assert "\nINT. OPERA HOUSE - NIGHT\n" in script
    assert "\nVERA\nThe diamond is backstage.\n" in script


async def test_export_script_text(finished_room):
    async with create_connected_server_and_client_session(mcp_server.mcp) as client:
        result = await client.call_tool("export_script", {"format": "text"})
    assert "\n[Vera]\nThe diamond is backstage.\n" in _text(result)


async def test_export_script_unknown_format(finished_room):
    async with create_connected_server_and_client_session(mcp_server.mcp) as client:
        result = await client.call_tool("export_script", {"format": "pdf"})
    assert result.isError


async def test_get_activity_log_since(finished_room):
    total = len(finished_room.store.logs)
    async with create_connected_server_and_client_session(mcp_server.mcp) as client:
        result = await client.call_tool("get_activity_log", {"since": total - 1})
    entries = json.loads(_text(result))["entries"]
    assert [e["message"] for e in entries] == ["The screenplay is finished!"]
