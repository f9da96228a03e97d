"""FastMCP server exposing the live writing session as read-only MCP tools.

Tools:
  - get_story_state()          — theme, cast, scenes, summaries, phase
  - export_script(format)      — the screenplay as Fountain or plain text
  - get_activity_log(since)    — {"entries": [...]} newer than `since`

The session is the same one the HTTP app serves (backend.session).

Usage:
    uv run python -m backend.mcp_server
"""

from mcp.server.fastmcp import FastMCP

from backend import session
from writers_room.export import export_script as _export

mcp = FastMCP("writers-room")


@mcp.tool()
def get_story_state() -> dict:
    """Return the current story snapshot, including phase and pause flag."""
    return session.get_room().store.snapshot()


@mcp.tool()
def export_script(format: str = "fountain") -> str:
    """Export the screenplay so far. format is "fountain" or "text"."""
    if format not in ("fountain", "text"):
        raise ValueError(f"Unknown export format: {format!r}")
    return _export(session.get_room().store.state.script_lines, format)  # type: ignore[arg-type]


@mcp.tool()
def get_activity_log(since: int = 0) -> dict:
    """Return activity log entries with an id greater than `since`."""
    entries = session.get_room().store.logs_since(since)
    return {"entries": [e.model_dump(mode="json") for e in entries]}


if __name__ == "__main__":
    from pathlib import Path

    from dotenv import load_dotenv

    from backend import config

    load_dotenv(Path(__file__).parent.parent / ".env")
    config.init_config(Path(__file__).parent.parent / "data")
    mcp.run()
