"""Scene summarizer — compress a finished scene for future planning.

A summary is the only memory the planner keeps of a scene, so one is
always produced: when the model fails, a fixed fallback stands in.
"""

from __future__ import annotations

import logging

from writers_room.agent import AgentClient, GenerationError, SummaryRequest
from writers_room.models import ScenePlan, SceneSummary, ScriptLine

from .errors import SoftError

logger = logging.getLogger(__name__)


def render_scene_text(lines: list[ScriptLine]) -> str:
    """Dialogue as "Speaker: line", everything else verbatim, one per line."""
    parts = []
    for line in lines:
        if line.type == "dialogue":
            parts.append(f"{line.speaker}: {line.content}")
        else:
            parts.append(line.content)
    return "\n".join(parts)


def fallback_summary(scene_number: int) -> SceneSummary:
    return SceneSummary(
        scene_id=f"scene_{scene_number}",
        scene_number=scene_number,
        summary=f"Scene {scene_number} completed",
        key_events=["Scene completed"],
    )


async def request_summary(
    agent: AgentClient, scene_number: int, plan: ScenePlan, content: str
) -> SceneSummary:
    """One summarizer call. Raises SoftError on any failure."""
    try:
        output = await agent.invoke(
            SummaryRequest(scene_number=scene_number, scene=plan, content=content)
        )
    except GenerationError as e:
        raise SoftError("summarizing", str(e)) from e
    return SceneSummary(
        scene_id=f"scene_{scene_number}",
        scene_number=scene_number,
        summary=output.summary,
        key_events=output.key_events or ["Scene completed"],
    )


async def summarize_scene(
    agent: AgentClient, scene_number: int, plan: ScenePlan, lines: list[ScriptLine]
) -> SceneSummary:
    """Summarize a scene. Never raises on model failure."""
    try:
        return await request_summary(agent, scene_number, plan, render_scene_text(lines))
    except SoftError as e:
        logger.warning("%s; using fallback summary", e)
        return fallback_summary(scene_number)
