"""Scene planner — the director decides what the next scene is about.

The planner only ever sees the theme, the cast and the summaries of
finished scenes. Its `is_final_scene` flag is the one signal that ends
the story.
"""

from __future__ import annotations

import logging

from writers_room.agent import AgentClient, GenerationError, ScenePlanRequest
from writers_room.models import Character, ScenePlan, SceneSummary

from .errors import FatalOrchestrationError

logger = logging.getLogger(__name__)


async def plan_scene(
    agent: AgentClient,
    *,
    theme: str,
    characters: list[Character],
    summaries: list[SceneSummary],
    scene_number: int,
) -> ScenePlan:
    """Plan scene `scene_number`. Raises FatalOrchestrationError on failure.

    The returned plan always carries the requested scene number, whatever
    number the model wrote.
    """
    request = ScenePlanRequest(
        theme=theme,
        characters=characters,
        summaries=summaries,
        scene_number=scene_number,
    )
    try:
        output = await agent.invoke(request)
    except GenerationError as e:
        raise FatalOrchestrationError("scene planning", str(e)) from e

    if output.scene_number is not None and output.scene_number != scene_number:
        logger.warning(
            "Planner numbered scene %d as %d; keeping %d",
            scene_number, output.scene_number, scene_number,
        )

    known = {c.name for c in characters}
    unknown = [name for name in output.characters_present if name not in known]
    if unknown:
        logger.warning("Scene %d lists unknown characters %s", scene_number, unknown)

    data = output.model_dump()
    data["scene_number"] = scene_number
    return ScenePlan.model_validate(data)
