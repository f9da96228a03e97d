"""Casting — generate the story's characters from its theme."""

from __future__ import annotations

import logging

from writers_room.agent import AgentClient, CastingRequest, GenerationError
from writers_room.models import Character

from .errors import FatalOrchestrationError

logger = logging.getLogger(__name__)


async def cast_characters(agent: AgentClient, theme: str, cast_size: int = 4) -> list[Character]:
    """Ask the model for a cast. Ids are assigned by position: char_1, char_2, ...

    Raises FatalOrchestrationError when the model call fails or the cast
    is unusable (duplicate names would make speaker lookup ambiguous).
    """
    try:
        result = await agent.invoke(CastingRequest(theme=theme, cast_size=cast_size))
    except GenerationError as e:
        raise FatalOrchestrationError("casting", str(e)) from e

    names = [m.name for m in result.characters]
    if len(set(names)) != len(names):
        raise FatalOrchestrationError("casting", f"duplicate character names: {names}")
    if len(names) != cast_size:
        logger.warning("Asked for %d characters, got %d", cast_size, len(names))

    return [
        Character(
            id=f"char_{i}",
            name=member.name,
            bio=member.bio,
            personality_traits=member.personality_traits,
            speaking_style=member.speaking_style,
        )
        for i, member in enumerate(result.characters, start=1)
    ]
