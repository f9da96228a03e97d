"""Turn engine — runs the dialogue of one scene.

Turn flow (repeated until the scene ends or the run is cancelled):
  1. Check the cancellation token. Cancelled → stop, scene unfinished.
  2. Pick the next speaker (select_speaker).
  3. Ask the actor agent for one line → append a dialogue ScriptLine.
  4. Decide whether the scene is over (should_end_scene):
       turn_count >= max_turns          → end
       turn_count <  min_turns          → continue
       otherwise                        → ask the director; a failed
                                          judgment means continue

TurnState holds the per-scene bookkeeping. It lives outside the engine so
a paused scene can be handed back in and continued where it stopped.
"""

from __future__ import annotations

import asyncio
import logging
import random
from enum import Enum

from pydantic import BaseModel, Field

from writers_room.agent import AgentClient, DialogueRequest, EndJudgmentRequest, GenerationError
from writers_room.models import Character, OrchestratorPhase, ScenePlan, ScriptLine
from writers_room.store import NarrativeStore

from .cancellation import CancellationToken
from .errors import FatalOrchestrationError, SoftError
from .settings import PipelineSettings

logger = logging.getLogger(__name__)

LOG_PREVIEW_CHARS = 50


class SceneOutcome(str, Enum):
    COMPLETED = "completed"  # the scene ended by cap or judgment
    INTERRUPTED = "interrupted"  # paused or stopped between turns
    DISCARDED = "discarded"  # the session was reset under us


class TurnState(BaseModel):
    recent_speakers: list[str] = Field(default_factory=list)  # character ids
    recent_lines: list[str] = Field(default_factory=list)  # "Name: line"
    turn_count: int = 0

    def record(self, character: Character, line: str, keep: int) -> None:
        self.recent_speakers.append(character.id)
        self.recent_lines.append(f"{character.name}: {line}")
        del self.recent_speakers[:-keep]
        del self.recent_lines[:-keep]


# ---------------------------------------------------------------------------
# Speaker selection
# ---------------------------------------------------------------------------

def select_speaker(
    characters: list[Character],
    plan: ScenePlan,
    recent_speakers: list[str],
    turn_count: int,
    rng: random.Random,
) -> Character:
    """Choose who speaks next.

    Only characters listed in the scene take part; when none of them are
    in the cast the first cast member speaks. After the first turn the
    previous speaker is excluded and one of the others is drawn at random.
    Otherwise (first turn, or a one-person scene) it is round-robin.
    """
    if not characters:
        raise ValueError("Cannot pick a speaker from an empty cast")

    available = [c for c in characters if c.name in plan.characters_present]
    if not available:
        return characters[0]

    last = recent_speakers[-1] if recent_speakers else None
    others = [c for c in available if c.id != last]
    if turn_count > 0 and others:
        return rng.choice(others)
    return available[turn_count % len(available)]


# ---------------------------------------------------------------------------
# End-of-scene judgment
# ---------------------------------------------------------------------------

async def judge_scene_end(
    agent: AgentClient, plan: ScenePlan, state: TurnState, window: int
) -> bool:
    """Ask the director whether the scene is done. Raises SoftError on failure."""
    try:
        judgment = await agent.invoke(EndJudgmentRequest(
            scene=plan,
            recent_lines=state.recent_lines,
            turn_count=state.turn_count,
            window=window,
        ))
    except GenerationError as e:
        raise SoftError("end-of-scene judgment", str(e)) from e
    logger.debug("scene %d judgment should_end=%s reason=%r",
                 plan.scene_number, judgment.should_end, judgment.reason)
    return judgment.should_end


async def should_end_scene(
    agent: AgentClient, plan: ScenePlan, state: TurnState, settings: PipelineSettings
) -> bool:
    if state.turn_count >= settings.max_turns:
        return True
    if state.turn_count < settings.min_turns:
        return False
    try:
        return await judge_scene_end(agent, plan, state, settings.judgment_window)
    except SoftError as e:
        logger.warning("%s; letting the scene run on", e)
        return False


# ---------------------------------------------------------------------------
# TurnEngine
# ---------------------------------------------------------------------------

class TurnEngine:
    def __init__(
        self,
        agent: AgentClient,
        store: NarrativeStore,
        settings: PipelineSettings,
        rng: random.Random,
    ) -> None:
        self._agent = agent
        self._store = store
        self._settings = settings
        self._rng = rng

    async def run_scene(
        self, plan: ScenePlan, state: TurnState, token: CancellationToken
    ) -> SceneOutcome:
        """Play the scene's dialogue until it ends or the token is cancelled.

        `state` is updated in place; pass the same object back in to
        continue an interrupted scene.
        """
        store = self._store
        settings = self._settings
        keep = max(settings.dialogue_window, settings.judgment_window)

        store.set_phase(OrchestratorPhase.ACTING)
        store.log("director", f"Action! Rolling on scene {plan.scene_number}.", "action")

        while True:
            if token.cancelled:
                return SceneOutcome.INTERRUPTED
            if state.turn_count >= settings.max_turns:
                return SceneOutcome.COMPLETED

            character = select_speaker(
                store.state.characters, plan, state.recent_speakers,
                state.turn_count, self._rng,
            )
            store.log("actor", f"{character.name} is thinking about a line...",
                      "thinking", agent_name=character.name)

            try:
                output = await self._agent.invoke(DialogueRequest(
                    character=character,
                    scene=plan,
                    recent_lines=state.recent_lines,
                    window=settings.dialogue_window,
                ))
            except GenerationError as e:
                if token.discarded:
                    return SceneOutcome.DISCARDED
                if settings.dialogue_failure == "fatal":
                    raise FatalOrchestrationError("dialogue", str(e)) from e
                logger.warning("Skipping %s's turn: %s", character.name, e)
                store.log("system", f"{character.name} missed a line; moving on.", "info")
                state.turn_count += 1
            else:
                if token.discarded:
                    return SceneOutcome.DISCARDED
                store.append_line(ScriptLine(
                    type="dialogue",
                    content=output.dialogue,
                    speaker=character.name,
                    character_id=character.id,
                    scene_number=plan.scene_number,
                ))
                state.record(character, output.dialogue, keep)
                state.turn_count += 1
                store.log("actor", f"{character.name}: {_preview(output.dialogue)}",
                          "action", agent_name=character.name)

            # A scene at the cap is finished even with a pause pending.
            if state.turn_count >= settings.max_turns:
                store.log("director", "Cut! That's the scene.", "action")
                return SceneOutcome.COMPLETED
            if token.cancelled:
                return SceneOutcome.INTERRUPTED
            ended = await should_end_scene(self._agent, plan, state, settings)
            if token.discarded:
                return SceneOutcome.DISCARDED
            if ended:
                store.log("director", "Cut! That's the scene.", "action")
                return SceneOutcome.COMPLETED

            if settings.turn_delay:
                await asyncio.sleep(settings.turn_delay)


def _preview(text: str) -> str:
    if len(text) <= LOG_PREVIEW_CHARS:
        return text
    return text[:LOG_PREVIEW_CHARS] + "..."
