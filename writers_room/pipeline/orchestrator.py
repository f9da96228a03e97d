"""Director loop — drives a whole story from theme to final scene.

Session flow:
  initialize(theme)   idle → initializing → casting; seeds the title line.
  start_writing()     runs the loop below until the story ends or is paused:
    1. planning_scene  plan scene N, append heading + opening action
    2. acting          TurnEngine plays the dialogue
    3. summarizing     summary appended to the planner's memory
    4. final scene?    → completed (the only normal exit)
       otherwise       → N + 1, repeat
  pause()             cancels the run at its next checkpoint (looping phases only)
  resume()            clears the pause and starts the loop again
  reset()             discards the run and the whole story → idle

Casting and planning failures are fatal: the phase becomes error and the
loop stops. Summarizing and judgment failures are absorbed downstream.
Completed and error are final: start, pause and resume do nothing there,
and only reset leaves them.

Only one loop runs at a time. A start or resume while one is active is a
no-op; after a pause the next run waits for the old one to drain.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass

from writers_room.agent import AgentClient
from writers_room.llm import LLM
from writers_room.models import Character, OrchestratorPhase, ScenePlan, ScriptLine
from writers_room.store import NarrativeStore

from .cancellation import CancellationToken
from .casting import cast_characters
from .errors import FatalOrchestrationError
from .planner import plan_scene
from .settings import PipelineSettings
from .summarizer import summarize_scene
from .turns import SceneOutcome, TurnEngine, TurnState

logger = logging.getLogger(__name__)

LOOPING_PHASES = frozenset({
    OrchestratorPhase.PLANNING_SCENE,
    OrchestratorPhase.ACTING,
    OrchestratorPhase.SUMMARIZING,
})
FINAL_PHASES = frozenset({OrchestratorPhase.COMPLETED, OrchestratorPhase.ERROR})


@dataclass
class ScenePosition:
    """A scene in progress: its plan, how far the dialogue got, and the
    seq of its heading line (where the current take starts)."""

    plan: ScenePlan
    turns: TurnState
    heading_seq: int = 0


class WritersRoom:
    """One writing session: a store, its agents and the control surface."""

    def __init__(
        self,
        llm: LLM,
        settings: PipelineSettings | None = None,
        *,
        rng: random.Random | None = None,
        store: NarrativeStore | None = None,
    ) -> None:
        self.settings = settings or PipelineSettings()
        self.store = store or NarrativeStore()
        self._agent = AgentClient(llm)
        self._turns = TurnEngine(self._agent, self.store, self.settings, rng or random.Random())
        self._lock = asyncio.Lock()
        self._token: CancellationToken | None = None  # latest run, possibly still waiting
        self._active: CancellationToken | None = None  # run holding the loop
        self._position: ScenePosition | None = None
        self._starting = 0  # start_writing calls not yet returned

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        """True while a run holds the loop and has not been asked to stop."""
        token = self._token
        return self._lock.locked() and token is not None and not token.cancelled

    @property
    def is_closed(self) -> bool:
        """True once the story has completed or failed. Only reset reopens it."""
        return self.store.phase in FINAL_PHASES

    async def wait(self) -> None:
        """Block until no run holds the loop."""
        async with self._lock:
            pass

    # ------------------------------------------------------------------
    # Control surface
    # ------------------------------------------------------------------

    async def initialize(self, theme: str) -> list[Character]:
        """Cast the story. Runs once per session; later calls return the cast.

        Raises FatalOrchestrationError when casting fails (the store is left
        in the error phase) and ValueError for an empty theme.
        """
        store = self.store
        theme = theme.strip()
        if not theme:
            raise ValueError("Theme must not be empty")
        if self.is_running or store.state.characters:
            return list(store.state.characters)

        token = self._new_token()
        async with self._lock:
            self._active = token
            store.set_theme(theme)
            store.set_phase(OrchestratorPhase.INITIALIZING)
            store.log("system", "Opening the writers' room...", "info")

            store.set_phase(OrchestratorPhase.CASTING)
            store.log("system", "Calling in the actors...", "action")
            try:
                characters = await cast_characters(self._agent, theme, self.settings.cast_size)
            except FatalOrchestrationError as e:
                if not token.discarded:
                    logger.exception("Casting failed")
                    store.set_error(f"Initialization failed: {e}")
                raise
            if token.discarded:
                return []

            store.set_characters(characters)
            store.log(
                "system",
                f"Cast of {len(characters)}: {', '.join(c.name for c in characters)}",
                "complete",
            )
            store.append_line(ScriptLine(type="header", content=theme))
            store.set_phase(OrchestratorPhase.IDLE)
            return characters

    async def start_writing(self) -> None:
        """Run the director loop until the story ends, pauses or fails."""
        if self.is_running:
            logger.debug("start_writing ignored: a run is already active")
            return
        if self.is_closed:
            logger.debug("start_writing ignored: the story is %s", self.store.phase.value)
            return
        token = self._new_token()
        self._starting += 1
        try:
            async with self._lock:
                if token.cancelled or self.is_closed:
                    return
                self._active = token
                if not self.store.state.characters:
                    self.store.set_error("Cast the characters before writing")
                    return
                await self._run(token)
        finally:
            self._starting -= 1

    def pause(self) -> None:
        """Stop the loop at its next checkpoint.

        Ignored unless the loop is running or about to run: pausing an idle,
        completed or failed room changes nothing.
        """
        store = self.store
        if store.is_paused or self.is_closed:
            return
        if store.phase not in LOOPING_PHASES and not self._starting:
            logger.debug("pause ignored in phase %s", store.phase.value)
            return
        for token in self._tokens():
            token.cancel("pause")
        store.set_paused(True)
        store.log("system", "Paused", "info")

    async def resume(self) -> None:
        store = self.store
        if not store.is_paused or self.is_closed:
            return
        store.set_paused(False)
        store.log("system", "Back to writing...", "info")
        await self.start_writing()

    def reset(self) -> None:
        """Throw the whole story away. A run still in flight writes nothing more."""
        for token in self._tokens():
            token.discard()
        self._position = None
        self.store.reset()

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    def _new_token(self) -> CancellationToken:
        self._token = CancellationToken()
        return self._token

    def _tokens(self) -> list[CancellationToken]:
        return [t for t in (self._active, self._token) if t is not None]

    def _enter(self, phase: OrchestratorPhase) -> None:
        if not self.store.is_paused:
            self.store.set_phase(phase)

    async def _run(self, token: CancellationToken) -> None:
        store = self.store
        try:
            await self._director_loop(token)
        except FatalOrchestrationError as e:
            if token.discarded:
                return
            logger.exception("Director loop stopped")
            store.set_paused(False)
            store.set_error(f"Writing failed: {e}")
            store.log("system", str(e), "info")
        except Exception as e:
            if not token.discarded:
                store.set_paused(False)
                store.set_error(f"Writing failed: {e}")
            raise

    async def _director_loop(self, token: CancellationToken) -> None:
        store = self.store
        settings = self.settings

        while not store.state.is_finished and not token.cancelled and not store.is_paused:
            scene_number = store.state.current_scene_index + 1

            position = self._take_position(scene_number)
            if position is None:
                position = await self._plan(scene_number, token)
                if position is None:
                    return
            plan = position.plan

            if token.cancelled:
                self._position = position
                return

            outcome = await self._turns.run_scene(plan, position.turns, token)
            if outcome is SceneOutcome.DISCARDED:
                return
            if outcome is SceneOutcome.INTERRUPTED:
                self._position = position
                return

            self._enter(OrchestratorPhase.SUMMARIZING)
            store.log("summarizer", f"Summarizing scene {scene_number}...", "thinking")
            summary = await summarize_scene(
                self._agent, scene_number, plan,
                store.scene_lines(scene_number, from_seq=position.heading_seq),
            )
            if token.discarded:
                return
            store.add_summary(summary)
            store.log("summarizer", f"Scene {scene_number} summarized", "complete")

            if plan.is_final_scene:
                store.set_paused(False)
                store.set_finished(True)
                store.set_phase(OrchestratorPhase.COMPLETED)
                store.log("system", "The screenplay is finished!", "complete")
                return

            store.set_scene_index(store.state.current_scene_index + 1)
            if settings.scene_delay and not token.cancelled:
                await asyncio.sleep(settings.scene_delay)

    def _take_position(self, scene_number: int) -> ScenePosition | None:
        """Hand back an interrupted scene when mid-scene resume is on."""
        position, self._position = self._position, None
        if position is None or position.plan.scene_number != scene_number:
            return None
        if not self.settings.resume_mid_scene:
            self.store.discard_scene(scene_number)
            return None
        return position

    async def _plan(self, scene_number: int, token: CancellationToken) -> ScenePosition | None:
        store = self.store
        self._enter(OrchestratorPhase.PLANNING_SCENE)
        store.log("director", f"Planning scene {scene_number}...", "thinking")

        plan = await plan_scene(
            self._agent,
            theme=store.state.theme,
            characters=store.state.characters,
            summaries=store.state.summaries,
            scene_number=scene_number,
        )
        if token.discarded:
            return None

        store.add_scene(plan)
        store.log("director", f"Scene {scene_number}: {plan.heading}", "complete")
        heading, _ = store.append_lines([
            ScriptLine(type="scene_heading", content=plan.heading, scene_number=scene_number),
            ScriptLine(type="action", content=plan.opening_action, scene_number=scene_number),
        ])
        return ScenePosition(plan, TurnState(), heading.seq)
