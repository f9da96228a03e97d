"""Narrative store — the single shared state of one writing session.

Holds the StoryState aggregate plus the orchestration status the host
displays (phase, pause flag, error) and the activity log. There is no
business logic here: every method is one atomic mutation or a read.

One store belongs to one WritersRoom instance. Nothing is global, so
several sessions can live in one process and tests get a fresh store each.

Invariants kept by the mutation surface:
  - script lines are append-only; each gets a strictly increasing `seq`
    and a non-decreasing `appended_at` timestamp
  - scene plans are numbered 1, 2, 3, ... with no gaps
  - summaries are appended in scene order
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from writers_room.models import (
    ActivityLog,
    AgentRole,
    Character,
    LogKind,
    OrchestratorPhase,
    ScenePlan,
    SceneSummary,
    ScriptLine,
    StoryState,
)

logger = logging.getLogger(__name__)

LogListener = Callable[[ActivityLog], None]


class NarrativeStore:
    def __init__(self) -> None:
        self._listeners: list[LogListener] = []
        self._clear()

    def _clear(self) -> None:
        self._state = StoryState()
        self._phase = OrchestratorPhase.IDLE
        self._paused = False
        self._error: str | None = None
        self._logs: list[ActivityLog] = []
        self._line_seq = 0
        self._last_append: datetime | None = None

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def state(self) -> StoryState:
        return self._state

    @property
    def phase(self) -> OrchestratorPhase:
        return self._phase

    @property
    def is_paused(self) -> bool:
        return self._paused

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def logs(self) -> list[ActivityLog]:
        return list(self._logs)

    def logs_since(self, log_id: int) -> list[ActivityLog]:
        """Log entries with an id greater than `log_id`."""
        return [entry for entry in self._logs if entry.id > log_id]

    def scene_lines(self, scene_number: int, from_seq: int = 0) -> list[ScriptLine]:
        """Lines of one scene, optionally only those stamped `from_seq` or later.

        A re-planned scene keeps its abandoned take in the script; pass the
        seq of the current heading to read just the current take.
        """
        return [
            line for line in self._state.script_lines
            if line.scene_number == scene_number and line.seq >= from_seq
        ]

    def snapshot(self) -> dict[str, Any]:
        """JSON-ready copy of everything the presentation layer shows."""
        data = self._state.model_dump(mode="json")
        data["phase"] = self._phase.value
        data["is_paused"] = self._paused
        data["error"] = self._error
        return data

    # ------------------------------------------------------------------
    # Story mutations
    # ------------------------------------------------------------------

    def set_theme(self, theme: str) -> None:
        self._state.theme = theme

    def set_characters(self, characters: list[Character]) -> None:
        self._state.characters = list(characters)

    def add_scene(self, plan: ScenePlan) -> None:
        expected = len(self._state.scenes) + 1
        if plan.scene_number != expected:
            raise ValueError(
                f"Scene {plan.scene_number} out of order, expected {expected}"
            )
        self._state.scenes.append(plan)

    def discard_scene(self, scene_number: int) -> bool:
        """Drop the latest plan if it is `scene_number` and was never summarized.

        Used when an interrupted scene is planned again. Script lines
        already written for it stay in place.
        """
        scenes = self._state.scenes
        if not scenes or scenes[-1].scene_number != scene_number:
            return False
        if any(s.scene_number == scene_number for s in self._state.summaries):
            return False
        scenes.pop()
        return True

    def append_line(self, line: ScriptLine) -> ScriptLine:
        """Append one line, stamping its sequence number and timestamp."""
        now = datetime.now(timezone.utc)
        if self._last_append is not None and now < self._last_append:
            now = self._last_append
        self._line_seq += 1
        self._last_append = now
        stamped = line.model_copy(update={"seq": self._line_seq, "appended_at": now})
        self._state.script_lines.append(stamped)
        return stamped

    def append_lines(self, lines: list[ScriptLine]) -> list[ScriptLine]:
        return [self.append_line(line) for line in lines]

    def add_summary(self, summary: SceneSummary) -> None:
        self._state.summaries.append(summary)
        entry = f"Scene {summary.scene_number}: {summary.summary}"
        if self._state.summary_so_far:
            self._state.summary_so_far = f"{self._state.summary_so_far}\n\n{entry}"
        else:
            self._state.summary_so_far = entry

    def set_scene_index(self, index: int) -> None:
        self._state.current_scene_index = index

    def set_finished(self, finished: bool) -> None:
        self._state.is_finished = finished

    # ------------------------------------------------------------------
    # Orchestration status
    # ------------------------------------------------------------------

    def set_phase(self, phase: OrchestratorPhase) -> None:
        if phase != self._phase:
            logger.info("phase %s -> %s", self._phase.value, phase.value)
        self._phase = phase

    def set_paused(self, paused: bool) -> None:
        """Flip the pause flag. Pausing also shows the paused phase."""
        self._paused = paused
        if paused:
            self.set_phase(OrchestratorPhase.PAUSED)

    def set_error(self, message: str | None) -> None:
        """Record an error (phase → error) or clear it (phase → idle)."""
        self._error = message
        self.set_phase(OrchestratorPhase.ERROR if message else OrchestratorPhase.IDLE)

    # ------------------------------------------------------------------
    # Activity log
    # ------------------------------------------------------------------

    def subscribe(self, listener: LogListener) -> Callable[[], None]:
        """Register a callback for every new log entry. Returns an unsubscribe function."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def log(
        self,
        agent: AgentRole,
        message: str,
        type: LogKind = "info",
        agent_name: str | None = None,
    ) -> ActivityLog:
        entry = ActivityLog(
            id=len(self._logs) + 1,
            agent=agent,
            agent_name=agent_name,
            message=message,
            type=type,
        )
        self._logs.append(entry)
        for listener in list(self._listeners):
            listener(entry)
        return entry

    # ------------------------------------------------------------------
    # Reset
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Discard the whole story and return to idle. Listeners stay subscribed."""
        self._clear()
        logger.info("store reset")
