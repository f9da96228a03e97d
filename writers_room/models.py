"""Core domain models.

Every component of the writers' room reads and writes these types.
Pydantic is used for validation and serialisation at every data boundary,
including the structured output returned by the generative model.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

ScriptLineType = Literal["header", "scene_heading", "action", "dialogue"]
AgentRole = Literal["director", "actor", "summarizer", "system"]
LogKind = Literal["info", "action", "thinking", "complete"]


def _now() -> datetime:
    return datetime.now(timezone.utc)


class OrchestratorPhase(str, Enum):
    IDLE = "idle"
    INITIALIZING = "initializing"
    CASTING = "casting"
    PLANNING_SCENE = "planning_scene"
    ACTING = "acting"
    SUMMARIZING = "summarizing"
    COMPLETED = "completed"
    PAUSED = "paused"
    ERROR = "error"


class Character(BaseModel):
    """An actor in the room. Frozen once cast."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    bio: str
    personality_traits: list[str] = Field(default_factory=list)
    speaking_style: str = ""


class ScenePlan(BaseModel):
    """The director's plan for one scene."""

    model_config = ConfigDict(frozen=True)

    scene_number: int = Field(ge=1)
    heading: str
    setting: str
    objective: str
    characters_present: list[str] = Field(default_factory=list)
    mood: str = ""
    opening_action: str = ""
    is_final_scene: bool = False

    @property
    def scene_id(self) -> str:
        return f"scene_{self.scene_number}"


class ScriptLine(BaseModel):
    """One entry in the append-only screenplay.

    `seq` and `appended_at` are stamped by the store on append.
    """

    model_config = ConfigDict(frozen=True)

    type: ScriptLineType
    content: str
    speaker: str | None = None  # dialogue only
    character_id: str | None = None  # dialogue only
    scene_number: int | None = None  # None for the title header
    seq: int = 0
    appended_at: datetime | None = None


class SceneSummary(BaseModel):
    scene_id: str
    scene_number: int
    summary: str
    key_events: list[str] = Field(default_factory=list)


class ActivityLog(BaseModel):
    """One entry of the behind-the-scenes activity stream."""

    id: int
    timestamp: datetime = Field(default_factory=_now)
    agent: AgentRole
    agent_name: str | None = None  # actor logs only
    message: str
    type: LogKind = "info"


class StoryState(BaseModel):
    """Aggregate root for one session's story."""

    theme: str = ""
    characters: list[Character] = Field(default_factory=list)
    scenes: list[ScenePlan] = Field(default_factory=list)
    current_scene_index: int = 0
    is_finished: bool = False
    summary_so_far: str = ""
    summaries: list[SceneSummary] = Field(default_factory=list)
    script_lines: list[ScriptLine] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Structured model outputs
# ---------------------------------------------------------------------------

class CastMember(BaseModel):
    name: str = Field(min_length=1)
    bio: str
    personality_traits: list[str] = Field(default_factory=list)
    speaking_style: str = ""


class CastingResult(BaseModel):
    characters: list[CastMember] = Field(min_length=1)


class ScenePlanOutput(BaseModel):
    """Scene plan as the model returns it; numbering is owned by the caller."""

    scene_number: int | None = None
    heading: str = Field(min_length=1)
    setting: str
    objective: str
    characters_present: list[str] = Field(default_factory=list)
    mood: str = ""
    opening_action: str = ""
    is_final_scene: bool = False


class DialogueOutput(BaseModel):
    character_id: str
    character_name: str
    dialogue: str = Field(min_length=1)


class SummaryOutput(BaseModel):
    summary: str = Field(min_length=1)
    key_events: list[str] = Field(default_factory=list)


class EndJudgment(BaseModel):
    should_end: bool
    reason: str = ""


class SamplingConfig(BaseModel):
    temperature: float = 0.7
    max_output_tokens: int | None = None
