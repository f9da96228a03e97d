"""Agent client — structured generation on top of a raw LLM callable.

Each kind of structured output the room needs is its own request variant:

    CastingRequest      → CastingResult
    ScenePlanRequest    → ScenePlanOutput
    DialogueRequest     → DialogueOutput   (plain-text response)
    SummaryRequest      → SummaryOutput
    EndJudgmentRequest  → EndJudgment

A request knows its stage name, its prompt, its sampling defaults and how
to turn the model's raw text into its output model. AgentClient.invoke()
runs exactly one LLM call and validates the result. There are no retries
here: any failure surfaces as a GenerationError carrying the raw text.
"""

from __future__ import annotations

import json
import logging
from typing import ClassVar, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError

from writers_room.llm import LLM, LLMError
from writers_room.models import (
    CastingResult,
    Character,
    DialogueOutput,
    EndJudgment,
    SamplingConfig,
    ScenePlan,
    ScenePlanOutput,
    SceneSummary,
    SummaryOutput,
)
from writers_room.prompts import (
    CASTING_PROMPT,
    DIALOGUE_PROMPT,
    JUDGMENT_PROMPT,
    PLANNER_PROMPT,
    SUMMARY_PROMPT,
    PromptError,
    render_prompt,
)

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


class GenerationError(Exception):
    """The model call failed or its output did not match the expected shape."""

    def __init__(self, stage: str, message: str, raw_text: str | None = None) -> None:
        super().__init__(f"{stage}: {message}")
        self.stage = stage
        self.raw_text = raw_text


# ---------------------------------------------------------------------------
# JSON extraction
# ---------------------------------------------------------------------------

def extract_json_block(text: str) -> str:
    """Return the JSON object embedded in a model response.

    Strips markdown code fences and any chatter around the outermost
    braces. Returns the stripped text when no object can be isolated.
    """
    candidate = text.strip()
    if candidate.startswith("```"):
        lines = candidate.splitlines()
        closing = len(lines) - 1 if len(lines) > 1 and lines[-1].startswith("```") else len(lines)
        candidate = "\n".join(lines[1:closing])
    start = candidate.find("{")
    end = candidate.rfind("}")
    if start != -1 and end > start:
        return candidate[start:end + 1]
    return candidate.strip()


# ---------------------------------------------------------------------------
# Request variants
# ---------------------------------------------------------------------------

class AgentRequest(BaseModel, Generic[T]):
    """Base for every structured generation request."""

    model_config = ConfigDict(frozen=True)

    stage: ClassVar[str]
    output: ClassVar[type[BaseModel]]
    temperature: ClassVar[float] = 0.7

    def prompt(self) -> str:
        raise NotImplementedError

    def sampling(self) -> SamplingConfig:
        return SamplingConfig(temperature=self.temperature)

    def parse(self, raw: str) -> T:
        """Parse and validate the raw model text. Raises ValueError on mismatch."""
        try:
            data = json.loads(extract_json_block(raw))
        except json.JSONDecodeError as e:
            raise ValueError(f"invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object, got {type(data).__name__}")
        return self.output.model_validate(data)  # type: ignore[return-value]


class CastingRequest(AgentRequest[CastingResult]):
    stage: ClassVar[str] = "casting"
    output: ClassVar[type[BaseModel]] = CastingResult
    temperature: ClassVar[float] = 0.8

    theme: str
    cast_size: int = 4

    def prompt(self) -> str:
        return render_prompt(CASTING_PROMPT, {"theme": self.theme, "cast_size": self.cast_size})


class ScenePlanRequest(AgentRequest[ScenePlanOutput]):
    stage: ClassVar[str] = "planner"
    output: ClassVar[type[BaseModel]] = ScenePlanOutput
    temperature: ClassVar[float] = 0.7

    theme: str
    characters: list[Character]
    summaries: list[SceneSummary]
    scene_number: int

    def prompt(self) -> str:
        return render_prompt(PLANNER_PROMPT, {
            "theme": self.theme,
            "characters": [c.model_dump() for c in self.characters],
            "summaries": [s.model_dump() for s in self.summaries],
            "scene_number": self.scene_number,
        })


class DialogueRequest(AgentRequest[DialogueOutput]):
    stage: ClassVar[str] = "dialogue"
    output: ClassVar[type[BaseModel]] = DialogueOutput
    temperature: ClassVar[float] = 0.9

    character: Character
    scene: ScenePlan
    recent_lines: list[str]
    window: int = 6

    def prompt(self) -> str:
        return render_prompt(DIALOGUE_PROMPT, {
            "character": self.character.model_dump(),
            "scene": self.scene.model_dump(),
            "recent_lines": self.recent_lines,
            "window": self.window,
        })

    def parse(self, raw: str) -> DialogueOutput:
        return DialogueOutput(
            character_id=self.character.id,
            character_name=self.character.name,
            dialogue=raw.strip(),
        )


class SummaryRequest(AgentRequest[SummaryOutput]):
    stage: ClassVar[str] = "summarizer"
    output: ClassVar[type[BaseModel]] = SummaryOutput
    temperature: ClassVar[float] = 0.5

    scene_number: int
    scene: ScenePlan
    content: str

    def prompt(self) -> str:
        return render_prompt(SUMMARY_PROMPT, {
            "scene_number": self.scene_number,
            "scene": self.scene.model_dump(),
            "content": self.content,
        })


class EndJudgmentRequest(AgentRequest[EndJudgment]):
    stage: ClassVar[str] = "judgment"
    output: ClassVar[type[BaseModel]] = EndJudgment
    temperature: ClassVar[float] = 0.3

    scene: ScenePlan
    recent_lines: list[str]
    turn_count: int
    window: int = 8

    def prompt(self) -> str:
        return render_prompt(JUDGMENT_PROMPT, {
            "scene": self.scene.model_dump(),
            "recent_lines": self.recent_lines,
            "turn_count": self.turn_count,
            "window": self.window,
        })


# ---------------------------------------------------------------------------
# AgentClient
# ---------------------------------------------------------------------------

class AgentClient:
    """Stateless wrapper: one request in, one validated object out."""

    def __init__(self, llm: LLM) -> None:
        self._llm = llm

    async def invoke(self, request: AgentRequest[T], sampling: SamplingConfig | None = None) -> T:
        stage = request.stage
        try:
            prompt = request.prompt()
        except PromptError as e:
            raise GenerationError(stage, str(e)) from e

        try:
            raw = await self._llm(stage, prompt, sampling or request.sampling())
        except LLMError as e:
            raise GenerationError(stage, str(e)) from e

        try:
            result = request.parse(raw)
        except (ValueError, ValidationError) as e:
            logger.warning("Malformed %s output: %s", stage, e)
            logger.debug("Raw %s output: %r", stage, raw)
            raise GenerationError(stage, f"malformed output: {e}", raw_text=raw) from e
        return result
