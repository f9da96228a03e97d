"""Writers'-room pipeline: casting, planning, acting, summarizing.

Stages (each one agent role, each one model call per step):
  casting     — invent the cast from the theme (once per session)
  planner     — the director plans the next scene and decides when the story ends
  turns       — actors speak one line per turn; the director calls cut
  summarizer  — a finished scene is condensed into the planner's memory

WritersRoom (orchestrator) sequences the stages and owns the control
surface: initialize, start_writing, pause, resume, reset.
"""

from .cancellation import CancellationToken  # noqa: F401
from .casting import cast_characters  # noqa: F401
from .errors import FatalOrchestrationError, SoftError  # noqa: F401
from .orchestrator import WritersRoom  # noqa: F401
from .planner import plan_scene  # noqa: F401
from .settings import PipelineSettings  # noqa: F401
from .summarizer import fallback_summary, render_scene_text, summarize_scene  # noqa: F401
from .turns import (  # noqa: F401
    SceneOutcome,
    TurnEngine,
    TurnState,
    select_speaker,
    should_end_scene,
)
