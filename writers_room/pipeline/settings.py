"""Tunable knobs of the director loop."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, model_validator

DialogueFailurePolicy = Literal["fatal", "skip"]


class PipelineSettings(BaseModel):
    cast_size: int = Field(default=4, ge=1)
    min_turns: int = Field(default=8, ge=0)  # judgment is never asked before this
    max_turns: int = Field(default=12, ge=1)  # hard cap per scene
    dialogue_window: int = Field(default=6, ge=1)
    judgment_window: int = Field(default=8, ge=1)
    turn_delay: float = Field(default=0.5, ge=0)
    scene_delay: float = Field(default=1.0, ge=0)
    dialogue_failure: DialogueFailurePolicy = "fatal"
    resume_mid_scene: bool = False

    @model_validator(mode="after")
    def _check_turn_band(self) -> PipelineSettings:
        if self.min_turns > self.max_turns:
            raise ValueError("min_turns must not exceed max_turns")
        return self
