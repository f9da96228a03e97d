"""Pydantic request/response models for API endpoints."""

from typing import Literal

from pydantic import BaseModel


class InitializeBody(BaseModel):
    theme: str


class ControlResult(BaseModel):
    ok: bool = True
    phase: str
    is_paused: bool
    is_running: bool


ExportFormatParam = Literal["fountain", "text"]
