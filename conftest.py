import asyncio
import json
import shutil
from pathlib import Path

import pytest

from backend import config, session
from writers_room.models import SamplingConfig
from writers_room.pipeline import PipelineSettings

TEST_DATA_DIR = Path("data-tests")


@pytest.fixture(autouse=True)
def clean_test_data():
    """Wipe and re-init data-tests/ and drop the live session before every test."""
    if TEST_DATA_DIR.exists():
        shutil.rmtree(TEST_DATA_DIR)
    config.init_config(TEST_DATA_DIR)
    session.set_room(None)
    yield
    session.set_room(None)


# ---------------------------------------------------------------------------
# StubLLM — dispatches by stage name, independent queue per stage
# ---------------------------------------------------------------------------

class StubLLM:
    """Deterministic LLM stand-in for tests.

    `responses` maps stage name → list of responses in call order. A
    response may be a string, an exception instance (raised), or a
    zero-argument callable (called, then its return value is used the same
    way; handy for pausing the room mid-run). `defaults` answers a stage
    once its queue is empty.
    """

    def __init__(
        self,
        responses: dict[str, list] | None = None,
        defaults: dict[str, str] | None = None,
    ) -> None:
        self._queues: dict[str, list] = {k: list(v) for k, v in (responses or {}).items()}
        self._defaults = dict(defaults or {})
        self.calls: list[tuple[str, str, SamplingConfig]] = []

    async def __call__(self, stage: str, prompt: str, sampling: SamplingConfig) -> str:
        self.calls.append((stage, prompt, sampling))
        queue = self._queues.get(stage)
        if queue:
            item = queue.pop(0)
        elif stage in self._defaults:
            item = self._defaults[stage]
        else:
            raise AssertionError(
                f"StubLLM: unexpected call to stage={stage!r} "
                f"(no responses queued). calls so far: {[c[0] for c in self.calls]}"
            )
        if callable(item):
            item = item()
        if isinstance(item, BaseException):
            raise item
        return item

    def stages(self) -> list[str]:
        return [c[0] for c in self.calls]

    def count(self, stage: str) -> int:
        return sum(1 for c in self.calls if c[0] == stage)

    def prompts(self, stage: str) -> list[str]:
        return [c[1] for c in self.calls if c[0] == stage]

    def assert_exhausted(self) -> None:
        """Assert every queued response was consumed."""
        leftover = {k: v for k, v in self._queues.items() if v}
        if leftover:
            raise AssertionError(f"StubLLM: unused responses remain: {leftover}")


class GatedLLM(StubLLM):
    """StubLLM that holds the first call to `gate_stage` until `gate` is set.

    `entered` is set once that call is waiting, so a test can act while a
    generation is in flight.
    """

    def __init__(self, *args, gate_stage: str = "dialogue", **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.gate_stage = gate_stage
        self.entered = asyncio.Event()
        self.gate = asyncio.Event()

    async def __call__(self, stage: str, prompt: str, sampling: SamplingConfig) -> str:
        if stage == self.gate_stage and not self.gate.is_set():
            self.entered.set()
            await self.gate.wait()
        return await super().__call__(stage, prompt, sampling)


class Canned:
    """Builders for well-formed model responses."""

    @staticmethod
    def cast(*names: str) -> str:
        return json.dumps({"characters": [
            {
                "name": name,
                "bio": f"{name} has a past.",
                "personality_traits": ["stubborn", "curious"],
                "speaking_style": "Short sentences.",
            }
            for name in names
        ]})

    @staticmethod
    def plan(number: int, present: list[str], final: bool = False, heading: str | None = None) -> str:
        return json.dumps({
            "scene_number": number,
            "heading": heading or f"INT. LOCATION {number} - NIGHT",
            "setting": f"Setting of scene {number}",
            "objective": f"Objective of scene {number}",
            "characters_present": present,
            "mood": "tense",
            "opening_action": f"Scene {number} opens.",
            "is_final_scene": final,
        })

    @staticmethod
    def summary(text: str, events: list[str] | None = None) -> str:
        return json.dumps({"summary": text, "key_events": events or ["something happened"]})

    @staticmethod
    def judgment(should_end: bool) -> str:
        return json.dumps({"should_end": should_end, "reason": "test"})


@pytest.fixture
def fast_settings() -> PipelineSettings:
    """Default pipeline settings without the pacing delays."""
    return PipelineSettings(turn_delay=0, scene_delay=0)
