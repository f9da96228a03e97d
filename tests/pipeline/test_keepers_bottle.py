"""Scenario: "The Keeper's Bottle" written end-to-end with canned model output.

Two scenes with a short turn band (floor 2, cap 4):

  Scene 1  INT. LIGHTHOUSE LAMP ROOM - NIGHT   Ada + Bram, the director
           calls cut after the third line.
  Scene 2  EXT. SHORELINE - DAWN               Cleo alone, runs to the cap;
           the planner marks it final.

Checks the committed story, the planner's memory and the exported script.
"""

import json
import random

import pytest

from conftest import Canned, StubLLM
from writers_room.export import export_script
from writers_room.models import OrchestratorPhase
from writers_room.pipeline import PipelineSettings, WritersRoom

THEME = "The Keeper's Bottle"

CAST = json.dumps({"characters": [
    {
        "name": "Ada",
        "bio": "Lighthouse keeper for thirty years. Has never left the island.",
        "personality_traits": ["patient", "secretive"],
        "speaking_style": "Slow, weathered, few words.",
    },
    {
        "name": "Bram",
        "bio": "The supply-boat captain. Lives for gossip.",
        "personality_traits": ["jovial", "nosy"],
        "speaking_style": "Loud, teasing.",
    },
    {
        "name": "Cleo",
        "bio": "A stranger who arrived on the last ferry.",
        "personality_traits": ["quiet", "determined"],
        "speaking_style": "Measured, formal.",
    },
]})

PLAN_1 = json.dumps({
    "scene_number": 1,
    "heading": "INT. LIGHTHOUSE LAMP ROOM - NIGHT",
    "setting": "The glass room atop the tower, storm outside.",
    "objective": "Ada reveals the bottle is addressed to her.",
    "characters_present": ["Ada", "Bram"],
    "mood": "intimate, stormy",
    "opening_action": "Rain lashes the glass. Ada winds the lamp.",
    "is_final_scene": False,
})

PLAN_2 = json.dumps({
    "scene_number": 2,
    "heading": "EXT. SHORELINE - DAWN",
    "setting": "Wet sand, a grey sea.",
    "objective": "Cleo decides to answer the letter.",
    "characters_present": ["Cleo"],
    "mood": "resolved",
    "opening_action": "Cleo walks the tide line alone.",
    "is_final_scene": True,
})

SCENE_1_LINES = [
    "Another bottle washed up.",
    "(grinning) Another love letter?",
    "It's addressed to me.",
]
SCENE_2_LINES = [
    "Someone is out there.",
    "The handwriting is hers.",
    "(kneeling) The tide brought it back.",
    "I'll answer.",
]

SUMMARY_1 = Canned.summary(
    "A bottle reaches the lighthouse addressed to Ada.",
    ["Bottle found", "Bram teases", "Ada reads the name"],
)
SUMMARY_2 = Canned.summary(
    "Cleo recognises the handwriting and resolves to reply.",
    ["Cleo on the shore", "Decision made"],
)


@pytest.fixture
def llm() -> StubLLM:
    return StubLLM({
        "casting": [CAST],
        "planner": [PLAN_1, PLAN_2],
        "dialogue": SCENE_1_LINES + SCENE_2_LINES,
        "judgment": [
            Canned.judgment(False), Canned.judgment(True),
            Canned.judgment(False), Canned.judgment(False),
        ],
        "summarizer": [SUMMARY_1, SUMMARY_2],
    })


@pytest.fixture
async def room(llm: StubLLM) -> WritersRoom:
    settings = PipelineSettings(min_turns=2, max_turns=4, turn_delay=0, scene_delay=0, cast_size=3)
    r = WritersRoom(llm, settings, rng=random.Random(7))
    await r.initialize(THEME)
    await r.start_writing()
    return r


class TestKeepersBottle:
    async def test_every_response_consumed(self, room: WritersRoom, llm: StubLLM) -> None:
        llm.assert_exhausted()
        assert llm.stages()[:3] == ["casting", "planner", "dialogue"]

    async def test_story_completed(self, room: WritersRoom) -> None:
        state = room.store.state
        assert room.store.phase is OrchestratorPhase.COMPLETED
        assert state.is_finished
        assert [c.id for c in state.characters] == ["char_1", "char_2", "char_3"]
        assert [s.heading for s in state.scenes] == [
            "INT. LIGHTHOUSE LAMP ROOM - NIGHT", "EXT. SHORELINE - DAWN",
        ]

    async def test_speakers(self, room: WritersRoom) -> None:
        speakers = [
            (line.scene_number, line.speaker)
            for line in room.store.state.script_lines if line.type == "dialogue"
        ]
        assert speakers == [
            (1, "Ada"), (1, "Bram"), (1, "Ada"),
            (2, "Cleo"), (2, "Cleo"), (2, "Cleo"), (2, "Cleo"),
        ]

    async def test_planner_remembers_scene_one(self, room: WritersRoom, llm: StubLLM) -> None:
        second = llm.prompts("planner")[1]
        assert "Scene 1: A bottle reaches the lighthouse addressed to Ada." in second
        assert "Current scene number: 2" in second

    async def test_summarizer_sees_rendered_scene(self, room: WritersRoom, llm: StubLLM) -> None:
        first = llm.prompts("summarizer")[0]
        assert "Rain lashes the glass. Ada winds the lamp." in first
        assert "Bram: (grinning) Another love letter?" in first
        assert "Cleo" not in first

    async def test_dialogue_prompt_carries_context(self, room: WritersRoom, llm: StubLLM) -> None:
        third = llm.prompts("dialogue")[2]
        assert "playing Ada" in third
        assert "Ada: Another bottle washed up." in third
        assert "Bram: (grinning) Another love letter?" in third

    async def test_summary_so_far(self, room: WritersRoom) -> None:
        assert room.store.state.summary_so_far == (
            "Scene 1: A bottle reaches the lighthouse addressed to Ada.\n\n"
            "Scene 2: Cleo recognises the handwriting and resolves to reply."
        )

    async def test_fountain_export(self, room: WritersRoom) -> None:
        script = export_script(room.store.state.script_lines, "fountain")
        assert script == (
            "Title: The Keeper's Bottle\n"
            "\nINT. LIGHTHOUSE LAMP ROOM - NIGHT\n"
            "\nRain lashes the glass. Ada winds the lamp.\n"
            "\nADA\nAnother bottle washed up.\n"
            "\nBRAM\n(grinning) Another love letter?\n"
            "\nADA\nIt's addressed to me.\n"
            "\nEXT. SHORELINE - DAWN\n"
            "\nCleo walks the tide line alone.\n"
            "\nCLEO\nSomeone is out there.\n"
            "\nCLEO\nThe handwriting is hers.\n"
            "\nCLEO\n(kneeling) The tide brought it back.\n"
            "\nCLEO\nI'll answer.\n"
        )
