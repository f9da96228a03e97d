"""Handlebars prompt templates for the room's agents.

One template per agent role. Free-form story text is rendered with
triple-stash (`{{{...}}}`) so quotes and apostrophes survive unescaped.
"""

from collections.abc import Callable
from typing import Any

import pybars


_compiler = pybars.Compiler()
_cache: dict[str, Callable] = {}


class PromptError(Exception):
    """Raised when a Handlebars template fails to compile or render."""


# ── Custom Handlebars helpers ────────────────────────────


def _helper_last(this, options, items, count):
    """{{#last array N}}...{{/last}} — iterate over the last N items."""
    result = []
    for item in list(items)[-int(count):]:
        result.extend(options["fn"](item))
    return result


def _helper_join(this, items, sep=", "):
    """{{join array ", "}} — join a list of strings."""
    return sep.join(str(i) for i in items or [])


_HELPERS: dict[str, Callable] = {
    "last": _helper_last,
    "join": _helper_join,
}


def render_prompt(template_str: str, context: dict[str, Any]) -> str:
    """Compile and render a Handlebars template with the given context.

    Templates are cached by source string to avoid recompilation.
    """
    try:
        compiled = _cache.get(template_str)
        if compiled is None:
            compiled = _compiler.compile(template_str)
            _cache[template_str] = compiled
        return str(compiled(context, helpers=_HELPERS))
    except Exception as e:
        raise PromptError(f"Template error: {e}") from e


JSON_ONLY = (
    "IMPORTANT: respond with pure JSON only. No markdown fences, "
    "no commentary before or after the object."
)

CASTING_PROMPT = """\
You are a seasoned casting director. Create {{cast_size}} distinct, \
complementary characters for a film with the theme below.

Theme: {{{theme}}}

Requirements:
1. The characters are diverse and carry potential for conflict.
2. Each has a clear motive and background.
3. Personality traits are concrete and playable.
4. Each has a recognisable way of speaking.

""" + JSON_ONLY + """

Example:
{
  "characters": [
    {
      "name": "Mara Quell",
      "bio": "A disgraced detective chasing the case that ended her career.",
      "personality_traits": ["stubborn", "perceptive", "guarded"],
      "speaking_style": "Clipped sentences, dry humour, police jargon."
    }
  ]
}
"""

PLANNER_PROMPT = """\
You are a visionary film director. Your task is to plan the structure of \
the next scene, not to write its dialogue.

Theme: {{{theme}}}

Characters:
{{#each characters}}
- {{{name}}}: {{{bio}}}
{{/each}}

Completed scenes:
{{#if summaries}}
{{#each summaries}}
Scene {{scene_number}}: {{{summary}}}
{{/each}}
{{else}}
This is the first scene.
{{/if}}

Current scene number: {{scene_number}}

Plan scene {{scene_number}}:
1. Set the dramatic objective and conflict.
2. Choose which characters appear (use their exact names).
3. Set the mood and the location.
4. Write an opening action description, without dialogue.
5. Decide whether the story should end with this scene. Aim for a \
complete arc of 5 to 8 scenes and set is_final_scene to true when the \
arc should close.

Scene heading format example: "INT. DETECTIVE'S OFFICE - NIGHT"

""" + JSON_ONLY + """

Example:
{
  "scene_number": 1,
  "heading": "INT. DETECTIVE'S OFFICE - NIGHT",
  "setting": "A dim office, case photos pinned to every wall.",
  "objective": "The detective takes on a mysterious client.",
  "characters_present": ["Mara Quell", "Tobias Wren"],
  "mood": "tense, mysterious",
  "opening_action": "Mara leafs through a file when the phone rings.",
  "is_final_scene": false
}
"""

DIALOGUE_PROMPT = """\
You are a method actor playing {{{character.name}}}.

Character:
- Background: {{{character.bio}}}
- Traits: {{{join character.personality_traits ", "}}}
- Speaking style: {{{character.speaking_style}}}

Current scene:
- Setting: {{{scene.setting}}}
- Mood: {{{scene.mood}}}
- Objective: {{{scene.objective}}}

Recent dialogue:
{{#if recent_lines}}
{{#last recent_lines window}}
{{{this}}}
{{/last}}
{{else}}
(The scene has just begun.)
{{/if}}

As {{{character.name}}}, say your next line:
1. Speak entirely in character.
2. Keep the character's speaking style.
3. Push the scene objective forward.
4. Keep it short, one to three sentences.
5. You may include an action in parentheses, e.g. (hesitating) I don't know.

Output only the spoken line, without the character's name.
"""

SUMMARY_PROMPT = """\
You are a script analyst. Summarise the scene below.

Scene number: {{scene_number}}
Heading: {{{scene.heading}}}
Objective: {{{scene.objective}}}

Scene content:
{{{content}}}

Provide:
1. A concise summary (2-3 sentences).
2. A list of 3-5 key events.

""" + JSON_ONLY + """

Example:
{
  "summary": "The detective takes on a missing-person case. The client is hiding something.",
  "key_events": ["Client arrives", "Case described", "Detective accepts", "A first doubt"]
}
"""

JUDGMENT_PROMPT = """\
You are a film director. Decide whether the current scene should end.

Scene objective: {{{scene.objective}}}

Recent dialogue:
{{#last recent_lines window}}
{{{this}}}
{{/last}}

{{turn_count}} lines have been spoken so far.

Criteria:
1. Has the scene objective been reached?
2. Has the dramatic conflict unfolded?
3. Is there a natural stopping point?

""" + JSON_ONLY + """

Example:
{
  "should_end": true,
  "reason": "The objective is met and the conflict is in the open."
}
"""
