"""Screenplay export — pure functions of the script lines.

Fountain (https://fountain.io) layout:

    Title: <theme>

    INT. OFFICE - NIGHT

    Mara leafs through a file.

    MARA
    Who sent you?

Plain text underlines the title with '=' and scene headings with '-',
and puts the speaker in brackets above the line.
"""

from __future__ import annotations

from typing import Literal

from writers_room.models import ScriptLine

ExportFormat = Literal["fountain", "text"]


def to_fountain(lines: list[ScriptLine]) -> str:
    parts: list[str] = []
    for line in lines:
        if line.type == "header":
            parts.append(f"Title: {line.content}\n")
        elif line.type == "scene_heading":
            heading = line.content
            # forced heading for anything not starting with INT/EXT
            if not heading.upper().startswith(("INT", "EXT", "EST", "I/E")):
                heading = f".{heading}"
            parts.append(f"\n{heading}\n")
        elif line.type == "action":
            parts.append(f"\n{line.content}\n")
        elif line.type == "dialogue":
            parts.append(f"\n{(line.speaker or '').upper()}\n{line.content}\n")
    return "".join(parts)


def to_plain_text(lines: list[ScriptLine]) -> str:
    parts: list[str] = []
    for line in lines:
        if line.type == "header":
            parts.append(f"{line.content}\n{'=' * len(line.content)}\n")
        elif line.type == "scene_heading":
            parts.append(f"\n{line.content}\n{'-' * len(line.content)}\n")
        elif line.type == "action":
            parts.append(f"\n{line.content}\n")
        elif line.type == "dialogue":
            parts.append(f"\n[{line.speaker}]\n{line.content}\n")
    return "".join(parts)


def export_script(lines: list[ScriptLine], format: ExportFormat = "fountain") -> str:
    if format == "fountain":
        return to_fountain(lines)
    if format == "text":
        return to_plain_text(lines)
    raise ValueError(f"Unknown export format: {format!r}")
