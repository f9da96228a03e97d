"""Writers'-room control endpoints + state, activity log and export reads."""

from fastapi import APIRouter, HTTPException
from fastapi.responses import PlainTextResponse

from backend import session
from writers_room.export import export_script
from writers_room.models import OrchestratorPhase
from writers_room.pipeline import FatalOrchestrationError, WritersRoom

from .models import ControlResult, ExportFormatParam, InitializeBody

router = APIRouter()


def _status(room: WritersRoom) -> ControlResult:
    return ControlResult(
        phase=room.store.phase.value,
        is_paused=room.store.is_paused,
        is_running=room.is_running,
    )


@router.get("/room")
async def get_room_state():
    """Live story snapshot: theme, cast, scenes, summaries, script, phase."""
    room = session.get_room()
    state = room.store.snapshot()
    state["is_running"] = room.is_running
    return state


@router.get("/room/logs")
async def get_activity_log(since: int = 0):
    """Activity log entries with an id greater than `since`."""
    room = session.get_room()
    return [entry.model_dump(mode="json") for entry in room.store.logs_since(since)]


@router.post("/room/initialize")
async def initialize_room(body: InitializeBody):
    """Cast the characters for a theme. Waits for casting to finish."""
    if not body.theme.strip():
        raise HTTPException(400, "Theme must not be empty")
    room = session.get_room()
    if room.is_running:
        raise HTTPException(409, "The room is busy")
    try:
        characters = await room.initialize(body.theme)
    except FatalOrchestrationError as e:
        raise HTTPException(502, str(e))
    return {"characters": [c.model_dump() for c in characters]}


def _require_open(room: WritersRoom) -> None:
    """409 once the story has completed or failed; only reset reopens it."""
    if room.store.phase is OrchestratorPhase.ERROR:
        raise HTTPException(409, "Writing failed; reset the room to start over")
    if room.is_closed:
        raise HTTPException(409, "The screenplay is finished")


@router.post("/room/start")
async def start_writing() -> ControlResult:
    """Start the director loop in the background."""
    room = session.get_room()
    if not room.store.state.characters:
        raise HTTPException(409, "Initialize the room before writing")
    _require_open(room)
    if not room.is_running:
        session.launch(room.start_writing())
    return _status(room)


@router.post("/room/pause")
async def pause_writing() -> ControlResult:
    room = session.get_room()
    _require_open(room)
    room.pause()
    return _status(room)


@router.post("/room/resume")
async def resume_writing() -> ControlResult:
    room = session.get_room()
    _require_open(room)
    if room.store.is_paused:
        session.launch(room.resume())
    return _status(room)


@router.post("/room/reset")
async def reset_room() -> ControlResult:
    """Discard the story. The next session picks up the current settings."""
    room = session.get_room()
    room.reset()
    session.set_room(None)
    return _status(session.get_room())


@router.get("/room/export", response_class=PlainTextResponse)
async def export_room_script(format: ExportFormatParam = "fountain"):
    """The screenplay so far as Fountain markup or plain text."""
    room = session.get_room()
    return export_script(room.store.state.script_lines, format)
