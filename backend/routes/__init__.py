"""FastAPI API endpoints under /api.

Endpoint groups: settings (health, settings) and room (the writing
session's control surface, live state, activity log and export).

    POST /api/room/initialize   cast characters for a theme
    POST /api/room/start        run the director loop in the background
    POST /api/room/pause        stop at the next turn boundary
    POST /api/room/resume       continue writing
    POST /api/room/reset        discard the story

Start, pause and resume answer 409 once the story has completed or failed.
"""

from fastapi import APIRouter

from .room import router as room_router
from .settings import router as settings_router

router = APIRouter()
router.include_router(settings_router)
router.include_router(room_router)
