"""The one live writing session served by this process.

The room is built lazily from config. Director-loop runs started by the
HTTP layer are background tasks tracked here so they are not garbage
collected and so tests can wait for them.
"""

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

from writers_room.pipeline import WritersRoom

from . import config

logger = logging.getLogger(__name__)

_room: WritersRoom | None = None
_tasks: set[asyncio.Task] = set()


def get_room() -> WritersRoom:
    global _room
    if _room is None:
        cfg = config.get_config()
        _room = WritersRoom(config.build_llm(cfg), config.pipeline_settings(cfg))
    return _room


def set_room(room: WritersRoom | None) -> None:
    """Replace the active room (used in tests and after settings change)."""
    global _room
    _room = room


def launch(coro: Coroutine[Any, Any, None]) -> asyncio.Task:
    """Run a control coroutine in the background."""
    task = asyncio.get_running_loop().create_task(coro)
    _tasks.add(task)
    task.add_done_callback(_finished)
    return task


def _finished(task: asyncio.Task) -> None:
    _tasks.discard(task)
    if not task.cancelled() and task.exception() is not None:
        logger.error("Background run failed", exc_info=task.exception())


async def drain() -> None:
    """Wait for every background run to finish."""
    while _tasks:
        await asyncio.gather(*list(_tasks), return_exceptions=True)
