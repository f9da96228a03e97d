"""Error taxonomy for the director loop.

GenerationError (writers_room.agent) is what the agent client raises. The
pipeline classifies it:

  FatalOrchestrationError — casting or planning failed (and dialogue, under
                            the "fatal" dialogue-failure policy). The session
                            stops in the error phase; reset is the only way out.
  SoftError               — summarizing or end-of-scene judgment failed. Logged,
                            a safe default is used and the loop continues.
"""


class FatalOrchestrationError(RuntimeError):
    """A step the story cannot continue without has failed."""

    def __init__(self, step: str, message: str) -> None:
        super().__init__(f"{step} failed: {message}")
        self.step = step


class SoftError(RuntimeError):
    """A non-essential step failed and was replaced by a default."""

    def __init__(self, step: str, message: str) -> None:
        super().__init__(f"{step} failed: {message}")
        self.step = step
