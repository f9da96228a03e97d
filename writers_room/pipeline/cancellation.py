"""Cooperative cancellation for one run of the director loop.

The token is polled at loop boundaries (between scenes and between
turns); it never interrupts a generation call that is already in flight.

A cancelled run finishes what it was waiting for and still writes the
result. A *discarded* run (the session was reset) writes nothing more.
"""

from __future__ import annotations


class CancellationToken:
    def __init__(self) -> None:
        self._cancelled = False
        self._discarded = False
        self.reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def discarded(self) -> bool:
        return self._discarded

    def cancel(self, reason: str = "stop") -> None:
        if not self._cancelled:
            self.reason = reason
        self._cancelled = True

    def discard(self) -> None:
        """Cancel and forbid any further writes from this run."""
        self.cancel("reset")
        self._discarded = True

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self._cancelled}, reason={self.reason!r})"
