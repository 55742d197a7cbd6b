"""Trigger gate — decides when a mapped note may sound.

Two policies are supported for repeated triggers:

- TIME_WINDOW_ONLY: any frame with a raised finger re-triggers once the
  debounce window has elapsed, even on the same note.
- REPEAT_SUPPRESSION: once the window has elapsed, only a note different
  from the last emitted one triggers.

Gate state lives for the whole session and is touched only from the frame
processing path, so no locking is needed.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Protocol

DEFAULT_DEBOUNCE_MS = 150


class Clock(Protocol):
    def current_time_millis(self) -> int: ...


class MonotonicClock:
    """Wall-independent millisecond clock for live sessions."""

    def current_time_millis(self) -> int:
        return time.monotonic_ns() // 1_000_000


class ManualClock:
    """Clock advanced by hand. Used by tests and session replays."""

    def __init__(self, start_ms: int = 0):
        self._now = int(start_ms)

    def current_time_millis(self) -> int:
        return self._now

    def set(self, now_ms: int):
        self._now = int(now_ms)

    def advance(self, delta_ms: int) -> int:
        self._now += int(delta_ms)
        return self._now


class DebouncePolicy(Enum):
    REPEAT_SUPPRESSION = "repeat_suppression"
    TIME_WINDOW_ONLY = "time_window_only"


class GatePhase(Enum):
    IDLE = "idle"      # no hand in the previous frame
    ACTIVE = "active"  # hand tracked


@dataclass
class GateState:
    last_note: Optional[str] = None
    last_emit_ms: Optional[int] = None
    phase: GatePhase = GatePhase.IDLE


class TriggerGate:
    """Temporal gate between the pitch mapper and the instrument."""

    def __init__(
        self,
        debounce_ms: int = DEFAULT_DEBOUNCE_MS,
        policy: DebouncePolicy = DebouncePolicy.TIME_WINDOW_ONLY,
    ):
        self.debounce_ms = debounce_ms
        self.policy = policy
        self._state = GateState()

    @property
    def state(self) -> GateState:
        """A copy of the current gate state."""
        return replace(self._state)

    @property
    def phase(self) -> GatePhase:
        return self._state.phase

    def release(self):
        """Hand left the frame: go idle and forget the last note.

        The last emission time is kept so the debounce window still separates
        two commands across a short dropout.
        """
        self._state.phase = GatePhase.IDLE
        self._state.last_note = None

    def in_window(self, now_ms: int) -> bool:
        """True while the debounce window since the last emission is open."""
        last = self._state.last_emit_ms
        return last is not None and (now_ms - last) < self.debounce_ms

    def should_emit(self, note: str, has_extended_finger: bool, now_ms: int) -> bool:
        """Whether a command for `note` may be emitted at `now_ms`."""
        self._state.phase = GatePhase.ACTIVE

        if self.in_window(now_ms):
            return False
        if not has_extended_finger:
            return False
        if self.policy is DebouncePolicy.REPEAT_SUPPRESSION:
            return note != self._state.last_note
        return True

    def record(self, note: str, now_ms: int):
        """Remember an emission. Call only after a command was actually emitted."""
        self._state.last_note = note
        self._state.last_emit_ms = now_ms
        self._state.phase = GatePhase.ACTIVE

    def reset(self):
        self._state = GateState()
