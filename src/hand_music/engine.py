"""Gesture-to-sound engine: one landmark set in, at most one playback command out."""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

import numpy as np

from hand_music.config import EngineConfig
from hand_music.fingers import extended_fingers, finger_states
from hand_music.gate import Clock, GatePhase, MonotonicClock, TriggerGate
from hand_music.gestures import GestureDescriptor, GestureRecognizer
from hand_music.instruments import Instrument, create_instrument
from hand_music.landmarks import as_landmarks
from hand_music.mapping import PitchMapper
from hand_music.music import SCALE, chord_for, root_letter

logger = logging.getLogger("hand_music.engine")


class CommandKind(Enum):
    NOTE = "note"
    CHORD = "chord"


@dataclass(frozen=True)
class PlaybackCommand:
    """What the instrument should play for one frame."""
    kind: CommandKind
    pitches: tuple[str, ...]
    duration: str
    volume: float  # 0.3..1.0
    note: str  # quantized scale note the command came from
    timestamp_ms: int

    @property
    def label(self) -> str:
        if self.kind is CommandKind.CHORD:
            return f"{root_letter(self.note)} chord"
        return self.note

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "pitches": list(self.pitches),
            "duration": self.duration,
            "volume": round(self.volume, 4),
            "note": self.note,
            "timestamp_ms": self.timestamp_ms,
        }


@dataclass
class EngineStats:
    """Runtime counters."""
    total_frames: int
    hand_frames: int
    commands: int
    notes: int
    chords: int
    suppressed: int
    avg_latency_ms: float


class Engine:
    """Maps hand landmarks to notes and chords, one frame at a time.

    Stages per frame: finger states → gesture → pitch/volume → trigger gate.
    Only the gate keeps state between frames. The caller owns the frame
    loop and calls `process_frame` once per frame in arrival order.

    Usage:
        engine = Engine(instrument=SynthInstrument())
        for hand in frames:  # (21, 3) arrays, or None when no hand
            command = engine.process_frame(hand)
    """

    def __init__(
        self,
        instrument: Optional[Instrument] = None,
        config: Optional[EngineConfig] = None,
        clock: Optional[Clock] = None,
    ):
        self.config = config or EngineConfig()
        self.instrument = instrument
        self.clock = clock or MonotonicClock()

        self.recognizer = GestureRecognizer(self.config.spread_threshold)
        self.mapper = PitchMapper(
            SCALE,
            height_source=self.config.height_source,
            volume_source=self.config.volume_source,
            fixed_volume=self.config.fixed_volume,
        )
        self.gate = TriggerGate(self.config.debounce_ms, self.config.debounce_policy)

        self._callbacks: list[Callable[[PlaybackCommand], None]] = []
        self._last_command: Optional[PlaybackCommand] = None
        self._frame_times: deque = deque(maxlen=60)
        self._total_frames = 0
        self._hand_frames = 0
        self._notes = 0
        self._chords = 0
        self._suppressed = 0

    @classmethod
    def from_config(cls, config: EngineConfig, clock: Optional[Clock] = None) -> Engine:
        """Build an engine with the instrument the config selects."""
        instrument = create_instrument(
            config.instrument,
            samples_dir=config.samples_dir,
            sample_rate=config.sample_rate,
            bpm=config.bpm,
        )
        return cls(instrument=instrument, config=config, clock=clock)

    def on_command(self, callback: Callable[[PlaybackCommand], None]):
        """Register a callback for emitted commands."""
        self._callbacks.append(callback)

    def process_frame(self, hand: Any) -> Optional[PlaybackCommand]:
        """Process one frame's hand observation.

        Args:
            hand: Landmarks of the single tracked hand, shape (21, 3) or an
                equivalent sequence of points. None or empty means no hand.

        Returns:
            The emitted command, or None when nothing should sound.
        """
        t_start = time.perf_counter()
        self._total_frames += 1

        landmarks = as_landmarks(hand)
        if landmarks is None:
            if self.gate.phase is GatePhase.ACTIVE:
                logger.debug("Hand lost, gate idle")
            self.gate.release()
            self._last_command = None
            self._frame_times.append(time.perf_counter() - t_start)
            return None

        self._hand_frames += 1
        command = self.decide(landmarks, self.clock.current_time_millis())
        if command is not None:
            self._emit(command)

        self._frame_times.append(time.perf_counter() - t_start)
        return command

    def decide(self, landmarks: np.ndarray, now_ms: int) -> Optional[PlaybackCommand]:
        """Run the decision stages for a present hand and update the gate."""
        states = finger_states(landmarks)
        gesture = self.recognizer.recognize(landmarks, states)
        mapped = self.mapper.map(landmarks)

        if not self.gate.should_emit(mapped.note, gesture.extended_count > 0, now_ms):
            if gesture.extended_count > 0:
                self._suppressed += 1
            return None

        command = self._build_command(gesture, mapped.note, mapped.volume, now_ms)
        self.gate.record(mapped.note, now_ms)

        logger.debug(
            "%s %s vol=%.2f fingers=%s thumb=%s",
            command.kind.value, " ".join(command.pitches), command.volume,
            ",".join(extended_fingers(landmarks)) or "-", gesture.thumb_raised,
        )
        return command

    def _build_command(
        self, gesture: GestureDescriptor, note: str, volume: float, now_ms: int
    ) -> PlaybackCommand:
        if self.config.chords_enabled and gesture.is_chord_shape:
            kind, pitches = CommandKind.CHORD, chord_for(note)
        else:
            kind, pitches = CommandKind.NOTE, (note,)
        return PlaybackCommand(
            kind=kind,
            pitches=pitches,
            duration=self.config.duration,
            volume=volume,
            note=note,
            timestamp_ms=now_ms,
        )

    def _emit(self, command: PlaybackCommand):
        self._last_command = command
        if command.kind is CommandKind.CHORD:
            self._chords += 1
        else:
            self._notes += 1

        if self.instrument is not None:
            try:
                self.instrument.trigger(list(command.pitches), command.duration, command.volume)
            except Exception as e:
                logger.warning("Instrument %s failed: %s", self.instrument.name, e)

        for cb in self._callbacks:
            cb(command)

    @property
    def status(self) -> str:
        """Status line for display: what is sounding, or ready."""
        if self._last_command is None:
            return "Ready to play"
        return f"Playing: {self._last_command.label}"

    @property
    def stats(self) -> EngineStats:
        if self._frame_times:
            avg_latency = sum(self._frame_times) / len(self._frame_times)
        else:
            avg_latency = 0.0

        return EngineStats(
            total_frames=self._total_frames,
            hand_frames=self._hand_frames,
            commands=self._notes + self._chords,
            notes=self._notes,
            chords=self._chords,
            suppressed=self._suppressed,
            avg_latency_ms=avg_latency * 1000,
        )

    def reset(self):
        """Clear gate state and counters."""
        self.gate.reset()
        self._last_command = None
        self._frame_times.clear()
        self._total_frames = 0
        self._hand_frames = 0
        self._notes = 0
        self._chords = 0
        self._suppressed = 0

    def close(self):
        """Release the instrument."""
        if self.instrument is not None:
            self.instrument.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
