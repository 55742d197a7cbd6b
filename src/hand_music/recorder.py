"""Session recording and replay — landmark streams on disk.

A recording stores, per frame, the hand landmarks (or null for a frame with
no hand) and the millisecond offset from the start of the session. Replays
drive a ManualClock from those offsets, so the trigger gate sees exactly the
timing of the live session and a replay always produces the same commands.
"""

from __future__ import annotations

import json
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Iterator, Optional

import numpy as np

from hand_music.gate import ManualClock

FORMAT_VERSION = 1


@dataclass
class RecordedFrame:
    """A single frame in a recording."""
    timestamp_ms: int  # from recording start
    hand: Optional[list[list[float]]]  # (21, 3) landmarks, None if no hand


class SessionRecorder:
    """Records landmark frames to a JSON file.

    Usage:
        recorder = SessionRecorder()
        recorder.start()
        # In your frame loop:
        recorder.add_frame(landmarks_or_none)
        # When done:
        recorder.save("session.json")
    """

    def __init__(self):
        self._frames: list[RecordedFrame] = []
        self._start_ns: Optional[int] = None
        self._recording = False

    def start(self):
        self._frames = []
        self._start_ns = time.monotonic_ns()
        self._recording = True

    def stop(self) -> int:
        """Stop recording. Returns number of frames captured."""
        self._recording = False
        return len(self._frames)

    @property
    def is_recording(self) -> bool:
        return self._recording

    @property
    def frame_count(self) -> int:
        return len(self._frames)

    @property
    def duration_ms(self) -> int:
        if not self._frames:
            return 0
        return self._frames[-1].timestamp_ms

    def add_frame(self, hand: Optional[np.ndarray], timestamp_ms: Optional[int] = None):
        """Append a frame. Ignored unless recording.

        Args:
            hand: Landmarks of shape (21, 3), or None when no hand was seen.
            timestamp_ms: Offset from start; taken from the clock if omitted.
        """
        if not self._recording:
            return

        if timestamp_ms is None:
            timestamp_ms = (time.monotonic_ns() - self._start_ns) // 1_000_000

        self._frames.append(RecordedFrame(
            timestamp_ms=int(timestamp_ms),
            hand=np.asarray(hand, dtype=np.float32).tolist() if hand is not None else None,
        ))

    def save(self, path: str | Path):
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "version": FORMAT_VERSION,
            "frame_count": len(self._frames),
            "duration_ms": self.duration_ms,
            "frames": [asdict(f) for f in self._frames],
        }

        with open(path, "w") as f:
            json.dump(data, f)


class SessionPlayer:
    """Replays a recorded session.

    Usage:
        player = SessionPlayer.load("session.json")
        engine = Engine(instrument, config, clock=player.clock)
        for hand in player.play():
            engine.process_frame(hand)
    """

    def __init__(self, frames: list[RecordedFrame]):
        self._frames = frames
        self.clock = ManualClock()

    @classmethod
    def load(cls, path: str | Path) -> SessionPlayer:
        with open(path) as f:
            data = json.load(f)

        version = data.get("version", FORMAT_VERSION)
        if version != FORMAT_VERSION:
            raise ValueError(f"unsupported recording version {version} in {path}")

        frames = [
            RecordedFrame(timestamp_ms=int(f["timestamp_ms"]), hand=f.get("hand"))
            for f in data["frames"]
        ]
        return cls(frames)

    @property
    def frame_count(self) -> int:
        return len(self._frames)

    @property
    def duration_ms(self) -> int:
        if not self._frames:
            return 0
        return self._frames[-1].timestamp_ms

    def play(self) -> Iterator[Optional[np.ndarray]]:
        """Yield each frame's landmarks, advancing `clock` to its timestamp."""
        for frame in self._frames:
            self.clock.set(frame.timestamp_ms)
            yield np.array(frame.hand, dtype=np.float32) if frame.hand is not None else None

    def play_realtime(self, speed: float = 1.0) -> Iterator[Optional[np.ndarray]]:
        """Like `play`, but sleeps to match the original pacing.

        Args:
            speed: Playback speed multiplier (2.0 = double speed).
        """
        start = time.monotonic()

        for frame, hand in zip(self._frames, self.play()):
            target = frame.timestamp_ms / 1000.0 / speed
            elapsed = time.monotonic() - start
            if target > elapsed:
                time.sleep(target - elapsed)
            yield hand
