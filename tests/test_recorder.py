"""Tests for session recording and replay."""

import json

import numpy as np
import pytest

from hand_music.config import EngineConfig
from hand_music.engine import Engine
from hand_music.instruments import RecordingInstrument
from hand_music.recorder import FORMAT_VERSION, SessionPlayer, SessionRecorder


def make_hand(palm_y=0.5):
    """Open hand with the index finger raised."""
    lm = np.full((21, 3), 0.5, dtype=np.float32)
    lm[:, 2] = 0.0
    lm[:, 1] = palm_y
    lm[7, 1] = palm_y - 0.1
    lm[8, 1] = palm_y - 0.2
    return lm


def record_session(path, frames):
    """frames: list of (timestamp_ms, hand or None)."""
    rec = SessionRecorder()
    rec.start()
    for ts, hand in frames:
        rec.add_frame(hand, timestamp_ms=ts)
    rec.stop()
    rec.save(path)
    return rec


class TestRecorder:
    def test_record_and_count(self):
        rec = SessionRecorder()
        rec.start()
        for _ in range(10):
            rec.add_frame(make_hand())
        assert rec.is_recording
        assert rec.stop() == 10
        assert not rec.is_recording

    def test_not_recording_ignores_frames(self):
        rec = SessionRecorder()
        rec.add_frame(make_hand())
        assert rec.frame_count == 0

    def test_timestamps_from_clock(self):
        rec = SessionRecorder()
        rec.start()
        rec.add_frame(make_hand())
        rec.add_frame(make_hand())
        assert rec.duration_ms >= 0

    def test_save_format(self, tmp_path):
        path = tmp_path / "session.json"
        record_session(path, [(0, make_hand()), (33, None), (66, make_hand())])

        data = json.loads(path.read_text())
        assert data["version"] == FORMAT_VERSION
        assert data["frame_count"] == 3
        assert data["duration_ms"] == 66
        assert data["frames"][1]["hand"] is None
        assert len(data["frames"][0]["hand"]) == 21

    def test_save_creates_parent_dirs(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "session.json"
        record_session(path, [(0, make_hand())])
        assert path.exists()


class TestPlayer:
    def test_load_and_play(self, tmp_path):
        path = tmp_path / "session.json"
        record_session(path, [(0, make_hand()), (33, None)])

        player = SessionPlayer.load(path)
        assert player.frame_count == 2
        assert player.duration_ms == 33

        frames = list(player.play())
        assert isinstance(frames[0], np.ndarray)
        assert frames[0].shape == (21, 3)
        assert frames[1] is None

    def test_play_drives_clock(self, tmp_path):
        path = tmp_path / "session.json"
        record_session(path, [(0, make_hand()), (40, make_hand()), (90, make_hand())])

        player = SessionPlayer.load(path)
        seen = [player.clock.current_time_millis() for _ in player.play()]
        assert seen == [0, 40, 90]

    def test_unsupported_version(self, tmp_path):
        path = tmp_path / "session.json"
        path.write_text(json.dumps({"version": 99, "frames": []}))
        with pytest.raises(ValueError, match="version"):
            SessionPlayer.load(path)

    def test_empty_session(self):
        player = SessionPlayer([])
        assert player.duration_ms == 0
        assert list(player.play()) == []

    def test_realtime_fast(self, tmp_path):
        path = tmp_path / "session.json"
        record_session(path, [(0, make_hand()), (10, make_hand())])
        player = SessionPlayer.load(path)
        assert len(list(player.play_realtime(speed=100.0))) == 2


class TestDeterministicReplay:
    def replay(self, path):
        player = SessionPlayer.load(path)
        instrument = RecordingInstrument()
        engine = Engine(instrument, EngineConfig(), clock=player.clock)
        commands = [engine.process_frame(hand) for hand in player.play()]
        return [c for c in commands if c is not None], instrument

    def test_replay_respects_recorded_timing(self, tmp_path):
        path = tmp_path / "session.json"
        record_session(path, [
            (0, make_hand(0.9)),
            (100, make_hand(0.1)),  # inside the window
            (200, make_hand(0.1)),
            (250, None),
            (400, make_hand(0.5)),
        ])

        commands, instrument = self.replay(path)
        assert [c.timestamp_ms for c in commands] == [0, 200, 400]
        assert len(instrument.triggers) == 3

    def test_two_replays_identical(self, tmp_path):
        path = tmp_path / "session.json"
        record_session(path, [(i * 33, make_hand(0.1 + 0.02 * i)) for i in range(40)])

        first, _ = self.replay(path)
        second, _ = self.replay(path)
        assert first == second
