"""Tests for the command line interface (no camera or audio)."""

import json

import numpy as np
import yaml
from typer.testing import CliRunner

from hand_music.cli import app
from hand_music.recorder import SessionRecorder

runner = CliRunner()


def write_recording(path):
    lm = np.full((21, 3), 0.5, dtype=np.float32)
    lm[:, 2] = 0.0
    lm[7, 1] = 0.4
    lm[8, 1] = 0.3
    rec = SessionRecorder()
    rec.start()
    rec.add_frame(lm, timestamp_ms=0)
    rec.add_frame(lm, timestamp_ms=50)
    rec.add_frame(None, timestamp_ms=100)
    rec.add_frame(lm, timestamp_ms=300)
    rec.stop()
    rec.save(path)


class TestInitConfig:
    def test_writes_defaults(self, tmp_path):
        path = tmp_path / "hand_music.yml"
        result = runner.invoke(app, ["init-config", "-o", str(path)])
        assert result.exit_code == 0
        data = yaml.safe_load(path.read_text())
        assert data["instrument"] == "piano"
        assert data["debounce_ms"] == 150

    def test_refuses_overwrite(self, tmp_path):
        path = tmp_path / "hand_music.yml"
        path.write_text("mode: single\n")
        result = runner.invoke(app, ["init-config", "-o", str(path)])
        assert result.exit_code == 1
        assert path.read_text() == "mode: single\n"

    def test_force(self, tmp_path):
        path = tmp_path / "hand_music.yml"
        path.write_text("mode: single\n")
        result = runner.invoke(app, ["init-config", "-o", str(path), "--force"])
        assert result.exit_code == 0
        assert "piano" in path.read_text()


class TestInstruments:
    def test_lists_all(self):
        result = runner.invoke(app, ["instruments"])
        assert result.exit_code == 0
        for name in ("piano", "synth", "marimba"):
            assert name in result.output


class TestReplay:
    def test_dry_run_json(self, tmp_path):
        path = tmp_path / "session.json"
        write_recording(path)

        result = runner.invoke(app, ["replay", str(path), "--dry-run", "--json"])
        assert result.exit_code == 0
        lines = [json.loads(line) for line in result.output.strip().splitlines()]
        assert [c["timestamp_ms"] for c in lines] == [0, 300]
        assert lines[0]["kind"] == "note"

    def test_dry_run_summary(self, tmp_path):
        path = tmp_path / "session.json"
        write_recording(path)

        result = runner.invoke(app, ["replay", str(path), "--dry-run"])
        assert result.exit_code == 0
        assert "2 commands" in result.output

    def test_policy_override(self, tmp_path):
        path = tmp_path / "session.json"
        write_recording(path)

        result = runner.invoke(
            app, ["replay", str(path), "--dry-run", "--json", "--policy", "repeat_suppression"]
        )
        assert result.exit_code == 0
        # Dropout at 100 ms re-arms the same note
        assert len(result.output.strip().splitlines()) == 2

    def test_missing_recording(self, tmp_path):
        result = runner.invoke(app, ["replay", str(tmp_path / "nope.json"), "--dry-run"])
        assert result.exit_code == 1

    def test_bad_config(self, tmp_path):
        path = tmp_path / "session.json"
        write_recording(path)
        config = tmp_path / "bad.yml"
        config.write_text("instrument: kazoo\n")

        result = runner.invoke(app, ["replay", str(path), "--dry-run", "--config", str(config)])
        assert result.exit_code == 1

    def test_config_from_env(self, tmp_path, monkeypatch):
        path = tmp_path / "session.json"
        write_recording(path)
        config = tmp_path / "bad.yml"
        config.write_text("debounce_ms: -5\n")
        monkeypatch.setenv("HAND_MUSIC_CONFIG", str(config))

        result = runner.invoke(app, ["replay", str(path), "--dry-run"])
        assert result.exit_code == 1

    def test_broken_yaml_config(self, tmp_path):
        path = tmp_path / "session.json"
        write_recording(path)
        config = tmp_path / "broken.yml"
        config.write_text("instrument: [piano\n")

        result = runner.invoke(app, ["replay", str(path), "--dry-run", "--config", str(config)])
        assert result.exit_code == 1
        assert "Invalid configuration" in result.output

    def test_missing_samples_points_to_fetch(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        write_recording(tmp_path / "session.json")

        result = runner.invoke(app, ["replay", "session.json"])
        assert result.exit_code == 1
        assert "Could not load instrument piano" in result.output
        assert "hand-music fetch-samples" in result.output
