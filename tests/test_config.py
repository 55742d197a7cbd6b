"""Tests for session configuration."""

import pytest

from hand_music.config import ConfigError, EngineConfig, Mode
from hand_music.gate import DebouncePolicy
from hand_music.instruments import InstrumentKind
from hand_music.mapping import HeightSource, VolumeSource


class TestDefaults:
    def test_defaults(self):
        config = EngineConfig()
        assert config.instrument is InstrumentKind.PIANO
        assert config.mode is Mode.CHORD
        assert config.debounce_ms == 150
        assert config.debounce_policy is DebouncePolicy.TIME_WINDOW_ONLY
        assert config.height_source is HeightSource.PALM_CENTER
        assert config.volume_source is VolumeSource.DEPTH
        assert config.duration == "8n"
        assert config.chords_enabled

    def test_single_mode_disables_chords(self):
        assert not EngineConfig(mode=Mode.SINGLE).chords_enabled


class TestValidation:
    def test_enum_from_string(self):
        config = EngineConfig(instrument="synth", debounce_policy="repeat_suppression")
        assert config.instrument is InstrumentKind.SYNTH
        assert config.debounce_policy is DebouncePolicy.REPEAT_SUPPRESSION

    def test_bad_enum(self):
        with pytest.raises(ConfigError, match="instrument"):
            EngineConfig(instrument="kazoo")

    @pytest.mark.parametrize("field,value", [
        ("debounce_ms", -1),
        ("fixed_volume", 0.1),
        ("fixed_volume", 1.5),
        ("spread_threshold", 0.0),
        ("bpm", 0),
        ("sample_rate", 0),
        ("min_detection_confidence", 1.2),
        ("duration", "whole"),
    ])
    def test_out_of_range(self, field, value):
        with pytest.raises(ConfigError):
            EngineConfig(**{field: value})

    def test_config_error_is_value_error(self):
        assert issubclass(ConfigError, ValueError)

    def test_unknown_key(self):
        with pytest.raises(ConfigError, match="tempo"):
            EngineConfig.from_dict({"tempo": 90})


class TestYaml:
    def test_roundtrip(self, tmp_path):
        path = tmp_path / "config.yml"
        config = EngineConfig(instrument=InstrumentKind.MARIMBA, debounce_ms=200, mode=Mode.SINGLE)
        config.to_yaml(path)

        loaded = EngineConfig.from_yaml(path)
        assert loaded == config

    def test_file_is_plain_values(self, tmp_path):
        path = tmp_path / "config.yml"
        EngineConfig().to_yaml(path)
        text = path.read_text()
        assert "instrument: piano" in text
        assert "!!python" not in text

    def test_partial_file_keeps_defaults(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("debounce_ms: 300\nvolume_source: fixed\n")
        config = EngineConfig.from_yaml(path)
        assert config.debounce_ms == 300
        assert config.volume_source is VolumeSource.FIXED
        assert config.instrument is InstrumentKind.PIANO

    def test_empty_file(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("")
        assert EngineConfig.from_yaml(path) == EngineConfig()

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("- piano\n- synth\n")
        with pytest.raises(ConfigError):
            EngineConfig.from_yaml(path)

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("instrument: [piano\n")
        with pytest.raises(ConfigError, match="config.yml"):
            EngineConfig.from_yaml(path)
