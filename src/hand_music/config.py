"""Session configuration, loaded from YAML and constant for a session."""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

from hand_music.gate import DEFAULT_DEBOUNCE_MS, DebouncePolicy
from hand_music.gestures import SPREAD_THRESHOLD
from hand_music.instruments import InstrumentKind
from hand_music.mapping import MAX_VOLUME, MIN_VOLUME, HeightSource, VolumeSource
from hand_music.music import DEFAULT_BPM, DEFAULT_DURATION, duration_seconds

DEFAULT_DETECTION_CONFIDENCE = 0.7
DEFAULT_TRACKING_CONFIDENCE = 0.7
DEFAULT_SAMPLE_RATE = 44100

CONFIG_ENV_VAR = "HAND_MUSIC_CONFIG"


class ConfigError(ValueError):
    """Raised for invalid or unknown configuration values."""


class Mode(Enum):
    SINGLE = "single"  # single notes only
    CHORD = "chord"    # thumb + 3 fingers plays a triad


_ENUM_FIELDS: dict[str, type[Enum]] = {
    "instrument": InstrumentKind,
    "mode": Mode,
    "debounce_policy": DebouncePolicy,
    "height_source": HeightSource,
    "volume_source": VolumeSource,
}


@dataclass
class EngineConfig:
    instrument: InstrumentKind = InstrumentKind.PIANO
    mode: Mode = Mode.CHORD
    debounce_ms: int = DEFAULT_DEBOUNCE_MS
    debounce_policy: DebouncePolicy = DebouncePolicy.TIME_WINDOW_ONLY
    height_source: HeightSource = HeightSource.PALM_CENTER
    volume_source: VolumeSource = VolumeSource.DEPTH
    fixed_volume: float = MAX_VOLUME
    spread_threshold: float = SPREAD_THRESHOLD
    duration: str = DEFAULT_DURATION
    bpm: float = DEFAULT_BPM
    min_detection_confidence: float = DEFAULT_DETECTION_CONFIDENCE
    min_tracking_confidence: float = DEFAULT_TRACKING_CONFIDENCE
    samples_dir: str = "samples"
    sample_rate: int = DEFAULT_SAMPLE_RATE

    def __post_init__(self):
        for name, enum_cls in _ENUM_FIELDS.items():
            value = getattr(self, name)
            if not isinstance(value, enum_cls):
                try:
                    setattr(self, name, enum_cls(value))
                except ValueError:
                    choices = ", ".join(e.value for e in enum_cls)
                    raise ConfigError(f"{name}: {value!r} is not one of {choices}") from None
        self.validate()

    def validate(self):
        """Check value ranges. Raises ConfigError on the first bad field."""
        if self.debounce_ms < 0:
            raise ConfigError(f"debounce_ms must be >= 0, got {self.debounce_ms}")
        if not MIN_VOLUME <= self.fixed_volume <= MAX_VOLUME:
            raise ConfigError(
                f"fixed_volume must be in [{MIN_VOLUME}, {MAX_VOLUME}], got {self.fixed_volume}"
            )
        if self.spread_threshold <= 0:
            raise ConfigError(f"spread_threshold must be > 0, got {self.spread_threshold}")
        if self.bpm <= 0:
            raise ConfigError(f"bpm must be > 0, got {self.bpm}")
        if self.sample_rate <= 0:
            raise ConfigError(f"sample_rate must be > 0, got {self.sample_rate}")
        for name in ("min_detection_confidence", "min_tracking_confidence"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ConfigError(f"{name} must be in [0, 1], got {value}")
        try:
            duration_seconds(self.duration, self.bpm)
        except ValueError as e:
            raise ConfigError(str(e)) from None

    @property
    def chords_enabled(self) -> bool:
        return self.mode is Mode.CHORD

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        for name in _ENUM_FIELDS:
            data[name] = data[name].value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EngineConfig:
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"unknown config keys: {', '.join(unknown)}")
        return cls(**data)

    @classmethod
    def from_yaml(cls, path: str | Path) -> EngineConfig:
        """Load a config file. Missing keys keep their defaults."""
        with open(path) as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"{path}: {e}") from None
        if not isinstance(data, dict):
            raise ConfigError(f"{path}: expected a mapping at top level")
        return cls.from_dict(data)

    def to_yaml(self, path: str | Path):
        with open(path, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)
