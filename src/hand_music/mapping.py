"""Hand position to pitch and depth to volume.

Height is quantized into scale steps, so crossing a bucket boundary jumps a
whole note: a keyboard in the air rather than a continuous theremin.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

import numpy as np

from hand_music.landmarks import FINGER_TIPS, PALM_CENTER
from hand_music.music import SCALE

MIN_VOLUME = 0.3
MAX_VOLUME = 1.0


class HeightSource(Enum):
    """Which landmarks drive pitch."""
    PALM_CENTER = "palm_center"
    FINGERTIP_MEAN = "fingertip_mean"


class VolumeSource(Enum):
    """DEPTH follows palm z; FIXED plays every command at one level."""
    DEPTH = "depth"
    FIXED = "fixed"


@dataclass(frozen=True)
class MappedPitch:
    note: str
    index: int
    height: float
    volume: float


def height_signal(landmarks: np.ndarray, source: HeightSource = HeightSource.PALM_CENTER) -> float:
    """Inverted y in [0, 1] for in-frame hands; higher hand, larger value."""
    if source is HeightSource.FINGERTIP_MEAN:
        return float(np.mean([1.0 - landmarks[tip, 1] for tip in FINGER_TIPS]))
    return 1.0 - float(landmarks[PALM_CENTER, 1])


def quantize(height: float, scale_length: int) -> int:
    """Bucket a height into a scale index, clamped to [0, scale_length - 1]."""
    if not math.isfinite(height):
        return 0
    index = math.floor(height * scale_length)
    return max(0, min(index, scale_length - 1))


def map_volume(z: float) -> float:
    """Depth to volume: closer (negative z) is louder, clamped to [0.3, 1.0]."""
    if not math.isfinite(z):
        return MIN_VOLUME
    return max(MIN_VOLUME, min(MAX_VOLUME, 1.0 - z))


class PitchMapper:
    """Maps one landmark set to a scale note and a playback volume."""

    def __init__(
        self,
        scale: Sequence[str] = SCALE,
        height_source: HeightSource = HeightSource.PALM_CENTER,
        volume_source: VolumeSource = VolumeSource.DEPTH,
        fixed_volume: float = MAX_VOLUME,
    ):
        if not scale:
            raise ValueError("scale must contain at least one note")
        self.scale = tuple(scale)
        self.height_source = height_source
        self.volume_source = volume_source
        self.fixed_volume = fixed_volume

    def note_for(self, landmarks: np.ndarray) -> str:
        return self.map(landmarks).note

    def volume_for(self, landmarks: np.ndarray) -> float:
        if self.volume_source is VolumeSource.FIXED:
            return self.fixed_volume
        return map_volume(float(landmarks[PALM_CENTER, 2]))

    def map(self, landmarks: np.ndarray) -> MappedPitch:
        height = height_signal(landmarks, self.height_source)
        index = quantize(height, len(self.scale))
        return MappedPitch(
            note=self.scale[index],
            index=index,
            height=height,
            volume=self.volume_for(landmarks),
        )
