"""Finger extension state from a single frame of landmarks."""

from __future__ import annotations

import numpy as np

from hand_music.landmarks import FINGER_MIDS, FINGER_TIPS

FINGER_NAMES = ("index", "middle", "ring", "pinky")


def finger_states(landmarks: np.ndarray) -> tuple[bool, bool, bool, bool]:
    """Return extension state of index, middle, ring and pinky.

    A finger is extended when its tip sits above its middle joint on screen
    (smaller y, since image y grows downward). Purely per-frame: no smoothing,
    no hysteresis. Occluded or degenerate points are not filtered out.

    Args:
        landmarks: Raw hand landmarks, shape (21, 3).
    """
    return tuple(
        bool(landmarks[tip, 1] < landmarks[mid, 1])
        for tip, mid in zip(FINGER_TIPS, FINGER_MIDS)
    )  # type: ignore[return-value]


def extended_fingers(landmarks: np.ndarray) -> list[str]:
    """Names of the extended fingers, for logging and display."""
    return [name for name, up in zip(FINGER_NAMES, finger_states(landmarks)) if up]
