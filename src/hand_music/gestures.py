"""Gesture recognition — thumb, finger count and spread from landmark geometry."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from hand_music.fingers import finger_states
from hand_music.landmarks import INDEX_MCP, INDEX_TIP, PINKY_TIP, THUMB_TIP

# Normalized-x distance between index and pinky tips; calibrated empirically
SPREAD_THRESHOLD = 0.3


@dataclass(frozen=True)
class GestureDescriptor:
    """Hand shape for one frame. Recomputed every frame, no history."""
    thumb_raised: bool
    extended_count: int  # 0..4, thumb excluded
    spread: bool

    @property
    def is_chord_shape(self) -> bool:
        """Thumb up with at least three fingers raised."""
        return self.thumb_raised and self.extended_count >= 3


class GestureRecognizer:
    """Derives a GestureDescriptor from landmarks and finger states.

    The thresholds depend on hand size and camera distance, so results near
    the boundaries are approximate.
    """

    def __init__(self, spread_threshold: float = SPREAD_THRESHOLD):
        self.spread_threshold = spread_threshold

    def recognize(
        self,
        landmarks: np.ndarray,
        states: Optional[Sequence[bool]] = None,
    ) -> GestureDescriptor:
        """Recognize the gesture for one frame.

        Args:
            landmarks: Raw hand landmarks, shape (21, 3).
            states: Finger states from `finger_states`; computed if omitted.
        """
        if states is None:
            states = finger_states(landmarks)

        thumb_raised = bool(landmarks[THUMB_TIP, 1] < landmarks[INDEX_MCP, 1])
        spread_distance = abs(float(landmarks[INDEX_TIP, 0]) - float(landmarks[PINKY_TIP, 0]))

        return GestureDescriptor(
            thumb_raised=thumb_raised,
            extended_count=sum(1 for s in states if s),
            spread=spread_distance > self.spread_threshold,
        )


def recognize_gesture(
    landmarks: np.ndarray, spread_threshold: float = SPREAD_THRESHOLD
) -> GestureDescriptor:
    """Classify fingers and recognize the gesture in one call."""
    return GestureRecognizer(spread_threshold).recognize(landmarks)
