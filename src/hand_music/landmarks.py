"""Hand landmark layout and conversion to numpy arrays."""

from __future__ import annotations

from typing import Any, Optional

import numpy as np

# MediaPipe hand landmark indices
WRIST = 0
THUMB_CMC, THUMB_MCP, THUMB_IP, THUMB_TIP = 1, 2, 3, 4
INDEX_MCP, INDEX_PIP, INDEX_DIP, INDEX_TIP = 5, 6, 7, 8
MIDDLE_MCP, MIDDLE_PIP, MIDDLE_DIP, MIDDLE_TIP = 9, 10, 11, 12
RING_MCP, RING_PIP, RING_DIP, RING_TIP = 13, 14, 15, 16
PINKY_MCP, PINKY_PIP, PINKY_DIP, PINKY_TIP = 17, 18, 19, 20

# Middle-finger base knuckle; stable reference away from fingertip jitter
PALM_CENTER = MIDDLE_MCP

# Index, middle, ring, pinky
FINGER_TIPS = (INDEX_TIP, MIDDLE_TIP, RING_TIP, PINKY_TIP)
FINGER_MIDS = (INDEX_DIP, MIDDLE_DIP, RING_DIP, PINKY_DIP)

NUM_LANDMARKS = 21
LANDMARK_DIM = 3  # x, y, z


def as_landmarks(hand: Any) -> Optional[np.ndarray]:
    """Convert one hand observation to a (21, 3) float array.

    Accepts a numpy array, a sequence of (x, y, z) triples, or a sequence of
    objects exposing ``x``/``y``/``z`` attributes (MediaPipe landmarks, or a
    ``NormalizedLandmarkList`` via its ``landmark`` field).

    Returns None for an empty observation (no hand in the frame).

    Raises:
        ValueError: if the observation does not hold 21 points.
    """
    if hand is None:
        return None

    if hasattr(hand, "landmark"):
        hand = hand.landmark

    # float32 like MediaPipe itself; input within ~1e-7 of a pitch bucket
    # edge may quantize as if rounded to float32
    if isinstance(hand, np.ndarray):
        if hand.size == 0:
            return None
        arr = hand.astype(np.float32, copy=False)
    else:
        points = list(hand)
        if not points:
            return None
        if hasattr(points[0], "x"):
            arr = np.array([[p.x, p.y, p.z] for p in points], dtype=np.float32)
        else:
            arr = np.array(points, dtype=np.float32)

    if arr.shape != (NUM_LANDMARKS, LANDMARK_DIM):
        raise ValueError(
            f"expected landmarks of shape ({NUM_LANDMARKS}, {LANDMARK_DIM}), got {arr.shape}"
        )
    return arr
