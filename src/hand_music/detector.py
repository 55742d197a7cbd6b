"""Single-hand landmark source using MediaPipe Hands."""

from typing import Optional

import numpy as np

from hand_music.config import DEFAULT_DETECTION_CONFIDENCE, DEFAULT_TRACKING_CONFIDENCE

try:
    import mediapipe as mp
except ImportError:
    mp = None


class HandDetector:
    """Extracts the 21 3D landmarks of one hand per frame.

    Landmarks are raw MediaPipe output: x, y normalized to [0, 1] of the
    image, z relative depth (negative is closer to the camera). No
    wrist-centering, since pitch and volume depend on absolute position.
    """

    def __init__(
        self,
        min_detection_confidence: float = DEFAULT_DETECTION_CONFIDENCE,
        min_tracking_confidence: float = DEFAULT_TRACKING_CONFIDENCE,
        model_complexity: int = 1,
        static_image_mode: bool = False,
    ):
        if mp is None:
            raise ImportError(
                "mediapipe is required. Install with: pip install mediapipe"
            )

        self._hands = mp.solutions.hands.Hands(
            static_image_mode=static_image_mode,
            max_num_hands=1,
            model_complexity=model_complexity,
            min_detection_confidence=min_detection_confidence,
            min_tracking_confidence=min_tracking_confidence,
        )

    def detect(self, frame_rgb: np.ndarray) -> Optional[np.ndarray]:
        """Detect the hand in an RGB frame.

        Args:
            frame_rgb: RGB image as numpy array (H, W, 3), uint8.

        Returns:
            Landmark array of shape (21, 3), or None if no hand is visible.
        """
        results = self._hands.process(frame_rgb)

        if not results.multi_hand_landmarks:
            return None

        hand_landmarks = results.multi_hand_landmarks[0]
        return np.array(
            [[lm.x, lm.y, lm.z] for lm in hand_landmarks.landmark],
            dtype=np.float32,
        )

    def close(self):
        """Release MediaPipe resources."""
        self._hands.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
