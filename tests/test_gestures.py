"""Tests for gesture recognition."""

import numpy as np
import pytest

from hand_music.gestures import (
    SPREAD_THRESHOLD,
    GestureDescriptor,
    GestureRecognizer,
    recognize_gesture,
)


def make_hand(extended=4, thumb_up=False, spread=False):
    """Hand with `extended` fingers raised (index first)."""
    lm = np.full((21, 3), 0.5, dtype=np.float32)
    lm[:, 2] = 0.0
    for i, (tip, mid) in enumerate(zip([8, 12, 16, 20], [7, 11, 15, 19])):
        lm[mid, 1] = 0.4
        lm[tip, 1] = 0.3 if i < extended else 0.5
    lm[5, 1] = 0.45  # index base knuckle
    lm[4, 1] = 0.35 if thumb_up else 0.55
    lm[8, 0], lm[20, 0] = (0.3, 0.7) if spread else (0.45, 0.55)
    return lm


class TestGestureRecognizer:
    def test_counts_extended(self):
        for n in range(5):
            assert recognize_gesture(make_hand(extended=n)).extended_count == n

    def test_thumb_raised(self):
        assert recognize_gesture(make_hand(thumb_up=True)).thumb_raised
        assert not recognize_gesture(make_hand(thumb_up=False)).thumb_raised

    def test_spread(self):
        assert recognize_gesture(make_hand(spread=True)).spread
        assert not recognize_gesture(make_hand(spread=False)).spread

    def test_spread_uses_absolute_distance(self):
        lm = make_hand()
        lm[8, 0], lm[20, 0] = 0.9, 0.9 - (SPREAD_THRESHOLD + 0.1)
        assert recognize_gesture(lm).spread

    def test_below_threshold_not_spread(self):
        lm = make_hand()
        lm[8, 0], lm[20, 0] = 0.3, 0.5
        assert not recognize_gesture(lm).spread

    def test_custom_threshold(self):
        lm = make_hand(spread=False)  # 0.1 apart
        assert GestureRecognizer(spread_threshold=0.05).recognize(lm).spread

    def test_uses_given_finger_states(self):
        lm = make_hand(extended=0)
        gesture = GestureRecognizer().recognize(lm, [True, True, False, False])
        assert gesture.extended_count == 2

    def test_descriptor_is_frozen(self):
        gesture = recognize_gesture(make_hand())
        with pytest.raises(AttributeError):
            gesture.extended_count = 0  # type: ignore[misc]


class TestChordShape:
    def test_thumb_and_three(self):
        assert GestureDescriptor(True, 3, False).is_chord_shape

    def test_thumb_and_four(self):
        assert GestureDescriptor(True, 4, True).is_chord_shape

    def test_thumb_and_two(self):
        assert not GestureDescriptor(True, 2, False).is_chord_shape

    def test_no_thumb(self):
        assert not GestureDescriptor(False, 4, False).is_chord_shape
