"""Scale, chord table and note/duration conversions."""

from __future__ import annotations

import re

SCALE: tuple[str, ...] = ("C4", "D4", "E4", "F4", "G4", "A4", "B4", "C5")

CHORDS: dict[str, tuple[str, ...]] = {
    "C": ("C4", "E4", "G4"),
    "F": ("F4", "A4", "C5"),
    "G": ("G4", "B4", "D5"),
}
FALLBACK_CHORD_ROOT = "C"

DEFAULT_DURATION = "8n"
DEFAULT_BPM = 120.0

_NOTE_RE = re.compile(r"^([A-Ga-g])([#b]?)(-?\d+)$")
_SEMITONES = {"C": 0, "D": 2, "E": 4, "F": 5, "G": 7, "A": 9, "B": 11}
_DURATION_RE = re.compile(r"^(\d+)n(\.?)$")


def root_letter(note: str) -> str:
    return note[0].upper()


def chord_for(note: str, chords: dict[str, tuple[str, ...]] = CHORDS) -> tuple[str, ...]:
    """Triad keyed by the note's root letter, falling back to the C triad."""
    return chords.get(root_letter(note), chords[FALLBACK_CHORD_ROOT])


def note_to_midi(note: str) -> int:
    """Scientific pitch name to MIDI number ("A4" -> 69, "C4" -> 60)."""
    m = _NOTE_RE.match(note)
    if not m:
        raise ValueError(f"not a note name: {note!r}")
    letter, accidental, octave = m.groups()
    semitone = _SEMITONES[letter.upper()]
    if accidental == "#":
        semitone += 1
    elif accidental == "b":
        semitone -= 1
    return 12 * (int(octave) + 1) + semitone


def note_to_frequency(note: str, a4: float = 440.0) -> float:
    return a4 * 2 ** ((note_to_midi(note) - 69) / 12)


def duration_seconds(duration: str | float, bpm: float = DEFAULT_BPM) -> float:
    """Convert a note-value hint ("4n", "8n", "8n.") to seconds.

    Plain numbers are taken as seconds already.
    """
    if isinstance(duration, (int, float)):
        return float(duration)

    m = _DURATION_RE.match(duration.strip())
    if not m:
        raise ValueError(f"unsupported duration: {duration!r}")
    division, dotted = int(m.group(1)), m.group(2)
    if division <= 0:
        raise ValueError(f"unsupported duration: {duration!r}")

    # One whole note is four beats
    seconds = (60.0 / bpm) * 4.0 / division
    if dotted:
        seconds *= 1.5
    return seconds
