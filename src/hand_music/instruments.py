"""Instrument backends — turn playback commands into sound.

The engine only sees the `Instrument` interface:

    instrument.trigger(["C4", "E4", "G4"], "8n", 0.8)

Buffered instruments render each trigger to a numpy buffer and hand it to a
shared `VoiceMixer`, which sums overlapping voices inside a sounddevice
output stream. Triggers return immediately; the engine never waits on
playback.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Sequence

import numpy as np

from hand_music.music import DEFAULT_BPM, duration_seconds, note_to_frequency, note_to_midi

try:
    import sounddevice as sd
except (ImportError, OSError):  # OSError: PortAudio library missing
    sd = None

try:
    import soundfile as sf
except (ImportError, OSError):
    sf = None

logger = logging.getLogger("hand_music.instruments")

# Per-voice gain so a triad stays below full scale
VOICE_GAIN = 0.3


class InstrumentKind(Enum):
    PIANO = "piano"
    SYNTH = "synth"
    MARIMBA = "marimba"


@dataclass(frozen=True)
class SampleLibrary:
    """A set of pitched recordings an instrument is built from."""
    name: str
    base_url: str
    urls: dict[str, str]  # note -> file name


SAMPLE_LIBRARIES: dict[InstrumentKind, SampleLibrary] = {
    InstrumentKind.PIANO: SampleLibrary(
        name="salamander",
        base_url="https://tonejs.github.io/audio/salamander/",
        urls={"C4": "C4.mp3", "D#4": "Ds4.mp3", "F#4": "Fs4.mp3", "A4": "A4.mp3"},
    ),
    InstrumentKind.MARIMBA: SampleLibrary(
        name="marimba",
        base_url="https://tonejs.github.io/audio/marimba/",
        urls={"C4": "C4.mp3"},
    ),
}


class Instrument(ABC):
    """Audio backend capability: trigger attack + release of some pitches."""

    name: str = "instrument"

    @abstractmethod
    def trigger(self, pitches: Sequence[str], duration: str | float, volume: float):
        """Start the given pitches and release them after `duration`."""

    def close(self):
        """Release audio resources."""

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


@dataclass
class Trigger:
    pitches: tuple[str, ...]
    duration: str | float
    volume: float


class RecordingInstrument(Instrument):
    """Keeps every trigger in memory instead of playing it."""

    name = "recording"

    def __init__(self):
        self.triggers: list[Trigger] = []

    def trigger(self, pitches: Sequence[str], duration: str | float, volume: float):
        self.triggers.append(Trigger(tuple(pitches), duration, volume))

    def clear(self):
        self.triggers.clear()


class LoggingInstrument(Instrument):
    """Logs triggers. Handy for headless replays."""

    name = "logging"

    def trigger(self, pitches: Sequence[str], duration: str | float, volume: float):
        logger.info("trigger %s dur=%s vol=%.2f", " ".join(pitches), duration, volume)


# -------------------------------------------------------------------------------
# Mixing and rendering
# -------------------------------------------------------------------------------


@dataclass
class _Voice:
    buffer: np.ndarray
    position: int = 0


class VoiceMixer:
    """Sums active voices into a mono sounddevice output stream.

    `play` is called from the frame loop; `mix` runs on the audio callback
    thread. Both touch the voice list under a lock.
    """

    def __init__(self, sample_rate: int = 44100, blocksize: int = 512):
        self.sample_rate = sample_rate
        self.blocksize = blocksize
        self._voices: list[_Voice] = []
        self._lock = threading.Lock()
        self._stream = None

    def start(self):
        if self._stream is not None:
            return
        if sd is None:
            raise ImportError(
                "sounddevice is required for audio output. Install with: pip install sounddevice"
            )
        self._stream = sd.OutputStream(
            samplerate=self.sample_rate,
            blocksize=self.blocksize,
            channels=1,
            dtype="float32",
            callback=self._callback,
        )
        self._stream.start()
        logger.debug("Audio stream started at %d Hz", self.sample_rate)

    def play(self, buffer: np.ndarray):
        """Queue a rendered voice. Starts the stream on first use."""
        if self._stream is None:
            self.start()
        self.queue(buffer)

    def queue(self, buffer: np.ndarray):
        """Add a voice to the mix without touching the stream."""
        with self._lock:
            self._voices.append(_Voice(buffer.astype(np.float32, copy=False)))

    def mix(self, frames: int) -> np.ndarray:
        """Render the next `frames` samples and drop finished voices."""
        out = np.zeros(frames, dtype=np.float32)
        with self._lock:
            alive = []
            for voice in self._voices:
                chunk = voice.buffer[voice.position:voice.position + frames]
                out[:len(chunk)] += chunk
                voice.position += len(chunk)
                if voice.position < len(voice.buffer):
                    alive.append(voice)
            self._voices = alive
        np.clip(out, -1.0, 1.0, out=out)
        return out

    @property
    def active_voices(self) -> int:
        with self._lock:
            return len(self._voices)

    def _callback(self, outdata, frames, time_info, status):
        if status:
            logger.debug("Audio stream status: %s", status)
        outdata[:, 0] = self.mix(frames)

    def close(self):
        if self._stream is not None:
            self._stream.stop()
            self._stream.close()
            self._stream = None
        with self._lock:
            self._voices.clear()


def adsr_envelope(
    hold_seconds: float,
    sample_rate: int,
    attack: float = 0.005,
    decay: float = 0.1,
    sustain: float = 0.3,
    release: float = 1.0,
) -> np.ndarray:
    """Attack/decay/sustain for `hold_seconds`, then a release tail."""
    n_hold = max(1, int(hold_seconds * sample_rate))
    n_attack = min(n_hold, max(1, int(attack * sample_rate)))
    n_decay = min(n_hold - n_attack, int(decay * sample_rate))
    n_sustain = n_hold - n_attack - n_decay
    n_release = max(1, int(release * sample_rate))

    attack_seg = np.linspace(0.0, 1.0, n_attack, endpoint=False)
    decay_seg = np.linspace(1.0, sustain, n_decay, endpoint=False)
    sustain_seg = np.full(n_sustain, sustain)
    # Release starts from wherever the envelope was when the note let go
    level = sustain_seg[-1] if n_sustain else (decay_seg[-1] if n_decay else attack_seg[-1])
    release_seg = np.linspace(level, 0.0, n_release)

    return np.concatenate([attack_seg, decay_seg, sustain_seg, release_seg]).astype(np.float32)


def triangle_wave(freq: float, n_samples: int, sample_rate: int) -> np.ndarray:
    t = np.arange(n_samples, dtype=np.float64) / sample_rate
    phase = (t * freq) % 1.0
    return (4.0 * np.abs(phase - 0.5) - 1.0).astype(np.float32)


def resample(buffer: np.ndarray, ratio: float) -> np.ndarray:
    """Play `buffer` back `ratio` times faster (ratio 2.0 = up one octave)."""
    n_out = max(1, int(len(buffer) / ratio))
    positions = np.arange(n_out, dtype=np.float64) * ratio
    return np.interp(positions, np.arange(len(buffer)), buffer).astype(np.float32)


class BufferedInstrument(Instrument):
    """Base for instruments that render a buffer per trigger."""

    def __init__(
        self,
        sample_rate: int = 44100,
        bpm: float = DEFAULT_BPM,
        mixer: Optional[VoiceMixer] = None,
    ):
        self.sample_rate = sample_rate
        self.bpm = bpm
        self.mixer = mixer or VoiceMixer(sample_rate=sample_rate)

    @abstractmethod
    def render(self, pitches: Sequence[str], seconds: float, volume: float) -> np.ndarray:
        """Render the pitches held for `seconds`, release tail included."""

    def trigger(self, pitches: Sequence[str], duration: str | float, volume: float):
        seconds = duration_seconds(duration, self.bpm)
        self.mixer.play(self.render(pitches, seconds, volume))

    def close(self):
        self.mixer.close()


class SynthInstrument(BufferedInstrument):
    """Polyphonic triangle-wave synth with an ADSR envelope."""

    name = "synth"

    def __init__(
        self,
        sample_rate: int = 44100,
        bpm: float = DEFAULT_BPM,
        mixer: Optional[VoiceMixer] = None,
        attack: float = 0.005,
        decay: float = 0.1,
        sustain: float = 0.3,
        release: float = 1.0,
    ):
        super().__init__(sample_rate, bpm, mixer)
        self.attack = attack
        self.decay = decay
        self.sustain = sustain
        self.release = release

    def render(self, pitches: Sequence[str], seconds: float, volume: float) -> np.ndarray:
        env = adsr_envelope(
            seconds, self.sample_rate,
            attack=self.attack, decay=self.decay,
            sustain=self.sustain, release=self.release,
        )
        out = np.zeros(len(env), dtype=np.float32)
        for pitch in pitches:
            out += triangle_wave(note_to_frequency(pitch), len(env), self.sample_rate)
        return out * env * (volume * VOICE_GAIN)


class SamplerInstrument(BufferedInstrument):
    """Plays the nearest recorded sample, repitched to each requested note.

    Args:
        samples: Mapping of note name -> mono sample buffer at `sample_rate`.
        release: Fade-out after the note is released, in seconds.
    """

    def __init__(
        self,
        samples: dict[str, np.ndarray],
        sample_rate: int = 44100,
        bpm: float = DEFAULT_BPM,
        mixer: Optional[VoiceMixer] = None,
        release: float = 0.1,
        name: str = "sampler",
    ):
        if not samples:
            raise ValueError("sampler needs at least one sample")
        super().__init__(sample_rate, bpm, mixer)
        self.name = name
        self.release = release
        self._samples = {note_to_midi(note): buf for note, buf in samples.items()}

    @classmethod
    def from_library(
        cls,
        kind: InstrumentKind,
        samples_dir: str | Path,
        sample_rate: int = 44100,
        bpm: float = DEFAULT_BPM,
        mixer: Optional[VoiceMixer] = None,
    ) -> SamplerInstrument:
        """Load a library from `samples_dir/<library name>/`."""
        library = SAMPLE_LIBRARIES[kind]
        folder = Path(samples_dir) / library.name
        missing = [name for name in library.urls.values() if not (folder / name).exists()]
        if missing:
            raise FileNotFoundError(
                f"{kind.value} samples missing from {folder}: {', '.join(missing)}. "
                "Run: hand-music fetch-samples"
            )
        samples = {
            note: load_sample(folder / filename, sample_rate)
            for note, filename in library.urls.items()
        }
        logger.info("Loaded %d %s samples from %s", len(samples), kind.value, folder)
        return cls(samples, sample_rate=sample_rate, bpm=bpm, mixer=mixer, name=kind.value)

    def nearest_sample(self, pitch: str) -> tuple[int, np.ndarray]:
        midi = note_to_midi(pitch)
        root = min(self._samples, key=lambda m: abs(m - midi))
        return root, self._samples[root]

    def render(self, pitches: Sequence[str], seconds: float, volume: float) -> np.ndarray:
        n_hold = max(1, int(seconds * self.sample_rate))
        n_release = max(1, int(self.release * self.sample_rate))
        n_total = n_hold + n_release

        out = np.zeros(n_total, dtype=np.float32)
        for pitch in pitches:
            root, sample = self.nearest_sample(pitch)
            voice = resample(sample, 2 ** ((note_to_midi(pitch) - root) / 12))[:n_total]
            out[:len(voice)] += voice

        env = np.ones(n_total, dtype=np.float32)
        env[n_hold:] = np.linspace(1.0, 0.0, n_release)
        return out * env * (volume * VOICE_GAIN)


def load_sample(path: str | Path, sample_rate: int) -> np.ndarray:
    """Read an audio file as mono float32 at `sample_rate`."""
    if sf is None:
        raise ImportError("soundfile is required to load samples. Install with: pip install soundfile")
    data, file_rate = sf.read(str(path), dtype="float32", always_2d=True)
    mono = data.mean(axis=1)
    if file_rate != sample_rate:
        mono = resample(mono, file_rate / sample_rate)
    return mono


def download_samples(
    kind: InstrumentKind,
    samples_dir: str | Path,
    overwrite: bool = False,
) -> list[Path]:
    """Fetch a sample library into `samples_dir/<library name>/`.

    Returns the paths written. Existing files are kept unless `overwrite`.
    """
    import httpx

    library = SAMPLE_LIBRARIES.get(kind)
    if library is None:
        raise ValueError(f"{kind.value} is not sample based")

    folder = Path(samples_dir) / library.name
    folder.mkdir(parents=True, exist_ok=True)
    written = []

    with httpx.Client(base_url=library.base_url, timeout=30.0, follow_redirects=True) as client:
        for filename in library.urls.values():
            target = folder / filename
            if target.exists() and not overwrite:
                logger.debug("Keeping existing %s", target)
                continue
            resp = client.get(filename)
            resp.raise_for_status()
            target.write_bytes(resp.content)
            written.append(target)
            logger.info("Downloaded %s", target)

    return written


def create_instrument(
    kind: InstrumentKind,
    samples_dir: str | Path = "samples",
    sample_rate: int = 44100,
    bpm: float = DEFAULT_BPM,
    mixer: Optional[VoiceMixer] = None,
) -> Instrument:
    """Build the audio backend for an instrument kind."""
    if kind is InstrumentKind.SYNTH:
        return SynthInstrument(sample_rate=sample_rate, bpm=bpm, mixer=mixer)
    return SamplerInstrument.from_library(
        kind, samples_dir, sample_rate=sample_rate, bpm=bpm, mixer=mixer
    )
