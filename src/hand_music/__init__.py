"""Hand Music - play notes and chords with hand gestures."""

__version__ = "0.1.0"

from hand_music.config import EngineConfig, Mode, ConfigError
from hand_music.engine import Engine, PlaybackCommand, CommandKind, EngineStats
from hand_music.fingers import finger_states
from hand_music.gestures import GestureDescriptor, GestureRecognizer, recognize_gesture
from hand_music.mapping import PitchMapper, HeightSource, VolumeSource, quantize, map_volume
from hand_music.gate import TriggerGate, DebouncePolicy, GateState, ManualClock, MonotonicClock
from hand_music.instruments import (
    Instrument,
    InstrumentKind,
    RecordingInstrument,
    SamplerInstrument,
    SynthInstrument,
    create_instrument,
)
from hand_music.recorder import SessionRecorder, SessionPlayer
