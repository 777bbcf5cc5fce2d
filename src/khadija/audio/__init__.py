"""Audio playback: single-session arbitration and TTS backend selection."""

from .base import (
    AudioOutput,
    ControlState,
    HandleKind,
    LocalSpeechEngine,
    PlaybackControl,
    PlaybackHandle,
    RemoteSynthesizer,
    Voice,
)
from .factory import create_audio_output, create_local_engine, create_remote_synthesizer
from .selector import TTSBackendSelector, select_voice
from .session import AudioSessionManager, Continuation, SessionState

__all__ = [
    "AudioOutput",
    "AudioSessionManager",
    "Continuation",
    "ControlState",
    "HandleKind",
    "LocalSpeechEngine",
    "PlaybackControl",
    "PlaybackHandle",
    "RemoteSynthesizer",
    "SessionState",
    "TTSBackendSelector",
    "Voice",
    "create_audio_output",
    "create_local_engine",
    "create_remote_synthesizer",
    "select_voice",
]
