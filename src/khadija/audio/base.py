"""Abstractions for speech synthesis and audio playback.

The audio session logic depends only on these interfaces, so it runs the
same against real devices and against the fakes used in tests.

Completion contract for every PlaybackHandle: ``on_end``/``on_error`` are
invoked on the event loop thread, at most once, and never after ``stop()``
has returned.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from enum import Enum

from pydantic import BaseModel, ConfigDict


class ControlState(str, Enum):
    """Visual state of the control bound to a playback session."""

    RESTING = "resting"  # play icon
    BUSY = "busy"        # spinner while synthesis is requested
    PLAYING = "playing"  # stop icon


class PlaybackControl(ABC):
    """A UI control that starts/stops playback for one message."""

    @abstractmethod
    def set_state(self, state: ControlState) -> None:
        """Show the given state."""


class HandleKind(str, Enum):
    UTTERANCE = "utterance"  # local engine speaking text
    BUFFER = "buffer"        # decoded audio buffer from the remote service


class PlaybackHandle(ABC):
    """Something that can be made audible once and stopped."""

    kind: HandleKind

    @abstractmethod
    def start(self, on_end: Callable[[], None], on_error: Callable[[Exception], None]) -> None:
        """Begin playback; returns immediately."""

    @abstractmethod
    def stop(self) -> None:
        """Stop playback synchronously. Idempotent."""


class Voice(BaseModel):
    """A voice offered by the local speech engine."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    lang: str = ""


class LocalSpeechEngine(ABC):
    """On-device speech synthesis."""

    @abstractmethod
    def voices(self) -> list[Voice]:
        """Currently available voices."""

    @abstractmethod
    def on_voices_changed(self, callback: Callable[[list[Voice]], None]) -> None:
        """Subscribe to voice catalogue changes."""

    @abstractmethod
    def create_utterance(
        self,
        text: str,
        voice: Voice | None,
        pitch: float = 1.0,
        rate: float = 1.0,
    ) -> PlaybackHandle:
        """Prepare an utterance; it speaks once started."""

    def refresh_voices(self) -> bool:
        """Re-read the catalogue on engines without change notification.

        Returns:
            True if the catalogue changed (subscribers were notified)
        """
        return False


class RemoteSynthesizer(ABC):
    """Network speech synthesis service."""

    @abstractmethod
    async def synthesize(self, text: str, rate: float = 1.0) -> bytes:
        """Return encoded audio for the text.

        Raises:
            SynthesisError: On an error payload or transport failure
        """

    @abstractmethod
    async def close(self) -> None:
        """Release network resources."""


class AudioOutput(ABC):
    """Decodes encoded audio and produces playable buffers."""

    @abstractmethod
    def decode(self, audio: bytes) -> PlaybackHandle:
        """Decode audio bytes into a playable buffer handle."""
